# Copyright 2025-2026 Dimensional Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Collision shapes and pairwise distance queries.

All shapes are immutable: ``transform`` and ``with_label`` return new
instances. ``geometry_distance(a, b)`` is signed, negative values are penetration
depths. Box-box distances come from the separating axis test and are exact
for face contacts and a lower bound otherwise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

import numpy as np
from plum import dispatch
from pydantic import BaseModel, ConfigDict
from scipy.optimize import minimize_scalar
from scipy.spatial import cKDTree

from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.spatialmath.errors import GeometryError
from kinoplan.spatialmath.orientation import OrientationConfig, TranslationConfig
from kinoplan.spatialmath.pose_utils import segment_segment_distance

# Shapes closer than this are in collision.
DEFAULT_COLLISION_BUFFER = 1e-8


class Geometry(ABC):
    """A labelled shape located by a pose."""

    def __init__(self, pose: Pose, label: str = "") -> None:
        self._pose = pose
        self._label = label

    @property
    def pose(self) -> Pose:
        return self._pose

    @property
    def label(self) -> str:
        return self._label

    @abstractmethod
    def with_pose(self, pose: Pose) -> Geometry: ...

    def with_label(self, label: str) -> Geometry:
        clone = self.with_pose(self._pose)
        clone._label = label
        return clone

    def transform(self, pose: Pose) -> Geometry:
        """Re-express this geometry after applying ``pose`` to its frame."""
        return self.with_pose(pose + self._pose)

    @abstractmethod
    def signed_distance_points(self, points: np.ndarray) -> np.ndarray:
        """Signed distance from each row of an (N, 3) array to this shape."""

    @abstractmethod
    def _same_shape(self, other: Geometry, tolerance: float) -> bool: ...

    @abstractmethod
    def to_config(self) -> GeometryConfig: ...

    def distance_from(self, other: Geometry) -> float:
        return float(geometry_distance(self, other))

    def collides_with(self, other: Geometry, buffer: float = DEFAULT_COLLISION_BUFFER) -> bool:
        return self.distance_from(other) <= buffer

    def almost_equal(self, other: Geometry, tolerance: float = 1e-6) -> bool:
        if type(self) is not type(other):
            return False
        return self._pose.almost_equal(other.pose, tolerance) and self._same_shape(other, tolerance)

    def to_dict(self) -> dict[str, Any]:
        return self.to_config().model_dump(exclude_none=True)

    def _config_base(self) -> dict[str, Any]:
        return {
            "translation": TranslationConfig.from_vector(self._pose.position),
            "orientation": OrientationConfig.from_quaternion(self._pose.orientation),
            "label": self._label,
        }


class Box(Geometry):
    """Oriented box. ``dims`` are full side lengths along the local x, y, z axes."""

    def __init__(self, pose: Pose, dims: tuple[float, float, float], label: str = "") -> None:
        super().__init__(pose, label)
        dims_np = np.asarray(dims, dtype=float)
        if dims_np.shape != (3,) or np.any(dims_np <= 0):
            raise GeometryError(f"box dimensions must be three positive lengths, got {dims}")
        self._half = dims_np / 2.0

    @property
    def dims(self) -> np.ndarray:
        return self._half * 2.0

    @property
    def half_size(self) -> np.ndarray:
        return self._half.copy()

    def axes(self) -> np.ndarray:
        """Columns are the box axes in world coordinates."""
        return self._pose.orientation.to_rotation_matrix()

    def with_pose(self, pose: Pose) -> Box:
        return Box(pose, tuple(self.dims), self._label)

    def signed_distance_points(self, points: np.ndarray) -> np.ndarray:
        local = (np.atleast_2d(points) - self._pose.point()) @ self.axes()
        q = np.abs(local) - self._half
        outside = np.linalg.norm(np.maximum(q, 0.0), axis=1)
        inside = np.minimum(np.max(q, axis=1), 0.0)
        return outside + inside

    def _same_shape(self, other: Geometry, tolerance: float) -> bool:
        return bool(np.allclose(self._half, other._half, atol=tolerance))

    def to_config(self) -> GeometryConfig:
        x, y, z = self.dims
        return GeometryConfig(type="box", x=float(x), y=float(y), z=float(z), **self._config_base())

    def __repr__(self) -> str:
        return f"Box(label={self._label!r}, pose={self._pose!r}, dims={self.dims.tolist()})"


class Sphere(Geometry):
    def __init__(self, pose: Pose, radius: float, label: str = "") -> None:
        super().__init__(pose, label)
        if radius <= 0:
            raise GeometryError(f"sphere radius must be positive, got {radius}")
        self._radius = float(radius)

    @property
    def radius(self) -> float:
        return self._radius

    def with_pose(self, pose: Pose) -> Sphere:
        return Sphere(pose, self._radius, self._label)

    def signed_distance_points(self, points: np.ndarray) -> np.ndarray:
        return np.linalg.norm(np.atleast_2d(points) - self._pose.point(), axis=1) - self._radius

    def _same_shape(self, other: Geometry, tolerance: float) -> bool:
        return abs(self._radius - other.radius) <= tolerance

    def to_config(self) -> GeometryConfig:
        return GeometryConfig(type="sphere", r=self._radius, **self._config_base())

    def __repr__(self) -> str:
        return f"Sphere(label={self._label!r}, pose={self._pose!r}, radius={self._radius})"


class Capsule(Geometry):
    """A swept sphere along the local z axis. ``length`` includes both end caps."""

    def __init__(self, pose: Pose, radius: float, length: float, label: str = "") -> None:
        super().__init__(pose, label)
        if radius <= 0:
            raise GeometryError(f"capsule radius must be positive, got {radius}")
        if length < 2 * radius:
            raise GeometryError(
                f"capsule length {length} must be at least twice its radius {radius}"
            )
        self._radius = float(radius)
        self._length = float(length)

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def length(self) -> float:
        return self._length

    def segment(self) -> tuple[np.ndarray, np.ndarray]:
        """World coordinates of the two end points of the core segment."""
        half = self._length / 2.0 - self._radius
        axis = self._pose.orientation.to_rotation_matrix()[:, 2]
        center = self._pose.point()
        return center - axis * half, center + axis * half

    def with_pose(self, pose: Pose) -> Capsule:
        return Capsule(pose, self._radius, self._length, self._label)

    def signed_distance_points(self, points: np.ndarray) -> np.ndarray:
        a, b = self.segment()
        points = np.atleast_2d(points)
        ab = b - a
        denom = float(np.dot(ab, ab))
        if denom == 0.0:
            closest = np.broadcast_to(a, points.shape)
        else:
            t = np.clip((points - a) @ ab / denom, 0.0, 1.0)
            closest = a + np.outer(t, ab)
        return np.linalg.norm(points - closest, axis=1) - self._radius

    def _same_shape(self, other: Geometry, tolerance: float) -> bool:
        return (
            abs(self._radius - other.radius) <= tolerance
            and abs(self._length - other.length) <= tolerance
        )

    def to_config(self) -> GeometryConfig:
        return GeometryConfig(type="capsule", r=self._radius, l=self._length, **self._config_base())

    def __repr__(self) -> str:
        return (
            f"Capsule(label={self._label!r}, pose={self._pose!r}, "
            f"radius={self._radius}, length={self._length})"
        )


class PointCloud(Geometry):
    """A set of points in the cloud's local frame, each inflated by ``point_radius``."""

    def __init__(
        self, pose: Pose, points: np.ndarray, label: str = "", point_radius: float = 0.0
    ) -> None:
        super().__init__(pose, label)
        pts = np.asarray(points, dtype=float).reshape(-1, 3)
        if len(pts) == 0:
            raise GeometryError("point cloud must contain at least one point")
        if point_radius < 0:
            raise GeometryError(f"point radius must be non-negative, got {point_radius}")
        self._points = pts
        self._point_radius = float(point_radius)
        self._world_points: np.ndarray | None = None
        self._tree: cKDTree | None = None

    @property
    def points(self) -> np.ndarray:
        return self._points.copy()

    @property
    def point_radius(self) -> float:
        return self._point_radius

    def world_points(self) -> np.ndarray:
        if self._world_points is None:
            rotation = self._pose.orientation.to_rotation_matrix()
            self._world_points = self._points @ rotation.T + self._pose.point()
        return self._world_points

    def kd_tree(self) -> cKDTree:
        if self._tree is None:
            self._tree = cKDTree(self.world_points())
        return self._tree

    def with_pose(self, pose: Pose) -> PointCloud:
        return PointCloud(pose, self._points, self._label, self._point_radius)

    def signed_distance_points(self, points: np.ndarray) -> np.ndarray:
        dist, _ = self.kd_tree().query(np.atleast_2d(points))
        return np.asarray(dist) - self._point_radius

    def _same_shape(self, other: Geometry, tolerance: float) -> bool:
        return self._points.shape == other._points.shape and bool(
            np.allclose(self._points, other._points, atol=tolerance)
        )

    def to_config(self) -> GeometryConfig:
        return GeometryConfig(
            type="point_cloud",
            points=self._points.tolist(),
            r=self._point_radius,
            **self._config_base(),
        )

    def __repr__(self) -> str:
        return f"PointCloud(label={self._label!r}, pose={self._pose!r}, n={len(self._points)})"


# ============= Distance =============


@dispatch
def geometry_distance(a: Sphere, b: Sphere) -> float:
    return float(np.linalg.norm(a.pose.point() - b.pose.point())) - a.radius - b.radius


@dispatch
def geometry_distance(a: Sphere, b: Box) -> float:
    return float(b.signed_distance_points(a.pose.point())[0]) - a.radius


@dispatch
def geometry_distance(a: Box, b: Sphere) -> float:
    return geometry_distance(b, a)


@dispatch
def geometry_distance(a: Sphere, b: Capsule) -> float:
    return float(b.signed_distance_points(a.pose.point())[0]) - a.radius


@dispatch
def geometry_distance(a: Capsule, b: Sphere) -> float:
    return geometry_distance(b, a)


@dispatch
def geometry_distance(a: Capsule, b: Capsule) -> float:
    p1, q1 = a.segment()
    p2, q2 = b.segment()
    return segment_segment_distance(p1, q1, p2, q2) - a.radius - b.radius


@dispatch
def geometry_distance(a: Capsule, b: Box) -> float:
    # Signed distance to a convex shape is convex along the capsule segment.
    start, end = a.segment()

    def along(t: float) -> float:
        return float(b.signed_distance_points(start + (end - start) * t)[0])

    best = min(along(0.0), along(1.0))
    if not np.allclose(start, end):
        result = minimize_scalar(along, bounds=(0.0, 1.0), method="bounded")
        best = min(best, float(result.fun))
    return best - a.radius


@dispatch
def geometry_distance(a: Box, b: Capsule) -> float:
    return geometry_distance(b, a)


@dispatch
def geometry_distance(a: Box, b: Box) -> float:
    axes_a = a.axes()
    axes_b = b.axes()
    offset = b.pose.point() - a.pose.point()

    candidates = [axes_a[:, i] for i in range(3)] + [axes_b[:, i] for i in range(3)]
    for i in range(3):
        for j in range(3):
            cross = np.cross(axes_a[:, i], axes_b[:, j])
            n = np.linalg.norm(cross)
            if n > 1e-9:
                candidates.append(cross / n)

    separation = -np.inf
    for axis in candidates:
        radius_a = float(np.sum(a.half_size * np.abs(axes_a.T @ axis)))
        radius_b = float(np.sum(b.half_size * np.abs(axes_b.T @ axis)))
        separation = max(separation, abs(float(np.dot(offset, axis))) - radius_a - radius_b)
    return float(separation)


@dispatch
def geometry_distance(a: PointCloud, b: Geometry) -> float:
    return float(np.min(b.signed_distance_points(a.world_points()))) - a.point_radius


@dispatch
def geometry_distance(a: Geometry, b: PointCloud) -> float:
    return geometry_distance(b, a)


@dispatch
def geometry_distance(a: PointCloud, b: PointCloud) -> float:
    dist, _ = b.kd_tree().query(a.world_points())
    return float(np.min(dist)) - a.point_radius - b.point_radius


# ============= Serialization =============


class GeometryConfig(BaseModel):
    """Interchange form of a geometry.

    Box uses ``x``, ``y``, ``z`` (full side lengths); sphere uses ``r``;
    capsule uses ``r`` and ``l``; point cloud uses ``points`` and ``r`` as the
    per-point radius.
    """

    model_config = ConfigDict(extra="forbid")

    type: Literal["box", "sphere", "capsule", "point_cloud"]
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    r: float = 0.0
    l: float = 0.0  # noqa: E741
    points: list[list[float]] | None = None
    translation: TranslationConfig = TranslationConfig()
    orientation: OrientationConfig | None = None
    label: str = ""

    def pose(self) -> Pose:
        orientation = self.orientation.to_quaternion() if self.orientation else None
        if orientation is None:
            return Pose(self.translation.to_vector())
        return Pose(self.translation.to_vector(), orientation)

    def to_geometry(self, default_label: str = "") -> Geometry:
        pose = self.pose()
        label = self.label or default_label
        if self.type == "box":
            return Box(pose, (self.x, self.y, self.z), label)
        if self.type == "sphere":
            return Sphere(pose, self.r, label)
        if self.type == "capsule":
            return Capsule(pose, self.r, self.l, label)
        if not self.points:
            raise GeometryError("point cloud geometry requires points")
        return PointCloud(pose, np.array(self.points), label, self.r)


def geometry_from_dict(data: dict[str, Any], default_label: str = "") -> Geometry:
    return GeometryConfig.model_validate(data).to_geometry(default_label)
