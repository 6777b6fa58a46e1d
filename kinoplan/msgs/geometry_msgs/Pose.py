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

from __future__ import annotations

from typing import Any, TypeAlias

import numpy as np
from plum import dispatch

from kinoplan.msgs.geometry_msgs.Quaternion import (
    Quaternion,
    QuaternionConvertable,
    quaternion_multiply,
    rotate_vector_by_quaternion,
)
from kinoplan.msgs.geometry_msgs.Vector3 import Vector3, VectorConvertable

# Types that can be converted to/from Pose
PoseConvertable: TypeAlias = tuple[VectorConvertable, QuaternionConvertable]


def _normalized(orientation: Quaternion) -> Quaternion:
    n = orientation.norm()
    if n == 0.0:
        raise ValueError("pose orientation must be a non-zero quaternion")
    if abs(n - 1.0) < 1e-12:
        return orientation
    return Quaternion.from_numpy(orientation.to_numpy() / n)


class Pose:
    """A position plus a unit-quaternion orientation.

    Poses compose left to right: ``a + b`` applies ``b`` in the frame defined
    by ``a``. Composition is associative but not commutative. The orientation
    is normalized on construction.
    """

    position: Vector3
    orientation: Quaternion

    @dispatch
    def __init__(self) -> None:
        """Initialize a pose at origin with identity orientation."""
        self.position = Vector3(0.0, 0.0, 0.0)
        self.orientation = Quaternion(0.0, 0.0, 0.0, 1.0)

    @dispatch
    def __init__(self, x: int | float, y: int | float, z: int | float) -> None:
        """Initialize a pose with position and identity orientation."""
        self.position = Vector3(x, y, z)
        self.orientation = Quaternion(0.0, 0.0, 0.0, 1.0)

    @dispatch
    def __init__(
        self,
        x: int | float,
        y: int | float,
        z: int | float,
        qx: int | float,
        qy: int | float,
        qz: int | float,
        qw: int | float,
    ) -> None:
        """Initialize a pose with position and orientation."""
        self.position = Vector3(x, y, z)
        self.orientation = _normalized(Quaternion(qx, qy, qz, qw))

    @dispatch
    def __init__(self, position: VectorConvertable | Vector3) -> None:
        """Initialize a pose with position and identity orientation."""
        self.position = Vector3(position)
        self.orientation = Quaternion(0.0, 0.0, 0.0, 1.0)

    @dispatch
    def __init__(
        self,
        position: VectorConvertable | Vector3,
        orientation: QuaternionConvertable | Quaternion,
    ) -> None:
        """Initialize a pose with position and orientation."""
        self.position = Vector3(position)
        self.orientation = _normalized(Quaternion(orientation))

    @dispatch
    def __init__(self, pose: Pose) -> None:
        """Initialize from another Pose (copy constructor)."""
        self.position = Vector3(pose.position)
        self.orientation = Quaternion(pose.orientation)

    @classmethod
    def from_arrays(cls, point: np.ndarray, quat: np.ndarray) -> Pose:
        """Build from a point array and an (x, y, z, w) array, skipping dispatch.

        Used on hot paths (forward kinematics, interpolation).
        """
        pose = cls.__new__(cls)
        pose.position = Vector3.from_numpy(point)
        n = float(np.linalg.norm(quat))
        if n == 0.0:
            raise ValueError("pose orientation must be a non-zero quaternion")
        pose.orientation = Quaternion.from_numpy(np.asarray(quat, dtype=float) / n)
        return pose

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> Pose:
        """Build from a 4x4 homogeneous transform."""
        return cls.from_arrays(
            matrix[:3, 3], Quaternion.from_rotation_matrix(matrix[:3, :3]).to_numpy()
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pose:
        return cls(data["position"], data["orientation"])

    @property
    def x(self) -> float:
        """X coordinate of position."""
        return self.position.x

    @property
    def y(self) -> float:
        """Y coordinate of position."""
        return self.position.y

    @property
    def z(self) -> float:
        """Z coordinate of position."""
        return self.position.z

    @property
    def roll(self) -> float:
        """Roll angle in radians."""
        return self.orientation.to_euler().roll

    @property
    def pitch(self) -> float:
        """Pitch angle in radians."""
        return self.orientation.to_euler().pitch

    @property
    def yaw(self) -> float:
        """Yaw angle in radians."""
        return self.orientation.to_euler().yaw

    def point(self) -> np.ndarray:
        return self.position.to_numpy()

    def quat(self) -> np.ndarray:
        """Orientation as an (x, y, z, w) array."""
        return self.orientation.to_numpy()

    def to_matrix(self) -> np.ndarray:
        matrix = np.eye(4)
        matrix[:3, :3] = self.orientation.to_rotation_matrix()
        matrix[:3, 3] = self.point()
        return matrix

    def to_dict(self) -> dict[str, list[float]]:
        return {"position": self.position.to_list(), "orientation": self.orientation.to_list()}

    def __add__(self, other: Pose) -> Pose:
        """Compose two poses: apply ``other`` in the frame defined by ``self``."""
        if not isinstance(other, Pose):
            raise TypeError(f"Cannot add Pose and {type(other).__name__}")
        q = self.quat()
        return Pose.from_arrays(
            self.point() + rotate_vector_by_quaternion(q, other.point()),
            quaternion_multiply(q, other.quat()),
        )

    def inverse(self) -> Pose:
        q_inv = self.quat() * np.array([-1.0, -1.0, -1.0, 1.0])
        return Pose.from_arrays(-rotate_vector_by_quaternion(q_inv, self.point()), q_inv)

    def __neg__(self) -> Pose:
        return self.inverse()

    def almost_equal(
        self, other: Pose, tolerance: float = 1e-6, orientation_tolerance: float | None = None
    ) -> bool:
        """True if positions lie within ``tolerance`` and orientations describe the same rotation."""
        if orientation_tolerance is None:
            orientation_tolerance = tolerance
        if np.linalg.norm(self.point() - other.point()) > tolerance:
            return False
        dot = min(1.0, abs(float(np.dot(self.quat(), other.quat()))))
        return 2.0 * np.arccos(dot) <= orientation_tolerance

    def __repr__(self) -> str:
        return f"Pose(position={self.position!r}, orientation={self.orientation!r})"

    def __str__(self) -> str:
        return (
            f"Pose(pos=[{self.x:.3f}, {self.y:.3f}, {self.z:.3f}], "
            f"euler=[{self.roll:.3f}, {self.pitch:.3f}, {self.yaw:.3f}])"
        )

    def __eq__(self, other) -> bool:
        """Check if two poses are equal."""
        if not isinstance(other, Pose):
            return False
        return self.position == other.position and self.orientation == other.orientation


@dispatch
def to_pose(value: Pose) -> Pose:
    """Pass through Pose objects."""
    return value


@dispatch
def to_pose(value: PoseConvertable) -> Pose:
    """Convert a ``(position, orientation)`` tuple to a Pose."""
    return Pose(value[0], value[1])


PoseLike: TypeAlias = PoseConvertable | Pose
