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

"""Frames: named nodes of a kinematic tree.

A frame maps an input vector (one value per degree of freedom) to its pose
relative to its parent. Frames may own collision geometry expressed in their
own coordinates.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import math
from typing import Any

import numpy as np

from kinoplan.msgs.geometry_msgs import Pose, Quaternion, Vector3
from kinoplan.referenceframe.errors import (
    IncorrectInputLengthError,
    InvalidFrameError,
    OutOfBoundsError,
)
from kinoplan.referenceframe.world_state import GeometriesInFrame
from kinoplan.spatialmath import Geometry, geometry_from_dict

Inputs = list[float]


@dataclass(frozen=True)
class Limit:
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def clamp(self, value: float) -> float:
        return min(max(value, self.min), self.max)

    def to_dict(self) -> dict[str, float]:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> Limit:
        return cls(float(data["min"]), float(data["max"]))

    def __str__(self) -> str:
        return f"{{{self.min:.5f} {self.max:.5f}}}"


def _label_geometries(name: str, geometries: Iterable[Geometry]) -> list[Geometry]:
    labelled = []
    for i, geometry in enumerate(geometries):
        if not geometry.label:
            geometry = geometry.with_label(name if i == 0 else f"{name}_{i}")
        labelled.append(geometry)
    return labelled


def _unit_axis(axis: Vector3 | Sequence[float], name: str) -> np.ndarray:
    axis_np = axis.to_numpy() if isinstance(axis, Vector3) else np.asarray(axis, dtype=float)
    norm = float(np.linalg.norm(axis_np))
    if axis_np.shape != (3,) or norm == 0.0:
        raise InvalidFrameError(f"frame {name!r} needs a non-zero 3D axis, got {axis}")
    return axis_np / norm


class Frame(ABC):
    """A named node with a transform, DOF limits and optional geometry."""

    def __init__(
        self, name: str, limits: Sequence[Limit] = (), geometries: Iterable[Geometry] = ()
    ) -> None:
        for limit in limits:
            if limit.min > limit.max:
                raise InvalidFrameError(f"frame {name!r} has limit with min > max: {limit}")
        self._name = name
        self._limits = list(limits)
        self._geometries = _label_geometries(name, geometries)

    @property
    def name(self) -> str:
        return self._name

    def dof(self) -> list[Limit]:
        return list(self._limits)

    @abstractmethod
    def transform(self, inputs: Sequence[float]) -> Pose:
        """Pose of this frame relative to its parent for the given inputs."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]: ...

    def local_geometries(self) -> list[Geometry]:
        """Owned geometries in this frame's own coordinates."""
        return list(self._geometries)

    def geometries(self, inputs: Sequence[float]) -> GeometriesInFrame:
        """Owned geometries, in this frame's own coordinates."""
        self.check_input_length(inputs)
        return GeometriesInFrame(self._name, self._geometries)

    def geometries_in_parent(self, inputs: Sequence[float]) -> list[Geometry]:
        """Owned geometries re-expressed in the parent's coordinates."""
        if not self._geometries:
            self.check_input_length(inputs)
            return []
        pose = self.transform(inputs)
        return [g.transform(pose) for g in self._geometries]

    def check_input_length(self, inputs: Sequence[float]) -> None:
        if len(inputs) != len(self._limits):
            raise IncorrectInputLengthError(len(inputs), len(self._limits), self._name)

    def check_limits(self, inputs: Sequence[float], pose: Pose | None = None) -> None:
        for value, limit in zip(inputs, self._limits):
            if not limit.contains(value):
                raise OutOfBoundsError(value, limit, self._name, pose)

    def validate_inputs(self, inputs: Sequence[float]) -> None:
        self.check_input_length(inputs)
        self.check_limits(inputs)

    def _sample_inputs(self) -> list[Inputs]:
        samples: list[Inputs] = [[]]
        for limit in self._limits:
            if math.isfinite(limit.min) and math.isfinite(limit.max):
                values = [limit.min, (limit.min + limit.max) / 2, limit.max]
            else:
                values = [limit.clamp(0.0)]
            samples = [s + [v] for s in samples for v in values]
        return samples[:27]

    def almost_equals(self, other: Frame, tolerance: float = 1e-6) -> bool:
        """Same kind, name, limits and geometry, and matching transforms across the limits."""
        if type(self) is not type(other) or self._name != other.name:
            return False
        other_limits = other.dof()
        if len(self._limits) != len(other_limits):
            return False
        for a, b in zip(self._limits, other_limits):
            if not (math.isclose(a.min, b.min, abs_tol=tolerance) and math.isclose(a.max, b.max, abs_tol=tolerance)):
                return False
        other_geometries = other.local_geometries()
        if len(self._geometries) != len(other_geometries) or not all(
            a.almost_equal(b, tolerance) for a, b in zip(self._geometries, other_geometries)
        ):
            return False
        return all(
            self.transform(s).almost_equal(other.transform(s), tolerance)
            for s in self._sample_inputs()
        )

    def _base_dict(self, frame_type: str) -> dict[str, Any]:
        data: dict[str, Any] = {"type": frame_type, "name": self._name}
        if self._geometries:
            data["geometries"] = [g.to_dict() for g in self._geometries]
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, dof={len(self._limits)})"


class StaticFrame(Frame):
    """Zero-DOF frame with a fixed pose."""

    def __init__(self, name: str, pose: Pose, geometries: Iterable[Geometry] = ()) -> None:
        if pose is None:
            raise InvalidFrameError("pose is not allowed to be None")
        super().__init__(name, (), geometries)
        self._pose = pose

    @property
    def pose(self) -> Pose:
        return self._pose

    def transform(self, inputs: Sequence[float] = ()) -> Pose:
        self.check_input_length(inputs)
        return self._pose

    def to_dict(self) -> dict[str, Any]:
        return {**self._base_dict("static"), "pose": self._pose.to_dict()}


def static_frame_from_frame(frame: Frame, pose: Pose) -> StaticFrame:
    """A static frame with ``frame``'s name and geometry, frozen at ``pose``."""
    return StaticFrame(frame.name, pose, frame.local_geometries())


class TranslationalFrame(Frame):
    """One DOF along a unit axis; the pose point is ``axis * input``."""

    def __init__(
        self,
        name: str,
        axis: Vector3 | Sequence[float],
        limit: Limit,
        geometries: Iterable[Geometry] = (),
    ) -> None:
        super().__init__(name, [limit], geometries)
        self._axis = _unit_axis(axis, name)

    @property
    def axis(self) -> np.ndarray:
        return self._axis.copy()

    def transform(self, inputs: Sequence[float]) -> Pose:
        self.validate_inputs(inputs)
        return Pose.from_arrays(self._axis * float(inputs[0]), np.array([0.0, 0.0, 0.0, 1.0]))

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict("translational"),
            "axis": self._axis.tolist(),
            "limit": self._limits[0].to_dict(),
        }


class RotationalFrame(Frame):
    """One DOF rotating about a unit axis, input in radians."""

    def __init__(self, name: str, axis: Vector3 | Sequence[float], limit: Limit) -> None:
        super().__init__(name, [limit])
        self._axis = _unit_axis(axis, name)

    @property
    def axis(self) -> np.ndarray:
        return self._axis.copy()

    def transform(self, inputs: Sequence[float]) -> Pose:
        self.validate_inputs(inputs)
        return Pose.from_arrays(
            np.zeros(3), _axis_angle_quat(self._axis, float(inputs[0]))
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict("rotational"),
            "axis": self._axis.tolist(),
            "limit": self._limits[0].to_dict(),
        }


def _axis_angle_quat(axis: np.ndarray, angle: float) -> np.ndarray:
    half = angle / 2.0
    return np.concatenate([axis * math.sin(half), [math.cos(half)]])


class LinearlyActuatedRotationalFrame(Frame):
    """A rotation driven by a linear actuator.

    The actuator length ``c`` closes a triangle with fixed sides ``a`` and
    ``b``; the output angle is the one opposite ``c``::

        theta = acos((a^2 + b^2 - c^2) / (2ab))

    Out-of-limit inputs still produce a pose, which is attached to the raised
    :class:`OutOfBoundsError`.
    """

    def __init__(
        self,
        name: str,
        axis: Vector3 | Sequence[float],
        limit: Limit,
        a: float,
        b: float,
    ) -> None:
        if a <= 0 or b <= 0:
            raise InvalidFrameError(f"frame {name!r} needs positive side lengths, got a={a} b={b}")
        super().__init__(name, [limit])
        self._axis = _unit_axis(axis, name)
        self._a = float(a)
        self._b = float(b)

    def transform(self, inputs: Sequence[float]) -> Pose:
        self.check_input_length(inputs)
        c = float(inputs[0])
        cos_theta = (self._a**2 + self._b**2 - c**2) / (2 * self._a * self._b)
        theta = math.acos(max(-1.0, min(1.0, cos_theta)))
        pose = Pose.from_arrays(np.zeros(3), _axis_angle_quat(self._axis, theta))
        self.check_limits(inputs, pose)
        return pose

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict("linearly_actuated_rotational"),
            "axis": self._axis.tolist(),
            "limit": self._limits[0].to_dict(),
            "a": self._a,
            "b": self._b,
        }


class Mobile2DFrame(Frame):
    """Planar base: x and y translation, plus heading (radians) when given a third limit."""

    def __init__(
        self, name: str, limits: Sequence[Limit], geometries: Iterable[Geometry] = ()
    ) -> None:
        if len(limits) not in (2, 3):
            raise InvalidFrameError(
                f"mobile frame {name!r} takes 2 or 3 limits (x, y[, theta]), got {len(limits)}"
            )
        super().__init__(name, limits, geometries)

    def transform(self, inputs: Sequence[float]) -> Pose:
        self.validate_inputs(inputs)
        if len(inputs) == 3:
            quat = Quaternion.from_axis_angle([0.0, 0.0, 1.0], float(inputs[2])).to_numpy()
        else:
            quat = np.array([0.0, 0.0, 0.0, 1.0])
        return Pose.from_arrays(np.array([inputs[0], inputs[1], 0.0], dtype=float), quat)

    def to_dict(self) -> dict[str, Any]:
        return {**self._base_dict("mobile2d"), "limits": [lim.to_dict() for lim in self._limits]}


# ============= Serialization =============


def _geometries_from(data: dict[str, Any], name: str) -> list[Geometry]:
    return [geometry_from_dict(g, name) for g in data.get("geometries", [])]


def frame_from_dict(data: dict[str, Any]) -> Frame:
    """Rebuild a frame from :meth:`Frame.to_dict` output."""
    frame_type = data.get("type")
    name = data["name"]
    if frame_type == "static":
        return StaticFrame(name, Pose.from_dict(data["pose"]), _geometries_from(data, name))
    if frame_type == "translational":
        return TranslationalFrame(
            name, data["axis"], Limit.from_dict(data["limit"]), _geometries_from(data, name)
        )
    if frame_type == "rotational":
        return RotationalFrame(name, data["axis"], Limit.from_dict(data["limit"]))
    if frame_type == "linearly_actuated_rotational":
        return LinearlyActuatedRotationalFrame(
            name, data["axis"], Limit.from_dict(data["limit"]), data["a"], data["b"]
        )
    if frame_type == "mobile2d":
        return Mobile2DFrame(
            name, [Limit.from_dict(lim) for lim in data["limits"]], _geometries_from(data, name)
        )
    if frame_type == "model":
        from kinoplan.referenceframe.model import SimpleModel

        return SimpleModel(name, [frame_from_dict(f) for f in data["frames"]])
    raise InvalidFrameError(f"unknown frame type {frame_type!r}")
