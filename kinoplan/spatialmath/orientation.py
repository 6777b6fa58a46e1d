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

"""Declarative orientation and translation configs used by model and geometry documents."""

from __future__ import annotations

from typing import Literal

import numpy as np
from pydantic import BaseModel, ConfigDict
from scipy.spatial.transform import Rotation

from kinoplan.msgs.geometry_msgs import Quaternion, Vector3

OrientationType = Literal[
    "ov_degrees",
    "ov_radians",
    "euler_angles",
    "axis_angles",
    "quaternion",
]


class TranslationConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_vector(self) -> Vector3:
        return Vector3(self.x, self.y, self.z)

    @classmethod
    def from_vector(cls, vector: Vector3) -> TranslationConfig:
        return cls(x=vector.x, y=vector.y, z=vector.z)


class OrientationConfig(BaseModel):
    """An orientation in one of several notations.

    ``value`` keys by type:
        ov_degrees / ov_radians: x, y, z (pointing direction), th (spin)
        euler_angles: roll, pitch, yaw (radians)
        axis_angles: x, y, z (axis), th (radians)
        quaternion: x, y, z, w
    """

    model_config = ConfigDict(extra="forbid")

    type: OrientationType
    value: dict[str, float]

    def to_quaternion(self) -> Quaternion:
        v = self.value
        if self.type in ("ov_degrees", "ov_radians"):
            theta = v.get("th", 0.0)
            if self.type == "ov_degrees":
                theta = np.deg2rad(theta)
            return orientation_vector_to_quaternion(
                np.array([v.get("x", 0.0), v.get("y", 0.0), v.get("z", 1.0)]), theta
            )
        if self.type == "euler_angles":
            return Quaternion.from_euler([v.get("roll", 0.0), v.get("pitch", 0.0), v.get("yaw", 0.0)])
        if self.type == "axis_angles":
            th = v.get("th", 0.0)
            if th == 0.0:
                return Quaternion()
            return Quaternion.from_axis_angle([v.get("x", 0.0), v.get("y", 0.0), v.get("z", 1.0)], th)
        return Quaternion(v.get("x", 0.0), v.get("y", 0.0), v.get("z", 0.0), v.get("w", 1.0)).normalize()

    @classmethod
    def from_quaternion(cls, q: Quaternion) -> OrientationConfig:
        return cls(type="quaternion", value={"x": q.x, "y": q.y, "z": q.z, "w": q.w})


def orientation_vector_to_quaternion(direction: np.ndarray, theta: float) -> Quaternion:
    """Rotation whose z axis points along ``direction``, spun by ``theta`` about it.

    Uses the intrinsic Z-Y-Z decomposition (longitude, latitude, theta).
    """
    direction = np.asarray(direction, dtype=float)
    n = np.linalg.norm(direction)
    if n == 0.0:
        raise ValueError("orientation vector direction must be non-zero")
    ox, oy, oz = direction / n
    lat = float(np.arccos(np.clip(oz, -1.0, 1.0)))
    lon = 0.0
    if 1.0 - abs(oz) > 1e-4:
        lon = float(np.arctan2(oy, ox))
    return Quaternion.from_numpy(Rotation.from_euler("ZYZ", [lon, lat, theta]).as_quat())
