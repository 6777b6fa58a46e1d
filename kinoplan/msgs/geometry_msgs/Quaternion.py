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

from collections.abc import Sequence
from typing import TypeAlias

import numpy as np
from plum import dispatch
from scipy.spatial.transform import Rotation

from kinoplan.msgs.geometry_msgs.Vector3 import Vector3, VectorConvertable

# Types that can be converted to/from Quaternion
QuaternionConvertable: TypeAlias = Sequence[int | float] | np.ndarray


def quaternion_multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product of two (x, y, z, w) arrays."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array(
        [
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
            aw * bw - ax * bx - ay * by - az * bz,
        ]
    )


def rotate_vector_by_quaternion(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate a 3-vector by a unit (x, y, z, w) quaternion."""
    u = q[:3]
    w = q[3]
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


class Quaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @dispatch
    def __init__(self) -> None: ...

    @dispatch
    def __init__(self, x: int | float, y: int | float, z: int | float, w: int | float) -> None:
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)
        self.w = float(w)

    @dispatch
    def __init__(self, sequence: QuaternionConvertable) -> None:
        if len(sequence) != 4:
            raise ValueError("Quaternion requires exactly 4 components [x, y, z, w]")

        self.x = float(sequence[0])
        self.y = float(sequence[1])
        self.z = float(sequence[2])
        self.w = float(sequence[3])

    @dispatch
    def __init__(self, quaternion: Quaternion) -> None:
        """Initialize from another Quaternion (copy constructor)."""
        self.x, self.y, self.z, self.w = quaternion.x, quaternion.y, quaternion.z, quaternion.w

    @classmethod
    def from_numpy(cls, array: np.ndarray) -> Quaternion:
        """Build from an (x, y, z, w) array without going through dispatch."""
        q = cls.__new__(cls)
        q.x, q.y, q.z, q.w = (float(v) for v in array)
        return q

    @classmethod
    def from_euler(cls, euler: Vector3 | VectorConvertable) -> Quaternion:
        """Build from (roll, pitch, yaw) in radians."""
        rpy = euler.to_numpy() if isinstance(euler, Vector3) else np.asarray(euler, dtype=float)
        return cls.from_numpy(Rotation.from_euler("xyz", rpy).as_quat())

    @classmethod
    def from_axis_angle(cls, axis: Vector3 | VectorConvertable, angle: float) -> Quaternion:
        """Build from a rotation of ``angle`` radians about ``axis`` (normalized here)."""
        axis_np = axis.to_numpy() if isinstance(axis, Vector3) else np.asarray(axis, dtype=float)
        n = np.linalg.norm(axis_np)
        if n == 0.0:
            raise ValueError("rotation axis must be non-zero")
        return cls.from_numpy(Rotation.from_rotvec(axis_np / n * angle).as_quat())

    @classmethod
    def from_rotation_matrix(cls, matrix: np.ndarray) -> Quaternion:
        return cls.from_numpy(Rotation.from_matrix(matrix).as_quat())

    def to_tuple(self) -> tuple[float, float, float, float]:
        """Tuple representation of the quaternion (x, y, z, w)."""
        return (self.x, self.y, self.z, self.w)

    def to_list(self) -> list[float]:
        """List representation of the quaternion (x, y, z, w)."""
        return [self.x, self.y, self.z, self.w]

    def to_numpy(self) -> np.ndarray:
        """Numpy array representation of the quaternion (x, y, z, w)."""
        return np.array([self.x, self.y, self.z, self.w])

    def to_rotation_matrix(self) -> np.ndarray:
        return Rotation.from_quat(self.to_numpy()).as_matrix()

    def to_axis_angle(self) -> tuple[Vector3, float]:
        """Axis and angle (radians, in [0, pi]) of the rotation.

        The identity rotation reports the z axis with a zero angle.
        """
        rotvec = Rotation.from_quat(self.to_numpy()).as_rotvec()
        angle = float(np.linalg.norm(rotvec))
        if angle < 1e-12:
            return Vector3(0.0, 0.0, 1.0), 0.0
        return Vector3.from_numpy(rotvec / angle), angle

    def to_rotation_vector(self) -> Vector3:
        """Axis scaled by angle (R3AA)."""
        return Vector3.from_numpy(Rotation.from_quat(self.to_numpy()).as_rotvec())

    @property
    def euler(self) -> Vector3:
        return self.to_euler()

    def to_euler(self) -> Vector3:
        """Convert quaternion to Euler angles (roll, pitch, yaw) in radians.

        Returns:
            Vector3: Euler angles as (roll, pitch, yaw) in radians
        """
        # ZYX convention, see
        # https://en.wikipedia.org/wiki/Conversion_between_quaternions_and_Euler_angles
        sinr_cosp = 2 * (self.w * self.x + self.y * self.z)
        cosr_cosp = 1 - 2 * (self.x * self.x + self.y * self.y)
        roll = np.arctan2(sinr_cosp, cosr_cosp)

        sinp = 2 * (self.w * self.y - self.z * self.x)
        if abs(sinp) >= 1:
            pitch = np.copysign(np.pi / 2, sinp)
        else:
            pitch = np.arcsin(sinp)

        siny_cosp = 2 * (self.w * self.z + self.x * self.y)
        cosy_cosp = 1 - 2 * (self.y * self.y + self.z * self.z)
        yaw = np.arctan2(siny_cosp, cosy_cosp)

        return Vector3(float(roll), float(pitch), float(yaw))

    def norm(self) -> float:
        return float(np.linalg.norm(self.to_numpy()))

    def normalize(self) -> Quaternion:
        n = self.norm()
        if n == 0.0:
            raise ValueError("cannot normalize a zero quaternion")
        return Quaternion.from_numpy(self.to_numpy() / n)

    def conjugate(self) -> Quaternion:
        return Quaternion(-self.x, -self.y, -self.z, self.w)

    def inverse(self) -> Quaternion:
        n2 = float(np.dot(self.to_numpy(), self.to_numpy()))
        if n2 == 0.0:
            raise ValueError("cannot invert a zero quaternion")
        return Quaternion.from_numpy(self.conjugate().to_numpy() / n2)

    def rotate_vector(self, vector: Vector3) -> Vector3:
        return Vector3.from_numpy(rotate_vector_by_quaternion(self.to_numpy(), vector.to_numpy()))

    def almost_equal(self, other: Quaternion, tolerance: float = 1e-6) -> bool:
        """True if both describe the same rotation (q and -q are equivalent)."""
        dot = abs(float(np.dot(self.normalize().to_numpy(), other.normalize().to_numpy())))
        return 1.0 - dot <= tolerance

    def __mul__(self, other: Quaternion) -> Quaternion:
        if not isinstance(other, Quaternion):
            raise TypeError(f"Cannot multiply Quaternion and {type(other).__name__}")
        return Quaternion.from_numpy(quaternion_multiply(self.to_numpy(), other.to_numpy()))

    def __getitem__(self, idx: int) -> float:
        """Allow indexing into quaternion components: 0=x, 1=y, 2=z, 3=w."""
        if not 0 <= idx <= 3:
            raise IndexError(f"Quaternion index {idx} out of range [0-3]")
        return self.to_tuple()[idx]

    def __repr__(self) -> str:
        return f"Quaternion({self.x:.6f}, {self.y:.6f}, {self.z:.6f}, {self.w:.6f})"

    def __str__(self) -> str:
        return self.__repr__()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Quaternion):
            return False
        return self.x == other.x and self.y == other.y and self.z == other.z and self.w == other.w
