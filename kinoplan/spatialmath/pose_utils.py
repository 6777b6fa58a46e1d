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

"""
Pose Utilities

Stateless helpers for composing, comparing and interpolating poses, and for
measuring orientation distances.

- compose(), pose_between(), pose_delta(): pose algebra
- interpolate_pose(): linear position / spherical orientation interpolation
- pose_from_dh(): pose of a Denavit-Hartenberg link
- orient_dist(), orientation_vector(), orient_dist_to_region(): orientation metrics
- compute_pose_error(): position and orientation error between two poses
- dist_to_line_segment(): point to segment distance
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
from scipy.spatial.transform import Rotation, Slerp

from kinoplan.msgs.geometry_msgs import Pose, Quaternion


def compose(*poses: Pose) -> Pose:
    """Compose poses left to right. ``compose()`` is the identity."""
    result = Pose()
    for pose in poses:
        result = result + pose
    return result


def pose_between(a: Pose, b: Pose) -> Pose:
    """The pose ``d`` such that ``a + d == b``."""
    return a.inverse() + b


def pose_delta(a: Pose, b: Pose) -> Pose:
    """Point difference ``b - a`` paired with the relative orientation ``a^-1 * b``."""
    return Pose.from_arrays(b.point() - a.point(), (a.orientation.inverse() * b.orientation).to_numpy())


def interpolate_pose(a: Pose, b: Pose, by: float) -> Pose:
    """Interpolate between ``a`` (by=0) and ``b`` (by=1)."""
    point = a.point() + (b.point() - a.point()) * by
    rotations = Rotation.from_quat([a.quat(), b.quat()])
    quat = Slerp([0.0, 1.0], rotations)([float(np.clip(by, 0.0, 1.0))]).as_quat()[0]
    return Pose.from_arrays(point, quat)


def pose_from_dh(a: float, d: float, alpha: float) -> Pose:
    """Pose of a DH link: translation (a, 0, d) and a rotation of alpha radians about x."""
    return Pose.from_arrays(
        np.array([a, 0.0, d]),
        Rotation.from_rotvec([alpha, 0.0, 0.0]).as_quat(),
    )


def orient_dist(q1: Quaternion, q2: Quaternion) -> float:
    """Angle in radians of the rotation taking ``q1`` to ``q2``, in [0, pi]."""
    dot = abs(float(np.dot(q1.normalize().to_numpy(), q2.normalize().to_numpy())))
    return 2.0 * float(np.arccos(min(1.0, dot)))


def orientation_vector(q: Quaternion) -> np.ndarray:
    """Direction of the rotated z axis."""
    return Rotation.from_quat(q.to_numpy()).apply([0.0, 0.0, 1.0])


def orient_dist_to_region(goal: np.ndarray, alpha: float) -> Callable[[Quaternion], float]:
    """Distance from an orientation to the cone of half-angle ``alpha`` about ``goal``.

    ``goal`` is a direction for the rotated z axis. Orientations whose z axis
    lies inside the cone are at distance zero.
    """
    goal = np.asarray(goal, dtype=float)
    goal = goal / np.linalg.norm(goal)

    def dist(q: Quaternion) -> float:
        ov = orientation_vector(q)
        cos = float(np.clip(np.dot(ov, goal), -1.0, 1.0))
        return max(0.0, abs(float(np.arccos(cos))) - alpha)

    return dist


def compute_pose_error(current: Pose, target: Pose) -> tuple[float, float]:
    """Compute position and orientation error between two poses.

    Returns:
        Tuple of (position_error, orientation_error) in length units and radians
    """
    position_error = float(np.linalg.norm(target.point() - current.point()))
    orientation_error = orient_dist(current.orientation, target.orientation)
    return position_error, orientation_error


def dist_to_line_segment(p1: np.ndarray, p2: np.ndarray, point: np.ndarray) -> float:
    """Distance from ``point`` to the segment ``p1``-``p2``."""
    p1 = np.asarray(p1, dtype=float)
    p2 = np.asarray(p2, dtype=float)
    point = np.asarray(point, dtype=float)
    direction = p2 - p1
    length2 = float(np.dot(direction, direction))
    if length2 == 0.0:
        return float(np.linalg.norm(point - p1))
    t = float(np.clip(np.dot(point - p1, direction) / length2, 0.0, 1.0))
    return float(np.linalg.norm(point - (p1 + t * direction)))


def segment_segment_distance(
    p1: np.ndarray, q1: np.ndarray, p2: np.ndarray, q2: np.ndarray
) -> float:
    """Closest distance between segments p1-q1 and p2-q2."""
    d1 = q1 - p1
    d2 = q2 - p2
    r = p1 - p2
    a = float(np.dot(d1, d1))
    e = float(np.dot(d2, d2))
    f = float(np.dot(d2, r))
    eps = 1e-12

    if a <= eps and e <= eps:
        return float(np.linalg.norm(p1 - p2))
    if a <= eps:
        s = 0.0
        t = float(np.clip(f / e, 0.0, 1.0))
    else:
        c = float(np.dot(d1, r))
        if e <= eps:
            t = 0.0
            s = float(np.clip(-c / a, 0.0, 1.0))
        else:
            b = float(np.dot(d1, d2))
            denom = a * e - b * b
            s = float(np.clip((b * f - c * e) / denom, 0.0, 1.0)) if denom > eps else 0.0
            t = (b * s + f) / e
            if t < 0.0:
                t = 0.0
                s = float(np.clip(-c / a, 0.0, 1.0))
            elif t > 1.0:
                t = 1.0
                s = float(np.clip((b - c) / a, 0.0, 1.0))

    return float(np.linalg.norm((p1 + d1 * s) - (p2 + d2 * t)))
