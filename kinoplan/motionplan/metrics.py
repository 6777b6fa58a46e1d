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

"""Pose metrics for IK, and step counts for segment interpolation.

Orientation error is measured as the rotation vector of the relative
rotation, scaled by ``ORIENTATION_DISTANCE_SCALING`` so that a radian of
orientation error weighs as much as 10 cm of position error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from scipy.spatial.transform import Rotation

from kinoplan.referenceframe import input_distance
from kinoplan.spatialmath import orient_dist

if TYPE_CHECKING:
    from kinoplan.motionplan.spec.types import Metric, SegmentInput, StateInput, StateMetric
    from kinoplan.msgs.geometry_msgs import Pose

ORIENTATION_DISTANCE_SCALING = 0.1


def _rotation_error(a: Pose, b: Pose) -> np.ndarray:
    relative = Rotation.from_quat(a.quat()).inv() * Rotation.from_quat(b.quat())
    return relative.as_rotvec()


def squared_norm_metric(pose: Pose, goal: Pose) -> float:
    """Squared position error plus squared scaled orientation error."""
    delta = goal.point() - pose.point()
    rot = _rotation_error(pose, goal) * ORIENTATION_DISTANCE_SCALING
    return float(np.dot(delta, delta) + np.dot(rot, rot))


def position_only_metric(pose: Pose, goal: Pose) -> float:
    delta = goal.point() - pose.point()
    return float(np.dot(delta, delta))


def zero_metric(pose: Pose, goal: Pose) -> float:
    return 0.0


def combine_metrics(*metrics: StateMetric) -> StateMetric:
    """Sum of the given state metrics."""

    def combined(state: StateInput) -> float:
        return sum(metric(state) for metric in metrics)

    return combined


def joint_segment_metric(segment: SegmentInput) -> float:
    """Joint-space length of a segment."""
    return input_distance(segment.start_configuration, segment.end_configuration)


def metric_by_name(name: str) -> Metric:
    metrics = {
        "squared_norm": squared_norm_metric,
        "position_only": position_only_metric,
        "zero": zero_metric,
    }
    if name not in metrics:
        raise ValueError(f"Unknown metric: {name}. Available: {sorted(metrics)}")
    return metrics[name]


def path_step_count(start: Pose, end: Pose, resolution: float) -> int:
    """Number of interpolation steps needed to move between two poses.

    The larger of the position distance and the scaled orientation distance
    is divided by ``resolution``; the result is always at least 1.
    """
    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")
    position_distance = float(np.linalg.norm(end.point() - start.point()))
    orientation_distance = orient_dist(start.orientation, end.orientation)
    distance = max(position_distance, orientation_distance * ORIENTATION_DISTANCE_SCALING)
    return int(distance / resolution) + 1
