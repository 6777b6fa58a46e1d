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
Path Utilities

Stateless helpers for joint-space paths (lists of input vectors).

## Functions

- interpolate_path(): Interpolate path to uniform resolution
- interpolate_segment(): Interpolate between two configurations
- compute_path_length(): Compute total path length in joint space
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

JointPath = list[list[float]]


def interpolate_path(path: Sequence[Sequence[float]], resolution: float = 0.05) -> JointPath:
    """Interpolate path to have uniform resolution.

    Adds intermediate waypoints so that no single input changes by more than
    ``resolution`` between consecutive waypoints.

    Example:
        plan_path = interpolate_path(raw_path, resolution=0.02)
    """
    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")
    if len(path) <= 1:
        return [list(q) for q in path]

    interpolated: JointPath = [list(path[0])]
    for i in range(len(path) - 1):
        q_start = np.array(path[i], dtype=np.float64)
        q_end = np.array(path[i + 1], dtype=np.float64)

        diff = q_end - q_start
        max_diff = float(np.max(np.abs(diff))) if diff.size else 0.0

        if max_diff <= resolution:
            interpolated.append(list(path[i + 1]))
        else:
            num_steps = int(np.ceil(max_diff / resolution))
            for step in range(1, num_steps + 1):
                interpolated.append((q_start + (step / num_steps) * diff).tolist())

    return interpolated


def interpolate_segment(
    start: Sequence[float], end: Sequence[float], step_size: float
) -> JointPath:
    """Configurations from ``start`` to ``end`` inclusive, at most ``step_size`` apart."""
    q_start = np.array(start, dtype=np.float64)
    q_end = np.array(end, dtype=np.float64)

    diff = q_end - q_start
    distance = float(np.linalg.norm(diff))
    if distance <= step_size:
        return [list(start), list(end)]

    num_steps = int(np.ceil(distance / step_size))
    return [(q_start + (i / num_steps) * diff).tolist() for i in range(num_steps + 1)]


def compute_path_length(path: Sequence[Sequence[float]]) -> float:
    """Sum of Euclidean distances between consecutive waypoints."""
    if len(path) <= 1:
        return 0.0
    q = np.asarray(path, dtype=np.float64)
    return float(np.sum(np.linalg.norm(np.diff(q, axis=0), axis=1)))
