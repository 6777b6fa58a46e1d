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

"""Helpers for frame input vectors and input maps."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import math

import numpy as np

from kinoplan.referenceframe.errors import IncorrectInputLengthError, MissingInputsError
from kinoplan.referenceframe.frame import Frame, Inputs

# Sampling range used for limits that are unbounded.
DEFAULT_UNBOUNDED_RANGE = 999.0


def interpolate_inputs(start: Sequence[float], end: Sequence[float], by: float) -> Inputs:
    """Joint-space interpolation: ``start`` at by=0, ``end`` at by=1."""
    if len(start) != len(end):
        raise IncorrectInputLengthError(len(end), len(start))
    return [s + (e - s) * by for s, e in zip(start, end)]


def input_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """L2 distance in input space."""
    if len(a) != len(b):
        raise IncorrectInputLengthError(len(b), len(a))
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))


def _bounded(value: float, default: float) -> float:
    return value if math.isfinite(value) else default


def random_frame_inputs(frame: Frame, rng: np.random.Generator) -> Inputs:
    """Uniform sample inside the frame's limits."""
    return restricted_random_frame_inputs(frame, rng, 1.0)


def restricted_random_frame_inputs(frame: Frame, rng: np.random.Generator, lim: float) -> Inputs:
    """Uniform sample inside the limits, then scaled toward zero by ``lim``."""
    inputs = []
    for limit in frame.dof():
        low = _bounded(limit.min, -DEFAULT_UNBOUNDED_RANGE)
        high = _bounded(limit.max, DEFAULT_UNBOUNDED_RANGE)
        inputs.append(lim * float(rng.uniform(low, high)))
    return inputs


def zero_inputs(frame: Frame) -> Inputs:
    """Zero for every DOF, clamped into its limit."""
    return [limit.clamp(0.0) for limit in frame.dof()]


def get_frame_inputs(frame: Frame, inputs: Mapping[str, Sequence[float]]) -> Inputs:
    """Inputs for ``frame`` from an input map; zero-DOF frames need no entry."""
    if not frame.dof():
        return []
    if frame.name not in inputs:
        raise MissingInputsError(frame.name)
    values = list(inputs[frame.name])
    frame.check_input_length(values)
    return values
