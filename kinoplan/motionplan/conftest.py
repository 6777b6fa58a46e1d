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

import math

import numpy as np
import pytest

from kinoplan.motionplan.constraint import ConstraintHandler
from kinoplan.motionplan.spec import StateInput
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import (
    FrameSystem,
    Limit,
    RotationalFrame,
    SimpleModel,
    StaticFrame,
    TranslationalFrame,
)
from kinoplan.spatialmath import Sphere


@pytest.fixture
def planar_arm() -> SimpleModel:
    """Two unit links rotating about z, each ending in a 0.1 m sphere.

    End effector at inputs (a, b): (cos a + cos(a + b), sin a + sin(a + b), 0), yaw a + b.
    """
    return SimpleModel(
        "arm",
        [
            RotationalFrame("shoulder", [0.0, 0.0, 1.0], Limit(-math.pi, math.pi)),
            StaticFrame("upper", Pose(1.0, 0.0, 0.0), [Sphere(Pose(), 0.1, "elbow_ball")]),
            RotationalFrame("elbow", [0.0, 0.0, 1.0], Limit(-math.pi, math.pi)),
            StaticFrame("fore", Pose(1.0, 0.0, 0.0), [Sphere(Pose(), 0.1, "hand")]),
        ],
    )


@pytest.fixture
def slider() -> TranslationalFrame:
    return TranslationalFrame("slider", [1.0, 0.0, 0.0], Limit(-10, 10), [Sphere(Pose(), 0.1)])


@pytest.fixture
def arm_fs(planar_arm) -> FrameSystem:
    fs = FrameSystem("arm_world")
    fs.add_frame(planar_arm, "world")
    return fs


@pytest.fixture
def wand() -> SimpleModel:
    """One unit link rotating about z; the tip traces the unit circle."""
    return SimpleModel(
        "wand",
        [
            RotationalFrame("pivot", [0.0, 0.0, 1.0], Limit(-math.pi, math.pi)),
            StaticFrame("tip", Pose(1.0, 0.0, 0.0)),
        ],
    )


@pytest.fixture
def ring_handler() -> ConstraintHandler:
    """Poses must stay within 0.01 of the unit circle about the origin."""

    def metric(state: StateInput) -> float:
        return abs(float(np.linalg.norm(state.resolve().point())) - 1.0)

    handler = ConstraintHandler()
    handler.add_state_constraint("ring", lambda state: metric(state) < 0.01, metric)
    return handler
