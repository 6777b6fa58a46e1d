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

import pytest

from kinoplan.motionplan.plan import Plan
from kinoplan.motionplan.planning import PlanRequest
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import FrameSystem, Limit, Mobile2DFrame, PoseInFrame
from kinoplan.spatialmath import Sphere


@pytest.fixture
def base() -> Mobile2DFrame:
    return Mobile2DFrame("base", [Limit(-10, 10), Limit(-10, 10)], [Sphere(Pose(), 0.2, "body")])


@pytest.fixture
def yard(base) -> FrameSystem:
    fs = FrameSystem("yard")
    fs.add_frame(base, "world")
    return fs


@pytest.fixture
def straight_plan() -> Plan:
    """Ten waypoints along x, 0.4 apart, starting at the origin."""
    return Plan([{"base": [0.4 * i, 0.0]} for i in range(10)])


@pytest.fixture
def straight_request(yard) -> PlanRequest:
    goal = PoseInFrame("world", Pose(3.6, 0.0, 0.0))
    return PlanRequest(goal, "base", yard, yard.start_positions())
