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

import pytest

from kinoplan.motionplan.solver_frame import SolverFrame
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import (
    FrameSystem,
    IncorrectInputLengthError,
    Limit,
    Mobile2DFrame,
    StaticFrame,
)
from kinoplan.spatialmath import Box


@pytest.fixture
def mobile_fs(planar_arm) -> FrameSystem:
    """world -> base (planar) -> arm; world -> table."""
    fs = FrameSystem("mobile")
    fs.add_frame(
        Mobile2DFrame("base", [Limit(-10, 10), Limit(-10, 10)], [Box(Pose(), (0.5, 0.5, 0.2))]),
        "world",
    )
    fs.add_frame(planar_arm, "base")
    fs.add_frame(StaticFrame("table", Pose(5.0, 0.0, 0.0)), "world")
    return fs


def test_inputs_are_concatenated_root_first(mobile_fs):
    sf = SolverFrame("sf", mobile_fs, "arm")
    assert [f.name for f in sf.input_frames()] == ["base", "arm"]
    assert len(sf.dof()) == 4
    assert sf.solve_frame == "arm"
    assert sf.goal_frame == "world"


def test_transform_in_world(mobile_fs):
    sf = SolverFrame("sf", mobile_fs, "arm")
    assert sf.transform([1.0, 2.0, 0.0, 0.0]).point() == pytest.approx([3.0, 2.0, 0.0])
    assert sf.transform([0.0, 0.0, math.pi / 2, 0.0]).point() == pytest.approx([0.0, 2.0, 0.0])


def test_transform_in_goal_frame(mobile_fs):
    sf = SolverFrame("sf", mobile_fs, "arm", "table")
    assert sf.transform([1.0, 0.0, 0.0, 0.0]).point() == pytest.approx([-2.0, 0.0, 0.0])


def test_slice_round_trip(mobile_fs):
    sf = SolverFrame("sf", mobile_fs, "arm", origin_inputs={"other": [7.0]})
    input_map = sf.slice_to_map([1.0, 2.0, 0.3, 0.4])
    assert input_map == {"other": [7.0], "base": [1.0, 2.0], "arm": [0.3, 0.4]}
    assert sf.map_to_slice(input_map) == [1.0, 2.0, 0.3, 0.4]


def test_wrong_length(mobile_fs):
    sf = SolverFrame("sf", mobile_fs, "arm")
    with pytest.raises(IncorrectInputLengthError):
        sf.transform([0.0, 0.0])
    with pytest.raises(IncorrectInputLengthError):
        sf.slice_to_map([0.0])


def test_geometries_are_in_world(mobile_fs):
    sf = SolverFrame("sf", mobile_fs, "arm")
    geometries = {g.label: g for g in sf.geometries_in_parent([1.0, 1.0, 0.0, 0.0])}
    assert set(geometries) == {"base", "arm:elbow_ball", "arm:hand"}
    assert geometries["base"].pose.point() == pytest.approx([1.0, 1.0, 0.0])
    assert geometries["arm:hand"].pose.point() == pytest.approx([3.0, 1.0, 0.0])
    assert sf.geometries([1.0, 1.0, 0.0, 0.0]).parent == "world"
