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

import threading

import numpy as np
import pytest

from kinoplan.motionplan.constraint import ConstraintHandler, new_obstacle_constraint
from kinoplan.motionplan.errors import IKSolveError, PlannerFailedError
from kinoplan.motionplan.planners import CBiRRTPlanner, TreeNode
from kinoplan.motionplan.planning import PlanRequest
from kinoplan.motionplan.solver_frame import SolverFrame
from kinoplan.motionplan.spec import PlannerOptions, PlanningStatus, SegmentInput, StateInput
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import (
    FrameSystem,
    GeometriesInFrame,
    Limit,
    Mobile2DFrame,
    PoseInFrame,
    WorldState,
)
from kinoplan.spatialmath import Box, Sphere


@pytest.fixture
def base_fs() -> FrameSystem:
    fs = FrameSystem("yard")
    fs.add_frame(
        Mobile2DFrame("base", [Limit(-5, 5), Limit(-5, 5)], [Sphere(Pose(), 0.2, "body")]),
        "world",
    )
    return fs


@pytest.fixture
def wall() -> WorldState:
    wall = Box(Pose(2.0, 0.0, 0.0), (0.5, 2.0, 1.0), "wall")
    return WorldState([GeometriesInFrame("world", [wall])])


def base_request(fs, world_state=None, **options) -> PlanRequest:
    return PlanRequest(
        goal=PoseInFrame("world", Pose(4.0, 0.0, 0.0)),
        frame="base",
        fs=fs,
        start_inputs={"base": [0.0, 0.0]},
        world_state=world_state,
        options=PlannerOptions(step_size=0.5, resolution=0.05, **options),
    )


def assert_collision_free(plan, fs, world_state):
    sf = SolverFrame("check", fs, "base")
    handler = ConstraintHandler()
    handler.add_state_constraint(
        "obstacles", new_obstacle_constraint(sf, fs, world_state, {"base": [0.0, 0.0]})
    )
    path = [sf.map_to_slice(w) for w in plan]
    for start, end in zip(path, path[1:]):
        ok, _ = handler.check_segment_and_state_validity(SegmentInput(start, end, sf), 0.05)
        assert ok


def test_tree_node_path_to_root():
    root = TreeNode(config=[0.0])
    child = TreeNode(config=[1.0], parent=root)
    leaf = TreeNode(config=[2.0], parent=child)
    assert leaf.path_to_root() == [[0.0], [1.0], [2.0]]


class TestCBiRRTPlanner:
    def test_direct_path(self, base_fs):
        plan = CBiRRTPlanner().plan(base_request(base_fs))
        assert len(plan) == 2
        assert plan[0]["base"] == pytest.approx([0.0, 0.0])
        assert plan[-1]["base"] == pytest.approx([4.0, 0.0], abs=1e-3)
        assert plan.poses[-1].point() == pytest.approx([4.0, 0.0, 0.0], abs=1e-3)

    def test_path_around_wall(self, base_fs, wall):
        plan = CBiRRTPlanner().plan(base_request(base_fs, wall))
        assert len(plan) > 2
        assert plan[-1]["base"] == pytest.approx([4.0, 0.0], abs=1e-3)
        assert_collision_free(plan, base_fs, wall)

    def test_deterministic_for_fixed_seed(self, base_fs, wall):
        first = CBiRRTPlanner().plan(base_request(base_fs, wall, rand_seed=7))
        second = CBiRRTPlanner().plan(base_request(base_fs, wall, rand_seed=7))
        assert first.waypoints == second.waypoints

    def test_iteration_budget(self, base_fs, wall):
        with pytest.raises(PlannerFailedError) as exc_info:
            CBiRRTPlanner().plan(base_request(base_fs, wall, max_iterations=0))
        assert exc_info.value.status == PlanningStatus.NO_SOLUTION

    def test_timeout(self, base_fs, wall):
        with pytest.raises(PlannerFailedError) as exc_info:
            CBiRRTPlanner().plan(base_request(base_fs, wall, timeout=-1.0))
        assert exc_info.value.status == PlanningStatus.TIMEOUT

    def test_cancelled(self, base_fs, wall):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(PlannerFailedError) as exc_info:
            CBiRRTPlanner().plan(base_request(base_fs, wall), cancel)
        assert exc_info.value.status == PlanningStatus.CANCELLED

    def test_goal_inside_obstacle(self, base_fs):
        world = WorldState([GeometriesInFrame("world", [Sphere(Pose(4.0, 0.0, 0.0), 0.5, "rock")])])
        request = base_request(base_fs, world)
        request.ik_options.restarts = 3
        with pytest.raises(IKSolveError):
            CBiRRTPlanner().plan(request)


class TestPlanPath:
    def test_blocked_corridor(self, slider):
        fs = FrameSystem("rail")
        fs.add_frame(slider, "world")
        sf = SolverFrame("rail_solver", fs, "slider")
        handler = ConstraintHandler()
        handler.add_state_constraint("gap", lambda state: not 0.4 < state.resolve().x < 0.6)
        options = PlannerOptions(max_iterations=20, resolution=0.01)
        with pytest.raises(PlannerFailedError) as exc_info:
            CBiRRTPlanner().plan_path(sf, handler, [0.0], [[1.0]], options)
        assert exc_info.value.status == PlanningStatus.NO_SOLUTION
        assert exc_info.value.iterations == 20

    def test_no_goals(self, slider):
        fs = FrameSystem("rail")
        fs.add_frame(slider, "world")
        sf = SolverFrame("rail_solver", fs, "slider")
        with pytest.raises(PlannerFailedError) as exc_info:
            CBiRRTPlanner().plan_path(sf, ConstraintHandler(), [0.0], [])
        assert exc_info.value.status == PlanningStatus.NO_IK_SOLUTION

    def test_picks_reachable_goal(self, slider):
        fs = FrameSystem("rail")
        fs.add_frame(slider, "world")
        sf = SolverFrame("rail_solver", fs, "slider")
        handler = ConstraintHandler()
        handler.add_state_constraint("gap", lambda state: not 0.4 < state.resolve().x < 0.6)
        path = CBiRRTPlanner().plan_path(sf, handler, [0.0], [[1.0], [-1.0]])
        assert path == [[0.0], [-1.0]]
        assert handler.check_state_constraints(StateInput(path[-1], sf)) == (True, "")


class TestEdgeValidity:
    def test_rejects_edge_leaving_pose_constraint_in_cartesian_space(self, wand, ring_handler):
        fs = FrameSystem("wand_world")
        fs.add_frame(wand, "world")
        sf = SolverFrame("wand_solver", fs, "wand")
        planner = CBiRRTPlanner()
        assert not planner._edge_valid(sf, ring_handler, np.array([-1.2]), np.array([1.2]), 0.05)
        assert planner._edge_valid(sf, ring_handler, np.array([-0.05]), np.array([0.05]), 0.01)

    def test_extend_stops_at_cartesian_violation(self, wand, ring_handler):
        fs = FrameSystem("wand_world")
        fs.add_frame(wand, "world")
        sf = SolverFrame("wand_solver", fs, "wand")
        tree = [TreeNode(config=np.array([-1.2]))]
        options = PlannerOptions(step_size=3.0, resolution=0.05)
        node = CBiRRTPlanner()._extend_tree(sf, ring_handler, tree, np.array([1.2]), options)
        assert node is None
        assert len(tree) == 1
