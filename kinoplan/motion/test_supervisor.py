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

import pytest

from kinoplan.motion.configuration import MotionConfiguration, ObstacleDetectorName
from kinoplan.motion.errors import MotionCancelledError, MotionConfigurationError
from kinoplan.motion.fakes import FakeActuator, FakeObstacleDetector
from kinoplan.motion.supervisor import MotionState, MotionSupervisor
from kinoplan.motionplan.errors import IKSolveError, ReplanBudgetExceededError
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import PoseInFrame
from kinoplan.spatialmath import Sphere

FRONT_CAMERA = [ObstacleDetectorName(vision_service="vision", camera="front")]


def goal(x: float, y: float = 0.0) -> PoseInFrame:
    return PoseInFrame("world", Pose(x, y, 0.0))


def record(supervisor: MotionSupervisor) -> list[MotionState]:
    states: list[MotionState] = []
    supervisor.state_changes.subscribe(states.append)
    return states


def test_move_succeeds(base, yard):
    actuator = FakeActuator(base, yard)
    supervisor = MotionSupervisor(actuator, yard)
    states = record(supervisor)

    plan = supervisor.move(goal(3.0, 1.0))

    assert states == [MotionState.PLANNING, MotionState.EXECUTING, MotionState.SUCCEEDED]
    assert supervisor.state is MotionState.SUCCEEDED
    assert actuator.current_inputs() == pytest.approx([3.0, 1.0], abs=1e-3)
    assert plan[-1]["base"] == pytest.approx([3.0, 1.0], abs=1e-3)


def test_replans_around_detected_obstacle(base, yard):
    actuator = FakeActuator(base, yard, speed=3.0)
    detector = FakeObstacleDetector(
        "vision", [Sphere(Pose(1.5, 0.0, 0.0), 0.2, "crate")], actuator.current_pose
    )
    supervisor = MotionSupervisor(actuator, yard, {"vision": detector})
    states = record(supervisor)

    supervisor.move(
        goal(3.0),
        motion_configuration=MotionConfiguration(
            obstacle_detectors=FRONT_CAMERA, obstacle_polling_freq_hz=20.0
        ),
    )

    assert MotionState.OBSTACLE_DETECTED in states
    assert MotionState.REPLANNING in states
    assert states[-1] is MotionState.SUCCEEDED
    assert actuator.current_inputs() == pytest.approx([3.0, 0.0], abs=1e-3)


def test_replan_budget(base, yard):
    actuator = FakeActuator(base, yard, drift=Pose(0.0, 1.0, 0.0))
    supervisor = MotionSupervisor(actuator, yard)
    states = record(supervisor)

    with pytest.raises(ReplanBudgetExceededError) as exc_info:
        supervisor.move(
            goal(2.0),
            motion_configuration=MotionConfiguration(
                plan_deviation_m=0.1, position_polling_freq_hz=20.0, max_replans=2
            ),
        )

    assert exc_info.value.max_replans == 2
    assert states.count(MotionState.DEVIATED) == 3
    assert states.count(MotionState.REPLANNING) == 2
    assert states[-1] is MotionState.FAILED


def test_cancel(base, yard):
    actuator = FakeActuator(base, yard, speed=0.5)
    supervisor = MotionSupervisor(actuator, yard)
    executing = threading.Event()
    supervisor.state_changes.subscribe(
        lambda state: executing.set() if state is MotionState.EXECUTING else None
    )
    errors: list[BaseException] = []

    def run() -> None:
        try:
            supervisor.move(goal(3.0))
        except MotionCancelledError as e:
            errors.append(e)

    thread = threading.Thread(target=run, name="move")
    thread.start()
    assert executing.wait(timeout=30.0)
    supervisor.cancel()
    thread.join(timeout=5.0)

    assert not thread.is_alive()
    assert len(errors) == 1
    assert supervisor.state is MotionState.CANCELLED
    assert actuator.stop_calls == 1
    assert actuator.current_inputs()[0] < 3.0


def test_unknown_detector(base, yard):
    supervisor = MotionSupervisor(FakeActuator(base, yard), yard)
    states = record(supervisor)

    with pytest.raises(MotionConfigurationError, match="unknown obstacle detector: vision"):
        supervisor.move(
            goal(1.0), motion_configuration=MotionConfiguration(obstacle_detectors=FRONT_CAMERA)
        )
    assert states == []
    assert supervisor.state is MotionState.IDLE


def test_invalid_configuration(base, yard):
    supervisor = MotionSupervisor(FakeActuator(base, yard), yard)

    with pytest.raises(MotionConfigurationError):
        supervisor.move(goal(1.0), motion_configuration=MotionConfiguration(plan_deviation_m=-1))
    assert supervisor.state is MotionState.IDLE


def test_unreachable_goal_fails(base, yard):
    supervisor = MotionSupervisor(FakeActuator(base, yard), yard)
    states = record(supervisor)

    with pytest.raises(IKSolveError):
        supervisor.move(goal(20.0))
    assert states[-1] is MotionState.FAILED
