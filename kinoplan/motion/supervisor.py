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

from collections.abc import Mapping
from enum import Enum
import threading
from typing import TYPE_CHECKING, Any

from reactivex import Subject

from kinoplan.core.global_config import GlobalConfig, global_config
from kinoplan.motion.configuration import MotionConfiguration, ValidatedMotionConfiguration
from kinoplan.motion.errors import MotionCancelledError, MotionConfigurationError
from kinoplan.motion.move_request import MoveRequest, ObstacleDetectorBinding
from kinoplan.motion.state import ReplanCause
from kinoplan.motionplan.errors import PlannerFailedError, ReplanBudgetExceededError
from kinoplan.motionplan.planning import PlanRequest
from kinoplan.motionplan.spec import Constraints, PlannerOptions, PlanningStatus
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from kinoplan.motion.protocols import Actuator, ObstacleDetector
    from kinoplan.motionplan.plan import Plan
    from kinoplan.msgs.geometry_msgs import Pose
    from kinoplan.referenceframe import FrameSystem, PoseInFrame, WorldState


class MotionState(Enum):
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    DEVIATED = "deviated"
    OBSTACLE_DETECTED = "obstacle_detected"
    REPLANNING = "replanning"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


_ACTIVE_STATES = {
    MotionState.PLANNING,
    MotionState.EXECUTING,
    MotionState.DEVIATED,
    MotionState.OBSTACLE_DETECTED,
    MotionState.REPLANNING,
}


class MotionSupervisor:
    """Plans, executes and replans moves of one actuator.

    Every state change is published on ``state_changes``. One move runs at a
    time; :meth:`cancel` aborts it from any thread.
    """

    state_changes: Subject[MotionState]

    def __init__(
        self,
        actuator: Actuator,
        fs: FrameSystem,
        detectors: Mapping[str, ObstacleDetector] | None = None,
        config: GlobalConfig = global_config,
        logger: Any = None,
    ) -> None:
        self.state_changes = Subject()
        self._actuator = actuator
        self._fs = fs
        self._detectors = dict(detectors or {})
        self._global_config = config
        self._logger = logger or setup_logger()
        self._lock = threading.RLock()
        self._state = MotionState.IDLE
        self._cancel_event = threading.Event()

    @property
    def state(self) -> MotionState:
        with self._lock:
            return self._state

    def _change_state(self, new_state: MotionState) -> None:
        with self._lock:
            self._state = new_state
        self._logger.info("changed state", state=new_state.value)
        self.state_changes.on_next(new_state)

    def cancel(self) -> None:
        self._cancel_event.set()

    def _bind_detectors(
        self, config: ValidatedMotionConfiguration
    ) -> list[ObstacleDetectorBinding]:
        cameras: dict[str, list[str]] = {}
        for detector_name in config.obstacle_detectors:
            if detector_name.vision_service not in self._detectors:
                raise MotionConfigurationError(
                    f"unknown obstacle detector: {detector_name.vision_service}. "
                    f"Available: {sorted(self._detectors)}"
                )
            cameras.setdefault(detector_name.vision_service, []).append(detector_name.camera)
        return [(self._detectors[name], names) for name, names in cameras.items()]

    def move(
        self,
        goal: PoseInFrame,
        world_state: WorldState | None = None,
        constraints: Constraints | None = None,
        motion_configuration: MotionConfiguration | None = None,
        options: PlannerOptions | None = None,
        pose_origin: Pose | None = None,
        replan_cost_factor: float = 0.0,
    ) -> Plan:
        """Move the actuator to ``goal``, replanning on deviation or new obstacles.

        Returns the plan that was executed to completion.

        Raises:
            MotionConfigurationError: Invalid configuration or unknown detector
            IKSolveError, PlannerFailedError: No plan could be made
            ReplanBudgetExceededError: More replans were needed than allowed
            MotionCancelledError: :meth:`cancel` was called
            StopFailedError, ActuationError, DetectorError: Execution faults
        """
        with self._lock:
            if self._state in _ACTIVE_STATES:
                raise RuntimeError(f"a move is already running ({self._state.value})")
            self._cancel_event = threading.Event()
            cancel_event = self._cancel_event

        config = (motion_configuration or MotionConfiguration()).validate_for_execution(
            self._global_config
        )
        request = PlanRequest(
            goal,
            self._actuator.kinematics(),
            self._fs,
            self._fs.start_positions(),
            world_state,
            constraints or Constraints(),
            options or PlannerOptions(),
            logger=self._logger,
        )
        move_request = MoveRequest(
            self._actuator,
            request,
            config,
            self._bind_detectors(config),
            pose_origin,
            replan_cost_factor,
            self._logger,
        )

        try:
            self._change_state(MotionState.PLANNING)
            plan = move_request.plan(cancel_event)
            replans = 0
            while True:
                self._change_state(MotionState.EXECUTING)
                response = move_request.execute(plan, cancel_event)
                if not response.replan:
                    self._change_state(MotionState.SUCCEEDED)
                    return plan

                if response.cause is ReplanCause.OBSTACLE:
                    self._change_state(MotionState.OBSTACLE_DETECTED)
                else:
                    self._change_state(MotionState.DEVIATED)
                replans += 1
                if not config.unbounded_replans and replans > config.max_replans:
                    raise ReplanBudgetExceededError(config.max_replans)

                self._logger.info("replanning", reason=response.reason, attempt=replans)
                self._change_state(MotionState.REPLANNING)
                plan = move_request.plan(cancel_event)
        except MotionCancelledError:
            self._change_state(MotionState.CANCELLED)
            raise
        except Exception as e:
            if cancel_event.is_set():
                self._change_state(MotionState.CANCELLED)
                if _is_cancellation(e):
                    raise MotionCancelledError() from e
                raise
            self._change_state(MotionState.FAILED)
            raise


def _is_cancellation(error: BaseException) -> bool:
    return isinstance(error, PlannerFailedError) and error.status is PlanningStatus.CANCELLED
