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

"""One plan-and-execute cycle against an actuator.

A :class:`MoveRequest` plans from the actuator's sensed configuration, then
executes the plan with three workers: the actuation loop, which drives the
actuator waypoint by waypoint, and two pollers, one comparing the sensed
pose with the plan and one re-checking the rest of the plan against freshly
detected obstacles. The first worker to respond decides the outcome; the
others are stopped and joined before :meth:`MoveRequest.execute` returns.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
import queue
import threading
from typing import TYPE_CHECKING, Any

import numpy as np

from kinoplan.constants import WORLD
from kinoplan.motion.errors import (
    ActuationError,
    DetectorError,
    MotionCancelledError,
    StopFailedError,
)
from kinoplan.motion.replanner import Replanner
from kinoplan.motion.state import (
    ExecuteResponse,
    MoveResponse,
    ReplanCause,
    WaitGroup,
    WaypointIndex,
)
from kinoplan.motionplan.errors import PlanCollisionError
from kinoplan.motionplan.plan import Plan, check_plan
from kinoplan.motionplan.planning import PlanRequest, replan
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import (
    FrameError,
    FrameSystem,
    GeometriesInFrame,
    InputMap,
    WorldState,
)
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from kinoplan.motion.configuration import ValidatedMotionConfiguration
    from kinoplan.motion.protocols import Actuator, ObstacleDetector
    from kinoplan.spatialmath import Geometry

# How far along the remaining plan newly detected obstacles are looked for.
LOOK_AHEAD_DISTANCE_M = 5.0
LISTEN_POLL_INTERVAL = 0.05
TRANSIENT_OBSTACLE_INFIX = "_transientObstacle_"

ObstacleDetectorBinding = tuple["ObstacleDetector", Sequence[str]]


class MoveRequest:
    def __init__(
        self,
        actuator: Actuator,
        plan_request: PlanRequest,
        config: ValidatedMotionConfiguration,
        obstacle_detectors: Sequence[ObstacleDetectorBinding] = (),
        pose_origin: Pose | None = None,
        replan_cost_factor: float = 0.0,
        logger: Any = None,
    ) -> None:
        """
        Args:
            actuator: Drives the frame named by ``plan_request.frame``
            plan_request: Goal, frame system, static obstacles and options;
                its start inputs are refreshed from the actuator on every plan
            config: Validated motion configuration
            obstacle_detectors: Detectors, each with the cameras to query it with
            pose_origin: Pose prepended to every plan pose
            replan_cost_factor: When positive, a new plan costing more than this
                factor times the previous plan is rejected
            logger: structlog logger
        """
        self._actuator = actuator
        self._plan_request = plan_request
        self._frame_system = plan_request.fs.frame_system_subset(plan_request.frame_name)
        self._config = config
        self._obstacle_detectors = list(obstacle_detectors)
        self._pose_origin = pose_origin or Pose()
        self._replan_cost_factor = replan_cost_factor
        self._logger = logger or setup_logger()

        self._seed_plan: Plan | None = None
        self._transient_lock = threading.Lock()
        self._transient_obstacles: dict[str, list[Geometry]] = {}

        self.waypoint_index = WaypointIndex()
        self._position = Replanner(
            "position", config.position_polling_freq_hz, self.deviated_from_plan, self._logger
        )
        self._obstacle = Replanner(
            "obstacle", config.obstacle_polling_freq_hz, self.obstacles_intersect_plan, self._logger
        )

    @property
    def config(self) -> ValidatedMotionConfiguration:
        return self._config

    @property
    def plan_request(self) -> PlanRequest:
        return self._plan_request

    @property
    def frame_system(self) -> FrameSystem:
        """The actuated frame and its ancestors; plans are made over this system."""
        return self._frame_system

    # ============= Planning =============

    def current_input_map(self) -> InputMap:
        inputs = self._plan_request.fs.start_positions()
        inputs[self._actuator.name] = list(self._actuator.current_inputs())
        return inputs

    def transient_obstacles(self) -> list[Geometry]:
        """Obstacles from the latest detection of every camera, in world coordinates."""
        with self._transient_lock:
            return [g for geometries in self._transient_obstacles.values() for g in geometries]

    def plan(self, cancel_event: threading.Event | None = None) -> Plan:
        """Plan over :attr:`frame_system` from the actuator's current configuration.

        Obstacles detected while executing earlier plans are planned around
        along with the request's own obstacles. A goal or obstacles given in
        frames outside the subset are first re-expressed in world coordinates
        at the current inputs.
        """
        inputs = self.current_input_map()
        goal = self._plan_request.goal
        if goal.parent != WORLD and not self._frame_system.has_frame(goal.parent):
            goal = self._plan_request.fs.transform(inputs, goal, WORLD)
        request = replace(
            self._plan_request,
            goal=goal,
            fs=self._frame_system,
            start_inputs=inputs,
            world_state=self._world_state_with_detections(inputs),
        )
        plan = replan(request, self._seed_plan, self._replan_cost_factor, cancel_event)
        self._seed_plan = plan
        return plan.offset(self._pose_origin)

    def _world_state_with_detections(self, inputs: InputMap) -> WorldState | None:
        static = self._plan_request.world_state
        transient = self.transient_obstacles()
        if static is None:
            return WorldState([GeometriesInFrame(WORLD, transient)]) if transient else None
        world = static.to_world_frame(self._plan_request.fs, inputs)
        if not transient:
            return world
        return WorldState(
            [*world.obstacles, GeometriesInFrame(WORLD, transient)], world.interaction_spaces
        )

    # ============= Execution =============

    def execute(self, plan: Plan, cancel_event: threading.Event | None = None) -> ExecuteResponse:
        """Follow ``plan`` until it is done, a poller asks for a replan, or a worker fails.

        Raises:
            MotionCancelledError: ``cancel_event`` was set
            StopFailedError: Stopping the actuator failed; wraps the error
                that caused the stop
            ActuationError, DetectorError: Propagated from the workers
        """
        self.waypoint_index.reset()
        self._actuator.configure(self._config.kinematic_options())

        stop_event = threading.Event()
        responses: queue.Queue[MoveResponse] = queue.Queue()
        workers = WaitGroup()
        workers.go(
            self._position.start_polling, stop_event, plan, self.waypoint_index, responses,
            name="position-poller",
        )
        workers.go(
            self._obstacle.start_polling, stop_event, plan, self.waypoint_index, responses,
            name="obstacle-poller",
        )
        workers.go(self._run_actuation, stop_event, plan, responses, name="actuation")

        try:
            first = self._listen(responses, cancel_event)
        finally:
            stop_event.set()
            workers.wait()

        stop_failure = _pending_stop_failure(responses)
        if first is None:
            if stop_failure is not None:
                raise stop_failure
            raise MotionCancelledError()
        if first.error is not None:
            if stop_failure is not None:
                raise StopFailedError(first.error, stop_failure.stop_error) from first.error
            raise first.error
        if stop_failure is not None:
            raise stop_failure
        return first.response

    def _listen(
        self, responses: queue.Queue[MoveResponse], cancel_event: threading.Event | None
    ) -> MoveResponse | None:
        while cancel_event is None or not cancel_event.is_set():
            try:
                response = responses.get(timeout=LISTEN_POLL_INTERVAL)
            except queue.Empty:
                continue
            self._logger.debug(
                "execution response",
                source=response.source,
                replan=response.response.replan,
                error=str(response.error) if response.error else None,
            )
            return response
        self._logger.debug("execution cancelled")
        return None

    def _run_actuation(
        self, stop_event: threading.Event, plan: Plan, responses: queue.Queue[MoveResponse]
    ) -> None:
        try:
            response = self._execute_waypoints(stop_event, plan)
        except Exception as e:
            responses.put(MoveResponse("actuation", error=e))
            return
        if response is not None:
            responses.put(MoveResponse("actuation", response))

    def _execute_waypoints(self, stop_event: threading.Event, plan: Plan) -> ExecuteResponse | None:
        name = self._actuator.name
        waypoints = plan.frame_path(name)
        if len(waypoints) != len(plan):
            raise ActuationError(f"plan has no inputs for {name} at every waypoint")

        for i in range(self.waypoint_index.get(), len(waypoints)):
            if stop_event.is_set():
                break
            self._logger.info("going to waypoint", actuator=name, waypoint=i, inputs=waypoints[i])
            try:
                self._actuator.go_to_inputs(waypoints[i], stop_event)
            except Exception as e:
                self._logger.debug("stopping actuator", actuator=name, reason=str(e))
                self._stop(e)
                raise
            if stop_event.is_set():
                break
            if i < len(waypoints) - 1:
                self.waypoint_index.increment()
        else:
            # the whole plan has run; check the end is close enough to the goal
            return self.deviated_from_plan(plan, len(waypoints) - 1)

        self._logger.debug("stopping actuator", actuator=name, reason="cancelled")
        self._stop(MotionCancelledError())
        return None

    def _stop(self, original: BaseException) -> None:
        """Stop the actuator, waiting at most the stop timeout.

        Raises:
            StopFailedError: The stop raised or did not return in time
        """
        timeout = self._config.stop_timeout
        errors: list[BaseException] = []

        def run() -> None:
            try:
                self._actuator.stop(timeout)
            except Exception as e:
                errors.append(e)

        thread = threading.Thread(target=run, name=f"{self._actuator.name}-stop", daemon=True)
        thread.start()
        thread.join(timeout)
        if thread.is_alive():
            stop_error: BaseException = TimeoutError(f"stop did not return within {timeout} s")
        elif errors:
            stop_error = errors[0]
        else:
            return
        self._logger.error(
            "actuator stop failed", actuator=self._actuator.name, error=str(stop_error)
        )
        raise StopFailedError(original, stop_error) from stop_error

    # ============= Checks =============

    def deviated_from_plan(self, plan: Plan, index: int) -> ExecuteResponse:
        """Ask for a replan when the sensed pose strays too far from waypoint ``index``."""
        error_state = self._actuator.error_state(plan, index)
        deviation = float(np.linalg.norm(error_state.point()))
        if deviation > self._config.plan_deviation_m:
            reason = (
                f"error state exceeds plan deviation; plan_deviation_m: "
                f"{self._config.plan_deviation_m:.3f}, deviation: {deviation:.3f}, "
                f"error: {error_state.point().tolist()}"
            )
            return ExecuteResponse(True, reason, ReplanCause.DEVIATION)
        return ExecuteResponse()

    def obstacles_intersect_plan(self, plan: Plan, index: int) -> ExecuteResponse:
        """Ask for a replan when a detected obstacle lies on the rest of the plan.

        The world is rebuilt from each camera's detections alone; every
        obstacle the request knows about is expected to be seen again.
        """
        fs = self._frame_system
        for detector, cameras in self._obstacle_detectors:
            for camera in cameras:
                self._logger.debug("getting detections", detector=detector.name, camera=camera)
                try:
                    detections = detector.detect_objects(camera)
                except DetectorError:
                    raise
                except Exception as e:
                    raise DetectorError(f"{detector.name} ({camera}): {e}") from e

                current_pose = self._actuator.current_pose()
                inputs = self.current_input_map()
                base_to_camera = self._camera_pose(camera, inputs)

                geometries = []
                for i, detection in enumerate(detections):
                    geometry = detection.transform(base_to_camera).transform(current_pose)
                    label = f"{camera}{TRANSIENT_OBSTACLE_INFIX}{i}"
                    if detection.label:
                        label += f"_{detection.label}"
                    geometries.append(geometry.with_label(label))
                with self._transient_lock:
                    self._transient_obstacles[camera] = geometries
                world_state = WorldState([GeometriesInFrame(WORLD, geometries)])

                error_state = self._actuator.error_state(plan, index)
                try:
                    check_plan(
                        self._actuator.kinematics(),
                        plan.remaining(index),
                        world_state,
                        fs,
                        current_pose,
                        inputs,
                        error_state,
                        LOOK_AHEAD_DISTANCE_M,
                    )
                except PlanCollisionError as e:
                    self._logger.info(
                        "obstacle intersects plan", camera=camera, obstacles=e.obstacle_names()
                    )
                    return ExecuteResponse(True, str(e), ReplanCause.OBSTACLE)
        return ExecuteResponse()

    def _camera_pose(self, camera: str, inputs: InputMap) -> Pose:
        """Pose of ``camera`` in the actuated frame."""
        try:
            return self._plan_request.fs.transform_frame(inputs, camera, self._actuator.name).pose
        except FrameError as e:
            self._logger.debug(
                "assuming camera is coincident with the actuated frame",
                camera=camera,
                actuator=self._actuator.name,
                error=str(e),
            )
            return Pose()


def _pending_stop_failure(responses: queue.Queue[MoveResponse]) -> StopFailedError | None:
    while True:
        try:
            response = responses.get_nowait()
        except queue.Empty:
            return None
        if isinstance(response.error, StopFailedError):
            return response.error
