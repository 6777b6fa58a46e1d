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

"""Planning requests and the entry points that turn them into plans."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
import threading
from typing import TYPE_CHECKING, Any

from kinoplan.motionplan.constraint import (
    DEFAULT_COLLISION_CONSTRAINT_NAME,
    DEFAULT_LINEAR_CONSTRAINT_NAME,
    DEFAULT_ORIENTATION_CONSTRAINT_NAME,
    ConstraintHandler,
    collision_specifications_from_pairs,
    new_absolute_linear_interpolating_constraint,
    new_collision_constraint_from_world_state,
    new_slerp_orientation_constraint,
)
from kinoplan.motionplan.errors import ReplanCostExceededError
from kinoplan.motionplan.solver_frame import SolverFrame
from kinoplan.motionplan.spec import (
    Constraints,
    IKOptions,
    PlannerOptions,
    PlanningStatus,
)
from kinoplan.referenceframe import Frame, PoseInFrame
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from kinoplan.motionplan.plan import Plan
    from kinoplan.referenceframe import FrameSystem, InputMap, WorldState

logger = setup_logger()

DEFAULT_LINE_TOLERANCE_M = 0.001
DEFAULT_ORIENTATION_TOLERANCE_DEGS = 2.0


@dataclass
class PlanRequest:
    """Everything needed to plan one motion.

    Attributes:
        goal: Target pose of ``frame``, in the coordinates of ``goal.parent``
        frame: The moving frame (or its name) inside ``fs``
        fs: Frame system containing ``frame`` and the goal's frame
        start_inputs: Current inputs for the frame system
        world_state: Obstacles and interaction spaces, if any
        constraints: Linear, orientation and allowed-collision specifications
        options: Planner options
        ik_options: IK options; its constraint handler is replaced by the planner's
        planner: Planner name, see ``kinoplan.motionplan.factory.create_planner``
        logger: structlog logger; ``setup_logger()`` when omitted
    """

    goal: PoseInFrame
    frame: str | Frame
    fs: FrameSystem
    start_inputs: InputMap
    world_state: WorldState | None = None
    constraints: Constraints = field(default_factory=Constraints)
    options: PlannerOptions = field(default_factory=PlannerOptions)
    ik_options: IKOptions = field(default_factory=IKOptions)
    planner: str = "cbirrt"
    logger: Any = None

    @property
    def frame_name(self) -> str:
        return self.frame.name if isinstance(self.frame, Frame) else self.frame

    def solver_frame(self) -> SolverFrame:
        return SolverFrame(
            f"{self.frame_name}_solver",
            self.fs,
            self.frame_name,
            self.goal.parent,
            self.start_inputs,
        )


def build_constraint_handler(
    request: PlanRequest, solver_frame: SolverFrame, seed: list[float]
) -> ConstraintHandler:
    """Collision, linear and orientation constraints for a request.

    Collision uses the start configuration as the observation, so contacts
    present at the start are tolerated throughout the plan.
    """
    handler = ConstraintHandler()
    allowed = collision_specifications_from_pairs(request.constraints.allowed_pairs())
    handler.add_state_constraint(
        DEFAULT_COLLISION_CONSTRAINT_NAME,
        new_collision_constraint_from_world_state(
            solver_frame,
            request.fs,
            request.world_state,
            solver_frame.slice_to_map(seed),
            allowed,
        ),
    )

    start_pose = solver_frame.transform(seed)
    goal_pose = request.goal.pose
    for i, linear in enumerate(request.constraints.linear_constraint):
        line_tolerance = linear.line_tolerance_m or DEFAULT_LINE_TOLERANCE_M
        orientation_tolerance = math.radians(
            linear.orientation_tolerance_degs or DEFAULT_ORIENTATION_TOLERANCE_DEGS
        )
        constraint, metric = new_absolute_linear_interpolating_constraint(
            start_pose, goal_pose, line_tolerance, orientation_tolerance
        )
        handler.add_state_constraint(f"{DEFAULT_LINEAR_CONSTRAINT_NAME}_{i}", constraint, metric)

    for i, orientation in enumerate(request.constraints.orientation_constraint):
        tolerance = math.radians(
            orientation.orientation_tolerance_degs or DEFAULT_ORIENTATION_TOLERANCE_DEGS
        )
        constraint, metric = new_slerp_orientation_constraint(start_pose, goal_pose, tolerance)
        handler.add_state_constraint(
            f"{DEFAULT_ORIENTATION_CONSTRAINT_NAME}_{i}", constraint, metric
        )
    return handler


def plan_motion(request: PlanRequest, cancel_event: threading.Event | None = None) -> Plan:
    """Plan with the planner the request names.

    Raises:
        IKSolveError: The goal pose has no acceptable IK solution
        PlannerFailedError: Search failed, timed out or was cancelled
    """
    from kinoplan.motionplan.factory import create_planner

    log = request.logger or logger
    planner = create_planner(request.planner, logger=log)
    log.info(
        "planning", frame=request.frame_name, goal=str(request.goal.pose), planner=request.planner
    )
    plan = planner.plan(request, cancel_event)
    log.info("planned", frame=request.frame_name, waypoints=len(plan), cost=plan.cost())
    return plan


def replan(
    request: PlanRequest,
    seed_plan: Plan | None = None,
    cost_factor: float = 0.0,
    cancel_event: threading.Event | None = None,
) -> Plan:
    """Plan again, optionally refusing plans much costlier than ``seed_plan``.

    With a positive ``cost_factor`` and a seed plan, a new plan whose cost
    exceeds ``cost_factor * seed_plan.cost()`` is rejected. The random seed
    is advanced so a replan explores differently from the previous attempt.

    Raises:
        ReplanCostExceededError: The new plan is too expensive
    """
    options = replace(request.options, rand_seed=request.options.rand_seed + 1)
    plan = plan_motion(replace(request, options=options), cancel_event)
    if seed_plan is None or cost_factor <= 0:
        return plan

    limit = cost_factor * seed_plan.cost()
    cost = plan.cost()
    if cost > limit:
        raise ReplanCostExceededError(PlanningStatus.COST_EXCEEDED, cost, limit)
    return plan
