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

"""Choosing an IK solver and ranking the solutions it produces."""

from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING, Any

from kinoplan.constants import WORLD
from kinoplan.motionplan.constraint import (
    DEFAULT_COLLISION_CONSTRAINT_NAME,
    new_collision_constraint_from_world_state,
)
from kinoplan.motionplan.errors import IKSolveError, PlannerFailedError
from kinoplan.motionplan.kinematics.ensemble_ik import EnsembleIKSolver
from kinoplan.motionplan.kinematics.numerical_ik import NumericalIKSolver
from kinoplan.motionplan.solver_frame import SolverFrame
from kinoplan.motionplan.spec import (
    IKOptions,
    InverseKinematicsSolver,
    PlanningStatus,
    SegmentInput,
    StateInput,
)
from kinoplan.referenceframe import FrameSystem, input_distance
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from kinoplan.msgs.geometry_msgs import Pose
    from kinoplan.referenceframe import Frame, WorldState

logger = setup_logger()

SOLUTION_POLL_INTERVAL = 0.01


def new_ik_solver(
    frame: Frame, options: IKOptions | None = None, logger: Any = None
) -> InverseKinematicsSolver:
    """A single solver when ``options.parallelism`` is at most 1, an ensemble otherwise."""
    options = options or IKOptions()
    if options.parallelism <= 1:
        return NumericalIKSolver(frame, options, logger)
    return EnsembleIKSolver(frame, options, logger)


def _collision_context(
    frame: Frame, seed: list[float]
) -> tuple[FrameSystem, dict[str, list[float]]]:
    if isinstance(frame, SolverFrame):
        return frame.fs, frame.slice_to_map(seed)
    fs = FrameSystem("temp")
    fs.add_frame(frame, WORLD)
    return fs, {frame.name: list(seed)}


def best_ik_solutions(
    solver: InverseKinematicsSolver,
    goal: Pose,
    seed: list[float],
    world_state: WorldState | None = None,
    rand_seed: int = 0,
    n_solutions: int = 1,
    cancel_event: threading.Event | None = None,
) -> list[list[float]]:
    """Up to ``n_solutions`` configurations reaching ``goal``, best first.

    Each candidate must pass the segment constraints from ``seed`` and the
    state constraints at the candidate itself. While solving, a collision
    constraint built from ``world_state`` is installed on the solver's
    constraint handler under ``DEFAULT_COLLISION_CONSTRAINT_NAME``. Scores
    are the joint-space distance from ``seed`` plus the state constraint
    metrics; ties keep arrival order.

    Raises:
        IKSolveError: No candidate was accepted
        PlannerFailedError: ``cancel_event`` was set while solving
    """
    frame = solver.frame()
    options = solver.options()
    handler = options.constraints
    seed = list(seed)
    seed_pose = frame.transform(seed)

    if world_state is not None:
        fs, observation_inputs = _collision_context(frame, seed)
        collision = new_collision_constraint_from_world_state(
            frame, fs, world_state, observation_inputs
        )
        with handler.scoped_state_constraint(DEFAULT_COLLISION_CONSTRAINT_NAME, collision):
            return _collect_solutions(
                solver, goal, seed, seed_pose, rand_seed, n_solutions, cancel_event
            )
    return _collect_solutions(solver, goal, seed, seed_pose, rand_seed, n_solutions, cancel_event)


def _collect_solutions(
    solver: InverseKinematicsSolver,
    goal: Pose,
    seed: list[float],
    seed_pose: Pose,
    rand_seed: int,
    n_solutions: int,
    cancel_event: threading.Event | None,
) -> list[list[float]]:
    frame = solver.frame()
    options = solver.options()
    handler = options.constraints

    solutions_queue: queue.Queue[list[float]] = queue.Queue(maxsize=max(n_solutions, 1))
    stop_solver = threading.Event()
    done = threading.Event()
    solver_errors: list[BaseException] = []

    def run() -> None:
        try:
            solver.solve(stop_solver, solutions_queue, goal, seed, options.metric, rand_seed)
        except Exception as e:
            solver_errors.append(e)
        finally:
            done.set()

    thread = threading.Thread(target=run, name=f"ik-{frame.name}", daemon=True)
    thread.start()

    scored: list[tuple[float, list[float]]] = []
    cancelled = False
    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break
            try:
                step = solutions_queue.get(timeout=SOLUTION_POLL_INTERVAL)
            except queue.Empty:
                if done.is_set() and solutions_queue.empty():
                    break
                continue

            segment = SegmentInput(seed, step, frame, seed_pose, goal)
            segment_ok, _ = handler.check_segment_constraints(segment)
            state = StateInput(step, frame)
            state_ok, failed = handler.check_state_constraints(state)
            if not (segment_ok and state_ok):
                logger.debug("ik solution rejected", frame=frame.name, constraint=failed)
                continue

            score = input_distance(seed, step) + handler.state_metric(state)
            if 0 < options.min_score and score < options.min_score:
                scored = [(score, step)]
                break
            scored.append((score, step))
            if len(scored) >= n_solutions:
                break
    finally:
        stop_solver.set()
        thread.join()

    if cancelled:
        raise PlannerFailedError(PlanningStatus.CANCELLED, "ik solve cancelled")
    if not scored:
        if solver_errors:
            raise solver_errors[0]
        raise IKSolveError()

    scored.sort(key=lambda item: item[0])
    return [step for _, step in scored]
