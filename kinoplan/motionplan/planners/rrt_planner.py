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

"""Constrained bidirectional RRT-Connect implementing PlannerSpec.

The planner searches the joint space of a SolverFrame. Every tree edge must
pass ``check_segment_and_state_validity``; when an edge fails partway, the
valid prefix is kept, so trees grow along constraint boundaries instead of
stopping at them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import threading
import time
from typing import TYPE_CHECKING, Any

import numpy as np

from kinoplan.motionplan.errors import PlannerFailedError
from kinoplan.motionplan.kinematics import best_ik_solutions, new_ik_solver
from kinoplan.motionplan.plan import Plan
from kinoplan.motionplan.planning import PlanRequest, build_constraint_handler
from kinoplan.motionplan.spec import PlannerOptions, PlanningStatus, SegmentInput, StateInput
from kinoplan.motionplan.utils import JointPath, compute_path_length
from kinoplan.referenceframe import random_frame_inputs
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from kinoplan.motionplan.constraint import ConstraintHandler
    from kinoplan.motionplan.solver_frame import SolverFrame


@dataclass(eq=False)
class TreeNode:
    """Node in an RRT tree."""

    config: NDArray[np.float64]
    parent: TreeNode | None = None
    children: list[TreeNode] = field(default_factory=list)

    def path_to_root(self) -> list[NDArray[np.float64]]:
        """Get path from the root to this node."""
        path = []
        node: TreeNode | None = self
        while node is not None:
            path.append(node.config)
            node = node.parent
        return list(reversed(path))


class CBiRRTPlanner:
    """Bi-directional RRT-Connect under state and segment constraints.

    The goal tree is rooted at every IK solution for the goal pose. For a
    fixed ``rand_seed`` and a single IK solver the output is deterministic
    unless the wall-clock budget runs out.
    """

    def __init__(self, logger: Any = None) -> None:
        self._logger = logger or setup_logger()

    def get_name(self) -> str:
        """Get planner name."""
        return "CBiRRT"

    def plan(self, request: PlanRequest, cancel_event: threading.Event | None = None) -> Plan:
        """Plan from the request's start inputs to its goal pose.

        Raises:
            IKSolveError: No IK solution for the goal satisfies the constraints
            PlannerFailedError: Start invalid, search exhausted, timed out or cancelled
        """
        options = request.options
        solver_frame = request.solver_frame()
        seed = solver_frame.map_to_slice(request.start_inputs)
        handler = build_constraint_handler(request, solver_frame, seed)

        ok, failed = handler.check_state_constraints(StateInput(seed, solver_frame))
        if not ok:
            raise PlannerFailedError(
                PlanningStatus.NO_SOLUTION, f"start configuration violates {failed}"
            )

        solver = new_ik_solver(
            solver_frame, replace(request.ik_options, constraints=handler), self._logger
        )
        goals = best_ik_solutions(
            solver,
            request.goal.pose,
            seed,
            None,
            options.rand_seed,
            options.ik_solutions,
            cancel_event,
        )
        self._logger.debug("ik goals", count=len(goals))

        path = self.plan_path(solver_frame, handler, seed, goals, options, cancel_event)
        return Plan(
            [solver_frame.slice_to_map(q) for q in path],
            [solver_frame.transform(q) for q in path],
        )

    def plan_path(
        self,
        solver_frame: SolverFrame,
        handler: ConstraintHandler,
        start: list[float],
        goals: list[list[float]],
        options: PlannerOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> JointPath:
        """Joint-space path from ``start`` to any of ``goals``."""
        options = options or PlannerOptions()
        start_time = time.time()
        rng = np.random.default_rng(options.rand_seed)

        q_start = np.array(start, dtype=np.float64)
        goal_configs = [np.array(g, dtype=np.float64) for g in goals]
        if not goal_configs:
            raise PlannerFailedError(PlanningStatus.NO_IK_SOLUTION, "No goal configurations")

        for q_goal in goal_configs:
            if self._edge_valid(solver_frame, handler, q_start, q_goal, options.resolution):
                self._logger.debug("direct path to goal is valid")
                return [q_start.tolist(), q_goal.tolist()]

        start_tree = [TreeNode(config=q_start.copy())]
        goal_tree = [TreeNode(config=q.copy()) for q in goal_configs]
        trees_swapped = False

        for iteration in range(options.max_iterations):
            if cancel_event is not None and cancel_event.is_set():
                raise PlannerFailedError(
                    PlanningStatus.CANCELLED, f"Cancelled after {iteration} iterations", iteration
                )
            if time.time() - start_time > options.timeout:
                raise PlannerFailedError(
                    PlanningStatus.TIMEOUT, f"Timeout after {iteration} iterations", iteration
                )

            sample = np.array(random_frame_inputs(solver_frame, rng), dtype=np.float64)
            extended = self._extend_tree(solver_frame, handler, start_tree, sample, options)

            if extended is not None:
                connected = self._connect_tree(
                    solver_frame, handler, goal_tree, extended.config, options
                )
                if connected is not None:
                    path = self._extract_path(extended, connected)
                    if trees_swapped:
                        path = list(reversed(path))
                    path = self._simplify_path(solver_frame, handler, path, options, rng)
                    self._logger.info(
                        "path found",
                        iterations=iteration + 1,
                        waypoints=len(path),
                        length=compute_path_length(path),
                        seconds=round(time.time() - start_time, 3),
                    )
                    return path

            start_tree, goal_tree = goal_tree, start_tree
            trees_swapped = not trees_swapped

        raise PlannerFailedError(
            PlanningStatus.NO_SOLUTION,
            f"No path found after {options.max_iterations} iterations",
            options.max_iterations,
        )

    def _edge_valid(
        self,
        solver_frame: SolverFrame,
        handler: ConstraintHandler,
        q_from: NDArray[np.float64],
        q_to: NDArray[np.float64],
        resolution: float,
    ) -> bool:
        segment = SegmentInput(q_from.tolist(), q_to.tolist(), solver_frame)
        ok, _ = handler.check_segment_and_state_validity(segment, resolution)
        return ok

    def _extend_tree(
        self,
        solver_frame: SolverFrame,
        handler: ConstraintHandler,
        tree: list[TreeNode],
        target: NDArray[np.float64],
        options: PlannerOptions,
    ) -> TreeNode | None:
        """Extend tree toward target, returns new node if any progress was made."""
        nearest = min(tree, key=lambda n: float(np.linalg.norm(n.config - target)))

        diff = target - nearest.config
        dist = float(np.linalg.norm(diff))
        if dist == 0.0:
            return nearest
        if dist <= options.step_size:
            new_config = target.copy()
        else:
            new_config = nearest.config + options.step_size * (diff / dist)

        segment = SegmentInput(nearest.config.tolist(), new_config.tolist(), solver_frame)
        ok, sub_segment = handler.check_segment_and_state_validity(segment, options.resolution)
        if not ok:
            if sub_segment is None:
                return None
            new_config = np.array(sub_segment.end_configuration, dtype=np.float64)
            if float(np.linalg.norm(new_config - nearest.config)) < options.goal_tolerance:
                return None

        new_node = TreeNode(config=new_config, parent=nearest)
        nearest.children.append(new_node)
        tree.append(new_node)
        return new_node

    def _connect_tree(
        self,
        solver_frame: SolverFrame,
        handler: ConstraintHandler,
        tree: list[TreeNode],
        target: NDArray[np.float64],
        options: PlannerOptions,
    ) -> TreeNode | None:
        """Try to connect tree to target, returns connected node if successful."""
        while True:
            result = self._extend_tree(solver_frame, handler, tree, target, options)
            if result is None:
                return None
            if float(np.linalg.norm(result.config - target)) < options.goal_tolerance:
                return result

    def _extract_path(self, start_node: TreeNode, goal_node: TreeNode) -> JointPath:
        """Extract path from two connected nodes, root to root."""
        full_path = start_node.path_to_root() + list(reversed(goal_node.path_to_root()))
        return [q.tolist() for q in full_path]

    def _simplify_path(
        self,
        solver_frame: SolverFrame,
        handler: ConstraintHandler,
        path: JointPath,
        options: PlannerOptions,
        rng: np.random.Generator,
    ) -> JointPath:
        """Simplify path by random shortcutting."""
        if len(path) <= 2:
            return path

        simplified = list(path)
        for _ in range(options.smoothing_iterations):
            if len(simplified) <= 2:
                break

            i = int(rng.integers(0, len(simplified) - 2))
            j = int(rng.integers(i + 2, len(simplified)))

            if self._edge_valid(
                solver_frame,
                handler,
                np.asarray(simplified[i]),
                np.asarray(simplified[j]),
                options.resolution,
            ):
                simplified = simplified[: i + 1] + simplified[j:]

        return simplified
