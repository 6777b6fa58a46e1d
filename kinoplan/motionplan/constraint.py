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

"""State and segment constraints, and the handler that evaluates them.

A state constraint judges one configuration; a segment constraint judges a
transition between two. Constraints are kept in ordered registries keyed by
name. Adding under an existing name replaces the old entry and removing an
absent name is a no-op.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
import math

import numpy as np

from kinoplan.constants import DEFAULT_EPSILON
from kinoplan.motionplan.collision import Collision, CollisionGraph
from kinoplan.motionplan.metrics import path_step_count
from kinoplan.motionplan.solver_frame import SolverFrame
from kinoplan.motionplan.spec.types import (
    SegmentConstraint,
    SegmentInput,
    SegmentMetric,
    StateConstraint,
    StateInput,
    StateMetric,
)
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import (
    Frame,
    FrameError,
    FrameSystem,
    GeometriesInFrame,
    WorldState,
    get_frame_inputs,
    interpolate_inputs,
)
from kinoplan.spatialmath import (
    DEFAULT_COLLISION_BUFFER,
    Geometry,
    dist_to_line_segment,
    interpolate_pose,
    orient_dist,
    orient_dist_to_region,
)

DEFAULT_COLLISION_CONSTRAINT_NAME = "defaultCollisionConstraint"
DEFAULT_LINEAR_CONSTRAINT_NAME = "defaultLinearConstraint"
DEFAULT_ORIENTATION_CONSTRAINT_NAME = "defaultOrientationConstraint"
DEFAULT_JOINT_CONSTRAINT_NAME = "defaultJointSwingConstraint"


@dataclass(frozen=True)
class _StateEntry:
    constraint: StateConstraint
    metric: StateMetric | None = None


@dataclass(frozen=True)
class _SegmentEntry:
    constraint: SegmentConstraint
    metric: SegmentMetric | None = None


class ConstraintHandler:
    def __init__(self) -> None:
        self._state: dict[str, _StateEntry] = {}
        self._segment: dict[str, _SegmentEntry] = {}

    # ============= Registries =============

    def add_state_constraint(
        self, name: str, constraint: StateConstraint, metric: StateMetric | None = None
    ) -> None:
        self._state[name] = _StateEntry(constraint, metric)

    def remove_state_constraint(self, name: str) -> None:
        self._state.pop(name, None)

    def state_constraints(self) -> list[str]:
        return list(self._state)

    def add_segment_constraint(
        self, name: str, constraint: SegmentConstraint, metric: SegmentMetric | None = None
    ) -> None:
        self._segment[name] = _SegmentEntry(constraint, metric)

    def remove_segment_constraint(self, name: str) -> None:
        self._segment.pop(name, None)

    def segment_constraints(self) -> list[str]:
        return list(self._segment)

    @contextmanager
    def scoped_state_constraint(
        self, name: str, constraint: StateConstraint, metric: StateMetric | None = None
    ) -> Iterator[None]:
        """Install a state constraint for the duration of a ``with`` block.

        Whatever was registered under ``name`` before is restored on exit.
        """
        previous = self._state.get(name)
        self.add_state_constraint(name, constraint, metric)
        try:
            yield
        finally:
            if previous is None:
                self.remove_state_constraint(name)
            else:
                self._state[name] = previous

    @contextmanager
    def scoped_segment_constraint(
        self, name: str, constraint: SegmentConstraint, metric: SegmentMetric | None = None
    ) -> Iterator[None]:
        previous = self._segment.get(name)
        self.add_segment_constraint(name, constraint, metric)
        try:
            yield
        finally:
            if previous is None:
                self.remove_segment_constraint(name)
            else:
                self._segment[name] = previous

    def copy(self) -> ConstraintHandler:
        clone = ConstraintHandler()
        clone._state = dict(self._state)
        clone._segment = dict(self._segment)
        return clone

    # ============= Checks =============

    def check_state_constraints(self, state: StateInput) -> tuple[bool, str]:
        """Returns ``(True, "")`` or ``(False, name_of_first_failing_constraint)``."""
        for name, entry in self._state.items():
            if not entry.constraint(state):
                return False, name
        return True, ""

    def check_segment_constraints(self, segment: SegmentInput) -> tuple[bool, str]:
        for name, entry in self._segment.items():
            if not entry.constraint(segment):
                return False, name
        return True, ""

    def state_metric(self, state: StateInput) -> float:
        """Sum of the metrics paired with state constraints."""
        return sum(entry.metric(state) for entry in self._state.values() if entry.metric)

    def segment_metric(self, segment: SegmentInput) -> float:
        return sum(entry.metric(segment) for entry in self._segment.values() if entry.metric)

    def check_state_constraints_across_segment(
        self, segment: SegmentInput, resolution: float
    ) -> tuple[bool, SegmentInput | None]:
        """Check state constraints at joint-space interpolation steps along a segment.

        Returns ``(True, None)`` when every step passes. When a step fails,
        returns ``(False, prefix)`` where ``prefix`` runs from the segment start
        to the last passing step, or ``(False, None)`` if the start itself fails.
        """
        try:
            start_pose, end_pose = segment.resolve()
        except (FrameError, ValueError):
            return False, None
        steps = path_step_count(start_pose, end_pose, resolution)

        last_good: list[float] | None = None
        for i in range(steps + 1):
            configuration = interpolate_inputs(
                segment.start_configuration, segment.end_configuration, i / steps
            )
            state = StateInput(configuration, segment.frame)
            try:
                state.resolve()
            except FrameError:
                return False, None
            ok, _ = self.check_state_constraints(state)
            if not ok:
                if i == 0:
                    return False, None
                return False, SegmentInput(
                    segment.start_configuration, last_good, segment.frame
                )
            last_good = configuration
        return True, None

    def check_segment_and_state_validity(
        self, segment: SegmentInput, resolution: float
    ) -> tuple[bool, SegmentInput | None]:
        """Segment constraints first, then state constraints along the segment.

        State constraints are checked at joint-space interpolation steps and,
        for those paired with a metric, along the Cartesian straight line
        between the segment's end poses. A valid prefix is only returned if it
        also passes the segment constraints and the straight-line check.
        """
        ok, _ = self.check_segment_constraints(segment)
        if not ok:
            return False, None
        ok, sub_segment = self.check_state_constraints_across_segment(segment, resolution)
        if ok:
            return self._straight_line_valid(segment, resolution), None
        if sub_segment is not None:
            sub_ok, _ = self.check_segment_constraints(sub_segment)
            if sub_ok and self._straight_line_valid(sub_segment, resolution):
                return False, sub_segment
        return False, None

    def _straight_line_valid(self, segment: SegmentInput, resolution: float) -> bool:
        try:
            ok, _ = self.check_straight_line_segment(segment, resolution)
        except (FrameError, ValueError):
            return False
        return ok

    def check_straight_line_segment(
        self, segment: SegmentInput, resolution: float
    ) -> tuple[bool, str]:
        """Check pose-only constraints along the Cartesian straight line of a segment.

        Positions are interpolated linearly and orientations by slerp. Only
        state constraints paired with a metric are evaluated; those judge a
        pose without needing a configuration.
        """
        start_pose, end_pose = segment.resolve()
        steps = path_step_count(start_pose, end_pose, resolution)
        pose_checks = [(n, e) for n, e in self._state.items() if e.metric is not None]
        for i in range(steps + 1):
            pose = interpolate_pose(start_pose, end_pose, i / steps)
            state = StateInput(None, segment.frame, pose)
            for name, entry in pose_checks:
                if not entry.constraint(state):
                    return False, name
        return True, ""


# ============= Pose constraints =============


def _resolved(state: StateInput) -> Pose | None:
    try:
        return state.resolve()
    except (FrameError, ValueError):
        return None


def new_slerp_orientation_constraint(
    start: Pose, goal: Pose, tolerance: float
) -> tuple[StateConstraint, StateMetric]:
    """Orientation must stay on the shortest arc between two orientations.

    The metric is how much longer the detour through the state's orientation
    is than the direct arc.
    """
    original = max(orient_dist(start.orientation, goal.orientation), DEFAULT_EPSILON)

    def metric(state: StateInput) -> float:
        orientation = state.resolve().orientation
        from_start = orient_dist(start.orientation, orientation)
        to_goal = 0.0
        if original > DEFAULT_EPSILON:
            to_goal = orient_dist(goal.orientation, orientation)
        return (from_start + to_goal) - original

    def constraint(state: StateInput) -> bool:
        if _resolved(state) is None:
            return False
        return metric(state) < tolerance

    return constraint, metric


def new_plane_constraint(
    normal: Sequence[float], point: Sequence[float], angle: float, epsilon: float
) -> tuple[StateConstraint, StateMetric]:
    """Stay on the plane through ``point`` with normal ``normal``.

    The orientation's z axis must lie within ``angle`` radians of
    ``-normal``. Valid when the squared plane distance plus the squared
    orientation distance to that cone is under ``epsilon ** 2``.
    """
    normal_np = np.asarray(normal, dtype=float)
    offset = -float(np.dot(point, normal_np))
    orientation_distance = orient_dist_to_region(-normal_np, angle)

    def metric(state: StateInput) -> float:
        pose = state.resolve()
        plane_distance = abs(float(np.dot(normal_np, pose.point())) + offset)
        orientation_error = orientation_distance(pose.orientation)
        return plane_distance**2 + orientation_error**2

    def constraint(state: StateInput) -> bool:
        if _resolved(state) is None:
            return False
        return metric(state) < epsilon * epsilon

    return constraint, metric


def new_line_constraint(
    p1: Sequence[float], p2: Sequence[float], tolerance: float
) -> tuple[StateConstraint, StateMetric]:
    """Stay within ``tolerance`` of the segment ``p1``-``p2``."""
    p1_np = np.asarray(p1, dtype=float)
    p2_np = np.asarray(p2, dtype=float)
    if float(np.linalg.norm(p2_np - p1_np)) < DEFAULT_EPSILON:
        tolerance = DEFAULT_EPSILON

    def metric(state: StateInput) -> float:
        return max(dist_to_line_segment(p1_np, p2_np, state.resolve().point()) - tolerance, 0.0)

    def constraint(state: StateInput) -> bool:
        if _resolved(state) is None:
            return False
        return metric(state) == 0.0

    return constraint, metric


def new_absolute_linear_interpolating_constraint(
    start: Pose, goal: Pose, line_tolerance: float, orientation_tolerance: float
) -> tuple[StateConstraint, StateMetric]:
    """Straight-line motion with slerped orientation, within absolute tolerances."""
    orientation_constraint, orientation_metric = new_slerp_orientation_constraint(
        start, goal, orientation_tolerance
    )
    line_constraint, line_metric = new_line_constraint(start.point(), goal.point(), line_tolerance)

    def metric(state: StateInput) -> float:
        return orientation_metric(state) + line_metric(state)

    def constraint(state: StateInput) -> bool:
        return orientation_constraint(state) and line_constraint(state)

    return constraint, metric


def new_proportional_linear_interpolating_constraint(
    start: Pose, goal: Pose, epsilon: float
) -> tuple[StateConstraint, StateMetric]:
    """Like the absolute form with tolerances scaled by the distance travelled."""
    orientation_tolerance = epsilon * orient_dist(start.orientation, goal.orientation)
    line_tolerance = epsilon * float(np.linalg.norm(goal.point() - start.point()))
    return new_absolute_linear_interpolating_constraint(
        start, goal, line_tolerance, orientation_tolerance
    )


def new_joint_swing_constraint(max_swing: float) -> SegmentConstraint:
    """Reject segments where any single input moves more than ``max_swing``."""

    def constraint(segment: SegmentInput) -> bool:
        start = np.asarray(segment.start_configuration, dtype=float)
        end = np.asarray(segment.end_configuration, dtype=float)
        return bool(np.all(np.abs(end - start) <= max_swing))

    return constraint


# ============= Collision constraints =============


class CollisionConstraint:
    """A state constraint rejecting configurations with new collisions.

    The reference graph is computed once from the observation configuration
    and is never recomputed, so it does not follow later changes to the
    frame's attached geometry.
    """

    def __init__(
        self,
        frame: Frame,
        obstacles: Sequence[Geometry] | None,
        observation_inputs: Mapping[str, Sequence[float]],
        collision_specifications: Sequence[Collision] = (),
        buffer: float = DEFAULT_COLLISION_BUFFER,
    ) -> None:
        if isinstance(frame, SolverFrame):
            observed = frame.map_to_slice(observation_inputs)
        else:
            observed = get_frame_inputs(frame, observation_inputs)
        self._frame = frame
        self._obstacles = list(obstacles) if obstacles else None
        self._buffer = buffer
        self._reference = CollisionGraph(
            frame.geometries_in_parent(observed), self._obstacles, None, True, buffer
        )
        for specification in collision_specifications:
            self._reference.add_collision_specification(specification)

    @property
    def reference(self) -> CollisionGraph:
        return self._reference

    def graph(self, state: StateInput) -> CollisionGraph:
        frame = state.frame or self._frame
        return CollisionGraph(
            frame.geometries_in_parent(state.configuration),
            self._obstacles,
            self._reference,
            True,
            self._buffer,
        )

    def collisions(self, state: StateInput) -> list[Collision]:
        return self.graph(state).collisions()

    def __call__(self, state: StateInput) -> bool:
        frame = state.frame or self._frame
        try:
            geometries = frame.geometries_in_parent(state.configuration)
        except FrameError:
            return False
        graph = CollisionGraph(geometries, self._obstacles, self._reference, False, self._buffer)
        return not graph.collisions()


def new_self_collision_constraint(
    frame: Frame,
    observation_inputs: Mapping[str, Sequence[float]],
    collision_specifications: Sequence[Collision] = (),
) -> CollisionConstraint:
    return CollisionConstraint(frame, None, observation_inputs, collision_specifications)


def new_obstacle_constraint(
    frame: Frame,
    fs: FrameSystem,
    world_state: WorldState,
    observation_inputs: Mapping[str, Sequence[float]],
    collision_specifications: Sequence[Collision] = (),
) -> CollisionConstraint:
    obstacles = world_state.obstacles_in_world_frame(fs, observation_inputs)
    return CollisionConstraint(
        frame, obstacles.geometries(), observation_inputs, collision_specifications
    )


def new_interaction_space_constraint(
    frame: Frame, interaction_spaces: GeometriesInFrame
) -> StateConstraint:
    """Every geometry origin of ``frame`` must lie inside some interaction space."""
    spaces = interaction_spaces.geometries()

    def constraint(state: StateInput) -> bool:
        try:
            geometries = (state.frame or frame).geometries_in_parent(state.configuration)
        except FrameError:
            return False
        for geometry in geometries:
            origin = geometry.pose.point()
            if not any(space.signed_distance_points(origin[None, :])[0] <= 0.0 for space in spaces):
                return False
        return True

    return constraint


def new_collision_constraint_from_world_state(
    frame: Frame,
    fs: FrameSystem,
    world_state: WorldState | None,
    observation_inputs: Mapping[str, Sequence[float]],
    collision_specifications: Sequence[Collision] = (),
) -> StateConstraint:
    """Self-collision and obstacle avoidance, plus interaction-space bounds if any are given."""
    world_state = world_state or WorldState()
    self_constraint = new_self_collision_constraint(
        frame, observation_inputs, collision_specifications
    )
    obstacle_constraint = None
    if world_state.obstacle_names():
        obstacle_constraint = new_obstacle_constraint(
            frame, fs, world_state, observation_inputs, collision_specifications
        )
    bounds = None
    spaces = world_state.interaction_spaces_in_world_frame(fs, observation_inputs)
    if len(spaces):
        bounds = new_interaction_space_constraint(frame, spaces)

    def constraint(state: StateInput) -> bool:
        if not self_constraint(state):
            return False
        if obstacle_constraint is not None and not obstacle_constraint(state):
            return False
        return bounds is None or bounds(state)

    return constraint


def collision_specifications_from_pairs(pairs: Sequence[tuple[str, str]]) -> list[Collision]:
    return [Collision(a, b, math.inf) for a, b in pairs]
