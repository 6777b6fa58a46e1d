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

"""Plans, and re-validation of the remaining part of a plan."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from kinoplan.constants import WORLD
from kinoplan.motionplan.constraint import CollisionConstraint
from kinoplan.motionplan.errors import PlanCollisionError
from kinoplan.motionplan.metrics import path_step_count
from kinoplan.motionplan.solver_frame import SolverFrame
from kinoplan.motionplan.spec import StateInput
from kinoplan.motionplan.utils import compute_path_length
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import InputMap, interpolate_inputs
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from kinoplan.referenceframe import Frame, FrameSystem, WorldState

logger = setup_logger()


@dataclass
class Plan:
    """Ordered waypoints, each an input map, with optional Cartesian poses.

    Attributes:
        waypoints: Input map per waypoint
        poses: Pose of the moving frame at each waypoint, if known
    """

    waypoints: list[InputMap] = field(default_factory=list)
    poses: list[Pose] | None = None

    def __post_init__(self) -> None:
        if self.poses is not None and len(self.poses) != len(self.waypoints):
            raise ValueError(
                f"plan has {len(self.waypoints)} waypoints but {len(self.poses)} poses"
            )

    def __len__(self) -> int:
        return len(self.waypoints)

    def __getitem__(self, index: int) -> InputMap:
        return self.waypoints[index]

    def __iter__(self) -> Iterator[InputMap]:
        return iter(self.waypoints)

    def remaining(self, index: int) -> Plan:
        """The plan from waypoint ``index`` onward."""
        poses = self.poses[index:] if self.poses is not None else None
        return Plan([dict(w) for w in self.waypoints[index:]], poses)

    def offset(self, pose: Pose) -> Plan:
        """Re-base every waypoint pose by composing ``pose`` in front of it."""
        if self.poses is None:
            return Plan([dict(w) for w in self.waypoints])
        return Plan([dict(w) for w in self.waypoints], [pose + p for p in self.poses])

    def frame_path(self, name: str) -> list[list[float]]:
        return [list(w[name]) for w in self.waypoints if name in w]

    def cost(self) -> float:
        """Joint-space length of the plan, summed over every frame with inputs."""
        names = sorted({name for w in self.waypoints for name, values in w.items() if values})
        return sum(compute_path_length(self.frame_path(name)) for name in names)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"waypoints": [dict(w) for w in self.waypoints]}
        if self.poses is not None:
            data["poses"] = [p.to_dict() for p in self.poses]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Plan:
        poses = data.get("poses")
        return cls(
            [{k: list(v) for k, v in w.items()} for w in data.get("waypoints", [])],
            [Pose.from_dict(p) for p in poses] if poses is not None else None,
        )


def check_plan(
    frame: Frame,
    plan: Plan,
    world_state: WorldState,
    fs: FrameSystem,
    current_pose: Pose,
    inputs: Mapping[str, Sequence[float]],
    error_state: Pose | None = None,
    look_ahead_distance: float = 0.0,
    resolution: float = 0.01,
) -> None:
    """Collision-check the part of ``plan`` still to be executed.

    Segments run from the current ``inputs`` through each waypoint in turn.
    ``error_state`` is the pose of the planned world in the actual world, so
    obstacles are moved by its inverse before checking. A positive
    ``look_ahead_distance`` stops the check once the moving frame has
    travelled that far (Cartesian) from ``current_pose``.

    Raises:
        PlanCollisionError: A configuration on the remaining plan collides.
            ``waypoint`` is the index within ``plan`` of the segment end.
    """
    if not len(plan):
        return
    inputs = {k: list(v) for k, v in inputs.items()}
    solver_frame = SolverFrame(f"{frame.name}_check", fs, frame.name, WORLD, inputs)

    obstacles = world_state.obstacles_in_world_frame(fs, inputs).geometries()
    if error_state is not None:
        correction = error_state.inverse()
        obstacles = [g.transform(correction) for g in obstacles]
    if not obstacles:
        return
    constraint = CollisionConstraint(solver_frame, obstacles, inputs)

    start = solver_frame.map_to_slice(inputs)
    previous_pose = current_pose
    travelled = 0.0
    for index, waypoint in enumerate(plan):
        end = solver_frame.map_to_slice({**inputs, **waypoint})
        end_pose = solver_frame.transform(end)
        steps = path_step_count(solver_frame.transform(start), end_pose, resolution)
        for i in range(1, steps + 1):
            state = StateInput(interpolate_inputs(start, end, i / steps), solver_frame)
            collisions = constraint.collisions(state)
            if collisions:
                logger.info(
                    "plan collision",
                    waypoint=index,
                    collisions=[(c.name1, c.name2) for c in collisions],
                )
                raise PlanCollisionError([(c.name1, c.name2) for c in collisions], index)

        travelled += float(np.linalg.norm(end_pose.point() - previous_pose.point()))
        if look_ahead_distance > 0 and travelled > look_ahead_distance:
            return
        previous_pose = end_pose
        start = end
