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

"""The chain between a moving frame and a goal frame, exposed as one frame.

IK and planning work on a flat input vector. ``SolverFrame`` concatenates the
DOF of every frame on the path from the solve frame to the goal frame
(through their common ancestor) and maps between that vector and a frame
system input map.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from kinoplan.constants import WORLD
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import (
    Frame,
    FrameSystem,
    GeometriesInFrame,
    IncorrectInputLengthError,
    InputMap,
    get_frame_inputs,
)
from kinoplan.spatialmath import Geometry


class SolverFrame(Frame):
    def __init__(
        self,
        name: str,
        fs: FrameSystem,
        solve_frame: str,
        goal_frame: str = WORLD,
        origin_inputs: Mapping[str, Sequence[float]] | None = None,
    ) -> None:
        """
        Args:
            name: Name of the composite frame
            fs: Frame system holding both frames
            solve_frame: The frame whose pose is being solved for
            goal_frame: The frame goal poses are expressed in
            origin_inputs: Inputs for frames off the moving chain, if any are needed
        """
        solve_path = fs.ancestors(solve_frame)
        goal_path = fs.ancestors(goal_frame)
        shared = set(solve_path) & set(goal_path)
        moving = [n for n in reversed(solve_path) if n not in shared]
        moving += [n for n in reversed(goal_path) if n not in shared]
        frames = [fs.frame(n) for n in moving]

        super().__init__(name, [limit for frame in frames for limit in frame.dof()])
        self._fs = fs
        self._solve_frame = solve_frame
        self._goal_frame = goal_frame
        self._frames = frames
        self._robot_frames = [fs.frame(n) for n in reversed(solve_path)]
        self._origin_inputs = {k: list(v) for k, v in (origin_inputs or {}).items()}

    @property
    def solve_frame(self) -> str:
        return self._solve_frame

    @property
    def goal_frame(self) -> str:
        return self._goal_frame

    @property
    def fs(self) -> FrameSystem:
        return self._fs

    def input_frames(self) -> list[Frame]:
        """Frames on the moving chain with at least one DOF, in input order."""
        return [frame for frame in self._frames if frame.dof()]

    def map_to_slice(self, inputs: Mapping[str, Sequence[float]]) -> list[float]:
        values: list[float] = []
        for frame in self._frames:
            values.extend(get_frame_inputs(frame, inputs))
        return values

    def slice_to_map(self, inputs: Sequence[float]) -> InputMap:
        self.check_input_length(inputs)
        result = dict(self._origin_inputs)
        offset = 0
        for frame in self._frames:
            n = len(frame.dof())
            result[frame.name] = list(inputs[offset : offset + n])
            offset += n
        return result

    def transform(self, inputs: Sequence[float]) -> Pose:
        if len(inputs) != len(self._limits):
            raise IncorrectInputLengthError(len(inputs), len(self._limits), self._name)
        return self._fs.transform_frame(
            self.slice_to_map(inputs), self._solve_frame, self._goal_frame
        ).pose

    def local_geometries(self) -> list[Geometry]:
        return [g for frame in self._robot_frames for g in frame.local_geometries()]

    def geometries_in_parent(self, inputs: Sequence[float]) -> list[Geometry]:
        """Geometry of every frame from the world down to the solve frame, in world coordinates."""
        input_map = self.slice_to_map(inputs)
        geometries: list[Geometry] = []
        for frame in self._robot_frames:
            if frame.local_geometries():
                geometries.extend(self._fs.frame_geometries_in_world(input_map, frame.name))
        return geometries

    def geometries(self, inputs: Sequence[float]) -> GeometriesInFrame:
        return GeometriesInFrame(WORLD, self.geometries_in_parent(inputs))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "solver",
            "name": self._name,
            "solve_frame": self._solve_frame,
            "goal_frame": self._goal_frame,
            "frames": [frame.name for frame in self._frames],
        }
