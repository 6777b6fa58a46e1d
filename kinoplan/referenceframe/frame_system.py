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

"""A tree of named frames rooted at ``world``.

Frames live in an arena keyed by name with a separate child -> parent map.
Parents must exist before children are added, so insertion order is always a
valid topological order and the tree can never contain a cycle.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, overload

from kinoplan.constants import WORLD
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe.errors import (
    DuplicateFrameError,
    FrameNotFoundError,
    InvalidFrameError,
    UnreachableFrameError,
)
from kinoplan.referenceframe.frame import Frame, frame_from_dict
from kinoplan.referenceframe.inputs import get_frame_inputs, zero_inputs
from kinoplan.referenceframe.world_state import GeometriesInFrame, PoseInFrame
from kinoplan.spatialmath import Geometry

InputMap = dict[str, list[float]]


class FrameSystem:
    def __init__(self, name: str = "") -> None:
        self._name = name
        self._frames: dict[str, Frame] = {}
        self._parents: dict[str, str] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def world(self) -> str:
        return WORLD

    # ============= Construction =============

    def add_frame(self, frame: Frame, parent: Frame | str = WORLD) -> None:
        parent_name = parent if isinstance(parent, str) else parent.name
        if not frame.name:
            raise InvalidFrameError("frame name must not be empty")
        if frame.name == WORLD or frame.name in self._frames:
            raise DuplicateFrameError(frame.name)
        if not self.has_frame(parent_name):
            raise FrameNotFoundError(parent_name)
        self._frames[frame.name] = frame
        self._parents[frame.name] = parent_name

    def replace_frame(self, frame: Frame) -> None:
        """Swap in ``frame`` for the frame of the same name, keeping parent and children."""
        if frame.name not in self._frames:
            raise FrameNotFoundError(frame.name)
        self._frames[frame.name] = frame

    def remove_frame(self, name: str) -> None:
        """Remove a frame and everything below it."""
        if name not in self._frames:
            raise FrameNotFoundError(name)
        for doomed in [name, *self.descendants(name)]:
            del self._frames[doomed]
            del self._parents[doomed]

    def merge(self, other: FrameSystem, attach_to: Frame | str = WORLD) -> None:
        """Graft ``other`` into this system, hanging its world-level frames from ``attach_to``."""
        attach_name = attach_to if isinstance(attach_to, str) else attach_to.name
        if not self.has_frame(attach_name):
            raise FrameNotFoundError(attach_name)
        for name in other.frame_names():
            if name in self._frames:
                raise DuplicateFrameError(name)
        for name in other.frame_names():
            parent = other.parent_name(name)
            self.add_frame(other.frame(name), attach_name if parent == WORLD else parent)

    # ============= Queries =============

    def has_frame(self, name: str) -> bool:
        return name == WORLD or name in self._frames

    def frame(self, name: str) -> Frame:
        if name not in self._frames:
            raise FrameNotFoundError(name)
        return self._frames[name]

    def parent_name(self, name: str) -> str:
        if name not in self._parents:
            raise FrameNotFoundError(name)
        return self._parents[name]

    def parent(self, frame: Frame | str) -> str:
        return self.parent_name(frame if isinstance(frame, str) else frame.name)

    def frame_names(self) -> list[str]:
        """All frame names, parents before children."""
        return list(self._frames)

    def children(self, name: str) -> list[str]:
        return [child for child, parent in self._parents.items() if parent == name]

    def descendants(self, name: str) -> list[str]:
        found: list[str] = []
        frontier = [name]
        while frontier:
            current = frontier.pop()
            kids = self.children(current)
            found.extend(kids)
            frontier.extend(kids)
        return found

    def ancestors(self, name: str) -> list[str]:
        """Path from ``name`` (inclusive) up to, but excluding, world."""
        if name == WORLD:
            return []
        if name not in self._frames:
            raise FrameNotFoundError(name)
        path = []
        current = name
        while current != WORLD:
            if current not in self._frames:
                raise UnreachableFrameError(name, WORLD)
            path.append(current)
            current = self._parents[current]
        return path

    def __len__(self) -> int:
        return len(self._frames)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_frame(name)

    # ============= Transforms =============

    def _pose_up_to(self, inputs: Mapping[str, Sequence[float]], path: list[str]) -> Pose:
        pose = Pose()
        for name in reversed(path):
            frame = self._frames[name]
            pose = pose + frame.transform(get_frame_inputs(frame, inputs))
        return pose

    def _relative_pose(self, inputs: Mapping[str, Sequence[float]], src: str, dst: str) -> Pose:
        """Pose of ``src`` expressed in ``dst``, walking only to their lowest common ancestor."""
        for name in (src, dst):
            if not self.has_frame(name):
                raise FrameNotFoundError(name)
        src_path = self.ancestors(src)
        dst_path = self.ancestors(dst)
        dst_set = set(dst_path)
        common = next((n for n in src_path if n in dst_set), WORLD)
        src_trim = src_path[: src_path.index(common)] if common != WORLD else src_path
        dst_trim = dst_path[: dst_path.index(common)] if common != WORLD else dst_path
        return self._pose_up_to(inputs, dst_trim).inverse() + self._pose_up_to(inputs, src_trim)

    def transform_frame(self, inputs: Mapping[str, Sequence[float]], src: str, dst: str) -> PoseInFrame:
        """Origin of ``src`` expressed in ``dst``."""
        return PoseInFrame(dst, self._relative_pose(inputs, src, dst), src)

    @overload
    def transform(self, inputs: Mapping[str, Sequence[float]], item: PoseInFrame, dst: str) -> PoseInFrame: ...

    @overload
    def transform(
        self, inputs: Mapping[str, Sequence[float]], item: GeometriesInFrame, dst: str
    ) -> GeometriesInFrame: ...

    def transform(self, inputs, item, dst):
        """Re-express a pose or geometries given in ``item.parent`` in ``dst``."""
        relative = self._relative_pose(inputs, item.parent, dst)
        if isinstance(item, PoseInFrame):
            return PoseInFrame(dst, relative + item.pose, item.name)
        if isinstance(item, GeometriesInFrame):
            return GeometriesInFrame(dst, [g.transform(relative) for g in item.geometries()])
        raise TypeError(f"cannot transform {type(item).__name__}")

    def frame_geometries_in_world(
        self, inputs: Mapping[str, Sequence[float]], name: str
    ) -> list[Geometry]:
        frame = self.frame(name)
        local = frame.geometries_in_parent(get_frame_inputs(frame, inputs))
        if not local:
            return []
        parent_pose = self._relative_pose(inputs, self._parents[name], WORLD)
        return [g.transform(parent_pose) for g in local]

    def geometries_in_world(
        self, inputs: Mapping[str, Sequence[float]]
    ) -> dict[str, GeometriesInFrame]:
        """World-frame geometry of every frame that owns some, keyed by frame name."""
        result = {}
        for name, frame in self._frames.items():
            if not frame.local_geometries():
                continue
            result[name] = GeometriesInFrame(WORLD, self.frame_geometries_in_world(inputs, name))
        return result

    # ============= Derived systems =============

    def frame_system_subset(self, frame: Frame | str) -> FrameSystem:
        """A new system holding only ``frame`` and its ancestors up to world."""
        name = frame if isinstance(frame, str) else frame.name
        keep = set(self.ancestors(name))
        subset = FrameSystem(f"{self._name}_{name}" if self._name else name)
        for frame_name in self._frames:
            if frame_name in keep:
                subset.add_frame(self._frames[frame_name], self._parents[frame_name])
        return subset

    def start_positions(self) -> InputMap:
        """Zero inputs for every frame, clamped inside its limits."""
        return {name: zero_inputs(frame) for name, frame in self._frames.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self._name,
            "frames": [
                {"frame": frame.to_dict(), "parent": self._parents[name]}
                for name, frame in self._frames.items()
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FrameSystem:
        fs = cls(data.get("name", ""))
        for entry in data.get("frames", []):
            fs.add_frame(frame_from_dict(entry["frame"]), entry.get("parent", WORLD))
        return fs

    def __repr__(self) -> str:
        return f"FrameSystem(name={self._name!r}, frames={self.frame_names()!r})"
