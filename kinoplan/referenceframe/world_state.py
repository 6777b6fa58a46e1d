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

"""Poses and geometries tagged with a reference frame, and the world state.

A :class:`WorldState` is the interchange form of the scene: named obstacle
collections and named interaction-space collections, each attached to a
reference frame.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from kinoplan.constants import WORLD
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe.errors import FrameError
from kinoplan.spatialmath import Geometry, geometry_from_dict

if TYPE_CHECKING:
    from kinoplan.referenceframe.frame_system import FrameSystem, InputMap

UNNAMED_GEOMETRY_PREFIX = "unnamedWorldStateGeometry_"


class DuplicateGeometryNameError(FrameError, ValueError):
    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"geometry names must be unique, {label!r} is used more than once")


@dataclass(frozen=True)
class PoseInFrame:
    parent: str
    pose: Pose
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"parent": self.parent, "pose": self.pose.to_dict(), "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PoseInFrame:
        return cls(data["parent"], Pose.from_dict(data["pose"]), data.get("name", ""))


class GeometriesInFrame:
    """Geometries expressed in the coordinates of the frame named ``parent``."""

    def __init__(self, parent: str, geometries: Iterable[Geometry] = ()) -> None:
        self._parent = parent
        self._geometries = list(geometries)

    @property
    def parent(self) -> str:
        return self._parent

    def geometries(self) -> list[Geometry]:
        return list(self._geometries)

    def geometry_by_label(self) -> dict[str, Geometry]:
        return {g.label: g for g in self._geometries}

    def __len__(self) -> int:
        return len(self._geometries)

    def __iter__(self):
        return iter(self._geometries)

    def to_dict(self) -> dict[str, Any]:
        return {"parent": self._parent, "geometries": [g.to_dict() for g in self._geometries]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeometriesInFrame:
        return cls(data["parent"], [geometry_from_dict(g) for g in data.get("geometries", [])])

    def __repr__(self) -> str:
        return f"GeometriesInFrame(parent={self._parent!r}, geometries={self._geometries!r})"


class WorldState:
    """Obstacles and interaction spaces around the robot.

    Unlabelled geometries are given unique generated names; labelled
    geometries must be unique across all collections.
    """

    def __init__(
        self,
        obstacles: Iterable[GeometriesInFrame] = (),
        interaction_spaces: Iterable[GeometriesInFrame] = (),
    ) -> None:
        seen: set[str] = set()
        counter = 0

        def label_all(collections: Iterable[GeometriesInFrame]) -> list[GeometriesInFrame]:
            nonlocal counter
            labelled = []
            for gif in collections:
                geometries = []
                for geometry in gif.geometries():
                    if not geometry.label:
                        geometry = geometry.with_label(f"{UNNAMED_GEOMETRY_PREFIX}{counter}")
                        counter += 1
                    if geometry.label in seen:
                        raise DuplicateGeometryNameError(geometry.label)
                    seen.add(geometry.label)
                    geometries.append(geometry)
                labelled.append(GeometriesInFrame(gif.parent, geometries))
            return labelled

        self._obstacles = label_all(obstacles)
        self._interaction_spaces = label_all(interaction_spaces)

    @property
    def obstacles(self) -> list[GeometriesInFrame]:
        return list(self._obstacles)

    @property
    def interaction_spaces(self) -> list[GeometriesInFrame]:
        return list(self._interaction_spaces)

    def obstacle_names(self) -> list[str]:
        return [g.label for gif in self._obstacles for g in gif]

    def __len__(self) -> int:
        return sum(len(gif) for gif in self._obstacles) + sum(
            len(gif) for gif in self._interaction_spaces
        )

    def obstacles_in_world_frame(self, fs: FrameSystem, inputs: InputMap) -> GeometriesInFrame:
        """All obstacles re-expressed in the world frame."""
        geometries: list[Geometry] = []
        for gif in self._obstacles:
            geometries.extend(fs.transform(inputs, gif, WORLD).geometries())
        return GeometriesInFrame(WORLD, geometries)

    def interaction_spaces_in_world_frame(
        self, fs: FrameSystem, inputs: InputMap
    ) -> GeometriesInFrame:
        geometries: list[Geometry] = []
        for gif in self._interaction_spaces:
            geometries.extend(fs.transform(inputs, gif, WORLD).geometries())
        return GeometriesInFrame(WORLD, geometries)

    def to_world_frame(self, fs: FrameSystem, inputs: InputMap) -> WorldState:
        """A copy whose collections are each a single world-frame collection."""
        return WorldState(
            [self.obstacles_in_world_frame(fs, inputs)],
            [self.interaction_spaces_in_world_frame(fs, inputs)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "obstacles": [gif.to_dict() for gif in self._obstacles],
            "interaction_spaces": [gif.to_dict() for gif in self._interaction_spaces],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorldState:
        return cls(
            [GeometriesInFrame.from_dict(g) for g in data.get("obstacles", [])],
            [GeometriesInFrame.from_dict(g) for g in data.get("interaction_spaces", [])],
        )

    def __repr__(self) -> str:
        return (
            f"WorldState(obstacles={self._obstacles!r}, "
            f"interaction_spaces={self._interaction_spaces!r})"
        )
