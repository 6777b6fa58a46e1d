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

"""Serial-chain models and their JSON kinematic-chain descriptions.

A model document lists either links and joints (``kinematic_param_type``
"SVA", the default) or Denavit-Hartenberg rows ("DH"). Revolute and DH
limits are given in degrees. The description must resolve to exactly one
end effector and a parent chain that reaches ``world`` without cycles.
"""

from __future__ import annotations

from collections.abc import Sequence
import math
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kinoplan.constants import WORLD
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe.errors import ModelConfigError, UnsupportedJointTypeError
from kinoplan.referenceframe.frame import (
    Frame,
    Limit,
    RotationalFrame,
    StaticFrame,
    TranslationalFrame,
)
from kinoplan.referenceframe.world_state import GeometriesInFrame
from kinoplan.spatialmath import Geometry, GeometryConfig, pose_from_dh
from kinoplan.spatialmath.orientation import OrientationConfig, TranslationConfig

FIXED_JOINT = "fixed"
CONTINUOUS_JOINT = "continuous"
PRISMATIC_JOINT = "prismatic"
REVOLUTE_JOINT = "revolute"

CONTINUOUS_LIMIT = Limit(-2 * math.pi, 2 * math.pi)


class SimpleModel(Frame):
    """A serial chain of frames exposed as one frame with concatenated inputs.

    ``ordered_transforms`` runs from the frame attached to the model's parent
    out to the end effector.
    """

    def __init__(self, name: str, ordered_transforms: Sequence[Frame]) -> None:
        limits = [limit for frame in ordered_transforms for limit in frame.dof()]
        super().__init__(name, limits)
        self._transforms = list(ordered_transforms)

    def ordered_transforms(self) -> list[Frame]:
        return list(self._transforms)

    def _split(self, inputs: Sequence[float]) -> list[Sequence[float]]:
        self.check_input_length(inputs)
        chunks = []
        offset = 0
        for frame in self._transforms:
            n = len(frame.dof())
            chunks.append(inputs[offset : offset + n])
            offset += n
        return chunks

    def link_poses(self, inputs: Sequence[float]) -> list[Pose]:
        """Pose of every frame in the chain relative to the model's parent."""
        poses = []
        current = Pose()
        for frame, chunk in zip(self._transforms, self._split(inputs)):
            current = current + frame.transform(chunk)
            poses.append(current)
        return poses

    def transform(self, inputs: Sequence[float]) -> Pose:
        poses = self.link_poses(inputs)
        return poses[-1] if poses else Pose()

    def local_geometries(self) -> list[Geometry]:
        return [g for frame in self._transforms for g in frame.local_geometries()]

    def geometries_in_parent(self, inputs: Sequence[float]) -> list[Geometry]:
        geometries = []
        for frame, pose in zip(self._transforms, self.link_poses(inputs)):
            for geometry in frame.local_geometries():
                placed = geometry.transform(pose)
                geometries.append(placed.with_label(f"{self._name}:{geometry.label}"))
        return geometries

    def geometries(self, inputs: Sequence[float]) -> GeometriesInFrame:
        """Link geometries in the end effector's coordinates."""
        to_ee = self.transform(inputs).inverse()
        return GeometriesInFrame(
            self._name, [g.transform(to_ee) for g in self.geometries_in_parent(inputs)]
        )

    def almost_equals(self, other: Frame, tolerance: float = 1e-6) -> bool:
        if not isinstance(other, SimpleModel) or self._name != other.name:
            return False
        others = other.ordered_transforms()
        return len(self._transforms) == len(others) and all(
            a.almost_equals(b, tolerance) for a, b in zip(self._transforms, others)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "model",
            "name": self._name,
            "frames": [frame.to_dict() for frame in self._transforms],
        }


# ============= Kinematic chain description =============


class LinkConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    parent: str = ""
    translation: TranslationConfig = TranslationConfig()
    orientation: OrientationConfig | None = None
    geometry: GeometryConfig | None = None

    def pose(self) -> Pose:
        if self.orientation is None:
            return Pose(self.translation.to_vector())
        return Pose(self.translation.to_vector(), self.orientation.to_quaternion())

    def to_frame(self) -> Frame:
        geometries = [self.geometry.to_geometry(self.id)] if self.geometry else []
        return StaticFrame(self.id, self.pose(), geometries)


class JointConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    parent: str = ""
    axis: TranslationConfig = TranslationConfig(z=1.0)
    min: float = 0.0
    max: float = 0.0
    geometry: GeometryConfig | None = None

    def to_frame(self) -> Frame:
        axis = self.axis.to_vector()
        if self.type == REVOLUTE_JOINT:
            return RotationalFrame(
                self.id, axis, Limit(math.radians(self.min), math.radians(self.max))
            )
        if self.type == CONTINUOUS_JOINT:
            return RotationalFrame(self.id, axis, CONTINUOUS_LIMIT)
        if self.type == PRISMATIC_JOINT:
            geometries = [self.geometry.to_geometry(self.id)] if self.geometry else []
            return TranslationalFrame(self.id, axis, Limit(self.min, self.max), geometries)
        if self.type == FIXED_JOINT:
            return StaticFrame(self.id, Pose())
        raise UnsupportedJointTypeError(self.type)


class DHParamConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    parent: str = ""
    a: float = 0.0
    d: float = 0.0
    alpha: float = 0.0
    min: float = 0.0
    max: float = 0.0
    geometry: GeometryConfig | None = None

    def to_frames(self) -> tuple[Frame, Frame]:
        """The revolute joint ``<id>_j`` about z, then the static link ``<id>``."""
        joint = RotationalFrame(
            f"{self.id}_j", [0.0, 0.0, 1.0], Limit(math.radians(self.min), math.radians(self.max))
        )
        geometries = [self.geometry.to_geometry(self.id)] if self.geometry else []
        link = StaticFrame(self.id, pose_from_dh(self.a, self.d, math.radians(self.alpha)), geometries)
        return joint, link


class ModelConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    kinematic_param_type: Literal["SVA", "DH", ""] = ""
    links: list[LinkConfig] = Field(default_factory=list)
    joints: list[JointConfig] = Field(default_factory=list)
    dh_params: list[DHParamConfig] = Field(default_factory=list, alias="dhParams")

    def parse(self, model_name: str = "") -> SimpleModel:
        """Build the model, failing fast on any malformed part of the description."""
        model_name = model_name or self.name
        transforms: dict[str, Frame] = {}
        parent_map: dict[str, str] = {}

        if self.kinematic_param_type == "DH":
            for dh in self.dh_params:
                if dh.id == WORLD:
                    raise ModelConfigError("reserved word: cannot name a DH link 'world'")
                joint, link = dh.to_frames()
                parent_map[joint.name] = dh.parent or WORLD
                parent_map[link.name] = joint.name
                transforms[joint.name] = joint
                transforms[link.name] = link
        else:
            for link in self.links:
                if link.id == WORLD:
                    raise ModelConfigError("reserved word: cannot name a link 'world'")
            for joint in self.joints:
                if joint.id == WORLD:
                    raise ModelConfigError("reserved word: cannot name a joint 'world'")
            for link in self.links:
                parent_map[link.id] = link.parent or WORLD
                transforms[link.id] = link.to_frame()
            for joint in self.joints:
                parent_map[joint.id] = joint.parent or WORLD
                transforms[joint.id] = joint.to_frame()

        end_effectors = [name for name in transforms if name not in set(parent_map.values())]
        if len(end_effectors) > 1:
            raise ModelConfigError(
                f"more than one end effector not supported, found {sorted(end_effectors)}"
            )
        if not end_effectors:
            raise ModelConfigError("need at least one end effector")

        ordered = _sort_transforms(transforms, parent_map, end_effectors[0])
        return SimpleModel(model_name, ordered)


def _sort_transforms(
    transforms: dict[str, Frame], parent_map: dict[str, str], end_effector: str
) -> list[Frame]:
    """Walk from the end effector to world and return the chain base first."""
    ordered: list[Frame] = []
    seen: set[str] = set()
    current = end_effector
    while current != WORLD:
        if current in seen:
            raise ModelConfigError(f"infinite loop finding path from {end_effector!r} to world")
        if current not in transforms:
            raise ModelConfigError(f"parent {current!r} not found in model description")
        seen.add(current)
        ordered.append(transforms[current])
        current = parent_map[current]
    return list(reversed(ordered))


def unmarshal_model_json(data: bytes | str, model_name: str = "") -> SimpleModel:
    if len(data) == 0:
        raise ModelConfigError("no model information")
    try:
        config = ModelConfig.model_validate_json(data)
    except ValidationError as e:
        raise ModelConfigError(f"failed to unmarshal model description: {e}") from e
    return config.parse(model_name)


def parse_model_json_file(path: str | Path, model_name: str = "") -> SimpleModel:
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ModelConfigError(f"failed to read model file {path}: {e}") from e
    return unmarshal_model_json(data, model_name)


def model_from_dh_table(name: str, rows: Sequence[dict[str, Any]]) -> SimpleModel:
    """Convenience wrapper: build a DH model from plain dict rows."""
    chain = []
    parent = WORLD
    for row in rows:
        row = {"parent": parent, **row}
        chain.append(DHParamConfig.model_validate(row))
        parent = row["id"]
    return ModelConfig(name=name, kinematic_param_type="DH", dh_params=chain).parse()

