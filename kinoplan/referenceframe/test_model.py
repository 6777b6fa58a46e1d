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

import json
import math

import pytest

from kinoplan.referenceframe import (
    ModelConfigError,
    OutOfBoundsError,
    RotationalFrame,
    SimpleModel,
    StaticFrame,
    UnsupportedJointTypeError,
    frame_from_dict,
    model_from_dh_table,
    parse_model_json_file,
    unmarshal_model_json,
)


def arm_document(**overrides):
    doc = {
        "name": "arm",
        "links": [
            {
                "id": "base",
                "parent": "world",
                "translation": {"x": 0, "y": 0, "z": 1},
                "geometry": {"type": "box", "x": 0.2, "y": 0.2, "z": 0.2},
            },
            {
                "id": "upper",
                "parent": "shoulder",
                "translation": {"x": 1, "y": 0, "z": 0},
                "geometry": {"type": "capsule", "r": 0.05, "l": 0.5},
            },
        ],
        "joints": [
            {
                "id": "shoulder",
                "type": "revolute",
                "parent": "base",
                "axis": {"x": 0, "y": 0, "z": 1},
                "min": -180,
                "max": 180,
            }
        ],
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def arm() -> SimpleModel:
    return unmarshal_model_json(json.dumps(arm_document()))


class TestSVAParsing:
    def test_chain_order(self, arm):
        names = [frame.name for frame in arm.ordered_transforms()]
        assert names == ["base", "shoulder", "upper"]
        assert arm.name == "arm"
        assert len(arm.dof()) == 1

    def test_revolute_limits_are_degrees(self, arm):
        limit = arm.dof()[0]
        assert limit.min == pytest.approx(-math.pi)
        assert limit.max == pytest.approx(math.pi)

    def test_forward_kinematics(self, arm):
        assert arm.transform([0.0]).point() == pytest.approx([1.0, 0.0, 1.0])
        assert arm.transform([math.pi / 2]).point() == pytest.approx([0.0, 1.0, 1.0])

    def test_out_of_bounds_from_joint(self, arm):
        with pytest.raises(OutOfBoundsError) as exc_info:
            arm.transform([4.0])
        assert exc_info.value.frame_name == "shoulder"

    def test_geometries_in_parent(self, arm):
        geometries = {g.label: g for g in arm.geometries_in_parent([math.pi / 2])}
        assert set(geometries) == {"arm:base", "arm:upper"}
        assert geometries["arm:base"].pose.point() == pytest.approx([0.0, 0.0, 1.0])
        assert geometries["arm:upper"].pose.point() == pytest.approx([0.0, 1.0, 1.0])

    def test_geometries_in_end_effector_frame(self, arm):
        local = arm.geometries([0.0])
        assert local.parent == "arm"
        by_label = local.geometry_by_label()
        assert by_label["arm:upper"].pose.point() == pytest.approx([0.0, 0.0, 0.0])
        assert by_label["arm:base"].pose.point() == pytest.approx([-1.0, 0.0, 0.0])

    def test_model_name_override(self):
        model = unmarshal_model_json(json.dumps(arm_document()), "renamed")
        assert model.name == "renamed"

    def test_round_trip(self, arm):
        restored = frame_from_dict(arm.to_dict())
        assert isinstance(restored, SimpleModel)
        assert restored.almost_equals(arm)
        assert restored.transform([0.3]).almost_equal(arm.transform([0.3]))

    def test_parse_from_file(self, tmp_path):
        path = tmp_path / "arm.json"
        path.write_text(json.dumps(arm_document()))
        assert parse_model_json_file(path).transform([0.0]).point() == pytest.approx([1.0, 0.0, 1.0])

    def test_joint_types(self):
        doc = arm_document(
            joints=[
                {"id": "shoulder", "type": "continuous", "parent": "base"},
            ]
        )
        model = unmarshal_model_json(json.dumps(doc))
        assert model.dof()[0].max == pytest.approx(2 * math.pi)

        doc = arm_document(joints=[{"id": "shoulder", "type": "fixed", "parent": "base"}])
        model = unmarshal_model_json(json.dumps(doc))
        assert model.dof() == []
        assert isinstance(model.ordered_transforms()[1], StaticFrame)

        doc = arm_document(
            joints=[
                {
                    "id": "shoulder",
                    "type": "prismatic",
                    "parent": "base",
                    "axis": {"x": 0, "y": 0, "z": 1},
                    "min": 0,
                    "max": 2,
                }
            ]
        )
        model = unmarshal_model_json(json.dumps(doc))
        assert model.transform([0.5]).point() == pytest.approx([1.0, 0.0, 1.5])


class TestParsingErrors:
    def test_reserved_world_link(self):
        doc = arm_document()
        doc["links"][0]["id"] = "world"
        with pytest.raises(ModelConfigError, match="reserved word"):
            unmarshal_model_json(json.dumps(doc))

    def test_reserved_world_joint(self):
        doc = arm_document()
        doc["joints"][0]["id"] = "world"
        with pytest.raises(ModelConfigError, match="reserved word"):
            unmarshal_model_json(json.dumps(doc))

    def test_two_end_effectors(self):
        doc = arm_document()
        doc["links"].append({"id": "extra", "parent": "base"})
        with pytest.raises(ModelConfigError, match="more than one end effector"):
            unmarshal_model_json(json.dumps(doc))

    def test_no_end_effector(self):
        doc = {
            "links": [{"id": "a", "parent": "b"}, {"id": "b", "parent": "a"}],
        }
        with pytest.raises(ModelConfigError, match="at least one end effector"):
            unmarshal_model_json(json.dumps(doc))

    def test_cycle(self):
        doc = {
            "links": [
                {"id": "a", "parent": "b"},
                {"id": "b", "parent": "a"},
                {"id": "tip", "parent": "a"},
            ],
        }
        with pytest.raises(ModelConfigError, match="infinite loop"):
            unmarshal_model_json(json.dumps(doc))

    def test_missing_parent(self):
        doc = {"links": [{"id": "tip", "parent": "ghost"}]}
        with pytest.raises(ModelConfigError, match="ghost"):
            unmarshal_model_json(json.dumps(doc))

    def test_unknown_joint_type(self):
        doc = arm_document()
        doc["joints"][0]["type"] = "spherical"
        with pytest.raises(UnsupportedJointTypeError):
            unmarshal_model_json(json.dumps(doc))

    def test_unsupported_param_type(self):
        with pytest.raises(ModelConfigError):
            unmarshal_model_json(json.dumps({"kinematic_param_type": "URDF", "links": []}))

    def test_empty_document(self):
        with pytest.raises(ModelConfigError):
            unmarshal_model_json(b"")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ModelConfigError):
            parse_model_json_file(tmp_path / "nope.json")


class TestDHParsing:
    @pytest.fixture
    def planar(self):
        return model_from_dh_table(
            "planar",
            [
                {"id": "l1", "a": 1.0, "min": -180, "max": 180},
                {"id": "l2", "a": 1.0, "min": -180, "max": 180},
            ],
        )

    def test_frames(self, planar):
        names = [frame.name for frame in planar.ordered_transforms()]
        assert names == ["l1_j", "l1", "l2_j", "l2"]
        assert isinstance(planar.ordered_transforms()[0], RotationalFrame)
        assert len(planar.dof()) == 2

    def test_forward_kinematics(self, planar):
        assert planar.transform([0.0, 0.0]).point() == pytest.approx([2.0, 0.0, 0.0])
        assert planar.transform([math.pi / 2, 0.0]).point() == pytest.approx([0.0, 2.0, 0.0])
        assert planar.transform([0.0, math.pi / 2]).point() == pytest.approx([1.0, 1.0, 0.0])

    def test_json_alias(self):
        doc = {
            "name": "dh",
            "kinematic_param_type": "DH",
            "dhParams": [
                {"id": "l1", "parent": "world", "a": 0.0, "d": 0.5, "alpha": 90, "min": -90, "max": 90},
            ],
        }
        model = unmarshal_model_json(json.dumps(doc))
        assert model.transform([0.0]).point() == pytest.approx([0.0, 0.0, 0.5])
        assert model.dof()[0].max == pytest.approx(math.pi / 2)

    def test_world_reserved(self):
        with pytest.raises(ModelConfigError, match="reserved word"):
            model_from_dh_table("bad", [{"id": "world"}])
