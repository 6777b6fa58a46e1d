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

from kinoplan.referenceframe.errors import (
    OOB_ERR_STRING,
    DuplicateFrameError,
    FrameError,
    FrameNotFoundError,
    IncorrectInputLengthError,
    InvalidFrameError,
    MissingInputsError,
    ModelConfigError,
    OutOfBoundsError,
    UnreachableFrameError,
    UnsupportedJointTypeError,
)
from kinoplan.referenceframe.frame import (
    Frame,
    Inputs,
    LinearlyActuatedRotationalFrame,
    Limit,
    Mobile2DFrame,
    RotationalFrame,
    StaticFrame,
    TranslationalFrame,
    frame_from_dict,
    static_frame_from_frame,
)
from kinoplan.referenceframe.frame_system import FrameSystem, InputMap
from kinoplan.referenceframe.inputs import (
    get_frame_inputs,
    input_distance,
    interpolate_inputs,
    random_frame_inputs,
    restricted_random_frame_inputs,
    zero_inputs,
)
from kinoplan.referenceframe.model import (
    ModelConfig,
    SimpleModel,
    model_from_dh_table,
    parse_model_json_file,
    unmarshal_model_json,
)
from kinoplan.referenceframe.world_state import (
    DuplicateGeometryNameError,
    GeometriesInFrame,
    PoseInFrame,
    WorldState,
)

__all__ = [
    "OOB_ERR_STRING",
    "DuplicateFrameError",
    "DuplicateGeometryNameError",
    "Frame",
    "FrameError",
    "FrameNotFoundError",
    "FrameSystem",
    "GeometriesInFrame",
    "IncorrectInputLengthError",
    "InputMap",
    "Inputs",
    "InvalidFrameError",
    "Limit",
    "LinearlyActuatedRotationalFrame",
    "MissingInputsError",
    "Mobile2DFrame",
    "ModelConfig",
    "ModelConfigError",
    "OutOfBoundsError",
    "PoseInFrame",
    "RotationalFrame",
    "SimpleModel",
    "StaticFrame",
    "TranslationalFrame",
    "UnreachableFrameError",
    "UnsupportedJointTypeError",
    "WorldState",
    "frame_from_dict",
    "get_frame_inputs",
    "input_distance",
    "interpolate_inputs",
    "model_from_dh_table",
    "parse_model_json_file",
    "random_frame_inputs",
    "restricted_random_frame_inputs",
    "static_frame_from_frame",
    "unmarshal_model_json",
    "zero_inputs",
]
