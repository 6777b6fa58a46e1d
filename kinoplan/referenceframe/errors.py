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

from __future__ import annotations

from typing import TYPE_CHECKING

from kinoplan.errors import KinoplanError

if TYPE_CHECKING:
    from kinoplan.msgs.geometry_msgs import Pose
    from kinoplan.referenceframe.frame import Limit

OOB_ERR_STRING = "input out of bounds"


class FrameError(KinoplanError):
    """Base class for frame and frame-system errors."""


class IncorrectInputLengthError(FrameError, ValueError):
    def __init__(self, actual: int, expected: int, frame_name: str = "") -> None:
        self.actual = actual
        self.expected = expected
        self.frame_name = frame_name
        where = f" for frame {frame_name!r}" if frame_name else ""
        super().__init__(f"number of inputs does not match degrees of freedom{where}: "
                         f"expected {expected}, got {actual}")


class OutOfBoundsError(FrameError, ValueError):
    """An input lies outside its limit.

    ``pose`` carries the transform computed from the out-of-range input when
    the frame can still evaluate it.
    """

    def __init__(self, value: float, limit: Limit, frame_name: str = "", pose: Pose | None = None) -> None:
        self.value = value
        self.limit = limit
        self.frame_name = frame_name
        self.pose = pose
        where = f" (frame {frame_name!r})" if frame_name else ""
        super().__init__(f"{value:.5f} {OOB_ERR_STRING} {limit}{where}")


class FrameNotFoundError(FrameError, KeyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"frame {name!r} not found")

    def __str__(self) -> str:
        return str(self.args[0])


class DuplicateFrameError(FrameError, ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"frame with name {name!r} already in frame system")


class MissingInputsError(FrameError, KeyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"no inputs given for frame {name!r}")

    def __str__(self) -> str:
        return str(self.args[0])


class UnreachableFrameError(FrameError):
    def __init__(self, src: str, dst: str) -> None:
        super().__init__(f"no path from frame {src!r} to frame {dst!r}")


class UnsupportedJointTypeError(FrameError, ValueError):
    def __init__(self, joint_type: str) -> None:
        self.joint_type = joint_type
        super().__init__(f"unsupported joint type detected: {joint_type!r}")


class ModelConfigError(FrameError, ValueError):
    """A kinematic-chain description is malformed."""


class InvalidFrameError(FrameError, ValueError):
    """A frame was constructed with invalid parameters."""
