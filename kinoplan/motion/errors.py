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

from kinoplan.errors import KinoplanError


class MotionError(KinoplanError):
    """Base class for execution faults."""


class MotionConfigurationError(MotionError, ValueError):
    pass


class ActuationError(MotionError):
    """The actuator failed to reach a commanded configuration."""


class DetectorError(MotionError):
    """An obstacle detector could not be queried."""


class MotionCancelledError(MotionError):
    def __init__(self, message: str = "motion cancelled") -> None:
        super().__init__(message)


class StopFailedError(MotionError):
    """Stopping the actuator failed after an error or a cancellation.

    Both errors are kept: ``original`` is why the stop was issued and
    ``stop_error`` is what the stop raised (a ``TimeoutError`` when it did
    not return within the stop timeout).
    """

    def __init__(self, original: BaseException, stop_error: BaseException) -> None:
        self.original = original
        self.stop_error = stop_error
        super().__init__(f"{original}: stop failed: {stop_error}")
