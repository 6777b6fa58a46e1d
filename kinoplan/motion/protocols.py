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

"""Collaborators a move request drives: the actuator and obstacle detectors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import threading

    from kinoplan.motion.configuration import KinematicOptions
    from kinoplan.motionplan.plan import Plan
    from kinoplan.msgs.geometry_msgs import Pose
    from kinoplan.referenceframe import Frame
    from kinoplan.spatialmath import Geometry


@runtime_checkable
class Actuator(Protocol):
    """Something that moves a frame of the frame system.

    ``kinematics()`` is the frame it drives; its name is the key of the
    actuator's inputs in a plan's waypoints.
    """

    @property
    def name(self) -> str: ...

    def kinematics(self) -> Frame: ...

    def configure(self, options: KinematicOptions) -> None:
        """Apply speeds and tolerances before executing a plan."""
        ...

    def current_inputs(self) -> list[float]: ...

    def current_pose(self) -> Pose:
        """Sensed pose of the actuated frame in the world."""
        ...

    def go_to_inputs(
        self, inputs: list[float], cancel_event: threading.Event | None = None
    ) -> None:
        """Block until ``inputs`` is reached or ``cancel_event`` is set. Raises on failure."""
        ...

    def stop(self, timeout: float) -> None: ...

    def error_state(self, plan: Plan, index: int) -> Pose:
        """Pose of the planned world in the sensed world at waypoint ``index``.

        Its translation is the Cartesian deviation from the plan.
        """
        ...


@runtime_checkable
class ObstacleDetector(Protocol):
    """A vision service returning obstacles seen by a camera, in camera coordinates."""

    @property
    def name(self) -> str: ...

    def detect_objects(self, source_name: str) -> list[Geometry]: ...
