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

"""In-memory actuator and obstacle detector for tests and examples."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import threading
import time
from typing import TYPE_CHECKING

import numpy as np

from kinoplan.constants import WORLD
from kinoplan.motion.errors import ActuationError
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.referenceframe import get_frame_inputs, zero_inputs

if TYPE_CHECKING:
    from kinoplan.motion.configuration import KinematicOptions
    from kinoplan.motionplan.plan import Plan
    from kinoplan.referenceframe import Frame, FrameSystem
    from kinoplan.spatialmath import Geometry

# Wall-clock step of a simulated move.
TICK_S = 0.01


class FakeActuator:
    """Moves its frame's inputs in memory.

    With a ``speed`` (input units per second) moves take time and can be
    cut short by the cancel event; without one they are instantaneous.
    ``drift`` is added to every sensed pose, so a non-identity drift is
    seen as deviation from the plan.
    """

    def __init__(
        self,
        frame: Frame,
        fs: FrameSystem | None = None,
        start_inputs: Sequence[float] | None = None,
        speed: float | None = None,
        drift: Pose | None = None,
        fail_after: int | None = None,
        stop_error: BaseException | None = None,
    ) -> None:
        self._frame = frame
        self._fs = fs
        self._lock = threading.Lock()
        self._inputs = list(start_inputs) if start_inputs is not None else zero_inputs(frame)
        frame.check_input_length(self._inputs)
        self._speed = speed
        self._drift = drift or Pose()
        self._fail_after = fail_after
        self._stop_error = stop_error

        self.options: KinematicOptions | None = None
        self.commands: list[list[float]] = []
        self.stop_calls = 0

    @property
    def name(self) -> str:
        return self._frame.name

    def kinematics(self) -> Frame:
        return self._frame

    def configure(self, options: KinematicOptions) -> None:
        self.options = options

    def current_inputs(self) -> list[float]:
        with self._lock:
            return list(self._inputs)

    def current_pose(self) -> Pose:
        return self._drift + self._pose_for(self.current_inputs())

    def _pose_for(self, inputs: Sequence[float]) -> Pose:
        if self._fs is None:
            return self._frame.transform(list(inputs))
        positions = self._fs.start_positions()
        positions[self.name] = list(inputs)
        return self._fs.transform_frame(positions, self.name, WORLD).pose

    def go_to_inputs(
        self, inputs: list[float], cancel_event: threading.Event | None = None
    ) -> None:
        self._frame.check_input_length(inputs)
        if self._fail_after is not None and len(self.commands) >= self._fail_after:
            raise ActuationError(f"{self.name} failed to reach {list(inputs)}")
        self.commands.append(list(inputs))

        target = np.asarray(inputs, dtype=float)
        if not self._speed:
            with self._lock:
                self._inputs = target.tolist()
            return

        while cancel_event is None or not cancel_event.is_set():
            with self._lock:
                current = np.asarray(self._inputs, dtype=float)
                delta = target - current
                distance = float(np.linalg.norm(delta))
                step = self._speed * TICK_S
                if distance <= step:
                    self._inputs = target.tolist()
                    return
                self._inputs = (current + delta * (step / distance)).tolist()
            time.sleep(TICK_S)

    def stop(self, timeout: float) -> None:
        self.stop_calls += 1
        if self._stop_error is not None:
            raise self._stop_error

    def error_state(self, plan: Plan, index: int) -> Pose:
        """Sensed pose against the closest point of the segment ending at waypoint ``index``."""
        end = np.asarray(get_frame_inputs(self._frame, plan[index]), dtype=float)
        start = end
        if index > 0:
            start = np.asarray(get_frame_inputs(self._frame, plan[index - 1]), dtype=float)
        current = np.asarray(self.current_inputs(), dtype=float)
        segment = end - start
        length_sq = float(np.dot(segment, segment))
        t = 0.0
        if length_sq > 0:
            t = float(np.clip(np.dot(current - start, segment) / length_sq, 0.0, 1.0))
        expected = self._pose_for((start + t * segment).tolist())
        return self.current_pose() + expected.inverse()


class FakeObstacleDetector:
    """Reports fixed world obstacles as seen from a camera.

    ``camera_pose`` returns the camera's pose in the world, typically the
    sensed pose of the actuator carrying it; detections are returned in
    camera coordinates.
    """

    def __init__(
        self,
        name: str,
        obstacles: Sequence[Geometry],
        camera_pose: Callable[[], Pose] = Pose,
        error: BaseException | None = None,
    ) -> None:
        self._name = name
        self._obstacles = list(obstacles)
        self._camera_pose = camera_pose
        self._error = error
        self.queries: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def set_obstacles(self, obstacles: Sequence[Geometry]) -> None:
        self._obstacles = list(obstacles)

    def detect_objects(self, source_name: str) -> list[Geometry]:
        self.queries.append(source_name)
        if self._error is not None:
            raise self._error
        to_camera = self._camera_pose().inverse()
        return [g.transform(to_camera) for g in self._obstacles]
