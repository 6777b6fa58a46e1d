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

"""
Motion

Executes plans on an actuator while watching for deviation and new
obstacles, replanning when either shows up.

## Usage

```python
from kinoplan.motion import MotionConfiguration, MotionSupervisor, ObstacleDetectorName

supervisor = MotionSupervisor(base, fs, detectors={"vision": detector})
supervisor.state_changes.subscribe(print)
supervisor.move(
    PoseInFrame("world", goal),
    motion_configuration=MotionConfiguration(
        obstacle_detectors=[ObstacleDetectorName(vision_service="vision", camera="front")],
        obstacle_polling_freq_hz=5,
    ),
)
```
"""

from kinoplan.motion.configuration import (
    KinematicOptions,
    MotionConfiguration,
    ObstacleDetectorName,
    ValidatedMotionConfiguration,
)
from kinoplan.motion.errors import (
    ActuationError,
    DetectorError,
    MotionCancelledError,
    MotionConfigurationError,
    MotionError,
    StopFailedError,
)
from kinoplan.motion.fakes import FakeActuator, FakeObstacleDetector
from kinoplan.motion.move_request import MoveRequest
from kinoplan.motion.protocols import Actuator, ObstacleDetector
from kinoplan.motion.replanner import Replanner
from kinoplan.motion.state import ExecuteResponse, ReplanCause, WaitGroup, WaypointIndex
from kinoplan.motion.supervisor import MotionState, MotionSupervisor

__all__ = [
    "ActuationError",
    "Actuator",
    "DetectorError",
    "ExecuteResponse",
    "FakeActuator",
    "FakeObstacleDetector",
    "KinematicOptions",
    "MotionCancelledError",
    "MotionConfiguration",
    "MotionConfigurationError",
    "MotionError",
    "MotionState",
    "MotionSupervisor",
    "MoveRequest",
    "ObstacleDetector",
    "ObstacleDetectorName",
    "ReplanCause",
    "Replanner",
    "StopFailedError",
    "ValidatedMotionConfiguration",
    "WaitGroup",
    "WaypointIndex",
]
