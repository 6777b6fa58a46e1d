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

"""Motion configuration as supplied by callers, and its validated form."""

from __future__ import annotations

from dataclasses import dataclass, field
import math

from pydantic import BaseModel, ConfigDict, Field

from kinoplan.core.global_config import GlobalConfig, global_config
from kinoplan.motion.errors import MotionConfigurationError

# Heading error tolerated by a base before it turns in place.
HEADING_THRESHOLD_DEGS = 8.0


class ObstacleDetectorName(BaseModel):
    """A vision service and the camera it should be queried with."""

    model_config = ConfigDict(frozen=True)

    vision_service: str
    camera: str


class MotionConfiguration(BaseModel):
    """Execution tuning for one move. Zero means "use the default"."""

    obstacle_detectors: list[ObstacleDetectorName] | None = None
    position_polling_freq_hz: float = 0.0
    obstacle_polling_freq_hz: float = 0.0
    plan_deviation_m: float = 0.0
    linear_m_per_sec: float = 0.0
    angular_degs_per_sec: float = 0.0
    max_replans: int | None = Field(default=None)

    def validate_for_execution(
        self, config: GlobalConfig = global_config
    ) -> ValidatedMotionConfiguration:
        """Check the values and fill in defaults from ``config``.

        Raises:
            MotionConfigurationError: A value is negative or NaN
        """
        for name in (
            "linear_m_per_sec",
            "angular_degs_per_sec",
            "plan_deviation_m",
            "obstacle_polling_freq_hz",
            "position_polling_freq_hz",
        ):
            _validate_not_neg_nor_nan(getattr(self, name), name)

        return ValidatedMotionConfiguration(
            obstacle_detectors=list(self.obstacle_detectors or []),
            position_polling_freq_hz=self.position_polling_freq_hz
            or config.default_position_polling_freq_hz,
            obstacle_polling_freq_hz=self.obstacle_polling_freq_hz
            or config.default_obstacle_polling_freq_hz,
            plan_deviation_m=self.plan_deviation_m or config.default_plan_deviation_m,
            linear_m_per_sec=self.linear_m_per_sec or config.default_linear_m_per_sec,
            angular_degs_per_sec=self.angular_degs_per_sec or config.default_angular_degs_per_sec,
            max_replans=(
                self.max_replans if self.max_replans is not None else config.default_max_replans
            ),
            stop_timeout=config.stop_timeout,
        )


def _validate_not_neg_nor_nan(value: float, name: str) -> None:
    if math.isnan(value):
        raise MotionConfigurationError(f"{name} may not be NaN")
    if value < 0:
        raise MotionConfigurationError(f"{name} may not be negative")


@dataclass(frozen=True)
class ValidatedMotionConfiguration:
    obstacle_detectors: list[ObstacleDetectorName] = field(default_factory=list)
    position_polling_freq_hz: float = 0.0
    obstacle_polling_freq_hz: float = 0.0
    plan_deviation_m: float = 0.0
    linear_m_per_sec: float = 0.0
    angular_degs_per_sec: float = 0.0
    max_replans: int = -1
    stop_timeout: float = 5.0

    @property
    def unbounded_replans(self) -> bool:
        return self.max_replans < 0

    def kinematic_options(self) -> KinematicOptions:
        return KinematicOptions(
            linear_m_per_sec=self.linear_m_per_sec,
            angular_degs_per_sec=self.angular_degs_per_sec,
            plan_deviation_m=self.plan_deviation_m,
            goal_radius_m=self.plan_deviation_m,
        )


@dataclass(frozen=True)
class KinematicOptions:
    """Speeds and tolerances handed to an actuator before it executes a plan."""

    linear_m_per_sec: float
    angular_degs_per_sec: float
    plan_deviation_m: float
    goal_radius_m: float
    heading_threshold_degs: float = HEADING_THRESHOLD_DEGS
