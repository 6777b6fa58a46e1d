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

from functools import cached_property
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GlobalConfig(BaseSettings):
    log_level: str = "INFO"
    log_dir: Path | None = None

    # Execution
    stop_timeout: float = Field(default=5.0, gt=0)
    default_linear_m_per_sec: float = Field(default=0.3, ge=0)
    default_angular_degs_per_sec: float = Field(default=60.0, ge=0)
    default_plan_deviation_m: float = Field(default=2.6, ge=0)
    default_position_polling_freq_hz: float = Field(default=1.0, ge=0)
    default_obstacle_polling_freq_hz: float = Field(default=1.0, ge=0)
    default_max_replans: int = -1

    # Planning
    ik_parallelism: int = 1
    planning_timeout: float = Field(default=10.0, gt=0)
    planning_max_iterations: int = Field(default=5000, gt=0)
    random_seed: int = 0

    model_config = SettingsConfigDict(
        env_prefix="KINOPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @cached_property
    def unbounded_replans(self) -> bool:
        return self.default_max_replans < 0


global_config = GlobalConfig()
