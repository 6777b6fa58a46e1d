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

from collections.abc import Callable
import queue
import threading
from typing import TYPE_CHECKING, Any

from kinoplan.motion.state import ExecuteResponse, MoveResponse, WaypointIndex
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from kinoplan.motionplan.plan import Plan

ReplanCheck = Callable[["Plan", int], ExecuteResponse]


class Replanner:
    """Periodically runs a check against the plan being executed.

    The check runs every ``1 / freq_hz`` seconds, first after one period.
    Polling ends at the first check asking for a replan or raising, whose
    outcome is put on the responses queue, or when ``stop_event`` is set. A
    frequency of zero never polls.
    """

    def __init__(self, name: str, freq_hz: float, check: ReplanCheck, logger: Any = None) -> None:
        self._name = name
        self._freq_hz = freq_hz
        self._check = check
        self._logger = logger or setup_logger()

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        return self._freq_hz > 0

    def start_polling(
        self,
        stop_event: threading.Event,
        plan: Plan,
        waypoint_index: WaypointIndex,
        responses: queue.Queue[MoveResponse],
    ) -> None:
        if not self.enabled:
            return
        interval = 1.0 / self._freq_hz
        while not stop_event.wait(interval):
            index = waypoint_index.get()
            try:
                response = self._check(plan, index)
            except Exception as e:
                self._logger.warning("poller check failed", poller=self._name, error=str(e))
                responses.put(MoveResponse(self._name, error=e))
                return
            if response.replan:
                self._logger.info(
                    "replan requested", poller=self._name, waypoint=index, reason=response.reason
                )
                responses.put(MoveResponse(self._name, response))
                return
