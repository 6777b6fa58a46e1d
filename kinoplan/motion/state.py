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

"""Shared execution state: responses, the waypoint index and a wait group."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import threading
from typing import Any


class ReplanCause(Enum):
    DEVIATION = "deviation"
    OBSTACLE = "obstacle"


@dataclass(frozen=True)
class ExecuteResponse:
    """Outcome of executing or monitoring a plan.

    ``replan`` is set when the plan should be discarded and a new one made;
    ``reason`` and ``cause`` then say why.
    """

    replan: bool = False
    reason: str = ""
    cause: ReplanCause | None = None


@dataclass(frozen=True)
class MoveResponse:
    """A response from one of the workers of an execution, or the error it raised."""

    source: str
    response: ExecuteResponse = ExecuteResponse()
    error: BaseException | None = None


class WaypointIndex:
    """Index of the waypoint being driven to.

    Only the actuation loop advances it; pollers read it. Waypoint 0 is the
    start configuration, so execution begins at 1.
    """

    def __init__(self, start: int = 1) -> None:
        self._lock = threading.Lock()
        self._value = start

    def get(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def reset(self, value: int = 1) -> None:
        with self._lock:
            self._value = value


class WaitGroup:
    """Counts running workers and joins them."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._count = 0
        self._threads: list[threading.Thread] = []

    def add(self, n: int = 1) -> None:
        with self._cond:
            self._count += n

    def done(self) -> None:
        with self._cond:
            if self._count <= 0:
                raise ValueError("negative WaitGroup counter")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def go(self, target: Callable[..., Any], *args: Any, name: str | None = None) -> None:
        """Run ``target`` in a new thread counted by this group."""

        def run() -> None:
            try:
                target(*args)
            finally:
                self.done()

        self.add()
        thread = threading.Thread(target=run, name=name, daemon=True)
        with self._cond:
            self._threads.append(thread)
        thread.start()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every worker finished. False if ``timeout`` expired first."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._count == 0, timeout):
                return False
            threads, self._threads = self._threads, []
        for thread in threads:
            thread.join()
        return True
