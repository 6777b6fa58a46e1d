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

import queue
import threading

import pytest

from kinoplan.motion.replanner import Replanner
from kinoplan.motion.state import ExecuteResponse, ReplanCause, WaitGroup, WaypointIndex


def test_waypoint_index_starts_after_start_configuration():
    index = WaypointIndex()
    assert index.get() == 1
    assert index.increment() == 2
    index.reset()
    assert index.get() == 1


def test_wait_group_joins_workers():
    group = WaitGroup()
    release = threading.Event()
    finished = []

    for i in range(3):
        group.go(lambda n: (release.wait(), finished.append(n)), i, name=f"worker-{i}")

    assert not group.wait(timeout=0.05)
    release.set()
    assert group.wait(timeout=5.0)
    assert sorted(finished) == [0, 1, 2]


def test_wait_group_rejects_extra_done():
    with pytest.raises(ValueError):
        WaitGroup().done()


class TestReplanner:
    def test_zero_frequency_never_polls(self, straight_plan):
        calls = []
        replanner = Replanner("position", 0.0, lambda plan, i: calls.append(i) or ExecuteResponse())
        responses = queue.Queue()

        replanner.start_polling(threading.Event(), straight_plan, WaypointIndex(), responses)

        assert calls == []
        assert responses.empty()
        assert not replanner.enabled

    def test_polls_until_replan(self, straight_plan):
        calls = []

        def check(plan, index):
            calls.append(index)
            if len(calls) < 3:
                return ExecuteResponse()
            return ExecuteResponse(True, "moved", ReplanCause.DEVIATION)

        responses = queue.Queue()
        Replanner("position", 200.0, check).start_polling(
            threading.Event(), straight_plan, WaypointIndex(4), responses
        )

        assert calls == [4, 4, 4]
        response = responses.get_nowait()
        assert response.source == "position"
        assert response.response == ExecuteResponse(True, "moved", ReplanCause.DEVIATION)
        assert response.error is None

    def test_check_error_is_reported(self, straight_plan):
        def check(plan, index):
            raise RuntimeError("camera unplugged")

        responses = queue.Queue()
        Replanner("obstacle", 200.0, check).start_polling(
            threading.Event(), straight_plan, WaypointIndex(), responses
        )

        response = responses.get_nowait()
        assert isinstance(response.error, RuntimeError)

    def test_stop_event_ends_polling(self, straight_plan):
        stop_event = threading.Event()
        stop_event.set()
        calls = []
        responses = queue.Queue()

        Replanner("position", 1.0, lambda plan, i: calls.append(i)).start_polling(
            stop_event, straight_plan, WaypointIndex(), responses
        )

        assert calls == []
        assert responses.empty()
