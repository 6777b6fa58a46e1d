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

"""Gradient-based inverse kinematics with random restarts.

NumericalIKSolver minimises ``metric(frame.transform(q), goal)`` over the
frame's inputs with scipy's bounded L-BFGS-B. The first attempt starts from
the seed; later attempts start from inputs drawn from a seeded RNG, so a
given ``rand_seed`` always explores the same starts in the same order.
"""

from __future__ import annotations

import math
import queue
import threading
from typing import TYPE_CHECKING, Any

import numpy as np
from scipy.optimize import minimize

from kinoplan.motionplan.spec import IKOptions
from kinoplan.referenceframe import random_frame_inputs
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from kinoplan.motionplan.spec import Metric
    from kinoplan.msgs.geometry_msgs import Pose
    from kinoplan.referenceframe import Frame

# How long a blocked queue put waits before re-checking for cancellation.
PUT_POLL_INTERVAL = 0.05

MAX_OPTIMIZER_ITERATIONS = 500


def put_solution(
    solutions_queue: queue.Queue[list[float]],
    solution: list[float],
    cancel_event: threading.Event,
) -> bool:
    """Block until ``solution`` is queued; False if cancelled first."""
    while not cancel_event.is_set():
        try:
            solutions_queue.put(solution, timeout=PUT_POLL_INTERVAL)
            return True
        except queue.Full:
            continue
    return False


class NumericalIKSolver:
    def __init__(self, frame: Frame, options: IKOptions | None = None, logger: Any = None) -> None:
        if not frame.dof():
            raise ValueError(f"frame {frame.name!r} has no inputs to solve for")
        self._frame = frame
        self._options = options or IKOptions()
        self._logger = logger or setup_logger()

        limits = frame.dof()
        self._lower = np.array([limit.min for limit in limits], dtype=np.float64)
        self._upper = np.array([limit.max for limit in limits], dtype=np.float64)
        self._bounds = [
            (
                limit.min if math.isfinite(limit.min) else None,
                limit.max if math.isfinite(limit.max) else None,
            )
            for limit in limits
        ]

    def frame(self) -> Frame:
        return self._frame

    def options(self) -> IKOptions:
        return self._options

    def _clip(self, q: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.clip(q, self._lower, self._upper)

    def _cost(self, q: NDArray[np.float64], goal: Pose, metric: Metric) -> float:
        return metric(self._frame.transform(self._clip(q).tolist()), goal)

    def _optimize(
        self,
        start: NDArray[np.float64],
        goal: Pose,
        metric: Metric,
        cancel_event: threading.Event,
    ) -> NDArray[np.float64]:
        def stop_if_cancelled(intermediate_result: Any) -> None:
            if cancel_event.is_set():
                raise StopIteration

        result = minimize(
            self._cost,
            self._clip(start),
            args=(goal, metric),
            method="L-BFGS-B",
            bounds=self._bounds,
            callback=stop_if_cancelled,
            options={"ftol": 1e-14, "gtol": 1e-12, "maxiter": MAX_OPTIMIZER_ITERATIONS},
        )
        return self._clip(np.asarray(result.x, dtype=np.float64))

    def solve(
        self,
        cancel_event: threading.Event,
        solutions_queue: queue.Queue[list[float]],
        goal: Pose,
        seed: list[float],
        metric: Metric,
        rand_seed: int,
    ) -> None:
        self._frame.check_input_length(seed)
        rng = np.random.default_rng(rand_seed)
        found: list[NDArray[np.float64]] = []
        start = np.asarray(seed, dtype=np.float64)

        for attempt in range(self._options.restarts + 1):
            if cancel_event.is_set() or len(found) >= self._options.max_solutions:
                break
            if attempt > 0:
                start = np.asarray(random_frame_inputs(self._frame, rng), dtype=np.float64)

            q = self._optimize(start, goal, metric, cancel_event)
            if cancel_event.is_set():
                break
            if self._cost(q, goal, metric) > self._options.goal_threshold:
                continue
            if any(
                np.linalg.norm(q - other) < self._options.solution_dedupe_tolerance
                for other in found
            ):
                continue

            found.append(q)
            if not put_solution(solutions_queue, q.tolist(), cancel_event):
                break

        self._logger.debug(
            "ik solver finished", frame=self._frame.name, solutions=len(found), rand_seed=rand_seed
        )
