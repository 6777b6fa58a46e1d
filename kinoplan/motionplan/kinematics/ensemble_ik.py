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

"""Several numerical IK solvers racing on one goal."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from kinoplan.motionplan.kinematics.numerical_ik import NumericalIKSolver
from kinoplan.motionplan.spec import IKOptions
from kinoplan.utils.logging_config import setup_logger

if TYPE_CHECKING:
    import queue

    from kinoplan.motionplan.spec import Metric
    from kinoplan.msgs.geometry_msgs import Pose
    from kinoplan.referenceframe import Frame


class EnsembleIKSolver:
    """Runs ``options.parallelism`` NumericalIKSolvers in threads.

    Solver ``i`` is seeded with ``rand_seed + i`` and all of them push onto
    the caller's queue, so the arrival order of solutions depends on thread
    scheduling while the set each solver can produce does not.
    """

    def __init__(self, frame: Frame, options: IKOptions | None = None, logger: Any = None) -> None:
        self._options = options or IKOptions()
        self._logger = logger or setup_logger()
        self._solvers = [
            NumericalIKSolver(frame, self._options, self._logger)
            for _ in range(max(self._options.parallelism, 1))
        ]
        self._frame = frame

    def frame(self) -> Frame:
        return self._frame

    def options(self) -> IKOptions:
        return self._options

    def solve(
        self,
        cancel_event: threading.Event,
        solutions_queue: queue.Queue[list[float]],
        goal: Pose,
        seed: list[float],
        metric: Metric,
        rand_seed: int,
    ) -> None:
        errors: list[BaseException] = []

        def run(solver: NumericalIKSolver, solver_seed: int) -> None:
            try:
                solver.solve(cancel_event, solutions_queue, goal, seed, metric, solver_seed)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(
                target=run,
                args=(solver, rand_seed + i),
                name=f"ik-ensemble-{self._frame.name}-{i}",
                daemon=True,
            )
            for i, solver in enumerate(self._solvers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        if errors:
            raise errors[0]
