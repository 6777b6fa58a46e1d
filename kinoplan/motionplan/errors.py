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

from collections.abc import Sequence
from typing import TYPE_CHECKING

from kinoplan.errors import KinoplanError

if TYPE_CHECKING:
    from kinoplan.motionplan.spec.enums import PlanningStatus


class MotionPlanError(KinoplanError):
    """Base class for search failures and plan checks."""


class IKSolveError(MotionPlanError):
    def __init__(self, message: str = "") -> None:
        super().__init__(
            message
            or "zero IK solutions produced, goal positions appears to be physically unreachable"
        )


class PlannerFailedError(MotionPlanError):
    def __init__(self, status: PlanningStatus, message: str, iterations: int = 0) -> None:
        self.status = status
        self.iterations = iterations
        super().__init__(f"{message} ({status.name.lower()})")


class ReplanCostExceededError(PlannerFailedError):
    def __init__(self, status: PlanningStatus, cost: float, limit: float) -> None:
        self.cost = cost
        self.limit = limit
        super().__init__(status, f"replan cost {cost:.4f} exceeds allowed {limit:.4f}")


class ReplanBudgetExceededError(MotionPlanError):
    def __init__(self, max_replans: int) -> None:
        self.max_replans = max_replans
        super().__init__(f"exceeded maximum number of replans: {max_replans}")


class PlanCollisionError(MotionPlanError):
    """The remaining plan collides with a geometry.

    ``waypoint`` is the index, within the checked plan, of the segment end
    where the collision was found.
    """

    def __init__(self, labels: Sequence[tuple[str, str]], waypoint: int) -> None:
        self.labels = list(labels)
        self.waypoint = waypoint
        pairs = ", ".join(f"{a} <-> {b}" for a, b in self.labels)
        super().__init__(f"found collision between {pairs} at waypoint {waypoint}")

    def obstacle_names(self) -> list[str]:
        return sorted({name for pair in self.labels for name in pair})
