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

"""Motion planning specifications."""

from kinoplan.motionplan.spec.config import IKOptions, PlannerOptions
from kinoplan.motionplan.spec.constraints import (
    AllowedFrameCollisions,
    CollisionSpecification,
    Constraints,
    LinearConstraint,
    OrientationConstraint,
)
from kinoplan.motionplan.spec.enums import PlanningStatus
from kinoplan.motionplan.spec.protocols import InverseKinematicsSolver, PlannerSpec
from kinoplan.motionplan.spec.types import (
    Metric,
    SegmentConstraint,
    SegmentInput,
    SegmentMetric,
    StateConstraint,
    StateInput,
    StateMetric,
)

__all__ = [
    "AllowedFrameCollisions",
    "CollisionSpecification",
    "Constraints",
    "IKOptions",
    "InverseKinematicsSolver",
    "LinearConstraint",
    "Metric",
    "OrientationConstraint",
    "PlannerOptions",
    "PlannerSpec",
    "PlanningStatus",
    "SegmentConstraint",
    "SegmentInput",
    "SegmentMetric",
    "StateConstraint",
    "StateInput",
    "StateMetric",
]
