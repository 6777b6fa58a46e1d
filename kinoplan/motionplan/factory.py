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

"""Factory functions for motion planning components."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kinoplan.motionplan.spec import IKOptions, InverseKinematicsSolver, PlannerSpec
    from kinoplan.referenceframe import Frame


def create_planner(name: str = "cbirrt", **kwargs: Any) -> PlannerSpec:
    """Create planner. name='cbirrt'."""
    if name == "cbirrt":
        from kinoplan.motionplan.planners.rrt_planner import CBiRRTPlanner

        return CBiRRTPlanner(**kwargs)
    else:
        raise ValueError(f"Unknown planner: {name}. Available: ['cbirrt']")


def create_kinematics(
    frame: Frame,
    name: str = "auto",
    options: IKOptions | None = None,
    logger: Any = None,
) -> InverseKinematicsSolver:
    """Create IK solver. name='auto'|'numerical'|'ensemble'; 'auto' picks by parallelism."""
    if name == "auto":
        from kinoplan.motionplan.kinematics import new_ik_solver

        return new_ik_solver(frame, options, logger)
    elif name == "numerical":
        from kinoplan.motionplan.kinematics import NumericalIKSolver

        return NumericalIKSolver(frame, options, logger)
    elif name == "ensemble":
        from kinoplan.motionplan.kinematics import EnsembleIKSolver

        return EnsembleIKSolver(frame, options, logger)
    else:
        raise ValueError(
            f"Unknown kinematics solver: {name}. Available: ['auto', 'numerical', 'ensemble']"
        )
