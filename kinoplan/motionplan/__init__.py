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

"""
Motion Planning

Constraints, collision checking, IK and sampling-based planning over a
frame system.

## Usage

```python
from kinoplan.motionplan import PlanRequest, plan_motion
from kinoplan.referenceframe import PoseInFrame

plan = plan_motion(PlanRequest(PoseInFrame("world", goal), "gripper", fs, inputs, world_state))
```
"""

from kinoplan.motionplan.collision import Collision, CollisionGraph
from kinoplan.motionplan.constraint import (
    DEFAULT_COLLISION_CONSTRAINT_NAME,
    CollisionConstraint,
    ConstraintHandler,
    new_absolute_linear_interpolating_constraint,
    new_collision_constraint_from_world_state,
    new_line_constraint,
    new_obstacle_constraint,
    new_plane_constraint,
    new_proportional_linear_interpolating_constraint,
    new_self_collision_constraint,
    new_slerp_orientation_constraint,
)
from kinoplan.motionplan.errors import (
    IKSolveError,
    MotionPlanError,
    PlanCollisionError,
    PlannerFailedError,
    ReplanBudgetExceededError,
    ReplanCostExceededError,
)
from kinoplan.motionplan.factory import create_kinematics, create_planner
from kinoplan.motionplan.kinematics import (
    EnsembleIKSolver,
    NumericalIKSolver,
    best_ik_solutions,
    new_ik_solver,
)
from kinoplan.motionplan.metrics import (
    ORIENTATION_DISTANCE_SCALING,
    path_step_count,
    squared_norm_metric,
)
from kinoplan.motionplan.plan import Plan, check_plan
from kinoplan.motionplan.planners import CBiRRTPlanner
from kinoplan.motionplan.planning import PlanRequest, plan_motion, replan
from kinoplan.motionplan.solver_frame import SolverFrame
from kinoplan.motionplan.spec import (
    Constraints,
    IKOptions,
    PlannerOptions,
    PlanningStatus,
    SegmentInput,
    StateInput,
)

__all__ = [
    "DEFAULT_COLLISION_CONSTRAINT_NAME",
    "ORIENTATION_DISTANCE_SCALING",
    "CBiRRTPlanner",
    "Collision",
    "CollisionConstraint",
    "CollisionGraph",
    "ConstraintHandler",
    "Constraints",
    "EnsembleIKSolver",
    "IKOptions",
    "IKSolveError",
    "MotionPlanError",
    "NumericalIKSolver",
    "Plan",
    "PlanCollisionError",
    "PlanRequest",
    "PlannerFailedError",
    "PlannerOptions",
    "PlanningStatus",
    "ReplanBudgetExceededError",
    "ReplanCostExceededError",
    "SegmentInput",
    "SolverFrame",
    "StateInput",
    "best_ik_solutions",
    "check_plan",
    "create_kinematics",
    "create_planner",
    "new_absolute_linear_interpolating_constraint",
    "new_collision_constraint_from_world_state",
    "new_ik_solver",
    "new_line_constraint",
    "new_obstacle_constraint",
    "new_plane_constraint",
    "new_proportional_linear_interpolating_constraint",
    "new_self_collision_constraint",
    "new_slerp_orientation_constraint",
    "path_step_count",
    "plan_motion",
    "replan",
    "squared_norm_metric",
]
