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
Kinematics Module

IK solvers for any frame, including SolverFrames spanning a frame system.

## Implementations

- NumericalIKSolver: bounded L-BFGS-B with seeded random restarts
- EnsembleIKSolver: several NumericalIKSolvers in parallel threads

## Usage

```python
from kinoplan.motionplan.kinematics import best_ik_solutions, new_ik_solver

solver = new_ik_solver(frame, IKOptions(parallelism=4))
solutions = best_ik_solutions(solver, goal_pose, seed, world_state, n_solutions=5)
```
"""

from kinoplan.motionplan.kinematics.ensemble_ik import EnsembleIKSolver
from kinoplan.motionplan.kinematics.numerical_ik import NumericalIKSolver
from kinoplan.motionplan.kinematics.solve import best_ik_solutions, new_ik_solver

__all__ = ["EnsembleIKSolver", "NumericalIKSolver", "best_ik_solutions", "new_ik_solver"]
