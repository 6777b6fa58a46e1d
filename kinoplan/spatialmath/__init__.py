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

from kinoplan.spatialmath.errors import GeometryError
from kinoplan.spatialmath.geometry import (
    DEFAULT_COLLISION_BUFFER,
    Box,
    Capsule,
    Geometry,
    GeometryConfig,
    PointCloud,
    Sphere,
    geometry_distance,
    geometry_from_dict,
)
from kinoplan.spatialmath.orientation import OrientationConfig, TranslationConfig
from kinoplan.spatialmath.pose_utils import (
    compose,
    compute_pose_error,
    dist_to_line_segment,
    interpolate_pose,
    orient_dist,
    orient_dist_to_region,
    orientation_vector,
    pose_between,
    pose_delta,
    pose_from_dh,
)

__all__ = [
    "DEFAULT_COLLISION_BUFFER",
    "Box",
    "Capsule",
    "Geometry",
    "GeometryConfig",
    "GeometryError",
    "OrientationConfig",
    "PointCloud",
    "Sphere",
    "TranslationConfig",
    "compose",
    "compute_pose_error",
    "dist_to_line_segment",
    "geometry_distance",
    "geometry_from_dict",
    "interpolate_pose",
    "orient_dist",
    "orient_dist_to_region",
    "orientation_vector",
    "pose_between",
    "pose_delta",
    "pose_from_dh",
]
