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

import math

import numpy as np
import pytest

from kinoplan.msgs.geometry_msgs import Pose, Quaternion, Vector3
from kinoplan.spatialmath import (
    Box,
    Capsule,
    GeometryError,
    PointCloud,
    Sphere,
    geometry_from_dict,
)


def test_sphere_sphere_distance():
    a = Sphere(Pose(0.0, 0.0, 0.0), 1.0, "a")
    b = Sphere(Pose(3.0, 0.0, 0.0), 1.0, "b")
    assert a.distance_from(b) == pytest.approx(1.0)
    assert not a.collides_with(b)

    c = Sphere(Pose(1.5, 0.0, 0.0), 1.0, "c")
    assert a.distance_from(c) == pytest.approx(-0.5)
    assert a.collides_with(c)


def test_box_sphere_distance_is_symmetric():
    box = Box(Pose(), (2.0, 2.0, 2.0), "box")
    sphere = Sphere(Pose(0.0, 0.0, 3.0), 0.5, "ball")
    assert box.distance_from(sphere) == pytest.approx(1.5)
    assert sphere.distance_from(box) == pytest.approx(1.5)


def test_box_box_distance():
    a = Box(Pose(), (1.0, 1.0, 1.0))
    b = Box(Pose(2.0, 0.0, 0.0), (1.0, 1.0, 1.0))
    assert a.distance_from(b) == pytest.approx(1.0)

    overlapping = Box(Pose(0.75, 0.0, 0.0), (1.0, 1.0, 1.0))
    assert a.distance_from(overlapping) == pytest.approx(-0.25)
    assert a.collides_with(overlapping)


def test_rotated_box_distance():
    a = Box(Pose(), (1.0, 1.0, 1.0))
    rotated = Box(
        Pose(Vector3(2.0, 0.0, 0.0), Quaternion.from_axis_angle([0.0, 0.0, 1.0], math.pi / 2)),
        (1.0, 1.0, 1.0),
    )
    assert a.distance_from(rotated) == pytest.approx(1.0)


def test_capsule_distances():
    capsule = Capsule(Pose(), 0.5, 3.0, "cap")
    top, bottom = capsule.segment()[1], capsule.segment()[0]
    assert top == pytest.approx([0.0, 0.0, 1.0])
    assert bottom == pytest.approx([0.0, 0.0, -1.0])

    sphere = Sphere(Pose(2.0, 0.0, 0.0), 0.5)
    assert capsule.distance_from(sphere) == pytest.approx(1.0)

    other = Capsule(Pose(0.0, 3.0, 0.0), 0.5, 3.0)
    assert capsule.distance_from(other) == pytest.approx(2.0)

    box = Box(Pose(0.0, 0.0, 3.0), (1.0, 1.0, 1.0))
    assert capsule.distance_from(box) == pytest.approx(1.0, abs=1e-4)
    assert box.distance_from(capsule) == pytest.approx(1.0, abs=1e-4)


def test_point_cloud_distance():
    cloud = PointCloud(Pose(), np.array([[0.0, 0.0, 0.0], [5.0, 0.0, 0.0]]), "cloud")
    sphere = Sphere(Pose(0.0, 2.0, 0.0), 1.0)
    assert cloud.distance_from(sphere) == pytest.approx(1.0)
    assert sphere.distance_from(cloud) == pytest.approx(1.0)

    moved = cloud.transform(Pose(0.0, 2.0, 0.0))
    assert moved.collides_with(sphere)

    other = PointCloud(Pose(), np.array([[5.0, 3.0, 0.0]]))
    assert cloud.distance_from(other) == pytest.approx(3.0)


def test_transform_returns_new_instance():
    box = Box(Pose(1.0, 0.0, 0.0), (1.0, 2.0, 3.0), "box")
    moved = box.transform(Pose(0.0, 1.0, 0.0))
    assert moved is not box
    assert box.pose.point() == pytest.approx([1.0, 0.0, 0.0])
    assert moved.pose.point() == pytest.approx([1.0, 1.0, 0.0])
    assert moved.label == "box"
    assert moved.dims == pytest.approx([1.0, 2.0, 3.0])


def test_almost_equal():
    a = Sphere(Pose(1.0, 2.0, 3.0), 1.0)
    assert a.almost_equal(Sphere(Pose(1.0, 2.0, 3.0 + 1e-9), 1.0))
    assert not a.almost_equal(Sphere(Pose(1.0, 2.0, 3.0), 1.1))
    assert not a.almost_equal(Box(Pose(1.0, 2.0, 3.0), (1.0, 1.0, 1.0)))


@pytest.mark.parametrize(
    "geometry",
    [
        Box(Pose(Vector3(1.0, 2.0, 3.0), Quaternion.from_euler([0.1, 0.2, 0.3])), (1.0, 2.0, 3.0), "box"),
        Sphere(Pose(0.5, 0.0, 0.0), 0.25, "sphere"),
        Capsule(Pose(0.0, 0.0, 1.0), 0.1, 1.0, "capsule"),
        PointCloud(Pose(), np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]), "cloud", 0.05),
    ],
)
def test_dict_round_trip(geometry):
    restored = geometry_from_dict(geometry.to_dict())
    assert restored.almost_equal(geometry)
    assert restored.label == geometry.label


def test_invalid_geometry():
    with pytest.raises(GeometryError):
        Box(Pose(), (1.0, 0.0, 1.0))
    with pytest.raises(GeometryError):
        Sphere(Pose(), -1.0)
    with pytest.raises(GeometryError):
        Capsule(Pose(), 1.0, 1.0)
    with pytest.raises(GeometryError):
        geometry_from_dict({"type": "point_cloud"})
