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

from kinoplan.msgs.geometry_msgs import Pose, Quaternion, Vector3, to_pose


def test_pose_default_init():
    pose = Pose()
    assert pose.position == Vector3(0.0, 0.0, 0.0)
    assert pose.orientation.to_tuple() == (0.0, 0.0, 0.0, 1.0)


def test_pose_normalizes_orientation():
    pose = Pose(1.0, 2.0, 3.0, 0.0, 0.0, 0.0, 2.0)
    assert pose.orientation.to_tuple() == pytest.approx((0.0, 0.0, 0.0, 1.0))

    pose = Pose([0.0, 0.0, 0.0], [1.0, 1.0, 0.0, 0.0])
    assert np.linalg.norm(pose.quat()) == pytest.approx(1.0)


def test_pose_rejects_zero_quaternion():
    with pytest.raises(ValueError):
        Pose([0.0, 0.0, 0.0], [0.0, 0.0, 0.0, 0.0])


def test_pose_composition():
    quarter_turn = Quaternion.from_axis_angle([0.0, 0.0, 1.0], math.pi / 2)
    a = Pose(Vector3(1.0, 0.0, 0.0), quarter_turn)
    b = Pose(1.0, 0.0, 0.0)

    # b is applied in a's frame, so its x offset points along world y
    composed = a + b
    assert composed.point() == pytest.approx([1.0, 1.0, 0.0])
    assert composed.orientation.almost_equal(quarter_turn)

    # not commutative
    assert (b + a).point() == pytest.approx([2.0, 0.0, 0.0])


def test_pose_composition_is_associative():
    a = Pose(Vector3(0.3, -1.0, 2.0), Quaternion.from_euler([0.1, 0.2, 0.3]))
    b = Pose(Vector3(1.0, 2.0, 0.5), Quaternion.from_euler([-0.4, 0.0, 1.2]))
    c = Pose(Vector3(-2.0, 0.1, 0.0), Quaternion.from_euler([0.0, 0.7, -0.2]))
    assert ((a + b) + c).almost_equal(a + (b + c))


def test_pose_inverse():
    pose = Pose(Vector3(1.0, 2.0, 3.0), Quaternion.from_euler([0.3, -0.2, 1.0]))
    assert (pose + pose.inverse()).almost_equal(Pose())
    assert (-pose + pose).almost_equal(Pose())


def test_pose_matrix_round_trip():
    pose = Pose(Vector3(1.0, -2.0, 0.5), Quaternion.from_euler([0.0, 0.5, 0.25]))
    matrix = pose.to_matrix()
    assert matrix.shape == (4, 4)
    assert Pose.from_matrix(matrix).almost_equal(pose)


def test_pose_dict_round_trip():
    pose = Pose(Vector3(1.0, 2.0, 3.0), Quaternion.from_euler([0.1, 0.2, 0.3]))
    assert Pose.from_dict(pose.to_dict()).almost_equal(pose)


def test_almost_equal_treats_q_and_minus_q_as_same_rotation():
    q = Quaternion.from_euler([0.1, 0.2, 0.3]).to_numpy()
    assert Pose.from_arrays(np.zeros(3), q).almost_equal(Pose.from_arrays(np.zeros(3), -q))


def test_almost_equal_orientation_tolerance():
    a = Pose()
    b = Pose(Vector3(0.0, 0.0, 0.0), Quaternion.from_axis_angle([0.0, 0.0, 1.0], 0.05))
    assert not a.almost_equal(b)
    assert a.almost_equal(b, tolerance=1e-6, orientation_tolerance=0.1)


def test_to_pose():
    pose = Pose(1.0, 2.0, 3.0)
    assert to_pose(pose) is pose
    converted = to_pose(([1.0, 2.0, 3.0], [0.0, 0.0, 0.0, 1.0]))
    assert converted.almost_equal(pose)
