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

import pytest

from kinoplan.motionplan.utils import compute_path_length, interpolate_path, interpolate_segment


def test_compute_path_length():
    assert compute_path_length([[0.0, 0.0], [3.0, 4.0], [3.0, 5.0]]) == pytest.approx(6.0)
    assert compute_path_length([[1.0]]) == 0.0
    assert compute_path_length([]) == 0.0


def test_interpolate_path_bounds_each_input_step():
    path = interpolate_path([[0.0, 0.0], [1.0, 0.25]], resolution=0.25)
    assert path[0] == [0.0, 0.0]
    assert path[-1] == pytest.approx([1.0, 0.25])
    assert len(path) == 5
    for a, b in zip(path, path[1:]):
        assert max(abs(x - y) for x, y in zip(a, b)) <= 0.25 + 1e-12


def test_interpolate_path_keeps_short_steps():
    assert interpolate_path([[0.0], [0.1], [0.2]], resolution=0.5) == [[0.0], [0.1], [0.2]]


def test_interpolate_path_resolution_must_be_positive():
    with pytest.raises(ValueError):
        interpolate_path([[0.0], [1.0]], resolution=0.0)


def test_interpolate_segment():
    segment = interpolate_segment([0.0, 0.0], [3.0, 4.0], 1.0)
    assert len(segment) == 6
    assert segment[0] == [0.0, 0.0]
    assert segment[-1] == pytest.approx([3.0, 4.0])
    assert interpolate_segment([0.0], [0.5], 1.0) == [[0.0], [0.5]]
