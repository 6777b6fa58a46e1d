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

from kinoplan.motionplan.collision import Collision, CollisionGraph
from kinoplan.msgs.geometry_msgs import Pose
from kinoplan.spatialmath import Box, Sphere


def sphere(x: float, label: str, radius: float = 0.5) -> Sphere:
    return Sphere(Pose(x, 0.0, 0.0), radius, label)


class TestCollisionGraph:
    def test_self_collision_pairs(self):
        graph = CollisionGraph([sphere(0.0, "a"), sphere(0.8, "b"), sphere(3.0, "c")])
        assert graph.self_collision
        assert len(graph) == 3
        assert graph.collision_between("a", "b")
        assert graph.collision_between("b", "a")
        assert not graph.collision_between("a", "c")
        assert graph.distance_between("a", "c") == pytest.approx(2.0)

    def test_collisions_sorted_with_depth(self):
        graph = CollisionGraph([sphere(0.0, "b"), sphere(0.8, "a"), sphere(0.9, "c")])
        collisions = graph.collisions()
        assert [(c.name1, c.name2) for c in collisions] == [("a", "b"), ("a", "c"), ("b", "c")]
        assert collisions[0].penetration_depth == pytest.approx(0.2)

    def test_obstacle_graph_only_crosses_collections(self):
        robot = [sphere(0.0, "a"), sphere(0.5, "b")]
        obstacles = [Box(Pose(0.0, 0.0, 0.0), (0.4, 0.4, 0.4), "crate")]
        graph = CollisionGraph(robot, obstacles)
        assert not graph.self_collision
        assert len(graph) == 2
        assert graph.distance_between("a", "b") is None
        assert {c.key() for c in graph.collisions()} == {("a", "crate"), ("b", "crate")}

    def test_reference_collisions_are_excluded(self):
        reference = CollisionGraph([sphere(0.0, "a"), sphere(0.8, "b"), sphere(5.0, "c")])
        moved = CollisionGraph(
            [sphere(0.0, "a"), sphere(0.5, "b"), sphere(0.9, "c")], reference=reference
        )
        assert moved.distance_between("a", "b") is None
        assert [c.key() for c in moved.collisions()] == [("a", "c"), ("b", "c")]

    def test_collision_specification_whitelists_pair(self):
        graph = CollisionGraph([sphere(0.0, "a"), sphere(0.8, "b")])
        graph.add_collision_specification(Collision("b", "a"))
        assert graph.collisions() == []
        assert graph.collision_between("a", "b")
        assert graph.min_distance() == float("inf")

    def test_buffer(self):
        touching = [sphere(0.0, "a"), sphere(1.05, "b")]
        assert CollisionGraph(touching).collisions() == []
        assert len(CollisionGraph(touching, buffer=0.1).collisions()) == 1

    def test_same_label_pairs_are_skipped(self):
        graph = CollisionGraph([sphere(0.0, "a")], [sphere(0.0, "a")])
        assert len(graph) == 0

    def test_early_exit_still_finds_a_collision(self):
        geometries = [sphere(float(i), f"s{i}", 0.6) for i in range(5)]
        graph = CollisionGraph(geometries, report_distances=False)
        assert graph.collisions()
        assert len(graph) < 10
