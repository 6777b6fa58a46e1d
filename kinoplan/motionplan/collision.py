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

"""Pairwise collision bookkeeping between two collections of geometry.

A graph built from one collection checks that collection against itself. A
graph built with a reference skips every pair the reference already reports
as colliding, so contacts that exist in a known-good configuration (or that
were explicitly allowed) never count as violations.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from itertools import combinations, product

from kinoplan.spatialmath import DEFAULT_COLLISION_BUFFER, Geometry


@dataclass(frozen=True, order=True)
class Collision:
    """A pair of geometry labels, optionally with the penetration depth between them."""

    name1: str
    name2: str
    penetration_depth: float = 0.0

    def key(self) -> tuple[str, str]:
        return _pair_key(self.name1, self.name2)


def _pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class CollisionGraph:
    def __init__(
        self,
        x: Sequence[Geometry],
        y: Sequence[Geometry] | None = None,
        reference: CollisionGraph | None = None,
        report_distances: bool = True,
        buffer: float = DEFAULT_COLLISION_BUFFER,
    ) -> None:
        """Compute distances between geometries.

        Args:
            x: First geometry collection
            y: Second collection; ``None`` or empty checks ``x`` against itself
            reference: Graph whose collisions are excluded from this one
            report_distances: When False, stop at the first violating pair
            buffer: Distances at or below this count as collisions
        """
        self._buffer = buffer
        self._self_collision = not y
        self._distances: dict[tuple[str, str], float] = {}
        self._allowed: set[tuple[str, str]] = set()

        pairs: Iterable[tuple[Geometry, Geometry]] = (
            combinations(x, 2) if self._self_collision else product(x, y)
        )
        for a, b in pairs:
            if a.label == b.label:
                continue
            if reference is not None and reference.collision_between(a.label, b.label):
                continue
            distance = a.distance_from(b)
            self._distances[_pair_key(a.label, b.label)] = distance
            if not report_distances and distance <= buffer:
                break

    @property
    def self_collision(self) -> bool:
        return self._self_collision

    def distance_between(self, a: str, b: str) -> float | None:
        return self._distances.get(_pair_key(a, b))

    def collision_between(self, a: str, b: str) -> bool:
        key = _pair_key(a, b)
        if key in self._allowed:
            return True
        distance = self._distances.get(key)
        return distance is not None and distance <= self._buffer

    def add_collision_specification(self, specification: Collision) -> None:
        """Allow the named pair to touch without it counting as a violation."""
        self._allowed.add(specification.key())

    def collisions(self) -> list[Collision]:
        """Violating pairs, sorted by label pair."""
        return sorted(
            Collision(a, b, -distance)
            for (a, b), distance in self._distances.items()
            if distance <= self._buffer and (a, b) not in self._allowed
        )

    def min_distance(self) -> float:
        candidates = [d for key, d in self._distances.items() if key not in self._allowed]
        return min(candidates, default=float("inf"))

    def __len__(self) -> int:
        return len(self._distances)

    def __repr__(self) -> str:
        return f"CollisionGraph(pairs={len(self._distances)}, collisions={self.collisions()!r})"
