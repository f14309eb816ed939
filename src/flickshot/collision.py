"""Hit testing of fire events against live targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from flickshot.shots import FireEvent
from flickshot.targets import Target


@dataclass(frozen=True)
class HitResult:
    hit_target_id: Optional[int]
    score: int

    @property
    def hit(self) -> bool:
        return self.hit_target_id is not None


class CollisionResolver:
    """Resolves one shot against the current targets.

    At most one target is hit per shot: the first live target, in list
    order, whose center lies within ``hit_radius`` of the shot. A miss costs
    ``miss_penalty`` points, but the score never drops below zero.
    """

    def __init__(self, hit_radius: float = 0.08, points_per_hit: int = 10, miss_penalty: int = 10):
        self.hit_radius = hit_radius
        self.points_per_hit = points_per_hit
        self.miss_penalty = miss_penalty

    def first_within(self, x: float, y: float, targets: Iterable[Target]) -> Optional[Target]:
        for target in targets:
            if target.live and target.distance_to(x, y) < self.hit_radius:
                return target
        return None

    def resolve(self, fire: FireEvent, targets: Iterable[Target], score: int) -> HitResult:
        target = self.first_within(fire.x, fire.y, targets)
        if target is None:
            return HitResult(hit_target_id=None, score=max(0, score - self.miss_penalty))
        return HitResult(hit_target_id=target.id, score=score + self.points_per_hit)

    def hovered(self, x: float, y: float, targets: Iterable[Target]) -> Optional[int]:
        """Id of the target under the crosshair, for highlighting."""
        target = self.first_within(x, y, targets)
        return target.id if target is not None else None
