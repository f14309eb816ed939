"""Target model and spawning under a minimum-separation constraint."""

from __future__ import annotations

import itertools
import logging
import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from flickshot.config import GameConfig

logger = logging.getLogger("flickshot.targets")


class TargetState(Enum):
    SPAWNED = "spawned"
    HIT = "hit"


@dataclass(frozen=True)
class Target:
    id: int
    x: float
    y: float
    state: TargetState = TargetState.SPAWNED
    hit_at_ms: Optional[float] = None

    @property
    def live(self) -> bool:
        return self.state is TargetState.SPAWNED

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(self.x - x, self.y - y)

    def mark_hit(self, timestamp_ms: float) -> Target:
        return replace(self, state=TargetState.HIT, hit_at_ms=timestamp_ms)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": round(self.x, 4),
            "y": round(self.y, 4),
            "state": self.state.value,
        }


def live_targets(targets: Iterable[Target]) -> list[Target]:
    return [t for t in targets if t.live]


class TargetSpawner:
    """Places new targets at random, keeping live targets apart.

    A spawn attempt draws up to ``attempts`` uniform candidates inside the
    spawn rectangle and accepts the first one at least ``min_separation``
    away from every live target. Returning None is normal backpressure:
    the field is full or crowded.
    """

    def __init__(
        self,
        max_live: int = 4,
        min_separation: float = 0.2,
        attempts: int = 10,
        x_range: tuple[float, float] = (0.15, 0.85),
        y_range: tuple[float, float] = (0.15, 0.75),
        rng: Optional[random.Random] = None,
    ):
        self.max_live = max_live
        self.min_separation = min_separation
        self.attempts = attempts
        self.x_range = x_range
        self.y_range = y_range
        self._rng = rng or random.Random()
        self._ids = itertools.count()

    @classmethod
    def from_config(cls, config: GameConfig, rng: Optional[random.Random] = None) -> TargetSpawner:
        return cls(
            max_live=config.max_live_targets,
            min_separation=config.min_separation,
            attempts=config.spawn_attempts,
            x_range=config.spawn_x_range,
            y_range=config.spawn_y_range,
            rng=rng,
        )

    def reset(self):
        self._ids = itertools.count()

    def _candidate(self) -> tuple[float, float]:
        return (
            self._rng.uniform(*self.x_range),
            self._rng.uniform(*self.y_range),
        )

    def try_spawn(self, existing: Iterable[Target]) -> Optional[Target]:
        """Return a new target, or None if spawning is skipped this round."""
        live = live_targets(existing)
        if len(live) >= self.max_live:
            return None

        for _ in range(self.attempts):
            x, y = self._candidate()
            if all(t.distance_to(x, y) >= self.min_separation for t in live):
                return Target(id=next(self._ids), x=x, y=y)

        logger.debug("No free spot after %d attempts (%d live)", self.attempts, len(live))
        return None
