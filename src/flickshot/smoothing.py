"""Aim point smoothing.

Raw fingertip positions jitter by a few pixels every frame. The filter
eases the cursor toward the hand with exponential smoothing, glides it back
to the center of the field when the hand disappears, and keeps a "steady"
anchor that only moves while the hand is still. A shot freezes the
displayed aim on that anchor so recoil does not drag the crosshair. The
anchor is dropped when the hand is lost, and until the hand settles again a
shot lands on the smoothed position.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

CENTER = (0.5, 0.5)

# Residual below which the output snaps onto its target
_SNAP_EPSILON = 1e-4


@dataclass(frozen=True)
class AimSample:
    """Unsmoothed aim observation for one processed frame."""
    x: float
    y: float
    is_aiming: bool
    timestamp_ms: float


@dataclass(frozen=True)
class FilteredAim:
    """Smoothed aim point as displayed to the player."""
    x: float
    y: float
    frozen: bool
    raw: Optional[AimSample] = None

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)


def _clamp01(v: float) -> float:
    return min(1.0, max(0.0, v))


def _approach(current: float, target: float, factor: float) -> float:
    nxt = current + (target - current) * factor
    if abs(target - nxt) < _SNAP_EPSILON:
        return target
    return nxt


class PositionFilter:
    """Exponential smoothing of the aim point with a freeze window.

    Args:
        tracking_factor: Smoothing factor while a hand is visible.
        return_factor: Slower factor used to drift back to center when the
            hand is lost.
        steady_threshold: Max raw displacement between consecutive frames
            for the hand to count as stationary.
    """

    def __init__(
        self,
        tracking_factor: float = 0.4,
        return_factor: float = 0.15,
        steady_threshold: float = 0.015,
    ):
        self.tracking_factor = tracking_factor
        self.return_factor = return_factor
        self.steady_threshold = steady_threshold
        self.reset()

    def reset(self):
        """Forget all state. Called on every new session."""
        self._x, self._y = CENTER
        self._steady: Optional[tuple[float, float]] = None
        self._last_raw: Optional[tuple[float, float]] = None
        self._frozen_at: Optional[tuple[float, float]] = None
        self._frozen_until_ms = -math.inf

    @property
    def position(self) -> tuple[float, float]:
        """Current smoothed position (ignores any freeze)."""
        return (self._x, self._y)

    @property
    def steady_position(self) -> Optional[tuple[float, float]]:
        """Last position where the hand held still, or None since it was lost."""
        return self._steady

    def update(self, target_x: float, target_y: float, hand_present: bool) -> tuple[float, float]:
        """Advance the filter by one frame and return the smoothed position."""
        if hand_present:
            tx, ty = _clamp01(target_x), _clamp01(target_y)
            factor = self.tracking_factor

            if self._last_raw is not None:
                moved = math.hypot(tx - self._last_raw[0], ty - self._last_raw[1])
                if moved < self.steady_threshold:
                    self._steady = (tx, ty)
            self._last_raw = (tx, ty)
        else:
            tx, ty = CENTER
            factor = self.return_factor
            self._last_raw = None
            self._steady = None

        self._x = _approach(self._x, tx, factor)
        self._y = _approach(self._y, ty, factor)
        return (self._x, self._y)

    def freeze(self, until_ms: float) -> tuple[float, float]:
        """Pin the displayed aim to the steady position until ``until_ms``.

        Falls back to the smoothed position when the hand has not held still
        since it was last seen. Returns the pinned position.
        """
        self._frozen_at = self._steady if self._steady is not None else (self._x, self._y)
        self._frozen_until_ms = until_ms
        return self._frozen_at

    def is_frozen(self, now_ms: float) -> bool:
        return self._frozen_at is not None and now_ms < self._frozen_until_ms

    def current(self, now_ms: float, raw: Optional[AimSample] = None) -> FilteredAim:
        """The aim point to display at ``now_ms``."""
        if self.is_frozen(now_ms):
            x, y = self._frozen_at
            return FilteredAim(x=x, y=y, frozen=True, raw=raw)
        self._frozen_at = None
        return FilteredAim(x=self._x, y=self._y, frozen=False, raw=raw)

    def sample(self, raw: AimSample, hand_present: bool) -> FilteredAim:
        """Update from a raw sample and return the displayed aim."""
        self.update(raw.x, raw.y, hand_present)
        return self.current(raw.timestamp_ms, raw)
