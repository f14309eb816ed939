"""Fire detection from a quick upward thumb flick.

The thumb tip's vertical position is tracked across frames. Image y grows
downward, so upward velocity is ``(y_prev - y_now) / dt``. A shot fires on
either:

- a full flick: upward velocity above ``flick_velocity``, or
- a snap: a smaller upward velocity that arrived abruptly, i.e. velocity
  above ``snap_velocity`` and acceleration above ``snap_acceleration``.

Accepted shots are debounced by ``cooldown_ms``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from flickshot import detector
from flickshot.errors import MalformedLandmarkSet

logger = logging.getLogger("flickshot.shots")


@dataclass(frozen=True)
class FireEvent:
    """A single shot with the aim position at the moment of firing."""
    x: float
    y: float
    timestamp_ms: float

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)


class ShotDetector:
    """Velocity-based flick/snap detector with cooldown.

    Units: positions are normalized image coordinates, velocity is in
    field-heights per second and acceleration in field-heights per second².
    """

    def __init__(
        self,
        flick_velocity: float = 2.5,
        snap_velocity: float = 1.2,
        snap_acceleration: float = 30.0,
        cooldown_ms: float = 400.0,
        max_gap_ms: float = 250.0,
        landmark_index: int = detector.THUMB_TIP,
    ):
        self.flick_velocity = flick_velocity
        self.snap_velocity = snap_velocity
        self.snap_acceleration = snap_acceleration
        self.cooldown_ms = cooldown_ms
        self.max_gap_ms = max_gap_ms
        self.landmark_index = landmark_index
        self.reset()

    def reset(self):
        """Clear motion history and cooldown."""
        self.clear_history()
        self._last_fire_ms = -math.inf

    def clear_history(self):
        """Forget tracked motion, e.g. when the hand leaves the frame.

        The cooldown is kept so a hand re-entering cannot double-fire.
        """
        self._last_y: Optional[float] = None
        self._last_ts: Optional[float] = None
        self._last_velocity: Optional[float] = None

    @property
    def last_velocity(self) -> Optional[float]:
        return self._last_velocity

    def in_cooldown(self, timestamp_ms: float) -> bool:
        return timestamp_ms - self._last_fire_ms < self.cooldown_ms

    def detect(self, landmarks, timestamp_ms: float) -> bool:
        """Feed one frame's landmarks. Returns True when a shot fires."""
        try:
            lm = detector.as_landmarks(landmarks)
        except MalformedLandmarkSet:
            self.clear_history()
            return False
        return self.observe(float(lm[self.landmark_index][1]), timestamp_ms)

    def observe(self, y: float, timestamp_ms: float) -> bool:
        """Feed the tracked digit's y coordinate directly."""
        last_y, last_ts, last_v = self._last_y, self._last_ts, self._last_velocity

        if last_ts is not None and timestamp_ms <= last_ts:
            # Out-of-order or duplicate frame
            return False

        self._last_y = y
        self._last_ts = timestamp_ms

        if last_ts is None or timestamp_ms - last_ts > self.max_gap_ms:
            self._last_velocity = None
            return False

        dt = (timestamp_ms - last_ts) / 1000.0
        velocity = (last_y - y) / dt
        self._last_velocity = velocity

        flick = velocity >= self.flick_velocity
        snap = False
        if last_v is not None and velocity >= self.snap_velocity:
            acceleration = (velocity - last_v) / dt
            snap = acceleration >= self.snap_acceleration

        if not (flick or snap):
            return False

        if self.in_cooldown(timestamp_ms):
            return False

        self._last_fire_ms = timestamp_ms
        logger.debug(
            "Shot at %.0fms (velocity=%.2f, %s)",
            timestamp_ms, velocity, "flick" if flick else "snap",
        )
        return True
