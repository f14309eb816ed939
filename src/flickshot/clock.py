"""Session countdown with a one-time milestone bonus."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flickshot.game import GameSession


class SessionClock:
    """Countdown arithmetic over the authoritative ``GameSession``.

    The clock holds no copy of the remaining time. Every tick reads the
    session it is handed, so a bonus added between ticks is never lost.
    """

    def __init__(
        self,
        duration_ms: int = 30_000,
        tick_ms: int = 1_000,
        bonus_threshold: int = 10,
        bonus_ms: int = 15_000,
    ):
        self.duration_ms = duration_ms
        self.tick_ms = tick_ms
        self.bonus_threshold = bonus_threshold
        self.bonus_ms = bonus_ms

    def tick(self, session: GameSession) -> tuple[GameSession, bool]:
        """Count down one tick. Returns (new session, reached zero)."""
        remaining = max(0, session.time_remaining_ms - self.tick_ms)
        return replace(session, time_remaining_ms=remaining), remaining == 0

    def apply_bonus(self, session: GameSession) -> tuple[GameSession, bool]:
        """Award the bonus once, the first time the hit milestone is reached."""
        if session.bonus_awarded or session.targets_hit < self.bonus_threshold:
            return session, False
        return replace(
            session,
            time_remaining_ms=session.time_remaining_ms + self.bonus_ms,
            bonus_awarded=True,
        ), True
