"""Tests for the session countdown and the time bonus."""

from dataclasses import replace

from flickshot.clock import SessionClock
from flickshot.game import GamePhase, GameSession


def playing(**kw):
    return GameSession(phase=GamePhase.PLAYING, time_remaining_ms=30_000, **kw)


class TestTick:
    def test_counts_down_one_tick(self):
        clock = SessionClock(tick_ms=1_000)
        s, ended = clock.tick(playing())
        assert s.time_remaining_ms == 29_000
        assert not ended

    def test_ends_at_zero(self):
        clock = SessionClock(tick_ms=1_000)
        s, ended = clock.tick(replace(playing(), time_remaining_ms=1_000))
        assert s.time_remaining_ms == 0
        assert ended

    def test_never_negative(self):
        clock = SessionClock(tick_ms=1_000)
        s, ended = clock.tick(replace(playing(), time_remaining_ms=300))
        assert s.time_remaining_ms == 0
        assert ended

    def test_reads_session_not_copy(self):
        clock = SessionClock(tick_ms=1_000, bonus_threshold=1, bonus_ms=15_000)
        s, _ = clock.tick(playing())
        s, _ = clock.apply_bonus(replace(s, targets_hit=1))
        s, _ = clock.tick(s)
        assert s.time_remaining_ms == 30_000 - 2_000 + 15_000


class TestBonus:
    def test_below_threshold(self):
        clock = SessionClock(bonus_threshold=10)
        s, awarded = clock.apply_bonus(playing(targets_hit=9))
        assert not awarded
        assert s.time_remaining_ms == 30_000

    def test_awarded_once(self):
        clock = SessionClock(bonus_threshold=10, bonus_ms=15_000)
        s, awarded = clock.apply_bonus(playing(targets_hit=10))
        assert awarded
        assert s.bonus_awarded
        assert s.time_remaining_ms == 45_000

        s, awarded = clock.apply_bonus(replace(s, targets_hit=11))
        assert not awarded
        assert s.time_remaining_ms == 45_000
