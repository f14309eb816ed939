"""Game session state machine.

    IDLE ──start──▶ AWAITING_PERMISSION ──granted──▶ READY ──begin──▶ PLAYING
      ▲                    │ fail                      ▲                │ time up
      └────────────────────┘                           └───restart── ENDED ◀┘

The controller owns one immutable ``GameSession`` and replaces it on every
change. Timers (countdown, spawning, hit-target cleanup) run on a
``Scheduler`` advanced from ``tick``, and every timer callback reads
``self.session`` when it fires, never a value captured when it was
scheduled.

Usage:
    controller = GameController(config, audio=LoggingAudio())
    controller.on_event(lambda e: print(e.type, e.data))
    controller.dispatch(Intent.START, now_ms)
    ...
    snapshot = controller.tick(aim_frame, now_ms)
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional

from flickshot.audio import AudioCues, LoggingAudio
from flickshot.clock import SessionClock
from flickshot.collision import CollisionResolver
from flickshot.config import GameConfig
from flickshot.errors import TrackingError
from flickshot.pipeline import AimFrame
from flickshot.shots import FireEvent
from flickshot.smoothing import CENTER
from flickshot.targets import Target, TargetSpawner, live_targets
from flickshot.timers import Scheduler, TimerHandle

logger = logging.getLogger("flickshot.game")


class GamePhase(Enum):
    IDLE = "idle"
    AWAITING_PERMISSION = "awaiting_permission"
    READY = "ready"
    PLAYING = "playing"
    ENDED = "ended"


class Intent(Enum):
    """User (or environment) requests accepted by ``GameController.dispatch``."""
    START = "start"
    PERMISSION_GRANTED = "permission_granted"
    BEGIN = "begin"
    RESTART = "restart"
    EXIT = "exit"
    TOGGLE_MUTE = "toggle_mute"


_TRANSITIONS: dict[Intent, tuple[GamePhase, GamePhase]] = {
    Intent.START: (GamePhase.IDLE, GamePhase.AWAITING_PERMISSION),
    Intent.PERMISSION_GRANTED: (GamePhase.AWAITING_PERMISSION, GamePhase.READY),
    Intent.BEGIN: (GamePhase.READY, GamePhase.PLAYING),
    Intent.RESTART: (GamePhase.ENDED, GamePhase.READY),
}


@dataclass(frozen=True)
class GameSession:
    phase: GamePhase = GamePhase.IDLE
    score: int = 0
    targets_hit: int = 0
    shots_fired: int = 0
    time_remaining_ms: int = 0
    bonus_awarded: bool = False
    targets: tuple[Target, ...] = ()
    error: Optional[str] = None
    muted: bool = False

    @property
    def live_targets(self) -> list[Target]:
        return live_targets(self.targets)


@dataclass(frozen=True)
class GameEvent:
    """Notification for observers (server broadcast, CLI output, tests)."""
    type: str  # "phase", "spawn", "fire", "hit", "miss", "bonus", "error"
    data: dict = field(default_factory=dict)
    timestamp_ms: float = 0.0

    def to_dict(self) -> dict:
        return {"type": self.type, "timestamp_ms": self.timestamp_ms, **self.data}


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view handed to the presentation layer once per tick."""
    phase: GamePhase
    aim: tuple[float, float]
    is_aiming: bool
    targets: tuple[Target, ...]
    score: int
    time_remaining_ms: int
    targets_hit: int = 0
    shots_fired: int = 0
    hover_target_id: Optional[int] = None
    frozen: bool = False
    hand_present: bool = False
    challenge_passed: bool = False
    error: Optional[str] = None
    muted: bool = False
    timestamp_ms: float = 0.0

    @property
    def live_targets(self) -> list[Target]:
        return live_targets(self.targets)

    def to_dict(self) -> dict:
        return {
            "type": "snapshot",
            "phase": self.phase.value,
            "aim": {"x": round(self.aim[0], 4), "y": round(self.aim[1], 4)},
            "is_aiming": self.is_aiming,
            "frozen": self.frozen,
            "hand_present": self.hand_present,
            "targets": [t.to_dict() for t in self.targets],
            "hover_target_id": self.hover_target_id,
            "score": self.score,
            "targets_hit": self.targets_hit,
            "shots_fired": self.shots_fired,
            "time_remaining_ms": self.time_remaining_ms,
            "challenge_passed": self.challenge_passed,
            "error": self.error,
            "muted": self.muted,
            "timestamp_ms": self.timestamp_ms,
        }


class GameController:
    """Finite-state machine for one player's arcade session.

    Spawning, hit resolution and scoring only happen in ``PLAYING``.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        audio: Optional[AudioCues] = None,
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.config = config or GameConfig()
        self.audio = audio or LoggingAudio()
        self.scheduler = scheduler or Scheduler()
        self.spawner = TargetSpawner.from_config(self.config, rng)
        self.resolver = CollisionResolver(
            hit_radius=self.config.hit_radius,
            points_per_hit=self.config.points_per_hit,
            miss_penalty=self.config.miss_penalty,
        )
        self.clock = SessionClock(
            duration_ms=self.config.game_duration_ms,
            tick_ms=self.config.tick_interval_ms,
            bonus_threshold=self.config.bonus_threshold,
            bonus_ms=self.config.bonus_ms,
        )

        self._session = GameSession()
        self._callbacks: list[Callable[[GameEvent], None]] = []
        self._timers: list[TimerHandle] = []
        self._last_frame: Optional[AimFrame] = None
        self._hover: Optional[int] = None
        self._now_ms = 0.0

    # --- observers ---

    def on_event(self, callback: Callable[[GameEvent], None]):
        """Register a callback for game events."""
        self._callbacks.append(callback)

    def _emit(self, event_type: str, timestamp_ms: float, **data):
        event = GameEvent(type=event_type, data=data, timestamp_ms=timestamp_ms)
        for cb in self._callbacks:
            cb(event)

    # --- state ---

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def phase(self) -> GamePhase:
        return self._session.phase

    def _enter(self, phase: GamePhase, now_ms: float, **changes):
        previous = self._session.phase
        self._session = replace(self._session, phase=phase, **changes)
        logger.info("Phase %s -> %s", previous.value, phase.value)
        self._emit("phase", now_ms, phase=phase.value, previous=previous.value)

    # --- intents ---

    def dispatch(self, intent: Intent | str, now_ms: float) -> bool:
        """Apply a user intent. Returns False if it does not apply now."""
        intent = Intent(intent)
        self._now_ms = max(self._now_ms, now_ms)

        if intent is Intent.TOGGLE_MUTE:
            muted = not self._session.muted
            self._session = replace(self._session, muted=muted)
            self.audio.set_muted(muted)
            return True

        if intent is Intent.EXIT:
            return self._exit(now_ms)

        expected, target = _TRANSITIONS[intent]
        if self._session.phase is not expected:
            logger.debug("Ignoring %s in phase %s", intent.value, self._session.phase.value)
            return False

        if intent is Intent.START:
            self._enter(target, now_ms, error=None)
        elif intent is Intent.BEGIN:
            self._begin(now_ms)
        else:
            self._enter(target, now_ms)
        return True

    def fail(self, error: TrackingError | str, now_ms: float) -> bool:
        """Camera or engine acquisition failed; back to idle with a status."""
        if self._session.phase is not GamePhase.AWAITING_PERMISSION:
            return False
        status = error.status if isinstance(error, TrackingError) else str(error)
        logger.warning("Tracking unavailable: %s", error)
        self._emit("error", now_ms, error=status, message=str(error))
        self._enter(GamePhase.IDLE, now_ms, error=status)
        return True

    def _begin(self, now_ms: float):
        self._cancel_timers()
        self.spawner.reset()
        self._hover = None
        self._last_frame = None

        # Fresh session first, then timers; the first countdown tick must
        # see the reset time.
        self._session = GameSession(
            phase=GamePhase.READY,
            time_remaining_ms=self.config.game_duration_ms,
            muted=self._session.muted,
        )
        self._enter(GamePhase.PLAYING, now_ms)

        self._timers.append(self.scheduler.call_every(
            now_ms, self.config.tick_interval_ms, self._on_clock_tick, name="clock",
        ))
        self._timers.append(self.scheduler.call_every(
            now_ms, self.config.spawn_interval_ms, self._on_spawn, name="spawn",
        ))
        self._on_spawn(now_ms)
        self.audio.play_ambient_loop()

    def _end(self, now_ms: float):
        self._cancel_timers()
        s = self._session
        passed = s.targets_hit >= self.config.min_hits_required
        self._enter(GamePhase.ENDED, now_ms)
        self.audio.stop_ambient_loop()
        logger.info(
            "Session over: score=%d hits=%d shots=%d passed=%s",
            s.score, s.targets_hit, s.shots_fired, passed,
        )

    def _exit(self, now_ms: float) -> bool:
        if self._session.phase is GamePhase.IDLE:
            return False
        was_playing = self._session.phase is GamePhase.PLAYING
        self._cancel_timers()
        self._session = GameSession(phase=self._session.phase, muted=self._session.muted)
        self._enter(GamePhase.IDLE, now_ms)
        if was_playing:
            self.audio.stop_ambient_loop()
        return True

    def _cancel_timers(self):
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

    # --- timer callbacks ---

    def _on_clock_tick(self, now_ms: float):
        if self._session.phase is not GamePhase.PLAYING:
            return
        self._session, ended = self.clock.tick(self._session)
        if ended:
            self._end(now_ms)

    def _on_spawn(self, now_ms: float):
        if self._session.phase is not GamePhase.PLAYING:
            return
        target = self.spawner.try_spawn(self._session.targets)
        if target is None:
            return
        self._session = replace(self._session, targets=self._session.targets + (target,))
        self._emit("spawn", now_ms, target_id=target.id, x=target.x, y=target.y)

    def _remove_target(self, target_id: int):
        self._session = replace(
            self._session,
            targets=tuple(t for t in self._session.targets if t.id != target_id),
        )

    # --- per-frame ---

    def _resolve_fire(self, fire: FireEvent):
        now_ms = fire.timestamp_ms
        self.audio.play_fire_sound()
        s = replace(self._session, shots_fired=self._session.shots_fired + 1)
        self._emit("fire", now_ms, x=fire.x, y=fire.y)

        result = self.resolver.resolve(fire, s.targets, s.score)
        if not result.hit:
            self._session = replace(s, score=result.score)
            self._emit("miss", now_ms, score=result.score)
            return

        targets = tuple(
            t.mark_hit(now_ms) if t.id == result.hit_target_id else t
            for t in s.targets
        )
        s = replace(s, score=result.score, targets_hit=s.targets_hit + 1, targets=targets)
        self._session, awarded = self.clock.apply_bonus(s)
        self._emit(
            "hit", now_ms,
            target_id=result.hit_target_id, score=result.score, targets_hit=s.targets_hit,
        )
        if awarded:
            self._emit("bonus", now_ms, bonus_ms=self.clock.bonus_ms,
                       time_remaining_ms=self._session.time_remaining_ms)

        target_id = result.hit_target_id
        self._timers.append(self.scheduler.call_later(
            now_ms, self.config.hit_linger_ms,
            lambda _t: self._remove_target(target_id),
            name=f"remove-{target_id}",
        ))

    def tick(self, frame: Optional[AimFrame], now_ms: float) -> GameSnapshot:
        """Advance the game to ``now_ms`` with the latest aim frame.

        Timers run first, so a shot landing on the same tick the clock runs
        out is not scored.
        """
        self._now_ms = max(self._now_ms, now_ms)
        self.scheduler.advance(now_ms)

        if frame is not None:
            self._last_frame = frame

        if self._session.phase is GamePhase.PLAYING:
            if frame is not None and frame.fire is not None:
                self._resolve_fire(frame.fire)
            if self._last_frame is not None:
                ax, ay = self._last_frame.aim.position
                self._hover = self.resolver.hovered(ax, ay, self._session.targets)
        else:
            self._hover = None

        return self.snapshot()

    def snapshot(self) -> GameSnapshot:
        s = self._session
        frame = self._last_frame
        if frame is not None:
            aim, aiming = frame.aim.position, frame.is_aiming
            frozen, present = frame.aim.frozen, frame.hand_present
        else:
            aim, aiming, frozen, present = CENTER, False, False, False

        return GameSnapshot(
            phase=s.phase,
            aim=aim,
            is_aiming=aiming,
            targets=s.targets,
            score=s.score,
            time_remaining_ms=s.time_remaining_ms,
            targets_hit=s.targets_hit,
            shots_fired=s.shots_fired,
            hover_target_id=self._hover,
            frozen=frozen,
            hand_present=present,
            challenge_passed=s.targets_hit >= self.config.min_hits_required,
            error=s.error,
            muted=s.muted,
            timestamp_ms=self._now_ms,
        )

    def close(self):
        """Cancel everything and stop audio."""
        if self._session.phase is GamePhase.PLAYING:
            self.audio.stop_ambient_loop()
        self._cancel_timers()
