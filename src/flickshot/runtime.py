"""Frame-driven game loop.

One ``step(now_ms)`` per display refresh:

1. acquire tracking if the controller is waiting for permission
2. poll the newest camera frame (older ones are dropped)
3. landmarks → ``AimPipeline`` → ``AimFrame``
4. ``GameController.tick`` → ``GameSnapshot``

Everything runs on the caller's thread; nothing here blocks beyond the
camera read and one landmark inference.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

from flickshot.audio import AudioCues
from flickshot.camera import TrackingSession
from flickshot.config import GameConfig
from flickshot.errors import TrackingError
from flickshot.game import GameController, GameEvent, GamePhase, GameSnapshot, Intent
from flickshot.metrics import MetricsCollector
from flickshot.pipeline import AimFrame, AimPipeline

logger = logging.getLogger("flickshot.runtime")


class GameRuntime:
    """Owns the tracking resources, the aim pipeline and the controller.

    Resources are released on ``close()`` (or leaving the ``with`` block),
    not between sessions.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        tracking: Optional[TrackingSession] = None,
        audio: Optional[AudioCues] = None,
        rng: Optional[random.Random] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or GameConfig()
        self.tracking = tracking or TrackingSession(self.config)
        self.pipeline = AimPipeline.from_config(self.config)
        self.controller = GameController(self.config, audio=audio, rng=rng)
        self.metrics = metrics or MetricsCollector()
        self.controller.on_event(self._record_event)
        self._last_frame: Optional[AimFrame] = None
        self._last_snapshot: Optional[GameSnapshot] = None
        self._closed = False

    def _record_event(self, event: GameEvent):
        self.metrics.record_event(event.type)

    def on_event(self, callback: Callable[[GameEvent], None]):
        self.controller.on_event(callback)

    @property
    def phase(self) -> GamePhase:
        return self.controller.phase

    @property
    def snapshot(self) -> GameSnapshot:
        return self._last_snapshot or self.controller.snapshot()

    def dispatch(self, intent: Intent | str, now_ms: float) -> bool:
        """Forward a user intent to the controller."""
        intent = Intent(intent)
        accepted = self.controller.dispatch(intent, now_ms)
        if accepted and intent is Intent.BEGIN:
            self.pipeline.reset()
            self._last_frame = None
            self.metrics.record_session()
        return accepted

    def _ensure_tracking(self, now_ms: float):
        try:
            self.tracking.acquire()
        except TrackingError as e:
            self.controller.fail(e, now_ms)
            return
        self.controller.dispatch(Intent.PERMISSION_GRANTED, now_ms)

    def step(self, now_ms: float) -> GameSnapshot:
        """Run one iteration of the frame loop."""
        if self._closed:
            return self.snapshot

        if self.controller.phase is GamePhase.AWAITING_PERMISSION:
            self._ensure_tracking(now_ms)

        frame = None
        if self.tracking.acquired and self.controller.phase is not GamePhase.IDLE:
            t0 = time.perf_counter()
            try:
                captured, hands = self.tracking.poll()
            except Exception as e:
                # A failed read or inference counts as a frame without a hand
                logger.debug("Dropping frame at %.0fms: %s", now_ms, e)
                frame = self.pipeline.process([], now_ms)
                self._last_frame = frame
            else:
                if captured is not None:
                    frame = self.pipeline.process(hands, captured.timestamp_ms)
                    self._last_frame = frame
                    self.metrics.record_frame(time.perf_counter() - t0, len(hands))

        self._last_snapshot = self.controller.tick(frame, now_ms)
        return self._last_snapshot

    def run(
        self,
        on_snapshot: Optional[Callable[[GameSnapshot], None]] = None,
        should_stop: Callable[[], bool] = lambda: False,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Blocking loop at ``config.frame_rate`` until ``should_stop()``."""
        period = 1.0 / max(1, self.config.frame_rate)
        while not should_stop():
            started = clock()
            snapshot = self.step(started * 1000.0)
            if on_snapshot is not None:
                on_snapshot(snapshot)
            remaining = period - (clock() - started)
            if remaining > 0:
                sleep(remaining)

    def close(self):
        """Cancel all timers and release camera and engine."""
        if self._closed:
            return
        self._closed = True
        self.controller.close()
        self.tracking.release()
        logger.info("Runtime closed")

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
