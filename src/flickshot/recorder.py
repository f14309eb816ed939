"""Landmark recording and replay.

Record a real play session once, then replay it without a camera:

- reproducible tests of the aim pipeline and game loop
- CI runs on headless machines
- tuning shot thresholds against the same hand motion

    recorder = LandmarkRecorder()
    recorder.start(now_ms)
    recorder.add_frame(hands, timestamp_ms)
    recorder.save("session.json")

    replay = ReplaySource.load("session.json")
    tracking = TrackingSession(source_factory=lambda: replay,
                               detector_factory=lambda: replay)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from flickshot.camera import Frame
from flickshot.detector import NUM_LANDMARKS

logger = logging.getLogger("flickshot.recorder")

_PLACEHOLDER_IMAGE = np.zeros((1, 1, 3), dtype=np.uint8)


@dataclass
class RecordedFrame:
    """A single frame in a recording."""
    timestamp_ms: float  # from recording start
    hands: list[list[list[float]]]  # zero or one (21, D) landmark set


class LandmarkRecorder:
    """Collects landmark frames in memory and writes them to disk."""

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_ms: Optional[float] = None
        self._recording = False

    def start(self, now_ms: Optional[float] = None):
        """Begin a new recording; earlier frames are discarded."""
        self._frames = []
        self._start_ms = now_ms if now_ms is not None else time.monotonic() * 1000.0
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration_ms(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp_ms

    def add_frame(self, hands: list[np.ndarray], timestamp_ms: float):
        if not self._recording:
            return
        self._frames.append(RecordedFrame(
            timestamp_ms=round(timestamp_ms - self._start_ms, 3),
            hands=[np.asarray(h, dtype=np.float32).tolist() for h in hands[:1]],
        ))

    def save(self, path: str | Path):
        """Save as JSON, or compact NPZ when the suffix is ``.npz``."""
        path = Path(path)
        if path.suffix == ".npz":
            self._save_compact(path)
            return

        data = {
            "version": 1,
            "frame_count": len(self._frames),
            "duration_ms": self.duration_ms,
            "frames": [
                {"t": f.timestamp_ms, "hands": f.hands} for f in self._frames
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f)
        logger.info("Saved %d frames to %s", len(self._frames), path)

    def _save_compact(self, path: Path):
        dim = 3
        for f in self._frames:
            if f.hands:
                dim = len(f.hands[0][0])
                break

        timestamps = np.array([f.timestamp_ms for f in self._frames], dtype=np.float64)
        present = np.array([bool(f.hands) for f in self._frames], dtype=bool)
        hands = np.zeros((len(self._frames), NUM_LANDMARKS, dim), dtype=np.float32)
        for i, f in enumerate(self._frames):
            if f.hands:
                hands[i] = np.array(f.hands[0], dtype=np.float32)

        np.savez_compressed(path, timestamps=timestamps, present=present, hands=hands)
        logger.info("Saved %d frames to %s", len(self._frames), path)


class ReplaySource:
    """Plays a recording back as both frame source and landmark source.

    ``read_latest`` hands out one recorded frame per call, shifted to start
    at ``start_ms``; ``detect`` returns the landmarks recorded for it.
    """

    def __init__(self, frames: list[RecordedFrame], start_ms: float = 0.0):
        self._frames = frames
        self._cursor = 0
        self._current: Optional[RecordedFrame] = None
        self.start_ms = start_ms
        self.ready = True

    @classmethod
    def load(cls, path: str | Path, start_ms: float = 0.0) -> ReplaySource:
        path = Path(path)
        if path.suffix == ".npz":
            return cls(_load_compact(path), start_ms)

        with open(path) as f:
            data = json.load(f)
        frames = [
            RecordedFrame(timestamp_ms=float(f["t"]), hands=f.get("hands", []))
            for f in data["frames"]
        ]
        return cls(frames, start_ms)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration_ms(self) -> float:
        return self._frames[-1].timestamp_ms if self._frames else 0.0

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._frames)

    def timestamps(self) -> Iterator[float]:
        """Absolute timestamps of all frames, for driving a replay loop."""
        for f in self._frames:
            yield self.start_ms + f.timestamp_ms

    def read_latest(self) -> Optional[Frame]:
        if self.exhausted:
            return None
        self._current = self._frames[self._cursor]
        self._cursor += 1
        return Frame(
            image=_PLACEHOLDER_IMAGE,
            timestamp_ms=self.start_ms + self._current.timestamp_ms,
            index=self._cursor,
        )

    def detect(self, frame_rgb: np.ndarray, timestamp_ms: float) -> list[np.ndarray]:
        if self._current is None:
            return []
        return [np.array(h, dtype=np.float32) for h in self._current.hands]

    def rewind(self):
        self._cursor = 0
        self._current = None

    def close(self):
        self.ready = False


def _load_compact(path: Path) -> list[RecordedFrame]:
    data = np.load(path, allow_pickle=False)
    frames = []
    for t, present, hand in zip(data["timestamps"], data["present"], data["hands"]):
        frames.append(RecordedFrame(
            timestamp_ms=float(t),
            hands=[hand.tolist()] if present else [],
        ))
    return frames
