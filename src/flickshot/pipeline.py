"""Per-frame gesture-to-aim pipeline.

Landmarks → aiming pose → smoothed aim point → fire event, always evaluated
in that order so a shot and the aim coordinate it reports come from the
same frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from flickshot import detector
from flickshot.config import GameConfig
from flickshot.gestures import GestureClassifier
from flickshot.shots import FireEvent, ShotDetector
from flickshot.smoothing import AimSample, FilteredAim, PositionFilter

logger = logging.getLogger("flickshot.pipeline")


@dataclass(frozen=True)
class AimFrame:
    """Everything the game needs from one processed frame."""
    sample: AimSample
    aim: FilteredAim
    fire: Optional[FireEvent] = None
    hand_present: bool = False

    @property
    def is_aiming(self) -> bool:
        return self.sample.is_aiming


class AimPipeline:
    """Turns landmark detections into ``AimFrame`` values.

    Any error raised while processing a frame is logged and the frame is
    treated as if no hand were visible; a single bad frame never interrupts
    the session.
    """

    def __init__(
        self,
        classifier: Optional[GestureClassifier] = None,
        position_filter: Optional[PositionFilter] = None,
        shot_detector: Optional[ShotDetector] = None,
        freeze_ms: float = 400.0,
        mirror: bool = True,
    ):
        self.classifier = classifier or GestureClassifier()
        self.position_filter = position_filter or PositionFilter()
        self.shot_detector = shot_detector or ShotDetector()
        self.freeze_ms = freeze_ms
        self.mirror = mirror
        self._frames = 0
        self._shots = 0
        self._dropped = 0

    @classmethod
    def from_config(cls, config: GameConfig) -> AimPipeline:
        return cls(
            classifier=GestureClassifier(
                extension_ratio=config.extension_ratio,
                curl_fraction=config.curl_fraction,
            ),
            position_filter=PositionFilter(
                tracking_factor=config.tracking_factor,
                return_factor=config.return_factor,
                steady_threshold=config.steady_threshold,
            ),
            shot_detector=ShotDetector(
                flick_velocity=config.flick_velocity,
                snap_velocity=config.snap_velocity,
                snap_acceleration=config.snap_acceleration,
                cooldown_ms=config.shot_cooldown_ms,
                max_gap_ms=config.max_gap_ms,
            ),
            freeze_ms=config.freeze_ms,
            mirror=config.mirror,
        )

    def process(self, hands: list[np.ndarray], timestamp_ms: float) -> AimFrame:
        """Process the detector output for one frame.

        Args:
            hands: Zero or one landmark arrays from the landmark source. Only
                the first hand is used.
            timestamp_ms: Frame timestamp.
        """
        self._frames += 1
        if hands:
            try:
                return self._process_hand(hands[0], timestamp_ms)
            except Exception as e:
                self._dropped += 1
                logger.debug("Dropping frame at %.0fms: %s", timestamp_ms, e)
        return self._process_no_hand(timestamp_ms)

    def _process_hand(self, landmarks, timestamp_ms: float) -> AimFrame:
        lm = detector.as_landmarks(landmarks)

        is_aiming = self.classifier.classify(lm)

        tip = lm[detector.INDEX_TIP]
        x = 1.0 - float(tip[0]) if self.mirror else float(tip[0])
        sample = AimSample(x=x, y=float(tip[1]), is_aiming=is_aiming, timestamp_ms=timestamp_ms)
        aim = self.position_filter.sample(sample, hand_present=True)

        fire = None
        if is_aiming:
            if self.shot_detector.detect(lm, timestamp_ms):
                fx, fy = self.position_filter.freeze(timestamp_ms + self.freeze_ms)
                fire = FireEvent(x=fx, y=fy, timestamp_ms=timestamp_ms)
                aim = self.position_filter.current(timestamp_ms, sample)
                self._shots += 1
        else:
            self.shot_detector.clear_history()

        return AimFrame(sample=sample, aim=aim, fire=fire, hand_present=True)

    def _process_no_hand(self, timestamp_ms: float) -> AimFrame:
        self.shot_detector.clear_history()
        x, y = self.position_filter.position
        sample = AimSample(x=x, y=y, is_aiming=False, timestamp_ms=timestamp_ms)
        aim = self.position_filter.sample(sample, hand_present=False)
        return AimFrame(sample=sample, aim=aim, fire=None, hand_present=False)

    def reset(self):
        """Clear per-session tracking state."""
        self.position_filter.reset()
        self.shot_detector.reset()

    @property
    def stats(self) -> dict:
        return {
            "frames": self._frames,
            "shots": self._shots,
            "dropped_frames": self._dropped,
        }
