"""Camera capture and scoped ownership of the tracking resources.

A ``TrackingSession`` bundles the camera and the landmark engine. It is
acquired when the game starts asking for permission and released only when
the whole game is torn down, so replays reuse the same handles.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import numpy as np

from flickshot.config import GameConfig
from flickshot.errors import DeviceUnavailable, EngineInitFailed, PermissionDenied, TrackingError

try:
    import cv2
except ImportError:
    cv2 = None

logger = logging.getLogger("flickshot.camera")


@dataclass(frozen=True)
class Frame:
    """One captured RGB frame."""
    image: np.ndarray
    timestamp_ms: float
    index: int


class FrameSource(Protocol):
    ready: bool

    def read_latest(self) -> Optional[Frame]:
        """Most recent frame not yet returned, or None."""
        ...

    def close(self):
        ...


class LandmarkSource(Protocol):
    def detect(self, frame_rgb: np.ndarray, timestamp_ms: float) -> list[np.ndarray]:
        ...

    def close(self):
        ...


class CameraSource:
    """OpenCV webcam capture that only ever hands out the newest frame.

    The driver buffer is shrunk to one frame, so frames that arrive while the
    game is busy are overwritten rather than queued.
    """

    def __init__(
        self,
        index: int = 0,
        width: int = 1280,
        height: int = 720,
        clock: Callable[[], float] = time.monotonic,
    ):
        if cv2 is None:
            raise DeviceUnavailable("opencv-python required for camera capture")

        self._clock = clock
        self._count = 0
        self._capture = cv2.VideoCapture(index)

        if not self._capture.isOpened():
            self._capture.release()
            # OpenCV reports a denied camera and a missing one the same way;
            # check the device node where the platform exposes one.
            raise _classify_open_failure(index)

        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self._capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        self.ready = True
        logger.info("Camera %d opened", index)

    def read_latest(self) -> Optional[Frame]:
        if not self.ready:
            return None
        ok, frame_bgr = self._capture.read()
        if not ok:
            return None
        self._count += 1
        return Frame(
            image=cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB),
            timestamp_ms=self._clock() * 1000.0,
            index=self._count,
        )

    def close(self):
        if self.ready:
            self._capture.release()
            self.ready = False
            logger.info("Camera released")


def _classify_open_failure(index: int) -> TrackingError:
    node = f"/dev/video{index}"
    if os.path.exists(node) and not os.access(node, os.R_OK):
        return PermissionDenied(f"no permission to read {node}")
    return DeviceUnavailable(f"could not open camera {index}")


def default_detector_factory() -> LandmarkSource:
    from flickshot.detector import HandDetector

    return HandDetector()


class TrackingSession:
    """Owns a frame source and a landmark source for one game component.

    Usage:
        with TrackingSession(config) as tracking:
            tracking.acquire()   # may raise a TrackingError
            ...
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        source_factory: Optional[Callable[[], FrameSource]] = None,
        detector_factory: Callable[[], LandmarkSource] = default_detector_factory,
    ):
        self.config = config or GameConfig()
        self._source_factory = source_factory or self._open_camera
        self._detector_factory = detector_factory
        self.source: Optional[FrameSource] = None
        self.detector: Optional[LandmarkSource] = None

    def _open_camera(self) -> FrameSource:
        return CameraSource(
            index=self.config.camera_index,
            width=self.config.camera_width,
            height=self.config.camera_height,
        )

    @property
    def acquired(self) -> bool:
        return self.source is not None and self.detector is not None

    def acquire(self):
        """Open the camera and the landmark engine. Idempotent.

        Raises:
            PermissionDenied, DeviceUnavailable, EngineInitFailed
        """
        if self.acquired:
            return
        try:
            if self.source is None:
                self.source = self._source_factory()
            if self.detector is None:
                self.detector = self._detector_factory()
        except TrackingError:
            self.release()
            raise
        except Exception as e:
            self.release()
            raise EngineInitFailed(str(e)) from e

    def release(self):
        if self.detector is not None:
            self.detector.close()
            self.detector = None
        if self.source is not None:
            self.source.close()
            self.source = None

    def poll(self) -> tuple[Optional[Frame], list[np.ndarray]]:
        """Read the newest frame and run the landmark engine on it.

        Returns (None, []) when no new frame is available.
        """
        if not self.acquired or not self.source.ready:
            return None, []
        frame = self.source.read_latest()
        if frame is None:
            return None, []
        return frame, self.detector.detect(frame.image, frame.timestamp_ms)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.release()
