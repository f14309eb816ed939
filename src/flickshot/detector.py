"""Hand landmark extraction using MediaPipe."""

from __future__ import annotations

import logging

import numpy as np

from flickshot.errors import EngineInitFailed, MalformedLandmarkSet

try:
    import mediapipe as mp
except ImportError:
    mp = None

logger = logging.getLogger("flickshot.detector")

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

NUM_LANDMARKS = 21


def as_landmarks(landmarks) -> np.ndarray:
    """Validate one hand's landmarks and return them as a float array.

    Accepts anything array-like of shape (21, 2) or (21, 3).

    Raises:
        MalformedLandmarkSet: wrong shape or non-finite values.
    """
    try:
        arr = np.asarray(landmarks, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise MalformedLandmarkSet(f"not numeric: {e}") from e

    if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] not in (2, 3):
        raise MalformedLandmarkSet(f"expected (21, 2|3) landmarks, got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise MalformedLandmarkSet("landmarks contain NaN or inf")
    return arr


class HandDetector:
    """Extracts 21 hand landmarks for a single hand using MediaPipe Hands.

    Each landmark is (x, y, z) with x/y normalized to [0, 1] relative to the
    image. The game only ever tracks one hand, so at most one landmark set
    is returned per frame.
    """

    LANDMARK_DIM = 3  # x, y, z

    def __init__(
        self,
        min_detection_confidence: float = 0.7,
        min_tracking_confidence: float = 0.5,
    ):
        if mp is None:
            raise EngineInitFailed(
                "mediapipe is required. Install with: pip install mediapipe"
            )

        try:
            self._hands = mp.solutions.hands.Hands(
                static_image_mode=False,
                max_num_hands=1,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except Exception as e:
            raise EngineInitFailed(f"could not load hand landmark model: {e}") from e

        self._last_timestamp_ms = -1.0
        logger.info("Hand landmark engine ready")

    def detect(self, frame_rgb: np.ndarray, timestamp_ms: float) -> list[np.ndarray]:
        """Detect a hand and return its landmarks.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.
            timestamp_ms: Capture time of the frame. Frames that are not newer
                than the previous call are skipped.

        Returns:
            A list with zero or one landmark array of shape (21, 3).
        """
        if timestamp_ms <= self._last_timestamp_ms:
            return []
        self._last_timestamp_ms = timestamp_ms

        results = self._hands.process(frame_rgb)

        if not results.multi_hand_landmarks:
            return []

        hand_landmarks = results.multi_hand_landmarks[0]
        landmarks = np.array(
            [[lm.x, lm.y, lm.z] for lm in hand_landmarks.landmark],
            dtype=np.float32,
        )
        return [landmarks]

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
