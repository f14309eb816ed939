"""Finger-gun pose classification from landmark geometry.

A hand is "aiming" when the index finger is clearly extended while the
middle, ring and pinky fingers are curled. Extension is measured as
fingertip distance from the wrist, which holds up when the hand is rotated
or held at different distances from the camera. The thumb is ignored here;
its motion is what fires a shot.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from flickshot import detector
from flickshot.errors import MalformedLandmarkSet

_TIPS = {
    "thumb": detector.THUMB_TIP,
    "index": detector.INDEX_TIP,
    "middle": detector.MIDDLE_TIP,
    "ring": detector.RING_TIP,
    "pinky": detector.PINKY_TIP,
}

_CURLED_FINGERS = ("middle", "ring", "pinky")


def fingertip_distances(landmarks) -> dict[str, float]:
    """Euclidean distance of each fingertip from the wrist.

    Raises:
        MalformedLandmarkSet: if the landmark set is not usable.
    """
    lm = detector.as_landmarks(landmarks)
    wrist = lm[detector.WRIST]
    return {
        finger: float(np.linalg.norm(lm[tip] - wrist))
        for finger, tip in _TIPS.items()
    }


@dataclass(frozen=True)
class GestureClassifier:
    """Classifies the aiming ("finger gun") pose.

    Args:
        extension_ratio: Index tip must be farther from the wrist than each
            curled fingertip by at least this factor.
        curl_fraction: Each curled fingertip must be closer to the wrist
            than this fraction of the index distance.
    """

    extension_ratio: float = 1.2
    curl_fraction: float = 0.8

    def classify(self, landmarks) -> bool:
        """Return True if the landmarks show the aiming pose.

        Malformed input is treated like no hand at all and returns False.
        """
        try:
            dists = fingertip_distances(landmarks)
        except MalformedLandmarkSet:
            return False

        index = dists["index"]
        if index <= 0.0:
            return False

        for finger in _CURLED_FINGERS:
            other = dists[finger]
            if index <= other * self.extension_ratio:
                return False
            if other >= self.curl_fraction * index:
                return False

        return True
