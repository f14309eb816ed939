"""Exception hierarchy for FlickShot."""

from __future__ import annotations


class FlickShotError(Exception):
    """Base class for all FlickShot errors."""


class TrackingError(FlickShotError):
    """Camera or landmark engine could not be brought up.

    Terminal for the current session: the game returns to idle and waits
    for the user to start again.
    """

    #: short machine-readable status shown by the presentation layer
    status = "tracking_error"


class PermissionDenied(TrackingError):
    status = "permission_denied"


class DeviceUnavailable(TrackingError):
    status = "device_unavailable"


class EngineInitFailed(TrackingError):
    status = "engine_init_failed"


class MalformedLandmarkSet(FlickShotError, ValueError):
    """Landmark array is not 21 finite 2-D/3-D points."""
