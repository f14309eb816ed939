"""FlickShot - Finger-gun target shooting driven by hand tracking."""

__version__ = "0.1.0"

from flickshot.errors import (
    FlickShotError,
    TrackingError,
    PermissionDenied,
    DeviceUnavailable,
    EngineInitFailed,
    MalformedLandmarkSet,
)
from flickshot.config import GameConfig
from flickshot.detector import HandDetector
from flickshot.gestures import GestureClassifier
from flickshot.smoothing import PositionFilter, AimSample, FilteredAim
from flickshot.shots import ShotDetector, FireEvent
from flickshot.pipeline import AimPipeline, AimFrame
from flickshot.targets import Target, TargetSpawner, TargetState
from flickshot.collision import CollisionResolver, HitResult
from flickshot.timers import Scheduler, TimerHandle
from flickshot.clock import SessionClock
from flickshot.audio import AudioCues, LoggingAudio
from flickshot.game import GameController, GameEvent, GamePhase, GameSession, GameSnapshot, Intent
from flickshot.camera import TrackingSession, CameraSource
from flickshot.recorder import LandmarkRecorder, ReplaySource
from flickshot.runtime import GameRuntime
from flickshot.metrics import MetricsCollector
