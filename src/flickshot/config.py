"""Game and tracking configuration.

All tunables live on one dataclass so a session can be reproduced from a
single YAML file:

    config = GameConfig.from_yaml("flickshot.yml")
    config.to_yaml("copy.yml")
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("flickshot.config")


@dataclass
class GameConfig:
    # Session rules
    game_duration_ms: int = 30_000
    min_hits_required: int = 10
    points_per_hit: int = 10
    miss_penalty: int = 10
    bonus_threshold: int = 10
    bonus_ms: int = 15_000
    tick_interval_ms: int = 1_000

    # Targets (fractions of the play field)
    max_live_targets: int = 4
    min_separation: float = 0.2
    hit_radius: float = 0.08
    spawn_interval_ms: int = 2_000
    spawn_attempts: int = 10
    hit_linger_ms: int = 400
    spawn_x_range: tuple[float, float] = (0.15, 0.85)
    spawn_y_range: tuple[float, float] = (0.15, 0.75)

    # Gesture classification
    extension_ratio: float = 1.2
    curl_fraction: float = 0.8

    # Aim smoothing
    tracking_factor: float = 0.4
    return_factor: float = 0.15
    steady_threshold: float = 0.015
    freeze_ms: int = 400

    # Shot detection
    flick_velocity: float = 2.5
    snap_velocity: float = 1.2
    snap_acceleration: float = 30.0
    shot_cooldown_ms: int = 400
    max_gap_ms: int = 250

    # Capture
    mirror: bool = True
    camera_index: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    frame_rate: int = 30

    def __post_init__(self):
        # YAML round-trips tuples as lists
        self.spawn_x_range = tuple(self.spawn_x_range)
        self.spawn_y_range = tuple(self.spawn_y_range)
        self.validate()

    def validate(self):
        """Raise ValueError on settings the game cannot run with."""
        if self.game_duration_ms <= 0:
            raise ValueError("game_duration_ms must be positive")
        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be positive")
        for name in ("hit_radius", "min_separation", "freeze_ms", "shot_cooldown_ms"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_live_targets < 1:
            raise ValueError("max_live_targets must be at least 1")
        if self.spawn_attempts < 1:
            raise ValueError("spawn_attempts must be at least 1")
        for name in ("tracking_factor", "return_factor"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {value}")
        for name in ("spawn_x_range", "spawn_y_range"):
            lo, hi = getattr(self, name)
            if not 0.0 <= lo < hi <= 1.0:
                raise ValueError(f"{name} must satisfy 0 <= lo < hi <= 1")
        if self.miss_penalty < 0 or self.points_per_hit < 0:
            raise ValueError("points_per_hit and miss_penalty are magnitudes")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["spawn_x_range"] = list(self.spawn_x_range)
        data["spawn_y_range"] = list(self.spawn_y_range)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> GameConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: str | Path) -> GameConfig:
        """Load a config file. Missing keys keep their defaults."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at top level")
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
