"""Audio cue boundary.

The game only ever asks for four fire-and-forget cues. Concrete output
(a sound engine, a browser client) lives outside the core and is handed in
as an ``AudioCues`` object.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger("flickshot.audio")


class AudioCues(ABC):
    """Interface for the game's sound effects and ambient loop."""

    @abstractmethod
    def play_fire_sound(self):
        ...

    @abstractmethod
    def play_ambient_loop(self):
        ...

    @abstractmethod
    def stop_ambient_loop(self):
        ...

    @abstractmethod
    def set_muted(self, muted: bool):
        ...


class LoggingAudio(AudioCues):
    """Logs cues instead of playing them. Default for headless runs.

    Tracks mute and ambient state the way a real player would, so muting
    while the loop runs pauses it and unmuting resumes it.
    """

    def __init__(self):
        self.muted = False
        self.ambient_playing = False

    def play_fire_sound(self):
        if not self.muted:
            logger.info("cue: fire")

    def play_ambient_loop(self):
        self.ambient_playing = True
        if not self.muted:
            logger.info("cue: ambient loop start")

    def stop_ambient_loop(self):
        if self.ambient_playing:
            logger.info("cue: ambient loop stop")
        self.ambient_playing = False

    def set_muted(self, muted: bool):
        self.muted = muted
        logger.info("cue: muted=%s", muted)
