"""Prometheus-compatible metrics for FlickShot.

Renders the text exposition format directly, no client library needed.

Tracked metrics:
- flickshot_events_total (counter, by event type: fire/hit/miss/spawn/...)
- flickshot_sessions_total (counter)
- flickshot_frames_total (counter)
- flickshot_hands_detected_total (counter)
- flickshot_frame_latency_seconds (histogram)
- flickshot_hand_detection_rate (gauge)
- flickshot_accuracy (gauge, hits / shots)
- flickshot_active_connections (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter


class _Histogram:
    """Cumulative histogram with fixed buckets."""

    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> list[str]:
        lines = [f"# HELP {name} {help_text}", f"# TYPE {name} histogram"]
        with self._lock:
            cumulative = 0
            for b, n in zip(self.buckets, self.bucket_counts):
                cumulative += n
                lines.append(f'{name}_bucket{{le="{b}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return lines


def _metric(lines: list[str], name: str, kind: str, help_text: str, value):
    lines.append(f"# HELP {name} {help_text}")
    lines.append(f"# TYPE {name} {kind}")
    lines.append(f"{name} {value}")


class MetricsCollector:
    """Counts frames, game events and sessions."""

    def __init__(self):
        self._events: Counter = Counter()
        self._sessions = 0
        self._frames = 0
        self._hands = 0
        self._connections = 0
        self._detection_rate = 0.0
        self._lock = threading.Lock()
        # 1ms .. 100ms; 33ms is one frame at 30 FPS
        self._latency = _Histogram([0.001, 0.002, 0.005, 0.010, 0.020, 0.033, 0.050, 0.100])
        self._started = time.time()

    def record_event(self, event_type: str):
        with self._lock:
            self._events[event_type] += 1

    def record_session(self):
        with self._lock:
            self._sessions += 1

    def record_frame(self, latency_seconds: float, hands_detected: int):
        with self._lock:
            self._frames += 1
            self._hands += hands_detected
            seen = 1.0 if hands_detected else 0.0
            self._detection_rate = 0.95 * self._detection_rate + 0.05 * seen
        self._latency.observe(latency_seconds)

    def set_connections(self, count: int):
        self._connections = count

    @property
    def event_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._events)

    @property
    def accuracy(self) -> float:
        with self._lock:
            shots = self._events.get("fire", 0)
            return self._events.get("hit", 0) / shots if shots else 0.0

    def render(self) -> str:
        lines: list[str] = []
        _metric(lines, "flickshot_uptime_seconds", "gauge", "Time since start",
                f"{time.time() - self._started:.1f}")
        lines.append("")

        lines.append("# HELP flickshot_events_total Game events by type")
        lines.append("# TYPE flickshot_events_total counter")
        for name, count in sorted(self.event_counts.items()):
            lines.append(f'flickshot_events_total{{type="{name}"}} {count}')
        lines.append("")

        with self._lock:
            sessions, frames, hands = self._sessions, self._frames, self._hands
            rate = self._detection_rate

        _metric(lines, "flickshot_sessions_total", "counter", "Sessions started", sessions)
        lines.append("")
        _metric(lines, "flickshot_frames_total", "counter", "Frames processed", frames)
        lines.append("")
        _metric(lines, "flickshot_hands_detected_total", "counter",
                "Hands detected across all frames", hands)
        lines.append("")
        lines.extend(self._latency.render(
            "flickshot_frame_latency_seconds", "Capture plus inference latency per frame",
        ))
        lines.append("")
        _metric(lines, "flickshot_hand_detection_rate", "gauge",
                "Exponential moving average of hand presence", f"{rate:.4f}")
        lines.append("")
        _metric(lines, "flickshot_accuracy", "gauge", "Hits per shot fired", f"{self.accuracy:.4f}")
        lines.append("")
        _metric(lines, "flickshot_active_connections", "gauge",
                "Current WebSocket connections", self._connections)
        lines.append("")
        return "\n".join(lines) + "\n"
