"""Tests for Prometheus metrics."""

import pytest

from flickshot.metrics import MetricsCollector


class TestMetricsCollector:
    def test_record_event(self):
        m = MetricsCollector()
        m.record_event("fire")
        m.record_event("fire")
        m.record_event("hit")
        assert m.event_counts == {"fire": 2, "hit": 1}

    def test_accuracy(self):
        m = MetricsCollector()
        assert m.accuracy == 0.0
        for _ in range(4):
            m.record_event("fire")
        m.record_event("hit")
        assert m.accuracy == pytest.approx(0.25)

    def test_record_frame(self):
        m = MetricsCollector()
        m.record_frame(0.005, 1)
        m.record_frame(0.010, 0)
        assert m._frames == 2
        assert m._hands == 1

    def test_render_prometheus_format(self):
        m = MetricsCollector()
        m.record_event("hit")
        m.record_session()
        m.record_frame(0.005, 1)
        m.set_connections(3)

        output = m.render()
        assert 'flickshot_events_total{type="hit"} 1' in output
        assert "flickshot_sessions_total 1" in output
        assert "flickshot_frames_total 1" in output
        assert "flickshot_active_connections 3" in output
        assert "# HELP" in output
        assert "# TYPE" in output

    def test_histogram_buckets(self):
        m = MetricsCollector()
        for _ in range(10):
            m.record_frame(0.003, 1)
        m.record_frame(0.5, 1)
        output = m.render()
        assert 'flickshot_frame_latency_seconds_bucket{le="0.005"} 10' in output
        assert 'flickshot_frame_latency_seconds_bucket{le="+Inf"} 11' in output
        assert "flickshot_frame_latency_seconds_count 11" in output

    def test_detection_rate_moves_toward_presence(self):
        m = MetricsCollector()
        for _ in range(100):
            m.record_frame(0.001, 1)
        high = m._detection_rate
        for _ in range(100):
            m.record_frame(0.001, 0)
        assert high > 0.9
        assert m._detection_rate < 0.1
