"""Tests for landmark recording and replay."""

import json

import numpy as np
import pytest

from flickshot.recorder import LandmarkRecorder, RecordedFrame, ReplaySource


def make_hands(n=1):
    return [np.random.rand(21, 3).astype(np.float32) for _ in range(n)]


def record(frames):
    rec = LandmarkRecorder()
    rec.start(1_000.0)
    for ts, hands in frames:
        rec.add_frame(hands, ts)
    rec.stop()
    return rec


class TestRecorder:
    def test_record_and_count(self):
        rec = LandmarkRecorder()
        rec.start(0)
        for i in range(10):
            rec.add_frame(make_hands(), i * 33.0)
        assert rec.stop() == 10
        assert not rec.is_recording

    def test_not_recording_ignores_frames(self):
        rec = LandmarkRecorder()
        rec.add_frame(make_hands(), 0)
        assert rec.frame_count == 0

    def test_timestamps_relative_to_start(self):
        rec = record([(1_000.0, make_hands()), (1_050.0, [])])
        assert rec.duration_ms == 50.0

    def test_keeps_only_one_hand(self):
        rec = record([(1_000.0, make_hands(2))])
        assert len(rec._frames[0].hands) == 1

    def test_restart_discards_previous(self):
        rec = record([(1_000.0, make_hands())])
        rec.start(5_000)
        assert rec.frame_count == 0


class TestSaveLoad:
    def test_json_roundtrip(self, tmp_path):
        hand = make_hands()
        rec = record([(1_000.0, hand), (1_033.0, []), (1_066.0, make_hands())])
        path = tmp_path / "session.json"
        rec.save(path)

        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["frame_count"] == 3

        replay = ReplaySource.load(path)
        assert replay.frame_count == 3
        assert replay.duration_ms == 66.0
        frame = replay.read_latest()
        np.testing.assert_allclose(replay.detect(frame.image, frame.timestamp_ms)[0], hand[0], atol=1e-6)

    def test_npz_roundtrip(self, tmp_path):
        hand = make_hands()
        rec = record([(1_000.0, hand), (1_033.0, [])])
        path = tmp_path / "session.npz"
        rec.save(path)

        replay = ReplaySource.load(path)
        assert replay.frame_count == 2
        frame = replay.read_latest()
        np.testing.assert_allclose(replay.detect(frame.image, 0)[0], hand[0], atol=1e-6)
        frame = replay.read_latest()
        assert replay.detect(frame.image, 0) == []

    def test_empty_recording(self, tmp_path):
        rec = LandmarkRecorder()
        rec.start(0)
        rec.stop()
        path = tmp_path / "empty.json"
        rec.save(path)
        replay = ReplaySource.load(path)
        assert replay.frame_count == 0
        assert replay.exhausted
        assert replay.read_latest() is None


class TestReplaySource:
    def _source(self, start_ms=0.0):
        frames = [RecordedFrame(timestamp_ms=i * 33.0, hands=[]) for i in range(3)]
        return ReplaySource(frames, start_ms=start_ms)

    def test_one_frame_per_read(self):
        src = self._source(start_ms=500.0)
        stamps = [src.read_latest().timestamp_ms for _ in range(3)]
        assert src.read_latest() is None
        assert stamps == [500.0, 533.0, 566.0]
        assert src.exhausted

    def test_timestamps_match_frames(self):
        src = self._source(start_ms=100.0)
        assert list(src.timestamps()) == [100.0, 133.0, 166.0]

    def test_detect_before_read(self):
        src = self._source()
        assert src.detect(None, 0) == []

    def test_rewind(self):
        src = self._source()
        src.read_latest()
        src.read_latest()
        src.rewind()
        assert src.read_latest().index == 1

    def test_close(self):
        src = self._source()
        src.close()
        assert not src.ready
