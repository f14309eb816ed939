"""Tests for the per-frame aim pipeline."""

import numpy as np
import pytest

from flickshot.config import GameConfig
from flickshot.pipeline import AimPipeline
from flickshot.smoothing import CENTER


def make_gun(x=0.3, y=0.4, thumb_y=0.7):
    lm = np.zeros((21, 3), dtype=np.float32)
    lm[0] = [0.5, 0.9, 0]
    for i in range(1, 21):
        lm[i] = [0.5, 0.8, 0]
    lm[4] = [0.4, thumb_y, 0]
    lm[8] = [x, y, 0]
    for tip in [12, 16, 20]:
        lm[tip] = [0.52, 0.75, 0]
    return lm


def make_open_hand(thumb_y=0.7):
    lm = make_gun(thumb_y=thumb_y)
    for i, tip in enumerate([8, 12, 16, 20]):
        lm[tip] = [0.3 + i * 0.1, 0.4, 0]
    return lm


def run(pipeline, hands_per_frame, start_ms=0.0, step_ms=33.0):
    return [
        pipeline.process(hands, start_ms + i * step_ms)
        for i, hands in enumerate(hands_per_frame)
    ]


class TestAiming:
    def test_gun_pose_is_aiming(self):
        frame = AimPipeline().process([make_gun()], 0)
        assert frame.is_aiming
        assert frame.hand_present

    def test_x_is_mirrored(self):
        frame = AimPipeline(mirror=True).process([make_gun(x=0.3)], 0)
        assert frame.sample.x == pytest.approx(0.7)
        assert frame.sample.y == pytest.approx(0.4)

    def test_no_mirror(self):
        frame = AimPipeline(mirror=False).process([make_gun(x=0.3)], 0)
        assert frame.sample.x == pytest.approx(0.3)

    def test_aim_follows_hand(self):
        p = AimPipeline()
        frames = run(p, [[make_gun(x=0.3)]] * 60)
        assert frames[-1].aim.position == pytest.approx((0.7, 0.4))

    def test_only_first_hand_used(self):
        frame = AimPipeline().process([make_gun(x=0.3), make_gun(x=0.9)], 0)
        assert frame.sample.x == pytest.approx(0.7)


class TestFiring:
    def test_flick_fires_at_steady_position(self):
        p = AimPipeline()
        frames = run(p, [[make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.6)]])
        assert frames[0].fire is None
        assert frames[1].fire is None
        fire = frames[2].fire
        assert fire is not None
        assert fire.position == pytest.approx((0.7, 0.4))
        assert fire.timestamp_ms == 66

    def test_fire_after_reentry_lands_near_hand(self):
        p = AimPipeline()
        hands = [[make_gun(x=0.7, y=0.4)]] * 5
        hands += [[]]
        hands += [[make_gun(x=0.4, y=0.6, thumb_y=0.7)], [make_gun(x=0.35, y=0.6, thumb_y=0.6)]]
        frames = run(p, hands)
        fire = frames[-1].fire
        assert fire is not None
        # Old steady point was (0.3, 0.4); the hand is now near (0.65, 0.6)
        assert fire.position == pytest.approx(p.position_filter.position)
        assert fire.x > 0.45
        assert fire.y > 0.45

    def test_aim_frozen_on_fire_frame(self):
        p = AimPipeline(freeze_ms=400)
        frames = run(p, [[make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.6)]])
        aim = frames[2].aim
        assert aim.frozen
        assert aim.position == frames[2].fire.position

    def test_freeze_ends(self):
        p = AimPipeline(freeze_ms=400)
        hands = [[make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.6)]]
        hands += [[make_gun(thumb_y=0.6)]] * 15
        frames = run(p, hands)
        assert frames[3].aim.frozen
        # 66ms + 400ms freeze; frame 15 is at 495ms
        assert not frames[15].aim.frozen

    def test_no_fire_when_not_aiming(self):
        p = AimPipeline()
        frames = run(p, [[make_open_hand(0.7)], [make_open_hand(0.7)], [make_open_hand(0.5)]])
        assert all(f.fire is None for f in frames)
        assert not any(f.is_aiming for f in frames)

    def test_pose_break_clears_motion(self):
        p = AimPipeline()
        frames = run(p, [[make_gun(thumb_y=0.7)], [make_open_hand(0.7)], [make_gun(thumb_y=0.6)]])
        assert all(f.fire is None for f in frames)

    def test_hand_loss_clears_motion(self):
        p = AimPipeline()
        frames = run(p, [[make_gun(thumb_y=0.7)], [], [make_gun(thumb_y=0.6)]])
        assert all(f.fire is None for f in frames)

    def test_stats_count_shots(self):
        p = AimPipeline()
        run(p, [[make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.6)]])
        assert p.stats == {"frames": 3, "shots": 1, "dropped_frames": 0}


class TestDegradation:
    def test_no_hand_frame(self):
        frame = AimPipeline().process([], 0)
        assert not frame.hand_present
        assert not frame.is_aiming
        assert frame.fire is None
        assert frame.aim.position == CENTER

    def test_lost_hand_drifts_to_center(self):
        p = AimPipeline()
        run(p, [[make_gun(x=0.1)]] * 60)
        frames = run(p, [[]] * 200, start_ms=60 * 33)
        assert frames[0].aim.x < 0.9
        assert frames[-1].aim.position == CENTER

    def test_nan_frame_swallowed(self):
        p = AimPipeline()
        frame = p.process([np.full((21, 3), np.nan)], 0)
        assert not frame.hand_present
        assert frame.fire is None
        assert p.stats["dropped_frames"] == 1

    def test_wrong_shape_swallowed(self):
        p = AimPipeline()
        frame = p.process([np.zeros((5, 3))], 0)
        assert not frame.hand_present
        assert p.stats["dropped_frames"] == 1

    def test_keeps_working_after_bad_frame(self):
        p = AimPipeline()
        p.process([np.zeros((5, 3))], 0)
        frame = p.process([make_gun()], 33)
        assert frame.is_aiming


class TestReset:
    def test_reset_restores_center(self):
        p = AimPipeline()
        run(p, [[make_gun(x=0.1)]] * 30)
        p.reset()
        assert p.process([], 10_000).aim.position == CENTER

    def test_from_config(self):
        config = GameConfig(flick_velocity=5.0, snap_velocity=5.0, mirror=False, freeze_ms=100)
        p = AimPipeline.from_config(config)
        assert p.shot_detector.flick_velocity == 5.0
        assert not p.mirror
        assert p.freeze_ms == 100
        # 3 heights/s no longer enough
        frames = run(p, [[make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.7)], [make_gun(thumb_y=0.6)]])
        assert frames[2].fire is None
