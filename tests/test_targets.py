"""Tests for target spawning and hit resolution."""

import itertools
import random

import pytest

from flickshot.collision import CollisionResolver
from flickshot.shots import FireEvent
from flickshot.targets import Target, TargetSpawner, TargetState, live_targets


def fire_at(x, y, ts=0.0):
    return FireEvent(x=x, y=y, timestamp_ms=ts)


class TestTarget:
    def test_mark_hit_returns_copy(self):
        t = Target(id=1, x=0.5, y=0.5)
        hit = t.mark_hit(1_000)
        assert t.live
        assert not hit.live
        assert hit.state is TargetState.HIT
        assert hit.hit_at_ms == 1_000

    def test_to_dict(self):
        d = Target(id=3, x=0.123456, y=0.5).to_dict()
        assert d == {"id": 3, "x": 0.1235, "y": 0.5, "state": "spawned"}

    def test_live_targets_filters_hit(self):
        targets = [Target(0, 0.2, 0.2), Target(1, 0.5, 0.5).mark_hit(0), Target(2, 0.8, 0.8)]
        assert [t.id for t in live_targets(targets)] == [0, 2]


class TestTargetSpawner:
    def test_spawn_within_ranges(self):
        spawner = TargetSpawner(rng=random.Random(1))
        for _ in range(50):
            t = spawner.try_spawn([])
            assert 0.15 <= t.x <= 0.85
            assert 0.15 <= t.y <= 0.75

    def test_ids_unique_and_reset(self):
        spawner = TargetSpawner(rng=random.Random(2))
        ids = [spawner.try_spawn([]).id for _ in range(5)]
        assert ids == [0, 1, 2, 3, 4]
        spawner.reset()
        assert spawner.try_spawn([]).id == 0

    def test_cap_on_live_targets(self):
        spawner = TargetSpawner(max_live=4, rng=random.Random(3))
        existing = [Target(i, 0.1 + 0.2 * i, 0.1) for i in range(4)]
        assert spawner.try_spawn(existing) is None

    def test_hit_targets_do_not_count_toward_cap(self):
        spawner = TargetSpawner(max_live=1, min_separation=0.0, rng=random.Random(4))
        existing = [Target(0, 0.5, 0.5).mark_hit(0)]
        assert spawner.try_spawn(existing) is not None

    def test_crowded_field_skips(self):
        spawner = TargetSpawner(min_separation=2.0, rng=random.Random(5))
        assert spawner.try_spawn([Target(0, 0.5, 0.5)]) is None

    @pytest.mark.parametrize("seed", range(5))
    def test_cap_and_separation_hold_over_many_rounds(self, seed):
        rng = random.Random(seed)
        spawner = TargetSpawner(max_live=4, min_separation=0.2, rng=rng)
        field = []
        for _ in range(300):
            t = spawner.try_spawn(field)
            if t is not None:
                field.append(t)
            # Knock some targets out and drop old hits, like the game does
            if field and rng.random() < 0.4:
                i = rng.randrange(len(field))
                if field[i].live:
                    field[i] = field[i].mark_hit(0)
                else:
                    field.pop(i)

            live = live_targets(field)
            assert len(live) <= 4
            for a, b in itertools.combinations(live, 2):
                assert a.distance_to(b.x, b.y) >= 0.2


class TestCollisionResolver:
    def test_hit_inside_radius(self):
        r = CollisionResolver(hit_radius=0.08, points_per_hit=10)
        result = r.resolve(fire_at(0.52, 0.5), [Target(7, 0.5, 0.5)], score=30)
        assert result.hit
        assert result.hit_target_id == 7
        assert result.score == 40

    def test_boundary_is_a_miss(self):
        r = CollisionResolver(hit_radius=0.08)
        result = r.resolve(fire_at(0.0, 0.08), [Target(0, 0.0, 0.0)], score=50)
        assert not result.hit
        assert result.score == 40

    def test_miss_penalty(self):
        r = CollisionResolver(miss_penalty=10)
        result = r.resolve(fire_at(0.1, 0.1), [Target(0, 0.8, 0.8)], score=25)
        assert not result.hit
        assert result.score == 15

    def test_score_floors_at_zero(self):
        r = CollisionResolver(miss_penalty=10)
        assert r.resolve(fire_at(0.1, 0.1), [], score=5).score == 0
        assert r.resolve(fire_at(0.1, 0.1), [], score=0).score == 0

    def test_first_match_in_list_order(self):
        r = CollisionResolver(hit_radius=0.2)
        targets = [Target(4, 0.55, 0.5), Target(2, 0.5, 0.5)]
        assert r.resolve(fire_at(0.5, 0.5), targets, 0).hit_target_id == 4

    def test_hit_target_cannot_be_hit_again(self):
        r = CollisionResolver()
        targets = [Target(0, 0.5, 0.5).mark_hit(0), Target(1, 0.52, 0.5)]
        result = r.resolve(fire_at(0.5, 0.5), targets, 0)
        assert result.hit_target_id == 1

    def test_hovered(self):
        r = CollisionResolver(hit_radius=0.08)
        targets = [Target(0, 0.3, 0.3), Target(1, 0.7, 0.7)]
        assert r.hovered(0.71, 0.69, targets) == 1
        assert r.hovered(0.5, 0.5, targets) is None
