"""Tests for the novelty heuristic."""

from __future__ import annotations

import numpy as np
import pytest

from emergence.automaton import World
from emergence.config import ConfigurationError, ExploreConfig, WorldConfig
from emergence.metrics import NoveltyTracker, bool_diff_count, frame_hash, is_interesting
from emergence.rules import RuleSet, WorldRule
from emergence.search import explore_seed


def test_frame_hash_depends_only_on_content() -> None:
    a = np.arange(16, dtype=np.uint8).reshape(4, 4)
    b = a.copy()
    assert frame_hash(a) == frame_hash(b)
    b[0, 0] = 9
    assert frame_hash(a) != frame_hash(b)


def test_bool_diff_count() -> None:
    a = np.array([True, False, True, False])
    b = np.array([True, True, False, False])
    assert bool_diff_count(a, b) == 2


def test_is_interesting_thresholds() -> None:
    assert is_interesting(400, 26)
    assert not is_interesting(400, 25)
    assert not is_interesting(399, 1000)
    assert is_interesting(20, 1, sample_frame_count=20, min_end_cell_diff=0)


def test_tracker_rejects_short_sample() -> None:
    with pytest.raises(ConfigurationError):
        NoveltyTracker((4, 4), sample_frame_count=9, window=5)


class TestNoveltyTracker:
    def test_counts_unique_frames_up_to_cutoff(self) -> None:
        tracker = NoveltyTracker((4, 4), sample_frame_count=20)
        changed = np.zeros((4, 4), dtype=bool)
        for generation in range(30):
            data = np.full((4, 4), generation, dtype=np.uint8)
            tracker.observe(generation, data, changed)
        assert tracker.unique_count == 20
        assert tracker.frames_sampled == 20

    def test_repeated_frames_collapse(self) -> None:
        tracker = NoveltyTracker((4, 4), sample_frame_count=20)
        changed = np.zeros((4, 4), dtype=bool)
        for generation in range(20):
            data = np.full((4, 4), generation % 2, dtype=np.uint8)
            tracker.observe(generation, data, changed)
        result = tracker.result()
        assert result.unique_count == 2
        assert not result.interesting

    def test_end_windows(self) -> None:
        tracker = NoveltyTracker((4, 4), sample_frame_count=20, min_end_cell_diff=1, window=5)
        data = np.zeros((4, 4), dtype=np.uint8)
        for generation in range(20):
            changed = np.zeros((4, 4), dtype=bool)
            if generation == 5:
                changed[3, 3] = True  # before both windows
            if generation == 10:
                changed[0, 0] = True  # first window starts
            if generation == 14:
                changed[2, 2] = True
                changed[1, 1] = True
            if generation == 15:
                changed[1, 1] = True  # second window starts
            if generation == 19:
                changed[0, 1] = True
            tracker.observe(generation, data, changed)

        assert tracker.window_a.sum() == 3
        assert tracker.window_a[0, 0] and tracker.window_a[2, 2] and tracker.window_a[1, 1]
        assert tracker.window_b.sum() == 2
        assert tracker.window_b[1, 1] and tracker.window_b[0, 1]
        assert not tracker.window_a[3, 3] and not tracker.window_b[3, 3]
        # (0,0), (2,2) only in A; (0,1) only in B
        assert tracker.diff_count == 3

    def test_interesting_run(self) -> None:
        tracker = NoveltyTracker((4, 4), sample_frame_count=10, min_end_cell_diff=0, window=5)
        for generation in range(10):
            data = np.full((4, 4), generation, dtype=np.uint8)
            changed = np.zeros((4, 4), dtype=bool)
            changed[0, generation % 4] = generation < 5
            tracker.observe(generation, data, changed)
        result = tracker.result()
        assert result.unique_count == 10
        assert result.diff_count == 4
        assert result.interesting
        assert result.to_dict()["interesting"] is True


def test_quiescent_world_is_not_interesting() -> None:
    rules = RuleSet([WorldRule(frozenset({1}), 2)], 3)
    world = World(8, 3, 1, seed=0, rules=rules)
    world.fill(0)
    tracker = NoveltyTracker(world.data.shape, sample_frame_count=20)
    generation = 0
    while generation < 20:
        world.step()
        tracker.observe(generation, world.data, world.cell_changed)
        generation += 1
        if world.is_quiescent():
            break
    result = tracker.result()
    assert generation == 1
    assert result.unique_count == 1
    assert result.diff_count == 0
    assert not result.interesting


def test_scores_are_reproducible_for_a_seed() -> None:
    config = ExploreConfig(
        world=WorldConfig(world_size=32, symbol_count=5, avg_symbols_per_rule=2),
        sample_frame_count=40,
        min_end_cell_diff=0,
    )
    first = explore_seed(406132538548411765, config, init_seed=3)
    second = explore_seed(406132538548411765, config, init_seed=3)
    assert first.novelty == second.novelty
    assert first.generations == second.generations
    assert first.quiescent == second.quiescent
