"""Tests for the seed exploration driver."""

from __future__ import annotations

import itertools

import pytest

from emergence.config import ConfigurationError, ExploreConfig, WorldConfig
from emergence.search import explore, explore_seed, random_search, seed_stream

SMALL = ExploreConfig(
    world=WorldConfig(world_size=16, symbol_count=5, avg_symbols_per_rule=2),
    sample_frame_count=20,
    min_end_cell_diff=0,
)


def test_seed_stream_is_reproducible() -> None:
    a = list(itertools.islice(seed_stream(1), 5))
    b = list(itertools.islice(seed_stream(1), 5))
    assert a == b
    assert all(0 <= s < 2 ** 64 for s in a)
    assert len(set(a)) == 5


def test_explore_seed_stops_at_sample_cutoff() -> None:
    exploration = explore_seed(5, SMALL, init_seed=1)
    assert 1 <= exploration.generations <= SMALL.sample_frame_count
    assert exploration.novelty.frames_sampled == exploration.generations
    if not exploration.quiescent:
        assert exploration.generations == SMALL.sample_frame_count
    assert exploration.palette.shape == (5, 3)


def test_explore_seed_records_bounded_frames() -> None:
    config = ExploreConfig(world=SMALL.world, sample_frame_count=20, max_recorded_frames=3)
    exploration = explore_seed(5, config, init_seed=1)
    assert len(exploration.frames) == min(3, exploration.generations)
    assert exploration.frames[0].shape == (16, 16)


def test_details_line() -> None:
    exploration = explore_seed(77, SMALL, init_seed=1)
    assert exploration.details() == (
        f"unique: {exploration.novelty.unique_count}  "
        f"cell_change_diff_count: {exploration.novelty.diff_count}  seed: 77"
    )
    assert exploration.to_dict()["symbol_count"] == 5


def test_explore_keeps_seed_order() -> None:
    results = list(explore([3, 1, 2], SMALL, init_seed=0))
    assert [r.seed for r in results] == [3, 1, 2]


def test_explore_with_workers_matches_serial() -> None:
    serial = list(explore([10, 11, 12], SMALL, init_seed=4))
    pooled = list(explore([10, 11, 12], SMALL, init_seed=4, workers=2))
    assert [r.seed for r in pooled] == [10, 11, 12]
    assert [r.novelty for r in pooled] == [r.novelty for r in serial]


def test_explore_rejects_bad_worker_count() -> None:
    with pytest.raises(ConfigurationError):
        next(explore([1], SMALL, workers=0))


def test_random_search_sorted_best_first() -> None:
    results = random_search(6, SMALL, search_seed=2, init_seed=0, verbose=False)
    assert len(results) == 6
    keys = [r.sort_key() for r in results]
    assert keys == sorted(keys, reverse=True)


def test_random_search_callback_sees_every_seed() -> None:
    seen = []
    random_search(3, SMALL, search_seed=2, init_seed=0, verbose=False, callback=seen.append)
    assert len(seen) == 3


def test_random_search_prints_interesting(capsys) -> None:
    results = random_search(4, SMALL, search_seed=3, init_seed=0, verbose=True)
    out = capsys.readouterr().out
    for r in results:
        if r.interesting:
            assert f"seed: {r.seed}" in out
