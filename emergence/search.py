"""Random seed exploration: run many worlds and flag the interesting ones."""

import itertools
import multiprocessing as mp
import time
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .automaton import World
from .config import ConfigurationError, ExploreConfig, WorldConfig
from .metrics import NoveltyResult, NoveltyTracker


@dataclass
class Exploration:
    """Outcome of running one seed."""
    seed: int
    world: WorldConfig
    novelty: NoveltyResult
    generations: int
    quiescent: bool
    elapsed: float = 0.0
    frames: List[np.ndarray] = field(default_factory=list, repr=False)
    palette: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def interesting(self) -> bool:
        return self.novelty.interesting

    def sort_key(self) -> Tuple[bool, int, int]:
        return (self.novelty.interesting, self.novelty.unique_count, self.novelty.diff_count)

    def details(self) -> str:
        return (
            f"unique: {self.novelty.unique_count}  "
            f"cell_change_diff_count: {self.novelty.diff_count}  seed: {self.seed}"
        )

    def to_dict(self) -> Dict:
        return {
            "seed": self.seed,
            "world_size": self.world.world_size,
            "symbol_count": self.world.symbol_count,
            "avg_symbols_per_rule": self.world.avg_symbols_per_rule,
            "generations": self.generations,
            "quiescent": self.quiescent,
            "elapsed": self.elapsed,
            **self.novelty.to_dict(),
        }


def explore_seed(
    seed: int,
    config: Optional[ExploreConfig] = None,
    init_seed: Optional[int] = None,
    verbose: bool = False,
) -> Exploration:
    """
    Build the world for ``seed``, randomize it and run it to the sample cutoff.

    The run stops early on the first generation in which no cell changed.
    The initial cells come from ``init_seed`` when given, otherwise from fresh
    entropy, so only runs with an ``init_seed`` are reproducible.
    """
    if config is None:
        config = ExploreConfig()

    start = time.perf_counter()
    world = World.from_config(config.world, seed)
    world.randomize(np.random.default_rng(init_seed))

    tracker = NoveltyTracker(
        world.data.shape,
        sample_frame_count=config.sample_frame_count,
        min_end_cell_diff=config.min_end_cell_diff,
        window=config.window,
    )
    frames: List[np.ndarray] = []

    generation = 0
    while generation < config.sample_frame_count:
        world.step()
        if len(frames) < config.max_recorded_frames:
            frames.append(world.data.copy())
        tracker.observe(generation, world.data, world.cell_changed)
        generation += 1
        if world.is_quiescent():
            break

    exploration = Exploration(
        seed=seed,
        world=config.world,
        novelty=tracker.result(),
        generations=generation,
        quiescent=world.is_quiescent(),
        elapsed=time.perf_counter() - start,
        frames=frames,
        palette=world.symbol_to_color.copy(),
    )
    if verbose:
        print(exploration.details())
    return exploration


def seed_stream(search_seed: Optional[int] = None) -> Iterator[int]:
    """Endless stream of random 64-bit world seeds."""
    rng = np.random.default_rng(search_seed)
    top = np.iinfo(np.uint64).max
    while True:
        yield int(rng.integers(0, top, dtype=np.uint64, endpoint=True))


def _explore_task(args: Tuple[int, ExploreConfig, Optional[int]]) -> Exploration:
    seed, config, init_seed = args
    return explore_seed(seed, config, init_seed=init_seed)


def explore(
    seeds: Iterable[int],
    config: Optional[ExploreConfig] = None,
    init_seed: Optional[int] = None,
    workers: int = 1,
) -> Iterator[Exploration]:
    """
    Lazily explore ``seeds`` in order.

    With ``workers > 1`` worlds run in a process pool, four seeds per worker
    at a time, so an endless seed stream is never drained ahead of the consumer.
    """
    if config is None:
        config = ExploreConfig()
    if workers < 1:
        raise ConfigurationError(f"workers must be >= 1, got {workers}")

    if workers == 1:
        for seed in seeds:
            yield explore_seed(seed, config, init_seed=init_seed)
        return

    seeds = iter(seeds)
    batch_size = workers * 4
    with mp.Pool(processes=workers) as pool:
        while True:
            batch = [(s, config, init_seed) for s in itertools.islice(seeds, batch_size)]
            if not batch:
                break
            yield from pool.imap(_explore_task, batch)


def random_search(
    num_samples: int = 100,
    config: Optional[ExploreConfig] = None,
    search_seed: Optional[int] = None,
    init_seed: Optional[int] = None,
    workers: int = 1,
    verbose: bool = True,
    callback: Optional[Callable[[Exploration], None]] = None,
) -> List[Exploration]:
    """
    Explore ``num_samples`` random seeds and return them best-first.

    Interesting seeds are printed as they are found when ``verbose``.
    """
    results: List[Exploration] = []
    seeds = itertools.islice(seed_stream(search_seed), num_samples)

    for i, exploration in enumerate(explore(seeds, config, init_seed=init_seed, workers=workers)):
        results.append(exploration)
        if callback:
            callback(exploration)

        if verbose:
            if exploration.interesting:
                print(exploration.details())
            if (i + 1) % 100 == 0:
                found = sum(1 for r in results if r.interesting)
                print(f"Explored {i+1}/{num_samples}: {found} interesting")

    return sorted(results, key=lambda r: r.sort_key(), reverse=True)
