"""Toroidal symbol world with dirty-region stepping."""

import numpy as np
from dataclasses import dataclass
from scipy import ndimage
from typing import Optional, Set, Tuple

from .config import ConfigurationError, WorldConfig, validate_world_settings
from .rules import RuleSet


SYMBOL_DTYPE = np.uint8

# (dy, dx) offsets of the 3x3 Moore neighborhood, the cell itself included.
NEIGHBOR_OFFSETS = tuple((dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1))


@dataclass
class StepStats:
    """Work done by the most recent ``World.step()``."""
    cells_evaluated: int = 0
    rule_checks: int = 0
    cells_changed: int = 0

    def to_dict(self):
        return {
            "cells_evaluated": self.cells_evaluated,
            "rule_checks": self.rule_checks,
            "cells_changed": self.cells_changed,
        }


def wrap(coord: int, size: int) -> int:
    """Toroidal coordinate: -1 -> size-1, size -> 0, in-range values unchanged."""
    return coord % size


def gather_neighborhood(grid: np.ndarray, pos: Tuple[int, int]) -> Set[int]:
    """Distinct symbols in the toroidal 3x3 neighborhood of ``pos`` (x, y)."""
    size = grid.shape[0]
    xc, yc = pos
    return {
        int(grid[wrap(yc + dy, size), wrap(xc + dx, size)])
        for dy, dx in NEIGHBOR_OFFSETS
    }


def compute_transition(grid: np.ndarray, pos: Tuple[int, int], rules: RuleSet) -> int:
    """Next symbol for one cell, reading the previous generation ``grid``."""
    size = grid.shape[0]
    x, y = wrap(pos[0], size), wrap(pos[1], size)
    present = gather_neighborhood(grid, (x, y))
    return rules.apply(present, int(grid[y, x]))


def neighborhood_presence(grid: np.ndarray, ys: np.ndarray, xs: np.ndarray) -> np.ndarray:
    """uint64 presence mask of the 3x3 neighborhood for each (ys[i], xs[i])."""
    size = grid.shape[0]
    one = np.uint64(1)
    presence = np.zeros(ys.shape, dtype=np.uint64)
    for dy, dx in NEIGHBOR_OFFSETS:
        values = grid[(ys + dy) % size, (xs + dx) % size].astype(np.uint64)
        presence |= np.left_shift(one, values)
    return presence


def dilate_changes(cell_changed: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """OR of ``cell_changed`` over each cell's toroidal 3x3 neighborhood."""
    spread = ndimage.maximum_filter(cell_changed.view(np.uint8), size=3, mode="wrap")
    if out is None:
        return spread.astype(bool)
    np.not_equal(spread, 0, out=out)
    return out


class World:
    """
    Square toroidal grid of symbols governed by one random rule set.

    ``data`` holds this generation and ``prev_data`` the one before; ``step()``
    swaps the two instead of copying. Only cells whose neighborhood changed
    last generation are recomputed. A skipped cell is written neither in value
    nor flag: the write buffer already holds its value from two generations
    back, and that value equals the current one because nothing around the
    cell changed last generation (the cell itself included). Set
    ``copy_forward=True`` to copy the whole current buffer into the write
    buffer first instead of relying on this.
    """

    def __init__(
        self,
        world_size: int,
        symbol_count: int,
        avg_symbols_per_rule: float,
        seed: int,
        rules: Optional[RuleSet] = None,
        copy_forward: bool = False,
    ):
        validate_world_settings(world_size, symbol_count, avg_symbols_per_rule)
        rng = np.random.default_rng(seed)

        self.size = world_size
        self.symbol_count = symbol_count
        self.avg_symbols_per_rule = avg_symbols_per_rule
        self.seed = seed
        self.copy_forward = copy_forward

        self.symbol_to_color = rng.integers(0, 256, size=(symbol_count, 3), dtype=np.uint8)
        if rules is None:
            rules = RuleSet.generate(symbol_count, avg_symbols_per_rule, rng)
        elif rules.symbol_count > symbol_count:
            raise ConfigurationError(
                f"rule set uses {rules.symbol_count} symbols but world has {symbol_count}"
            )
        self.rules = rules

        shape = (world_size, world_size)
        self.data = np.zeros(shape, dtype=SYMBOL_DTYPE)
        self.prev_data = np.zeros(shape, dtype=SYMBOL_DTYPE)
        self.cell_changed = np.ones(shape, dtype=bool)
        self.neighborhood_changed = np.ones(shape, dtype=bool)
        self.generation = 0
        self.last_stats = StepStats()

    @classmethod
    def from_config(cls, config: WorldConfig, seed: int, rules: Optional[RuleSet] = None) -> "World":
        return cls(
            config.world_size,
            config.symbol_count,
            config.avg_symbols_per_rule,
            seed,
            rules=rules,
            copy_forward=config.copy_forward,
        )

    def randomize(self, rng: Optional[np.random.Generator] = None):
        """Set every cell to a uniformly random symbol (not drawn from the world seed)."""
        if rng is None:
            rng = np.random.default_rng()
        self.data[...] = rng.integers(0, self.symbol_count, size=self.data.shape, dtype=SYMBOL_DTYPE)
        self.mark_all_dirty()

    def fill(self, symbol: int):
        """Set every cell to ``symbol``."""
        self._check_symbol(symbol)
        self.data.fill(symbol)
        self.mark_all_dirty()

    def set_cell(self, pos: Tuple[int, int], value: int):
        """Set the cell at (x, y) and schedule its neighborhood for recomputation."""
        self._check_symbol(value)
        x, y = wrap(pos[0], self.size), wrap(pos[1], self.size)
        self.data[y, x] = value
        for dy, dx in NEIGHBOR_OFFSETS:
            self.neighborhood_changed[wrap(y + dy, self.size), wrap(x + dx, self.size)] = True

    def get_cell(self, pos: Tuple[int, int]) -> int:
        return int(self.data[wrap(pos[1], self.size), wrap(pos[0], self.size)])

    def mark_all_dirty(self):
        self.cell_changed.fill(True)
        self.neighborhood_changed.fill(True)

    def _check_symbol(self, symbol: int):
        if not 0 <= symbol < self.symbol_count:
            raise ValueError(f"symbol must be in [0, {self.symbol_count}), got {symbol}")

    def step(self):
        """Advance one generation."""
        self.data, self.prev_data = self.prev_data, self.data
        if self.copy_forward:
            self.data[...] = self.prev_data

        self.cell_changed.fill(False)

        # `prev_data` is the current generation from here on.
        ys, xs = np.nonzero(self.neighborhood_changed)
        stats = StepStats(cells_evaluated=int(ys.size))
        if ys.size:
            current = self.prev_data[ys, xs]
            presence = neighborhood_presence(self.prev_data, ys, xs)
            next_values, stats.rule_checks = self.rules.apply_masks(presence, current)
            changed = next_values != current
            self.data[ys, xs] = next_values
            self.cell_changed[ys, xs] = changed
            stats.cells_changed = int(np.count_nonzero(changed))

        dilate_changes(self.cell_changed, out=self.neighborhood_changed)

        self.generation += 1
        self.last_stats = stats

    def run(self, steps: int, stop_when_quiescent: bool = True) -> int:
        """Step up to ``steps`` times; returns the number of steps taken."""
        for i in range(steps):
            self.step()
            if stop_when_quiescent and self.is_quiescent():
                return i + 1
        return steps

    def is_quiescent(self) -> bool:
        """True when the last generation changed no cell."""
        return not self.cell_changed.any()

    def changed_count(self) -> int:
        return int(np.count_nonzero(self.cell_changed))

    def population_by_symbol(self):
        """Count cells holding each symbol."""
        counts = np.bincount(self.data.ravel(), minlength=self.symbol_count)
        return {s: int(c) for s, c in enumerate(counts)}
