"""Novelty heuristic for flagging seeds whose worlds stay lively and non-repetitive."""

import hashlib
import numpy as np
from dataclasses import dataclass
from typing import Dict, Set, Tuple

from .config import (
    ConfigurationError,
    DEFAULT_MIN_END_CELL_DIFF,
    DEFAULT_SAMPLE_FRAME_COUNT,
    DEFAULT_WINDOW,
)


@dataclass
class NoveltyResult:
    """Scores for one run."""
    unique_count: int  # Distinct frame hashes among the sampled generations
    diff_count: int  # Cells where the two end windows' change masks disagree
    frames_sampled: int  # Generations observed before the sample cutoff
    interesting: bool

    def to_dict(self) -> Dict:
        return {
            "unique_count": self.unique_count,
            "diff_count": self.diff_count,
            "frames_sampled": self.frames_sampled,
            "interesting": self.interesting,
        }


def frame_hash(grid: np.ndarray) -> int:
    """64-bit digest of a grid buffer, stable across processes."""
    digest = hashlib.blake2b(np.ascontiguousarray(grid).tobytes(), digest_size=8).digest()
    return int.from_bytes(digest, "little")


def bool_diff_count(a: np.ndarray, b: np.ndarray) -> int:
    """Number of positions where two boolean masks disagree."""
    return int(np.count_nonzero(a != b))


class NoveltyTracker:
    """
    Accumulates per-generation observations of a run.

    Two things are tracked:
    - a hash of every frame before ``sample_frame_count``; if all are distinct
      the run has not fallen into a short cycle
    - the OR of ``cell_changed`` over two back-to-back windows just before the
      cutoff; if they differ in many cells the zone of activity is still moving
      rather than sitting in one stable oscillation
    """

    def __init__(
        self,
        shape: Tuple[int, int],
        sample_frame_count: int = DEFAULT_SAMPLE_FRAME_COUNT,
        min_end_cell_diff: int = DEFAULT_MIN_END_CELL_DIFF,
        window: int = DEFAULT_WINDOW,
    ):
        if window < 1 or sample_frame_count < 2 * window:
            raise ConfigurationError(
                f"sample_frame_count ({sample_frame_count}) must cover two windows of {window}"
            )
        self.sample_frame_count = sample_frame_count
        self.min_end_cell_diff = min_end_cell_diff
        self.window = window

        self.frame_hashes: Set[int] = set()
        self.frames_sampled = 0
        self.window_a = np.zeros(shape, dtype=bool)
        self.window_b = np.zeros(shape, dtype=bool)

        self._a_start = sample_frame_count - 2 * window
        self._b_start = sample_frame_count - window

    def observe(self, generation: int, data: np.ndarray, cell_changed: np.ndarray):
        """Record generation ``generation`` (0-based) right after it was computed."""
        if generation >= self.sample_frame_count:
            return
        self.frame_hashes.add(frame_hash(data))
        self.frames_sampled += 1
        if self._a_start <= generation < self._b_start:
            self.window_a |= cell_changed
        elif generation >= self._b_start:
            self.window_b |= cell_changed

    @property
    def unique_count(self) -> int:
        return len(self.frame_hashes)

    @property
    def diff_count(self) -> int:
        return bool_diff_count(self.window_a, self.window_b)

    def result(self) -> NoveltyResult:
        unique_count = self.unique_count
        diff_count = self.diff_count
        return NoveltyResult(
            unique_count=unique_count,
            diff_count=diff_count,
            frames_sampled=self.frames_sampled,
            interesting=is_interesting(
                unique_count, diff_count, self.sample_frame_count, self.min_end_cell_diff
            ),
        )


def is_interesting(
    unique_count: int,
    diff_count: int,
    sample_frame_count: int = DEFAULT_SAMPLE_FRAME_COUNT,
    min_end_cell_diff: int = DEFAULT_MIN_END_CELL_DIFF,
) -> bool:
    """Every sampled frame distinct and the late activity still moving."""
    return unique_count == sample_frame_count and diff_count > min_end_cell_diff
