"""Persistence layer for saving discovered seeds."""

import csv
import json
from pathlib import Path
from datetime import datetime
from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass, asdict

from .search import Exploration


@dataclass
class DiscoveredSeed:
    """A seed worth revisiting, with the settings needed to rebuild its world."""
    seed: int
    symbol_count: int
    avg_symbols_per_rule: float
    world_size: int
    unique_count: int
    diff_count: int
    discovered_at: str
    notes: str = ""

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "DiscoveredSeed":
        return cls(**data)

    @property
    def key(self) -> Tuple[int, float, int]:
        return (self.symbol_count, self.avg_symbols_per_rule, self.seed)


class SeedDatabase:
    """JSON-based storage for discovered seeds."""

    def __init__(self, filepath: str = "discovered_seeds.json"):
        self.filepath = Path(filepath)
        self.seeds: List[DiscoveredSeed] = []
        self._load()

    def _load(self):
        """Load seeds from file."""
        if self.filepath.exists():
            try:
                with open(self.filepath, "r") as f:
                    data = json.load(f)
                    self.seeds = [DiscoveredSeed.from_dict(s) for s in data.get("seeds", [])]
            except (json.JSONDecodeError, KeyError, TypeError):
                self.seeds = []
        else:
            self.seeds = []

    def save(self):
        """Save seeds to file."""
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": "1.0",
            "updated_at": datetime.now().isoformat(),
            "seeds": [s.to_dict() for s in self.seeds],
        }
        with open(self.filepath, "w") as f:
            json.dump(data, f, indent=2)

    def add(self, exploration: Exploration, notes: str = "") -> DiscoveredSeed:
        """Record an exploration, keeping the better diff count for a repeated seed."""
        world = exploration.world
        key = (world.symbol_count, world.avg_symbols_per_rule, exploration.seed)
        for existing in self.seeds:
            if existing.key == key:
                if exploration.novelty.diff_count > existing.diff_count:
                    existing.unique_count = exploration.novelty.unique_count
                    existing.diff_count = exploration.novelty.diff_count
                    existing.discovered_at = datetime.now().isoformat()
                    if notes:
                        existing.notes = notes
                    self.save()
                return existing

        discovered = DiscoveredSeed(
            seed=exploration.seed,
            symbol_count=world.symbol_count,
            avg_symbols_per_rule=world.avg_symbols_per_rule,
            world_size=world.world_size,
            unique_count=exploration.novelty.unique_count,
            diff_count=exploration.novelty.diff_count,
            discovered_at=datetime.now().isoformat(),
            notes=notes,
        )
        self.seeds.append(discovered)
        self.save()
        return discovered

    def get_leaderboard(self, top_n: int = 20) -> List[DiscoveredSeed]:
        """Get top N seeds by end-of-run activity spread."""
        return sorted(self.seeds, key=lambda s: (s.unique_count, s.diff_count), reverse=True)[:top_n]

    def get_by_seed(self, seed: int, symbol_count: Optional[int] = None) -> Optional[DiscoveredSeed]:
        for s in self.seeds:
            if s.seed == seed and (symbol_count is None or s.symbol_count == symbol_count):
                return s
        return None

    def remove(self, seed: int) -> bool:
        """Remove every record of ``seed``."""
        kept = [s for s in self.seeds if s.seed != seed]
        if len(kept) == len(self.seeds):
            return False
        self.seeds = kept
        self.save()
        return True

    def clear(self):
        self.seeds = []
        self.save()

    def export_csv(self, filepath: str):
        """Export seeds to CSV format."""
        with open(filepath, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow([
                "seed", "symbol_count", "avg_symbols_per_rule", "world_size",
                "unique_count", "diff_count", "discovered_at", "notes",
            ])
            for s in self.get_leaderboard(len(self.seeds)):
                writer.writerow([
                    s.seed,
                    s.symbol_count,
                    s.avg_symbols_per_rule,
                    s.world_size,
                    s.unique_count,
                    s.diff_count,
                    s.discovered_at,
                    s.notes,
                ])

    def __len__(self):
        return len(self.seeds)

    def __iter__(self):
        return iter(self.seeds)
