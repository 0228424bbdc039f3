"""Emergence - search random symbol rule sets for long-lived, non-repetitive cellular automata."""

from .automaton import World, compute_transition
from .config import ConfigurationError, ExploreConfig, WorldConfig
from .metrics import NoveltyTracker, NoveltyResult
from .rules import RuleSet, WorldRule, calibrate_rule_count
from .search import explore_seed, random_search

__all__ = [
    "World",
    "compute_transition",
    "ConfigurationError",
    "ExploreConfig",
    "WorldConfig",
    "NoveltyTracker",
    "NoveltyResult",
    "RuleSet",
    "WorldRule",
    "calibrate_rule_count",
    "explore_seed",
    "random_search",
]
