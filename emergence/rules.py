"""Priority-ordered symbol-presence rules and their calibrated random generator.

A rule fires on a 3x3 neighborhood when every symbol it needs appears at least
once among the nine cells; how often each symbol appears does not matter. Rules
are tried in order and the first one that fires decides the new symbol. When
none fires the cell keeps its value.

The number of rules is calibrated so that, under an independence assumption,
a random neighborhood is matched by at least one rule with probability
``MATCH_THRESHOLD``. This is a heuristic: the sampled rules are not checked.
"""

import math
import numpy as np
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .config import (
    ConfigurationError,
    MATCH_THRESHOLD,
    MAX_RULE_COUNT,
    MAX_SYMBOLS,
    MIN_SYMBOLS,
    NEIGHBORHOOD_SIZE,
)


@dataclass(frozen=True)
class WorldRule:
    """One rule: fires when all of ``symbols_needed`` are present, yields ``output_symbol``."""
    symbols_needed: FrozenSet[int]
    output_symbol: int
    mask: int = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        needed = frozenset(int(s) for s in self.symbols_needed)
        if not needed:
            raise ConfigurationError("a rule needs at least one symbol")
        if any(s < 0 or s >= MAX_SYMBOLS for s in needed):
            raise ConfigurationError(f"rule symbols must be in [0, {MAX_SYMBOLS}), got {sorted(needed)}")
        object.__setattr__(self, "symbols_needed", needed)
        object.__setattr__(self, "output_symbol", int(self.output_symbol))
        object.__setattr__(self, "mask", symbols_to_mask(needed))

    def matches(self, present: Set[int]) -> bool:
        """True if every needed symbol is in ``present``."""
        return self.symbols_needed <= present

    def to_string(self) -> str:
        """Compact notation, e.g. '{0,3}->2'."""
        needed = ",".join(str(s) for s in sorted(self.symbols_needed))
        return f"{{{needed}}}->{self.output_symbol}"


def symbols_to_mask(symbols: Iterable[int]) -> int:
    """Pack a set of symbols into an integer bitmask (bit s set for symbol s)."""
    mask = 0
    for s in symbols:
        mask |= 1 << int(s)
    return mask


def neighborhood_presence_probability(symbol_count: int) -> float:
    """Probability that a given symbol occupies at least one of the 9 cells."""
    return 1.0 - (1.0 - 1.0 / symbol_count) ** NEIGHBORHOOD_SIZE


def rule_match_probability(symbol_count: int, avg_symbols_per_rule: float) -> float:
    """Probability that a random rule with ``avg_symbols_per_rule`` symbols matches."""
    return neighborhood_presence_probability(symbol_count) ** avg_symbols_per_rule


def calibrate_rule_count(
    symbol_count: int,
    avg_symbols_per_rule: float,
    threshold: float = MATCH_THRESHOLD,
) -> int:
    """
    Smallest doubled rule count R with P(at least one of R rules matches) >= threshold.

    The count is doubled before the first check, so the result is a power of
    two no smaller than 2.
    """
    if not 0.0 < threshold < 1.0:
        raise ConfigurationError(f"threshold must be in (0, 1), got {threshold}")
    p_match = rule_match_probability(symbol_count, avg_symbols_per_rule)
    if p_match <= 0.0:
        raise ConfigurationError("rules can never match with these settings")

    # 1 - p_match rounds to 1.0 for tiny p_match, so work in log space.
    log_miss = math.log1p(-p_match) if p_match < 1.0 else -math.inf
    rule_count = 1
    prob_match = 0.0
    while prob_match < threshold:
        rule_count *= 2
        if rule_count > MAX_RULE_COUNT:
            raise ConfigurationError(
                f"calibration needs more than {MAX_RULE_COUNT} rules "
                f"(symbol_count={symbol_count}, avg_symbols_per_rule={avg_symbols_per_rule})"
            )
        prob_match = -math.expm1(rule_count * log_miss)
    return rule_count


def generate_rules(
    symbol_count: int,
    avg_symbols_per_rule: float,
    rng: np.random.Generator,
    threshold: float = MATCH_THRESHOLD,
) -> List[WorldRule]:
    """Sample a calibrated number of random rules."""
    if not MIN_SYMBOLS <= symbol_count <= MAX_SYMBOLS:
        raise ConfigurationError(
            f"symbol_count must be between {MIN_SYMBOLS} and {MAX_SYMBOLS}, got {symbol_count}"
        )
    add_symbol_chance = avg_symbols_per_rule / symbol_count
    if add_symbol_chance >= 1.0:
        raise ConfigurationError(
            f"add_symbol_chance must be < 1.0 (avg_symbols_per_rule={avg_symbols_per_rule}, "
            f"symbol_count={symbol_count})"
        )

    rule_count = calibrate_rule_count(symbol_count, avg_symbols_per_rule, threshold)

    rules = []
    for _ in range(rule_count):
        picks = rng.random(symbol_count) < add_symbol_chance
        symbols_needed = set(np.flatnonzero(picks).tolist())
        if not symbols_needed:
            symbols_needed.add(int(rng.integers(0, symbol_count)))
        output_symbol = int(rng.integers(0, symbol_count))
        rules.append(WorldRule(frozenset(symbols_needed), output_symbol))

    if not rules:
        raise ConfigurationError("generated rule set is empty")
    return rules


class RuleSet:
    """Immutable, ordered rule list evaluated first-match-wins."""

    def __init__(self, rules: Sequence[WorldRule], symbol_count: Optional[int] = None):
        if not rules:
            raise ConfigurationError("rule set is empty")
        self._rules: Tuple[WorldRule, ...] = tuple(rules)
        if symbol_count is None:
            symbol_count = 1 + max(
                max(max(r.symbols_needed), r.output_symbol) for r in self._rules
            )
        self.symbol_count = symbol_count
        for rule in self._rules:
            if max(rule.symbols_needed) >= symbol_count or rule.output_symbol >= symbol_count:
                raise ConfigurationError(
                    f"rule {rule.to_string()} uses a symbol outside [0, {symbol_count})"
                )
        self.masks = np.array([r.mask for r in self._rules], dtype=np.uint64)
        self.outputs = np.array([r.output_symbol for r in self._rules], dtype=np.uint8)

    @classmethod
    def generate(
        cls,
        symbol_count: int,
        avg_symbols_per_rule: float,
        rng: Optional[np.random.Generator] = None,
    ) -> "RuleSet":
        """Calibrate and sample a random rule set."""
        if rng is None:
            rng = np.random.default_rng()
        return cls(generate_rules(symbol_count, avg_symbols_per_rule, rng), symbol_count)

    def first_match(self, present: Set[int]) -> Optional[WorldRule]:
        """The highest-priority rule matching ``present``, or None."""
        for rule in self._rules:
            if rule.matches(present):
                return rule
        return None

    def apply(self, present: Set[int], current: int) -> int:
        """New symbol for a cell whose neighborhood holds ``present``."""
        rule = self.first_match(present)
        if rule is None:
            return current
        return rule.output_symbol

    def apply_masks(self, presence: np.ndarray, current: np.ndarray) -> Tuple[np.ndarray, int]:
        """
        Vectorized ``apply`` over many cells.

        Args:
            presence: uint64 presence mask per cell
            current: current symbol per cell, returned where no rule matches

        Returns:
            (new symbols, number of rule checks performed)
        """
        result = current.copy()
        pending = np.arange(presence.size)
        pending_presence = presence
        rule_checks = 0

        for mask, output in zip(self.masks, self.outputs):
            rule_checks += pending.size
            hit = (pending_presence & mask) == mask
            if hit.any():
                result[pending[hit]] = output
                miss = ~hit
                pending = pending[miss]
                pending_presence = pending_presence[miss]
                if pending.size == 0:
                    break

        return result, rule_checks

    def describe(self) -> List[str]:
        return [r.to_string() for r in self._rules]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[WorldRule]:
        return iter(self._rules)

    def __getitem__(self, index: int) -> WorldRule:
        return self._rules[index]
