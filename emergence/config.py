"""Configuration dataclasses and constants for worlds and seed exploration."""

from dataclasses import dataclass, field


# Probability that at least one rule matches a random neighborhood.
MATCH_THRESHOLD = 0.999

# Cells in a 3x3 Moore neighborhood (the cell itself included).
NEIGHBORHOOD_SIZE = 9

# Neighborhood membership is packed into a uint64 presence mask.
MAX_SYMBOLS = 64
MIN_SYMBOLS = 2

# Calibrations asking for more rules than this are rejected.
MAX_RULE_COUNT = 2 ** 20

DEFAULT_WORLD_SIZE = 2 ** 9
DEFAULT_SYMBOL_COUNT = 5
DEFAULT_AVG_SYMBOLS_PER_RULE = 4
DEFAULT_SAMPLE_FRAME_COUNT = 400
DEFAULT_MIN_END_CELL_DIFF = 25
DEFAULT_WINDOW = 5


class ConfigurationError(ValueError):
    """Raised when a world or explorer is constructed with invalid settings."""


def is_power_of_two(n: int) -> bool:
    return isinstance(n, int) and n > 0 and (n & (n - 1)) == 0


@dataclass(frozen=True)
class WorldConfig:
    """Parameters that fully determine a world, together with its seed."""

    world_size: int = DEFAULT_WORLD_SIZE
    symbol_count: int = DEFAULT_SYMBOL_COUNT
    avg_symbols_per_rule: float = DEFAULT_AVG_SYMBOLS_PER_RULE
    copy_forward: bool = False

    def __post_init__(self) -> None:
        validate_world_settings(self.world_size, self.symbol_count, self.avg_symbols_per_rule)


@dataclass(frozen=True)
class ExploreConfig:
    """Settings for running and scoring one seed."""

    world: WorldConfig = field(default_factory=WorldConfig)
    sample_frame_count: int = DEFAULT_SAMPLE_FRAME_COUNT
    min_end_cell_diff: int = DEFAULT_MIN_END_CELL_DIFF
    window: int = DEFAULT_WINDOW
    max_recorded_frames: int = 0

    def __post_init__(self) -> None:
        if self.window < 1:
            raise ConfigurationError("window must be >= 1")
        if self.sample_frame_count < 2 * self.window:
            raise ConfigurationError(
                f"sample_frame_count ({self.sample_frame_count}) must be at least "
                f"two windows ({2 * self.window})"
            )
        if self.min_end_cell_diff < 0:
            raise ConfigurationError("min_end_cell_diff must be >= 0")
        if self.max_recorded_frames < 0:
            raise ConfigurationError("max_recorded_frames must be >= 0")


def validate_world_settings(world_size: int, symbol_count: int, avg_symbols_per_rule: float) -> None:
    """Reject settings the engine cannot run. Nothing is clamped."""
    if not is_power_of_two(world_size):
        raise ConfigurationError(f"World size must be a power of 2, got {world_size!r}")
    if not MIN_SYMBOLS <= symbol_count <= MAX_SYMBOLS:
        raise ConfigurationError(
            f"symbol_count must be between {MIN_SYMBOLS} and {MAX_SYMBOLS}, got {symbol_count}"
        )
    if avg_symbols_per_rule < 0:
        raise ConfigurationError("avg_symbols_per_rule must be >= 0")
    if avg_symbols_per_rule / symbol_count >= 1.0:
        raise ConfigurationError(
            f"avg_symbols_per_rule ({avg_symbols_per_rule}) must be less than "
            f"symbol_count ({symbol_count})"
        )
