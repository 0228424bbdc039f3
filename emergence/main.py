#!/usr/bin/env python3
"""CLI for the emergence seed explorer."""

import argparse
import itertools
import sys
import time

from .automaton import World
from .config import (
    ConfigurationError,
    DEFAULT_AVG_SYMBOLS_PER_RULE,
    DEFAULT_MIN_END_CELL_DIFF,
    DEFAULT_SAMPLE_FRAME_COUNT,
    DEFAULT_SYMBOL_COUNT,
    DEFAULT_WORLD_SIZE,
    ExploreConfig,
    WorldConfig,
)
from .search import explore, explore_seed, seed_stream
from .storage import SeedDatabase
from .visualize import draw_to_console, record_seed, watch


def _world_config(args) -> WorldConfig:
    return WorldConfig(
        world_size=args.size,
        symbol_count=args.symbols,
        avg_symbols_per_rule=args.avg_symbols,
        copy_forward=getattr(args, "copy_forward", False),
    )


def _explore_config(args) -> ExploreConfig:
    return ExploreConfig(
        world=_world_config(args),
        sample_frame_count=args.sample_frames,
        min_end_cell_diff=args.min_diff,
    )


def cmd_explore(args):
    """Explore random seeds, printing and saving the interesting ones."""
    config = _explore_config(args)
    db = SeedDatabase(args.database)

    if args.seeds:
        seeds = iter(args.seeds)
    else:
        seeds = seed_stream(args.search_seed)
    if args.samples is not None:
        seeds = itertools.islice(seeds, args.samples)

    exploration_count = 0
    found = 0
    for exploration in explore(seeds, config, init_seed=args.init_seed, workers=args.workers):
        exploration_count += 1
        if exploration.interesting or args.all:
            print(exploration.details())
        if exploration.interesting:
            found += 1
            db.add(exploration)
        if args.benchmark:
            print(exploration_count)

    print(f"\nExplored {exploration_count} seeds, {found} interesting")


def cmd_replay(args):
    """Replay one seed and save its frames as a GIF."""
    config = _explore_config(args)
    print(f"Replaying seed {args.seed}")
    print(f"  Symbols: {config.world.symbol_count}")
    print(f"  Avg symbols per rule: {config.world.avg_symbols_per_rule}")
    print(f"  World size: {config.world.world_size}")

    gif_path, snapshot_paths = record_seed(
        args.seed,
        config,
        output_dir=args.output,
        max_frames=args.frames,
        init_seed=args.init_seed,
        cell_size=args.cell_size,
        save_snapshots=args.snapshots,
    )

    print(f"\nSaved:")
    print(f"  Animation: {gif_path}")
    for path in snapshot_paths:
        print(f"  Snapshot: {path}")


def cmd_score(args):
    """Run one seed and show its novelty scores."""
    config = _explore_config(args)
    exploration = explore_seed(args.seed, config, init_seed=args.init_seed)
    novelty = exploration.novelty

    print(f"Seed: {exploration.seed}")
    print(f"  Generations:           {exploration.generations}")
    print(f"  Quiescent:             {exploration.quiescent}")
    print(f"  Unique frames:         {novelty.unique_count}/{config.sample_frame_count}")
    print(f"  End cell diff count:   {novelty.diff_count}")
    print(f"  Elapsed:               {exploration.elapsed:.2f}s")
    print()
    print(f"Interesting: {novelty.interesting}")


def cmd_show(args):
    """Print a small world to the terminal as it evolves."""
    world = World.from_config(_world_config(args), args.seed)
    world.randomize()
    for _ in range(args.steps):
        world.step()
        print(draw_to_console(world.data, world.symbol_to_color))
        print(f"generation {world.generation}  changed {world.changed_count()}")
        if world.is_quiescent():
            break
        if args.delay:
            time.sleep(args.delay)


def cmd_watch(args):
    """Watch a seed evolve in a matplotlib window."""
    world = World.from_config(_world_config(args), args.seed)
    world.randomize()
    watch(world, steps=args.steps)


def cmd_leaderboard(args):
    """Show the leaderboard of discovered seeds."""
    db = SeedDatabase(args.database)

    if len(db) == 0:
        print("No seeds discovered yet. Run an exploration first!")
        return

    leaderboard = db.get_leaderboard(args.top)

    print(f"Top {len(leaderboard)} discovered seeds:\n")
    print(f"{'Rank':<6}{'Seed':<22}{'Symbols':<9}{'Avg':<6}{'Unique':<8}{'Diff':<8}")
    print("-" * 59)

    for i, s in enumerate(leaderboard, 1):
        print(f"{i:<6}{s.seed:<22}{s.symbol_count:<9}{s.avg_symbols_per_rule:<6}"
              f"{s.unique_count:<8}{s.diff_count:<8}")


def cmd_export(args):
    """Export discovered seeds to CSV."""
    db = SeedDatabase(args.database)

    if len(db) == 0:
        print("No seeds to export.")
        return

    db.export_csv(args.output)
    print(f"Exported {len(db)} seeds to {args.output}")


def _add_world_args(parser):
    parser.add_argument("--size", type=int, default=DEFAULT_WORLD_SIZE, help="World side (power of 2)")
    parser.add_argument("--symbols", type=int, default=DEFAULT_SYMBOL_COUNT, help="Number of symbols")
    parser.add_argument("--avg-symbols", type=float, default=DEFAULT_AVG_SYMBOLS_PER_RULE,
                        help="Average symbols needed per rule")
    parser.add_argument("--copy-forward", action="store_true",
                        help="Copy unchanged cells every step instead of relying on double buffering")


def _add_scoring_args(parser):
    parser.add_argument("--sample-frames", type=int, default=DEFAULT_SAMPLE_FRAME_COUNT,
                        help="Generations sampled per seed")
    parser.add_argument("--min-diff", type=int, default=DEFAULT_MIN_END_CELL_DIFF,
                        help="Minimum end-of-run cell change diff")
    parser.add_argument("--init-seed", type=int, default=None,
                        help="Seed for the initial cells (random if omitted)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Emergence - search random symbol rule sets for long-lived, non-repetitive worlds"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Explore command
    explore_parser = subparsers.add_parser("explore", help="Explore random seeds")
    _add_world_args(explore_parser)
    _add_scoring_args(explore_parser)
    explore_parser.add_argument("-n", "--samples", type=int, default=None,
                                help="Number of seeds (forever if omitted)")
    explore_parser.add_argument("--seeds", type=int, nargs="+", default=None, help="Explicit seeds to run")
    explore_parser.add_argument("--search-seed", type=int, default=None, help="Seed for the seed stream")
    explore_parser.add_argument("-w", "--workers", type=int, default=1, help="Worker processes")
    explore_parser.add_argument("--all", action="store_true", help="Print every seed, not only interesting ones")
    explore_parser.add_argument("--benchmark", action="store_true", help="Print running exploration count")
    explore_parser.add_argument("--database", type=str, default="discovered_seeds.json", help="Database file")
    explore_parser.set_defaults(func=cmd_explore)

    # Replay command
    replay_parser = subparsers.add_parser("replay", help="Replay a seed and save it as a GIF")
    replay_parser.add_argument("seed", type=int, help="World seed")
    _add_world_args(replay_parser)
    _add_scoring_args(replay_parser)
    replay_parser.add_argument("--frames", type=int, default=1000, help="Maximum frames to record")
    replay_parser.add_argument("--cell-size", type=int, default=1, help="Cell size in pixels")
    replay_parser.add_argument("--snapshots", action="store_true", help="Also save PNG snapshots")
    replay_parser.add_argument("-o", "--output", type=str, default="gifs", help="Output directory")
    replay_parser.set_defaults(func=cmd_replay)

    # Score command
    score_parser = subparsers.add_parser("score", help="Run one seed and show its novelty scores")
    score_parser.add_argument("seed", type=int, help="World seed")
    _add_world_args(score_parser)
    _add_scoring_args(score_parser)
    score_parser.set_defaults(func=cmd_score)

    # Show command
    show_parser = subparsers.add_parser("show", help="Print a seed to the terminal")
    show_parser.add_argument("seed", type=int, help="World seed")
    _add_world_args(show_parser)
    show_parser.set_defaults(size=16)
    show_parser.add_argument("--steps", type=int, default=20, help="Generations to print")
    show_parser.add_argument("--delay", type=float, default=0.0, help="Seconds between generations")
    show_parser.set_defaults(func=cmd_show)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Watch a seed in a window (needs matplotlib)")
    watch_parser.add_argument("seed", type=int, help="World seed")
    _add_world_args(watch_parser)
    watch_parser.add_argument("--steps", type=int, default=None, help="Generations to show")
    watch_parser.set_defaults(func=cmd_watch)

    # Leaderboard command
    lb_parser = subparsers.add_parser("leaderboard", help="Show top discovered seeds")
    lb_parser.add_argument("-n", "--top", type=int, default=20, help="Number of seeds to show")
    lb_parser.add_argument("--database", type=str, default="discovered_seeds.json", help="Database file")
    lb_parser.set_defaults(func=cmd_leaderboard)

    # Export command
    export_parser = subparsers.add_parser("export", help="Export seeds to CSV")
    export_parser.add_argument("-o", "--output", type=str, default="seeds.csv", help="Output CSV file")
    export_parser.add_argument("--database", type=str, default="discovered_seeds.json", help="Database file")
    export_parser.set_defaults(func=cmd_export)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
