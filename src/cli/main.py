"""HDViz CLI entry points.

This module exposes dataset inspection commands for the level cache.
It maps argparse commands onto LevelCache calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.config import HDVizConfig
from core.errors import HDVizError
from core.types import LayoutMode, parse_layout_mode
from store.level_cache import LevelCache

_LAYOUT_CHOICES = tuple(mode.name.lower() for mode in LayoutMode)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="hdviz", description="HDViz dataset inspection CLI")
    parser.add_argument("--data-path", help="Override HDVIZ_DATA_PATH for this command")
    parser.add_argument(
        "--layout",
        choices=_LAYOUT_CHOICES,
        help="Override HDVIZ_LAYOUT for this command",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_levels_command(subparsers)
    _add_summary_command(subparsers)
    _add_extrema_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the HDViz CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        with _open_cache(args.data_path, args.layout) as cache:
            if args.command == "levels":
                return _run_levels_command(cache)
            if args.command == "summary":
                return _run_summary_command(cache, args)
            if args.command == "extrema":
                return _run_extrema_command(cache, args)
    except HDVizError as error:
        parser.exit(1, f"hdviz: error: {error}\n")
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _open_cache(data_path: str | None, layout: str | None) -> LevelCache:
    """Open the dataset with optional CLI overrides.

    Args:
        data_path: Optional dataset directory override.
        layout: Optional layout mode name override.

    Returns:
        Open level cache.
    """
    config = HDVizConfig.from_env()
    if data_path:
        config = replace(config, data_path=Path(data_path).expanduser().resolve())
    if layout:
        config = replace(config, layout_mode=parse_layout_mode(layout))
    return LevelCache(config)


def _run_levels_command(cache: LevelCache) -> int:
    """Handle levels command.

    Args:
        cache: Open level cache.

    Returns:
        Exit code.
    """
    persistence = cache.get_persistence()
    for level in range(cache.get_min_persistence_level(), cache.get_max_persistence_level() + 1):
        print(f"{level}\t{persistence[level]:.6g}")
    return 0


def _run_summary_command(cache: LevelCache, args: argparse.Namespace) -> int:
    """Handle summary command.

    Args:
        cache: Open level cache.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    level = cache.get_max_persistence_level() if args.level is None else args.level
    bundle = cache.select_level(level)
    statistics = bundle.statistics
    print(f"level={bundle.level}")
    print(f"layout={bundle.layout.mode.name.lower()}")
    print(f"cell_count={bundle.cell_count}")
    print(f"sample_count={bundle.layout.sample_count}")
    print(f"extrema_count={bundle.extrema_values.size}")
    print(f"extrema_range={statistics.extrema_min:.6g},{statistics.extrema_max:.6g}")
    print(f"width_range={statistics.width_min:.6g},{statistics.width_max:.6g}")
    print(f"variance_max={bundle.reconstruction.bounds.variance_max:.6g}")
    return 0


def _run_extrema_command(cache: LevelCache, args: argparse.Namespace) -> int:
    """Handle extrema command.

    Args:
        cache: Open level cache.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    level = cache.get_max_persistence_level() if args.level is None else args.level
    values = cache.get_extrema_values(level)
    normalized = cache.get_extrema_normalized(level)
    widths = cache.get_extrema_widths_scaled(level)
    for index, (value, norm, width) in enumerate(zip(values, normalized, widths)):
        print(f"{index}\t{value:.6g}\t{norm:.6g}\t{width:.6g}")
    return 0


def _add_levels_command(subparsers: Any) -> None:
    """Register levels subcommand."""
    subparsers.add_parser("levels", help="List persistence levels and their values")


def _add_summary_command(subparsers: Any) -> None:
    """Register summary subcommand."""
    parser = subparsers.add_parser("summary", help="Summarize one persistence level")
    parser.add_argument("--level", type=int, help="Persistence level; highest when omitted")


def _add_extrema_command(subparsers: Any) -> None:
    """Register extrema subcommand."""
    parser = subparsers.add_parser(
        "extrema",
        help="List extrema values, normalized values, and scaled widths",
    )
    parser.add_argument("--level", type=int, help="Persistence level; highest when omitted")
