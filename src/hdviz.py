"""Public SDK surface for HDViz.

This module provides a stable import path for renderers and servers.
It re-exports the level cache, its config, and typed models.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from core.config import HDVizConfig
from core.errors import (
    HDVizCodecError,
    HDVizConfigError,
    HDVizDataLoadError,
    HDVizError,
    HDVizInvalidArgumentError,
    HDVizOutOfRangeError,
    HDVizStoreError,
)
from core.types import DatasetConstants, GlobalBounds, LayoutBundle, LayoutMode
from store.color_mapper import ColorMapper, ColorStop
from store.level_cache import LevelBundle, LevelCache
from store.statistics import LevelStatistics


def open_dataset(path: str | Path, config: HDVizConfig | None = None) -> LevelCache:
    """Open a dataset directory with its highest persistence level resident.

    Args:
        path: Dataset directory.
        config: Optional base config; its data path is replaced by ``path``.

    Returns:
        Level cache for the dataset.
    """
    if config is None:
        config = HDVizConfig.for_path(path)
    else:
        config = replace(config, data_path=Path(path).expanduser().resolve())
    return LevelCache(config)


__all__ = [
    "ColorMapper",
    "ColorStop",
    "DatasetConstants",
    "GlobalBounds",
    "HDVizCodecError",
    "HDVizConfig",
    "HDVizConfigError",
    "HDVizDataLoadError",
    "HDVizError",
    "HDVizInvalidArgumentError",
    "HDVizOutOfRangeError",
    "HDVizStoreError",
    "LayoutBundle",
    "LayoutMode",
    "LevelBundle",
    "LevelCache",
    "LevelStatistics",
    "open_dataset",
]
