"""Shared typed models.

This module defines immutable data models used by the codec, the
per-level stores, and the level cache to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from core.errors import HDVizInvalidArgumentError


class LayoutMode(Enum):
    """2D embedding used to place cells and extrema."""

    ISOMAP = 0
    PCA = 1
    PCA2 = 2


def parse_layout_mode(value: LayoutMode | str) -> LayoutMode:
    """Resolve a layout mode from an enum member or a case-insensitive name.

    Args:
        value: Layout mode or its name, e.g. ``"pca2"``.

    Returns:
        Matching layout mode.

    Raises:
        HDVizInvalidArgumentError: If the value names no known layout.
    """
    if isinstance(value, LayoutMode):
        return value
    if isinstance(value, str):
        try:
            return LayoutMode[value.strip().upper()]
        except KeyError:
            pass
    raise HDVizInvalidArgumentError(
        f"Unrecognized layout mode {value!r}. Use one of isomap, pca, pca2."
    )


@dataclass(frozen=True)
class DatasetConstants:
    """Dataset-wide values read once when a dataset is opened.

    Attributes:
        persistence: Sorted persistence values, one per level.
        min_level: Lowest selectable persistence level.
        max_level: Highest selectable persistence level.
        r_min: Row-wise minimum of the ambient geometry matrix.
        r_max: Row-wise maximum of the ambient geometry matrix.
        names: Per-dimension names, blank when no names file exists.
    """

    persistence: np.ndarray
    min_level: int
    max_level: int
    r_min: np.ndarray
    r_max: np.ndarray
    names: tuple[str, ...]


@dataclass(frozen=True)
class GlobalBounds:
    """Per-level bounds aggregated over every cell, dimension, and sample.

    Attributes:
        rs_min: Per-dimension minimum of mean minus variance.
        rs_max: Per-dimension maximum of mean plus variance.
        rv_min: Per-dimension minimum variance.
        rv_max: Per-dimension maximum variance.
        grad_min: Per-dimension minimum gradient.
        grad_max: Per-dimension maximum gradient.
        variance_max: Largest entry of ``rv_max``, floored at zero.
    """

    rs_min: np.ndarray
    rs_max: np.ndarray
    rv_min: np.ndarray
    rv_max: np.ndarray
    grad_min: np.ndarray
    grad_max: np.ndarray
    variance_max: float


@dataclass(frozen=True)
class ReconstructionBundle:
    """Per-cell regression reconstructions for one level.

    Each matrix is shaped ambient-dimension by sample-count.
    """

    means: tuple[np.ndarray, ...]
    variances: tuple[np.ndarray, ...]
    gradients: tuple[np.ndarray, ...]
    bounds: GlobalBounds


@dataclass(frozen=True)
class LayoutBundle:
    """Normalized 2D embeddings for one (layout mode, level) pair.

    Attributes:
        mode: Layout mode the embeddings belong to.
        bounds_min: Mode-wide bounding vector minimum as read from disk.
        bounds_max: Mode-wide bounding vector maximum as read from disk.
        cells: Per-cell embeddings after recentring and rescaling.
        extrema: Extrema embedding after recentring and rescaling.
        sample_count: Column count of the first cell embedding.
    """

    mode: LayoutMode
    bounds_min: np.ndarray
    bounds_max: np.ndarray
    cells: tuple[np.ndarray, ...]
    extrema: np.ndarray
    sample_count: int
