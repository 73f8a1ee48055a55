"""Normalized statistics derived from one level's raw arrays.

This module turns raw extrema values, per-cell colors, widths and
densities into the normalized values and color maps a renderer needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.constants import (
    DENSITY_COLORMAP_CHANNELS,
    VALUE_COLORMAP_CHANNELS,
    WIDTH_FLOOR,
    WIDTH_SCALE,
)
from store.color_mapper import ColorMapper


@dataclass(frozen=True)
class LevelStatistics:
    """Derived statistics for one level.

    Attributes:
        extrema_min: Smallest extrema value.
        extrema_max: Largest extrema value.
        extrema_normalized: Extrema values mapped by the extrema range.
        colors_normalized: Per-cell color values mapped by the extrema range.
        widths: Per-cell widths rescaled into the visual width band.
        extrema_widths: Extrema widths rescaled with the same factor.
        width_min: Smallest raw cell width.
        width_max: Largest raw cell width.
        colormap: Value color map over the extrema range.
        density_colormap: Density color map over ``[0, max density]``.
    """

    extrema_min: float
    extrema_max: float
    extrema_normalized: np.ndarray
    colors_normalized: tuple[np.ndarray, ...]
    widths: tuple[np.ndarray, ...]
    extrema_widths: np.ndarray
    width_min: float
    width_max: float
    colormap: ColorMapper
    density_colormap: ColorMapper


def derive_statistics(
    extrema_values: np.ndarray,
    extrema_widths: np.ndarray,
    colors: Sequence[np.ndarray],
    widths: Sequence[np.ndarray],
    densities: Sequence[np.ndarray],
) -> LevelStatistics:
    """Derive every normalized statistic for a level.

    Args:
        extrema_values: Raw extrema values.
        extrema_widths: Raw extrema widths.
        colors: Raw per-cell color values.
        widths: Raw per-cell widths.
        densities: Raw per-cell densities.

    Returns:
        Derived statistics. Inputs are left untouched.
    """
    extrema_min = float(np.min(extrema_values)) if extrema_values.size else 0.0
    extrema_max = float(np.max(extrema_values)) if extrema_values.size else 0.0
    scaled_widths, scaled_extrema_widths, width_min, width_max = rescale_widths(
        widths, extrema_widths
    )
    return LevelStatistics(
        extrema_min=extrema_min,
        extrema_max=extrema_max,
        extrema_normalized=normalize_by_range(extrema_values, extrema_min, extrema_max),
        colors_normalized=tuple(
            normalize_by_range(values, extrema_min, extrema_max) for values in colors
        ),
        widths=scaled_widths,
        extrema_widths=scaled_extrema_widths,
        width_min=width_min,
        width_max=width_max,
        colormap=build_value_colormap(extrema_min, extrema_max),
        density_colormap=build_density_colormap(densities),
    )


def normalize_by_range(values: np.ndarray, vmin: float, vmax: float) -> np.ndarray:
    """Map values by ``(v - vmin) / (vmax - vmin)``; all zeros for an empty range."""
    span = vmax - vmin
    if span == 0.0:
        return np.zeros(values.shape, dtype=np.float64)
    return (values - vmin) / span


def rescale_widths(
    widths: Sequence[np.ndarray], extrema_widths: np.ndarray
) -> tuple[tuple[np.ndarray, ...], np.ndarray, float, float]:
    """Rescale cell and extrema widths by the largest raw cell width.

    Every width becomes ``width * (0.3 / zmax) + 0.03``. The running
    ``zmin`` starts at the largest float and ``zmax`` at the smallest
    positive float, so an all-zero level still has a finite factor.

    Returns:
        Scaled cell widths, scaled extrema widths, ``zmin``, ``zmax``.
    """
    zmin = float(np.finfo(np.float64).max)
    zmax = float(np.finfo(np.float64).tiny)
    for values in widths:
        if values.size:
            zmin = min(zmin, float(values.min()))
            zmax = max(zmax, float(values.max()))
    factor = WIDTH_SCALE / zmax
    scaled = tuple(values * factor + WIDTH_FLOOR for values in widths)
    scaled_extrema = extrema_widths * factor + WIDTH_FLOOR
    return scaled, scaled_extrema, zmin, zmax


def build_value_colormap(extrema_min: float, extrema_max: float) -> ColorMapper:
    """Build the diverging value color map over the extrema range."""
    colormap = ColorMapper(extrema_min, extrema_max)
    colormap.set(*VALUE_COLORMAP_CHANNELS)
    return colormap


def build_density_colormap(densities: Sequence[np.ndarray]) -> ColorMapper:
    """Build the density color map over ``[0, largest density]``."""
    density_max = float(np.finfo(np.float64).tiny)
    for values in densities:
        if values.size:
            density_max = max(density_max, float(values.max()))
    colormap = ColorMapper(0.0, density_max)
    colormap.set(*DENSITY_COLORMAP_CHANNELS)
    return colormap
