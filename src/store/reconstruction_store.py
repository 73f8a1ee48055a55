"""Per-cell regression reconstructions and their level-wide bounds.

This module loads the mean, gradient, and variance matrices of every
cell at one persistence level and scans them for per-dimension bounds.
"""

from __future__ import annotations

import numpy as np

from core.constants import GRADIENT_SUFFIX, HEADER_SUFFIX, MEAN_SUFFIX, VARIANCE_SUFFIX
from core.errors import HDVizDataLoadError
from core.types import GlobalBounds, ReconstructionBundle
from store.array_codec import FileArrayReader


def cell_file_name(level: int, cell_index: int, suffix: str) -> str:
    """Return the file name of one per-cell array, e.g. ps_3_crystal_0_Rs.data.hdr."""
    return f"ps_{level}_crystal_{cell_index}{suffix}{HEADER_SUFFIX}"


def reconstruction_file_names(level: int, cell_count: int) -> list[str]:
    """List every file load_reconstructions reads, in read order."""
    names: list[str] = []
    for cell_index in range(cell_count):
        for suffix in (MEAN_SUFFIX, GRADIENT_SUFFIX, VARIANCE_SUFFIX):
            names.append(cell_file_name(level, cell_index, suffix))
    return names


def load_reconstructions(
    reader: FileArrayReader, level: int, cell_count: int
) -> ReconstructionBundle:
    """Load reconstructions for every cell of a level.

    Args:
        reader: Dataset file reader.
        level: Persistence level.
        cell_count: Number of cells at this level.

    Returns:
        Reconstruction matrices and their global bounds.

    Raises:
        HDVizDataLoadError: If the level has no cells or shapes disagree.
        HDVizCodecError: If a file cannot be read.
    """
    means: list[np.ndarray] = []
    gradients: list[np.ndarray] = []
    variances: list[np.ndarray] = []
    for cell_index in range(cell_count):
        mean = reader.read_matrix(cell_file_name(level, cell_index, MEAN_SUFFIX))
        gradient = reader.read_matrix(cell_file_name(level, cell_index, GRADIENT_SUFFIX))
        variance = reader.read_matrix(cell_file_name(level, cell_index, VARIANCE_SUFFIX))
        if not mean.shape == gradient.shape == variance.shape:
            raise HDVizDataLoadError(
                f"Cell {cell_index} at level {level} has mismatched reconstruction shapes: "
                f"mean {mean.shape}, gradient {gradient.shape}, variance {variance.shape}.",
                path=reader.path(cell_file_name(level, cell_index, MEAN_SUFFIX)),
            )
        means.append(mean)
        gradients.append(gradient)
        variances.append(variance)
    bounds = compute_bounds(means, variances, gradients, level)
    return ReconstructionBundle(
        means=tuple(means),
        variances=tuple(variances),
        gradients=tuple(gradients),
        bounds=bounds,
    )


def compute_bounds(
    means: list[np.ndarray],
    variances: list[np.ndarray],
    gradients: list[np.ndarray],
    level: int,
) -> GlobalBounds:
    """Scan every cell, dimension, and sample for per-dimension bounds.

    Running bounds start from sample 0 of cell 0: the mean column for the
    mean-plus-or-minus-variance envelope, the variance column for the
    variance bounds, and the gradient column for the gradient bounds.

    Args:
        means: Per-cell mean matrices.
        variances: Per-cell variance matrices.
        gradients: Per-cell gradient matrices.
        level: Persistence level, for error messages.

    Returns:
        Level-wide bounds.

    Raises:
        HDVizDataLoadError: If there is no first cell sample to seed from.
    """
    if not means or means[0].shape[1] == 0:
        raise HDVizDataLoadError(
            f"Level {level} has no cell samples to derive reconstruction bounds from."
        )
    rs_min = means[0][:, 0].copy()
    rs_max = means[0][:, 0].copy()
    rv_min = variances[0][:, 0].copy()
    rv_max = variances[0][:, 0].copy()
    grad_min = gradients[0][:, 0].copy()
    grad_max = gradients[0][:, 0].copy()
    for mean, variance, gradient in zip(means, variances, gradients):
        if mean.shape[0] != rs_min.shape[0]:
            raise HDVizDataLoadError(
                f"Level {level} mixes reconstructions of {rs_min.shape[0]} "
                f"and {mean.shape[0]} dimensions."
            )
        if mean.shape[1] == 0:
            continue
        np.minimum(rs_min, (mean - variance).min(axis=1), out=rs_min)
        np.maximum(rs_max, (mean + variance).max(axis=1), out=rs_max)
        np.minimum(rv_min, variance.min(axis=1), out=rv_min)
        np.maximum(rv_max, variance.max(axis=1), out=rv_max)
        np.minimum(grad_min, gradient.min(axis=1), out=grad_min)
        np.maximum(grad_max, gradient.max(axis=1), out=grad_max)
    variance_max = 0.0
    if rv_max.size:
        variance_max = max(variance_max, float(rv_max.max()))
    return GlobalBounds(
        rs_min=rs_min,
        rs_max=rs_max,
        rv_min=rv_min,
        rv_max=rv_max,
        grad_min=grad_min,
        grad_max=grad_max,
        variance_max=variance_max,
    )
