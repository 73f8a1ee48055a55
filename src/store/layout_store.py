"""Per-mode 2D layouts for cells and extrema.

This module loads the embedding files of one layout mode at one level
and maps them into a shared normalized frame using the mode's bounding
vectors.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from core.constants import HEADER_SUFFIX
from core.errors import HDVizDataLoadError
from core.types import LayoutBundle, LayoutMode
from store.array_codec import FileArrayReader
from store.reconstruction_store import cell_file_name


@dataclass(frozen=True)
class LayoutFiles:
    """File naming scheme of one layout mode."""

    min_file: str
    max_file: str
    cell_suffix: str
    extrema_prefix: str

    def extrema_file(self, level: int) -> str:
        return f"{self.extrema_prefix}_{level}{HEADER_SUFFIX}"


LAYOUT_FILES: dict[LayoutMode, LayoutFiles] = {
    LayoutMode.ISOMAP: LayoutFiles(
        min_file=f"IsoMin{HEADER_SUFFIX}",
        max_file=f"IsoMax{HEADER_SUFFIX}",
        cell_suffix="_isolayout",
        extrema_prefix="IsoExtremaLayout",
    ),
    LayoutMode.PCA: LayoutFiles(
        min_file=f"PCAMin{HEADER_SUFFIX}",
        max_file=f"PCAMax{HEADER_SUFFIX}",
        cell_suffix="_layout",
        extrema_prefix="ExtremaLayout",
    ),
    LayoutMode.PCA2: LayoutFiles(
        min_file=f"PCA2Min{HEADER_SUFFIX}",
        max_file=f"PCA2Max{HEADER_SUFFIX}",
        cell_suffix="_pca2layout",
        extrema_prefix="PCA2ExtremaLayout",
    ),
}


def layout_file_names(mode: LayoutMode, level: int, cell_count: int) -> list[str]:
    """List every file load_layout reads, in read order."""
    files = LAYOUT_FILES[mode]
    names = [files.min_file, files.max_file]
    names.extend(cell_file_name(level, index, files.cell_suffix) for index in range(cell_count))
    names.append(files.extrema_file(level))
    return names


def load_layout(
    reader: FileArrayReader, mode: LayoutMode, level: int, cell_count: int
) -> LayoutBundle:
    """Load and normalize the embeddings of one layout mode.

    Args:
        reader: Dataset file reader.
        mode: Layout mode to load.
        level: Persistence level.
        cell_count: Number of cells at this level.

    Returns:
        Normalized cell and extrema embeddings.

    Raises:
        HDVizDataLoadError: If the level has no cells or bounds are unusable.
        HDVizCodecError: If a file cannot be read.
    """
    files = LAYOUT_FILES[mode]
    bounds_min = reader.read_vector(files.min_file)
    bounds_max = reader.read_vector(files.max_file)
    cells = [
        reader.read_matrix(cell_file_name(level, index, files.cell_suffix))
        for index in range(cell_count)
    ]
    extrema = reader.read_matrix(files.extrema_file(level))
    if not cells:
        raise HDVizDataLoadError(f"Level {level} has no cells to lay out.")
    center, scale = layout_transform(bounds_min, bounds_max, mode)
    return LayoutBundle(
        mode=mode,
        bounds_min=bounds_min,
        bounds_max=bounds_max,
        cells=tuple(apply_layout_transform(cell, center, scale) for cell in cells),
        extrema=apply_layout_transform(extrema, center, scale),
        sample_count=int(cells[0].shape[1]),
    )


def layout_transform(
    bounds_min: np.ndarray, bounds_max: np.ndarray, mode: LayoutMode
) -> tuple[np.ndarray, float]:
    """Derive the recentring offset and scale factor from mode bounds.

    ``diff = max - min``, ``r = max(diff[0], diff[1])``,
    ``center = diff * 0.5 + min``, ``scale = 2 / r``.

    Raises:
        HDVizDataLoadError: If the bounds are not two-dimensional or have no extent.
    """
    if bounds_min.shape != bounds_max.shape or bounds_min.shape[0] < 2:
        raise HDVizDataLoadError(
            f"{mode.name} layout bounds must be matching vectors of at least 2 entries, "
            f"got {bounds_min.shape} and {bounds_max.shape}."
        )
    diff = bounds_max - bounds_min
    extent = max(diff[0], diff[1])
    if extent <= 0:
        raise HDVizDataLoadError(
            f"{mode.name} layout bounds have no extent: max(diff) = {extent}."
        )
    center = diff * 0.5 + bounds_min
    return center, 2.0 / float(extent)


def apply_layout_transform(array: np.ndarray, center: np.ndarray, scale: float) -> np.ndarray:
    """Add ``center`` to every column, then multiply by ``scale``."""
    if array.shape[0] != center.shape[0]:
        raise HDVizDataLoadError(
            f"Embedding with {array.shape[0]} rows does not match "
            f"{center.shape[0]}-entry layout bounds."
        )
    shifted = array + center[:, np.newaxis]
    return shifted * scale
