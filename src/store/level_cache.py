"""Single-slot level cache over a directory of array files.

This module keeps exactly one persistence level's bundle of arrays
resident. Requesting another level stages a complete replacement bundle
off to the side and swaps it in with one assignment, so a failed reload
leaves the previous bundle intact.

Arrays handed out by getters are read-only and belong to the resident
bundle. They stay valid only until the next call that can change the
resident level or layout: ``select_level``, ``set_layout``, or any
getter asked for a different level.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import threading
from typing import Callable, Iterable, TypeVar

import numpy as np

from core.config import HDVizConfig
from core.constants import (
    COLOR_SUFFIX,
    CRYSTALS_FILE_PREFIX,
    DENSITY_SUFFIX,
    EXTREMA_VALUES_FILE_PREFIX,
    EXTREMA_WIDTHS_FILE_PREFIX,
    HEADER_SUFFIX,
    WIDTH_SUFFIX,
)
from core.errors import (
    HDVizCodecError,
    HDVizDataLoadError,
    HDVizOutOfRangeError,
    HDVizStoreError,
)
from core.logging_config import get_logger
from core.types import (
    DatasetConstants,
    LayoutBundle,
    LayoutMode,
    ReconstructionBundle,
    parse_layout_mode,
)
from store.array_codec import FileArrayReader
from store.color_mapper import ColorMapper
from store.layout_store import layout_file_names, load_layout
from store.reconstruction_store import (
    cell_file_name,
    load_reconstructions,
    reconstruction_file_names,
)
from store.statistics import LevelStatistics, derive_statistics

_LOGGER = get_logger(__name__)
_T = TypeVar("_T")

EDGE_DTYPE = np.int32


@dataclass(frozen=True)
class LevelBundle:
    """Every array resident for one (level, layout mode) pair.

    Attributes:
        level: Persistence level.
        edges: Cell adjacency matrix, one column per cell.
        reconstruction: Per-cell mean, variance, gradient and bounds.
        layout: Per-cell and extrema embeddings for the active mode.
        colors: Raw per-cell color values.
        raw_widths: Raw per-cell widths.
        densities: Raw per-cell densities.
        extrema_values: Raw extrema values.
        extrema_widths: Raw extrema widths.
        statistics: Normalized values, rescaled widths and color maps.
    """

    level: int
    edges: np.ndarray
    reconstruction: ReconstructionBundle
    layout: LayoutBundle
    colors: tuple[np.ndarray, ...]
    raw_widths: tuple[np.ndarray, ...]
    densities: tuple[np.ndarray, ...]
    extrema_values: np.ndarray
    extrema_widths: np.ndarray
    statistics: LevelStatistics

    @property
    def cell_count(self) -> int:
        """Number of cells at this level."""
        return int(self.edges.shape[1])


class LevelCache:
    """Dataset handle caching exactly one persistence level.

    The handle reads dataset-wide constants on construction and makes
    the highest level resident. All level and layout changes rebuild the
    resident bundle wholesale.
    """

    def __init__(
        self,
        config: HDVizConfig | None = None,
        reader: FileArrayReader | None = None,
    ) -> None:
        """Open a dataset directory.

        Args:
            config: Runtime configuration; read from the environment when omitted.
            reader: Array file reader; defaults to one rooted at ``config.data_path``.

        Raises:
            HDVizDataLoadError: If dataset-wide files or the top level cannot be loaded.
        """
        self._config = config or HDVizConfig.from_env()
        self._reader = reader or FileArrayReader(self._config.data_path)
        self._lock = threading.RLock()
        self._constants = _read_dataset_constants(self._reader, self._config)
        self._resident: LevelBundle | None = None
        self._resident = self._stage_bundle(self._constants.max_level, self._config.layout_mode)
        _LOGGER.info(
            "dataset_opened",
            data_path=str(self._reader.root),
            min_level=self._constants.min_level,
            max_level=self._constants.max_level,
            layout_mode=self._resident.layout.mode.name,
            cell_count=self._resident.cell_count,
        )

    def __enter__(self) -> "LevelCache":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def constants(self) -> DatasetConstants:
        """Dataset-wide constants read at open time."""
        return self._constants

    @property
    def resident(self) -> LevelBundle:
        """Currently resident bundle; never triggers a reload."""
        return self._require_open()

    @property
    def resident_level(self) -> int:
        """Level of the resident bundle."""
        return self._require_open().level

    @property
    def layout_mode(self) -> LayoutMode:
        """Layout mode of the resident bundle."""
        return self._require_open().layout.mode

    @property
    def closed(self) -> bool:
        """Whether the dataset has been closed."""
        return self._resident is None

    def close(self) -> None:
        """Release the resident bundle. Further reads raise HDVizStoreError."""
        with self._lock:
            if self._resident is None:
                return
            level = self._resident.level
            self._resident = None
        _LOGGER.info("dataset_closed", data_path=str(self._reader.root), persistence_level=level)

    def select_level(self, level: int) -> LevelBundle:
        """Make ``level`` resident, reloading only when it is not already.

        Args:
            level: Persistence level in ``[min_level, max_level]``.

        Returns:
            The resident bundle for ``level``.

        Raises:
            HDVizOutOfRangeError: If ``level`` is outside the dataset range.
            HDVizDataLoadError: If the level's files cannot be loaded.
        """
        with self._lock:
            resident = self._require_open()
            level = self._check_level(level)
            if level == resident.level:
                return resident
            bundle = self._stage_bundle(level, resident.layout.mode)
            self._resident = bundle
            _LOGGER.info(
                "level_reloaded",
                previous_level=resident.level,
                persistence_level=level,
                layout_mode=bundle.layout.mode.name,
                cell_count=bundle.cell_count,
            )
            return bundle

    def set_layout(self, mode: LayoutMode | str, level: int) -> LevelBundle:
        """Switch the active layout mode and load its embeddings for ``level``.

        When ``level`` is resident only the layout arrays are reloaded and
        the reconstruction and statistics objects are kept. Otherwise the
        whole bundle for ``level`` is staged under the new mode.

        Args:
            mode: Layout mode or its name.
            level: Persistence level in ``[min_level, max_level]``.

        Returns:
            The resident bundle after the switch.

        Raises:
            HDVizInvalidArgumentError: If ``mode`` names no known layout.
            HDVizOutOfRangeError: If ``level`` is outside the dataset range.
            HDVizDataLoadError: If the layout files cannot be loaded.
        """
        layout_mode = parse_layout_mode(mode)
        with self._lock:
            resident = self._require_open()
            level = self._check_level(level)
            if level != resident.level:
                bundle = self._stage_bundle(level, layout_mode)
            else:
                layout = self._stage_layout(layout_mode, level, resident.cell_count)
                bundle = replace(resident, layout=layout)
            self._resident = bundle
            _LOGGER.info(
                "layout_reloaded",
                persistence_level=level,
                layout_mode=layout_mode.name,
                sample_count=bundle.layout.sample_count,
            )
            return bundle

    def get_min_persistence_level(self) -> int:
        return self._constants.min_level

    def get_max_persistence_level(self) -> int:
        return self._constants.max_level

    def get_persistence(self) -> np.ndarray:
        return self._constants.persistence

    def get_names(self) -> tuple[str, ...]:
        return self._constants.names

    def get_r_min(self) -> np.ndarray:
        """Row-wise minimum of the ambient geometry."""
        return self._constants.r_min

    def get_r_max(self) -> np.ndarray:
        """Row-wise maximum of the ambient geometry."""
        return self._constants.r_max

    def get_sample_count(self) -> int:
        """Samples per cell of the resident layout."""
        return self._require_open().layout.sample_count

    def get_edges(self, level: int) -> np.ndarray:
        return self.select_level(level).edges

    def get_layout(self, mode: LayoutMode | str, level: int) -> tuple[np.ndarray, ...]:
        """Per-cell embeddings of ``mode`` at ``level``, switching layout when needed."""
        return self._ensure_layout(mode, level).layout.cells

    def get_extrema_layout(self, mode: LayoutMode | str, level: int) -> np.ndarray:
        """Extrema embedding of ``mode`` at ``level``, switching layout when needed."""
        return self._ensure_layout(mode, level).layout.extrema

    def get_reconstruction(self, level: int) -> tuple[np.ndarray, ...]:
        return self.select_level(level).reconstruction.means

    def get_variance(self, level: int) -> tuple[np.ndarray, ...]:
        return self.select_level(level).reconstruction.variances

    def get_gradient(self, level: int) -> tuple[np.ndarray, ...]:
        return self.select_level(level).reconstruction.gradients

    def get_selected_coordinate(
        self, level: int, cell_index: int, sample_index: int, dimension: int
    ) -> float:
        """Reconstructed mean of one dimension at one cell sample."""
        means = self.select_level(level).reconstruction.means
        return float(means[cell_index][dimension, sample_index])

    def get_selected_variance(
        self, level: int, cell_index: int, sample_index: int, dimension: int
    ) -> float:
        """Reconstruction variance of one dimension at one cell sample."""
        variances = self.select_level(level).reconstruction.variances
        return float(variances[cell_index][dimension, sample_index])

    def get_rs_min(self, level: int) -> np.ndarray:
        return self.select_level(level).reconstruction.bounds.rs_min

    def get_rs_max(self, level: int) -> np.ndarray:
        return self.select_level(level).reconstruction.bounds.rs_max

    def get_rv_min(self, level: int) -> np.ndarray:
        return self.select_level(level).reconstruction.bounds.rv_min

    def get_rv_max(self, level: int) -> np.ndarray:
        return self.select_level(level).reconstruction.bounds.rv_max

    def get_gradient_min(self, level: int) -> np.ndarray:
        return self.select_level(level).reconstruction.bounds.grad_min

    def get_gradient_max(self, level: int) -> np.ndarray:
        return self.select_level(level).reconstruction.bounds.grad_max

    def get_variance_max(self, level: int) -> float:
        return self.select_level(level).reconstruction.bounds.variance_max

    def get_extrema_values(self, level: int) -> np.ndarray:
        return self.select_level(level).extrema_values

    def get_extrema_normalized(self, level: int) -> np.ndarray:
        return self.select_level(level).statistics.extrema_normalized

    def get_extrema_widths(self, level: int) -> np.ndarray:
        """Extrema widths as read from disk."""
        return self.select_level(level).extrema_widths

    def get_extrema_widths_scaled(self, level: int) -> np.ndarray:
        """Extrema widths rescaled into the visual width band."""
        return self.select_level(level).statistics.extrema_widths

    def get_extrema_min_value(self, level: int) -> float:
        return self.select_level(level).statistics.extrema_min

    def get_extrema_max_value(self, level: int) -> float:
        return self.select_level(level).statistics.extrema_max

    def get_z_min(self, level: int) -> float:
        """Smallest raw cell width at ``level``."""
        return self.select_level(level).statistics.width_min

    def get_z_max(self, level: int) -> float:
        """Largest raw cell width at ``level``."""
        return self.select_level(level).statistics.width_max

    def get_mean(self, level: int) -> tuple[np.ndarray, ...]:
        """Raw per-cell color values."""
        return self.select_level(level).colors

    def get_mean_normalized(self, level: int) -> tuple[np.ndarray, ...]:
        return self.select_level(level).statistics.colors_normalized

    def get_width(self, level: int) -> tuple[np.ndarray, ...]:
        """Per-cell widths rescaled into the visual width band."""
        return self.select_level(level).statistics.widths

    def get_density(self, level: int) -> tuple[np.ndarray, ...]:
        return self.select_level(level).densities

    def get_color_map(self, level: int) -> ColorMapper:
        return self.select_level(level).statistics.colormap

    def get_density_color_map(self, level: int) -> ColorMapper:
        return self.select_level(level).statistics.density_colormap

    def _ensure_layout(self, mode: LayoutMode | str, level: int) -> LevelBundle:
        layout_mode = parse_layout_mode(mode)
        with self._lock:
            resident = self._require_open()
            if layout_mode == resident.layout.mode:
                return self.select_level(level)
            return self.set_layout(layout_mode, level)

    def _require_open(self) -> LevelBundle:
        resident = self._resident
        if resident is None:
            raise HDVizStoreError(
                f"Dataset at {self._reader.root} is closed. Open it again before reading."
            )
        return resident

    def _check_level(self, level: int) -> int:
        constants = self._constants
        if isinstance(level, bool) or not isinstance(level, (int, np.integer)):
            raise HDVizOutOfRangeError(f"Persistence level must be an integer, got {level!r}.")
        if not constants.min_level <= level <= constants.max_level:
            raise HDVizOutOfRangeError(
                f"Persistence level {level} is outside "
                f"[{constants.min_level}, {constants.max_level}]."
            )
        return int(level)

    def _stage_bundle(self, level: int, mode: LayoutMode) -> LevelBundle:
        """Build a complete bundle for ``level`` without touching the resident one."""
        edges = self._read_staged(
            level, lambda: self._reader.read_matrix(_crystals_file(level), EDGE_DTYPE)
        )
        cell_count = int(edges.shape[1])
        self._check_files(level, _level_file_names(level, cell_count, mode))

        def _load() -> LevelBundle:
            reconstruction = load_reconstructions(self._reader, level, cell_count)
            layout = load_layout(self._reader, mode, level, cell_count)
            extrema_values = self._reader.read_vector(
                _level_file(EXTREMA_VALUES_FILE_PREFIX, level)
            )
            extrema_widths = self._reader.read_vector(
                _level_file(EXTREMA_WIDTHS_FILE_PREFIX, level)
            )
            colors = _read_cell_vectors(self._reader, level, cell_count, COLOR_SUFFIX)
            raw_widths = _read_cell_vectors(self._reader, level, cell_count, WIDTH_SUFFIX)
            densities = _read_cell_vectors(self._reader, level, cell_count, DENSITY_SUFFIX)
            statistics = derive_statistics(
                extrema_values, extrema_widths, colors, raw_widths, densities
            )
            return LevelBundle(
                level=level,
                edges=edges,
                reconstruction=reconstruction,
                layout=layout,
                colors=colors,
                raw_widths=raw_widths,
                densities=densities,
                extrema_values=extrema_values,
                extrema_widths=extrema_widths,
                statistics=statistics,
            )

        return _freeze_bundle(self._read_staged(level, _load))

    def _stage_layout(self, mode: LayoutMode, level: int, cell_count: int) -> LayoutBundle:
        self._check_files(level, layout_file_names(mode, level, cell_count))
        layout = self._read_staged(
            level, lambda: load_layout(self._reader, mode, level, cell_count)
        )
        return _freeze_layout(layout)

    def _check_files(self, level: int, names: Iterable[str]) -> None:
        """Fail with one error naming the first missing file of a planned load."""
        missing = tuple(self._reader.path(name) for name in names if not self._reader.exists(name))
        if not missing:
            return
        _LOGGER.error(
            "level_reload_failed",
            persistence_level=level,
            missing_count=len(missing),
            first_missing=str(missing[0]),
        )
        raise HDVizDataLoadError(
            f"Cannot load persistence level {level}: {len(missing)} file(s) missing or "
            f"unreadable, first {missing[0]}. Regenerate the level's files and retry.",
            path=missing[0],
            missing_files=missing,
        )

    def _read_staged(self, level: int, load: Callable[[], _T]) -> _T:
        """Run a staged load, reporting codec failures as HDVizDataLoadError."""
        try:
            return load()
        except HDVizCodecError as error:
            _LOGGER.error(
                "level_reload_failed",
                persistence_level=level,
                path=str(error.path) if error.path else None,
                reason=str(error),
            )
            raise HDVizDataLoadError(
                f"Cannot load persistence level {level}: {error}",
                path=error.path,
            ) from error


def _read_dataset_constants(reader: FileArrayReader, config: HDVizConfig) -> DatasetConstants:
    """Read persistence range, geometry bounds and dimension names."""
    try:
        persistence = reader.read_vector(config.persistence_file)
        start = reader.read_vector(config.persistence_start_file)
        geometry = reader.read_matrix(config.geometry_file)
    except HDVizCodecError as error:
        raise HDVizDataLoadError(
            f"Cannot open dataset at {reader.root}: {error}",
            path=error.path,
        ) from error
    if persistence.size == 0 or start.size == 0:
        raise HDVizDataLoadError(
            f"Cannot open dataset at {reader.root}: persistence files are empty.",
            path=reader.path(config.persistence_file),
        )
    max_level = int(persistence.size - 1)
    min_level = int(start[0])
    if not 0 <= min_level <= max_level:
        raise HDVizDataLoadError(
            f"Cannot open dataset at {reader.root}: start level {min_level} "
            f"is outside [0, {max_level}].",
            path=reader.path(config.persistence_start_file),
        )
    if geometry.shape[1] == 0:
        raise HDVizDataLoadError(
            f"Cannot open dataset at {reader.root}: geometry matrix has no samples.",
            path=reader.path(config.geometry_file),
        )
    dimension_count = int(geometry.shape[0])
    try:
        names = _read_names(reader, config.names_file, dimension_count)
    except HDVizCodecError as error:
        raise HDVizDataLoadError(
            f"Cannot open dataset at {reader.root}: {error}",
            path=error.path,
        ) from error
    return DatasetConstants(
        persistence=_read_only(persistence),
        min_level=min_level,
        max_level=max_level,
        r_min=_read_only(geometry.min(axis=1)),
        r_max=_read_only(geometry.max(axis=1)),
        names=names,
    )


def _read_names(reader: FileArrayReader, names_file: str, dimension_count: int) -> tuple[str, ...]:
    lines = reader.read_lines(names_file)
    if lines is None:
        _LOGGER.warning("names_file_missing", path=str(reader.path(names_file)))
        return ("",) * dimension_count
    padded = lines[:dimension_count] + [""] * max(0, dimension_count - len(lines))
    return tuple(padded)


def _read_cell_vectors(
    reader: FileArrayReader, level: int, cell_count: int, suffix: str
) -> tuple[np.ndarray, ...]:
    return tuple(
        reader.read_vector(cell_file_name(level, index, suffix)) for index in range(cell_count)
    )


def _level_file_names(level: int, cell_count: int, mode: LayoutMode) -> list[str]:
    names = reconstruction_file_names(level, cell_count)
    names.extend(layout_file_names(mode, level, cell_count))
    names.append(_level_file(EXTREMA_VALUES_FILE_PREFIX, level))
    names.append(_level_file(EXTREMA_WIDTHS_FILE_PREFIX, level))
    for suffix in (COLOR_SUFFIX, WIDTH_SUFFIX, DENSITY_SUFFIX):
        names.extend(cell_file_name(level, index, suffix) for index in range(cell_count))
    return names


def _crystals_file(level: int) -> str:
    return _level_file(CRYSTALS_FILE_PREFIX, level)


def _level_file(prefix: str, level: int) -> str:
    return f"{prefix}_{level}{HEADER_SUFFIX}"


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _freeze_layout(layout: LayoutBundle) -> LayoutBundle:
    for array in (layout.bounds_min, layout.bounds_max, layout.extrema, *layout.cells):
        _read_only(array)
    return layout


def _freeze_bundle(bundle: LevelBundle) -> LevelBundle:
    """Turn off the write flag of every array in a freshly staged bundle."""
    reconstruction = bundle.reconstruction
    bounds = reconstruction.bounds
    statistics = bundle.statistics
    arrays = [
        bundle.edges,
        bundle.extrema_values,
        bundle.extrema_widths,
        bounds.rs_min,
        bounds.rs_max,
        bounds.rv_min,
        bounds.rv_max,
        bounds.grad_min,
        bounds.grad_max,
        statistics.extrema_normalized,
        statistics.extrema_widths,
        *reconstruction.means,
        *reconstruction.variances,
        *reconstruction.gradients,
        *bundle.colors,
        *bundle.raw_widths,
        *bundle.densities,
        *statistics.colors_normalized,
        *statistics.widths,
    ]
    for array in arrays:
        _read_only(array)
    _freeze_layout(bundle.layout)
    return bundle
