"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Mapping

import numpy as np
import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


DEFAULT_CELL_COUNTS = {1: 5, 2: 3, 3: 2}
SAMPLE_COUNT = 4
DIMENSION_NAMES = ("pressure", "temperature", "response")

# Mode bounds: (min, max, per-cell suffix, extrema prefix, embedding offset).
LAYOUT_FIXTURES = {
    "Iso": ((-1.0, -2.0), (3.0, 2.0), "_isolayout", "IsoExtremaLayout", 0.0),
    "PCA": ((0.0, 0.0), (2.0, 1.0), "_layout", "ExtremaLayout", 10.0),
    "PCA2": ((-1.0, -1.0), (1.0, 1.0), "_pca2layout", "PCA2ExtremaLayout", 20.0),
}


def write_dataset(
    root: Path,
    cell_counts: Mapping[int, int] | None = None,
    sample_count: int = SAMPLE_COUNT,
    with_names: bool = True,
) -> Path:
    """Write a small synthetic decomposition into ``root``.

    Level ``L`` cell ``i`` carries means ``0.1 * k + i + L``, variance
    ``0.05 * (i + 1)``, extrema values ``[2, 4, 6]`` and widths spanning
    ``[0, 2]``. Levels are ``1..max(cell_counts)`` with level 0 below the
    start marker.
    """
    from store.array_codec import write_matrix, write_vector

    counts = dict(cell_counts or DEFAULT_CELL_COUNTS)
    max_level = max(counts)
    min_level = min(counts)
    root.mkdir(parents=True, exist_ok=True)
    write_vector(root / "Persistence.data.hdr", np.linspace(0.0, 0.4, max_level + 1))
    write_vector(root / "PersistenceStart.data.hdr", np.array([float(min_level)]))
    geometry = np.array(
        [
            [0.0, 1.0, 2.0, -1.0, 0.5, 3.0],
            [10.0, 12.0, 8.0, 9.0, 11.0, 10.5],
            [-5.0, 0.0, 5.0, 2.0, 1.0, -1.0],
        ]
    )
    write_matrix(root / "Geom.data.hdr", geometry)
    if with_names:
        (root / "names.txt").write_text("\n".join(DIMENSION_NAMES) + "\n", encoding="utf-8")
    for prefix, (bounds_min, bounds_max, _, _, _) in LAYOUT_FIXTURES.items():
        write_vector(root / f"{prefix}Min.data.hdr", np.array(bounds_min))
        write_vector(root / f"{prefix}Max.data.hdr", np.array(bounds_max))
    for level, cell_count in counts.items():
        _write_level(root, level, cell_count, sample_count)
    return root


def _write_level(root: Path, level: int, cell_count: int, sample_count: int) -> None:
    from store.array_codec import write_matrix, write_vector

    edges = np.array([[0, 1] * cell_count, [2] * (2 * cell_count)], dtype=np.int32)[:, :cell_count]
    write_matrix(root / f"Crystals_{level}.data.hdr", edges)
    write_vector(root / f"ExtremaValues_{level}.data.hdr", np.array([2.0, 4.0, 6.0]))
    write_vector(root / f"ExtremaWidths_{level}.data.hdr", np.array([0.0, 1.0, 2.0]))
    for _, (_, _, _, extrema_prefix, offset) in LAYOUT_FIXTURES.items():
        extrema_layout = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, -1.0]]) + offset
        write_matrix(root / f"{extrema_prefix}_{level}.data.hdr", extrema_layout)
    samples = np.arange(sample_count, dtype=np.float64)
    for index in range(cell_count):
        base = f"ps_{level}_crystal_{index}"
        mean = np.vstack([samples * 0.1 + index + level + row for row in range(3)])
        variance = np.full_like(mean, 0.05 * (index + 1))
        gradient = mean * 2.0 - 1.0
        write_matrix(root / f"{base}_Rs.data.hdr", mean)
        write_matrix(root / f"{base}_Svar.data.hdr", variance)
        write_matrix(root / f"{base}_gradRs.data.hdr", gradient)
        write_vector(root / f"{base}_fmean.data.hdr", np.linspace(2.0, 6.0, sample_count))
        write_vector(root / f"{base}_mdists.data.hdr", np.linspace(0.0, 2.0, sample_count))
        write_vector(
            root / f"{base}_spdf.data.hdr",
            np.linspace(0.1, 0.4, sample_count) * (index + 1),
        )
        for _, (_, _, cell_suffix, _, offset) in LAYOUT_FIXTURES.items():
            embedding = np.vstack([samples + index, -samples]) + offset
            write_matrix(root / f"{base}{cell_suffix}.data.hdr", embedding)


@pytest.fixture
def dataset_writer() -> Callable[..., Path]:
    """Expose the synthetic dataset writer to tests that need variations."""
    return write_dataset


@pytest.fixture
def dataset_dir(tmp_path: Path) -> Path:
    """Synthetic dataset with levels 1, 2, 3 holding 5, 3, 2 cells."""
    return write_dataset(tmp_path / "dataset")


@pytest.fixture(autouse=True)
def clean_hdviz_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer HDVIZ_* settings out of test runs."""
    monkeypatch.delenv("HDVIZ_DATA_PATH", raising=False)
    monkeypatch.delenv("HDVIZ_LAYOUT", raising=False)
