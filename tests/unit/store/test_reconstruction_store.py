"""Unit tests for reconstruction loading and bounds."""

from __future__ import annotations

import numpy as np
import pytest

from core.errors import HDVizDataLoadError
from store.array_codec import FileArrayReader, write_matrix
from store.reconstruction_store import (
    cell_file_name,
    compute_bounds,
    load_reconstructions,
    reconstruction_file_names,
)


def test_cell_file_name_follows_level_and_cell() -> None:
    """Per-cell names should embed level, cell index and suffix."""
    assert cell_file_name(3, 1, "_Rs") == "ps_3_crystal_1_Rs.data.hdr"


def test_reconstruction_file_names_cover_three_arrays_per_cell() -> None:
    """Planned reads should list mean, gradient and variance per cell."""
    names = reconstruction_file_names(2, 2)

    assert names == [
        "ps_2_crystal_0_Rs.data.hdr",
        "ps_2_crystal_0_gradRs.data.hdr",
        "ps_2_crystal_0_Svar.data.hdr",
        "ps_2_crystal_1_Rs.data.hdr",
        "ps_2_crystal_1_gradRs.data.hdr",
        "ps_2_crystal_1_Svar.data.hdr",
    ]


def test_load_reconstructions_reads_every_cell(dataset_dir) -> None:
    """Loader should return one matrix triple per cell."""
    bundle = load_reconstructions(FileArrayReader(dataset_dir), 3, 2)

    assert len(bundle.means) == len(bundle.variances) == len(bundle.gradients) == 2
    assert bundle.means[1].shape == (3, 4)


def test_bounds_use_variance_envelope(dataset_dir) -> None:
    """Rs bounds should span mean minus and plus variance."""
    bounds = load_reconstructions(FileArrayReader(dataset_dir), 3, 2).bounds

    assert np.allclose(bounds.rs_min, [2.95, 3.95, 4.95])
    assert np.allclose(bounds.rs_max, [4.4, 5.4, 6.4])


def test_bounds_cover_variance_and_gradient(dataset_dir) -> None:
    """Variance and gradient bounds should be per-dimension extremes."""
    bounds = load_reconstructions(FileArrayReader(dataset_dir), 3, 2).bounds

    assert np.allclose(bounds.rv_min, [0.05] * 3)
    assert np.allclose(bounds.rv_max, [0.1] * 3)
    assert np.allclose(bounds.grad_min, [5.0, 7.0, 9.0])
    assert np.allclose(bounds.grad_max, [7.6, 9.6, 11.6])
    assert bounds.variance_max == pytest.approx(0.1)


def test_bounds_are_seeded_from_first_mean_sample() -> None:
    """Envelope bounds should start from the mean at cell 0, sample 0."""
    mean = np.array([[1.0, 1.0]])
    variance = np.array([[-1.0, -1.0]])

    bounds = compute_bounds([mean], [variance], [mean], level=1)

    assert bounds.rs_min[0] == 1.0 and bounds.rs_max[0] == 1.0
    assert bounds.variance_max == 0.0


def test_compute_bounds_rejects_level_without_cells() -> None:
    """A level without cells has nothing to seed bounds from."""
    with pytest.raises(HDVizDataLoadError):
        compute_bounds([], [], [], level=2)


def test_load_rejects_mismatched_shapes(tmp_path) -> None:
    """Mean, gradient and variance of a cell must share a shape."""
    write_matrix(tmp_path / "ps_1_crystal_0_Rs.data.hdr", np.zeros((2, 3)))
    write_matrix(tmp_path / "ps_1_crystal_0_gradRs.data.hdr", np.zeros((2, 3)))
    write_matrix(tmp_path / "ps_1_crystal_0_Svar.data.hdr", np.zeros((2, 2)))

    with pytest.raises(HDVizDataLoadError, match="mismatched"):
        load_reconstructions(FileArrayReader(tmp_path), 1, 1)
