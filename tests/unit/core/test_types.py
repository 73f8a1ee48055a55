"""Unit tests for shared typed models."""

from __future__ import annotations

import pytest

from core.errors import HDVizError, HDVizInvalidArgumentError
from core.types import LayoutMode, parse_layout_mode


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("isomap", LayoutMode.ISOMAP),
        (" pca ", LayoutMode.PCA),
        ("Pca2", LayoutMode.PCA2),
        (LayoutMode.PCA, LayoutMode.PCA),
    ],
)
def test_parse_layout_mode_accepts_names_and_members(value, expected) -> None:
    """Names in any case and enum members should resolve."""
    assert parse_layout_mode(value) is expected


@pytest.mark.parametrize("value", ["spiral", "", 1, None])
def test_parse_layout_mode_rejects_unknown_values(value) -> None:
    """Anything that is not a known layout should fail as an invalid argument."""
    with pytest.raises(HDVizInvalidArgumentError) as error_info:
        parse_layout_mode(value)

    assert isinstance(error_info.value, (HDVizError, ValueError))
