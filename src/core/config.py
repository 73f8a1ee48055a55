"""Runtime configuration model for HDViz.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from pathlib import Path

from core.constants import (
    DEFAULT_DATA_PATH,
    DEFAULT_LAYOUT_MODE,
    GEOMETRY_FILE_NAME,
    NAMES_FILE_NAME,
    PERSISTENCE_FILE_NAME,
    PERSISTENCE_START_FILE_NAME,
)
from core.errors import HDVizConfigError, HDVizInvalidArgumentError
from core.types import LayoutMode, parse_layout_mode


@dataclass(frozen=True)
class HDVizConfig:
    """Validated runtime configuration.

    Attributes:
        data_path: Directory holding the dataset's array files.
        layout_mode: Layout mode selected when a dataset is opened.
        persistence_file: Sorted persistence vector file name.
        persistence_start_file: File holding the minimum persistence level.
        geometry_file: Ambient geometry matrix file name.
        names_file: Optional newline-delimited dimension names file.
    """

    data_path: Path
    layout_mode: LayoutMode = LayoutMode.ISOMAP
    persistence_file: str = PERSISTENCE_FILE_NAME
    persistence_start_file: str = PERSISTENCE_START_FILE_NAME
    geometry_file: str = GEOMETRY_FILE_NAME
    names_file: str = NAMES_FILE_NAME

    @classmethod
    def from_env(cls) -> "HDVizConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            HDVizConfigError: If environment values are invalid.
        """
        data_path_value = os.getenv("HDVIZ_DATA_PATH", str(DEFAULT_DATA_PATH))
        layout_value = os.getenv("HDVIZ_LAYOUT", DEFAULT_LAYOUT_MODE)
        return cls(
            data_path=Path(data_path_value).expanduser().resolve(),
            layout_mode=_parse_layout(layout_value),
        )

    @classmethod
    def for_path(cls, data_path: str | Path) -> "HDVizConfig":
        """Build config from the environment with an explicit dataset directory.

        Args:
            data_path: Dataset directory overriding HDVIZ_DATA_PATH.

        Returns:
            A validated config object.
        """
        return replace(cls.from_env(), data_path=Path(data_path).expanduser().resolve())


def _parse_layout(raw_value: str) -> LayoutMode:
    """Parse the layout mode environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed layout mode.

    Raises:
        HDVizConfigError: If value names no known layout.
    """
    try:
        return parse_layout_mode(raw_value)
    except HDVizInvalidArgumentError as error:
        raise HDVizConfigError(
            "Invalid HDVIZ_LAYOUT value: "
            f"got '{raw_value}'. Set HDVIZ_LAYOUT to one of isomap, pca, pca2."
        ) from error
