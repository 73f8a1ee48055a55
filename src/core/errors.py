"""HDViz exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations

from pathlib import Path


class HDVizError(Exception):
    """Base exception for all HDViz failures."""


class HDVizConfigError(HDVizError):
    """Raised for invalid runtime configuration."""


class HDVizCodecError(HDVizError):
    """Raised for malformed, truncated, or missing array files.

    Attributes:
        path: Header file the failure belongs to, when known.
    """

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class HDVizStoreError(HDVizError):
    """Raised for level cache misuse and store failures."""


class HDVizDataLoadError(HDVizStoreError):
    """Raised when a level bundle cannot be assembled from disk.

    Attributes:
        path: First offending file, when one is known.
        missing_files: Every file found missing while planning the load.
    """

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        missing_files: tuple[Path, ...] = (),
    ) -> None:
        super().__init__(message)
        self.path = path
        self.missing_files = missing_files


class HDVizOutOfRangeError(HDVizError, IndexError):
    """Raised when a persistence level lies outside the dataset range."""


class HDVizInvalidArgumentError(HDVizError, ValueError):
    """Raised for unrecognized layout modes and similar bad arguments."""
