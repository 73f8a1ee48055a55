"""Core constants used across HDViz modules.

This module centralizes file names and numeric defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_PATH = Path("./")
DEFAULT_LAYOUT_MODE = "isomap"

PERSISTENCE_FILE_NAME = "Persistence.data.hdr"
PERSISTENCE_START_FILE_NAME = "PersistenceStart.data.hdr"
GEOMETRY_FILE_NAME = "Geom.data.hdr"
NAMES_FILE_NAME = "names.txt"

HEADER_SUFFIX = ".data.hdr"
DATA_SUFFIX = ".data"
CRYSTALS_FILE_PREFIX = "Crystals"
EXTREMA_VALUES_FILE_PREFIX = "ExtremaValues"
EXTREMA_WIDTHS_FILE_PREFIX = "ExtremaWidths"

MEAN_SUFFIX = "_Rs"
GRADIENT_SUFFIX = "_gradRs"
VARIANCE_SUFFIX = "_Svar"
COLOR_SUFFIX = "_fmean"
WIDTH_SUFFIX = "_mdists"
DENSITY_SUFFIX = "_spdf"

WIDTH_SCALE = 0.3
WIDTH_FLOOR = 0.03

# Channel-major stops at fractions 0, 0.5, 1: (r0, r1, r2, g0, g1, g2, b0, b1, b2).
VALUE_COLORMAP_CHANNELS = (
    0.0,
    204.0 / 255.0,
    210.0 / 255.0,
    102.0 / 255.0,
    204.0 / 255.0,
    41.0 / 255.0,
    204.0 / 255.0,
    0.0,
    5.0 / 255.0,
)
DENSITY_COLORMAP_CHANNELS = (1.0, 0.5, 0.0, 1.0, 0.5, 0.0, 1.0, 0.5, 0.0)
