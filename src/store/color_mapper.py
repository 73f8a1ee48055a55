"""Scalar-to-color mapping through ordered RGB stops.

This module maps values in a fixed range onto colors by linear
interpolation between neighbouring stops, clamped at the range ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.errors import HDVizInvalidArgumentError


@dataclass(frozen=True)
class ColorStop:
    """One stop of a color map.

    Attributes:
        fraction: Position in [0, 1] along the value range.
        rgb: Red, green, blue channels in [0, 1].
    """

    fraction: float
    rgb: tuple[float, float, float]


class ColorMapper:
    """Maps scalars in ``[vmin, vmax]`` onto RGBA colors."""

    def __init__(self, vmin: float = 0.0, vmax: float = 1.0) -> None:
        self.vmin = float(vmin)
        self.vmax = float(vmax)
        self._stops: tuple[ColorStop, ...] = (
            ColorStop(0.0, (0.0, 0.0, 0.0)),
            ColorStop(1.0, (1.0, 1.0, 1.0)),
        )

    @property
    def stops(self) -> tuple[ColorStop, ...]:
        """Ordered stops currently in use."""
        return self._stops

    def set(
        self,
        r0: float,
        r1: float,
        r2: float,
        g0: float,
        g1: float,
        g2: float,
        b0: float,
        b1: float,
        b2: float,
    ) -> None:
        """Set three stops at fractions 0, 0.5 and 1, channel by channel.

        Arguments come grouped per channel: three reds, three greens,
        three blues.
        """
        self.set_stops(
            (
                ColorStop(0.0, (r0, g0, b0)),
                ColorStop(0.5, (r1, g1, b1)),
                ColorStop(1.0, (r2, g2, b2)),
            )
        )

    def set_stops(self, stops: Sequence[ColorStop]) -> None:
        """Replace the stop list.

        Args:
            stops: At least two stops with non-decreasing fractions in [0, 1].

        Raises:
            HDVizInvalidArgumentError: If the stop list is unusable.
        """
        ordered = tuple(stops)
        if len(ordered) < 2:
            raise HDVizInvalidArgumentError("A color map needs at least two stops.")
        fractions = [stop.fraction for stop in ordered]
        if fractions != sorted(fractions) or fractions[0] < 0.0 or fractions[-1] > 1.0:
            raise HDVizInvalidArgumentError(
                f"Color stop fractions must be non-decreasing within [0, 1], got {fractions}."
            )
        self._stops = ordered

    def map(self, value: float) -> tuple[float, float, float, float]:
        """Map one value onto an RGBA color with alpha 1."""
        rgba = self.map_array(np.asarray([value], dtype=np.float64))[0]
        return (float(rgba[0]), float(rgba[1]), float(rgba[2]), float(rgba[3]))

    def map_array(self, values: np.ndarray) -> np.ndarray:
        """Map an array of values onto an ``(N, 4)`` RGBA array."""
        flat = np.asarray(values, dtype=np.float64).ravel()
        fractions = np.array([stop.fraction for stop in self._stops])
        colors = np.array([stop.rgb for stop in self._stops], dtype=np.float64)
        span = self.vmax - self.vmin
        if span == 0.0:
            positions = np.zeros_like(flat)
        else:
            positions = np.clip((flat - self.vmin) / span, 0.0, 1.0)
        rgba = np.ones((flat.size, 4), dtype=np.float64)
        for channel in range(3):
            rgba[:, channel] = np.interp(positions, fractions, colors[:, channel])
        return rgba

    def __repr__(self) -> str:
        return f"ColorMapper(vmin={self.vmin}, vmax={self.vmax}, stops={len(self._stops)})"
