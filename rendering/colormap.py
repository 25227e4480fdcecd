"""
Colormaps mapping normalized amplitude in [-1, 1] to RGB.

Every colormap offers a scalar to_rgb() and a vectorized map_array() that
returns a uint8 (..., 3) array; the rasterizers use map_array. Inputs are
clamped to [-1, 1] and NaN is treated as zero amplitude.
"""
from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np
from matplotlib import colormaps

from rendering.types import ColormapType


def _clamped(amplitudes) -> np.ndarray:
    a = np.nan_to_num(np.asarray(amplitudes, dtype=np.float32), nan=0.0)
    return np.clip(a, -1.0, 1.0)


class Colormap(ABC):
    """Amplitude to RGB mapping."""

    @abstractmethod
    def map_array(self, amplitudes: np.ndarray) -> np.ndarray:
        """
        Map an array of amplitudes to colors.

        Args:
            amplitudes: Array of any shape

        Returns:
            uint8 array of shape amplitudes.shape + (3,)
        """

    def to_rgb(self, amplitude: float) -> Tuple[int, int, int]:
        """Map one amplitude to an (r, g, b) tuple."""
        r, g, b = self.map_array(np.array([amplitude], dtype=np.float32))[0]
        return int(r), int(g), int(b)


class SeismicColormap(Colormap):
    """Red at -1 through white at 0 to blue at +1."""

    def map_array(self, amplitudes: np.ndarray) -> np.ndarray:
        a = _clamped(amplitudes)
        rgb = np.empty(a.shape + (3,), dtype=np.uint8)

        negative = a < 0.0
        # channels fall off linearly away from white; truncation matches integer casting
        fade = np.where(negative, 255.0 * (a + 1.0), 255.0 * (1.0 - a)).astype(np.uint8)

        rgb[..., 0] = np.where(negative, 255, fade)
        rgb[..., 1] = fade
        rgb[..., 2] = np.where(negative, fade, 255)
        return rgb


class GrayscaleColormap(Colormap):
    """Black at -1 to white at +1, or the reverse when inverted."""

    def __init__(self, inverted: bool = False):
        self.inverted = inverted

    def map_array(self, amplitudes: np.ndarray) -> np.ndarray:
        a = _clamped(amplitudes)
        mapped = ((a + 1.0) * 127.5).astype(np.uint8)
        if self.inverted:
            mapped = 255 - mapped
        return np.repeat(mapped[..., np.newaxis], 3, axis=-1)


class ViridisColormap(Colormap):
    """Matplotlib's viridis sampled at t = (amplitude + 1) / 2."""

    LUT_SIZE = 256

    def __init__(self):
        cmap = colormaps['viridis']
        colored = cmap(np.linspace(0.0, 1.0, self.LUT_SIZE))
        self._lut = np.round(colored[:, :3] * 255).astype(np.uint8)

    def map_array(self, amplitudes: np.ndarray) -> np.ndarray:
        t = (_clamped(amplitudes) + 1.0) / 2.0
        idx = np.round(t * (self.LUT_SIZE - 1)).astype(np.intp)
        return self._lut[idx]


def create_colormap(colormap_type: ColormapType) -> Colormap:
    """Instantiate the colormap for a ColormapType."""
    if colormap_type is ColormapType.SEISMIC:
        return SeismicColormap()
    if colormap_type is ColormapType.GRAYSCALE:
        return GrayscaleColormap(inverted=False)
    if colormap_type is ColormapType.GRAYSCALE_INVERTED:
        return GrayscaleColormap(inverted=True)
    if colormap_type is ColormapType.VIRIDIS:
        return ViridisColormap()
    raise ValueError(f"Unknown colormap: {colormap_type!r}")
