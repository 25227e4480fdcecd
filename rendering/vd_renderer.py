"""
Variable density rasterization.

One image column per trace and one row per sample, colored by amplitude.
The natural raster is resampled to the viewport with a Lanczos filter when
the sizes differ.
"""
import logging
from typing import Sequence

import numpy as np
from PIL import Image

from rendering.colormap import Colormap

logger = logging.getLogger(__name__)


def rasterize_variable_density(normalized: Sequence[np.ndarray], width: int,
                               colormap: Colormap) -> np.ndarray:
    """
    Build the natural-size variable density raster.

    Args:
        normalized: Normalized traces (one per column)
        width: Number of columns; columns without a trace are black
        colormap: Amplitude to RGB mapping

    Returns:
        uint8 array of shape (n_samples_of_first_trace, width, 3)
    """
    height = len(normalized[0]) if len(normalized) > 0 else 0
    amplitudes = np.zeros((height, width), dtype=np.float32)
    valid = np.zeros((height, width), dtype=bool)

    for x in range(min(width, len(normalized))):
        column = np.asarray(normalized[x], dtype=np.float32)[:height]
        amplitudes[:column.shape[0], x] = column
        valid[:column.shape[0], x] = True

    rgb = colormap.map_array(amplitudes)
    # pixels with no sample are black
    rgb[~valid] = 0
    return rgb


def resize_raster(raster: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resample an RGB raster to (height, width) with a Lanczos filter.

    An empty raster becomes a black image of the requested size.
    """
    src_height, src_width = raster.shape[:2]
    if (src_width, src_height) == (width, height):
        return raster
    if src_width == 0 or src_height == 0:
        return np.zeros((height, width, 3), dtype=np.uint8)

    logger.debug(f"Resampling raster {src_width}x{src_height} -> {width}x{height}")
    img = Image.fromarray(np.ascontiguousarray(raster, dtype=np.uint8))
    resized = img.resize((width, height), Image.Resampling.LANCZOS)
    return np.asarray(resized, dtype=np.uint8).copy()


def render_variable_density_raster(normalized: Sequence[np.ndarray], natural_width: int,
                                   width: int, height: int, colormap: Colormap) -> np.ndarray:
    """Rasterize at natural size, then fit to width x height."""
    raster = rasterize_variable_density(normalized, natural_width, colormap)
    return resize_raster(raster, width, height)
