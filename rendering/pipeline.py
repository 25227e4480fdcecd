"""
Trace rendering pipeline.

normalize -> rasterize -> encode. render_traces() works on decoded traces;
render_segy_view() loads the viewport's trace range from an open reader
first. Output is always PNG.
"""
import io
import logging
import time
from typing import Optional, Sequence

import numpy as np
from PIL import Image

from models.trace_data import TraceData
from processors.normalizer import normalize_traces
from rendering.colormap import create_colormap
from rendering.types import (
    AmplitudeScaling,
    ColormapType,
    ImageFormat,
    RenderConfig,
    RenderedImage,
    RenderMode,
    ViewportConfig,
    WiggleConfig,
)
from rendering.vd_renderer import render_variable_density_raster
from rendering.wiggle_renderer import render_wiggle, render_wiggle_vd

logger = logging.getLogger(__name__)

# zlib level 1: large rasters are dominated by compression time
PNG_COMPRESS_LEVEL = 1


def encode_png_fast(raster: np.ndarray) -> RenderedImage:
    """
    Encode a (height, width, 3) uint8 raster as PNG with fast compression.

    Returns:
        RenderedImage carrying the raster dimensions and the PNG bytes
    """
    height, width = raster.shape[:2]
    img = Image.fromarray(np.ascontiguousarray(raster, dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format='PNG', compress_level=PNG_COMPRESS_LEVEL)
    return RenderedImage(width=width, height=height, data=buf.getvalue(), format=ImageFormat.PNG)


def default_wiggle_config(render_mode: RenderMode) -> WiggleConfig:
    """Wiggle style used when a request does not carry one."""
    if render_mode is RenderMode.WIGGLE:
        return WiggleConfig(fill_positive=True, fill_negative=False)
    return WiggleConfig(fill_positive=False, fill_negative=False)


def render_variable_density(traces: Sequence[TraceData], viewport: ViewportConfig,
                            colormap_type: ColormapType, scaling: AmplitudeScaling,
                            workers: Optional[int] = None) -> RenderedImage:
    """
    Variable density image of traces fitted to the viewport.

    The natural raster has viewport.trace_count columns and as many rows as
    the first trace has samples; missing traces show as black columns.
    """
    normalized = normalize_traces(traces, scaling, workers=workers)
    colormap = create_colormap(colormap_type)
    raster = render_variable_density_raster(
        normalized, viewport.trace_count, viewport.width, viewport.height, colormap
    )
    return encode_png_fast(raster)


def render_traces(traces: Sequence[TraceData], viewport: ViewportConfig,
                  colormap_type: ColormapType, scaling: AmplitudeScaling,
                  render_mode: RenderMode, wiggle_config: Optional[WiggleConfig] = None,
                  workers: Optional[int] = None) -> RenderedImage:
    """
    Render decoded traces to a PNG image.

    Args:
        traces: Decoded traces, one per column
        viewport: Trace range and output size
        colormap_type: Colormap for variable density output
        scaling: Amplitude normalization
        render_mode: Variable density, wiggle or both
        wiggle_config: Line/fill style (mode default if None)
        workers: Threads for normalization

    Returns:
        RenderedImage of viewport.width x viewport.height
    """
    start = time.perf_counter()

    if render_mode is RenderMode.VARIABLE_DENSITY:
        image = render_variable_density(traces, viewport, colormap_type, scaling, workers)
    elif render_mode is RenderMode.WIGGLE:
        config = wiggle_config or default_wiggle_config(render_mode)
        normalized = normalize_traces(traces, scaling, workers=workers)
        image = encode_png_fast(render_wiggle(viewport, config, normalized))
    elif render_mode is RenderMode.WIGGLE_VARIABLE_DENSITY:
        config = wiggle_config or default_wiggle_config(render_mode)
        normalized = normalize_traces(traces, scaling, workers=workers)
        colormap = create_colormap(colormap_type)
        image = encode_png_fast(render_wiggle_vd(viewport, colormap, config, normalized))
    else:
        raise ValueError(f"Unknown render mode: {render_mode!r}")

    elapsed = time.perf_counter() - start
    logger.debug(
        f"Rendered {len(traces)} traces as {render_mode.value} "
        f"{image.width}x{image.height} in {elapsed * 1000:.1f} ms ({len(image.data):,} bytes)"
    )
    return image


def render_segy_view(reader, config: RenderConfig, max_samples: Optional[int] = None,
                     workers: Optional[int] = None) -> RenderedImage:
    """
    Load the viewport's traces from an open SegyReader and render them.

    Raises:
        SegyValidationError: Viewport trace range outside the file
    """
    viewport = config.viewport
    traces = reader.load_trace_data_range(
        viewport.start_trace, viewport.trace_count, max_samples=max_samples
    )
    return render_traces(
        traces,
        viewport,
        config.colormap_type,
        config.scaling,
        config.render_mode,
        wiggle_config=config.wiggle_config,
        workers=workers,
    )
