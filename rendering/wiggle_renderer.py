"""
Wiggle trace rendering.

Each trace is drawn as a polyline displaced horizontally from its column
centre by amplitude, with optional filled lobes. Lines use Bresenham stepping
and a round brush for widths above one pixel, lobes use even-odd scanline
filling.

All segments of all traces are rasterized at once with numpy. Every pixel
write carries the position it would have in a segment-by-segment drawing
(line of segment s, then its lobe, then the line of segment s + 1), and the
last write to a pixel wins, so the output matches sequential painting.
"""
import logging
from typing import List, Sequence, Tuple

import numpy as np

from rendering.colormap import Colormap
from rendering.types import ViewportConfig, WiggleConfig
from rendering.vd_renderer import render_variable_density_raster

logger = logging.getLogger(__name__)

# Maximum excursion as a fraction of trace spacing
WIGGLE_FACTOR = 0.4
OVERLAY_WIGGLE_FACTOR = 0.3

# Palette slots of the pixel writes
_LINE, _POSITIVE_FILL, _NEGATIVE_FILL = 0, 1, 2

_EMPTY = np.zeros(0, dtype=np.int64)


def round_half_away(value):
    """Round to nearest, ties away from zero (2.5 -> 3, -2.5 -> -3). Works on arrays."""
    value = np.asarray(value, dtype=np.float64)
    return np.copysign(np.floor(np.abs(value) + 0.5), value).astype(np.int64)


def _brush_offsets(radius: int) -> np.ndarray:
    return np.array([
        (dx, dy)
        for dy in range(-radius, radius + 1)
        for dx in range(-radius, radius + 1)
        if dx * dx + dy * dy <= radius * radius
    ], dtype=np.int64)


def _bresenham(xa: np.ndarray, ya: np.ndarray,
               xb: np.ndarray, yb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Step all segments in lockstep; finished segments drop out."""
    segment = np.arange(xa.size)
    x, y = xa, ya
    dx = np.abs(xb - xa)
    dy = np.abs(yb - ya)
    sx = np.where(xa < xb, 1, -1)
    sy = np.where(ya < yb, 1, -1)
    err = dx - dy

    segments: List[np.ndarray] = []
    xs: List[np.ndarray] = []
    ys: List[np.ndarray] = []
    while segment.size:
        segments.append(segment)
        xs.append(x)
        ys.append(y)

        going = (x != xb) | (y != yb)
        if not going.all():
            segment, x, y, xb, yb, dx, dy, sx, sy, err = (
                a[going] for a in (segment, x, y, xb, yb, dx, dy, sx, sy, err)
            )
        e2 = 2 * err
        step_x = e2 > -dy
        step_y = e2 < dx
        err = err - dy * step_x + dx * step_y
        x = x + sx * step_x
        y = y + sy * step_y

    if not segments:
        return _EMPTY, _EMPTY, _EMPTY
    return np.concatenate(segments), np.concatenate(xs), np.concatenate(ys)


def line_pixels(x0, y0, x1, y1,
                width: float = 1.0) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Pixels covered by a batch of line segments, before clipping.

    Endpoints are rounded to the nearest pixel. Widths up to one pixel give
    single pixels; wider lines stamp a disc of radius int(width / 2) at
    every Bresenham step.

    Args:
        x0, y0, x1, y1: Endpoint coordinates, one entry per segment
        width: Line width in pixels

    Returns:
        (segment index, x, y) int arrays, one entry per pixel
    """
    xa = np.atleast_1d(round_half_away(x0))
    ya = np.atleast_1d(round_half_away(y0))
    xb = np.atleast_1d(round_half_away(x1))
    yb = np.atleast_1d(round_half_away(y1))
    segment, x, y = _bresenham(xa, ya, xb, yb)

    if width <= 1.0:
        return segment, x, y

    offsets = _brush_offsets(int(width / 2))
    k = len(offsets)
    return (
        np.repeat(segment, k),
        (x[:, None] + offsets[:, 0]).ravel(),
        (y[:, None] + offsets[:, 1]).ravel(),
    )


def polygon_spans(xs, ys, height: int,
                  width: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Even-odd scanline spans for a batch of polygons with equal vertex counts.

    Scanlines run from floor(min y) to ceil(max y) within the image. An edge
    crosses scanline y when y lies in [min(y1, y2), max(y1, y2)), so
    horizontal edges never count. Spans cover ceil(x_start)..floor(x_end),
    clipped to the image. Polygons with fewer than three vertices give no
    spans.

    Args:
        xs, ys: Vertex coordinates of shape (n_polygons, n_vertices)
        height, width: Image size

    Returns:
        (polygon index, row, x_start, x_end) int arrays, one entry per span
    """
    xs = np.atleast_2d(np.asarray(xs, dtype=np.float64))
    ys = np.atleast_2d(np.asarray(ys, dtype=np.float64))
    n_polygons, n_vertices = xs.shape
    if n_polygons == 0 or n_vertices < 3 or height <= 0 or width <= 0:
        return _EMPTY, _EMPTY, _EMPTY, _EMPTY

    y_lo = np.clip(np.floor(ys.min(axis=1)), 0, height).astype(np.int64)
    y_hi = np.clip(np.ceil(ys.max(axis=1)), -1, height - 1).astype(np.int64)
    rows_per = np.maximum(y_hi - y_lo + 1, 0)

    polygon = np.repeat(np.arange(n_polygons), rows_per)
    if polygon.size == 0:
        return _EMPTY, _EMPTY, _EMPTY, _EMPTY
    first = np.repeat(np.cumsum(rows_per) - rows_per, rows_per)
    row = y_lo[polygon] + (np.arange(polygon.size) - first)

    yf = row.astype(np.float64)[:, None]
    ex1, ey1 = xs[polygon], ys[polygon]
    ex2, ey2 = np.roll(ex1, -1, axis=1), np.roll(ey1, -1, axis=1)
    crosses = ((ey1 <= yf) & (yf < ey2)) | ((ey2 <= yf) & (yf < ey1))
    with np.errstate(divide='ignore', invalid='ignore'):
        at = ex1 + (yf - ey1) * (ex2 - ex1) / (ey2 - ey1)
    at = np.where(crosses, at, np.inf)
    at.sort(axis=1)
    count = crosses.sum(axis=1)

    parts = []
    for k in range(0, n_vertices - 1, 2):
        paired = k + 1 < count
        x_start = np.clip(np.ceil(np.where(paired, at[:, k], width)), 0, width).astype(np.int64)
        x_end = np.clip(np.floor(np.where(paired, at[:, k + 1], -1)), -1, width - 1).astype(np.int64)
        keep = paired & (x_start <= x_end)
        parts.append((polygon[keep], row[keep], x_start[keep], x_end[keep]))

    return tuple(np.concatenate(p) for p in zip(*parts))


def _span_pixels(x_start: np.ndarray,
                 x_end: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Expand spans to (span index, x) per covered pixel."""
    lengths = x_end - x_start + 1
    span = np.repeat(np.arange(lengths.size), lengths)
    offset = np.arange(span.size) - np.repeat(np.cumsum(lengths) - lengths, lengths)
    return span, x_start[span] + offset


def _draw_wiggles(image: np.ndarray, normalized: Sequence[np.ndarray], config: WiggleConfig,
                  factor: float, fill: bool) -> None:
    height, width = image.shape[:2]
    n_traces = len(normalized)
    n_samples = len(normalized[0]) if n_traces else 0
    if n_traces == 0 or n_samples == 0:
        return

    trace_spacing = width / n_traces
    sample_spacing = height / n_samples
    max_wiggle = trace_spacing * factor

    centres, x1s, x2s, y1s, y2s, amp1s, amp2s = ([] for _ in range(7))
    for i, trace in enumerate(normalized):
        count = min(len(trace), n_samples)
        if count < 2:
            continue
        # non-finite samples sit on the centre line, as in the colormaps
        amps = np.nan_to_num(np.asarray(trace[:count], dtype=np.float64),
                             nan=0.0, posinf=0.0, neginf=0.0)
        centre = (i + 0.5) * trace_spacing
        steps = np.arange(count - 1)
        x = centre + amps * max_wiggle

        centres.append(np.full(count - 1, centre))
        x1s.append(x[:-1])
        x2s.append(x[1:])
        y1s.append(steps * sample_spacing)
        y2s.append((steps + 1) * sample_spacing)
        amp1s.append(amps[:-1])
        amp2s.append(amps[1:])

    if not centres:
        return
    centre, x1, x2, y1, y2, amp1, amp2 = (
        np.concatenate(a) for a in (centres, x1s, x2s, y1s, y2s, amp1s, amp2s)
    )

    segment, px, py = line_pixels(x1, y1, x2, y2, config.line_width)
    inside = (px >= 0) & (px < width) & (py >= 0) & (py < height)
    order_parts = [segment[inside] * 2]
    px_parts = [px[inside]]
    py_parts = [py[inside]]
    slot_parts = [np.full(int(inside.sum()), _LINE)]

    if fill:
        positive = config.fill_positive & (amp1 > 0) & (amp2 > 0)
        negative = ~positive & config.fill_negative & (amp1 < 0) & (amp2 < 0)
        lobes = np.flatnonzero(positive | negative)
        quad_x = np.stack([centre[lobes], x1[lobes], x2[lobes], centre[lobes]], axis=1)
        quad_y = np.stack([y1[lobes], y1[lobes], y2[lobes], y2[lobes]], axis=1)

        quad, row, x_start, x_end = polygon_spans(quad_x, quad_y, height, width)
        span, fx = _span_pixels(x_start, x_end)
        lobe = lobes[quad[span]]
        order_parts.append(lobe * 2 + 1)
        px_parts.append(fx)
        py_parts.append(row[span])
        slot_parts.append(np.where(positive[lobe], _POSITIVE_FILL, _NEGATIVE_FILL))

    order = np.concatenate(order_parts)
    flat = np.concatenate(py_parts) * width + np.concatenate(px_parts)
    slot = np.concatenate(slot_parts)

    # last write per pixel wins
    by_order = np.argsort(order, kind='stable')[::-1]
    pixels, last = np.unique(flat[by_order], return_index=True)
    palette = np.array(
        [config.line_color, config.positive_fill_color, config.negative_fill_color],
        dtype=np.uint8,
    )
    image[pixels // width, pixels % width] = palette[slot[by_order][last]]
    logger.debug(f"Drew {len(centre)} wiggle segments, {pixels.size} pixels")


def render_wiggle(viewport: ViewportConfig, config: WiggleConfig,
                  normalized: Sequence[np.ndarray]) -> np.ndarray:
    """
    Draw wiggle traces on a white viewport-sized canvas.

    Trace i is centred at (i + 0.5) * width / n_traces and swings at most
    0.4 trace spacings either side. The sample count is taken from the
    first trace.

    Returns:
        uint8 array of shape (viewport.height, viewport.width, 3)
    """
    image = np.full((viewport.height, viewport.width, 3), 255, dtype=np.uint8)
    _draw_wiggles(image, normalized, config, WIGGLE_FACTOR, fill=True)
    return image


def render_wiggle_vd(viewport: ViewportConfig, colormap: Colormap, config: WiggleConfig,
                     normalized: Sequence[np.ndarray]) -> np.ndarray:
    """
    Variable density background with unfilled wiggle lines on top.

    The background has one column per trace before being fitted to the
    viewport; lines swing at most 0.3 trace spacings.
    """
    image = render_variable_density_raster(
        normalized, len(normalized), viewport.width, viewport.height, colormap
    )
    image = np.array(image, dtype=np.uint8, copy=True)
    _draw_wiggles(image, normalized, config, OVERLAY_WIGGLE_FACTOR, fill=False)
    return image
