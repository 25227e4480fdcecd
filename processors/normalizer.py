"""
Amplitude normalization for rendering.

Maps decoded trace samples to float32 arrays in approximately [-1, 1] so the
rasterizers can assume a bounded range. Traces are independent, so the
per-trace work is spread over a thread pool (numpy releases the GIL for the
heavy array operations); results keep input order.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

import numpy as np

from models.errors import SegyValidationError
from models.trace_data import TraceData
from processors.agc import apply_peak_normalization, apply_windowed_agc
from rendering.types import (
    AmplitudeScaling,
    GlobalScaling,
    ManualScaling,
    PercentileScaling,
    PerTraceScaling,
)

logger = logging.getLogger(__name__)

PERCENTILE_FLOOR = 1e-10

# Below this many traces the pool costs more than it saves
PARALLEL_MIN_TRACES = 64


def _map_traces(func: Callable[[np.ndarray], np.ndarray], traces: Sequence[np.ndarray],
                workers: Optional[int]) -> List[np.ndarray]:
    if workers is None or workers <= 1 or len(traces) < PARALLEL_MIN_TRACES:
        return [func(t) for t in traces]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, traces))


def percentile_value(traces: Sequence[np.ndarray], percentile: float) -> float:
    """
    |amplitude| at a percentile of all samples pooled across traces.

    The index is floor(percentile * N) clamped to [0, N - 1]; the result is
    floored at 1e-10, and 1.0 is used when there are no samples.
    """
    if not traces:
        return 1.0
    pooled = np.abs(np.concatenate([np.asarray(t, dtype=np.float32).ravel() for t in traces]))
    n = pooled.size
    if n == 0:
        return 1.0
    idx = int(np.floor(n * percentile))
    idx = min(max(idx, 0), n - 1)
    value = float(np.partition(pooled, idx)[idx])
    return max(value, PERCENTILE_FLOOR)


def normalize_traces(traces: Sequence[TraceData], scaling: AmplitudeScaling,
                     workers: Optional[int] = None) -> List[np.ndarray]:
    """
    Normalize trace amplitudes with one scaling strategy.

    Args:
        traces: Decoded traces
        scaling: GlobalScaling, PerTraceScaling, PercentileScaling or ManualScaling
        workers: Thread count for per-trace work (serial if None or 1)

    Returns:
        One float32 array per trace, in input order
    """
    samples = [t.to_float32() for t in traces]

    if isinstance(scaling, GlobalScaling):
        factor = np.float32(scaling.max_amplitude)
        logger.debug(f"Global normalization by {scaling.max_amplitude}")
        return _map_traces(lambda s: (s / factor).astype(np.float32), samples, workers)

    if isinstance(scaling, PerTraceScaling):
        window = scaling.window_size
        if window:
            logger.debug(f"Windowed AGC normalization (window={window})")
            return _map_traces(lambda s: apply_windowed_agc(s, window), samples, workers)
        logger.debug("Per-trace peak normalization")
        return _map_traces(apply_peak_normalization, samples, workers)

    if isinstance(scaling, PercentileScaling):
        p_value = np.float32(percentile_value(samples, scaling.percentile))
        logger.debug(f"Percentile normalization: p{scaling.percentile} = {p_value}")
        return _map_traces(
            lambda s: np.clip(s / p_value, -1.0, 1.0).astype(np.float32), samples, workers
        )

    if isinstance(scaling, ManualScaling):
        factor = np.float32(scaling.scale)
        logger.debug(f"Manual scaling by {scaling.scale}")
        return _map_traces(lambda s: (s * factor).astype(np.float32), samples, workers)

    raise SegyValidationError(f"Unsupported amplitude scaling: {scaling!r}")
