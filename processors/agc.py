"""
AGC (Automatic Gain Control) for display normalization.

Fast vectorized implementation using a sliding window RMS. The window for
sample i covers [i - window//2, i + window//2] clamped to the trace, and the
mean is taken over the samples actually inside the trace.
"""
import numpy as np
from scipy.ndimage import uniform_filter1d

RMS_EPSILON = 1e-10


def windowed_rms(samples: np.ndarray, window_size: int) -> np.ndarray:
    """
    Sliding window RMS of a 1D trace.

    Args:
        samples: 1D array of amplitudes
        window_size: Window length in samples (> 0); even sizes behave like
            the next odd size since the window is centred

    Returns:
        float64 array of RMS values, same length as samples
    """
    n = samples.shape[0]
    if n == 0:
        return np.zeros(0, dtype=np.float64)

    half = window_size // 2
    size = 2 * half + 1

    squared = np.square(samples.astype(np.float64))

    # Zero padding gives sum/size; rescale by the in-bounds sample count
    window_sum = uniform_filter1d(squared, size=size, mode='constant', cval=0.0) * size

    idx = np.arange(n)
    counts = np.minimum(idx + half + 1, n) - np.maximum(idx - half, 0)

    mean_sq = np.maximum(window_sum / counts, 0.0)
    return np.sqrt(mean_sq)


def apply_windowed_agc(samples: np.ndarray, window_size: int) -> np.ndarray:
    """
    Normalize a trace by its local RMS and clamp to [-1, 1].

    Samples whose window RMS is at or below 1e-10 are left unscaled.

    Args:
        samples: 1D array of amplitudes
        window_size: Window length in samples (> 0)

    Returns:
        float32 array, same length as samples
    """
    rms = windowed_rms(samples, window_size)
    gain = np.ones_like(rms)
    np.divide(1.0, rms, out=gain, where=rms > RMS_EPSILON)
    return np.clip(samples * gain, -1.0, 1.0).astype(np.float32)


def apply_peak_normalization(samples: np.ndarray) -> np.ndarray:
    """
    Divide a trace by its maximum absolute amplitude.

    An all-zero (or empty) trace is returned unscaled.
    """
    if samples.size == 0:
        return samples.astype(np.float32)
    peak = float(np.max(np.abs(samples)))
    if peak == 0.0 or not np.isfinite(peak):
        return samples.astype(np.float32)
    return (samples / peak).astype(np.float32)
