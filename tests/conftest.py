"""
Pytest configuration and fixtures for TraceLens tests.
"""
import numpy as np
import pytest
import tempfile
import shutil
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.fixtures.synthetic_segy import write_segy


@pytest.fixture
def sample_traces():
    """Generate sample seismic traces (list of float32 arrays)."""
    np.random.seed(42)
    n_samples = 200
    n_traces = 12
    sample_rate = 2.0  # ms

    t = np.arange(n_samples) * sample_rate / 1000.0

    traces = []
    for i in range(n_traces):
        # Ricker wavelet with linear moveout plus noise
        center = 0.1 + 0.01 * i
        freq = 30
        wavelet_t = t - center
        wavelet = (1 - 2 * (np.pi * freq * wavelet_t) ** 2) * np.exp(-(np.pi * freq * wavelet_t) ** 2)
        traces.append((100.0 * wavelet + 5.0 * np.random.randn(n_samples)).astype(np.float32))

    return traces


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    # Cleanup
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def int16_segy_path(temp_dir):
    """4000-byte file: one trace of 80 int16 samples."""
    samples = list(range(-40, 40))
    return write_segy(temp_dir / "int16.sgy", [samples], data_format=3)


@pytest.fixture
def float_segy_path(temp_dir, sample_traces):
    """Big-endian IEEE float file built from sample_traces."""
    return write_segy(
        temp_dir / "float.sgy",
        [t.tolist() for t in sample_traces],
        data_format=5,
        revision=0x0100,
        trace_headers=[
            {'cdp_x': 500000 + 25 * i, 'cdp_y': 6000000, 'inline_number': 10,
             'crossline_number': 100 + i}
            for i in range(len(sample_traces))
        ],
    )


@pytest.fixture
def little_endian_segy_path(temp_dir):
    """Little-endian int32 file with ASCII textual header."""
    traces = [[i * 10 + s for s in range(16)] for i in range(4)]
    return write_segy(
        temp_dir / "little.sgy", traces,
        data_format=2, byte_order='little', text_encoding='ascii',
    )


@pytest.fixture
def sample_segy_path(temp_dir, sample_traces):
    """Create a sample SEG-Y file with segyio for cross-checks."""
    try:
        import segyio
    except ImportError:
        pytest.skip("segyio not installed")

    n_samples = len(sample_traces[0])
    n_traces = len(sample_traces)

    segy_path = temp_dir / "test.sgy"

    # Create SEG-Y spec
    spec = segyio.spec()
    spec.format = 1  # IBM float
    spec.samples = range(n_samples)
    spec.tracecount = n_traces

    with segyio.create(str(segy_path), spec) as f:
        for i in range(n_traces):
            f.trace[i] = sample_traces[i]
            f.header[i][segyio.TraceField.TRACE_SEQUENCE_LINE] = i + 1
            f.header[i][segyio.TraceField.FieldRecord] = 100
            f.header[i][segyio.TraceField.CDP] = 1000 + i

    return segy_path


@pytest.fixture
def isolated_settings(temp_dir, monkeypatch):
    """AppSettings singleton rooted in a temporary directory."""
    from models.app_settings import AppSettings, HOME_ENV_VAR

    monkeypatch.setenv(HOME_ENV_VAR, str(temp_dir / "settings_home"))
    AppSettings._instance = None
    yield AppSettings()
    AppSettings._instance = None
