"""
Unit tests for the binary header codec and byte order detection.
"""

import struct
import pytest
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.binary_header import (
    BinaryHeader,
    DataSampleFormat,
    MeasurementSystem,
    TraceSortingCode,
    bytes_per_sample,
    detect_byte_order,
)
from models.errors import SegyError, SegyValidationError
from models.segy_file import SegyFileConfig, file_header_size
from tests.fixtures.synthetic_segy import binary_header_bytes
from utils.byte_reader import ByteOrder
from utils.checked_math import checked_add, checked_mul


def _probe_buffer(prefix: str, interval: int, samples: int) -> bytes:
    buf = bytearray(400)
    struct.pack_into(f'{prefix}h', buf, 16, interval)
    struct.pack_into(f'{prefix}h', buf, 20, samples)
    return bytes(buf)


class TestSampleFormat:
    """Tests for data sample format codes."""

    @pytest.mark.parametrize("code,size", [(1, 4), (2, 4), (3, 2), (4, 4), (5, 4), (8, 1)])
    def test_bytes_per_sample(self, code, size):
        """Test sizes of the six supported formats."""
        assert bytes_per_sample(code) == size
        assert DataSampleFormat.from_code(code).bytes_per_sample == size

    @pytest.mark.parametrize("code", [0, 6, 7, 9, 16, -1])
    def test_unknown_code_rejected(self, code):
        """Test unsupported codes are validation errors."""
        with pytest.raises(SegyValidationError):
            bytes_per_sample(code)


class TestByteOrderDetection:
    """Tests for the sample interval / samples per trace probe."""

    def test_big_endian(self):
        """Test values plausible big-endian resolve to big-endian."""
        assert detect_byte_order(_probe_buffer('>', 1000, 2000)) is ByteOrder.BIG_ENDIAN

    def test_little_endian(self):
        """Test values plausible only little-endian resolve to little-endian."""
        assert detect_byte_order(_probe_buffer('<', 1000, 2000)) is ByteOrder.LITTLE_ENDIAN

    def test_neither_defaults_big(self):
        """Test an implausible buffer defaults to big-endian."""
        assert detect_byte_order(bytes(400)) is ByteOrder.BIG_ENDIAN

    def test_both_plausible_prefers_big(self):
        """Test ties go to big-endian."""
        # 0x0101 reads the same either way
        assert detect_byte_order(_probe_buffer('>', 257, 257)) is ByteOrder.BIG_ENDIAN

    def test_short_buffer(self):
        """Test buffers too short to probe default to big-endian."""
        assert detect_byte_order(bytes(10)) is ByteOrder.BIG_ENDIAN


class TestBinaryHeader:
    """Tests for decoding the 400-byte binary header."""

    def test_decode_big_endian(self):
        """Test field values from a big-endian header."""
        data = binary_header_bytes(1500, data_format=1, sample_interval_us=4000,
                                   revision=0x0100, job_id=77)
        header = BinaryHeader.from_bytes(data)

        assert header.byte_order is ByteOrder.BIG_ENDIAN
        assert header.job_id == 77
        assert header.sample_interval_us == 4000
        assert header.samples_per_trace == 1500
        assert header.data_sample_format is DataSampleFormat.IBM_FLOAT32
        assert header.trace_sorting is TraceSortingCode.UNKNOWN
        assert header.measurement_system is MeasurementSystem.METERS
        assert header.segy_revision == 0x0100
        assert header.fixed_length_trace_flag == 1
        assert header.extended_textual_headers == 0
        assert len(header.unassigned) == 334
        assert header.trace_block_size() == 240 + 1500 * 4

    def test_decode_little_endian(self):
        """Test the same fields from a little-endian header."""
        data = binary_header_bytes(500, data_format=3, byte_order='little', extended_headers=2)
        header = BinaryHeader.from_bytes(data)

        assert header.byte_order is ByteOrder.LITTLE_ENDIAN
        assert header.samples_per_trace == 500
        assert header.data_sample_format is DataSampleFormat.INT16
        assert header.extended_textual_headers == 2

    def test_short_input(self):
        """Test fewer than 400 bytes is a structural error."""
        with pytest.raises(SegyError):
            BinaryHeader.from_bytes(bytes(399))

    def test_invalid_format_code(self):
        """Test an unknown format code is a structural error."""
        with pytest.raises(SegyError):
            BinaryHeader.from_bytes(binary_header_bytes(100, data_format=7))

    def test_invalid_sorting_code(self):
        """Test a sorting code outside 0-4 is a structural error."""
        with pytest.raises(SegyError):
            BinaryHeader.from_bytes(binary_header_bytes(100, trace_sorting=9))

    def test_invalid_measurement_system(self):
        """Test a measurement system outside 0-2 is a structural error."""
        with pytest.raises(SegyError):
            BinaryHeader.from_bytes(binary_header_bytes(100, measurement_system=5))

    def test_to_dict(self):
        """Test serialization uses plain values."""
        result = BinaryHeader.from_bytes(binary_header_bytes(100)).to_dict()
        assert result['byte_order'] == 'big-endian'
        assert result['data_sample_format'] == 5
        assert 'unassigned' not in result


class TestFileConfig:
    """Tests for trace block arithmetic."""

    @pytest.mark.parametrize("code", [1, 2, 3, 4, 5, 8])
    @pytest.mark.parametrize("samples", [1, 80, 1001, 16000])
    def test_trace_block_size(self, code, samples):
        """Test block size is 240 + samples * bytes per sample."""
        header = BinaryHeader.from_bytes(binary_header_bytes(samples, data_format=code))
        config = SegyFileConfig.from_binary_header(header)
        assert config.trace_block_size() == 240 + samples * bytes_per_sample(code)

    def test_trace_position(self):
        """Test trace offsets include extended textual headers."""
        header = BinaryHeader.from_bytes(binary_header_bytes(100, data_format=3))
        config = SegyFileConfig.from_binary_header(header, file_header_size(2))
        assert config.file_header_size == 3600 + 2 * 3200
        assert config.calculate_trace_position(0) == 10000
        assert config.calculate_trace_position(3) == 10000 + 3 * 440

    def test_unsigned_sample_count(self):
        """Test sample counts above 32767 are read as unsigned."""
        header = BinaryHeader.from_bytes(binary_header_bytes(40000, sample_interval_us=500))
        assert header.samples_per_trace == 40000
        config = SegyFileConfig.from_binary_header(header)
        assert config.samples_per_trace == 40000
        assert header.trace_block_size() == config.trace_block_size() == 240 + 40000 * 4
        assert header.to_dict()['samples_per_trace'] == 40000

    def test_checked_math(self):
        """Test unaddressable sizes are validation errors."""
        assert checked_add(1, 2, "x") == 3
        assert checked_mul(3, 4, "x") == 12
        with pytest.raises(SegyValidationError, match="overflow"):
            checked_mul(sys.maxsize, 2, "Trace offset")
        with pytest.raises(SegyValidationError):
            checked_add(sys.maxsize, 1, "Trace end")
