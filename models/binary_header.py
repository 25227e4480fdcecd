"""
SEG-Y Binary Header (400 bytes).

The binary header follows the 3200-byte textual header and carries the
reel-level parameters needed to walk the trace blocks: sample interval,
samples per trace and the data sample format code.

Byte order is detected by probing the sample interval and samples-per-trace
fields under both interpretations (see detect_byte_order).
"""
import logging
from dataclasses import dataclass, field, asdict
from enum import IntEnum
from typing import Dict

from models.errors import SegyError, SegyValidationError
from utils.byte_reader import ByteOrder, layout

logger = logging.getLogger(__name__)

TRACE_HEADER_SIZE = 240


class DataSampleFormat(IntEnum):
    """Data sample format codes (bytes 3225-3226)."""
    IBM_FLOAT32 = 1
    INT32 = 2
    INT16 = 3
    FIXED_POINT_WITH_GAIN = 4
    IEEE_FLOAT32 = 5
    INT8 = 8

    @property
    def bytes_per_sample(self) -> int:
        """Size of one sample in bytes."""
        return _BYTES_PER_SAMPLE[self]

    @property
    def label(self) -> str:
        """Human-readable format name."""
        return _FORMAT_LABELS[self]

    @classmethod
    def from_code(cls, code: int) -> 'DataSampleFormat':
        """
        Parse a raw format code.

        Raises:
            SegyValidationError: If the code is not one of 1, 2, 3, 4, 5, 8
        """
        try:
            return cls(code)
        except ValueError:
            raise SegyValidationError(f"Invalid data sample format code: {code}") from None


_BYTES_PER_SAMPLE: Dict[DataSampleFormat, int] = {
    DataSampleFormat.IBM_FLOAT32: 4,
    DataSampleFormat.INT32: 4,
    DataSampleFormat.INT16: 2,
    DataSampleFormat.FIXED_POINT_WITH_GAIN: 4,
    DataSampleFormat.IEEE_FLOAT32: 4,
    DataSampleFormat.INT8: 1,
}

_FORMAT_LABELS: Dict[DataSampleFormat, str] = {
    DataSampleFormat.IBM_FLOAT32: 'IBM Float (4-byte)',
    DataSampleFormat.INT32: 'Integer (4-byte)',
    DataSampleFormat.INT16: 'Integer (2-byte)',
    DataSampleFormat.FIXED_POINT_WITH_GAIN: 'Fixed Point with Gain (4-byte)',
    DataSampleFormat.IEEE_FLOAT32: 'IEEE Float (4-byte)',
    DataSampleFormat.INT8: 'Integer (1-byte)',
}


def bytes_per_sample(code: int) -> int:
    """Bytes per sample for a raw format code (rejects unknown codes)."""
    return DataSampleFormat.from_code(code).bytes_per_sample


class TraceSortingCode(IntEnum):
    """Trace sorting code (bytes 3229-3230)."""
    UNKNOWN = 0
    AS_RECORDED = 1
    CDP_ENSEMBLE = 2
    SINGLE_FOLD = 3
    HORIZONTALLY_STACKED = 4


class MeasurementSystem(IntEnum):
    """Measurement system (bytes 3255-3256)."""
    UNKNOWN = 0
    METERS = 1
    FEET = 2


# Field layout of bytes 3201-3260: 3 x int32 then 24 x 16-bit, sample counts unsigned
_LEADING_LAYOUT = '3i4h2H18h'
_LEADING_FIELDS = (
    'job_id',
    'line_number',
    'reel_number',
    'traces_per_record',
    'aux_traces_per_record',
    'sample_interval_us',
    'original_sample_interval_us',
    'samples_per_trace',
    'original_samples_per_trace',
    'data_sample_format',
    'cdp_fold',
    'trace_sorting',
    'vertical_sum_code',
    'sweep_freq_start',
    'sweep_freq_end',
    'sweep_length_ms',
    'sweep_type',
    'sweep_channel',
    'sweep_taper_start_ms',
    'sweep_taper_end_ms',
    'taper_type',
    'correlated',
    'binary_gain_recovered',
    'amplitude_recovery_method',
    'measurement_system',
    'impulse_polarity',
    'vibratory_polarity',
)
_LEADING_SIZE = 60

# Unassigned 3261-3500 (240 bytes), revision block 3501-3506, unassigned 3507-3600 (94 bytes)
_PRE_REVISION_UNASSIGNED = (60, 300)
_REVISION_LAYOUT = 'Hhh'
_REVISION_OFFSET = 300
_POST_REVISION_UNASSIGNED = (306, 400)

# 0-based offsets of the byte-order probe fields
_SAMPLE_INTERVAL_OFFSET = 16
_SAMPLES_PER_TRACE_OFFSET = 20
_PROBE_LIMIT = 32000


def _plausible(samples: int, interval: int) -> bool:
    return 0 < samples < _PROBE_LIMIT and 0 < interval < _PROBE_LIMIT


def detect_byte_order(data: bytes) -> ByteOrder:
    """
    Detect byte order from the sample interval and samples-per-trace fields.

    An interpretation is plausible when both values lie strictly between 0
    and 32000. Big-endian wins ties and the case where neither is plausible.

    Args:
        data: Binary header bytes (at least 22)

    Returns:
        Detected ByteOrder
    """
    if len(data) < _SAMPLES_PER_TRACE_OFFSET + 2:
        return ByteOrder.BIG_ENDIAN

    results = {}
    for order in (ByteOrder.BIG_ENDIAN, ByteOrder.LITTLE_ENDIAN):
        h = layout('h', order)
        samples = h.unpack_from(data, _SAMPLES_PER_TRACE_OFFSET)[0]
        interval = h.unpack_from(data, _SAMPLE_INTERVAL_OFFSET)[0]
        results[order] = _plausible(samples, interval)

    be_valid = results[ByteOrder.BIG_ENDIAN]
    le_valid = results[ByteOrder.LITTLE_ENDIAN]

    if le_valid and not be_valid:
        return ByteOrder.LITTLE_ENDIAN
    if be_valid and le_valid:
        logger.debug("Binary header plausible in both byte orders; using big-endian")
    elif not be_valid:
        logger.warning("Binary header implausible in both byte orders; defaulting to big-endian")
    return ByteOrder.BIG_ENDIAN


def _coded(enum_cls, code: int, what: str):
    try:
        return enum_cls(code)
    except ValueError:
        raise SegyError(f"Invalid {what} code: {code}") from None


@dataclass(frozen=True)
class BinaryHeader:
    """
    Binary header containing reel/file-level metadata.

    Attributes mirror the SEG-Y byte layout (3201-3260 and 3501-3506);
    bytes 3261-3500 and 3507-3600 are preserved verbatim in `unassigned`.
    """
    byte_order: ByteOrder = ByteOrder.BIG_ENDIAN
    job_id: int = 0
    line_number: int = 0
    reel_number: int = 0
    traces_per_record: int = 0
    aux_traces_per_record: int = 0
    sample_interval_us: int = 1000
    original_sample_interval_us: int = 1000
    samples_per_trace: int = 0
    original_samples_per_trace: int = 0
    data_sample_format: DataSampleFormat = DataSampleFormat.IBM_FLOAT32
    cdp_fold: int = 0
    trace_sorting: TraceSortingCode = TraceSortingCode.AS_RECORDED
    vertical_sum_code: int = 1
    sweep_freq_start: int = 0
    sweep_freq_end: int = 0
    sweep_length_ms: int = 0
    sweep_type: int = 0
    sweep_channel: int = 0
    sweep_taper_start_ms: int = 0
    sweep_taper_end_ms: int = 0
    taper_type: int = 0
    correlated: int = 1
    binary_gain_recovered: int = 2
    amplitude_recovery_method: int = 0
    measurement_system: MeasurementSystem = MeasurementSystem.METERS
    impulse_polarity: int = 0
    vibratory_polarity: int = 0
    segy_revision: int = 0
    fixed_length_trace_flag: int = 0
    extended_textual_headers: int = 0
    unassigned: bytes = field(default=bytes(334), repr=False)

    SIZE = 400

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BinaryHeader':
        """
        Decode a 400-byte binary header with automatic byte-order detection.

        Raises:
            SegyError: On short input or a coded field outside its enumeration
        """
        if len(data) < cls.SIZE:
            raise SegyError(
                f"Binary header must be {cls.SIZE} bytes, got {len(data)}"
            )
        data = bytes(data[:cls.SIZE])
        byte_order = detect_byte_order(data)
        return cls.from_bytes_with_order(data, byte_order)

    @classmethod
    def from_bytes_with_order(cls, data: bytes, byte_order: ByteOrder) -> 'BinaryHeader':
        """Decode a 400-byte binary header using a known byte order."""
        values = dict(zip(_LEADING_FIELDS, layout(_LEADING_LAYOUT, byte_order).unpack_from(data, 0)))

        format_code = values['data_sample_format']
        try:
            values['data_sample_format'] = DataSampleFormat(format_code)
        except ValueError:
            raise SegyError(f"Invalid data sample format code: {format_code}") from None
        values['trace_sorting'] = _coded(TraceSortingCode, values['trace_sorting'], 'trace sorting')
        values['measurement_system'] = _coded(
            MeasurementSystem, values['measurement_system'], 'measurement system'
        )

        revision, fixed_length, extended = layout(_REVISION_LAYOUT, byte_order).unpack_from(
            data, _REVISION_OFFSET
        )
        unassigned = (
            data[_PRE_REVISION_UNASSIGNED[0]:_PRE_REVISION_UNASSIGNED[1]]
            + data[_POST_REVISION_UNASSIGNED[0]:_POST_REVISION_UNASSIGNED[1]]
        )

        return cls(
            byte_order=byte_order,
            segy_revision=revision,
            fixed_length_trace_flag=fixed_length,
            extended_textual_headers=extended,
            unassigned=unassigned,
            **values,
        )

    @property
    def bytes_per_sample(self) -> int:
        """Bytes per sample for the decoded format."""
        return self.data_sample_format.bytes_per_sample

    def trace_block_size(self) -> int:
        """Trace header (240 bytes) plus samples_per_trace samples."""
        return TRACE_HEADER_SIZE + self.samples_per_trace * self.bytes_per_sample

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary (unassigned bytes omitted)."""
        result = asdict(self)
        result.pop('unassigned')
        result['byte_order'] = self.byte_order.value
        result['data_sample_format'] = int(self.data_sample_format)
        result['trace_sorting'] = int(self.trace_sorting)
        result['measurement_system'] = int(self.measurement_system)
        return result
