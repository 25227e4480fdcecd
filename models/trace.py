"""
SEG-Y trace header (240 bytes) and the trace block (header + samples).

Bytes 1-180 are decoded into named integer fields; bytes 181-240 are kept
verbatim since their meaning depends on the revision (use the header spec
tables in models.header_spec for revision-aware access).
"""
import logging
from dataclasses import dataclass, field, fields, replace
from enum import IntEnum
from typing import Dict, Optional

from models.binary_header import DataSampleFormat, TRACE_HEADER_SIZE
from models.errors import SegyError
from models.trace_data import TraceData
from utils.byte_reader import ByteOrder, layout

logger = logging.getLogger(__name__)


class TraceIdentificationCode(IntEnum):
    """Trace identification code (bytes 29-30)."""
    SEISMIC_DATA = 1
    DEAD = 2
    DUMMY = 3
    TIME_BREAK = 4
    UPHOLE = 5
    SWEEP = 6
    TIMING = 7
    WATER_BREAK = 8
    OPTIONAL_USE = 9

    @classmethod
    def from_code(cls, code: int) -> 'TraceIdentificationCode':
        """
        Classify a raw code.

        1-8 map to their named kinds, 9..32767 are optional use and anything
        else (0, negatives) is treated as seismic data.
        """
        if 1 <= code <= 8:
            return cls(code)
        if 9 <= code <= 32767:
            return cls.OPTIONAL_USE
        return cls.SEISMIC_DATA


class CoordinateUnits(IntEnum):
    """Coordinate units (bytes 89-90)."""
    UNKNOWN = 0
    LENGTH = 1
    SECONDS_OF_ARC = 2


_HEADER_LAYOUT = '7i4h8i2h4i46h'
_HEADER_FIELDS = (
    'trace_seq_line', 'trace_seq_reel', 'field_record_number', 'trace_number',
    'source_point_number', 'cdp_ensemble_number', 'trace_number_in_ensemble',
    'trace_id_code', 'num_vert_summed', 'num_horz_stacked', 'data_use',
    'source_to_group_distance', 'receiver_elevation', 'surface_elevation_at_source',
    'source_depth', 'datum_elevation_at_receiver', 'datum_elevation_at_source',
    'water_depth_at_source', 'water_depth_at_receiver',
    'elevation_scaler', 'coordinate_scaler',
    'source_x', 'source_y', 'group_x', 'group_y',
    'coordinate_units', 'weathering_velocity', 'subweathering_velocity',
    'uphole_time_at_source', 'uphole_time_at_group', 'source_static_correction',
    'group_static_correction', 'total_static', 'lag_time_a', 'lag_time_b',
    'delay_recording_time', 'mute_time_start', 'mute_time_end',
    'num_samples', 'sample_interval_us', 'gain_type', 'instrument_gain_constant',
    'instrument_initial_gain', 'correlated', 'sweep_freq_start', 'sweep_freq_end',
    'sweep_length_ms', 'sweep_type', 'sweep_taper_start_ms', 'sweep_taper_end_ms',
    'taper_type', 'alias_filter_freq', 'alias_filter_slope', 'notch_filter_freq',
    'notch_filter_slope', 'low_cut_freq', 'high_cut_freq', 'low_cut_slope',
    'high_cut_slope', 'year', 'day_of_year', 'hour', 'minute', 'second',
    'time_basis_code', 'trace_weighting_factor', 'geophone_group_num_roll_pos1',
    'geophone_group_num_first_trace', 'geophone_group_num_last_trace',
    'gap_size', 'overtravel',
)
_DECODED_SIZE = 180


@dataclass(frozen=True)
class TraceHeader:
    """
    Per-trace metadata.

    All decoded fields are plain ints; `trace_id_code` keeps the raw value
    (see `identification` for the classified kind). Bytes 181-240 live in
    `unassigned`.
    """
    trace_seq_line: int = 0
    trace_seq_reel: int = 0
    field_record_number: int = 0
    trace_number: int = 0
    source_point_number: int = 0
    cdp_ensemble_number: int = 0
    trace_number_in_ensemble: int = 0
    trace_id_code: int = 1
    num_vert_summed: int = 1
    num_horz_stacked: int = 1
    data_use: int = 1
    source_to_group_distance: int = 0
    receiver_elevation: int = 0
    surface_elevation_at_source: int = 0
    source_depth: int = 0
    datum_elevation_at_receiver: int = 0
    datum_elevation_at_source: int = 0
    water_depth_at_source: int = 0
    water_depth_at_receiver: int = 0
    elevation_scaler: int = 1
    coordinate_scaler: int = 1
    source_x: int = 0
    source_y: int = 0
    group_x: int = 0
    group_y: int = 0
    coordinate_units: int = 0
    weathering_velocity: int = 0
    subweathering_velocity: int = 0
    uphole_time_at_source: int = 0
    uphole_time_at_group: int = 0
    source_static_correction: int = 0
    group_static_correction: int = 0
    total_static: int = 0
    lag_time_a: int = 0
    lag_time_b: int = 0
    delay_recording_time: int = 0
    mute_time_start: int = 0
    mute_time_end: int = 0
    num_samples: int = 0
    sample_interval_us: int = 0
    gain_type: int = 0
    instrument_gain_constant: int = 0
    instrument_initial_gain: int = 0
    correlated: int = 0
    sweep_freq_start: int = 0
    sweep_freq_end: int = 0
    sweep_length_ms: int = 0
    sweep_type: int = 0
    sweep_taper_start_ms: int = 0
    sweep_taper_end_ms: int = 0
    taper_type: int = 0
    alias_filter_freq: int = 0
    alias_filter_slope: int = 0
    notch_filter_freq: int = 0
    notch_filter_slope: int = 0
    low_cut_freq: int = 0
    high_cut_freq: int = 0
    low_cut_slope: int = 0
    high_cut_slope: int = 0
    year: int = 0
    day_of_year: int = 0
    hour: int = 0
    minute: int = 0
    second: int = 0
    time_basis_code: int = 0
    trace_weighting_factor: int = 0
    geophone_group_num_roll_pos1: int = 0
    geophone_group_num_first_trace: int = 0
    geophone_group_num_last_trace: int = 0
    gap_size: int = 0
    overtravel: int = 0
    unassigned: bytes = field(default=bytes(TRACE_HEADER_SIZE - _DECODED_SIZE), repr=False)

    SIZE = TRACE_HEADER_SIZE

    @classmethod
    def from_bytes(cls, data: bytes,
                   byte_order: ByteOrder = ByteOrder.BIG_ENDIAN) -> 'TraceHeader':
        """
        Decode a 240-byte trace header.

        Raises:
            SegyError: On short input or coordinate units outside 0..2
        """
        if len(data) < cls.SIZE:
            raise SegyError(f"Trace header must be {cls.SIZE} bytes, got {len(data)}")

        values = dict(zip(_HEADER_FIELDS, layout(_HEADER_LAYOUT, byte_order).unpack_from(data, 0)))

        try:
            CoordinateUnits(values['coordinate_units'])
        except ValueError:
            raise SegyError(
                f"Invalid coordinate units code: {values['coordinate_units']}"
            ) from None

        return cls(unassigned=bytes(data[_DECODED_SIZE:cls.SIZE]), **values)

    @property
    def identification(self) -> TraceIdentificationCode:
        """Classified trace identification code."""
        return TraceIdentificationCode.from_code(self.trace_id_code)

    @property
    def units(self) -> CoordinateUnits:
        """Coordinate units as an enum."""
        return CoordinateUnits(self.coordinate_units)

    def to_dict(self) -> Dict[str, int]:
        """Decoded scalar fields (unassigned tail omitted)."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'unassigned'}

    @staticmethod
    def field_names():
        """Names of the decoded scalar fields, in byte order."""
        return list(_HEADER_FIELDS)


@dataclass
class TraceBlock:
    """One trace: header plus decoded samples."""
    header: TraceHeader
    data: TraceData

    @classmethod
    def from_bytes(cls, data: bytes, fmt: DataSampleFormat,
                   byte_order: ByteOrder = ByteOrder.BIG_ENDIAN,
                   num_samples: Optional[int] = None) -> 'TraceBlock':
        """
        Decode a trace block.

        Args:
            data: Block bytes (240-byte header followed by samples)
            fmt: Sample format of the file
            byte_order: Byte order of the file
            num_samples: Sample count override; defaults to the header's own count

        Returns:
            Decoded TraceBlock
        """
        header = TraceHeader.from_bytes(data, byte_order)
        count = header.num_samples if num_samples is None else num_samples
        samples = TraceData.from_bytes(data[TRACE_HEADER_SIZE:], fmt, count, byte_order)
        return cls(header=header, data=samples)

    def downsample(self, max_samples: int) -> 'TraceBlock':
        """Decimate samples and keep header.num_samples in step."""
        if max_samples <= 0:
            return self
        data = self.data.downsample(max_samples)
        if data is self.data:
            return self
        return TraceBlock(header=replace(self.header, num_samples=len(data)), data=data)
