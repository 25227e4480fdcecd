"""
Trace sample payload in one of the six SEG-Y sample encodings.

TraceData is a tagged union: the tag is the DataSampleFormat and the payload
is a numpy array whose dtype is fixed per tag. Every operation switches over
the tag explicitly, so adding a format means touching each table below.

    IBM_FLOAT32           -> float32 (converted from IBM base-16 at decode)
    IEEE_FLOAT32          -> float32
    INT32 / INT16 / INT8  -> int32 / int16 / int8
    FIXED_POINT_WITH_GAIN -> structured (gain: uint8, value: int16), gain not applied
"""
import logging
import math
from dataclasses import dataclass

import numpy as np

from models.binary_header import DataSampleFormat
from models.errors import SegyError, SegyValidationError
from utils.byte_reader import ByteOrder

logger = logging.getLogger(__name__)

FIXED_POINT_DTYPE = np.dtype([('gain', np.uint8), ('value', np.int16)])

_NATIVE_DTYPES = {
    DataSampleFormat.IBM_FLOAT32: np.dtype(np.float32),
    DataSampleFormat.IEEE_FLOAT32: np.dtype(np.float32),
    DataSampleFormat.INT32: np.dtype(np.int32),
    DataSampleFormat.INT16: np.dtype(np.int16),
    DataSampleFormat.INT8: np.dtype(np.int8),
    DataSampleFormat.FIXED_POINT_WITH_GAIN: FIXED_POINT_DTYPE,
}

_IBM_SIGN = np.uint32(0x80000000)
_IEEE_INF = np.uint32(0x7F800000)


def ibm_to_ieee(raw: np.ndarray) -> np.ndarray:
    """
    Convert IBM System/360 single precision words to IEEE 754 float32.

    IBM layout is sign(1) / exponent(7, base 16, excess 64) / fraction(24)
    with value 0.F x 16^(E-64). The fraction is shifted left until its top
    bit is set, that bit becomes the IEEE implicit one, and the exponent is
    rebased to excess 127.

    Zero fractions give signed zero, exponents <= 0 underflow to signed zero
    and exponents >= 255 overflow to signed infinity. NaN is never produced.

    Args:
        raw: Array of IBM words as unsigned 32-bit integers

    Returns:
        float32 array of the same shape
    """
    raw = np.asarray(raw, dtype=np.uint32)
    sign = raw & _IBM_SIGN
    exponent = ((raw >> 24) & 0x7F).astype(np.int64)
    mantissa = (raw & 0x00FFFFFF).astype(np.int64)

    zero = mantissa == 0
    # frexp gives the bit length of each fraction (exact for 24-bit ints)
    _, bit_length = np.frexp(mantissa.astype(np.float64))
    shift = np.where(zero, 0, 24 - bit_length)
    normalized = mantissa << shift

    ieee_exponent = (exponent - 64) * 4 + 126 - shift
    underflow = zero | (ieee_exponent <= 0)
    overflow = ~underflow & (ieee_exponent >= 255)

    bits = (
        sign
        | (np.clip(ieee_exponent, 0, 254).astype(np.uint32) << 23)
        | (normalized & 0x7FFFFF).astype(np.uint32)
    )
    bits = np.where(underflow, sign, bits)
    bits = np.where(overflow, sign | _IEEE_INF, bits)
    return bits.astype(np.uint32).view(np.float32)


def _wire_dtype(fmt: DataSampleFormat, byte_order: ByteOrder) -> np.dtype:
    """On-disk dtype for a sample format."""
    prefix = byte_order.numpy_prefix
    if fmt is DataSampleFormat.IBM_FLOAT32:
        return np.dtype(prefix + 'u4')
    if fmt is DataSampleFormat.IEEE_FLOAT32:
        return np.dtype(prefix + 'f4')
    if fmt is DataSampleFormat.INT32:
        return np.dtype(prefix + 'i4')
    if fmt is DataSampleFormat.INT16:
        return np.dtype(prefix + 'i2')
    if fmt is DataSampleFormat.INT8:
        return np.dtype('i1')
    if fmt is DataSampleFormat.FIXED_POINT_WITH_GAIN:
        # byte 0 reserved, byte 1 gain code, bytes 2-3 signed value
        return np.dtype({
            'names': ['gain', 'value'],
            'formats': ['u1', prefix + 'i2'],
            'offsets': [1, 2],
            'itemsize': 4,
        })
    raise SegyValidationError(f"Unsupported sample format: {fmt!r}")


@dataclass
class TraceData:
    """
    Decoded samples of one trace.

    Attributes:
        format: Sample encoding tag
        samples: 1D array with the dtype belonging to the tag
    """
    format: DataSampleFormat
    samples: np.ndarray

    def __post_init__(self):
        expected = _NATIVE_DTYPES[self.format]
        samples = np.asarray(self.samples)
        if samples.dtype != expected:
            samples = samples.astype(expected)
        self.samples = samples.reshape(-1)

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @classmethod
    def from_bytes(cls, data: bytes, fmt: DataSampleFormat, num_samples: int,
                   byte_order: ByteOrder = ByteOrder.BIG_ENDIAN) -> 'TraceData':
        """
        Decode a sample payload.

        Args:
            data: Payload bytes (at least num_samples * bytes_per_sample)
            fmt: Sample format
            num_samples: Number of samples to decode
            byte_order: Byte order of the file

        Returns:
            TraceData holding exactly num_samples values

        Raises:
            SegyError: If the payload is shorter than required
        """
        if num_samples < 0:
            raise SegyValidationError(f"Negative sample count: {num_samples}")
        needed = num_samples * fmt.bytes_per_sample
        if len(data) < needed:
            raise SegyError(
                f"Trace payload too short: need {needed} bytes for {num_samples} "
                f"samples of format {int(fmt)}, got {len(data)}"
            )

        wire = np.frombuffer(data, dtype=_wire_dtype(fmt, byte_order), count=num_samples)

        if fmt is DataSampleFormat.IBM_FLOAT32:
            samples = ibm_to_ieee(wire)
        elif fmt is DataSampleFormat.FIXED_POINT_WITH_GAIN:
            samples = np.empty(num_samples, dtype=FIXED_POINT_DTYPE)
            samples['gain'] = wire['gain']
            samples['value'] = wire['value']
        else:
            samples = wire.astype(_NATIVE_DTYPES[fmt])

        return cls(format=fmt, samples=samples)

    def to_float32(self) -> np.ndarray:
        """
        Samples as float32 amplitudes.

        Fixed-point samples are expanded as value * 2**gain.
        """
        if self.format is DataSampleFormat.FIXED_POINT_WITH_GAIN:
            values = self.samples['value'].astype(np.float32)
            gains = np.exp2(self.samples['gain'].astype(np.float32))
            return values * gains
        return self.samples.astype(np.float32, copy=False)

    def downsample(self, max_samples: int) -> 'TraceData':
        """
        Decimate to at most max_samples by keeping every stride-th sample.

        stride = ceil(len / max_samples), starting at index 0. A trace that
        already fits (or max_samples == 0) is returned unchanged.
        """
        length = len(self)
        if max_samples <= 0 or length <= max_samples:
            return self
        stride = math.ceil(length / max_samples)
        return TraceData(format=self.format, samples=self.samples[::stride].copy())
