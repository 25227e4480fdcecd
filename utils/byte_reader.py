"""
Byte-order aware primitive reads shared by the header and trace codecs.

SEG-Y is big-endian by definition, but little-endian files are common enough
that every codec takes the detected order and builds its struct formats from
it instead of hard-coding '>'.
"""
import struct
from enum import Enum
from typing import Dict, Tuple


class ByteOrder(Enum):
    """Byte order (endianness) of binary data."""
    BIG_ENDIAN = "big-endian"
    LITTLE_ENDIAN = "little-endian"

    @property
    def struct_prefix(self) -> str:
        """Prefix character for struct format strings."""
        return '>' if self is ByteOrder.BIG_ENDIAN else '<'

    @property
    def numpy_prefix(self) -> str:
        """Prefix character for numpy dtype strings."""
        return '>' if self is ByteOrder.BIG_ENDIAN else '<'


# struct codes for the scalar types used by header spec tables
_STRUCT_CODES: Dict[str, str] = {
    'int8': 'b',
    'uint8': 'B',
    'int16': 'h',
    'uint16': 'H',
    'int32': 'i',
    'uint32': 'I',
    'int64': 'q',
    'uint64': 'Q',
    'float32': 'f',
    'float64': 'd',
}

_struct_cache: Dict[Tuple[str, ByteOrder], struct.Struct] = {}


def layout(fmt: str, byte_order: ByteOrder) -> struct.Struct:
    """
    Get a compiled struct for a field layout in the given byte order.

    Args:
        fmt: struct format string without byte-order prefix (e.g. '3i24h')
        byte_order: Byte order to apply

    Returns:
        Cached struct.Struct instance
    """
    key = (fmt, byte_order)
    compiled = _struct_cache.get(key)
    if compiled is None:
        compiled = struct.Struct(byte_order.struct_prefix + fmt)
        _struct_cache[key] = compiled
    return compiled


def struct_code(data_type: str) -> str:
    """Get the struct code for a spec data type name, or '' if it is not numeric."""
    return _STRUCT_CODES.get(data_type.lower(), '')

