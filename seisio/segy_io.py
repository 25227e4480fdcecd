"""
Low-level IO helpers for SEG-Y parsing.

File validation, header reading, trace block slicing and spec-driven header
decoding used by SegyReader.
"""
import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Sequence

import numpy as np

from models.binary_header import BinaryHeader, TRACE_HEADER_SIZE
from models.errors import SegyError, SegyIOError, SegyValidationError
from models.header_spec import HeaderFieldSpec
from models.segy_file import (
    BINARY_HEADER_SIZE,
    FILE_HEADER_SIZE,
    TEXTUAL_HEADER_SIZE,
    SegyFileConfig,
    file_header_size,
)
from models.textual_header import TextualHeader
from models.trace import TraceBlock
from models.trace_data import TraceData, ibm_to_ieee
from utils.byte_reader import ByteOrder, layout, struct_code
from utils.checked_math import checked_add

logger = logging.getLogger(__name__)

# Minimum file size for a valid SEG-Y file (textual + binary headers only)
MIN_SEGY_SIZE = FILE_HEADER_SIZE


@dataclass
class HeaderBundle:
    """Headers read at open time plus the sizes derived from them."""
    textual_header: TextualHeader
    binary_header: BinaryHeader
    file_header_size: int
    file_size: int


def validate_file_path(file_path) -> Path:
    """
    Check a path is non-empty and points at a regular file.

    Raises:
        SegyValidationError: If the path is empty
        SegyIOError: If the file does not exist or is not a regular file
    """
    if file_path is None or str(file_path).strip() == '':
        raise SegyValidationError("File path cannot be empty")
    path = Path(file_path)
    if not path.exists():
        raise SegyIOError(f"File not found: {path}")
    if not path.is_file():
        raise SegyIOError(f"Not a regular file: {path}")
    return path


def extended_textual_header_count(header: BinaryHeader) -> int:
    """
    Number of extended textual headers declared by the binary header.

    Raises:
        SegyValidationError: If the declared count is negative
    """
    count = header.extended_textual_headers
    if count < 0:
        raise SegyValidationError(f"Invalid extended textual header count: {count}")
    return count


def _read_exact(f: BinaryIO, size: int, what: str) -> bytes:
    try:
        data = f.read(size)
    except OSError as e:
        raise SegyIOError(f"Failed to read {what}: {e}") from e
    if len(data) != size:
        raise SegyError(f"Unexpected end of file while reading {what}")
    return data


def read_headers(f: BinaryIO) -> HeaderBundle:
    """
    Read textual, binary and extended textual headers from an open file.

    Args:
        f: File opened in binary mode

    Returns:
        HeaderBundle with extended header lines appended to the textual header

    Raises:
        SegyError: If the file is too small for the declared headers
    """
    try:
        file_size = os.fstat(f.fileno()).st_size
        f.seek(0)
    except OSError as e:
        raise SegyIOError(f"Failed to read file metadata: {e}") from e

    if file_size < MIN_SEGY_SIZE:
        raise SegyError(
            f"File too small to be valid SEG-Y ({file_size} bytes, minimum {MIN_SEGY_SIZE} bytes)"
        )

    textual_header = TextualHeader.from_bytes(_read_exact(f, TEXTUAL_HEADER_SIZE, "textual header"))
    binary_header = BinaryHeader.from_bytes(_read_exact(f, BINARY_HEADER_SIZE, "binary header"))

    extended_count = extended_textual_header_count(binary_header)
    header_size = file_header_size(extended_count)
    if file_size < header_size:
        raise SegyError(
            f"File too small for declared headers ({file_size} bytes, need {header_size} bytes)"
        )

    extended_lines: List[str] = []
    for i in range(extended_count):
        block = _read_exact(f, TEXTUAL_HEADER_SIZE, f"extended textual header {i + 1}")
        extended_lines.extend(TextualHeader.from_bytes(block).lines)
    if extended_lines:
        textual_header = textual_header.with_extended(extended_lines)

    return HeaderBundle(
        textual_header=textual_header,
        binary_header=binary_header,
        file_header_size=header_size,
        file_size=file_size,
    )


def compute_total_traces(file_size: int, trace_block_size: int,
                         header_size: int = FILE_HEADER_SIZE) -> Optional[int]:
    """
    Number of whole trace blocks after the file headers.

    Returns:
        Trace count, or None when the block size is zero or larger than the file
    """
    if trace_block_size <= 0 or trace_block_size > file_size:
        return None
    data_size = max(0, file_size - header_size)
    return data_size // trace_block_size


def validate_trace_range(start_index: int, count: int, total_traces: Optional[int]):
    """
    Check [start_index, start_index + count) against the known trace count.

    An empty range is always valid. Unknown totals are checked later against
    the mapped file size.

    Raises:
        SegyValidationError: For negative arguments or a range past the end
    """
    if count == 0:
        return
    if start_index < 0 or count < 0:
        raise SegyValidationError(f"Invalid trace range: start={start_index}, count={count}")
    if total_traces is None:
        return
    end_index = checked_add(start_index, count, "Trace range end")
    if start_index >= total_traces or end_index > total_traces:
        raise SegyValidationError(
            f"Trace range [{start_index}..{end_index}) exceeds total traces {total_traces}"
        )


def parse_trace_block(trace_bytes: bytes, config: SegyFileConfig) -> TraceBlock:
    """Decode a full trace block using the file's sample count."""
    try:
        return TraceBlock.from_bytes(
            trace_bytes,
            config.data_sample_format,
            config.byte_order,
            num_samples=config.samples_per_trace,
        )
    except struct.error as e:
        raise SegyError(f"Trace parse failed: {e}") from e


def parse_trace_data(trace_bytes: bytes, config: SegyFileConfig) -> TraceData:
    """Decode only the samples of a trace block (header skipped)."""
    end = checked_add(
        TRACE_HEADER_SIZE,
        config.samples_per_trace * config.bytes_per_sample,
        "Trace data end",
    )
    if end > len(trace_bytes):
        raise SegyError("Trace data slice out of bounds")
    return TraceData.from_bytes(
        trace_bytes[TRACE_HEADER_SIZE:end],
        config.data_sample_format,
        config.samples_per_trace,
        config.byte_order,
    )


def _decode_text(raw: bytes) -> str:
    return raw.decode('latin-1').strip('\x00 ')


def parse_field_value(raw: bytes, data_type: str, byte_order: ByteOrder) -> Any:
    """
    Decode one header field.

    Numeric types (int8 to uint64, float32, float64) are read in the file's
    byte order; ibm32 is converted to IEEE; anything else is treated as text
    with NUL and space padding trimmed.
    """
    kind = data_type.lower()

    if kind == 'ibm32':
        if len(raw) != 4:
            raise SegyError(f"ibm32 field needs 4 bytes, got {len(raw)}")
        word = layout('I', byte_order).unpack(raw)[0]
        return float(ibm_to_ieee(np.array([word], dtype=np.uint32))[0])

    code = struct_code(kind)
    if not code:
        return _decode_text(raw)

    packer = layout(code, byte_order)
    if packer.size != len(raw):
        raise SegyError(
            f"Field of type {data_type} needs {packer.size} bytes, got {len(raw)}"
        )
    return packer.unpack(raw)[0]


def parse_header_map(header_bytes: bytes, fields: Sequence[HeaderFieldSpec],
                     byte_order: ByteOrder, base_offset: int = 0) -> Dict[str, Any]:
    """
    Decode header bytes into a field-keyed map using a spec table.

    Args:
        header_bytes: Raw header bytes
        fields: Field table (1-based inclusive byte ranges)
        byte_order: Byte order of the file
        base_offset: Bytes preceding header_bytes in the field table numbering (3200
            for the binary header, whose table uses file byte positions)

    Returns:
        Dict mapping field_key to its decoded value

    Raises:
        SegyError: If a field lies outside header_bytes
    """
    values: Dict[str, Any] = {}
    for spec in fields:
        start = spec.byte_start - 1 - base_offset
        end = spec.byte_end - base_offset
        if start < 0 or end > len(header_bytes):
            raise SegyError(f"Header slice out of bounds for {spec.field_key}")
        values[spec.field_key] = parse_field_value(
            bytes(header_bytes[start:end]), spec.data_type, byte_order
        )
    return values
