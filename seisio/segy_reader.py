"""
Memory-mapped SEG-Y reader.

SegyReader parses the file headers once at open time, maps the file
read-only and serves random-access trace reads without re-parsing headers.
Bytes are copied out of the mapping before decoding, so returned objects
stay valid after the reader is closed or replaced.

SegyReaderState is a single-entry cache of open readers, keyed by path.

Usage:
    with SegyReader.open('line.sgy') as reader:
        traces = reader.load_trace_range(0, 100, max_samples=1000)
"""
import logging
import mmap
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from models.binary_header import BinaryHeader, TRACE_HEADER_SIZE
from models.errors import SegyError, SegyIOError, SegyValidationError
from models.header_spec import FormatSpecRegistry, get_spec_registry
from models.segy_file import BINARY_HEADER_SIZE, TEXTUAL_HEADER_SIZE, SegyData, SegyFileConfig
from models.textual_header import TextualHeader
from models.trace import TraceBlock, TraceHeader
from models.trace_data import TraceData
from seisio.segy_io import (
    compute_total_traces,
    parse_header_map,
    parse_trace_block,
    parse_trace_data,
    read_headers,
    validate_file_path,
    validate_trace_range,
)
from utils.checked_math import checked_add, checked_mul

logger = logging.getLogger(__name__)


class SegyReader:
    """
    Random-access reader over a memory-mapped SEG-Y file.

    Use SegyReader.open() to construct. The reader owns the file handle and
    the mapping until close().
    """

    def __init__(self, file_path: Path, file_handle, mapping: mmap.mmap,
                 textual_header: TextualHeader, binary_header: BinaryHeader,
                 config: SegyFileConfig, total_traces: Optional[int], file_size: int,
                 spec_registry: Optional[FormatSpecRegistry] = None):
        self.file_path = file_path
        self._file = file_handle
        self._mmap = mapping
        self.textual_header = textual_header
        self.binary_header = binary_header
        self.config = config
        self.total_traces = total_traces
        self.file_size = file_size
        self.spec_registry = spec_registry or get_spec_registry()

    @classmethod
    def open(cls, file_path, spec_registry: Optional[FormatSpecRegistry] = None) -> 'SegyReader':
        """
        Open and parse a SEG-Y file.

        Args:
            file_path: Path to the file
            spec_registry: Registry for spec-driven header maps (process default if None)

        Returns:
            Open SegyReader

        Raises:
            SegyValidationError: Empty path or invalid declared sizes
            SegyIOError: File cannot be opened or mapped
            SegyError: File structure is invalid
        """
        path = validate_file_path(file_path)

        try:
            f = open(path, 'rb')
        except OSError as e:
            raise SegyIOError(f"Failed to open file '{path}': {e}") from e

        try:
            bundle = read_headers(f)
            config = SegyFileConfig.from_binary_header(bundle.binary_header, bundle.file_header_size)
            total_traces = compute_total_traces(
                bundle.file_size, config.trace_block_size(), bundle.file_header_size
            )
            try:
                mapping = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
            except (OSError, ValueError) as e:
                raise SegyIOError(f"Failed to memory-map file: {e}") from e
        except Exception:
            f.close()
            raise

        logger.info(
            f"Opened {path.name}: {bundle.file_size:,} bytes, "
            f"{total_traces if total_traces is not None else 'unknown'} traces, "
            f"{config.samples_per_trace} samples/trace, "
            f"format {int(config.data_sample_format)} ({config.data_sample_format.label}), "
            f"{config.byte_order.value}, {bundle.textual_header.encoding.value} text"
        )

        return cls(
            file_path=path,
            file_handle=f,
            mapping=mapping,
            textual_header=bundle.textual_header,
            binary_header=bundle.binary_header,
            config=config,
            total_traces=total_traces,
            file_size=bundle.file_size,
            spec_registry=spec_registry,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def closed(self) -> bool:
        return self._mmap is None

    def close(self):
        """Release the mapping and the file handle."""
        if self._mmap is not None:
            self._mmap.close()
            self._mmap = None
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return (f"SegyReader('{self.file_path}', traces={self.total_traces}, "
                f"closed={self.closed})")

    # =========================================================================
    # Summary
    # =========================================================================

    def data(self) -> SegyData:
        """Summary of the open file."""
        return SegyData(
            textual_header=self.textual_header,
            binary_header=self.binary_header,
            total_traces=self.total_traces,
            file_size=self.file_size,
            text_encoding=self.textual_header.encoding,
            byte_order=self.binary_header.byte_order,
        )

    # =========================================================================
    # Byte access
    # =========================================================================

    def _mapping(self) -> mmap.mmap:
        if self._mmap is None:
            raise SegyIOError(f"Reader for '{self.file_path}' is closed")
        return self._mmap

    def _slice(self, start: int, size: int) -> bytes:
        """Copy [start, start + size) out of the mapping, rejecting short reads."""
        mapping = self._mapping()
        end = checked_add(start, size, "Byte range end")
        if end > len(mapping):
            raise SegyError(
                f"Requested bytes exceed file size (need {end} bytes, file has {len(mapping)} bytes)"
            )
        return mapping[start:end]

    def _trace_bytes(self, trace_index: int) -> bytes:
        if trace_index < 0:
            raise SegyValidationError(f"Trace index {trace_index} is negative")
        if self.total_traces is not None and trace_index >= self.total_traces:
            raise SegyValidationError(
                f"Trace index {trace_index} out of bounds (total: {self.total_traces})"
            )
        position = self.config.calculate_trace_position(trace_index)
        return self._slice(position, self.config.trace_block_size())

    def _range_bytes(self, start_index: int, count: int) -> bytes:
        block_size = self.config.trace_block_size()
        start = self.config.calculate_trace_position(start_index)
        size = checked_mul(block_size, count, "Trace range size")
        return self._slice(start, size)

    # =========================================================================
    # Trace reads
    # =========================================================================

    def load_single_trace(self, trace_index: int,
                          max_samples: Optional[int] = None) -> TraceBlock:
        """
        Load one trace block (header + samples).

        Args:
            trace_index: 0-based trace index
            max_samples: Optional cap on samples (decimated by stride)

        Returns:
            Decoded TraceBlock
        """
        trace = self._parse_block(self._trace_bytes(trace_index), trace_index)
        return trace.downsample(max_samples) if max_samples else trace

    def load_trace_range(self, start_index: int, count: int,
                         max_samples: Optional[int] = None) -> List[TraceBlock]:
        """
        Load a contiguous range of trace blocks.

        Args:
            start_index: First trace index
            count: Number of traces (0 returns an empty list)
            max_samples: Optional cap on samples per trace

        Returns:
            List of TraceBlock in file order
        """
        validate_trace_range(start_index, count, self.total_traces)
        if count == 0:
            return []

        block_size = self.config.trace_block_size()
        raw = self._range_bytes(start_index, count)
        logger.debug(f"Loading traces [{start_index}..{start_index + count}) from {self.file_path.name}")

        traces = []
        for i in range(count):
            block = raw[i * block_size:(i + 1) * block_size]
            trace = self._parse_block(block, start_index + i)
            traces.append(trace.downsample(max_samples) if max_samples else trace)
        return traces

    def load_trace_data_range(self, start_index: int, count: int,
                              max_samples: Optional[int] = None) -> List[TraceData]:
        """
        Load only the samples of a contiguous range of traces.

        Same validation as load_trace_range; trace headers are not decoded.
        """
        validate_trace_range(start_index, count, self.total_traces)
        if count == 0:
            return []

        block_size = self.config.trace_block_size()
        raw = self._range_bytes(start_index, count)
        logger.debug(
            f"Loading trace data [{start_index}..{start_index + count}) from {self.file_path.name}"
        )

        result = []
        for i in range(count):
            block = raw[i * block_size:(i + 1) * block_size]
            try:
                data = parse_trace_data(block, self.config)
            except SegyError as e:
                raise SegyError(f"Failed to parse trace {start_index + i}: {e}") from e
            result.append(data.downsample(max_samples) if max_samples else data)
        return result

    def _parse_block(self, block: bytes, trace_index: int) -> TraceBlock:
        try:
            return parse_trace_block(block, self.config)
        except SegyError as e:
            raise SegyError(f"Failed to parse trace {trace_index}: {e}") from e

    # =========================================================================
    # Header access
    # =========================================================================

    def load_trace_header_bytes(self, trace_index: int) -> bytes:
        """Raw 240-byte header of one trace (a copy)."""
        return self._trace_bytes(trace_index)[:TRACE_HEADER_SIZE]

    def load_trace_header_map(self, trace_index: int,
                              revision: Optional[int] = None) -> Dict[str, Any]:
        """
        Decode a trace header with the field table of a revision.

        Args:
            trace_index: 0-based trace index
            revision: Revision code (defaults to the file's own)

        Returns:
            Dict mapping field_key to value
        """
        code = self.binary_header.segy_revision if revision is None else revision
        spec = self.spec_registry.load(code)
        return parse_header_map(
            self.load_trace_header_bytes(trace_index),
            spec.trace_header.fields,
            self.config.byte_order,
        )

    def binary_header_map(self, revision: Optional[int] = None) -> Dict[str, Any]:
        """Decode the binary header with the field table of a revision."""
        code = self.binary_header.segy_revision if revision is None else revision
        spec = self.spec_registry.load(code)
        raw = self._slice(TEXTUAL_HEADER_SIZE, BINARY_HEADER_SIZE)
        return parse_header_map(
            raw,
            spec.binary_header.fields,
            self.config.byte_order,
            base_offset=spec.binary_header.byte_offset,
        )

    def load_trace_headers(self, start_index: int = 0,
                           count: Optional[int] = None) -> pd.DataFrame:
        """
        Decode trace headers of a range into a table.

        Args:
            start_index: First trace index
            count: Number of traces (to the end of the file if None)

        Returns:
            DataFrame with one row per trace and one column per TraceHeader
            field, indexed by trace index
        """
        if count is None:
            if self.total_traces is None:
                count = 0
            else:
                count = max(0, self.total_traces - start_index)
        validate_trace_range(start_index, count, self.total_traces)

        block_size = self.config.trace_block_size()
        raw = self._range_bytes(start_index, count) if count else b''
        rows = []
        for i in range(count):
            offset = i * block_size
            header = TraceHeader.from_bytes(raw[offset:offset + TRACE_HEADER_SIZE],
                                            self.config.byte_order)
            rows.append(header.to_dict())

        df = pd.DataFrame(rows, columns=TraceHeader.field_names())
        df.index = pd.RangeIndex(start_index, start_index + count, name='trace_index')
        return df


class SegyReaderState:
    """
    Single-entry cache of open readers.

    Requesting the cached path returns the cached reader; any other path
    opens a new reader and closes the previous one. Objects decoded from the
    old reader remain valid since reads copy out of the mapping.
    """

    def __init__(self, spec_registry: Optional[FormatSpecRegistry] = None):
        self._reader: Optional[SegyReader] = None
        self._lock = threading.RLock()
        self._spec_registry = spec_registry

    @property
    def current(self) -> Optional[SegyReader]:
        with self._lock:
            return self._reader

    def open(self, file_path) -> SegyReader:
        """Open file_path unconditionally and make it the cached reader."""
        reader = SegyReader.open(file_path, spec_registry=self._spec_registry)
        with self._lock:
            previous, self._reader = self._reader, reader
        if previous is not None and previous is not reader:
            logger.info(f"Replacing cached reader {previous.file_path.name} with {reader.file_path.name}")
            previous.close()
        return reader

    def get_or_open(self, file_path) -> SegyReader:
        """Return the cached reader for file_path, opening it if needed."""
        validate_file_path(file_path)
        path = Path(file_path)
        with self._lock:
            reader = self._reader
            if reader is not None and not reader.closed and _same_path(reader.file_path, path):
                return reader
            return self.open(path)

    def clear(self):
        """Close and drop the cached reader."""
        with self._lock:
            reader, self._reader = self._reader, None
        if reader is not None:
            reader.close()


def _same_path(a: Path, b: Path) -> bool:
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return a == b
