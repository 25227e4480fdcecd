"""
File-level SEG-Y descriptors.

SegyFileConfig is the minimal state needed to locate trace blocks; SegyData
is the summary handed to callers after a file is opened.
"""
from dataclasses import dataclass
from typing import Optional

from models.binary_header import BinaryHeader, DataSampleFormat, TRACE_HEADER_SIZE
from models.textual_header import TextualHeader
from utils.byte_reader import ByteOrder
from utils.checked_math import checked_add, checked_mul
from utils.text_encoding import TextEncoding

TEXTUAL_HEADER_SIZE = 3200
BINARY_HEADER_SIZE = 400
FILE_HEADER_SIZE = TEXTUAL_HEADER_SIZE + BINARY_HEADER_SIZE


def file_header_size(extended_count: int) -> int:
    """Textual + binary header + extended textual headers, overflow checked."""
    extended = checked_mul(TEXTUAL_HEADER_SIZE, extended_count, "Extended header size")
    return checked_add(FILE_HEADER_SIZE, extended, "File header size")


@dataclass(frozen=True)
class SegyFileConfig:
    """
    Block geometry of an open file.

    Attributes:
        samples_per_trace: Samples in every trace block
        data_sample_format: Sample encoding
        byte_order: Byte order of all binary fields and samples
        file_header_size: Offset of the first trace block
    """
    samples_per_trace: int
    data_sample_format: DataSampleFormat
    byte_order: ByteOrder = ByteOrder.BIG_ENDIAN
    file_header_size: int = FILE_HEADER_SIZE

    @classmethod
    def from_binary_header(cls, header: BinaryHeader,
                           header_size: int = FILE_HEADER_SIZE) -> 'SegyFileConfig':
        return cls(
            samples_per_trace=header.samples_per_trace,
            data_sample_format=header.data_sample_format,
            byte_order=header.byte_order,
            file_header_size=header_size,
        )

    @property
    def bytes_per_sample(self) -> int:
        return self.data_sample_format.bytes_per_sample

    def trace_block_size(self) -> int:
        """240 + samples_per_trace * bytes_per_sample, overflow checked."""
        data_size = checked_mul(self.samples_per_trace, self.bytes_per_sample, "Trace data size")
        return checked_add(TRACE_HEADER_SIZE, data_size, "Trace block size")

    def calculate_trace_position(self, trace_index: int) -> int:
        """Byte offset of a trace block from the start of the file."""
        relative = checked_mul(trace_index, self.trace_block_size(), "Trace offset")
        return checked_add(self.file_header_size, relative, "Trace position")


@dataclass
class SegyData:
    """Summary of an opened SEG-Y file."""
    textual_header: TextualHeader
    binary_header: BinaryHeader
    total_traces: Optional[int]
    file_size: int
    text_encoding: TextEncoding
    byte_order: ByteOrder

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'textual_header': self.textual_header.to_dict(),
            'binary_header': self.binary_header.to_dict(),
            'total_traces': self.total_traces,
            'file_size': self.file_size,
            'text_encoding': self.text_encoding.value,
            'byte_order': self.byte_order.value,
        }
