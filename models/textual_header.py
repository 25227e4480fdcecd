"""
SEG-Y Textual Header (3200 bytes).

40 card images of 80 bytes each, EBCDIC by the standard but ASCII in many
files. Encoding is detected once over the whole block and every card is
decoded with it.
"""
from dataclasses import dataclass, field
from typing import List

from models.errors import SegyError
from utils.text_encoding import (
    CARD_COUNT,
    CARD_SIZE,
    TextEncoding,
    decode_text,
    detect_text_encoding,
)


@dataclass(frozen=True)
class TextualHeader:
    """
    Decoded textual header.

    Attributes:
        raw_data: Original 3200 bytes of the primary header
        encoding: Detected encoding of the primary header
        lines: Card images as ASCII strings (extended headers appended)
    """
    raw_data: bytes
    encoding: TextEncoding
    lines: List[str] = field(default_factory=list)

    SIZE = 3200
    CARD_COUNT = CARD_COUNT
    CARD_SIZE = CARD_SIZE

    @classmethod
    def from_bytes(cls, data: bytes) -> 'TextualHeader':
        """
        Decode a textual header block.

        Args:
            data: Exactly 3200 bytes of EBCDIC or ASCII card images

        Returns:
            TextualHeader with 40 decoded lines

        Raises:
            SegyError: If data is not exactly 3200 bytes
        """
        if len(data) != cls.SIZE:
            raise SegyError(
                f"Textual header must be exactly {cls.SIZE} bytes, got {len(data)}"
            )

        data = bytes(data)
        encoding = detect_text_encoding(data)
        lines = [
            decode_text(data[i * CARD_SIZE:(i + 1) * CARD_SIZE], encoding)
            for i in range(CARD_COUNT)
        ]
        return cls(raw_data=data, encoding=encoding, lines=lines)

    @classmethod
    def blank(cls) -> 'TextualHeader':
        """Create an empty header filled with EBCDIC spaces."""
        return cls(
            raw_data=bytes([0x40]) * cls.SIZE,
            encoding=TextEncoding.EBCDIC,
            lines=[''] * CARD_COUNT,
        )

    def with_extended(self, extended_lines: List[str]) -> 'TextualHeader':
        """Return a copy with extended textual header lines appended."""
        return TextualHeader(
            raw_data=self.raw_data,
            encoding=self.encoding,
            lines=list(self.lines) + list(extended_lines),
        )

    @property
    def text(self) -> str:
        """All card images joined with newlines."""
        return '\n'.join(self.lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {'encoding': self.encoding.value, 'lines': list(self.lines)}
