"""
Unit tests for textual header encoding detection and decoding.
"""

import pytest
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.errors import SegyError
from models.textual_header import TextualHeader
from tests.fixtures.synthetic_segy import textual_header_bytes
from utils.text_encoding import (
    TextEncoding,
    decode_text,
    detect_text_encoding,
    ebcdic_to_ascii,
)


def _cards_starting_with(byte_value: int, count: int, filler: int) -> bytes:
    buf = bytearray([filler]) * 3200
    for i in range(count):
        buf[i * 80] = byte_value
    return bytes(buf)


class TestDetection:
    """Tests for EBCDIC / ASCII detection."""

    def test_ebcdic_card_starts(self):
        """Test 11 EBCDIC 'C' card starts resolve to EBCDIC."""
        data = _cards_starting_with(0xC3, 11, 0x00)
        assert detect_text_encoding(data) is TextEncoding.EBCDIC

    def test_ascii_card_starts(self):
        """Test 11 ASCII 'C' card starts resolve to ASCII."""
        data = _cards_starting_with(0x43, 11, 0x00)
        assert detect_text_encoding(data) is TextEncoding.ASCII

    def test_ten_card_starts_not_conclusive(self):
        """Test exactly 10 hits fall through to the space count."""
        data = _cards_starting_with(0x43, 10, 0x40)
        # EBCDIC spaces dominate
        assert detect_text_encoding(data) is TextEncoding.EBCDIC

    def test_space_frequency_ascii(self):
        """Test ASCII spaces decide when card starts do not."""
        data = bytes([0x20]) * 3000 + bytes([0x41]) * 200
        assert detect_text_encoding(data) is TextEncoding.ASCII

    def test_space_frequency_ebcdic(self):
        """Test EBCDIC spaces decide when card starts do not."""
        data = bytes([0x40]) * 3000 + bytes([0xC1]) * 200
        assert detect_text_encoding(data) is TextEncoding.EBCDIC

    def test_ambiguous_defaults_to_ebcdic(self):
        """Test an undecidable buffer defaults to EBCDIC."""
        assert detect_text_encoding(bytes(3200)) is TextEncoding.EBCDIC
        assert detect_text_encoding(b'') is TextEncoding.EBCDIC


class TestConversion:
    """Tests for EBCDIC to ASCII conversion."""

    def test_letters_digits_space(self):
        """Test code page 037 letters, digits and space."""
        assert ebcdic_to_ascii('CLIENT 42'.encode('cp037')) == 'CLIENT 42'

    def test_non_printable_becomes_space(self):
        """Test control characters map to spaces."""
        assert ebcdic_to_ascii(bytes([0xC1, 0x00, 0xC2])) == 'A B'

    def test_decode_ascii(self):
        """Test ASCII cleanup keeps printable characters."""
        assert decode_text(b'C 1 \x01LINE', TextEncoding.ASCII) == 'C 1  LINE'


class TestTextualHeader:
    """Tests for the 3200-byte textual header."""

    def test_from_ebcdic(self):
        """Test an EBCDIC header decodes to 40 card images."""
        header = TextualHeader.from_bytes(textual_header_bytes(encoding='ebcdic'))
        assert header.encoding is TextEncoding.EBCDIC
        assert len(header.lines) == 40
        assert header.lines[0].startswith('C 1 CLIENT: TRACELENS TEST')
        assert all(len(line) == 80 for line in header.lines)

    def test_from_ascii(self):
        """Test an ASCII header decodes with the same lines."""
        header = TextualHeader.from_bytes(textual_header_bytes(encoding='ascii'))
        assert header.encoding is TextEncoding.ASCII
        assert header.lines[1].startswith('C 2 LINE: SYNTHETIC')
        assert 'CLIENT' in header.text

    @pytest.mark.parametrize("size", [0, 3199, 3201])
    def test_wrong_size(self, size):
        """Test anything but 3200 bytes is rejected."""
        with pytest.raises(SegyError):
            TextualHeader.from_bytes(bytes(size))

    def test_with_extended(self):
        """Test extended lines are appended."""
        header = TextualHeader.from_bytes(textual_header_bytes())
        extended = header.with_extended(['C41 EXTENDED'])
        assert len(extended.lines) == 41
        assert extended.raw_data == header.raw_data
        assert extended.to_dict()['encoding'] == 'ebcdic'
