"""
Test Fixtures Package

Synthetic SEG-Y writers for decoder and reader tests.
"""

from tests.fixtures.synthetic_segy import (
    build_segy,
    write_segy,
    ieee_to_ibm,
    textual_header_bytes,
    binary_header_bytes,
    trace_header_bytes,
    sample_bytes,
)

__all__ = [
    'build_segy',
    'write_segy',
    'ieee_to_ibm',
    'textual_header_bytes',
    'binary_header_bytes',
    'trace_header_bytes',
    'sample_bytes',
]
