"""
Checked size/offset arithmetic.

Python integers never wrap, so an "overflow" here means a byte size or offset
that cannot be addressed by a memory map on this platform (> sys.maxsize).
"""
import sys

from models.errors import SegyValidationError

MAX_ADDRESSABLE = sys.maxsize


def checked_add(a: int, b: int, what: str) -> int:
    """Add two sizes, raising SegyValidationError when the result is unaddressable."""
    result = a + b
    if result > MAX_ADDRESSABLE:
        raise SegyValidationError(f"{what} overflow")
    return result


def checked_mul(a: int, b: int, what: str) -> int:
    """Multiply two sizes, raising SegyValidationError when the result is unaddressable."""
    result = a * b
    if result > MAX_ADDRESSABLE:
        raise SegyValidationError(f"{what} overflow")
    return result
