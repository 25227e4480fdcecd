"""
Error taxonomy for SEG-Y decoding, trace access and rendering.

Every error carries a ``kind`` tag matching the payload names the viewer
frontend switches on, so callers can turn an exception into a tagged
``{"name": ..., "message": ...}`` dictionary without string matching.
"""
from typing import Dict


class TraceLensError(Exception):
    """Base class for all errors raised by the decoding and rendering core."""

    kind = "TraceLensError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        """Convert to a tagged payload dictionary."""
        return {'name': self.kind, 'message': self.message}


class SegyIOError(TraceLensError, OSError):
    """Open/read/seek/mmap failure at the operating system boundary."""

    kind = "IoError"


class SegyError(TraceLensError):
    """Structural violation of the SEG-Y layout (bad header, short file, bad code)."""

    kind = "SegyError"


class SegyValidationError(TraceLensError, ValueError):
    """Invalid caller input or size arithmetic exceeding the addressable range."""

    kind = "ValidationError"


class SpecConfigError(TraceLensError):
    """Malformed or incomplete header specification document."""

    kind = "ParseError"
