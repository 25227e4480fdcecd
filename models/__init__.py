"""Models package - SEG-Y data structures, header specs and settings."""
from .errors import (
    TraceLensError,
    SegyIOError,
    SegyError,
    SegyValidationError,
    SpecConfigError,
)

__all__ = [
    'TraceLensError',
    'SegyIOError',
    'SegyError',
    'SegyValidationError',
    'SpecConfigError',
]
