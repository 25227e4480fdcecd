"""
Processors package - amplitude processing for display.

Includes windowed AGC and the normalization strategies used by rendering.
"""
