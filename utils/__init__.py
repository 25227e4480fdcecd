"""Utilities package - byte reads, text encoding and checked arithmetic."""
