"""Utilities for inspecting PNG chunks, filter types and deflate streams, ICC and chromaticity data, with BMP and gzip helpers."""

__version__ = "0.1.0"