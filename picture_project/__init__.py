"""Responsive picture generation from a single source image."""

__version__ = "0.1.0"
