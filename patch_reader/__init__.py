"""Unified and context diff reader."""

__version__ = "0.1.0"
