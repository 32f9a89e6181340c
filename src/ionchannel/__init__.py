"""Idealization of single-channel ion current recordings."""

__version__ = "0.1.0"
