"""Nursery production tracker backend."""

__version__ = "1.0.0"
