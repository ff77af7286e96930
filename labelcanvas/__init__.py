"""Annotation canvas controller with a reference annotation store."""

__version__ = "0.1.0"
