"""Guided decision wizard: topic -> generated questions -> structured recommendation."""

__version__ = "1.0.0"
