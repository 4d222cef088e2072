"""Candle backend: couple-engagement API on Firebase."""

__version__ = "1.0.0"
