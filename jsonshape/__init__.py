"""Incremental schema inference for streams of loosely structured JSON records."""

__version__ = "0.1.0"
