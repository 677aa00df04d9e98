"""Data claim submission and location catalog service."""

__version__ = "0.1.0"
