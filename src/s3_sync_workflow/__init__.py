"""Durable multipart object transfer between S3-compatible stores."""

__version__ = "0.1.0"

__all__ = ["__version__"]
