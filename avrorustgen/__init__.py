"""Avro schema parsing and rendering of Rust type definitions for them."""

__version__ = "0.1.0"

__all__ = ["__version__"]