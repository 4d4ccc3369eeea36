"""Normalization helpers for Resource Graph rows."""

from .graph_rows import GraphRowNormalizer, to_text

__all__ = ["GraphRowNormalizer", "to_text"]
