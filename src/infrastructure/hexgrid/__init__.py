"""Infrastructure adapters for the coverage bounded context's hex grid."""

from .h3_adapter import H3HexGrid

__all__ = ["H3HexGrid"]
