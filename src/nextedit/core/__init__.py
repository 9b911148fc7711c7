"""Core position and range types shared by the editor and NES packages."""

from .ranges import Position, PositionEncoding, Range, from_column, normalize_encoding, to_column

__all__ = ["Position", "PositionEncoding", "Range", "from_column", "normalize_encoding", "to_column"]
