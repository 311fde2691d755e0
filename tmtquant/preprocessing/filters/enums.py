"""
Enumeration types for feature filters.
"""

from enum import Enum, auto


class TableType(Enum):
    """Granularity of a feature table."""

    PROTEIN = auto()
    SITE = auto()

    @classmethod
    def from_str(cls, name: str) -> "TableType":
        """Convert string to enum value (case-insensitive)."""
        name_ = name.lower()
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(f"Unknown table type: {name}")


class FilterLevel(Enum):
    """What a filter looks at to decide membership."""

    IDENTIFICATION = auto()  # Search-engine flags and scores
    PROVENANCE = auto()  # Aggregation bookkeeping
    INTENSITY = auto()  # Reporter intensities

    @classmethod
    def from_str(cls, name: str) -> "FilterLevel":
        """Convert string to enum value (case-insensitive)."""
        name_ = name.lower()
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise KeyError(f"Unknown filter level: {name}")
