"""
Preprocessing for the tmtquant package.

This module re-exports the feature table filters.
"""

from tmtquant.preprocessing.filters import (
    BaseFilter,
    FilterResult,
    FilterPipeline,
    TableType,
    FilterLevel,
    get_filter_pipeline,
    load_filter_config,
)

__all__ = [
    "BaseFilter",
    "FilterResult",
    "FilterPipeline",
    "TableType",
    "FilterLevel",
    "get_filter_pipeline",
    "load_filter_config",
]
