"""
Feature table filters for the tmtquant package.

This module provides the ordered filters applied to aggregated protein and
site tables:
- Identification filters (contaminants, reverse hits, scores, peptide counts)
- PSM provenance filtering
- Intensity filters (valid values per group, top-N intensity)
"""

from tmtquant.preprocessing.filters.base import BaseFilter, FilterResult
from tmtquant.preprocessing.filters.enums import TableType, FilterLevel
from tmtquant.preprocessing.filters.pipeline import FilterPipeline
from tmtquant.preprocessing.filters.feature import (
    ContaminantReverseFilter,
    OnlyBySiteFilter,
    MinScoreFilter,
    MinPeptideFilter,
    ProvenanceFilter,
)
from tmtquant.preprocessing.filters.intensity import (
    ValidValuesFilter,
    TopNIntensityFilter,
    top_n_log2_mean,
)
from tmtquant.preprocessing.filters.io import (
    load_filter_config,
    save_filter_config,
    generate_example_config,
)
from tmtquant.preprocessing.filters.factory import (
    create_identification_filters,
    create_intensity_filters,
    get_filter_pipeline,
)

__all__ = [
    # Base classes
    "BaseFilter",
    "FilterResult",
    "FilterPipeline",
    # Enums
    "TableType",
    "FilterLevel",
    # Filters
    "ContaminantReverseFilter",
    "OnlyBySiteFilter",
    "MinScoreFilter",
    "MinPeptideFilter",
    "ProvenanceFilter",
    "ValidValuesFilter",
    "TopNIntensityFilter",
    "top_n_log2_mean",
    # I/O functions
    "load_filter_config",
    "save_filter_config",
    "generate_example_config",
    # Factory functions
    "create_identification_filters",
    "create_intensity_filters",
    "get_filter_pipeline",
]
