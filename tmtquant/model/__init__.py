"""
Data models and enumerations for the tmtquant package.

This module provides enumerations and data classes for:
- Channel normalization methods
- Feature filter configuration
"""

from tmtquant.model.normalization import NormalizationMethod
from tmtquant.model.filters import FeatureFilterConfig

__all__ = [
    # Normalization
    "NormalizationMethod",
    # Filters
    "FeatureFilterConfig",
]
