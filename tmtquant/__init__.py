"""
tmtquant - TMT reporter ion quantification.

This package turns PSM-level isobaric-label reporter intensities from
MaxQuant-style tables into corrected, normalized and statistically tested
protein-level or modification-site-level abundance tables.
"""

__version__ = "0.1.0"

# Import logging configuration
from tmtquant.core.logging_config import initialize_logging

# Users can override these settings by configuring the "tmtquant" logger
initialize_logging()

from tmtquant.core.exceptions import (
    ConfigurationError,
    DataIntegrityWarning,
    StatisticalFitWarning,
)
from tmtquant.plotting import is_plotting_available

__all__ = [
    "__version__",
    "ConfigurationError",
    "DataIntegrityWarning",
    "StatisticalFitWarning",
    "is_plotting_available",
]
