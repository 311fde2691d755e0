"""
Core modules for the tmtquant package.

This module provides column constants, logging helpers and the error
types shared by all pipeline stages.
"""

from tmtquant.core.constants import (
    PSM_ID,
    EIL,
    PPF,
    MIN_MS2_INTENSITY,
    PSM_IDS,
    PSMS_FOUND,
    PSM_COUNT,
    UNCORRECTED,
    CORRECTED,
    CHANNEL_SETS,
    TABLE_PROTEIN,
    TABLE_SITE,
    select_columns,
    channel_label,
    split_ids,
)
from tmtquant.core.exceptions import (
    ConfigurationError,
    DataIntegrityWarning,
    StatisticalFitWarning,
)
from tmtquant.core.logger import get_logger, log_execution_time

__all__ = [
    # Constants
    "PSM_ID",
    "EIL",
    "PPF",
    "MIN_MS2_INTENSITY",
    "PSM_IDS",
    "PSMS_FOUND",
    "PSM_COUNT",
    "UNCORRECTED",
    "CORRECTED",
    "CHANNEL_SETS",
    "TABLE_PROTEIN",
    "TABLE_SITE",
    "select_columns",
    "channel_label",
    "split_ids",
    # Errors
    "ConfigurationError",
    "DataIntegrityWarning",
    "StatisticalFitWarning",
    # Logger
    "get_logger",
    "log_execution_time",
]
