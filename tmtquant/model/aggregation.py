"""
Aggregation configuration for the tmtquant package.
"""

from dataclasses import dataclass

from tmtquant.core.constants import (
    PSM_IDS,
    EIL,
    PPF,
    MIN_MS2_INTENSITY,
    PSM_MODIFICATION_COUNT,
    MODIFICATION_COUNT,
)


@dataclass(frozen=True)
class AggregationConfig:
    """
    Column names and options of PSM to feature aggregation.

    Attributes
    ----------
    psm_ids_column : str
        Feature column with the semicolon-delimited PSM identifiers.
    eil_column : str
        PSM column with the estimated interference level.
    ppf_column : str
        PSM column with the precursor purity fraction.
    floor_column : str
        PSM column with the minimum observed MS2 intensity.
    psm_modification_column : str
        PSM column with the number of modifications, if present.
    feature_modification_column : str
        Feature column with the modification count of an expanded site row.
    use_ms2_floor : bool
        Substitute each PSM's minimum MS2 intensity for its missing channels
        before summation.
    """

    psm_ids_column: str = PSM_IDS
    eil_column: str = EIL
    ppf_column: str = PPF
    floor_column: str = MIN_MS2_INTENSITY
    psm_modification_column: str = PSM_MODIFICATION_COUNT
    feature_modification_column: str = MODIFICATION_COUNT
    use_ms2_floor: bool = False
