"""
Per-feature one-way ANOVA across sample groups.
"""

import warnings
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from tmtquant.core.constants import ANOVA_P, ANOVA_ADJ_P
from tmtquant.core.exceptions import ConfigurationError, StatisticalFitWarning
from tmtquant.core.logger import get_logger, log_execution_time
from tmtquant.statistics.ebayes import bh_adjust


logger = get_logger("tmtquant.statistics.anova")


def check_groups(log2_df: pd.DataFrame, groups: Sequence[str]) -> np.ndarray:
    """Validate that there is one group label per column and return them as an array."""
    groups = np.asarray(list(groups), dtype=object)
    if len(groups) != log2_df.shape[1]:
        raise ConfigurationError(
            f"{len(groups)} group labels for {log2_df.shape[1]} sample columns"
        )
    return groups


def _row_p_value(values: np.ndarray, group_masks) -> float:
    samples = []
    for mask in group_masks:
        observed = values[mask]
        observed = observed[~np.isnan(observed)]
        if observed.size:
            samples.append(observed)

    n_observed = sum(s.size for s in samples)
    if len(samples) < 2 or n_observed - len(samples) < 1:
        return np.nan

    with warnings.catch_warnings():
        # Constant groups give a NaN or infinite F; the row is counted below
        warnings.simplefilter("ignore")
        p_value = stats.f_oneway(*samples).pvalue
    return float(p_value)


@log_execution_time(logger)
def anova(
    log2_df: pd.DataFrame,
    groups: Sequence[str],
    include_groups: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    One-way ANOVA of each row across sample groups.

    Parameters
    ----------
    log2_df : pd.DataFrame
        Log2 intensities, one column per sample, NaN for missing.
    groups : Sequence[str]
        Group label of each column.
    include_groups : Sequence[str], optional
        Groups entering the test. All groups by default.

    Returns
    -------
    pd.DataFrame
        ``ANOVA p-value`` and ``ANOVA adj. p-value`` per row. Rows with fewer
        than two observed groups or no residual degree of freedom get NaN.
    """
    groups = check_groups(log2_df, groups)
    available = list(pd.unique(groups))

    if include_groups is None:
        include_groups = available
    unknown = [g for g in include_groups if g not in available]
    if unknown:
        raise ConfigurationError(f"Unknown ANOVA groups {unknown}; available: {available}")
    if len(include_groups) < 2:
        raise ConfigurationError("ANOVA needs at least two groups")

    values = log2_df.to_numpy(dtype=float)
    group_masks = [groups == g for g in include_groups]
    p_values = np.array([_row_p_value(row, group_masks) for row in values])

    not_fitted = int(np.isnan(p_values).sum())
    if not_fitted:
        warnings.warn(
            f"ANOVA could not be computed for {not_fitted} of {len(p_values)} features",
            StatisticalFitWarning,
        )

    logger.info("ANOVA over groups %s for %d features", list(include_groups), len(p_values))
    return pd.DataFrame(
        {ANOVA_P: p_values, ANOVA_ADJ_P: bh_adjust(p_values)},
        index=log2_df.index,
    )
