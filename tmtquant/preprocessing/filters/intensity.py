"""
Intensity-based feature filters.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from tmtquant.core.exceptions import ConfigurationError
from tmtquant.core.logger import get_logger
from tmtquant.preprocessing.filters.base import BaseFilter
from tmtquant.preprocessing.filters.enums import FilterLevel


logger = get_logger("tmtquant.preprocessing.filters.intensity")


def top_n_log2_mean(df: pd.DataFrame, channel_columns: Sequence[str], n: int = 3) -> pd.Series:
    """
    Mean of the ``n`` largest log2 intensities of each row.

    Rows with fewer than ``n`` observed channels average what they have; rows
    without any observed channel get NaN.

    Parameters
    ----------
    df : pd.DataFrame
        Feature table.
    channel_columns : Sequence[str]
        Intensity columns.
    n : int, optional
        Number of values averaged.

    Returns
    -------
    pd.Series
        Top-N mean per row.
    """
    values = df[list(channel_columns)].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        logged = np.where(values > 0, np.log2(values), np.nan)

    # NaN sorts last, so the largest observed values come first after negation
    ordered = -np.sort(-logged, axis=1)[:, :n]
    counts = np.sum(~np.isnan(ordered), axis=1)
    sums = np.nansum(ordered, axis=1)
    with np.errstate(invalid="ignore", divide="ignore"):
        means = np.where(counts > 0, sums / counts, np.nan)
    return pd.Series(means, index=df.index)


class ValidValuesFilter(BaseFilter):
    """Keep features with enough observed channels in at least one group."""

    def __init__(
        self,
        channel_columns: Sequence[str],
        groups: Sequence[str],
        min_valid_values: int = 2,
    ):
        """
        Initialize the filter.

        Parameters
        ----------
        channel_columns : Sequence[str]
            Intensity columns, in channel order.
        groups : Sequence[str]
            Group label of each channel.
        min_valid_values : int, optional
            Observed channels required within a single group.
        """
        if len(channel_columns) != len(groups):
            raise ConfigurationError(
                f"{len(groups)} group labels for {len(channel_columns)} channel columns"
            )
        self.channel_columns = list(channel_columns)
        self.groups = list(groups)
        self.min_valid_values = min_valid_values

    @property
    def name(self) -> str:
        return "ValidValuesFilter"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.INTENSITY

    def mask(self, df: pd.DataFrame) -> pd.Series:
        values = df[self.channel_columns].to_numpy(dtype=float)
        observed = np.nan_to_num(values, nan=0.0) > 0
        groups = np.asarray(self.groups)

        keep = np.zeros(len(df), dtype=bool)
        for group in pd.unique(groups):
            in_group = groups == group
            keep |= observed[:, in_group].sum(axis=1) >= self.min_valid_values
        return pd.Series(keep, index=df.index)

    def details(self) -> dict:
        return {"min_valid_values": self.min_valid_values}


class TopNIntensityFilter(BaseFilter):
    """
    Filter features by the mean of their top-N log2 intensities.

    Either an absolute log2 cutoff or a quantile of the top-N means is used.
    The quantile cutoff is computed on the first table the filter sees and
    then kept, so re-applying the filter changes nothing.
    """

    def __init__(
        self,
        channel_columns: Sequence[str],
        n: int = 3,
        min_log2_intensity: Optional[float] = None,
        quantile: Optional[float] = None,
    ):
        """
        Initialize the filter.

        Parameters
        ----------
        channel_columns : Sequence[str]
            Intensity columns.
        n : int, optional
            Number of most intense channels averaged.
        min_log2_intensity : float, optional
            Absolute cutoff on the top-N log2 mean.
        quantile : float, optional
            Quantile of the top-N means used as cutoff.
        """
        if (min_log2_intensity is None) == (quantile is None):
            raise ValueError("Give exactly one of min_log2_intensity or quantile")
        self.channel_columns = list(channel_columns)
        self.n = n
        self.min_log2_intensity = min_log2_intensity
        self.quantile = quantile
        self.cutoff_: Optional[float] = min_log2_intensity

    @property
    def name(self) -> str:
        return "TopNIntensityFilter"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.INTENSITY

    def mask(self, df: pd.DataFrame) -> pd.Series:
        means = top_n_log2_mean(df, self.channel_columns, self.n)

        if self.cutoff_ is None:
            observed = means.dropna()
            self.cutoff_ = float(np.quantile(observed, self.quantile)) if len(observed) else np.inf
            logger.debug(
                "%s: %.3f quantile of top-%d log2 means is %.3f",
                self.name,
                self.quantile,
                self.n,
                self.cutoff_,
            )

        return (means >= self.cutoff_).fillna(False)

    def details(self) -> dict:
        return {
            "n": self.n,
            "min_log2_intensity": self.min_log2_intensity,
            "quantile": self.quantile,
            "cutoff": self.cutoff_,
        }
