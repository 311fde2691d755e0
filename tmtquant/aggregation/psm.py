"""
PSM to feature aggregation.

This module sums PSM reporter intensities into protein or site features and
propagates the PSM quality metrics (EIL, PPF) as intensity-weighted means.
"""

import warnings
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from tmtquant.core.constants import (
    PSMS_FOUND,
    PSM_COUNT,
    WEIGHTED_EIL,
    WEIGHTED_PPF,
    aggregated_column,
    channel_label,
    split_ids,
)
from tmtquant.core.exceptions import ConfigurationError, DataIntegrityWarning
from tmtquant.core.logger import get_logger, log_execution_time
from tmtquant.model.aggregation import AggregationConfig


logger = get_logger("tmtquant.aggregation.psm")


def filter_psms(psm_table: pd.DataFrame, min_ppf: float, ppf_column: str) -> pd.DataFrame:
    """
    Remove PSMs whose precursor purity fraction is below ``min_ppf``.

    PSMs without a PPF are removed as well. Features referencing only
    removed PSMs are later flagged by the aggregator.
    """
    keep = psm_table[ppf_column] >= min_ppf
    filtered = psm_table[keep].copy()
    logger.info(
        "PPF >= %.2f kept %d of %d PSMs", min_ppf, len(filtered), len(psm_table)
    )
    return filtered


def weighted_mean(values: np.ndarray, weights: np.ndarray) -> float:
    """
    Weighted mean over entries with a positive weight and a non-missing value.

    Returns NaN when no entry qualifies.
    """
    usable = (weights > 0) & ~np.isnan(values)
    if not usable.any():
        return np.nan
    return float(np.sum(values[usable] * weights[usable]) / np.sum(weights[usable]))


class PSMAggregator:
    """
    Aggregate PSM reporter intensities into feature rows.

    Each feature references its PSMs through a semicolon-delimited id list.
    The aggregate of a channel is the sum over the resolved PSMs; the feature
    EIL and PPF are the PSM values weighted by each PSM's share of the total
    signal. Features are processed independently of each other.
    """

    def __init__(
        self,
        psm_table: pd.DataFrame,
        channel_columns: Sequence[str],
        config: Optional[AggregationConfig] = None,
        channel_set: str = "corrected",
        quality_metrics: bool = True,
    ):
        """
        Initialize the aggregator.

        Parameters
        ----------
        psm_table : pd.DataFrame
            PSM table indexed by string PSM id.
        channel_columns : Sequence[str]
            Reporter intensity columns of the PSM table, in channel order.
        config : AggregationConfig, optional
            Column names and aggregation options.
        channel_set : str, optional
            Prefix of the aggregated intensity columns.
        quality_metrics : bool, optional
            Compute the weighted EIL and PPF columns and warn about
            unresolved or signal-free features. Disable for a channel set
            whose intensities are only carried along.
        """
        self.config = config or AggregationConfig()
        self.channel_columns = list(channel_columns)
        self.channel_set = channel_set
        self.quality_metrics = quality_metrics

        required = self.channel_columns + [self.config.eil_column, self.config.ppf_column]
        if self.config.use_ms2_floor:
            required.append(self.config.floor_column)
        missing = [col for col in required if col not in psm_table.columns]
        if missing:
            raise ConfigurationError(f"PSM table is missing columns: {missing}")
        if not self.channel_columns:
            raise ConfigurationError("No reporter channel columns to aggregate")

        psms = psm_table.copy()
        psms.index = psms.index.astype(str)
        self._row_of = {psm_id: i for i, psm_id in enumerate(psms.index)}
        self._intensities = psms[self.channel_columns].to_numpy(dtype=float)
        self._eil = psms[self.config.eil_column].to_numpy(dtype=float)
        self._ppf = psms[self.config.ppf_column].to_numpy(dtype=float)
        self._floor = (
            psms[self.config.floor_column].to_numpy(dtype=float)
            if self.config.use_ms2_floor
            else None
        )
        self._modifications = (
            psms[self.config.psm_modification_column].to_numpy()
            if self.config.psm_modification_column in psms.columns
            else None
        )

    @property
    def output_columns(self) -> List[str]:
        """Aggregated intensity column names, in channel order."""
        return [
            aggregated_column(self.channel_set, channel_label(col))
            for col in self.channel_columns
        ]

    def resolve(self, psm_ids, modification_count=None) -> List[int]:
        """
        Resolve an id list to PSM row positions.

        Ids missing from the PSM table (e.g. removed by PSM filtering) are
        skipped. When a modification count is given and the PSM table has a
        modification-count column, only PSMs with that count are kept.
        """
        rows = []
        seen = set()
        for psm_id in split_ids(psm_ids):
            row = self._row_of.get(psm_id)
            if row is None or row in seen:
                continue
            seen.add(row)
            rows.append(row)

        if modification_count is not None and self._modifications is not None:
            rows = [row for row in rows if self._modifications[row] == modification_count]
        return rows

    def aggregate_feature(self, psm_ids, modification_count=None) -> dict:
        """
        Aggregate the PSMs of a single feature.

        Parameters
        ----------
        psm_ids : str
            Semicolon-delimited PSM identifiers.
        modification_count : int, optional
            Modification state of an expanded site row.

        Returns
        -------
        dict
            Aggregated intensities, weighted EIL and PPF, provenance flag and
            the number of contributing PSMs. The ``zero_signal`` key is True
            when the PSMs resolved but carry no signal at all.
        """
        rows = self.resolve(psm_ids, modification_count)
        n_channels = len(self.channel_columns)

        if not rows:
            return {
                "intensities": np.zeros(n_channels),
                "eil": 0.0,
                "ppf": 0.0,
                "found": False,
                "count": 0,
                "zero_signal": False,
            }

        sub = self._intensities[rows]
        sub = np.where(sub > 0, sub, np.nan)

        row_sums = np.nansum(sub, axis=1)
        total = row_sums.sum()
        zero_signal = not total > 0
        if zero_signal or not self.quality_metrics:
            eil = ppf = np.nan
        else:
            weights = row_sums / total
            eil = weighted_mean(self._eil[rows], weights)
            ppf = weighted_mean(self._ppf[rows], weights)

        if self._floor is not None:
            floors = self._floor[rows][:, np.newaxis]
            sub = np.where(np.isnan(sub), floors, sub)

        return {
            "intensities": np.nansum(sub, axis=0),
            "eil": eil,
            "ppf": ppf,
            "found": True,
            "count": len(rows),
            "zero_signal": zero_signal,
        }

    @log_execution_time(logger)
    def aggregate(self, feature_table: pd.DataFrame) -> pd.DataFrame:
        """
        Aggregate every row of a feature table.

        Parameters
        ----------
        feature_table : pd.DataFrame
            Protein or site table with a PSM id column.

        Returns
        -------
        pd.DataFrame
            Copy of the feature table with the aggregated intensity columns,
            ``PSMs found`` and ``PSM count`` added, plus ``EIL`` and ``PPF``
            when quality metrics are enabled.

        Warns
        -----
        DataIntegrityWarning
            Once for all features whose PSM ids resolve to no row, and once
            for all features whose PSMs carry no signal.
        """
        ids_column = self.config.psm_ids_column
        if ids_column not in feature_table.columns:
            raise ConfigurationError(f"Feature table has no '{ids_column}' column")

        modification_column = self.config.feature_modification_column
        use_modifications = modification_column in feature_table.columns
        if use_modifications and self._modifications is None:
            raise ConfigurationError(
                f"Feature table has modification states in '{modification_column}' but the "
                f"PSM table has no '{self.config.psm_modification_column}' column to match them"
            )

        id_lists = feature_table[ids_column].to_numpy()
        modifications = (
            feature_table[modification_column].to_numpy()
            if use_modifications
            else [None] * len(feature_table)
        )

        results = [
            self.aggregate_feature(psm_ids, modification_count)
            for psm_ids, modification_count in zip(id_lists, modifications)
        ]

        result = feature_table.copy()
        n_channels = len(self.channel_columns)
        intensities = (
            np.vstack([r["intensities"] for r in results])
            if results
            else np.empty((0, n_channels))
        )
        for i, col in enumerate(self.output_columns):
            result[col] = intensities[:, i]
        if self.quality_metrics:
            result[WEIGHTED_EIL] = [r["eil"] for r in results]
            result[WEIGHTED_PPF] = [r["ppf"] for r in results]
        result[PSMS_FOUND] = [r["found"] for r in results]
        result[PSM_COUNT] = [r["count"] for r in results]

        not_found = sum(1 for r in results if not r["found"])
        zero_signal = sum(1 for r in results if r["zero_signal"])
        if not_found and self.quality_metrics:
            warnings.warn(
                f"{not_found} of {len(results)} features reference no PSM present after "
                f"PSM filtering; their {self.channel_set} intensities are zero",
                DataIntegrityWarning,
            )
        if zero_signal and self.quality_metrics:
            warnings.warn(
                f"{zero_signal} features have no {self.channel_set} reporter signal in any "
                f"of their PSMs; their weighted EIL and PPF are undefined (NaN)",
                DataIntegrityWarning,
            )

        logger.info("Aggregated %d features over %d channels", len(result), n_channels)
        return result

    def __repr__(self) -> str:
        return (
            f"PSMAggregator(channel_set='{self.channel_set}', "
            f"channels={len(self.channel_columns)}, use_ms2_floor={self.config.use_ms2_floor}, "
            f"quality_metrics={self.quality_metrics})"
        )
