"""
Channel-level normalization of reporter intensity matrices.

All functions take a features x channels DataFrame of linear intensities and
return a new DataFrame of the same shape. Values <= 0 and NaN are missing;
missing cells stay missing after normalization.
"""

import warnings
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess

from tmtquant.core.exceptions import ConfigurationError, DataIntegrityWarning
from tmtquant.core.logger import get_logger

logger = get_logger("tmtquant.normalization.channel")

# Fewest shared rows for which a loess curve is fitted between two channels
MIN_LOESS_POINTS = 3
COUNT_SCALE = 1000.0


def to_log2(df: pd.DataFrame) -> pd.DataFrame:
    """Log2-transform intensities, mapping <= 0 and NaN to NaN."""
    values = df.to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        logged = np.where(values > 0, np.log2(values), np.nan)
    return pd.DataFrame(logged, index=df.index, columns=df.columns)


def from_log2(df: pd.DataFrame) -> pd.DataFrame:
    """Inverse of :func:`to_log2`; missing stays missing."""
    return pd.DataFrame(np.exp2(df.to_numpy(dtype=float)), index=df.index, columns=df.columns)


def _warn_missing_channels(channels, method: str) -> None:
    for channel in channels:
        warnings.warn(
            f"{method} normalization: channel '{channel}' has no observed values, "
            "its factor is undefined and the channel is left unchanged",
            DataIntegrityWarning,
            stacklevel=3,
        )


def median_normalize(df: pd.DataFrame) -> pd.DataFrame:
    """
    Median-centre every channel in log2 space.

    Each channel is shifted by its median minus the median of all channel
    medians; the shift is a pure per-channel offset.

    Parameters
    ----------
    df : pd.DataFrame
        Linear intensities (features x channels).

    Returns
    -------
    pd.DataFrame
        Normalized linear intensities.
    """
    log2_df = to_log2(df)
    medians = log2_df.median(axis=0, skipna=True)

    undefined = medians.index[medians.isna()]
    if len(undefined):
        _warn_missing_channels(undefined, "Median")

    target = medians.dropna().median()
    shifts = (medians - target).fillna(0.0)
    logger.debug("Median shifts: %s", shifts.round(4).to_dict())

    return from_log2(log2_df - shifts)


def cyclic_loess_normalize(
    df: pd.DataFrame,
    span: float = 0.7,
    iterations: int = 3,
) -> pd.DataFrame:
    """
    Cyclic loess normalization over all channel pairs.

    For every pair of channels, an MA curve is fitted with lowess on the rows
    where both channels are observed; half of the fitted difference is added
    to one channel and subtracted from the other. The full cycle over all
    pairs is repeated ``iterations`` times.

    Parameters
    ----------
    df : pd.DataFrame
        Linear intensities (features x channels).
    span : float, optional
        Fraction of points used for each local fit.
    iterations : int, optional
        Number of passes over all channel pairs.

    Returns
    -------
    pd.DataFrame
        Normalized linear intensities.
    """
    # updated in place below
    values = to_log2(df).to_numpy(dtype=float, copy=True)
    observed = ~np.isnan(values)
    n_channels = values.shape[1]

    for _ in range(iterations):
        for i in range(n_channels - 1):
            for j in range(i + 1, n_channels):
                both = observed[:, i] & observed[:, j]
                if both.sum() < MIN_LOESS_POINTS:
                    logger.debug(
                        "Skipping loess fit for channels %s/%s: %d shared rows",
                        df.columns[i],
                        df.columns[j],
                        both.sum(),
                    )
                    continue

                m = values[both, j] - values[both, i]
                a = (values[both, j] + values[both, i]) / 2.0
                delta = 0.01 * (a.max() - a.min())
                fit = lowess(m, a, frac=span, it=3, delta=delta, return_sorted=False)
                fit = np.where(np.isfinite(fit), fit, 0.0)

                values[both, i] += fit / 2.0
                values[both, j] -= fit / 2.0

    normalized = pd.DataFrame(values, index=df.index, columns=df.columns)
    return from_log2(normalized)


def to_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Integer-like counts ``round(log2(x + 1) * 1000)``; missing stays missing."""
    values = df.to_numpy(dtype=float)
    with np.errstate(invalid="ignore"):
        counts = np.where(values > 0, np.round(np.log2(values + 1.0) * COUNT_SCALE), np.nan)
    return pd.DataFrame(counts, index=df.index, columns=df.columns)


def from_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Inverse of :func:`to_counts`."""
    values = df.to_numpy(dtype=float)
    return pd.DataFrame(np.exp2(values / COUNT_SCALE) - 1.0, index=df.index, columns=df.columns)


def estimate_size_factors(counts: pd.DataFrame) -> pd.Series:
    """
    Median-of-ratios size factors, one per channel.

    The reference is the geometric mean across channels that have data, taken
    over rows with positive counts in all of those channels. Channels without
    any data get NaN.

    Parameters
    ----------
    counts : pd.DataFrame
        Count matrix (features x channels).

    Returns
    -------
    pd.Series
        Size factor per channel.
    """
    values = counts.to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        log_counts = np.log(values)

    has_data = np.any(values > 0, axis=0)
    factors = np.full(values.shape[1], np.nan)

    if has_data.any():
        usable = log_counts[:, has_data]
        complete = np.all(np.isfinite(usable), axis=1)
        if complete.any():
            log_geo_means = usable[complete].mean(axis=1)
            for idx in np.flatnonzero(has_data):
                factors[idx] = np.exp(np.median(log_counts[complete, idx] - log_geo_means))
        else:
            logger.warning("No row is observed in every channel, size factors are undefined")

    return pd.Series(factors, index=counts.columns, name="size_factor")


def write_size_factors(factors: pd.Series, path: Union[str, Path]) -> None:
    """Persist size factors as a two-column TSV (``channel``, ``size_factor``)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    out = pd.DataFrame({"channel": [str(c) for c in factors.index], "size_factor": factors.to_numpy()})
    out.to_csv(path, sep="\t", index=False)
    logger.info("Saved size factors to %s", path)


def read_size_factors(path: Union[str, Path], channels) -> pd.Series:
    """
    Read size factors written by :func:`write_size_factors`.

    Raises
    ------
    ConfigurationError
        If the stored channels differ from ``channels``.
    """
    stored = pd.read_csv(path, sep="\t", dtype={"channel": str})
    expected = [str(c) for c in channels]
    if stored["channel"].tolist() != expected:
        raise ConfigurationError(
            f"Size factors in {path} are for channels {stored['channel'].tolist()}, expected {expected}"
        )
    logger.info("Loaded size factors from %s", path)
    return pd.Series(stored["size_factor"].to_numpy(dtype=float), index=list(channels), name="size_factor")


def size_factor_normalize(
    df: pd.DataFrame,
    factors_path: Optional[Union[str, Path]] = None,
    reuse: bool = False,
) -> pd.DataFrame:
    """
    DESeq-style size-factor normalization.

    Intensities are converted to counts, divided by per-channel size factors
    and converted back to intensities.

    Parameters
    ----------
    df : pd.DataFrame
        Linear intensities (features x channels).
    factors_path : str or Path, optional
        Where the factor vector is written, or read when ``reuse`` is set.
    reuse : bool, optional
        Load the factors from ``factors_path`` instead of estimating them.

    Returns
    -------
    pd.DataFrame
        Normalized linear intensities.
    """
    counts = to_counts(df)

    if reuse and factors_path is not None and Path(factors_path).exists():
        factors = read_size_factors(factors_path, df.columns)
    else:
        if reuse:
            logger.warning(
                "Size factors were requested for reuse but %s does not exist; "
                "estimating them from this data instead",
                factors_path,
            )
        factors = estimate_size_factors(counts)
        if factors_path is not None:
            write_size_factors(factors, factors_path)

    undefined = factors.index[factors.isna()]
    if len(undefined):
        _warn_missing_channels(undefined, "Size-factor")

    logger.debug("Size factors: %s", factors.round(4).to_dict())
    normalized = counts / factors.fillna(1.0)
    return from_counts(normalized)
