"""
Empirical Bayes variance moderation.

Estimates a scaled inverse chi-square prior for per-row residual variances
and shrinks each variance towards it, as limma's ``squeezeVar`` does.
"""

from typing import Tuple

import numpy as np
from scipy.special import digamma, polygamma
from statsmodels.stats.multitest import multipletests


def trigamma_inverse(y: float, tol: float = 1e-8, max_iter: int = 50) -> float:
    """
    Solve ``trigamma(x) = y`` for ``x`` by Newton iteration.

    Parameters
    ----------
    y : float
        Positive target value.
    tol : float, optional
        Relative convergence tolerance.
    max_iter : int, optional
        Maximum number of Newton steps.

    Returns
    -------
    float
        ``x`` with ``trigamma(x) == y``.
    """
    if not y > 0:
        return np.nan
    if y > 1e7:
        return 1.0 / np.sqrt(y)
    if y < 1e-6:
        return 1.0 / y

    x = 0.5 + 1.0 / y
    for _ in range(max_iter):
        tri = polygamma(1, x)
        dif = tri * (1.0 - tri / y) / polygamma(2, x)
        x += dif
        if -dif / x < tol:
            break
    return float(x)


def fit_fdist(s2: np.ndarray, df: np.ndarray) -> Tuple[float, float]:
    """
    Moment estimation of the prior variance and prior degrees of freedom.

    ``s2`` are residual variances with ``df`` degrees of freedom each. Rows
    with a non-finite or non-positive variance or df are ignored.

    Returns
    -------
    Tuple[float, float]
        ``(s0_squared, d0)``. ``d0`` is ``inf`` when the observed variances
        are no more dispersed than sampling noise; both are NaN when no row
        is usable.
    """
    s2 = np.asarray(s2, dtype=float)
    df = np.broadcast_to(np.asarray(df, dtype=float), s2.shape)
    usable = np.isfinite(s2) & (s2 > 0) & np.isfinite(df) & (df > 0)
    x = s2[usable]
    d = df[usable]

    if x.size == 0:
        return np.nan, np.nan

    # Avoid zeros like limma does
    x = np.maximum(x, 1e-5 * np.median(x))
    z = np.log(x)
    e = z - digamma(d / 2.0) + np.log(d / 2.0)
    emean = np.mean(e)

    if x.size < 2:
        return float(np.exp(emean)), np.inf

    evar = np.var(e, ddof=1) - np.mean(polygamma(1, d / 2.0))
    if evar > 0:
        d0 = 2.0 * trigamma_inverse(evar)
        s0_squared = np.exp(emean + digamma(d0 / 2.0) - np.log(d0 / 2.0))
    else:
        d0 = np.inf
        s0_squared = np.exp(emean)

    return float(s0_squared), float(d0)


def squeeze_var(s2: np.ndarray, df: np.ndarray) -> Tuple[np.ndarray, float, float]:
    """
    Shrink residual variances towards the fitted prior.

    Parameters
    ----------
    s2 : np.ndarray
        Residual variances (NaN for rows that could not be fitted).
    df : np.ndarray
        Residual degrees of freedom per row.

    Returns
    -------
    Tuple[np.ndarray, float, float]
        Posterior variances, prior variance and prior df.
    """
    s2 = np.asarray(s2, dtype=float)
    df = np.asarray(df, dtype=float)
    s0_squared, d0 = fit_fdist(s2, df)

    if np.isnan(d0):
        return s2.copy(), s0_squared, d0
    if np.isinf(d0):
        return np.where(np.isnan(s2), np.nan, s0_squared), s0_squared, d0

    posterior = (d0 * s0_squared + df * s2) / (d0 + df)
    return posterior, s0_squared, d0


def bh_adjust(p_values: np.ndarray) -> np.ndarray:
    """Benjamini-Hochberg adjustment over the non-missing p-values; NaN stays NaN."""
    p_values = np.asarray(p_values, dtype=float)
    adjusted = np.full_like(p_values, np.nan)
    valid = ~np.isnan(p_values)
    if valid.any():
        adjusted[valid] = multipletests(p_values[valid], method="fdr_bh")[1]
    return adjusted
