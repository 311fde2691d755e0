"""
Moderated two-group t-tests with optional within-block correlation.

Each feature is fitted by least squares on its observed samples, using a
cell-means design of the two compared groups. Residual variances are
moderated by empirical Bayes before computing t-statistics. When samples
are blocked (e.g. several channels from the same subject), a consensus
within-block correlation is estimated across features and every feature is
fitted by generalized least squares with that correlation.
"""

import warnings
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import linalg, stats
from scipy.optimize import minimize_scalar

from tmtquant.core.exceptions import ConfigurationError, StatisticalFitWarning
from tmtquant.core.logger import get_logger, log_execution_time
from tmtquant.statistics.anova import check_groups
from tmtquant.statistics.ebayes import squeeze_var, bh_adjust


logger = get_logger("tmtquant.statistics.moderated")

MAX_CORRELATION = 0.99


@dataclass
class ModeratedTestResult:
    """
    Result of a moderated comparison.

    Attributes
    ----------
    table : pd.DataFrame
        ``logFC``, ``AveExpr``, ``t``, ``p-value`` and ``adj. p-value``
        columns, suffixed with the comparison label ``B/A``.
    correlation : float, optional
        Consensus within-block correlation, None without blocking.
    prior_var : float
        Prior variance of the empirical Bayes moderation.
    prior_df : float
        Prior degrees of freedom of the empirical Bayes moderation.
    """

    table: pd.DataFrame
    correlation: Optional[float]
    prior_var: float
    prior_df: float


def comparison_label(group_a: str, group_b: str) -> str:
    return f"{group_b}/{group_a}"


def _correlation_matrix(same_block: np.ndarray, rho: float) -> np.ndarray:
    n = same_block.shape[0]
    return (1.0 - rho) * np.eye(n) + rho * same_block


def _whiten(y: np.ndarray, X: np.ndarray, V: Optional[np.ndarray]):
    """Transform a GLS problem with covariance V into an OLS problem."""
    if V is None:
        return y, X, 0.0
    L = linalg.cholesky(V, lower=True)
    y_w = linalg.solve_triangular(L, y, lower=True)
    X_w = linalg.solve_triangular(L, X, lower=True)
    return y_w, X_w, 2.0 * np.sum(np.log(np.diag(L)))


def _fit_row(
    y: np.ndarray, X: np.ndarray, V: Optional[np.ndarray]
) -> Tuple[np.ndarray, float, np.ndarray]:
    """Return coefficients, residual sum of squares and unscaled coefficient covariance."""
    y_w, X_w, _ = _whiten(y, X, V)
    xtx_inv = np.linalg.inv(X_w.T @ X_w)
    beta = xtx_inv @ X_w.T @ y_w
    resid = y_w - X_w @ beta
    return beta, float(resid @ resid), xtx_inv


def _negative_reml(rho: float, y: np.ndarray, X: np.ndarray, same_block: np.ndarray) -> float:
    """Negative restricted log-likelihood of a row, profiled over the variance."""
    try:
        y_w, X_w, logdet_v = _whiten(y, X, _correlation_matrix(same_block, rho))
    except linalg.LinAlgError:
        return np.inf
    xtx = X_w.T @ X_w
    beta = np.linalg.solve(xtx, X_w.T @ y_w)
    resid = y_w - X_w @ beta
    rss = float(resid @ resid)
    if not rss > 0:
        return np.inf
    n, p = X.shape
    return 0.5 * (logdet_v + np.linalg.slogdet(xtx)[1] + (n - p) * np.log(rss))


def _is_estimable(observed: np.ndarray, X: np.ndarray) -> bool:
    X_obs = X[observed]
    return bool((X_obs.sum(axis=0) >= 1).all() and observed.sum() - X.shape[1] >= 1)


def estimate_block_correlation(
    values: np.ndarray,
    X: np.ndarray,
    blocks: np.ndarray,
    trim: float = 0.15,
) -> float:
    """
    Consensus within-block correlation across features.

    For every feature with a repeated block among its observed samples, the
    correlation maximizing the REML likelihood is found. The consensus is
    the trimmed mean of the Fisher-transformed (atanh) per-feature values,
    transformed back.

    Parameters
    ----------
    values : np.ndarray
        Log2 intensities, features x samples, NaN for missing.
    X : np.ndarray
        Design matrix, samples x coefficients.
    blocks : np.ndarray
        Block label of each sample.
    trim : float, optional
        Fraction trimmed from each end before averaging.

    Returns
    -------
    float
        Consensus correlation. 0.0 when no feature is informative.
    """
    blocks = np.asarray(blocks, dtype=object)
    same_block = (blocks[:, np.newaxis] == blocks[np.newaxis, :]).astype(float)

    estimates = []
    for row in values:
        observed = ~np.isnan(row)
        if not _is_estimable(observed, X):
            continue
        block_sizes = pd.Series(blocks[observed]).value_counts()
        largest = int(block_sizes.max())
        if largest < 2:
            continue

        lower = max(-1.0 / (largest - 1) + 0.01, -MAX_CORRELATION)
        sub_block = same_block[np.ix_(observed, observed)]
        fit = minimize_scalar(
            _negative_reml,
            bounds=(lower, MAX_CORRELATION),
            args=(row[observed], X[observed], sub_block),
            method="bounded",
        )
        if fit.success and np.isfinite(fit.fun):
            estimates.append(fit.x)

    if not estimates:
        warnings.warn(
            "No feature has repeated observed blocks; within-block correlation set to 0",
            StatisticalFitWarning,
        )
        return 0.0

    consensus = float(np.tanh(stats.trim_mean(np.arctanh(estimates), trim)))
    logger.info(
        "Consensus within-block correlation %.3f from %d features", consensus, len(estimates)
    )
    return consensus


@log_execution_time(logger)
def moderated_t_test(
    log2_df: pd.DataFrame,
    groups: Sequence[str],
    group_a: str,
    group_b: str,
    blocks: Optional[Sequence[str]] = None,
    trim: float = 0.15,
) -> ModeratedTestResult:
    """
    Empirical Bayes moderated t-test of ``group_b`` against ``group_a``.

    Parameters
    ----------
    log2_df : pd.DataFrame
        Log2 intensities, one column per sample, NaN for missing.
    groups : Sequence[str]
        Group label of each column.
    group_a : str
        Reference group.
    group_b : str
        Group compared against the reference; positive logFC means higher
        in ``group_b``.
    blocks : Sequence[str], optional
        Block label of each column. Enables the within-block correlation.
    trim : float, optional
        Trimming fraction of the consensus correlation.

    Returns
    -------
    ModeratedTestResult
        Per-feature statistics and the fitted hyperparameters.

    Raises
    ------
    ConfigurationError
        If a group is unknown, the groups are identical, or the blocks have
        no repeated level among the compared samples.
    """
    groups = check_groups(log2_df, groups)
    available = list(pd.unique(groups))
    for group in (group_a, group_b):
        if group not in available:
            raise ConfigurationError(f"Unknown group '{group}'; available: {available}")
    if group_a == group_b:
        raise ConfigurationError(f"Cannot compare group '{group_a}' with itself")

    selected = (groups == group_a) | (groups == group_b)
    values = log2_df.to_numpy(dtype=float)[:, selected]
    selected_groups = groups[selected]
    X = np.column_stack([selected_groups == group_a, selected_groups == group_b]).astype(float)

    correlation = None
    same_block = None
    if blocks is not None:
        blocks = np.asarray(list(blocks), dtype=object)
        if len(blocks) != log2_df.shape[1]:
            raise ConfigurationError(
                f"{len(blocks)} block labels for {log2_df.shape[1]} sample columns"
            )
        selected_blocks = blocks[selected]
        if pd.Series(selected_blocks).value_counts().max() < 2:
            raise ConfigurationError(
                "Blocking factor has no repeated level among the compared samples"
            )
        correlation = estimate_block_correlation(values, X, selected_blocks, trim)
        same_block = (
            selected_blocks[:, np.newaxis] == selected_blocks[np.newaxis, :]
        ).astype(float)

    n_rows = values.shape[0]
    contrast = np.array([-1.0, 1.0])
    logfc = np.full(n_rows, np.nan)
    s2 = np.full(n_rows, np.nan)
    df_residual = np.full(n_rows, np.nan)
    unscaled = np.full(n_rows, np.nan)

    for i, row in enumerate(values):
        observed = ~np.isnan(row)
        if not _is_estimable(observed, X):
            continue
        V = None
        if correlation is not None:
            V = _correlation_matrix(same_block[np.ix_(observed, observed)], correlation)
        beta, rss, xtx_inv = _fit_row(row[observed], X[observed], V)
        dof = observed.sum() - X.shape[1]
        logfc[i] = contrast @ beta
        s2[i] = rss / dof
        df_residual[i] = dof
        unscaled[i] = contrast @ xtx_inv @ contrast

    not_fitted = int(np.isnan(logfc).sum())
    if not_fitted:
        warnings.warn(
            f"Comparison {comparison_label(group_a, group_b)}: {not_fitted} of {n_rows} "
            f"features lack an observation per group or a residual degree of freedom",
            StatisticalFitWarning,
        )

    posterior, prior_var, prior_df = squeeze_var(s2, df_residual)
    pooled_df = np.nansum(df_residual)
    if np.isfinite(prior_df):
        df_total = np.minimum(df_residual + prior_df, pooled_df)
    else:
        df_total = np.where(np.isnan(df_residual), np.nan, pooled_df)

    with np.errstate(divide="ignore", invalid="ignore"):
        t_stat = logfc / np.sqrt(posterior * unscaled)
    p_values = 2.0 * stats.t.sf(np.abs(t_stat), df=df_total)

    observed_counts = np.sum(~np.isnan(values), axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        ave_expr = np.where(
            observed_counts > 0, np.nansum(values, axis=1) / observed_counts, np.nan
        )

    label = comparison_label(group_a, group_b)
    table = pd.DataFrame(
        {
            f"logFC {label}": logfc,
            f"AveExpr {label}": ave_expr,
            f"t {label}": t_stat,
            f"p-value {label}": p_values,
            f"adj. p-value {label}": bh_adjust(p_values),
        },
        index=log2_df.index,
    )

    logger.info(
        "Comparison %s: %d features tested, prior df %.2f",
        label,
        n_rows - not_fitted,
        prior_df,
    )
    return ModeratedTestResult(
        table=table, correlation=correlation, prior_var=prior_var, prior_df=prior_df
    )
