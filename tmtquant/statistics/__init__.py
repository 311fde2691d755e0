"""
Group-comparison statistics for the tmtquant package.

This module provides:
- Per-feature one-way ANOVA
- Empirical Bayes moderated t-tests with optional within-block correlation
"""

from tmtquant.statistics.anova import anova
from tmtquant.statistics.ebayes import fit_fdist, squeeze_var, trigamma_inverse, bh_adjust
from tmtquant.statistics.moderated import (
    ModeratedTestResult,
    moderated_t_test,
    estimate_block_correlation,
)

__all__ = [
    "anova",
    "fit_fdist",
    "squeeze_var",
    "trigamma_inverse",
    "bh_adjust",
    "ModeratedTestResult",
    "moderated_t_test",
    "estimate_block_correlation",
]
