"""
Normalization implementations for the tmtquant package.

This module provides cyclic-loess, median and size-factor normalization of
reporter channel intensity matrices.
"""

from tmtquant.normalization.channel import (
    to_log2,
    from_log2,
    median_normalize,
    cyclic_loess_normalize,
    size_factor_normalize,
    estimate_size_factors,
    read_size_factors,
    write_size_factors,
)

__all__ = [
    "to_log2",
    "from_log2",
    "median_normalize",
    "cyclic_loess_normalize",
    "size_factor_normalize",
    "estimate_size_factors",
    "read_size_factors",
    "write_size_factors",
]
