"""
Reporter intensity correction for the tmtquant package.
"""

from tmtquant.correction.impurity import (
    ImpurityCorrector,
    read_impurity_matrix,
    identity_matrix,
)

__all__ = [
    "ImpurityCorrector",
    "read_impurity_matrix",
    "identity_matrix",
]
