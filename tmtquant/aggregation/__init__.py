"""
PSM to feature aggregation for the tmtquant package.
"""

from tmtquant.aggregation.psm import PSMAggregator, filter_psms, weighted_mean
from tmtquant.aggregation.sites import expand_site_multiplicity

__all__ = [
    "PSMAggregator",
    "filter_psms",
    "weighted_mean",
    "expand_site_multiplicity",
]
