"""
Unified pipelines for TMT data processing.

This module provides the high-level pipeline that combines correction,
aggregation, filtering, normalization and statistics into a single run.
"""

from tmtquant.model.pipeline import PipelineConfig
from tmtquant.pipeline.psms_to_features import (
    QuantificationPipeline,
    psms_to_features,
    compare_groups,
    log2_samples,
    parse_comparisons,
    size_factors_path,
)

__all__ = [
    "PipelineConfig",
    "QuantificationPipeline",
    "psms_to_features",
    "compare_groups",
    "log2_samples",
    "parse_comparisons",
    "size_factors_path",
]
