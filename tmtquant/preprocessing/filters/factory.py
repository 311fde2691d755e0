"""
Factory functions for creating feature filters.
"""

from typing import List, Sequence

from tmtquant.model.filters import FeatureFilterConfig
from tmtquant.preprocessing.filters.base import BaseFilter
from tmtquant.preprocessing.filters.enums import TableType
from tmtquant.preprocessing.filters.feature import (
    ContaminantReverseFilter,
    OnlyBySiteFilter,
    MinScoreFilter,
    MinPeptideFilter,
    ProvenanceFilter,
)
from tmtquant.preprocessing.filters.intensity import (
    ValidValuesFilter,
    TopNIntensityFilter,
)
from tmtquant.preprocessing.filters.pipeline import FilterPipeline


def create_identification_filters(
    config: FeatureFilterConfig, table_type: TableType
) -> List[BaseFilter]:
    """
    Create identification filters from configuration.

    Parameters
    ----------
    config : FeatureFilterConfig
        Filter configuration.
    table_type : TableType
        Protein tables use the only-by-site and peptide-count filters, site
        tables the score filter.

    Returns
    -------
    List[BaseFilter]
        Identification filters in application order.
    """
    filters: List[BaseFilter] = []

    if config.remove_contaminants or config.remove_reverse:
        filters.append(
            ContaminantReverseFilter(
                remove_contaminants=config.remove_contaminants,
                remove_reverse=config.remove_reverse,
            )
        )

    if table_type == TableType.PROTEIN:
        if config.remove_only_by_site:
            filters.append(OnlyBySiteFilter())
        filters.append(MinPeptideFilter(min_peptides=config.min_peptides))
    else:
        filters.append(MinScoreFilter(min_score=config.min_site_score))

    return filters


def create_intensity_filters(
    config: FeatureFilterConfig,
    table_type: TableType,
    channel_columns: Sequence[str],
    groups: Sequence[str],
) -> List[BaseFilter]:
    """
    Create intensity filters from configuration.

    Parameters
    ----------
    config : FeatureFilterConfig
        Filter configuration.
    table_type : TableType
        Protein tables use an absolute top-N cutoff, site tables a quantile.
    channel_columns : Sequence[str]
        Intensity columns the filters look at.
    groups : Sequence[str]
        Group label of each channel column.

    Returns
    -------
    List[BaseFilter]
        Intensity filters in application order.
    """
    filters: List[BaseFilter] = [
        ValidValuesFilter(channel_columns, groups, min_valid_values=config.min_valid_values)
    ]

    if table_type == TableType.PROTEIN:
        filters.append(
            TopNIntensityFilter(
                channel_columns,
                n=config.top_n,
                min_log2_intensity=config.min_top3_log2_intensity,
            )
        )
    else:
        filters.append(
            TopNIntensityFilter(channel_columns, n=config.top_n, quantile=config.top3_quantile)
        )

    return filters


def get_filter_pipeline(
    config: FeatureFilterConfig,
    table_type: TableType,
    channel_columns: Sequence[str],
    groups: Sequence[str],
) -> FilterPipeline:
    """
    Create the complete feature filter pipeline from configuration.

    The pipeline applies filters in the following order:
    1. Contaminants and reverse hits
    2. Only-by-site (protein) or minimum score (site)
    3. Minimum razor + unique peptides (protein)
    4. PSM provenance
    5. Valid values per group
    6. Top-N intensity

    Parameters
    ----------
    config : FeatureFilterConfig
        Filter configuration.
    table_type : TableType
        Granularity of the table being filtered.
    channel_columns : Sequence[str]
        Intensity columns used by the intensity filters.
    groups : Sequence[str]
        Group label of each channel column.

    Returns
    -------
    FilterPipeline
        Configured filter pipeline ready to apply.
    """
    pipeline = FilterPipeline(name=f"{config.name}-{table_type.name.lower()}")

    if not config.enabled:
        return pipeline

    for filter_obj in create_identification_filters(config, table_type):
        pipeline.add_filter(filter_obj)

    if config.require_psms:
        pipeline.add_filter(ProvenanceFilter())

    for filter_obj in create_intensity_filters(config, table_type, channel_columns, groups):
        pipeline.add_filter(filter_obj)

    return pipeline
