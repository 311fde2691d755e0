"""
Unified pipeline: PSMs → corrected, normalized, tested features.

This module provides the `QuantificationPipeline` class and the
`psms_to_features` function that run the full TMT workflow on
MaxQuant-style tables.

The pipeline runs these stages in order:
- PSM filtering by precursor purity fraction
- Isotopic impurity correction of both reporter channel sets
- Site expansion (site tables only)
- PSM to feature aggregation
- Feature filtering
- Channel normalization
- ANOVA and moderated t-tests on the log2 corrected intensities
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from tmtquant.aggregation import PSMAggregator, expand_site_multiplicity, filter_psms
from tmtquant.core.constants import (
    UNCORRECTED,
    CORRECTED,
    TABLE_SITE,
    DESIGN_SAMPLE,
    DESIGN_GROUP,
    DESIGN_BLOCK,
    aggregated_column,
    channel_label,
    select_columns,
)
from tmtquant.core.exceptions import ConfigurationError
from tmtquant.core.logger import get_logger, log_execution_time
from tmtquant.correction import ImpurityCorrector, identity_matrix, read_impurity_matrix
from tmtquant.io import (
    read_psm_table,
    read_feature_table,
    read_design,
    default_design,
    check_design,
    format_output_table,
    write_results,
    log2_column,
)
from tmtquant.model.filters import FeatureFilterConfig
from tmtquant.model.pipeline import PipelineConfig, parse_comparison
from tmtquant.preprocessing.filters import FilterPipeline, TableType, get_filter_pipeline
from tmtquant.statistics import anova, moderated_t_test

logger = get_logger("tmtquant.pipeline")


def size_factors_path(path: Optional[str], channel_set: str) -> Optional[Path]:
    """Per channel set size-factor file, e.g. ``factors.tsv`` -> ``factors_corrected.tsv``."""
    if path is None:
        return None
    path = Path(path)
    return path.with_name(f"{path.stem}_{channel_set}{path.suffix or '.tsv'}")


def compare_groups(
    log2_df: pd.DataFrame,
    groups: Sequence[str],
    comparisons: Sequence[Tuple[str, str]] = (),
    anova_groups: Optional[Sequence[str]] = None,
    run_anova: bool = True,
    blocks: Optional[Sequence[str]] = None,
) -> Tuple[pd.DataFrame, Dict[str, Optional[float]]]:
    """
    Run the ANOVA and the moderated comparisons on a log2 table.

    Parameters
    ----------
    log2_df : pd.DataFrame
        Log2 intensities, one column per sample.
    groups : Sequence[str]
        Group of each column.
    comparisons : Sequence[Tuple[str, str]], optional
        ``(reference, test)`` group pairs.
    anova_groups : Sequence[str], optional
        Groups entering the ANOVA; all groups by default.
    run_anova : bool, optional
        Compute the ANOVA columns when at least two groups exist.
    blocks : Sequence[str], optional
        Block of each column for the within-block correlation.

    Returns
    -------
    Tuple[pd.DataFrame, Dict[str, Optional[float]]]
        Statistics columns indexed like ``log2_df``, and the consensus
        block correlation of each comparison.
    """
    tables = []
    correlations = {}

    n_groups = len(set(anova_groups)) if anova_groups else len(set(groups))
    if run_anova and n_groups >= 2:
        tables.append(anova(log2_df, groups, include_groups=anova_groups))
    elif run_anova:
        logger.warning("Skipping ANOVA: fewer than two groups")

    for group_a, group_b in comparisons:
        result = moderated_t_test(log2_df, groups, group_a, group_b, blocks=blocks)
        tables.append(result.table)
        correlations[f"{group_b}/{group_a}"] = result.correlation

    if not tables:
        return pd.DataFrame(index=log2_df.index), correlations
    return pd.concat(tables, axis=1), correlations


class QuantificationPipeline:
    """
    Unified pipeline: PSMs → features.

    Parameters
    ----------
    config : PipelineConfig
        Pipeline configuration object.
    filter_config : FeatureFilterConfig, optional
        Feature filter thresholds; defaults when omitted.

    Examples
    --------
    >>> from tmtquant.pipeline import QuantificationPipeline, PipelineConfig
    >>>
    >>> config = PipelineConfig(
    ...     psm_table="evidence.txt",
    ...     feature_table="proteinGroups.txt",
    ...     impurity_matrix="impurities.tsv",
    ...     design="design.tsv",
    ...     comparisons=("control:treated",),
    ... )
    >>> pipeline = QuantificationPipeline(config)
    >>> proteins = pipeline.run()
    """

    def __init__(self, config: PipelineConfig, filter_config: Optional[FeatureFilterConfig] = None):
        self.config = config
        self.filter_config = filter_config or FeatureFilterConfig()
        self.correction_reports: Dict[str, pd.DataFrame] = {}
        self.filter_results = []
        self.filter_summary: Optional[pd.DataFrame] = None
        self.correlations: Dict[str, Optional[float]] = {}
        self._validate_config()

    def _validate_config(self):
        """Validate configuration and check for required files."""
        for path in (self.config.psm_table, self.config.feature_table):
            if not Path(path).exists():
                raise FileNotFoundError(f"Input file not found: {path}")
        for path in (self.config.impurity_matrix, self.config.design):
            if path is not None and not Path(path).exists():
                raise FileNotFoundError(f"Input file not found: {path}")
        if self.config.comparisons and self.config.design is None:
            raise ConfigurationError("Comparisons require a design file")
        if self.config.use_blocking and self.config.design is None:
            raise ConfigurationError("Blocking requires a design file with a block column")

    @property
    def table_type(self) -> TableType:
        return TableType.from_str(self.config.table_type)

    def run(self) -> pd.DataFrame:
        """
        Execute the full pipeline.

        Returns
        -------
        pd.DataFrame
            Feature table with log2 intensities per channel set and sample,
            quality columns and statistics.
        """
        logger.info("Starting pipeline for %s table", self.config.table_type)

        psms = read_psm_table(self.config.psm_table, self.config)
        modification_column = self.config.aggregation.psm_modification_column
        if self.config.table_type == TABLE_SITE and modification_column not in psms.columns:
            raise ConfigurationError(
                f"Site tables need the PSM column '{modification_column}' to assign PSMs "
                f"to modification states"
            )
        features = read_feature_table(self.config.feature_table, self.config)
        channel_sets = self._channel_sets(psms)
        channels = [channel_label(col) for col in channel_sets[CORRECTED]]
        design = self._load_design(channels)
        corrector = self._load_corrector(channels)

        psms = filter_psms(psms, self.config.min_ppf, self.config.ppf_column)
        psms = self._correct(psms, channel_sets, corrector)

        if self.config.table_type == TABLE_SITE:
            features = expand_site_multiplicity(
                features, self.config.site_pattern, self.config.multiplicity_suffix
            )

        features = self._aggregate(features, psms, channel_sets)
        output_columns = {
            channel_set: [aggregated_column(channel_set, c) for c in channels]
            for channel_set in channel_sets
        }

        features = self._filter(features, output_columns[CORRECTED], design[DESIGN_GROUP].tolist())
        features = self._normalize(features, output_columns)

        result = format_output_table(
            features,
            output_columns,
            design[DESIGN_SAMPLE].tolist(),
            drop_patterns=[
                self.config.uncorrected_pattern,
                self.config.corrected_pattern,
                self.config.site_pattern,
                self.config.multiplicity_suffix,
            ],
        )
        result = self._statistics(result, design)

        logger.info("Pipeline complete: %d features", len(result))
        return result

    def _channel_sets(self, psms: pd.DataFrame) -> Dict[str, List[str]]:
        """Reporter columns of each channel set; both sets must list the same channels."""
        sets = {
            UNCORRECTED: select_columns(psms, self.config.uncorrected_pattern),
            CORRECTED: select_columns(psms, self.config.corrected_pattern),
        }
        labels = {name: [channel_label(c) for c in cols] for name, cols in sets.items()}
        if labels[UNCORRECTED] != labels[CORRECTED]:
            raise ConfigurationError(
                f"Channel order differs between channel sets: {labels[UNCORRECTED]} vs {labels[CORRECTED]}"
            )
        return sets

    def _load_design(self, channels: List[str]) -> pd.DataFrame:
        if self.config.design is None:
            design = default_design(channels)
        else:
            design = read_design(self.config.design)
        check_design(design, channels)

        available = set(design[DESIGN_GROUP])
        for group_a, group_b in self.config.parsed_comparisons():
            for group in (group_a, group_b):
                if group not in available:
                    raise ConfigurationError(
                        f"Unknown group '{group}' in comparison {group_a}:{group_b}"
                    )
        for group in self.config.anova_groups or ():
            if group not in available:
                raise ConfigurationError(f"Unknown ANOVA group '{group}'")
        if self.config.use_blocking:
            if DESIGN_BLOCK not in design.columns:
                raise ConfigurationError("Design has no block column")
            if not design[DESIGN_BLOCK].duplicated().any():
                raise ConfigurationError("Blocking factor has no repeated levels")
        return design

    def _load_corrector(self, channels: List[str]) -> ImpurityCorrector:
        if self.config.impurity_matrix is None:
            logger.info("No impurity matrix given, using identity correction")
            return ImpurityCorrector(identity_matrix(channels))

        matrix = read_impurity_matrix(
            self.config.impurity_matrix, percent=self.config.impurity_percent
        )
        matrix_channels = [str(c) for c in matrix.index]
        if matrix_channels != channels:
            raise ConfigurationError(
                f"Impurity matrix channels {matrix_channels} do not match reporter channels {channels}"
            )
        return ImpurityCorrector(matrix, channels)

    @log_execution_time(logger)
    def _correct(
        self,
        psms: pd.DataFrame,
        channel_sets: Dict[str, List[str]],
        corrector: ImpurityCorrector,
    ) -> pd.DataFrame:
        psms = psms.copy()
        for channel_set, columns in channel_sets.items():
            before = psms[columns]
            after = corrector.correct(before)
            psms[columns] = after
            report = corrector.report(before, after, corrector.channels)
            self.correction_reports[channel_set] = report
            logger.info(
                "Impurity correction (%s):\n%s", channel_set, report.to_string(index=False)
            )
        return psms

    def _aggregate(
        self,
        features: pd.DataFrame,
        psms: pd.DataFrame,
        channel_sets: Dict[str, List[str]],
    ) -> pd.DataFrame:
        """Aggregate the corrected set first; the uncorrected run only adds its intensities."""
        aggregation = self.config.aggregation
        primary = PSMAggregator(psms, channel_sets[CORRECTED], aggregation, channel_set=CORRECTED)
        result = primary.aggregate(features)

        secondary = PSMAggregator(
            psms,
            channel_sets[UNCORRECTED],
            aggregation,
            channel_set=UNCORRECTED,
            quality_metrics=False,
        )
        uncorrected = secondary.aggregate(features)
        for col in secondary.output_columns:
            result[col] = uncorrected[col].to_numpy()
        return result

    def _filter(
        self, features: pd.DataFrame, channel_columns: List[str], groups: List[str]
    ) -> pd.DataFrame:
        pipeline: FilterPipeline = get_filter_pipeline(
            self.filter_config, self.table_type, channel_columns, groups
        )
        filtered, results = pipeline.apply(features)
        self.filter_results = results
        self.filter_summary = FilterPipeline.summary_table(results)
        return filtered.reset_index(drop=True)

    def _normalize(
        self, features: pd.DataFrame, output_columns: Dict[str, List[str]]
    ) -> pd.DataFrame:
        method = self.config.normalization_method
        features = features.copy()
        for channel_set, columns in output_columns.items():
            logger.info("Normalizing %s intensities with %s", channel_set, method.name)
            normalized = method(
                features[columns],
                span=self.config.loess_span,
                iterations=self.config.loess_iterations,
                factors_path=size_factors_path(self.config.size_factors_file, channel_set),
                reuse_factors=self.config.reuse_size_factors,
            )
            features[columns] = normalized.to_numpy()
        return features

    def _statistics(self, result: pd.DataFrame, design: pd.DataFrame) -> pd.DataFrame:
        comparisons = self.config.parsed_comparisons()
        if not comparisons and not self.config.run_anova:
            return result

        samples = design[DESIGN_SAMPLE].tolist()
        log2_df = result[[log2_column(CORRECTED, s) for s in samples]]
        blocks = design[DESIGN_BLOCK].tolist() if self.config.use_blocking else None

        stats_table, self.correlations = compare_groups(
            log2_df,
            design[DESIGN_GROUP].tolist(),
            comparisons=comparisons,
            anova_groups=self.config.anova_groups,
            run_anova=self.config.run_anova,
            blocks=blocks,
        )
        return pd.concat([result, stats_table], axis=1)


def psms_to_features(
    config: PipelineConfig, filter_config: Optional[FeatureFilterConfig] = None
) -> Tuple[pd.DataFrame, QuantificationPipeline]:
    """
    Run the pipeline and write the result table and filter summary.

    Parameters
    ----------
    config : PipelineConfig
        Pipeline configuration.
    filter_config : FeatureFilterConfig, optional
        Feature filter thresholds.

    Returns
    -------
    Tuple[pd.DataFrame, QuantificationPipeline]
        Result table and the pipeline that produced it.
    """
    pipeline = QuantificationPipeline(config, filter_config)
    result = pipeline.run()
    write_results(result, config.results_dir, config.name, pipeline.filter_summary)
    return result, pipeline


def log2_samples(df: pd.DataFrame, channel_set: str, samples: Sequence[str]) -> pd.DataFrame:
    """
    Select the log2 columns of a channel set from an exported table.

    Raises
    ------
    ConfigurationError
        If a sample column is missing.
    """
    columns = [log2_column(channel_set, s) for s in samples]
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ConfigurationError(f"Table is missing log2 columns: {missing}")
    return df[columns].astype(float).replace([np.inf, -np.inf], np.nan)


def parse_comparisons(comparisons: Sequence[str]) -> List[Tuple[str, str]]:
    return [parse_comparison(c) for c in comparisons]
