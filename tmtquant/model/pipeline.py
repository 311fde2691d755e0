"""
Run configuration of the TMT quantification pipeline.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from tmtquant.core.constants import (
    PSM_ID,
    EIL,
    PPF,
    MIN_MS2_INTENSITY,
    PSM_MODIFICATION_COUNT,
    PSM_IDS,
    FASTA_HEADERS,
    GENE_NAMES,
    UNCORRECTED_PATTERN,
    CORRECTED_PATTERN,
    SITE_INTENSITY_PATTERN,
    MULTIPLICITY_SUFFIX,
    TABLE_PROTEIN,
    TABLE_SITE,
)
from tmtquant.core.exceptions import ConfigurationError
from tmtquant.model.aggregation import AggregationConfig
from tmtquant.model.normalization import NormalizationMethod


def parse_comparison(comparison: str) -> Tuple[str, str]:
    """
    Parse an ``A:B`` comparison into its reference and test group.

    Raises
    ------
    ConfigurationError
        If the string is not two non-empty names separated by one colon.
    """
    parts = [part.strip() for part in str(comparison).split(":")]
    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(f"Comparison must look like 'A:B', got '{comparison}'")
    return parts[0], parts[1]


@dataclass(frozen=True)
class PipelineConfig:
    """
    Configuration for the quantification pipeline.

    The configuration is immutable and passed unchanged to every stage.

    Attributes
    ----------
    psm_table : str
        Path to the tab-delimited PSM table (evidence.txt style).
    feature_table : str
        Path to the tab-delimited protein or site table.
    impurity_matrix : str, optional
        Path to the impurity matrix; identity correction when omitted.
    impurity_percent : bool
        Impurity matrix values are percentages.
    design : str, optional
        Path to the sample design (channel, sample, group, block).
    table_type : str
        ``protein`` or ``site``.
    name : str
        Base name of the output files.
    results_dir : str
        Directory receiving the output files.
    uncorrected_pattern, corrected_pattern : str
        Regular expressions selecting the PSM reporter columns of each
        channel set.
    site_pattern, multiplicity_suffix : str
        Regular expressions selecting the suffixed site reporter columns
        and capturing their modification state.
    psm_id_column, eil_column, ppf_column, floor_column, psm_modification_column : str
        PSM table column names.
    psm_ids_column, fasta_headers_column, gene_names_column : str
        Feature table column names.
    min_ppf : float
        PSMs with a lower precursor purity fraction are removed.
    use_ms2_floor : bool
        Substitute each PSM's minimum MS2 intensity for missing channels.
    normalization : str
        Normalization method: loess, median, sizefactor or none.
    loess_span : float
        Span of the cyclic loess fits.
    loess_iterations : int
        Passes of cyclic loess.
    size_factors_file : str, optional
        Size-factor TSV; the channel set name is inserted before the suffix.
    reuse_size_factors : bool
        Read existing size factors instead of estimating them.
    anova_groups : tuple of str, optional
        Groups entering the ANOVA; all design groups by default.
    run_anova : bool
        Compute the ANOVA columns.
    comparisons : tuple of str
        Moderated t-test comparisons as ``A:B`` (B against reference A).
    use_blocking : bool
        Use the design's block column as within-block correlation factor.
    """

    psm_table: str
    feature_table: str
    impurity_matrix: Optional[str] = None
    impurity_percent: bool = False
    design: Optional[str] = None
    table_type: str = TABLE_PROTEIN
    name: str = "tmtquant"
    results_dir: str = "results"

    # Column selection
    uncorrected_pattern: str = UNCORRECTED_PATTERN
    corrected_pattern: str = CORRECTED_PATTERN
    site_pattern: str = SITE_INTENSITY_PATTERN
    multiplicity_suffix: str = MULTIPLICITY_SUFFIX
    psm_id_column: str = PSM_ID
    eil_column: str = EIL
    ppf_column: str = PPF
    floor_column: str = MIN_MS2_INTENSITY
    psm_modification_column: str = PSM_MODIFICATION_COUNT
    psm_ids_column: str = PSM_IDS
    fasta_headers_column: str = FASTA_HEADERS
    gene_names_column: str = GENE_NAMES

    # PSM filtering and aggregation
    min_ppf: float = 0.5
    use_ms2_floor: bool = False

    # Normalization
    normalization: str = "loess"
    loess_span: float = 0.7
    loess_iterations: int = 3
    size_factors_file: Optional[str] = None
    reuse_size_factors: bool = False

    # Statistics
    anova_groups: Optional[Tuple[str, ...]] = None
    run_anova: bool = True
    comparisons: Tuple[str, ...] = ()
    use_blocking: bool = False

    def __post_init__(self):
        if self.table_type not in (TABLE_PROTEIN, TABLE_SITE):
            raise ConfigurationError(
                f"table_type must be '{TABLE_PROTEIN}' or '{TABLE_SITE}', got '{self.table_type}'"
            )
        if not 0.0 <= self.min_ppf <= 1.0:
            raise ConfigurationError(f"min_ppf must be within [0, 1], got {self.min_ppf}")
        if not 0.0 < self.loess_span <= 1.0:
            raise ConfigurationError(f"loess_span must be within (0, 1], got {self.loess_span}")
        if self.reuse_size_factors and not self.size_factors_file:
            raise ConfigurationError("reuse_size_factors requires size_factors_file")
        NormalizationMethod.from_str(self.normalization)
        self.parsed_comparisons()

    @property
    def normalization_method(self) -> NormalizationMethod:
        return NormalizationMethod.from_str(self.normalization)

    @property
    def aggregation(self) -> AggregationConfig:
        """Aggregation options derived from this configuration."""
        return AggregationConfig(
            psm_ids_column=self.psm_ids_column,
            eil_column=self.eil_column,
            ppf_column=self.ppf_column,
            floor_column=self.floor_column,
            psm_modification_column=self.psm_modification_column,
            use_ms2_floor=self.use_ms2_floor,
        )

    def parsed_comparisons(self) -> List[Tuple[str, str]]:
        return [parse_comparison(c) for c in self.comparisons]
