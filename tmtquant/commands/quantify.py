"""
CLI command for the PSM to feature quantification pipeline.
"""

import click

from tmtquant.core.constants import TABLE_PROTEIN, TABLE_SITE
from tmtquant.core.exceptions import ConfigurationError
from tmtquant.model.normalization import NormalizationMethod


NORMALIZATION_CHOICES = [m.name.lower() for m in NormalizationMethod] + ["cyclicloess", "deseq"]


@click.command("quantify", short_help="Quantify TMT proteins or sites from MaxQuant tables.")
@click.option(
    "-p",
    "--psm-table",
    "psm_table",
    help="PSM table (evidence.txt)",
    required=True,
    type=click.Path(exists=True),
)
@click.option(
    "-f",
    "--feature-table",
    "feature_table",
    help="Protein or site table (proteinGroups.txt, <mod>Sites.txt)",
    required=True,
    type=click.Path(exists=True),
)
@click.option(
    "-i",
    "--impurity-matrix",
    "impurity_matrix",
    help="Impurity matrix (first column holds channel names); identity if omitted",
    default=None,
    type=click.Path(exists=True),
)
@click.option(
    "--impurity-percent",
    is_flag=True,
    help="Impurity matrix values are percentages",
)
@click.option(
    "-d",
    "--design",
    help="Design TSV with channel, sample, group and optional block columns",
    default=None,
    type=click.Path(exists=True),
)
@click.option(
    "-t",
    "--table-type",
    "table_type",
    type=click.Choice([TABLE_PROTEIN, TABLE_SITE], case_sensitive=False),
    default=TABLE_PROTEIN,
    show_default=True,
    help="Granularity of the feature table",
)
@click.option(
    "-o",
    "--results-dir",
    "results_dir",
    help="Output directory",
    default="results",
    show_default=True,
    type=click.Path(),
)
@click.option("--name", default="tmtquant", show_default=True, help="Base name of output files")
# PSM options
@click.option(
    "--min-ppf",
    "min_ppf",
    type=float,
    default=0.5,
    show_default=True,
    help="Minimum precursor purity fraction of a PSM",
)
@click.option(
    "--ms2-floor/--no-ms2-floor",
    "use_ms2_floor",
    default=False,
    show_default=True,
    help="Replace missing PSM channels with the PSM's minimum MS2 intensity",
)
# Normalization options
@click.option(
    "-n",
    "--normalization",
    type=click.Choice(NORMALIZATION_CHOICES, case_sensitive=False),
    default="loess",
    show_default=True,
    help="Channel normalization method",
)
@click.option("--loess-span", type=float, default=0.7, show_default=True)
@click.option("--loess-iterations", type=int, default=3, show_default=True)
@click.option(
    "--size-factors",
    "size_factors_file",
    type=click.Path(),
    default=None,
    help="Size-factor TSV written (or read with --reuse-size-factors)",
)
@click.option("--reuse-size-factors", is_flag=True, help="Read existing size factors")
# Statistics options
@click.option(
    "-c",
    "--comparison",
    "comparisons",
    multiple=True,
    help="Moderated t-test comparison A:B (B against reference A); repeatable",
)
@click.option(
    "--anova-group",
    "anova_groups",
    multiple=True,
    help="Group entering the ANOVA; repeatable, all groups by default",
)
@click.option("--no-anova", is_flag=True, help="Skip the ANOVA")
@click.option("--blocking", is_flag=True, help="Use the design block column as blocking factor")
# Filter options
@click.option(
    "--filter-config",
    "filter_config",
    type=click.Path(exists=True),
    default=None,
    help="Feature filter configuration (YAML or JSON)",
)
@click.option("--min-peptides", type=int, default=None, help="Override min razor + unique peptides")
@click.option("--min-site-score", type=float, default=None, help="Override min site score")
@click.option("--min-valid-values", type=int, default=None, help="Override min valid values per group")
@click.option(
    "--min-top3-log2-intensity", type=float, default=None, help="Override protein top-3 cutoff"
)
@click.option("--top3-quantile", type=float, default=None, help="Override site top-3 quantile")
@click.option(
    "--qc-plot",
    "qc_plot",
    type=click.Path(),
    default=None,
    help="Save the impurity correction QC figure to this file",
)
def quantify(
    psm_table: str,
    feature_table: str,
    impurity_matrix: str,
    impurity_percent: bool,
    design: str,
    table_type: str,
    results_dir: str,
    name: str,
    min_ppf: float,
    use_ms2_floor: bool,
    normalization: str,
    loess_span: float,
    loess_iterations: int,
    size_factors_file: str,
    reuse_size_factors: bool,
    comparisons: tuple,
    anova_groups: tuple,
    no_anova: bool,
    blocking: bool,
    filter_config: str,
    min_peptides: int,
    min_site_score: float,
    min_valid_values: int,
    min_top3_log2_intensity: float,
    top3_quantile: float,
    qc_plot: str,
) -> None:
    """
    Correct, aggregate, filter, normalize and test TMT reporter intensities.

    \b
    EXAMPLES:
      # Protein groups with a two-group comparison
      tmtquant quantify -p evidence.txt -f proteinGroups.txt -i impurities.tsv \\
        -d design.tsv -c control:treated

      # Phospho sites, median normalization, blocked by patient
      tmtquant quantify -p evidence.txt -f "Phospho (STY)Sites.txt" -t site \\
        -d design.tsv -n median -c control:treated --blocking
    """
    from tmtquant.model.filters import FeatureFilterConfig
    from tmtquant.model.pipeline import PipelineConfig
    from tmtquant.pipeline import psms_to_features
    from tmtquant.preprocessing.filters import load_filter_config

    try:
        filters = load_filter_config(filter_config) if filter_config else FeatureFilterConfig()
        filters.apply_overrides(
            {
                "min_peptides": min_peptides,
                "min_site_score": min_site_score,
                "min_valid_values": min_valid_values,
                "min_top3_log2_intensity": min_top3_log2_intensity,
                "top3_quantile": top3_quantile,
            }
        )

        config = PipelineConfig(
            psm_table=psm_table,
            feature_table=feature_table,
            impurity_matrix=impurity_matrix,
            impurity_percent=impurity_percent,
            design=design,
            table_type=table_type.lower(),
            name=name,
            results_dir=results_dir,
            min_ppf=min_ppf,
            use_ms2_floor=use_ms2_floor,
            normalization=normalization,
            loess_span=loess_span,
            loess_iterations=loess_iterations,
            size_factors_file=size_factors_file,
            reuse_size_factors=reuse_size_factors,
            anova_groups=tuple(anova_groups) or None,
            run_anova=not no_anova,
            comparisons=tuple(comparisons),
            use_blocking=blocking,
        )
        result, pipeline = psms_to_features(config, filters)
    except ConfigurationError as e:
        raise click.UsageError(str(e))

    if qc_plot:
        from tmtquant.plotting import plot_correction_report

        plot_correction_report(pipeline.correction_reports["corrected"], output=qc_plot)
        click.echo(f"QC plot saved to: {qc_plot}")

    click.echo(f"{len(result)} {table_type} rows saved to: {results_dir}/{name}.tsv")
