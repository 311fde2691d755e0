"""
CLI command for group statistics on an exported log2 table.
"""

import click

from tmtquant.core.constants import CORRECTED, UNCORRECTED
from tmtquant.core.exceptions import ConfigurationError


@click.command("compare", short_help="Run ANOVA and moderated t-tests on a log2 table.")
@click.option(
    "-i",
    "--input",
    "input_table",
    help="Table exported by 'tmtquant quantify'",
    required=True,
    type=click.Path(exists=True),
)
@click.option(
    "-d",
    "--design",
    help="Design TSV with channel, sample, group and optional block columns",
    required=True,
    type=click.Path(exists=True),
)
@click.option(
    "-o",
    "--output",
    help="Output TSV",
    required=True,
    type=click.Path(),
)
@click.option(
    "--channel-set",
    "channel_set",
    type=click.Choice([CORRECTED, UNCORRECTED], case_sensitive=False),
    default=CORRECTED,
    show_default=True,
    help="Log2 intensities tested",
)
@click.option(
    "-c",
    "--comparison",
    "comparisons",
    multiple=True,
    help="Comparison A:B (B against reference A); repeatable",
)
@click.option("--anova-group", "anova_groups", multiple=True, help="Group entering the ANOVA")
@click.option("--no-anova", is_flag=True, help="Skip the ANOVA")
@click.option("--blocking", is_flag=True, help="Use the design block column as blocking factor")
def compare(
    input_table: str,
    design: str,
    output: str,
    channel_set: str,
    comparisons: tuple,
    anova_groups: tuple,
    no_anova: bool,
    blocking: bool,
) -> None:
    """
    Append group statistics to an exported log2 table.

    \b
    EXAMPLE:
      tmtquant compare -i results/tmtquant.tsv -d design.tsv -o stats.tsv \\
        -c control:treated -c control:knockout
    """
    import pandas as pd

    from tmtquant.core.constants import DESIGN_BLOCK, DESIGN_GROUP, DESIGN_SAMPLE
    from tmtquant.io import read_design
    from tmtquant.pipeline import compare_groups, log2_samples, parse_comparisons

    try:
        table = pd.read_csv(input_table, sep="\t", low_memory=False)
        sample_design = read_design(design)
        if blocking and DESIGN_BLOCK not in sample_design.columns:
            raise ConfigurationError("Design has no block column")

        log2_df = log2_samples(table, channel_set.lower(), sample_design[DESIGN_SAMPLE].tolist())
        stats_table, correlations = compare_groups(
            log2_df,
            sample_design[DESIGN_GROUP].tolist(),
            comparisons=parse_comparisons(comparisons),
            anova_groups=list(anova_groups) or None,
            run_anova=not no_anova,
            blocks=sample_design[DESIGN_BLOCK].tolist() if blocking else None,
        )
    except ConfigurationError as e:
        raise click.UsageError(str(e))

    result = pd.concat([table, stats_table], axis=1)
    result.to_csv(output, sep="\t", index=False)

    for label, correlation in correlations.items():
        if correlation is not None:
            click.echo(f"{label}: within-block correlation {correlation:.3f}")
    click.echo(f"Statistics saved to: {output}")
