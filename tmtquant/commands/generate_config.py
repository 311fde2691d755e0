"""
CLI command writing an example feature filter configuration.
"""

import click


@click.command("generate-config", short_help="Write an example filter configuration.")
@click.option(
    "-o",
    "--output",
    help="Output file (.yaml, .yml or .json)",
    required=True,
    type=click.Path(),
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["yaml", "json"], case_sensitive=False),
    default=None,
    help="Output format; inferred from the extension by default",
)
def generate_config(output: str, fmt: str) -> None:
    """
    Write a feature filter configuration with the default thresholds.

    The file can be edited and passed to 'tmtquant quantify --filter-config'.
    """
    from tmtquant.preprocessing.filters import generate_example_config

    generate_example_config(output, format=fmt.lower() if fmt else None)
    click.echo(f"Example filter configuration saved to: {output}")
