"""
Command line entry point: ``tmtquant <command>``.
"""

import logging
from pathlib import Path
from typing import Optional

import click

import tmtquant
from tmtquant.commands.compare import compare
from tmtquant.commands.generate_config import generate_config
from tmtquant.commands.quantify import quantify

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
}
LOG_FORMAT = "%(asctime)s [%(funcName)s] - %(message)s"


def _configure_logging(level: int, log_file: Optional[Path]) -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level)
    logging.captureWarnings(True)
    if log_file is None:
        return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(tmtquant.__version__, prog_name="tmtquant", message="%(prog)s %(version)s")
@click.option(
    "-v",
    "--log-level",
    type=click.Choice(list(LOG_LEVELS), case_sensitive=False),
    default="info",
    show_default=True,
    help="Verbosity of log messages.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Also write log messages to this file.",
)
def cli(log_level: str, log_file: Optional[Path]):
    """
    tmtquant - TMT reporter ion quantification for MaxQuant output.

    Correct isotopic impurities, aggregate PSMs into proteins or
    modification sites, filter, normalize and test group differences.
    """
    _configure_logging(LOG_LEVELS[log_level.lower()], log_file)


cli.add_command(quantify)
cli.add_command(compare)
cli.add_command(generate_config)


def main():
    cli()


if __name__ == "__main__":
    main()
