"""
Result table export.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from tmtquant.core.constants import select_columns
from tmtquant.core.exceptions import ConfigurationError
from tmtquant.core.logger import get_logger


logger = get_logger("tmtquant.io.export")


def log2_column(channel_set: str, sample: str) -> str:
    return f"log2 {channel_set} {sample}"


def format_output_table(
    df: pd.DataFrame,
    channel_sets: Dict[str, List[str]],
    samples: Sequence[str],
    drop_patterns: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Replace intensity columns with log2 columns named by sample.

    Parameters
    ----------
    df : pd.DataFrame
        Feature table with aggregated intensity columns.
    channel_sets : Dict[str, List[str]]
        Channel set name to its intensity columns, in channel order.
    samples : Sequence[str]
        Sample name of each channel.
    drop_patterns : Sequence[str], optional
        Regular expressions of further columns to drop, e.g. the raw
        reporter columns of the input table.

    Returns
    -------
    pd.DataFrame
        New table; zero or missing intensities are NaN in log2 space.
    """
    result = df.copy()
    samples = list(samples)

    for channel_set, columns in channel_sets.items():
        if len(columns) != len(samples):
            raise ConfigurationError(
                f"{len(samples)} sample names for {len(columns)} {channel_set} columns"
            )
        values = result[columns].to_numpy(dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            logged = np.where(values > 0, np.log2(values), np.nan)
        result = result.drop(columns=columns)
        for sample, column_values in zip(samples, logged.T):
            result[log2_column(channel_set, sample)] = column_values

    for pattern in drop_patterns or []:
        result = result.drop(columns=select_columns(result, pattern))

    return result


def write_results(
    df: pd.DataFrame,
    results_dir: Union[str, Path],
    name: str,
    filter_summary: Optional[pd.DataFrame] = None,
) -> Path:
    """
    Write the result table, and the filter summary next to it.

    Parameters
    ----------
    df : pd.DataFrame
        Result table.
    results_dir : str or Path
        Output directory, created if missing.
    name : str
        Base file name; the table is written to ``<name>.tsv`` and the
        summary to ``<name>_filter_summary.tsv``.
    filter_summary : pd.DataFrame, optional
        Per-filter row counts.

    Returns
    -------
    Path
        Path of the result table.
    """
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)

    output = results_dir / f"{name}.tsv"
    df.to_csv(output, sep="\t", index=False)
    logger.info("Wrote %d rows to %s", len(df), output)

    if filter_summary is not None:
        summary_path = results_dir / f"{name}_filter_summary.tsv"
        filter_summary.to_csv(summary_path, sep="\t", index=False)
        logger.info("Wrote filter summary to %s", summary_path)

    return output
