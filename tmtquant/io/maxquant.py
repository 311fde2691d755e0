"""
Readers for MaxQuant-style tab-delimited tables.

This module reads the PSM table (evidence.txt), the protein or site table
and the sample design, validating the columns the pipeline needs.
"""

import re
from pathlib import Path
from typing import List, Union

import pandas as pd

from tmtquant.core.constants import (
    DESIGN_CHANNEL,
    DESIGN_SAMPLE,
    DESIGN_GROUP,
    DESIGN_BLOCK,
    select_columns,
)
from tmtquant.core.exceptions import ConfigurationError
from tmtquant.core.logger import get_logger
from tmtquant.model.pipeline import PipelineConfig


logger = get_logger("tmtquant.io.maxquant")

GENE_NAME_TOKEN = re.compile(r"\bGN=(\S+)")


def _require_columns(df: pd.DataFrame, columns: List[str], what: str) -> None:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ConfigurationError(f"{what} is missing required columns: {missing}")


def gene_names_from_fasta_headers(headers) -> str:
    """
    Extract gene names from a semicolon-delimited list of FASTA headers.

    Each header contributes the value of its ``GN=`` token; duplicates are
    removed keeping the first occurrence.

    Examples
    --------
    >>> gene_names_from_fasta_headers("sp|P1|A_HUMAN Alpha OS=Homo sapiens GN=ABC PE=1;sp|P2|B_HUMAN GN=XYZ")
    'ABC;XYZ'
    """
    if headers is None or (isinstance(headers, float) and pd.isna(headers)):
        return ""
    names = []
    for header in str(headers).split(";"):
        match = GENE_NAME_TOKEN.search(header)
        if match and match.group(1) not in names:
            names.append(match.group(1))
    return ";".join(names)


def read_psm_table(path: Union[str, Path], config: PipelineConfig) -> pd.DataFrame:
    """
    Read the PSM table.

    Parameters
    ----------
    path : str or Path
        Tab-delimited PSM table.
    config : PipelineConfig
        Column names and reporter column patterns.

    Returns
    -------
    pd.DataFrame
        PSM table indexed by the string PSM id.

    Raises
    ------
    ConfigurationError
        If a required column is missing, no reporter column matches a
        pattern, or the two channel sets differ in size.
    """
    psms = pd.read_csv(path, sep="\t", low_memory=False, dtype={config.psm_id_column: str})
    _require_columns(
        psms,
        [config.psm_id_column, config.eil_column, config.ppf_column, config.floor_column],
        "PSM table",
    )

    uncorrected = select_columns(psms, config.uncorrected_pattern)
    corrected = select_columns(psms, config.corrected_pattern)
    if not uncorrected or not corrected:
        raise ConfigurationError(
            f"PSM table has {len(uncorrected)} columns matching '{config.uncorrected_pattern}' "
            f"and {len(corrected)} matching '{config.corrected_pattern}'"
        )
    if len(uncorrected) != len(corrected):
        raise ConfigurationError(
            f"Channel sets differ in size: {len(uncorrected)} uncorrected, "
            f"{len(corrected)} corrected columns"
        )

    psms[config.psm_id_column] = psms[config.psm_id_column].astype(str)
    psms = psms.set_index(config.psm_id_column, drop=False)
    psms.index.name = None
    if not psms.index.is_unique:
        raise ConfigurationError("PSM table contains duplicate ids")

    logger.info("Read %d PSMs with %d channels from %s", len(psms), len(corrected), path)
    return psms


def read_feature_table(path: Union[str, Path], config: PipelineConfig) -> pd.DataFrame:
    """
    Read a protein or site table and back-fill gene names from FASTA headers.

    Parameters
    ----------
    path : str or Path
        Tab-delimited protein or site table.
    config : PipelineConfig
        Column names.

    Returns
    -------
    pd.DataFrame
        Feature table with a complete gene name column where headers allow.
    """
    features = pd.read_csv(path, sep="\t", low_memory=False, dtype={config.psm_ids_column: str})
    _require_columns(features, [config.psm_ids_column], "Feature table")

    if config.fasta_headers_column in features.columns:
        parsed = features[config.fasta_headers_column].map(gene_names_from_fasta_headers)
        if config.gene_names_column in features.columns:
            existing = features[config.gene_names_column]
            missing = existing.isna() | (existing.astype(str).str.strip() == "")
            features[config.gene_names_column] = existing.where(~missing, parsed)
        else:
            features[config.gene_names_column] = parsed

    logger.info("Read %d %s rows from %s", len(features), config.table_type, path)
    return features


def read_design(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read the sample design.

    The design is a TSV with ``channel``, ``sample`` and ``group`` columns
    and an optional ``block`` column, one row per channel in channel order.

    Raises
    ------
    ConfigurationError
        If a column is missing or channels or samples are duplicated.
    """
    design = pd.read_csv(path, sep="\t", dtype=str)
    design.columns = [col.strip().lower() for col in design.columns]
    _require_columns(design, [DESIGN_CHANNEL, DESIGN_SAMPLE, DESIGN_GROUP], "Design")

    for col in (DESIGN_CHANNEL, DESIGN_SAMPLE):
        if design[col].duplicated().any():
            raise ConfigurationError(f"Design has duplicate {col} entries")

    columns = [DESIGN_CHANNEL, DESIGN_SAMPLE, DESIGN_GROUP]
    if DESIGN_BLOCK in design.columns:
        columns.append(DESIGN_BLOCK)
    return design[columns].reset_index(drop=True)


def default_design(channels: List[str]) -> pd.DataFrame:
    """Design with one sample per channel, all in a single group."""
    return pd.DataFrame(
        {
            DESIGN_CHANNEL: list(channels),
            DESIGN_SAMPLE: list(channels),
            DESIGN_GROUP: ["all"] * len(channels),
        }
    )


def check_design(design: pd.DataFrame, channels: List[str]) -> None:
    """
    Check that the design lists exactly the given channels, in order.

    Raises
    ------
    ConfigurationError
        If the channel counts or labels differ.
    """
    listed = design[DESIGN_CHANNEL].astype(str).tolist()
    if len(listed) != len(channels):
        raise ConfigurationError(
            f"Design lists {len(listed)} channels, reporter columns have {len(channels)}"
        )
    if listed != [str(c) for c in channels]:
        raise ConfigurationError(f"Design channels {listed} do not match reporter channels {channels}")
