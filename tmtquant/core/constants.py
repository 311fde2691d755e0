"""
Constants and common utilities for the tmtquant package.

This module defines column names, default column patterns and small helpers
used throughout the package for reading, aggregating and exporting
MaxQuant-style TMT tables.
"""

import re
from typing import List

import pandas as pd


# PSM table columns (evidence.txt style)
PSM_ID = "id"
EIL = "EIL"
PPF = "PPF"
MIN_MS2_INTENSITY = "Min MS2 intensity"
PSM_MODIFICATION_COUNT = "Modification count"

# Default reporter column patterns
UNCORRECTED_PATTERN = r"^Reporter intensity \d+$"
CORRECTED_PATTERN = r"^Reporter intensity corrected \d+$"
SITE_INTENSITY_PATTERN = r"^Reporter intensity corrected \d+___\d+$"
MULTIPLICITY_SUFFIX = r"___(\d+)$"

# Feature table columns (proteinGroups.txt / Phospho (STY)Sites.txt style)
CONTAMINANT = "Potential contaminant"
REVERSE = "Reverse"
ONLY_BY_SITE = "Only identified by site"
RAZOR_UNIQUE_PEPTIDES = "Razor + unique peptides"
SCORE = "Score"
FASTA_HEADERS = "Fasta headers"
GENE_NAMES = "Gene names"
PSM_IDS = "Evidence IDs"
MODIFICATION_COUNT = "Modification count"
FLAG_VALUE = "+"

# Aggregation output columns
PSMS_FOUND = "PSMs found"
PSM_COUNT = "PSM count"
WEIGHTED_EIL = "EIL"
WEIGHTED_PPF = "PPF"

# Channel sets
UNCORRECTED = "uncorrected"
CORRECTED = "corrected"
CHANNEL_SETS = (UNCORRECTED, CORRECTED)

# Table types
TABLE_PROTEIN = "protein"
TABLE_SITE = "site"

# Design file columns
DESIGN_CHANNEL = "channel"
DESIGN_SAMPLE = "sample"
DESIGN_GROUP = "group"
DESIGN_BLOCK = "block"

# Statistics output columns
ANOVA_P = "ANOVA p-value"
ANOVA_ADJ_P = "ANOVA adj. p-value"


def select_columns(df: pd.DataFrame, pattern: str) -> List[str]:
    """
    Return the columns of ``df`` matching a regular expression, in table order.

    Parameters
    ----------
    df : pd.DataFrame
        Table whose header is searched.
    pattern : str
        Regular expression matched against each column name.

    Returns
    -------
    List[str]
        Matching column names.
    """
    regex = re.compile(pattern)
    return [col for col in df.columns if regex.search(str(col))]


def channel_label(column: str) -> str:
    """
    Get the channel label from a reporter column (e.g. 'Reporter intensity 3' -> '3').
    """
    column = re.sub(MULTIPLICITY_SUFFIX, "", str(column))
    match = re.search(r"(\d+)\s*$", column)
    if match is None:
        return column
    return match.group(1)


def aggregated_column(channel_set: str, channel: str) -> str:
    """Name of an aggregated intensity column for a channel set."""
    return f"{channel_set} {channel}"


def split_ids(value) -> List[str]:
    """
    Split a semicolon-delimited identifier list.

    Parameters
    ----------
    value : str or float
        Cell value, possibly NaN.

    Returns
    -------
    List[str]
        Stripped, non-empty identifiers.
    """
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return []
    return [item.strip() for item in str(value).split(";") if item.strip()]
