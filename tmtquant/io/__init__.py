"""
Input/Output utilities for the tmtquant package.

This module provides readers for MaxQuant-style PSM, feature and design
tables and the result exporter.
"""

from tmtquant.io.maxquant import (
    read_psm_table,
    read_feature_table,
    read_design,
    default_design,
    check_design,
    gene_names_from_fasta_headers,
)
from tmtquant.io.export import format_output_table, write_results, log2_column

__all__ = [
    "read_psm_table",
    "read_feature_table",
    "read_design",
    "default_design",
    "check_design",
    "gene_names_from_fasta_headers",
    "format_output_table",
    "write_results",
    "log2_column",
]
