"""
Identification and provenance filters for protein and site tables.
"""

import pandas as pd

from tmtquant.core.logger import get_logger
from tmtquant.core.constants import (
    CONTAMINANT,
    REVERSE,
    ONLY_BY_SITE,
    RAZOR_UNIQUE_PEPTIDES,
    SCORE,
    PSMS_FOUND,
    FLAG_VALUE,
)
from tmtquant.preprocessing.filters.base import BaseFilter
from tmtquant.preprocessing.filters.enums import FilterLevel


logger = get_logger("tmtquant.preprocessing.filters.feature")


def is_flagged(column: pd.Series) -> pd.Series:
    """True where a MaxQuant flag column is set ('+' or a true boolean)."""
    if column.dtype == bool:
        return column
    return column.astype(str).str.strip().eq(FLAG_VALUE)


def _keep_all(df: pd.DataFrame, filter_name: str, column: str) -> pd.Series:
    logger.warning("%s: Column '%s' not found, skipping filter", filter_name, column)
    return pd.Series(True, index=df.index)


class ContaminantReverseFilter(BaseFilter):
    """Filter potential contaminants and reverse hits."""

    def __init__(
        self,
        remove_contaminants: bool = True,
        remove_reverse: bool = True,
        contaminant_column: str = CONTAMINANT,
        reverse_column: str = REVERSE,
    ):
        """
        Initialize the filter.

        Parameters
        ----------
        remove_contaminants : bool, optional
            Whether to remove rows flagged as contaminants.
        remove_reverse : bool, optional
            Whether to remove rows flagged as reverse hits.
        contaminant_column : str, optional
            Column holding the contaminant flag.
        reverse_column : str, optional
            Column holding the reverse flag.
        """
        self.remove_contaminants = remove_contaminants
        self.remove_reverse = remove_reverse
        self.contaminant_column = contaminant_column
        self.reverse_column = reverse_column

    @property
    def name(self) -> str:
        return "ContaminantReverseFilter"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.IDENTIFICATION

    def mask(self, df: pd.DataFrame) -> pd.Series:
        keep = pd.Series(True, index=df.index)
        for enabled, column in (
            (self.remove_contaminants, self.contaminant_column),
            (self.remove_reverse, self.reverse_column),
        ):
            if not enabled:
                continue
            if column not in df.columns:
                logger.warning("%s: Column '%s' not found, not filtering on it", self.name, column)
                continue
            keep &= ~is_flagged(df[column])
        return keep

    def details(self) -> dict:
        return {
            "remove_contaminants": self.remove_contaminants,
            "remove_reverse": self.remove_reverse,
        }


class OnlyBySiteFilter(BaseFilter):
    """Filter protein groups identified only by a modification site."""

    def __init__(self, column: str = ONLY_BY_SITE):
        self.column = column

    @property
    def name(self) -> str:
        return "OnlyBySiteFilter"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.IDENTIFICATION

    def mask(self, df: pd.DataFrame) -> pd.Series:
        if self.column not in df.columns:
            return _keep_all(df, self.name, self.column)
        return ~is_flagged(df[self.column])


class MinScoreFilter(BaseFilter):
    """Filter site rows below a minimum identification score."""

    def __init__(self, min_score: float, score_column: str = SCORE):
        """
        Initialize the filter.

        Parameters
        ----------
        min_score : float
            Rows with a score below this value are removed.
        score_column : str, optional
            Column holding the identification score.
        """
        self.min_score = min_score
        self.score_column = score_column

    @property
    def name(self) -> str:
        return "MinScoreFilter"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.IDENTIFICATION

    def mask(self, df: pd.DataFrame) -> pd.Series:
        if self.score_column not in df.columns:
            return _keep_all(df, self.name, self.score_column)
        scores = pd.to_numeric(df[self.score_column], errors="coerce")
        return scores >= self.min_score

    def details(self) -> dict:
        return {"min_score": self.min_score}


class MinPeptideFilter(BaseFilter):
    """Filter protein groups by their razor + unique peptide count."""

    def __init__(self, min_peptides: int = 2, peptide_column: str = RAZOR_UNIQUE_PEPTIDES):
        """
        Initialize the filter.

        Parameters
        ----------
        min_peptides : int, optional
            Minimum razor + unique peptides per protein group.
        peptide_column : str, optional
            Column holding the peptide count.
        """
        self.min_peptides = min_peptides
        self.peptide_column = peptide_column

    @property
    def name(self) -> str:
        return "MinPeptideFilter"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.IDENTIFICATION

    def mask(self, df: pd.DataFrame) -> pd.Series:
        if self.peptide_column not in df.columns:
            return _keep_all(df, self.name, self.peptide_column)
        counts = pd.to_numeric(df[self.peptide_column], errors="coerce").fillna(0)
        return counts >= self.min_peptides

    def details(self) -> dict:
        return {"min_peptides": self.min_peptides}


class ProvenanceFilter(BaseFilter):
    """Filter features none of whose PSMs survived PSM filtering."""

    def __init__(self, column: str = PSMS_FOUND):
        self.column = column

    @property
    def name(self) -> str:
        return "ProvenanceFilter"

    @property
    def level(self) -> FilterLevel:
        return FilterLevel.PROVENANCE

    def mask(self, df: pd.DataFrame) -> pd.Series:
        if self.column not in df.columns:
            return _keep_all(df, self.name, self.column)
        return df[self.column].fillna(False).astype(bool)
