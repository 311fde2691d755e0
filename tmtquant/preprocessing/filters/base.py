"""
Row-membership filters for protein and site tables.

A filter only decides which rows survive. Concrete filters implement
:meth:`BaseFilter.mask`; :meth:`BaseFilter.apply` turns the mask into a
filtered copy and a :class:`FilterResult` for the summary table.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Tuple

import pandas as pd

from tmtquant.preprocessing.filters.enums import FilterLevel


@dataclass(frozen=True)
class FilterResult:
    """Row counts around one filter stage, plus the parameters it used."""

    filter_name: str
    filter_level: FilterLevel
    input_count: int
    output_count: int
    details: dict = field(default_factory=dict)

    @property
    def removed_count(self) -> int:
        return self.input_count - self.output_count

    def __str__(self) -> str:
        return f"{self.filter_name}: {self.output_count}/{self.input_count} rows kept"


class BaseFilter(ABC):
    """Abstract feature filter."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name used in logs and in the filter summary."""

    @property
    @abstractmethod
    def level(self) -> FilterLevel:
        """Kind of evidence the filter judges rows on."""

    @abstractmethod
    def mask(self, df: pd.DataFrame) -> pd.Series:
        """
        Decide which rows of ``df`` to keep.

        Parameters
        ----------
        df : pd.DataFrame
            Feature table; must not be modified.

        Returns
        -------
        pd.Series
            Boolean series aligned to ``df.index``, True for kept rows.
        """

    def details(self) -> dict:
        """Parameters reported alongside the row counts."""
        return {}

    def apply(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, FilterResult]:
        """Return the kept rows of ``df`` as a new frame and the stage result."""
        # rows missing from the mask count as rejected
        keep = self.mask(df).reindex(df.index, fill_value=False).astype(bool)
        kept = df.loc[keep].copy()
        result = FilterResult(
            filter_name=self.name,
            filter_level=self.level,
            input_count=len(df),
            output_count=len(kept),
            details=self.details(),
        )
        return kept, result

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.details().items())
        return f"{type(self).__name__}({params})"
