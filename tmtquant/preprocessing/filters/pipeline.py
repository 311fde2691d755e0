"""
Ordered application of feature filters with per-stage row accounting.
"""

from typing import List, Tuple

import pandas as pd

from tmtquant.core.logger import get_logger
from tmtquant.preprocessing.filters.base import BaseFilter, FilterResult


logger = get_logger("tmtquant.preprocessing.filters.pipeline")

SUMMARY_COLUMNS = ["step", "filter", "level", "rows_before", "rows_after", "removed"]


class FilterPipeline:
    """
    Feature filters run one after the other on a protein or site table.

    Each stage sees only the rows its predecessors kept, so the reported
    counts depend on the order in which filters were added.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self.filters: List[BaseFilter] = []

    def add_filter(self, filter_obj: BaseFilter) -> "FilterPipeline":
        """Append a stage; returns the pipeline so calls can be chained."""
        self.filters.append(filter_obj)
        return self

    def apply(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, List[FilterResult]]:
        """
        Run every stage on ``df``.

        Stages after the table has become empty are skipped and get no
        result entry.

        Parameters
        ----------
        df : pd.DataFrame
            Feature table, left unmodified.

        Returns
        -------
        Tuple[pd.DataFrame, List[FilterResult]]
            Surviving rows and one result per stage that ran.
        """
        kept = df
        results: List[FilterResult] = []

        for position, stage in enumerate(self.filters, start=1):
            if kept.empty:
                skipped = [f.name for f in self.filters[position - 1:]]
                logger.warning(
                    "%s: no rows left, skipping %s", self.name, ", ".join(skipped)
                )
                break
            kept, result = stage.apply(kept)
            results.append(result)
            logger.info(
                "%s step %d (%s): %d -> %d rows",
                self.name,
                position,
                result.filter_name,
                result.input_count,
                result.output_count,
            )

        if results:
            logger.info(
                "%s kept %d of %d rows", self.name, results[-1].output_count, results[0].input_count
            )
        return kept, results

    @staticmethod
    def summary_table(results: List[FilterResult]) -> pd.DataFrame:
        """One row per stage that ran, in application order."""
        rows = [
            (
                step,
                r.filter_name,
                r.filter_level.name.lower(),
                r.input_count,
                r.output_count,
                r.removed_count,
            )
            for step, r in enumerate(results, start=1)
        ]
        return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)

    def __len__(self) -> int:
        return len(self.filters)

    def __repr__(self) -> str:
        return f"FilterPipeline({self.name!r}, {[f.name for f in self.filters]})"
