"""
Modification site table reshaping.

Site tables carry one reporter column per channel and modification state,
suffixed ``___k``. Expansion turns each site into one row per state.
"""

import re

import numpy as np
import pandas as pd

from tmtquant.core.constants import (
    SITE_INTENSITY_PATTERN,
    MULTIPLICITY_SUFFIX,
    MODIFICATION_COUNT,
    select_columns,
)
from tmtquant.core.exceptions import ConfigurationError
from tmtquant.core.logger import get_logger


logger = get_logger("tmtquant.aggregation.sites")


def expand_site_multiplicity(
    site_table: pd.DataFrame,
    pattern: str = SITE_INTENSITY_PATTERN,
    suffix_regex: str = MULTIPLICITY_SUFFIX,
    modification_column: str = MODIFICATION_COUNT,
) -> pd.DataFrame:
    """
    Expand a site table into one row per site and modification state.

    Parameters
    ----------
    site_table : pd.DataFrame
        Site table with ``<channel column>___k`` reporter columns.
    pattern : str, optional
        Regular expression selecting the suffixed reporter columns.
    suffix_regex : str, optional
        Regular expression capturing the state ``k`` at the end of a column.
    modification_column : str, optional
        Name of the added modification-state column.

    Returns
    -------
    pd.DataFrame
        New table with unsuffixed reporter columns and a modification-state
        column. Rows without a positive value in any channel are dropped.
        Rows keep their site's original order, states ascending.
    """
    suffix = re.compile(suffix_regex)
    suffixed = select_columns(site_table, pattern)
    if not suffixed:
        raise ConfigurationError(f"No site reporter columns match '{pattern}'")

    by_state = {}
    for col in suffixed:
        match = suffix.search(col)
        if match is None:
            raise ConfigurationError(f"Column '{col}' has no modification-state suffix")
        by_state.setdefault(int(match.group(1)), []).append(col)

    base = site_table.drop(columns=suffixed).reset_index(drop=True)
    channel_names = [suffix.sub("", col) for col in by_state[min(by_state)]]

    expanded = []
    for state in sorted(by_state):
        columns = by_state[state]
        names = [suffix.sub("", col) for col in columns]
        if names != channel_names:
            raise ConfigurationError(
                f"Modification state {state} has channels {names}, expected {channel_names}"
            )
        part = base.copy()
        values = site_table[columns].to_numpy(dtype=float)
        for name, column_values in zip(channel_names, values.T):
            part[name] = column_values
        part[modification_column] = state
        part["_site_position"] = np.arange(len(base))
        expanded.append(part)

    result = pd.concat(expanded, ignore_index=True)
    result = result.sort_values(["_site_position", modification_column], kind="stable")

    values = result[channel_names].to_numpy(dtype=float)
    has_signal = (np.nan_to_num(values, nan=0.0) > 0).any(axis=1)
    result = result[has_signal].drop(columns="_site_position").reset_index(drop=True)

    logger.info(
        "Expanded %d sites into %d site/state rows (%d states)",
        len(site_table),
        len(result),
        len(by_state),
    )
    return result
