"""Utilities to work with Pandas data frames"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

import pandas as pd


def as_df(data: Collection[dict[Any, Any]]) -> pd.DataFrame:
    """Generates a new Pandas `DataFrame` from a collection of rows.

    Each dictionary corresponds to one row of the data frame. All dictionaries have to consist of exactly the same keys.
    Each key becomes a column in the data frame. The precise columns are inferred from the first dictionary in the
    collection.
    """
    if not data:
        return pd.DataFrame()
    if isinstance(data, dict):
        raise TypeError("Expected a collection of rows, not a single mapping: " + str(data))

    data_template = next(iter(data))
    df_container: dict[str, list[Any]] = {col: [] for col in data_template.keys()}
    for row in data:
        for key in df_container.keys():
            df_container[key].append(row[key])
    return pd.DataFrame(df_container)
