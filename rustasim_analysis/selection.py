"""
Row selection helpers for picking a plottable slice of a large event trace
"""

from typing import Iterable, Optional

import numpy as np
import pandas as pd


def sample_rows(table: pd.DataFrame, n: int, seed: Optional[int] = None) -> pd.DataFrame:
    """At most `n` rows drawn without replacement, reproducible with `seed`"""
    if len(table) <= n:
        return table.copy()
    return table.sample(n=n, random_state=seed)


def random_window_start(table: pd.DataFrame, column: str = 'sim_time', seed: Optional[int] = None) -> float:
    """Uniformly drawn, rounded start point between 0 and the column maximum"""
    if table.empty:
        return 0.0
    rng = np.random.default_rng(seed)
    return float(np.round(rng.uniform(0, table[column].max())))


def time_window(table: pd.DataFrame, column: str, start: float, duration: float) -> pd.DataFrame:
    """Rows with start <= column <= start + duration"""
    mask = (table[column] >= start) & (table[column] <= start + duration)
    return table[mask]


def exclude_values(table: pd.DataFrame, column: str, values: Iterable) -> pd.DataFrame:
    return table[~table[column].isin(list(values))]
