"""
Unit conversions, sentinel filtering and derived columns for loaded log tables
"""

import logging
from typing import Callable, Dict, Iterable, Optional

import numpy as np
import pandas as pd

from .errors import SentinelFilterExhaustionError

Derivation = Callable[[pd.DataFrame], pd.Series]

PACKET_EVENT = "ModelEvent(Packet)"


def normalize(table: pd.DataFrame,
              unit_conversions: Optional[Dict[str, float]] = None,
              derived_columns: Optional[Dict[str, Derivation]] = None,
              categorical: Iterable[str] = (),
              sentinels: Optional[Dict[str, object]] = None) -> pd.DataFrame:
    """Return a normalized copy of `table`.

    Steps run in a fixed order: rows whose column equals its sentinel value are
    dropped, unit conversions divide columns by their divisor, categorical
    columns are cast, then derived columns are evaluated in insertion order so
    a derivation can read the columns produced before it.
    """
    out = table.copy()

    for column, sentinel in (sentinels or {}).items():
        before = len(out)
        out = out[out[column] != sentinel]
        dropped = before - len(out)
        if dropped:
            logging.info(f"Dropped {dropped} rows with {column} == {sentinel}")
        if before and out.empty:
            raise SentinelFilterExhaustionError(column, dropped)
    out = out.reset_index(drop=True)

    for column, divisor in (unit_conversions or {}).items():
        out[column] = out[column] / divisor

    for column in categorical:
        out[column] = out[column].astype('category')

    for column, derive in (derived_columns or {}).items():
        out[column] = derive(out)

    return out


def event_start(table: pd.DataFrame) -> pd.Series:
    """Visual start of an event: packets are drawn with an extra 1.5us lead"""
    offset = np.where(table['type'] == PACKET_EVENT, 0.1 + 1.5, 0.1)
    return table['sim_time'] - offset


def flow_start(table: pd.DataFrame) -> pd.Series:
    if 'start' in table.columns:
        return table['start']
    return table['end'] - table['fct_ns']


def scaled(column: str, factor: float) -> Derivation:
    def derive(table: pd.DataFrame) -> pd.Series:
        return table[column] * factor
    return derive


def shifted(column: str, offset) -> Derivation:
    def derive(table: pd.DataFrame) -> pd.Series:
        return table[column] + offset
    return derive


def rounded(column: str, factor: float = 1.0) -> Derivation:
    """Round half to even of column * factor, used for timestamp join keys"""
    def derive(table: pd.DataFrame) -> pd.Series:
        return pd.Series(np.round(table[column].to_numpy(dtype='float64') * factor), index=table.index)
    return derive


EVENT_NORMALIZATION = {
    'unit_conversions': {'sim_time': 1000, 'tx_time': 1e6, 'rx_time': 1e6},
    'categorical': ('src', 'id'),
    'sentinels': {'rx_time': 0},
    'derived_columns': {'start': event_start},
}

FLOW_NORMALIZATION = {
    'derived_columns': {
        'start': flow_start,
        'start_us': rounded('start', 1e-3),
    },
}

# the reference simulator numbers hosts from 0 and reports milliseconds
CONTROL_NORMALIZATION = {
    'derived_columns': {
        'src': shifted('src', 1),
        'dst': shifted('dst', 1),
        'fct_ns': scaled('fct_ms', 1e6),
        'start': scaled('start_ms', 1e6),
        'start_us': rounded('start_ms', 1e3),
    },
}
