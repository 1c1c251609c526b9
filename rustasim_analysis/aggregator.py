"""
Grouped summary statistics (count, median, percentiles) over log tables
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from .errors import EmptyGroupError

DEFAULT_METRICS = ('median', 'p90', 'p99')

_PERCENTILE = re.compile(r'^p(\d+(?:\.\d+)?)$')


def quantile(values, q: float) -> float:
    """Linear interpolation between order statistics (Hyndman & Fan type 7)"""
    return float(np.quantile(np.asarray(values, dtype='float64'), q, method='linear'))


def _reducer(metric: str) -> Callable[[np.ndarray], float]:
    if metric == 'count':
        return lambda values: int(len(values))
    if metric == 'mean':
        return lambda values: float(np.mean(values))
    if metric == 'median':
        return lambda values: quantile(values, 0.5)
    if metric == 'geomean':
        return lambda values: float(stats.gmean(values))

    match = _PERCENTILE.match(metric)
    if match:
        q = float(match.group(1)) / 100
        if q > 1:
            raise ValueError(f"Percentile out of range: {metric}")
        return lambda values: quantile(values, q)

    raise ValueError(f"Unknown metric '{metric}'")


def plain_value(value):
    """numpy scalars to builtin Python values so records serialise cleanly"""
    return value.item() if isinstance(value, np.generic) else value


@dataclass(frozen=True)
class AggregateStat:
    group_by: Tuple[str, ...]
    key: Tuple
    values: Dict[str, float]

    def __getitem__(self, metric: str) -> float:
        return self.values[metric]

    @property
    def count(self):
        return self.values.get('count')

    @property
    def median(self):
        return self.values.get('median')

    @property
    def p90(self):
        return self.values.get('p90')

    @property
    def p99(self):
        return self.values.get('p99')

    def to_dict(self) -> Dict:
        record = dict(zip(self.group_by, self.key))
        record.update(self.values)
        return record


def aggregate(table: pd.DataFrame,
              group_by: Union[str, Sequence[str]],
              metrics: Sequence[str] = DEFAULT_METRICS,
              value_column: str = 'fct_ns') -> List[AggregateStat]:
    """One AggregateStat per group key present in `table`, sorted by the group columns"""
    group_by = [group_by] if isinstance(group_by, str) else list(group_by)
    reducers = {metric: _reducer(metric) for metric in metrics}

    for column in group_by + [value_column]:
        if column not in table.columns:
            raise KeyError(f"Column '{column}' not in table")
    if table.empty:
        raise EmptyGroupError(f"Cannot aggregate '{value_column}' by {group_by}: table has no rows")

    results = []
    for key, group in table.groupby(group_by, sort=True, observed=True):
        if not isinstance(key, tuple):
            key = (key,)
        values = group[value_column].to_numpy(dtype='float64')
        results.append(AggregateStat(
            group_by=tuple(group_by),
            key=tuple(plain_value(k) for k in key),
            values={metric: reduce(values) for metric, reduce in reducers.items()},
        ))

    logging.info(f"Aggregated {len(table)} rows of '{value_column}' into {len(results)} groups by {group_by}")
    return results


def event_counts(table: pd.DataFrame, group_by: Sequence[str] = ('type', 'id')) -> List[AggregateStat]:
    """Number of events of each kind per queue"""
    return aggregate(table, group_by, metrics=('count',), value_column='sim_time')


def stats_to_frame(results: Sequence[AggregateStat]) -> pd.DataFrame:
    return pd.DataFrame([r.to_dict() for r in results])
