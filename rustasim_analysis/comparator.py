"""
Experiment vs. control flow completion time comparison
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from .aggregator import DEFAULT_METRICS, AggregateStat, plain_value, aggregate, stats_to_frame
from .errors import EmptyGroupError, JoinMismatchWarning

Adjustment = Callable[[pd.DataFrame], pd.DataFrame]

DEFAULT_JOIN_KEYS = ('src', 'dst', 'size_byte', 'start_us')

# flows of two full-size packets or fewer sit on the latency floor
MIN_RATIO_SIZE = 2 * 1500


def subtract_hop_overhead(hops: int = 4, per_hop_ns: float = 500, column: str = 'fct_ns') -> Adjustment:
    """Remove the fixed per-hop processing delay from every FCT"""
    def adjust(table: pd.DataFrame) -> pd.DataFrame:
        out = table.copy()
        out[column] = out[column] - hops * per_hop_ns
        return out
    return adjust


def scale_by_link_rate(payload: float = 1436, frame: float = 1500, column: str = 'fct_ns') -> Adjustment:
    """Rescale FCTs measured on payload bytes to full frame bytes"""
    def adjust(table: pd.DataFrame) -> pd.DataFrame:
        out = table.copy()
        out[column] = out[column] * payload / frame
        return out
    return adjust


def ideal_fct_ns(size_byte, hops: int = 6, per_hop_ns: float = 500, ns_per_byte: float = 8 / 10):
    """Lower bound on FCT: per-hop latency plus serialization of the payload"""
    return hops * per_hop_ns + np.asarray(size_byte, dtype='float64') * ns_per_byte


def geometric_mean(values) -> float:
    return float(stats.gmean(np.asarray(values, dtype='float64')))


@dataclass(frozen=True)
class ComparisonRow:
    key: Dict[str, object]
    experiment_fct: float
    control_fct: float
    ratio: float

    @property
    def size_byte(self):
        return self.key.get('size_byte')

    def to_dict(self) -> Dict:
        record = dict(self.key)
        record.update({
            'fct_experiment': self.experiment_fct,
            'fct_control': self.control_fct,
            'ratio': self.ratio,
        })
        return record


@dataclass(frozen=True)
class ComparisonResult:
    join_keys: Sequence[str]
    rows: List[ComparisonRow]
    unmatched_experiment: int
    unmatched_control: int

    @property
    def matched(self) -> int:
        return len(self.rows)

    @property
    def match_rate(self) -> float:
        total = self.matched + self.unmatched_experiment + self.unmatched_control
        return self.matched / total if total else 0.0

    def to_frame(self) -> pd.DataFrame:
        columns = list(self.join_keys) + ['fct_experiment', 'fct_control', 'ratio']
        return pd.DataFrame([r.to_dict() for r in self.rows], columns=columns)


def _side(joined: pd.DataFrame, column: str, side: str) -> str:
    """Merged name of a column checked present on `side`: suffixed when both tables had it"""
    suffixed = f"{column}_{side}"
    return suffixed if suffixed in joined.columns else column


def compare(experiment: pd.DataFrame,
            control: pd.DataFrame,
            join_keys: Sequence[str] = DEFAULT_JOIN_KEYS,
            adjustment: Optional[Adjustment] = None,
            experiment_adjustment: Optional[Adjustment] = None,
            value_column: str = 'fct_ns',
            fct_from_control_start: bool = False) -> ComparisonResult:
    """Match experiment flows to control flows and compute FCT ratios.

    `experiment_adjustment` is applied to the experiment table and `adjustment`
    to the control table before the join. Only rows present on both sides are
    kept; the unmatched counts on each side are reported and a
    JoinMismatchWarning is emitted when either is non-zero.

    With `fct_from_control_start` the experiment FCT is recomputed as the
    experiment's `end` minus the control's `start`, so both simulators are
    measured from the same flow start time.
    """
    join_keys = list(join_keys)
    if experiment_adjustment is not None:
        experiment = experiment_adjustment(experiment)
    if adjustment is not None:
        control = adjustment(control)

    required = {'experiment': join_keys + [value_column], 'control': join_keys + [value_column]}
    if fct_from_control_start:
        required['experiment'].append('end')
        required['control'].append('start')
    for side, table in (('experiment', experiment), ('control', control)):
        missing = [c for c in required[side] if c not in table.columns]
        if missing:
            raise KeyError(f"{side} table lacks columns {missing}")

    joined = experiment.merge(control, how='outer', on=join_keys,
                              suffixes=('_experiment', '_control'), indicator=True)
    matched = joined[joined['_merge'] == 'both']
    unmatched_experiment = int((joined['_merge'] == 'left_only').sum())
    unmatched_control = int((joined['_merge'] == 'right_only').sum())

    control_fct = matched[_side(joined, value_column, 'control')]
    if fct_from_control_start:
        experiment_fct = matched[_side(joined, 'end', 'experiment')] - matched[_side(joined, 'start', 'control')]
    else:
        experiment_fct = matched[_side(joined, value_column, 'experiment')]
    ratio = experiment_fct / control_fct

    keys = matched[join_keys].to_dict('records')
    rows = [
        ComparisonRow(
            key={k: plain_value(v) for k, v in key.items()},
            experiment_fct=float(e),
            control_fct=float(c),
            ratio=float(r),
        )
        for key, e, c, r in zip(keys, experiment_fct, control_fct, ratio)
    ]

    result = ComparisonResult(join_keys=tuple(join_keys), rows=rows,
                              unmatched_experiment=unmatched_experiment,
                              unmatched_control=unmatched_control)
    logging.info(f"Matched {result.matched} flows on {join_keys} (match rate {result.match_rate:.1%})")
    if unmatched_experiment or unmatched_control:
        message = (f"Join on {join_keys} dropped {unmatched_experiment} experiment rows "
                   f"and {unmatched_control} control rows with no match")
        logging.warning(message)
        warnings.warn(message, JoinMismatchWarning, stacklevel=2)
    return result


def ratio_by_size(result: ComparisonResult,
                  group_by: str = 'size_byte',
                  min_size: Optional[int] = MIN_RATIO_SIZE) -> List[AggregateStat]:
    """Geometric mean FCT ratio per flow size.

    Ratios are multiplicative, so the per-group centre is exp(mean(log(ratio))).
    Flows no larger than `min_size` bytes are left out.
    """
    frame = result.to_frame()
    frame = frame[np.isfinite(frame['ratio'].astype('float64'))]
    if min_size is not None:
        frame = frame[frame['size_byte'] > min_size]
    if frame.empty:
        raise EmptyGroupError(f"No comparable flows larger than {min_size} bytes")
    return aggregate(frame, group_by, metrics=('geomean', 'count'), value_column='ratio')


def fct_summary(experiment: pd.DataFrame,
                control: pd.DataFrame,
                metrics: Sequence[str] = DEFAULT_METRICS,
                value_column: str = 'fct_ns') -> pd.DataFrame:
    """Per-size FCT statistics of both sides in long form:
    size_byte, source, statistic, fct_ns
    """
    frames = []
    for source, table in (('control', control), ('experiment', experiment)):
        frame = stats_to_frame(aggregate(table, 'size_byte', metrics, value_column))
        frame['source'] = source
        frames.append(frame)
    wide = pd.concat(frames, ignore_index=True)
    return wide.melt(id_vars=['size_byte', 'source'], var_name='statistic', value_name='fct_ns')
