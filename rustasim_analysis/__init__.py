"""
Post-processing of rustasim simulator logs: event traces, flow completion
times, and comparison against a reference simulator.
"""

from .aggregator import AggregateStat, aggregate, event_counts, quantile, stats_to_frame
from .comparator import (ComparisonResult, ComparisonRow, compare, fct_summary, geometric_mean,
                         ideal_fct_ns, ratio_by_size, scale_by_link_rate, subtract_hop_overhead)
from .config import DEFAULT_CONFIG, load_config
from .errors import (EmptyGroupError, JoinMismatchWarning, LogAnalysisError, SchemaMismatchError,
                     SentinelFilterExhaustionError)
from .loader import load_table
from .normalizer import normalize
from .pipeline import LogAnalysis
from .schema import CONTROL_SCHEMA, EVENT_LOG_SCHEMA, FLOW_SCHEMA, Column, TableSchema

__version__ = "0.1.0"
