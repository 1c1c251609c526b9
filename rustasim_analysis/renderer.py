"""
Plots of event traces and flow completion time statistics
"""

import logging
import math
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.ticker import FuncFormatter
import numpy as np
import pandas as pd
import seaborn as sns

from .comparator import ideal_fct_ns

NS_LABELS = ["100ns", "1us", "10us", "100us", "1ms", "10ms", "100ms", "1s", "10s"]
BYTE_LABELS = ["100 B", "1 KB", "10 KB", "100 KB", "1 MB", "10 MB", "100 MB", "1 GB", "10 GB"]


def _decade_formatter(labels):
    """Tick labels for powers of ten from 1e2 up, blank elsewhere"""
    def fmt(value, _pos):
        if value <= 0:
            return ''
        exponent = int(round(np.log10(value)))
        if 2 <= exponent < 2 + len(labels) and np.isclose(value, 10.0 ** exponent):
            return labels[exponent - 2]
        return ''
    return FuncFormatter(fmt)


def _facets(n: int, ncols: int = 3, size: float = 5):
    ncols = max(1, min(ncols, n))
    nrows = max(1, math.ceil(n / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(size * ncols, size * nrows), squeeze=False)
    axes = axes.flatten()
    for ax in axes[n:]:
        ax.set_visible(False)
    return fig, axes


def _save(fig, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    fig.savefig(path, dpi=300, bbox_inches='tight')
    plt.close(fig)
    logging.info(f"Saved plot to {path}")
    return path


def plot_event_counts(counts: pd.DataFrame, path) -> Path:
    """Bar chart of event counts by type, one panel per queue id"""
    sns.set_palette("husl")
    ids = sorted(counts['id'].unique())
    types = sorted(counts['type'].unique())
    colors = dict(zip(types, sns.color_palette("husl", len(types))))

    fig, axes = _facets(len(ids))
    fig.suptitle('Events by Type per Queue', fontsize=16, fontweight='bold')
    for ax, queue in zip(axes, ids):
        data = counts[counts['id'] == queue]
        ax.bar(data['type'], data['count'], color=[colors[t] for t in data['type']], alpha=0.7)
        ax.set_title(f'Queue {queue}')
        ax.set_xlabel('Event Type')
        ax.set_ylabel('Count')
        ax.tick_params(axis='x', rotation=45)
        ax.grid(True, alpha=0.3)
    return _save(fig, path)


def plot_event_timeline(events: pd.DataFrame, path) -> Path:
    """Real time vs. simulation time: one arrow per event from (tx, start) to (rx, sim_time)"""
    sns.set_palette("husl")
    ids = sorted(events['id'].unique())
    types = sorted(events['type'].unique())
    colors = dict(zip(types, sns.color_palette("husl", len(types))))

    fig, axes = _facets(len(ids))
    fig.suptitle('Event Timeline', fontsize=16, fontweight='bold')
    for ax, queue in zip(axes, ids):
        data = events[events['id'] == queue].sort_values('rx_time')
        ax.step(data['rx_time'], data['sim_time'], where='post', color='black', linewidth=0.8)
        for event_type, group in data.groupby('type', observed=True):
            ax.quiver(group['tx_time'], group['start'],
                      group['rx_time'] - group['tx_time'], group['sim_time'] - group['start'],
                      angles='xy', scale_units='xy', scale=1, width=0.002,
                      color=colors[event_type], label=str(event_type))
        ax.set_title(f'Queue {queue}')
        ax.set_xlabel('Real time (ms)')
        ax.set_ylabel('Simulation time (us)')
        ax.grid(True, alpha=0.3)
    axes[0].legend(title='Event type')
    return _save(fig, path)


def plot_fct_by_size(summary: pd.DataFrame, path, ideal: bool = True) -> Path:
    """Log-log FCT against flow size, one panel per statistic, one line per source"""
    sns.set_palette("husl")
    statistics = list(dict.fromkeys(summary['statistic']))

    fig, axes = _facets(len(statistics))
    fig.suptitle('Flow completion time by flow size', fontsize=16, fontweight='bold')
    for ax, statistic in zip(axes, statistics):
        data = summary[summary['statistic'] == statistic]
        for source, group in data.groupby('source'):
            group = group.sort_values('size_byte')
            ax.plot(group['size_byte'], group['fct_ns'], marker='x', markersize=8, label=source)
        if ideal and not data.empty:
            sizes = np.geomspace(data['size_byte'].min(), data['size_byte'].max(), 100)
            ax.plot(sizes, ideal_fct_ns(sizes), color='black', linestyle='--', label='ideal')
        ax.set_xscale('log')
        ax.set_yscale('log')
        ax.xaxis.set_major_formatter(_decade_formatter(BYTE_LABELS))
        ax.yaxis.set_major_formatter(_decade_formatter(NS_LABELS))
        ax.set_title(statistic)
        ax.legend()
        ax.grid(True, alpha=0.3)
    return _save(fig, path)


def plot_ratio_by_size(ratios: pd.DataFrame, path) -> Path:
    """Geometric-mean experiment/control FCT ratio per flow size"""
    fig, ax = plt.subplots(figsize=(10, 6))
    data = ratios.sort_values('size_byte')
    ax.plot(data['size_byte'], data['geomean'], 'o-', linewidth=2, markersize=6)
    ax.axhline(1.0, color='black', linestyle='--', alpha=0.5)
    ax.set_xscale('log')
    ax.set_yscale('log')
    ax.set_title('Experiment / Control FCT Ratio (geometric mean)')
    ax.set_xlabel('Flow size (bytes)')
    ax.set_ylabel('FCT ratio')
    ax.grid(True, alpha=0.3)
    return _save(fig, path)


def plot_send_receive(events: pd.DataFrame, path) -> Path:
    """Receive time against send time, one step line per (src, queue) pair"""
    ids = sorted(events['id'].unique())
    colors = dict(zip(ids, sns.color_palette("husl", len(ids))))

    fig, ax = plt.subplots(figsize=(10, 6))
    labelled = set()
    for (src, queue), group in events.groupby(['src', 'id'], observed=True):
        group = group.sort_values('tx_time')
        label = None if queue in labelled else f'Queue {queue}'
        labelled.add(queue)
        ax.step(group['tx_time'], group['rx_time'], where='post', linewidth=0.8,
                color=colors[queue], label=label)
    ax.set_title('Event send vs. receive time', fontsize=16, fontweight='bold')
    ax.set_xlabel('Send time (ms)')
    ax.set_ylabel('Receive time (ms)')
    if labelled:
        ax.legend(title='Queue')
    ax.grid(True, alpha=0.3)
    return _save(fig, path)
