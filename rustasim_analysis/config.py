"""
Run configuration: defaults plus JSON / keyword overrides
"""

import copy
import json
import logging
from pathlib import Path
from typing import Dict, Optional

DEFAULT_CONFIG = {
    # Inputs; None skips the corresponding analysis
    "inputs": {
        "events": None,     # out.log
        "flows": None,      # flows.csv / flows1perc.csv
        "control": None,    # reference simulator FCT dump
    },
    "output_dir": "results",
    "seed": None,
    "plots": True,
    "events": {
        "sample_size": 100000,
        "window_start": 0,      # us of simulated time; None draws a random start
        "window_duration": 50,
        "exclude_src": [0],
    },
    "fcts": {
        "metrics": ["median", "p90", "p99"],
    },
    "comparison": {
        "join_keys": ["src", "dst", "size_byte", "start_us"],
        "hops": 4,
        "per_hop_ns": 500,
        "payload_bytes": 1436,
        "frame_bytes": 1500,
        "min_size": 2 * 1500,
        "fct_from_control_start": True,
    },
}


def _merge(base: Dict, overrides: Dict, path: str = "") -> Dict:
    for key, value in overrides.items():
        if key not in base:
            raise KeyError(f"Unknown configuration key '{path}{key}'")
        if isinstance(base[key], dict) and isinstance(value, dict):
            _merge(base[key], value, f"{path}{key}.")
        else:
            base[key] = value
    return base


def load_config(path: Optional[str] = None, **overrides) -> Dict:
    """Defaults, updated from a JSON file and then from keyword overrides"""
    config = copy.deepcopy(DEFAULT_CONFIG)
    if path:
        with open(Path(path), 'r') as f:
            _merge(config, json.load(f))
        logging.info(f"Loaded configuration from {path}")
    return _merge(config, overrides)
