#!/usr/bin/env python3
"""
Command line entry point: python -m rustasim_analysis --flows flows.csv --control FCT.txt
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .errors import LogAnalysisError
from .pipeline import LogAnalysis


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Summarize and plot rustasim simulation logs")
    parser.add_argument("--events", help="event trace (out.log)")
    parser.add_argument("--flows", help="flow completion records (flows.csv)")
    parser.add_argument("--control", help="reference simulator FCT file")
    parser.add_argument("--out", help="output directory for reports and plots")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--seed", type=int, help="seed for row sampling and window selection")
    parser.add_argument("--no-plots", action="store_true", help="write reports only")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    overrides = {}
    inputs = {k: v for k, v in (("events", args.events), ("flows", args.flows), ("control", args.control)) if v}
    if inputs:
        overrides["inputs"] = inputs
    if args.out:
        overrides["output_dir"] = args.out
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.no_plots:
        overrides["plots"] = False
    config = load_config(args.config, **overrides)

    out_dir = Path(config["output_dir"])
    out_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        force=True,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(out_dir / 'log_analysis.log'),
            logging.StreamHandler()
        ]
    )

    try:
        LogAnalysis(config).run_complete_analysis()
    except LogAnalysisError as e:
        logging.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
