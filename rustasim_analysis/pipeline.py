"""
End-to-end analysis of a rustasim run: event trace, FCTs and comparison with a reference simulator
"""

import json
import math
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from .aggregator import aggregate, event_counts, stats_to_frame
from .comparator import compare, fct_summary, ratio_by_size, scale_by_link_rate, subtract_hop_overhead
from .config import load_config
from .errors import EmptyGroupError, SentinelFilterExhaustionError
from .loader import load_table
from .normalizer import CONTROL_NORMALIZATION, EVENT_NORMALIZATION, FLOW_NORMALIZATION, normalize
from .schema import CONTROL_SCHEMA, EVENT_LOG_SCHEMA, FLOW_SCHEMA
from .selection import exclude_values, random_window_start, sample_rows, time_window
from . import renderer


def _json_safe(value):
    """NaN and infinities become null; strict JSON has no spelling for them"""
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


class LogAnalysis:
    def __init__(self, config: Optional[Dict] = None):
        self.config = config if config is not None else load_config()
        self.results_dir = Path(self.config["output_dir"])
        self.events_df = None
        self.flows_df = None
        self.control_df = None
        self.flows = None
        self.control = None
        self.results = {}
        self.errors = []
        self.start_time = None

    def load_data(self):
        """Load every configured input file"""
        logging.info("Loading simulation logs...")
        inputs = self.config["inputs"]

        if inputs["events"]:
            self.events_df = load_table(inputs["events"], EVENT_LOG_SCHEMA)
        if inputs["flows"]:
            self.flows_df = load_table(inputs["flows"], FLOW_SCHEMA)
        if inputs["control"]:
            self.control_df = load_table(inputs["control"], CONTROL_SCHEMA)

    def _record_error(self, analysis: str, error: Exception):
        logging.error(f"{analysis} analysis failed: {error}")
        self.errors.append({"analysis": analysis, "error": type(error).__name__, "detail": str(error)})

    def analyze_events(self):
        """Event counts per type and queue, plus a timeline of a window of simulated time"""
        if self.events_df is None:
            logging.info("No event log configured, skipping event analysis")
            return
        logging.info("Analyzing event trace...")
        settings = self.config["events"]

        try:
            events = normalize(self.events_df, **EVENT_NORMALIZATION)
            counts = event_counts(events)
        except (SentinelFilterExhaustionError, EmptyGroupError) as e:
            self._record_error("events", e)
            return
        self.results["event_counts"] = [c.to_dict() for c in counts]

        if not self.config["plots"]:
            return
        renderer.plot_event_counts(stats_to_frame(counts), self.results_dir / "event_counts.png")
        renderer.plot_send_receive(sample_rows(events, settings["sample_size"], seed=self.config["seed"]),
                                   self.results_dir / "event_send_receive.png")

        start = settings["window_start"]
        if start is None:
            start = random_window_start(events, 'sim_time', seed=self.config["seed"])
        shown = exclude_values(events, 'src', settings["exclude_src"])
        shown = time_window(shown, 'sim_time', start, settings["window_duration"])
        shown = sample_rows(shown, settings["sample_size"], seed=self.config["seed"])
        if shown.empty:
            logging.warning(f"No events between {start} and {start + settings['window_duration']} us, skipping timeline")
            return
        renderer.plot_event_timeline(shown, self.results_dir / "event_timeline.png")

    def analyze_fcts(self):
        """Median and tail FCT per flow size, for the experiment and the control run"""
        if self.flows_df is None:
            logging.info("No flow log configured, skipping FCT analysis")
            return
        logging.info("Analyzing flow completion times...")
        metrics = self.config["fcts"]["metrics"]
        settings = self.config["comparison"]

        self.flows = normalize(self.flows_df, **FLOW_NORMALIZATION)
        experiment = subtract_hop_overhead(settings["hops"], settings["per_hop_ns"])(self.flows)
        try:
            self.results["experiment_fcts"] = [s.to_dict() for s in aggregate(experiment, 'size_byte', metrics)]
        except EmptyGroupError as e:
            self._record_error("experiment fcts", e)
            return

        if self.control_df is None:
            return
        self.control = normalize(self.control_df, **CONTROL_NORMALIZATION)
        try:
            self.results["control_fcts"] = [s.to_dict() for s in aggregate(self.control, 'size_byte', metrics)]
            summary = fct_summary(experiment, self.control, metrics)
        except EmptyGroupError as e:
            self._record_error("control fcts", e)
            return

        summary.to_csv(self.results_dir / "fct_summary.csv", index=False)
        if self.config["plots"]:
            renderer.plot_fct_by_size(summary, self.results_dir / "fct_by_size.png")

    def compare_with_control(self):
        """Flow-by-flow FCT ratio against the reference simulator"""
        if self.flows is None or self.control is None:
            logging.info("Flows and control FCTs both needed, skipping comparison")
            return
        logging.info("Comparing experiment against control...")
        settings = self.config["comparison"]

        result = compare(
            self.flows,
            self.control,
            join_keys=settings["join_keys"],
            adjustment=scale_by_link_rate(settings["payload_bytes"], settings["frame_bytes"]),
            fct_from_control_start=settings["fct_from_control_start"],
        )
        result.to_frame().to_csv(self.results_dir / "comparison.csv", index=False)
        self.results["comparison"] = {
            "matched": result.matched,
            "unmatched_experiment": result.unmatched_experiment,
            "unmatched_control": result.unmatched_control,
            "match_rate": result.match_rate,
        }

        try:
            ratios = ratio_by_size(result, min_size=settings["min_size"])
        except EmptyGroupError as e:
            self._record_error("comparison", e)
            return
        self.results["ratio_by_size"] = [r.to_dict() for r in ratios]
        if self.config["plots"]:
            renderer.plot_ratio_by_size(stats_to_frame(ratios), self.results_dir / "ratio_by_size.png")

    def generate_report(self):
        """Write analysis.json and a plain-text summary"""
        logging.info("Generating report...")
        analysis_file = self.results_dir / "analysis.json"
        report_file = self.results_dir / "analysis_report.txt"

        analysis = {
            "metadata": {
                "generated": datetime.now().isoformat(),
                "inputs": self.config["inputs"],
                "records": {
                    name: len(df) for name, df in
                    (("events", self.events_df), ("flows", self.flows_df), ("control", self.control_df))
                    if df is not None
                },
            },
            "results": self.results,
            "errors": self.errors,
        }
        with open(analysis_file, 'w') as f:
            json.dump(_json_safe(analysis), f, indent=2, allow_nan=False)
        logging.info(f"Analysis saved to {analysis_file}")

        with open(report_file, 'w') as f:
            f.write("RUSTASIM LOG ANALYSIS REPORT\n")
            f.write("=" * 60 + "\n")
            f.write(f"Generated: {pd.Timestamp.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")

            for name, count in analysis["metadata"]["records"].items():
                f.write(f"{name} records: {count:,}\n")

            for title, key in (("EXPERIMENT FCT (ns) BY SIZE", "experiment_fcts"),
                               ("CONTROL FCT (ns) BY SIZE", "control_fcts")):
                if key not in self.results:
                    continue
                f.write(f"\n{title}:\n")
                f.write("-" * 30 + "\n")
                for row in self.results[key]:
                    stats = ", ".join(f"{k}={v:.1f}" for k, v in row.items() if k != "size_byte")
                    f.write(f"  {row['size_byte']:>12,} B: {stats}\n")

            if "comparison" in self.results:
                comparison = self.results["comparison"]
                f.write("\nEXPERIMENT VS CONTROL:\n")
                f.write("-" * 30 + "\n")
                f.write(f"Matched flows: {comparison['matched']:,} (match rate {comparison['match_rate']:.1%})\n")
                f.write(f"Unmatched experiment flows: {comparison['unmatched_experiment']:,}\n")
                f.write(f"Unmatched control flows: {comparison['unmatched_control']:,}\n")
                for row in self.results.get("ratio_by_size", []):
                    f.write(f"  {row['size_byte']:>12,} B: ratio {row['geomean']:.3f} (n={row['count']})\n")

            if self.errors:
                f.write("\nERRORS:\n")
                f.write("-" * 30 + "\n")
                for error in self.errors:
                    f.write(f"⚠ {error['analysis']}: {error['error']}: {error['detail']}\n")

        logging.info(f"Report saved to {report_file}")

    def run_complete_analysis(self):
        """Run the full pipeline over every configured input"""
        logging.info("Starting rustasim log analysis...")
        self.start_time = datetime.now()
        self.results_dir.mkdir(parents=True, exist_ok=True)
        try:
            self.load_data()
            self.analyze_events()
            self.analyze_fcts()
            self.compare_with_control()
            self.generate_report()
        except Exception as e:
            logging.error(f"Analysis failed: {e}")
            raise
        logging.info(f"Analysis completed in {datetime.now() - self.start_time}")
