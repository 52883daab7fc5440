"""
Reduce a saved flow monitor XML dump without re-running the simulation.

Usage:
    python scripts/flowmon_report.py dumps/dsdv_mobility1_csma3_wifi3.xml
    python scripts/flowmon_report.py run.xml --output dumps/run_flows.csv
"""

import argparse
import os
import sys

from loguru import logger

from hetmanet.simulation.parsers import parse_flowmon_xml
from hetmanet.simulation.processor import (
    FlowMetricsReducer,
    ensure_dir,
    export_report_csv,
    log_report,
)
from hetmanet.utils.log import setup_logger


def main():
    parser = argparse.ArgumentParser(
        description="Compute per-flow metrics from a flow monitor XML dump"
    )
    parser.add_argument("xml_path", type=str, help="Path to the XML dump")
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="CSV file to write (default: next to the XML, *_flows.csv)",
    )
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args()

    setup_logger(args.log_level)

    if not os.path.exists(args.xml_path):
        logger.error(f"File not found: {args.xml_path}")
        sys.exit(1)

    try:
        classifier, stats = parse_flowmon_xml(args.xml_path)
    except ValueError as e:
        logger.error(f"Could not read {args.xml_path}: {e}")
        sys.exit(1)

    report = FlowMetricsReducer().reduce(classifier.__getitem__, stats)
    log_report(report)

    output = args.output or os.path.splitext(args.xml_path)[0] + "_flows.csv"
    ensure_dir(os.path.dirname(output) or ".")
    export_report_csv(report, output)


if __name__ == "__main__":
    main()
