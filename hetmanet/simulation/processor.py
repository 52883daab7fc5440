"""
Flow record reduction and CSV export.

This module turns the flow monitor's raw counters into per-flow metrics,
logs them and writes the final CSV files.
"""

import csv
import os
import typing as tp
from dataclasses import asdict

from loguru import logger

from hetmanet.simulation.backend import FlowClassifier
from hetmanet.simulation.calculations import calculate_flow_metrics, mean_of_defined
from hetmanet.simulation.metrics import (
    FlowCounters,
    FlowMetrics,
    FlowRecord,
    ScenarioReport,
    SweepSummaryRow,
)

REPORT_COLUMNS = [
    "flow_id",
    "protocol",
    "source",
    "destination",
    "lost_packets",
    "rx_packets",
    "delay_sum",
    "mean_delay",
    "throughput_mbps",
    "loss_ratio",
    "mean_jitter",
    "time_last_rx_packet",
]


def _fmt(value: tp.Optional[float], unit: str) -> str:
    if value is None:
        return "undefined"
    return f"{value} {unit}"


class FlowMetricsReducer:
    """
    Reduces flow monitor output into a ScenarioReport.
    """

    def collect(
        self,
        classify: FlowClassifier,
        stats: tp.Mapping[int, FlowCounters],
    ) -> tp.List[FlowRecord]:
        """
        Label each flow's counters with its five-tuple.

        Args:
            classify: Lookup from flow id to five-tuple
            stats: Flow id -> counters

        Returns:
            FlowRecords in ascending flow id order
        """
        return [
            FlowRecord(flow_id=flow_id, five_tuple=classify(flow_id), counters=stats[flow_id])
            for flow_id in sorted(stats)
        ]

    def reduce_record(self, record: FlowRecord) -> FlowMetrics:
        counters = record.counters
        derived = calculate_flow_metrics(counters)
        return FlowMetrics(
            flow_id=record.flow_id,
            five_tuple=record.five_tuple,
            lost_packets=counters.lost_packets,
            rx_packets=counters.rx_packets,
            delay_sum=counters.delay_sum,
            time_last_rx_packet=counters.time_last_rx_packet,
            mean_delay=derived["mean_delay"],
            throughput_mbps=derived["throughput_mbps"],
            loss_ratio=derived["loss_ratio"],
            mean_jitter=derived["mean_jitter"],
        )

    def reduce(
        self,
        classify: FlowClassifier,
        stats: tp.Mapping[int, FlowCounters],
        protocol: str = "",
        mobility_type: int = -1,
        n_csma: int = 0,
        n_wifi: int = 0,
    ) -> ScenarioReport:
        """
        Compute the metrics of every flow and the overall completion time.

        Args:
            classify: Lookup from flow id to five-tuple
            stats: Flow id -> counters, read after the run finished
            protocol: Protocol name recorded in the report
            mobility_type: Mobility mode recorded in the report
            n_csma: LAN node count recorded in the report
            n_wifi: Station count recorded in the report

        Returns:
            ScenarioReport with flows in ascending flow id order
        """
        report = ScenarioReport(
            protocol=protocol,
            mobility_type=mobility_type,
            n_csma=n_csma,
            n_wifi=n_wifi,
        )

        for record in self.collect(classify, stats):
            metrics = self.reduce_record(record)
            report.flows.append(metrics)
            if report.completion_time < metrics.time_last_rx_packet:
                report.completion_time = metrics.time_last_rx_packet

        logger.info(f"Reduced {len(report.flows)} flows")
        return report


def log_report(report: ScenarioReport) -> None:
    for flow in report.flows:
        t = flow.five_tuple
        logger.info(f"Flow {flow.flow_id} ({t.source_address}->{t.destination_address})")
        logger.info(f"  Lost Packets: {flow.lost_packets}")
        logger.info(f"  Delay Sum: {flow.delay_sum} s")
        logger.info(f"  Default Delay: {_fmt(flow.mean_delay, 's')}")
        logger.info(f"  throughput : {_fmt(flow.throughput_mbps, 'Mbps')}")
    logger.info(f"Completion time: {report.completion_time} s")


def report_rows(report: ScenarioReport) -> tp.List[tp.Dict[str, tp.Any]]:
    """
    Flatten a report into CSV rows.

    Undefined metrics become empty cells.
    """
    rows = []
    for flow in report.flows:
        t = flow.five_tuple
        rows.append(
            {
                "flow_id": flow.flow_id,
                "protocol": t.protocol_name,
                "source": f"{t.source_address}:{t.source_port}",
                "destination": f"{t.destination_address}:{t.destination_port}",
                "lost_packets": flow.lost_packets,
                "rx_packets": flow.rx_packets,
                "delay_sum": flow.delay_sum,
                "mean_delay": flow.mean_delay,
                "throughput_mbps": flow.throughput_mbps,
                "loss_ratio": flow.loss_ratio,
                "mean_jitter": flow.mean_jitter,
                "time_last_rx_packet": flow.time_last_rx_packet,
            }
        )
    return rows


def export_report_csv(report: ScenarioReport, output_path: str) -> None:
    """
    Export per-flow metrics to a CSV file.

    Args:
        report: Report to export
        output_path: Path for output CSV file
    """
    rows = report_rows(report)
    if not rows:
        logger.warning("No flows to export")
        return

    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)

    logger.info(f"Exported {len(rows)} flows to {output_path}")


def summarize_report(report: ScenarioReport) -> SweepSummaryRow:
    return SweepSummaryRow(
        protocol=report.protocol,
        mobility_type=report.mobility_type,
        flow_count=len(report.flows),
        total_lost_packets=report.total_lost_packets,
        total_rx_packets=report.total_rx_packets,
        mean_delay=mean_of_defined(f.mean_delay for f in report.flows),
        mean_throughput_mbps=mean_of_defined(f.throughput_mbps for f in report.flows),
        completion_time=report.completion_time,
    )


def export_summary_csv(rows: tp.List[SweepSummaryRow], output_path: str) -> None:
    if not rows:
        logger.warning("No sweep results to export")
        return

    dict_rows = [asdict(row) for row in rows]
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=dict_rows[0].keys())
        writer.writeheader()
        writer.writerows(dict_rows)

    logger.info(f"Exported {len(dict_rows)} sweep rows to {output_path}")


def ensure_dir(directory: str) -> None:
    """
    Create directory if it doesn't exist.

    Args:
        directory: Path to directory to create
    """
    if not os.path.exists(directory):
        os.makedirs(directory)
