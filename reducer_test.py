import pytest

from hetmanet.simulation.calculations import (
    calculate_flow_metrics,
    calculate_mean_delay,
    calculate_throughput_mbps,
    mean_of_defined,
)
from hetmanet.simulation.metrics import FiveTuple, FlowCounters, ScenarioReport
from hetmanet.simulation.processor import (
    FlowMetricsReducer,
    export_report_csv,
    log_report,
    report_rows,
    summarize_report,
)

TUPLE = FiveTuple(17, "10.1.3.3", 49153, "10.1.2.4", 9)


def classify(flow_id):
    return TUPLE


def test_delivered_flow_metrics():
    counters = FlowCounters(
        lost_packets=0,
        rx_packets=10,
        delay_sum=2.0,
        rx_bytes=10240,
        time_first_tx_packet=2.0,
        time_last_rx_packet=11.0,
    )
    metrics = calculate_flow_metrics(counters)

    assert metrics["mean_delay"] == pytest.approx(0.2)
    assert metrics["throughput_mbps"] == pytest.approx(10240 * 8 / 9.0 / 1e6)
    assert metrics["throughput_mbps"] == pytest.approx(0.0091, abs=1e-4)
    assert metrics["loss_ratio"] == 0.0


def test_zero_received_flow_is_undefined_not_zero():
    counters = FlowCounters(lost_packets=5, rx_packets=0, time_first_tx_packet=2.0)
    report = FlowMetricsReducer().reduce(classify, {1: counters})
    flow = report.flows[0]

    assert flow.lost_packets == 5
    assert flow.mean_delay is None
    assert flow.throughput_mbps is None
    assert flow.loss_ratio == 1.0
    assert flow.mean_jitter is None


@pytest.mark.parametrize("last_rx", [2.0, 1.0])
def test_non_positive_duration_has_no_throughput(last_rx):
    assert calculate_throughput_mbps(1024, 2.0, last_rx) is None


def test_mean_delay_guard():
    assert calculate_mean_delay(1.0, 0) is None
    assert calculate_mean_delay(1.0, 4) == 0.25


def test_completion_time_is_the_latest_reception():
    stats = {
        1: FlowCounters(rx_packets=3, rx_bytes=300, time_first_tx_packet=1.0, time_last_rx_packet=9.0),
        2: FlowCounters(rx_packets=3, rx_bytes=300, time_first_tx_packet=1.0, time_last_rx_packet=10.5),
    }
    report = FlowMetricsReducer().reduce(classify, stats)
    assert report.completion_time == 10.5


def test_completion_time_without_flows():
    report = FlowMetricsReducer().reduce(classify, {})
    assert report.flows == []
    assert report.completion_time == 0.0


def test_flows_are_reported_in_ascending_id_order():
    stats = {
        7: FlowCounters(rx_packets=1),
        2: FlowCounters(rx_packets=1),
        5: FlowCounters(rx_packets=1),
    }
    report = FlowMetricsReducer().reduce(classify, stats)
    assert [f.flow_id for f in report.flows] == [2, 5, 7]


def test_undefined_flow_does_not_stop_the_others():
    stats = {
        1: FlowCounters(lost_packets=5),
        2: FlowCounters(
            rx_packets=4, delay_sum=0.4, rx_bytes=4096,
            time_first_tx_packet=2.0, time_last_rx_packet=6.0,
        ),
    }
    report = FlowMetricsReducer().reduce(classify, stats, protocol="AODV", mobility_type=0)

    assert report.flows[0].mean_delay is None
    assert report.flows[1].mean_delay == pytest.approx(0.1)
    assert report.total_lost_packets == 5
    assert report.total_rx_packets == 4

    summary = summarize_report(report)
    assert summary.protocol == "AODV"
    assert summary.flow_count == 2
    assert summary.mean_delay == pytest.approx(0.1)
    assert summary.completion_time == 6.0


def test_mean_of_defined_ignores_none():
    assert mean_of_defined([None, 1.0, 3.0]) == 2.0
    assert mean_of_defined([None, None]) is None


def test_rows_and_csv_export(tmp_path):
    report = FlowMetricsReducer().reduce(classify, {1: FlowCounters(lost_packets=2)})

    rows = report_rows(report)
    assert rows[0]["protocol"] == "UDP"
    assert rows[0]["source"] == "10.1.3.3:49153"
    assert rows[0]["destination"] == "10.1.2.4:9"
    assert rows[0]["mean_delay"] is None

    path = tmp_path / "flows.csv"
    export_report_csv(report, str(path))
    header, line = path.read_text().splitlines()
    assert header.startswith("flow_id,protocol,source,destination")
    # Undefined metrics become empty cells
    assert ",," in line


def test_log_report_marks_undefined_metrics():
    from loguru import logger

    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="INFO")
    try:
        report = FlowMetricsReducer().reduce(classify, {1: FlowCounters(lost_packets=5)})
        log_report(report)
    finally:
        logger.remove(handler_id)

    assert any("Flow 1 (10.1.3.3->10.1.2.4)" in m for m in messages)
    assert any(m.strip() == "Default Delay: undefined" for m in messages)
    assert any(m.strip() == "throughput : undefined" for m in messages)


def test_empty_report_exports_nothing(tmp_path):
    path = tmp_path / "flows.csv"
    export_report_csv(ScenarioReport("DSDV", 1, 3, 3), str(path))
    assert not path.exists()
