import pytest

from hetmanet.simulation.parsers import parse_flowmon_xml, parse_ns_time
from hetmanet.simulation.processor import FlowMetricsReducer

FLOWMON_XML = """<?xml version="1.0" ?>
<FlowMonitor>
  <FlowStats>
    <Flow flowId="2" timeFirstTxPacket="+2.00421e+09ns" timeFirstRxPacket="+2.00842e+09ns"
          timeLastTxPacket="+9.00421e+09ns" timeLastRxPacket="+1.05e+10ns"
          delaySum="+4e+08ns" jitterSum="+7e+06ns" lastDelay="+4.21e+06ns"
          txBytes="8288" rxBytes="8192" txPackets="8" rxPackets="8"
          lostPackets="0" timesForwarded="8">
    </Flow>
    <Flow flowId="1" timeFirstTxPacket="+2e+09ns" timeFirstRxPacket="+2.1e+09ns"
          timeLastTxPacket="+1e+10ns" timeLastRxPacket="+1.1e+10ns"
          delaySum="+2e+09ns" jitterSum="+9e+08ns" lastDelay="+2e+08ns"
          txBytes="10752" rxBytes="10240" txPackets="11" rxPackets="10"
          lostPackets="1" timesForwarded="20">
    </Flow>
  </FlowStats>
  <Ipv4FlowClassifier>
    <Flow flowId="1" sourceAddress="10.1.3.3" destinationAddress="10.1.2.4"
          protocol="17" sourcePort="49153" destinationPort="9" />
    <Flow flowId="2" sourceAddress="10.1.2.4" destinationAddress="10.1.3.3"
          protocol="17" sourcePort="9" destinationPort="49153" />
  </Ipv4FlowClassifier>
</FlowMonitor>
"""


@pytest.mark.parametrize(
    "value,seconds",
    [
        ("+2e+09ns", 2.0),
        ("+1052.0ns", 1.052e-6),
        ("0", 0.0),
        ("1500", 1.5e-6),
        ("+3.5s", 3.5),
        ("250ms", 0.25),
        ("", 0.0),
        (None, 0.0),
    ],
)
def test_parse_ns_time(value, seconds):
    assert parse_ns_time(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["fast", "+2e+09parsecs"])
def test_parse_ns_time_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_ns_time(value)


def test_parse_flowmon_xml(tmp_path):
    path = tmp_path / "flowmon.xml"
    path.write_text(FLOWMON_XML)

    classifier, stats = parse_flowmon_xml(str(path))

    assert classifier[1].source_address == "10.1.3.3"
    assert classifier[1].destination_port == 9
    assert classifier[2].protocol_name == "UDP"

    flow = stats[1]
    assert flow.rx_packets == 10
    assert flow.lost_packets == 1
    assert flow.rx_bytes == 10240
    assert flow.delay_sum == pytest.approx(2.0)
    assert flow.time_first_tx_packet == pytest.approx(2.0)
    assert flow.time_last_rx_packet == pytest.approx(11.0)
    assert flow.tx_packets == 11
    assert flow.jitter_sum == pytest.approx(0.9)


def test_parsed_dump_reduces_like_a_live_run(tmp_path):
    path = tmp_path / "flowmon.xml"
    path.write_text(FLOWMON_XML)
    classifier, stats = parse_flowmon_xml(str(path))

    report = FlowMetricsReducer().reduce(classifier.__getitem__, stats)

    assert [f.flow_id for f in report.flows] == [1, 2]
    assert report.flows[0].mean_delay == pytest.approx(0.2)
    assert report.flows[0].throughput_mbps == pytest.approx(10240 * 8 / 9.0 / 1e6)
    assert report.flows[0].mean_jitter == pytest.approx(0.1)
    assert report.completion_time == pytest.approx(11.0)


def test_missing_classifier_entry(tmp_path):
    path = tmp_path / "flowmon.xml"
    path.write_text(FLOWMON_XML.replace('<Flow flowId="2" sourceAddress', '<Other flowId="2" sourceAddress'))

    with pytest.raises(ValueError):
        parse_flowmon_xml(str(path))
