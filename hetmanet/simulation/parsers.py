"""
Parsers for flow monitor dumps.

Reads the XML written by ns-3's FlowMonitor::SerializeToXmlFile into the
same classifier and counters structures the live backend returns, so a
saved run can be reduced offline.
"""

import re
import typing as tp
import xml.etree.ElementTree as ET

from loguru import logger

from hetmanet.simulation.metrics import FiveTuple, FlowCounters

TIME_UNITS = {
    "fs": 1e-15,
    "ps": 1e-12,
    "ns": 1e-9,
    "us": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "min": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

_TIME_PATTERN = re.compile(r"^\s*([+-]?[0-9.]+(?:[eE][+-]?\d+)?)\s*([a-z]*)\s*$")


def parse_ns_time(value: tp.Optional[str]) -> float:
    """
    Convert an ns-3 time attribute to seconds.

    Example values: "+2e+09ns", "+1052.0ns", "0"

    Args:
        value: Raw attribute value

    Returns:
        Time in seconds (0.0 for a missing value)

    Raises:
        ValueError: If the value is not a time
    """
    if value is None or value == "":
        return 0.0

    match = _TIME_PATTERN.match(value)
    if not match:
        raise ValueError(f"Not an ns-3 time value: {value!r}")

    number, unit = match.groups()
    # Bare numbers are nanoseconds, as FlowMonitor writes them
    factor = TIME_UNITS.get(unit or "ns")
    if factor is None:
        raise ValueError(f"Unknown time unit {unit!r} in {value!r}")
    return float(number) * factor


def _int_attr(element: ET.Element, name: str, default: int = 0) -> int:
    value = element.get(name)
    return int(value) if value is not None else default


def parse_flow_stats(root: ET.Element) -> tp.Dict[int, FlowCounters]:
    stats: tp.Dict[int, FlowCounters] = {}
    for flow in root.findall("./FlowStats/Flow"):
        flow_id = _int_attr(flow, "flowId")
        stats[flow_id] = FlowCounters(
            lost_packets=_int_attr(flow, "lostPackets"),
            rx_packets=_int_attr(flow, "rxPackets"),
            delay_sum=parse_ns_time(flow.get("delaySum")),
            rx_bytes=_int_attr(flow, "rxBytes"),
            time_first_tx_packet=parse_ns_time(flow.get("timeFirstTxPacket")),
            time_last_rx_packet=parse_ns_time(flow.get("timeLastRxPacket")),
            tx_packets=_int_attr(flow, "txPackets"),
            tx_bytes=_int_attr(flow, "txBytes"),
            jitter_sum=parse_ns_time(flow.get("jitterSum")),
            time_last_tx_packet=parse_ns_time(flow.get("timeLastTxPacket")),
            time_first_rx_packet=parse_ns_time(flow.get("timeFirstRxPacket")),
        )
    return stats


def parse_classifier(root: ET.Element) -> tp.Dict[int, FiveTuple]:
    tuples: tp.Dict[int, FiveTuple] = {}
    for flow in root.findall("./Ipv4FlowClassifier/Flow"):
        tuples[_int_attr(flow, "flowId")] = FiveTuple(
            protocol=_int_attr(flow, "protocol"),
            source_address=flow.get("sourceAddress", ""),
            source_port=_int_attr(flow, "sourcePort"),
            destination_address=flow.get("destinationAddress", ""),
            destination_port=_int_attr(flow, "destinationPort"),
        )
    return tuples


def parse_flowmon_xml(
    path: str,
) -> tp.Tuple[tp.Dict[int, FiveTuple], tp.Dict[int, FlowCounters]]:
    """
    Parse a flow monitor XML dump.

    Args:
        path: Path to the XML file

    Returns:
        Tuple of (flow id -> five-tuple, flow id -> counters)

    Raises:
        ValueError: If a flow in the stats has no classifier entry
    """
    root = ET.parse(path).getroot()
    classifier = parse_classifier(root)
    stats = parse_flow_stats(root)

    missing = sorted(set(stats) - set(classifier))
    if missing:
        raise ValueError(f"Flows {missing} have no classifier entry in {path}")

    logger.info(f"Parsed {len(stats)} flows from {path}")
    return classifier, stats
