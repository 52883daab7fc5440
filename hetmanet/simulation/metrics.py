"""
Data classes for per-flow simulation metrics.

This module contains the raw counters handed over by the flow monitor
and the read-only metrics derived from them. Each class is documented
with field-level docstrings.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class FiveTuple:
    """
    Classifier label of a traffic flow.
    """

    protocol: int
    """IP protocol number (17 for UDP, 6 for TCP)."""

    source_address: str
    """Source IPv4 address."""

    source_port: int
    """Source transport port."""

    destination_address: str
    """Destination IPv4 address."""

    destination_port: int
    """Destination transport port."""

    @property
    def protocol_name(self) -> str:
        if self.protocol == 17:
            return "UDP"
        if self.protocol == 6:
            return "TCP"
        return f"Proto-{self.protocol}"

    def __str__(self) -> str:
        return (
            f"{self.source_address}:{self.source_port} -> "
            f"{self.destination_address}:{self.destination_port}"
        )


@dataclass(frozen=True)
class FlowCounters:
    """
    Cumulative counters of one flow as reported by the flow monitor.

    Times are virtual seconds since the start of the run.
    """

    lost_packets: int = 0
    """Packets declared lost by the monitor."""

    rx_packets: int = 0
    """Packets received at the flow's destination."""

    delay_sum: float = 0.0
    """Sum of the end-to-end delays of all received packets, in seconds."""

    rx_bytes: int = 0
    """Total bytes received."""

    time_first_tx_packet: float = 0.0
    """Timestamp of the first transmitted packet."""

    time_last_rx_packet: float = 0.0
    """Timestamp of the last received packet."""

    tx_packets: Optional[int] = None
    """Packets transmitted, when the monitor reports it."""

    tx_bytes: Optional[int] = None
    """Bytes transmitted, when the monitor reports it."""

    jitter_sum: Optional[float] = None
    """Sum of delay variations between consecutive packets, in seconds."""

    time_last_tx_packet: Optional[float] = None
    """Timestamp of the last transmitted packet."""

    time_first_rx_packet: Optional[float] = None
    """Timestamp of the first received packet."""


@dataclass(frozen=True)
class FlowRecord:
    """
    Immutable snapshot of one flow, taken after the run window closed.
    """

    flow_id: int
    """Identifier assigned by the flow classifier."""

    five_tuple: FiveTuple
    """Classifier label of the flow."""

    counters: FlowCounters
    """Raw counters of the flow."""


@dataclass(frozen=True)
class FlowMetrics:
    """
    Metrics derived from a single FlowRecord.

    A value of None means the metric is undefined for this flow (for
    example no packet was received), which is distinct from zero.
    """

    flow_id: int
    """Identifier assigned by the flow classifier."""

    five_tuple: FiveTuple
    """Classifier label of the flow."""

    lost_packets: int
    """Number of lost packets."""

    rx_packets: int
    """Number of received packets."""

    delay_sum: float
    """Cumulative delay in seconds."""

    time_last_rx_packet: float
    """Timestamp of the last received packet, in seconds."""

    mean_delay: Optional[float]
    """Mean per-packet delay in seconds."""

    throughput_mbps: Optional[float]
    """Received bits per second over the flow's lifetime, in megabits."""

    loss_ratio: Optional[float] = None
    """Lost packets over lost plus received packets (0-1)."""

    mean_jitter: Optional[float] = None
    """Mean delay variation between consecutive packets, in seconds."""


@dataclass
class ScenarioReport:
    """
    Aggregated result of one scenario run.
    """

    protocol: str
    """Name of the routing protocol used for the run."""

    mobility_type: int
    """Mobility mode selector used for the run."""

    n_csma: int
    """Number of extra LAN nodes."""

    n_wifi: int
    """Number of wireless stations."""

    flows: List[FlowMetrics] = field(default_factory=list)
    """Per-flow metrics in ascending flow id order."""

    completion_time: float = 0.0
    """Latest last-received-packet timestamp across all flows, in seconds."""

    @property
    def total_lost_packets(self) -> int:
        return sum(f.lost_packets for f in self.flows)

    @property
    def total_rx_packets(self) -> int:
        return sum(f.rx_packets for f in self.flows)


@dataclass
class SweepSummaryRow:
    """
    One line of a protocol x mobility comparison.
    """

    protocol: str
    mobility_type: int
    flow_count: int = 0
    total_lost_packets: int = 0
    total_rx_packets: int = 0
    mean_delay: Optional[float] = None
    """Mean of the defined per-flow mean delays, in seconds."""

    mean_throughput_mbps: Optional[float] = None
    """Mean of the defined per-flow throughputs, in Mbps."""

    completion_time: float = 0.0
