"""
Metric formulas for flow monitor counters.

Every function returns None when the metric cannot be computed from the
available counters, instead of dividing by zero.
"""

import typing as tp

from hetmanet.simulation.metrics import FlowCounters


def calculate_mean_delay(delay_sum: float, rx_packets: int) -> tp.Optional[float]:
    """
    Mean end-to-end delay per received packet.

    Args:
        delay_sum: Cumulative delay in seconds
        rx_packets: Number of received packets

    Returns:
        Mean delay in seconds, or None if nothing was received
    """
    if rx_packets <= 0:
        return None
    return delay_sum / rx_packets


def calculate_throughput_mbps(
    rx_bytes: int,
    time_first_tx_packet: float,
    time_last_rx_packet: float,
) -> tp.Optional[float]:
    """
    Received throughput over the flow's lifetime.

    throughput = rx_bytes * 8 / (last_rx - first_tx) / 1e6

    Args:
        rx_bytes: Total received bytes
        time_first_tx_packet: First transmission timestamp in seconds
        time_last_rx_packet: Last reception timestamp in seconds

    Returns:
        Throughput in Mbps, or None for a non-positive duration
    """
    duration = time_last_rx_packet - time_first_tx_packet
    if duration <= 0:
        return None
    return rx_bytes * 8.0 / duration / 1_000_000


def calculate_loss_ratio(lost_packets: int, rx_packets: int) -> tp.Optional[float]:
    total = lost_packets + rx_packets
    if total <= 0:
        return None
    return lost_packets / total


def calculate_mean_jitter(
    jitter_sum: tp.Optional[float],
    rx_packets: int,
) -> tp.Optional[float]:
    # Jitter needs two consecutive packets
    if jitter_sum is None or rx_packets < 2:
        return None
    return jitter_sum / (rx_packets - 1)


def calculate_flow_metrics(counters: FlowCounters) -> tp.Dict[str, tp.Optional[float]]:
    """
    Compute every derived metric of one flow.

    Args:
        counters: Raw counters from the flow monitor

    Returns:
        Dictionary with mean_delay, throughput_mbps, loss_ratio and
        mean_jitter
    """
    # Without any reception the last-rx timestamp is meaningless
    if counters.rx_packets <= 0:
        throughput = None
    else:
        throughput = calculate_throughput_mbps(
            counters.rx_bytes,
            counters.time_first_tx_packet,
            counters.time_last_rx_packet,
        )

    return {
        "mean_delay": calculate_mean_delay(counters.delay_sum, counters.rx_packets),
        "throughput_mbps": throughput,
        "loss_ratio": calculate_loss_ratio(counters.lost_packets, counters.rx_packets),
        "mean_jitter": calculate_mean_jitter(counters.jitter_sum, counters.rx_packets),
    }


def mean_of_defined(values: tp.Iterable[tp.Optional[float]]) -> tp.Optional[float]:
    """Average of the values that are not None, or None if there are none."""
    defined = [v for v in values if v is not None]
    if not defined:
        return None
    return sum(defined) / len(defined)
