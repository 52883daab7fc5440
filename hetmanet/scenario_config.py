"""
Dataclass configuration for the heterogeneous MANET scenario.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class LinkConfig:
    """Configuration for the wired and wireless link segments."""

    # Point-to-point backbone
    p2p_data_rate: str = "5Mbps"
    p2p_delay: str = "2ms"
    # Shared-bus LAN extension
    csma_data_rate: str = "100Mbps"
    csma_delay_ns: int = 6560
    # Wireless infrastructure cell
    ssid: str = "ns-3-ssid"
    remote_station_manager: str = "ns3::AarfWifiManager"


@dataclass
class MobilityConfig:
    """Configuration for station placement and random-walk profiles."""

    # Row-first grid used for the initial placement
    grid_min_x: float = 0.0
    grid_min_y: float = 0.0
    grid_delta_x: float = 5.0
    grid_delta_y: float = 10.0
    grid_width: int = 3
    # Random-walk speeds in units/second (mode 0 and mode 1)
    fast_speed: float = 28.0
    slow_speed: float = 1.4
    # Square region the walk is confined to: [xmin, xmax, ymin, ymax]
    bounds: List[float] = field(default_factory=lambda: [-50.0, 50.0, -50.0, 50.0])


@dataclass
class TrafficConfig:
    """Configuration for the request/response echo exchange."""

    port: int = 9
    server_start: float = 1.0
    server_stop: float = 10.0
    client_start: float = 2.0
    client_stop: float = 10.0
    max_packets: int = 100
    # Seconds between two requests
    interval: float = 1.0
    packet_size: int = 1024


@dataclass
class SimulationConfig:
    """Run-level configuration."""

    # Virtual time at which the kernel stops, in seconds
    stop_time: float = 20.0
    # Output directory for reports and traces
    output_dir: str = "dumps"
    export_csv: bool = True
    # Also dump the raw flow monitor state as XML
    flowmon_xml: bool = False
    # Kernel adapter, as "package.module:ClassName"
    backend: str = "hetmanet.simulation.ns3_backend:Ns3Backend"
    log_level: str = "INFO"


@dataclass
class ScenarioConfig:
    """Root configuration for one scenario run."""

    # 0: AODV, 1: DSR, 2: DSDV
    protocol: int = 2
    # 0: fast, 1: slow
    mobility_type: int = 1
    # Number of "extra" CSMA nodes
    n_csma: int = 3
    # Number of wifi STA nodes
    n_wifi: int = 3

    links: LinkConfig = field(default_factory=LinkConfig)
    mobility: MobilityConfig = field(default_factory=MobilityConfig)
    traffic: TrafficConfig = field(default_factory=TrafficConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)


@dataclass
class SweepConfig:
    """Root configuration for a protocol x mobility comparison."""

    protocols: List[int] = field(default_factory=lambda: [0, 1, 2])
    mobility_types: List[int] = field(default_factory=lambda: [0, 1])
    # Write an HTML bar chart next to the summary CSV
    plot: bool = True
    scenario: ScenarioConfig = field(default_factory=ScenarioConfig)
