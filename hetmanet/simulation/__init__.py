"""
Heterogeneous MANET scenario modules.

This package provides components for:
- Building the wired backbone, LAN extension and wireless cell
- Address planning, mobility profiles and routing protocol installation
- Echo traffic between a wireless station and a LAN node
- Reducing flow monitor counters into per-flow metrics
"""

from hetmanet.simulation.addressing import AddressPlan, InterfaceAssignment, Subnet
from hetmanet.simulation.backend import SimulationBackend, load_backend_class
from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.metrics import (
    FiveTuple,
    FlowCounters,
    FlowMetrics,
    FlowRecord,
    ScenarioReport,
    SweepSummaryRow,
)
from hetmanet.simulation.mobility import (
    MobilityKind,
    MobilityPlan,
    MobilityProfile,
    MobilityProfileSelector,
    MobilityTrace,
)
from hetmanet.simulation.parsers import parse_flowmon_xml
from hetmanet.simulation.processor import (
    FlowMetricsReducer,
    ensure_dir,
    export_report_csv,
    export_summary_csv,
    log_report,
)
from hetmanet.simulation.routing import RoutingProtocol, RoutingProtocolInstaller
from hetmanet.simulation.scenario import run_scenario
from hetmanet.simulation.sweep import run_protocol_sweep
from hetmanet.simulation.topology import NodeGroup, Topology, TopologyBuilder
from hetmanet.simulation.traffic import EchoEndpoints, TrafficScenario

__all__ = [
    "AddressPlan",
    "ConfigurationError",
    "EchoEndpoints",
    "FiveTuple",
    "FlowCounters",
    "FlowMetrics",
    "FlowMetricsReducer",
    "FlowRecord",
    "InterfaceAssignment",
    "MobilityKind",
    "MobilityPlan",
    "MobilityProfile",
    "MobilityProfileSelector",
    "MobilityTrace",
    "NodeGroup",
    "RoutingProtocol",
    "RoutingProtocolInstaller",
    "ScenarioReport",
    "SimulationBackend",
    "Subnet",
    "SweepSummaryRow",
    "Topology",
    "TopologyBuilder",
    "TrafficScenario",
    "ensure_dir",
    "export_report_csv",
    "export_summary_csv",
    "load_backend_class",
    "log_report",
    "parse_flowmon_xml",
    "run_protocol_sweep",
    "run_scenario",
]
