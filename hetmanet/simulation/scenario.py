"""
One-shot scenario pipeline.

Configuration happens entirely before the single blocking run call; flow
statistics are read only after it returns.
"""

import os
import typing as tp

from loguru import logger

from hetmanet.scenario_config import ScenarioConfig
from hetmanet.simulation.addressing import AddressPlan
from hetmanet.simulation.backend import SimulationBackend, load_backend_class
from hetmanet.simulation.metrics import ScenarioReport
from hetmanet.simulation.mobility import MobilityProfileSelector, MobilityTrace
from hetmanet.simulation.processor import (
    FlowMetricsReducer,
    ensure_dir,
    export_report_csv,
    log_report,
)
from hetmanet.simulation.routing import RoutingProtocol, RoutingProtocolInstaller
from hetmanet.simulation.topology import TopologyBuilder
from hetmanet.simulation.traffic import TrafficScenario


def report_basename(cfg: ScenarioConfig) -> str:
    protocol = RoutingProtocol.from_selector(cfg.protocol).name.lower()
    return f"{protocol}_mobility{cfg.mobility_type}_csma{cfg.n_csma}_wifi{cfg.n_wifi}"


def run_scenario(
    cfg: ScenarioConfig,
    backend: tp.Optional[SimulationBackend] = None,
    trace: tp.Optional[MobilityTrace] = None,
) -> ScenarioReport:
    """
    Build, run and reduce one scenario.

    This is the main pipeline that:
    1. Validates the protocol selector and the traffic windows
    2. Builds the topology and plans the addresses
    3. Applies the mobility profiles
    4. Installs the routing protocol, then assigns the addresses
    5. Starts the echo traffic and the flow monitor
    6. Runs the kernel until the stop time
    7. Reduces the flow records and exports the report

    Args:
        cfg: Scenario configuration
        backend: Kernel to use; loaded from cfg.simulation.backend if None.
            It is destroyed when the run ends.
        trace: Receives the initiator's course-change samples

    Returns:
        The ScenarioReport of the run

    Raises:
        ConfigurationError: If the configuration is rejected; nothing is
            simulated in that case
    """
    protocol = RoutingProtocol.from_selector(cfg.protocol)
    trace = trace if trace is not None else MobilityTrace()

    if backend is None:
        backend = load_backend_class(cfg.simulation.backend)()

    with backend:
        traffic = TrafficScenario(backend, cfg.traffic, trace)

        topology = TopologyBuilder(backend, cfg.links).build(cfg.n_csma, cfg.n_wifi)

        address_plan = AddressPlan()
        address_plan.plan(topology)

        mobility_plan = MobilityProfileSelector(cfg.mobility).select(
            topology, cfg.mobility_type
        )
        backend.install_mobility(mobility_plan)

        RoutingProtocolInstaller(backend).install(protocol, topology)
        address_plan.apply(topology, backend)

        traffic.start(topology, address_plan)

        backend.install_flow_monitor()
        backend.populate_global_routes()

        logger.info("Starting Simulation")
        backend.run(cfg.simulation.stop_time)
        logger.info(f"Ended Simulation at {backend.now()}s")

        report = FlowMetricsReducer().reduce(
            backend.flow_classifier(),
            backend.flow_stats(),
            protocol=protocol.name,
            mobility_type=cfg.mobility_type,
            n_csma=cfg.n_csma,
            n_wifi=cfg.n_wifi,
        )

        if cfg.simulation.flowmon_xml:
            ensure_dir(cfg.simulation.output_dir)
            backend.serialize_flow_monitor(
                os.path.join(cfg.simulation.output_dir, f"{report_basename(cfg)}.xml")
            )

    log_report(report)

    if cfg.simulation.export_csv:
        output_dir = cfg.simulation.output_dir
        ensure_dir(output_dir)
        basename = report_basename(cfg)
        export_report_csv(report, os.path.join(output_dir, f"{basename}_flows.csv"))
        trace.export_csv(os.path.join(output_dir, f"{basename}_mobility.csv"))

    return report
