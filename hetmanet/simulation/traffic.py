"""
Request/response traffic between a wireless station and a LAN endpoint.
"""

import typing as tp
from dataclasses import dataclass

from loguru import logger

from hetmanet.scenario_config import TrafficConfig
from hetmanet.simulation.addressing import AddressPlan
from hetmanet.simulation.backend import SimulationBackend
from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.mobility import MobilityTrace
from hetmanet.simulation.topology import LAN, WIFI_STATIONS, Topology


@dataclass(frozen=True)
class EchoEndpoints:
    responder_id: int
    initiator_id: int
    destination_address: str
    port: int


class TrafficScenario:
    """
    Installs a UDP echo responder on the last LAN node and an initiator on
    the last wireless station.

    The initiator targets the responder's LAN address, so requests cross
    the radio, the access point, the backbone and the LAN.
    """

    def __init__(
        self,
        backend: SimulationBackend,
        config: tp.Optional[TrafficConfig] = None,
        trace: tp.Optional[MobilityTrace] = None,
    ):
        self.backend = backend
        self.config = config or TrafficConfig()
        self.trace = trace if trace is not None else MobilityTrace()
        self.validate()

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: If the initiator is not active inside the
                responder's window
        """
        cfg = self.config
        if cfg.server_stop <= cfg.server_start:
            raise ConfigurationError(
                f"Responder window {cfg.server_start}-{cfg.server_stop}s is empty"
            )
        if cfg.client_stop <= cfg.client_start:
            raise ConfigurationError(
                f"Initiator window {cfg.client_start}-{cfg.client_stop}s is empty"
            )
        if cfg.client_start < cfg.server_start or cfg.client_stop > cfg.server_stop:
            raise ConfigurationError(
                f"Initiator window {cfg.client_start}-{cfg.client_stop}s must lie "
                f"within the responder window {cfg.server_start}-{cfg.server_stop}s"
            )
        if cfg.max_packets <= 0 or cfg.packet_size <= 0 or cfg.interval <= 0:
            raise ConfigurationError(
                "max_packets, packet_size and interval must all be positive"
            )

    def start(
        self,
        topology: Topology,
        address_plan: AddressPlan,
    ) -> tp.Optional[EchoEndpoints]:
        """
        Install both applications and the course-change hook.

        Args:
            topology: Topology with addresses already assigned
            address_plan: Plan holding the LAN addresses

        Returns:
            The endpoints, or None when there is no station to send from
        """
        stations = topology.group(WIFI_STATIONS)
        if len(stations) == 0:
            logger.warning("No wifi station available, skipping the echo traffic")
            return None

        cfg = self.config
        responder_id = topology.group(LAN).last
        initiator_id = stations.last
        destination = address_plan.address_of(LAN, responder_id)

        self.backend.install_echo_server(
            responder_id, cfg.port, cfg.server_start, cfg.server_stop
        )
        self.backend.install_echo_client(
            initiator_id,
            destination,
            cfg.port,
            cfg.max_packets,
            cfg.interval,
            cfg.packet_size,
            cfg.client_start,
            cfg.client_stop,
        )
        self.backend.watch_course_change(initiator_id, self.trace.record)

        logger.info(
            f"Echo traffic: node {initiator_id} -> {destination}:{cfg.port} "
            f"(node {responder_id}), {cfg.max_packets} x {cfg.packet_size}B "
            f"every {cfg.interval}s"
        )
        return EchoEndpoints(
            responder_id=responder_id,
            initiator_id=initiator_id,
            destination_address=destination,
            port=cfg.port,
        )
