"""
Routing protocol installation.

Exactly one of three ad-hoc routing protocols is active per run. The two
table-driven protocols are attached to the shared IP stack installer; the
source-routed protocol installs an agent directly on each node instead.
"""

import typing as tp
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from hetmanet.simulation.backend import SimulationBackend
from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.topology import (
    BACKBONE,
    LAN,
    WIFI_AP,
    WIFI_STATIONS,
    Topology,
)


class RoutingProtocol(Enum):
    """Routing protocol, valued by its command-line selector."""

    AODV = 0
    DSR = 1
    DSDV = 2

    @classmethod
    def from_selector(cls, selector: int) -> "RoutingProtocol":
        """
        Raises:
            ConfigurationError: If the selector is not 0, 1 or 2
        """
        try:
            return cls(selector)
        except ValueError:
            raise ConfigurationError(
                f"Unknown routing protocol {selector!r} (0:aodv, 1:dsr, 2:dsdv)"
            ) from None

    @property
    def source_routed(self) -> bool:
        return self is RoutingProtocol.DSR


class InstallAction(Enum):
    STACK = "stack"
    ROUTED_STACK = "routed_stack"
    SOURCE_ROUTING = "source_routing"


@dataclass(frozen=True)
class InstallationStep:
    group: str
    action: InstallAction
    node_ids: tp.Tuple[int, ...]


class RoutingProtocolInstaller:
    """
    Installs the IP stack and the selected routing protocol.

    Each node is stacked once and gets at most one source-routing agent,
    even when it belongs to several groups.
    """

    # The gateway is stacked with the LAN; backbone node 0 only in the last pass
    STACK_ORDER = (LAN, WIFI_AP, WIFI_STATIONS, BACKBONE)
    AGENT_ORDER = (BACKBONE, LAN)
    WIRELESS_AGENT_ORDER = (WIFI_AP, WIFI_STATIONS)

    def __init__(self, backend: SimulationBackend):
        self.backend = backend
        self.steps: tp.List[InstallationStep] = []

    def install(
        self,
        protocol: tp.Union[int, RoutingProtocol],
        topology: Topology,
    ) -> tp.List[InstallationStep]:
        """
        Install the protocol on every node group.

        Args:
            protocol: RoutingProtocol or its selector value
            topology: Topology to install on

        Returns:
            Installation steps in the order they were performed

        Raises:
            ConfigurationError: If the selector is unknown
        """
        if not isinstance(protocol, RoutingProtocol):
            protocol = RoutingProtocol.from_selector(protocol)

        handlers = {
            RoutingProtocol.AODV: self._install_table_driven,
            RoutingProtocol.DSDV: self._install_table_driven,
            RoutingProtocol.DSR: self._install_source_routed,
        }
        self.steps = []
        handlers[protocol](protocol, topology)
        logger.info(f"{protocol.name} protocol")
        return list(self.steps)

    def _install_stacks(
        self,
        topology: Topology,
        routing: tp.Optional[RoutingProtocol],
    ) -> None:
        action = InstallAction.STACK if routing is None else InstallAction.ROUTED_STACK
        stacked: tp.Set[int] = set()

        for name in self.STACK_ORDER:
            node_ids = tuple(n for n in topology.group(name) if n not in stacked)
            if not node_ids:
                continue
            self.backend.install_internet_stack(node_ids, routing)
            stacked.update(node_ids)
            self.steps.append(InstallationStep(name, action, node_ids))

    def _install_table_driven(self, protocol: RoutingProtocol, topology: Topology) -> None:
        self._install_stacks(topology, protocol)

    def _install_source_routed(self, protocol: RoutingProtocol, topology: Topology) -> None:
        # Agents sit on top of a plain stack without any routing attachment
        self._install_stacks(topology, None)

        groups = list(self.AGENT_ORDER)
        if topology.has_wireless_devices:
            groups.extend(self.WIRELESS_AGENT_ORDER)
        else:
            logger.warning("No wireless devices, skipping wireless-side DSR agents")

        with_agent: tp.Set[int] = set()
        for name in groups:
            node_ids = tuple(n for n in topology.group(name) if n not in with_agent)
            if not node_ids:
                continue
            self.backend.install_source_routing(node_ids)
            with_agent.update(node_ids)
            self.steps.append(
                InstallationStep(name, InstallAction.SOURCE_ROUTING, node_ids)
            )
