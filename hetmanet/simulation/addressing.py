"""
Subnet allocation for the link segments.

Subnets are handed out in a fixed order: backbone, LAN, then the wireless
cell. The station side and the access point side of the cell share one
subnet; the access point is numbered after the stations.
"""

import typing as tp
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network

from loguru import logger

from hetmanet.simulation.backend import SimulationBackend
from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.topology import (
    BACKBONE,
    LAN,
    WIFI_AP,
    WIFI_STATIONS,
    LinkSegment,
    Topology,
)

ASSIGNMENT_ORDER = (BACKBONE, LAN, WIFI_STATIONS, WIFI_AP)
# Segments numbered out of the same subnet as the key, after it
SHARED_SUBNETS = {WIFI_AP: WIFI_STATIONS}


@dataclass(frozen=True)
class Subnet:
    network: IPv4Network
    first_host: int = 1

    def host(self, offset: int) -> IPv4Address:
        return self.network.network_address + self.first_host + offset


@dataclass(frozen=True)
class InterfaceAssignment:
    """Addresses of one segment's devices, in device order."""

    segment: str
    subnet: Subnet
    node_ids: tp.Tuple[int, ...]
    addresses: tp.Tuple[str, ...]

    def address_of(self, node_id: int) -> str:
        return self.addresses[self.node_ids.index(node_id)]


class AddressPlan:
    """
    Plans and applies the IPv4 numbering of a topology.

    `plan` is pure; `apply` needs the IP stacks to be installed already.
    """

    def __init__(self, base: str = "10.1.0.0/16", prefix_length: int = 24):
        self.base = IPv4Network(base)
        self.prefix_length = prefix_length
        if prefix_length < self.base.prefixlen:
            raise ConfigurationError(
                f"Subnet prefix /{prefix_length} is larger than base {self.base}"
            )
        self.assignments: tp.Dict[str, InterfaceAssignment] = {}

    def _allocate_networks(self, count: int) -> tp.List[IPv4Network]:
        # Skip the all-zero subnet, as in 10.1.1.0/24 being the first one
        candidates = self.base.subnets(new_prefix=self.prefix_length)
        next(candidates, None)

        networks = []
        for network in candidates:
            if len(networks) == count:
                break
            networks.append(network)

        if len(networks) < count:
            raise ConfigurationError(
                f"Base {self.base} cannot hold {count} /{self.prefix_length} subnets"
            )
        for i, a in enumerate(networks):
            for b in networks[i + 1 :]:
                if a.overlaps(b):
                    raise ConfigurationError(f"Subnets {a} and {b} overlap")
        return networks

    def plan(self, topology: Topology) -> tp.Dict[str, InterfaceAssignment]:
        """
        Compute the subnet and addresses of every segment.

        Args:
            topology: Topology to number

        Returns:
            Dictionary mapping segment name to InterfaceAssignment,
            in assignment order

        Raises:
            ConfigurationError: If subnets overlap or run out of hosts
        """
        segments: tp.List[LinkSegment] = [
            s for s in (topology.segment(name) for name in ASSIGNMENT_ORDER) if s
        ]
        owners = [s for s in segments if s.name not in SHARED_SUBNETS]
        networks = iter(self._allocate_networks(len(owners)))

        assignments: tp.Dict[str, InterfaceAssignment] = {}
        for segment in segments:
            shared_with = SHARED_SUBNETS.get(segment.name)
            if shared_with in assignments:
                previous = assignments[shared_with]
                subnet = Subnet(
                    previous.subnet.network,
                    previous.subnet.first_host + len(previous.addresses),
                )
            else:
                subnet = Subnet(next(networks))

            if subnet.first_host + segment.device_count > subnet.network.num_addresses - 1:
                raise ConfigurationError(
                    f"Subnet {subnet.network} has no room for "
                    f"{segment.device_count} devices of '{segment.name}'"
                )

            addresses = tuple(
                str(subnet.host(i)) for i in range(segment.device_count)
            )
            assignments[segment.name] = InterfaceAssignment(
                segment=segment.name,
                subnet=subnet,
                node_ids=segment.node_ids,
                addresses=addresses,
            )

        self.assignments = assignments
        return assignments

    def apply(self, topology: Topology, backend: SimulationBackend) -> None:
        """
        Assign the planned addresses through the backend.

        Raises:
            ConfigurationError: If the backend numbered a device differently
        """
        if not self.assignments:
            self.plan(topology)

        for name, assignment in self.assignments.items():
            segment = topology.segment(name)
            assigned = backend.assign_addresses(
                segment.devices,
                assignment.subnet.network,
                assignment.subnet.first_host,
            )
            if tuple(assigned) != assignment.addresses:
                raise ConfigurationError(
                    f"Backend assigned {list(assigned)} to '{name}', "
                    f"expected {list(assignment.addresses)}"
                )
            logger.info(
                f"Assigned {assignment.subnet.network} to '{name}' "
                f"({', '.join(assignment.addresses)})"
            )

    def address_of(self, segment: str, node_id: int) -> str:
        return self.assignments[segment].address_of(node_id)
