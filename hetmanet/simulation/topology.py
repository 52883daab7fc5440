"""
Topology construction for the heterogeneous scenario.

Builds the node groups and link segments: a two-node point-to-point
backbone, a shared-bus LAN rooted at the second backbone node, and a
wireless infrastructure cell whose access point is that same node.
Addressing and routing are handled elsewhere.
"""

import typing as tp
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from hetmanet.scenario_config import LinkConfig
from hetmanet.simulation.backend import DeviceHandle, SimulationBackend
from hetmanet.simulation.errors import ConfigurationError

BACKBONE = "backbone"
LAN = "lan"
WIFI_STATIONS = "wifi-stations"
WIFI_AP = "wifi-ap"

BACKBONE_NODES = 2


class MediumType(Enum):
    POINT_TO_POINT = "point-to-point"
    CSMA = "csma"
    WIFI = "wifi"


@dataclass(frozen=True)
class NodeGroup:
    """Ordered, named collection of node ids."""

    name: str
    node_ids: tp.Tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.node_ids)

    def __iter__(self) -> tp.Iterator[int]:
        return iter(self.node_ids)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.node_ids

    def get(self, index: int) -> int:
        return self.node_ids[index]

    @property
    def last(self) -> int:
        if not self.node_ids:
            raise IndexError(f"Node group '{self.name}' is empty")
        return self.node_ids[-1]


@dataclass(frozen=True)
class LinkSegment:
    """Devices connecting a set of nodes over one medium."""

    name: str
    medium: MediumType
    node_ids: tp.Tuple[int, ...]
    devices: DeviceHandle = field(compare=False, repr=False)
    data_rate: tp.Optional[str] = None
    delay: tp.Optional[str] = None
    ssid: tp.Optional[str] = None

    @property
    def device_count(self) -> int:
        return len(self.node_ids)


@dataclass(frozen=True)
class Topology:
    """
    Node groups and link segments of one scenario.

    A node may belong to several groups; every group references the same
    node id, so the gateway exists once.
    """

    groups: tp.Dict[str, NodeGroup]
    segments: tp.Tuple[LinkSegment, ...]
    gateway_id: int

    def group(self, name: str) -> NodeGroup:
        return self.groups[name]

    def segment(self, name: str) -> tp.Optional[LinkSegment]:
        for segment in self.segments:
            if segment.name == name:
                return segment
        return None

    @property
    def node_ids(self) -> tp.List[int]:
        """Distinct node identities, ascending."""
        ids: tp.Set[int] = set()
        for group in self.groups.values():
            ids.update(group.node_ids)
        return sorted(ids)

    def groups_of(self, node_id: int) -> tp.FrozenSet[str]:
        return frozenset(
            name for name, group in self.groups.items() if node_id in group
        )

    @property
    def has_wireless_devices(self) -> bool:
        return any(
            s.medium is MediumType.WIFI and s.device_count > 0 for s in self.segments
        )


class TopologyBuilder:
    """
    Creates nodes and link devices through the simulation backend.
    """

    def __init__(self, backend: SimulationBackend, links: tp.Optional[LinkConfig] = None):
        self.backend = backend
        self.links = links or LinkConfig()

    def build(self, n_csma: int, n_wifi: int) -> Topology:
        """
        Build the backbone, LAN and wireless cell.

        Args:
            n_csma: Number of LAN nodes besides the gateway
            n_wifi: Number of wireless stations

        Returns:
            The assembled Topology

        Raises:
            ConfigurationError: If a count is negative
        """
        if n_csma < 0 or n_wifi < 0:
            raise ConfigurationError(
                f"Node counts must be non-negative (n_csma={n_csma}, n_wifi={n_wifi})"
            )

        backbone_ids = tuple(self.backend.create_nodes(BACKBONE_NODES))
        backbone_devices = self.backend.install_point_to_point(
            backbone_ids, self.links.p2p_data_rate, self.links.p2p_delay
        )
        segments = [
            LinkSegment(
                name=BACKBONE,
                medium=MediumType.POINT_TO_POINT,
                node_ids=backbone_ids,
                devices=backbone_devices,
                data_rate=self.links.p2p_data_rate,
                delay=self.links.p2p_delay,
            )
        ]

        # The second backbone node roots the LAN and serves as the access point
        gateway_id = backbone_ids[1]

        lan_ids = (gateway_id,)
        if n_csma > 0:
            lan_ids += tuple(self.backend.create_nodes(n_csma))
        lan_devices = self.backend.install_csma(
            lan_ids, self.links.csma_data_rate, self.links.csma_delay_ns
        )
        segments.append(
            LinkSegment(
                name=LAN,
                medium=MediumType.CSMA,
                node_ids=lan_ids,
                devices=lan_devices,
                data_rate=self.links.csma_data_rate,
                delay=f"{self.links.csma_delay_ns}ns",
            )
        )

        ap_ids = (gateway_id,)
        station_ids: tp.Tuple[int, ...] = ()
        if n_wifi > 0:
            station_ids = tuple(self.backend.create_nodes(n_wifi))
            sta_devices, ap_devices = self.backend.install_wifi(
                station_ids,
                ap_ids,
                self.links.ssid,
                self.links.remote_station_manager,
            )
            segments.append(
                LinkSegment(
                    name=WIFI_STATIONS,
                    medium=MediumType.WIFI,
                    node_ids=station_ids,
                    devices=sta_devices,
                    ssid=self.links.ssid,
                )
            )
            segments.append(
                LinkSegment(
                    name=WIFI_AP,
                    medium=MediumType.WIFI,
                    node_ids=ap_ids,
                    devices=ap_devices,
                    ssid=self.links.ssid,
                )
            )
        else:
            logger.warning("No wifi stations requested, the wireless cell is not built")

        groups = {
            BACKBONE: NodeGroup(BACKBONE, backbone_ids),
            LAN: NodeGroup(LAN, lan_ids),
            WIFI_STATIONS: NodeGroup(WIFI_STATIONS, station_ids),
            WIFI_AP: NodeGroup(WIFI_AP, ap_ids),
        }
        topology = Topology(groups=groups, segments=tuple(segments), gateway_id=gateway_id)

        logger.info(
            f"Built topology: {len(topology.node_ids)} nodes, "
            f"{len(segments)} segments, gateway node {gateway_id}"
        )
        return topology
