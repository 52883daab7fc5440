"""
Simulation kernel interface.

The discrete-event kernel, the link/radio models, the routing protocol
implementations, the echo applications and the mobility engine all live
behind this interface. The scenario code only configures and queries it.
"""

import importlib
import typing as tp
from abc import ABC, abstractmethod
from ipaddress import IPv4Network

from loguru import logger

from hetmanet.simulation.metrics import FiveTuple, FlowCounters

if tp.TYPE_CHECKING:
    from hetmanet.simulation.mobility import MobilityPlan
    from hetmanet.simulation.routing import RoutingProtocol

DeviceHandle = tp.Any
FlowClassifier = tp.Callable[[int], FiveTuple]
# (node_id, x, y, virtual time in seconds)
CourseChangeCallback = tp.Callable[[int, float, float, float], None]


class SimulationBackend(ABC):
    """Abstract base class for simulation kernels."""

    @abstractmethod
    def create_nodes(self, count: int) -> tp.List[int]:
        """Create `count` nodes and return their ids in creation order."""
        pass

    @abstractmethod
    def install_point_to_point(
        self,
        node_ids: tp.Sequence[int],
        data_rate: str,
        delay: str,
    ) -> DeviceHandle:
        """Connect exactly two nodes with a point-to-point link."""
        pass

    @abstractmethod
    def install_csma(
        self,
        node_ids: tp.Sequence[int],
        data_rate: str,
        delay_ns: int,
    ) -> DeviceHandle:
        """Attach the nodes to one shared-bus segment."""
        pass

    @abstractmethod
    def install_wifi(
        self,
        station_ids: tp.Sequence[int],
        ap_ids: tp.Sequence[int],
        ssid: str,
        remote_station_manager: str,
    ) -> tp.Tuple[DeviceHandle, DeviceHandle]:
        """
        Build one infrastructure cell.

        Returns:
            Tuple of (station devices, access point devices)
        """
        pass

    @abstractmethod
    def install_mobility(self, plan: "MobilityPlan") -> None:
        """Apply a mobility plan, group by group, in plan order."""
        pass

    @abstractmethod
    def install_internet_stack(
        self,
        node_ids: tp.Sequence[int],
        routing: tp.Optional["RoutingProtocol"] = None,
    ) -> None:
        """
        Install the IP stack on the given nodes.

        Args:
            node_ids: Nodes that do not have a stack yet
            routing: Table-driven protocol attached to the stack installer,
                or None for a plain stack
        """
        pass

    @abstractmethod
    def install_source_routing(self, node_ids: tp.Sequence[int]) -> None:
        """Install a source-routing agent directly on every given node."""
        pass

    @abstractmethod
    def assign_addresses(
        self,
        devices: DeviceHandle,
        network: IPv4Network,
        first_host: int,
    ) -> tp.List[str]:
        """
        Number the devices sequentially inside `network`.

        Args:
            devices: Device handle returned by one of the install calls
            network: Subnet to draw addresses from
            first_host: Host offset of the first device (1 for ".1")

        Returns:
            Assigned addresses, in device order
        """
        pass

    @abstractmethod
    def install_echo_server(
        self,
        node_id: int,
        port: int,
        start: float,
        stop: float,
    ) -> None:
        pass

    @abstractmethod
    def install_echo_client(
        self,
        node_id: int,
        address: str,
        port: int,
        max_packets: int,
        interval: float,
        packet_size: int,
        start: float,
        stop: float,
    ) -> None:
        pass

    @abstractmethod
    def watch_course_change(
        self,
        node_id: int,
        callback: CourseChangeCallback,
    ) -> None:
        """Call `callback` whenever the node's mobility model changes course."""
        pass

    @abstractmethod
    def install_flow_monitor(self) -> None:
        pass

    @abstractmethod
    def populate_global_routes(self) -> None:
        pass

    @abstractmethod
    def run(self, stop_time: float) -> None:
        """Advance the virtual clock until `stop_time` or until no events remain."""
        pass

    @abstractmethod
    def now(self) -> float:
        """Current virtual time in seconds."""
        pass

    @abstractmethod
    def flow_classifier(self) -> FlowClassifier:
        """Return a lookup from flow id to its five-tuple."""
        pass

    @abstractmethod
    def flow_stats(self) -> tp.Mapping[int, FlowCounters]:
        """Return the current flow id -> counters map."""
        pass

    @abstractmethod
    def serialize_flow_monitor(self, path: str) -> None:
        """Dump the flow monitor state as XML."""
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Release all kernel state."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.destroy()


def load_backend_class(path: str) -> tp.Type[SimulationBackend]:
    """
    Dynamically load a backend class.

    Args:
        path: "package.module:ClassName"
            (e.g., "hetmanet.simulation.ns3_backend:Ns3Backend")

    Returns:
        The backend class

    Raises:
        ImportError: If the module or class cannot be found
    """
    module_path, _, class_name = path.partition(":")
    if not class_name:
        raise ImportError(f"Backend path '{path}' must look like 'module:ClassName'")

    try:
        module = importlib.import_module(module_path)
        backend_class = getattr(module, class_name)
    except ModuleNotFoundError as e:
        raise ImportError(f"Could not find module '{module_path}': {e}")
    except AttributeError as e:
        raise ImportError(
            f"Could not find class '{class_name}' in module '{module_path}': {e}"
        )

    if not (isinstance(backend_class, type) and issubclass(backend_class, SimulationBackend)):
        raise ImportError(f"'{path}' is not a SimulationBackend")

    logger.info(f"Loaded backend class '{class_name}' from '{module_path}'")
    return backend_class
