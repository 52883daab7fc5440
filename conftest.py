import typing as tp
from ipaddress import IPv4Network

import pytest

from hetmanet.scenario_config import ScenarioConfig
from hetmanet.simulation.backend import SimulationBackend
from hetmanet.simulation.metrics import FiveTuple, FlowCounters
from hetmanet.simulation.mobility import MobilityKind, MobilityPlan

ECHO_REQUEST = FiveTuple(17, "10.1.3.3", 49153, "10.1.2.4", 9)
ECHO_REPLY = FiveTuple(17, "10.1.2.4", 9, "10.1.3.3", 49153)


def default_flow_stats() -> tp.Dict[int, FlowCounters]:
    return {
        2: FlowCounters(
            lost_packets=0,
            rx_packets=8,
            delay_sum=0.4,
            rx_bytes=8192,
            time_first_tx_packet=2.5,
            time_last_rx_packet=10.5,
        ),
        1: FlowCounters(
            lost_packets=1,
            rx_packets=8,
            delay_sum=0.8,
            rx_bytes=8192,
            time_first_tx_packet=2.0,
            time_last_rx_packet=9.0,
        ),
    }


class RecordingBackend(SimulationBackend):
    """
    In-memory backend that records every call it receives.

    Node ids are handed out sequentially from 0 and device handles are
    (medium, node_ids) tuples, so addresses can be computed without a kernel.
    """

    def __init__(
        self,
        stats: tp.Optional[tp.Dict[int, FlowCounters]] = None,
        classifier: tp.Optional[tp.Dict[int, FiveTuple]] = None,
    ):
        self.calls: tp.List[tp.Tuple[str, tuple]] = []
        self._next_id = 0
        self.stats = default_flow_stats() if stats is None else stats
        self.classifier = (
            {1: ECHO_REQUEST, 2: ECHO_REPLY} if classifier is None else classifier
        )
        self.mobility_plan: tp.Optional[MobilityPlan] = None
        self.watchers: tp.Dict[int, tp.Callable] = {}
        self.clock = 0.0
        self.destroyed = False

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))

    def calls_to(self, name: str) -> tp.List[tuple]:
        return [args for n, args in self.calls if n == name]

    @property
    def call_names(self) -> tp.List[str]:
        return [n for n, _ in self.calls]

    def create_nodes(self, count):
        ids = list(range(self._next_id, self._next_id + count))
        self._next_id += count
        self._record("create_nodes", count)
        return ids

    def install_point_to_point(self, node_ids, data_rate, delay):
        self._record("install_point_to_point", tuple(node_ids), data_rate, delay)
        return ("p2p", tuple(node_ids))

    def install_csma(self, node_ids, data_rate, delay_ns):
        self._record("install_csma", tuple(node_ids), data_rate, delay_ns)
        return ("csma", tuple(node_ids))

    def install_wifi(self, station_ids, ap_ids, ssid, remote_station_manager):
        self._record("install_wifi", tuple(station_ids), tuple(ap_ids), ssid)
        return ("wifi-sta", tuple(station_ids)), ("wifi-ap", tuple(ap_ids))

    def install_mobility(self, plan):
        self._record("install_mobility", plan)
        self.mobility_plan = plan

    def install_internet_stack(self, node_ids, routing=None):
        self._record("install_internet_stack", tuple(node_ids), routing)

    def install_source_routing(self, node_ids):
        self._record("install_source_routing", tuple(node_ids))

    def assign_addresses(self, devices, network: IPv4Network, first_host):
        _, node_ids = devices
        self._record("assign_addresses", devices, network, first_host)
        return [
            str(network.network_address + first_host + i) for i in range(len(node_ids))
        ]

    def install_echo_server(self, node_id, port, start, stop):
        self._record("install_echo_server", node_id, port, start, stop)

    def install_echo_client(
        self, node_id, address, port, max_packets, interval, packet_size, start, stop
    ):
        self._record(
            "install_echo_client",
            node_id,
            address,
            port,
            max_packets,
            interval,
            packet_size,
            start,
            stop,
        )

    def watch_course_change(self, node_id, callback):
        self._record("watch_course_change", node_id)
        self.watchers[node_id] = callback

    def install_flow_monitor(self):
        self._record("install_flow_monitor")

    def populate_global_routes(self):
        self._record("populate_global_routes")

    def _moving_nodes(self) -> tp.Set[int]:
        if self.mobility_plan is None:
            return set()
        return {
            node_id
            for a in self.mobility_plan.assignments
            if a.profile.kind is MobilityKind.RANDOM_WALK
            for node_id in a.node_ids
        }

    def run(self, stop_time):
        self._record("run", stop_time)
        moving = self._moving_nodes()
        positions = self.mobility_plan.initial_positions() if self.mobility_plan else {}
        for node_id, callback in self.watchers.items():
            x, y = positions.get(node_id, (0.0, 0.0))
            callback(node_id, x, y, 0.0)
            if node_id in moving:
                callback(node_id, x + 1.0, y - 1.0, stop_time / 2)
        self.clock = stop_time

    def now(self):
        return self.clock

    def flow_classifier(self):
        self._record("flow_classifier")
        return self.classifier.__getitem__

    def flow_stats(self):
        self._record("flow_stats")
        return dict(self.stats)

    def serialize_flow_monitor(self, path):
        self._record("serialize_flow_monitor", path)
        with open(path, "w") as f:
            f.write('<?xml version="1.0" ?>\n<FlowMonitor>\n</FlowMonitor>\n')

    def destroy(self):
        self._record("destroy")
        self.destroyed = True


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def scenario_config(tmp_path) -> ScenarioConfig:
    cfg = ScenarioConfig()
    cfg.simulation.output_dir = str(tmp_path / "dumps")
    return cfg
