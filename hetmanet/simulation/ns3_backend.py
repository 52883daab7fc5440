"""
ns-3 implementation of the simulation backend.

Wraps the ns-3 Python bindings (`from ns import ns`). The bindings are
imported when the backend is instantiated, so the rest of the package can
be used without ns-3 installed.
"""

import importlib
import typing as tp
from ipaddress import IPv4Address, IPv4Network

from loguru import logger

from hetmanet.simulation.backend import (
    CourseChangeCallback,
    DeviceHandle,
    FlowClassifier,
    SimulationBackend,
)
from hetmanet.simulation.metrics import FiveTuple, FlowCounters
from hetmanet.simulation.mobility import MobilityKind, MobilityPlan
from hetmanet.simulation.routing import RoutingProtocol

# Forwards CourseChange trace events to a Python callable
_COURSE_CHANGE_TRAMPOLINE = """
#include <functional>
namespace hetmanet
{
std::function<void(std::string, double, double, double)> courseChangeSink;

void
CourseChange(std::string context, ns3::Ptr<const ns3::MobilityModel> model)
{
    ns3::Vector position = model->GetPosition();
    if (courseChangeSink)
    {
        courseChangeSink(context, position.x, position.y, ns3::Simulator::Now().GetSeconds());
    }
}
} // namespace hetmanet
"""


def import_ns() -> tp.Any:
    """
    Import the ns-3 bindings namespace.

    Raises:
        ImportError: If the bindings are not installed
    """
    try:
        module = importlib.import_module("ns")
    except ModuleNotFoundError as e:
        raise ImportError(
            f"Could not import the ns-3 Python bindings (pip install ns3): {e}"
        )
    return module.ns


class Ns3Backend(SimulationBackend):
    """
    Drives the ns-3 simulator through its Python bindings.
    """

    _trampoline_defined = False

    def __init__(self):
        self.ns = import_ns()
        self._nodes: tp.Dict[int, tp.Any] = {}
        # Helpers whose lifetime must cover the run
        self._keep_alive: tp.List[tp.Any] = []
        self._course_change_callbacks: tp.Dict[int, CourseChangeCallback] = {}
        self._flow_helper = None
        self._monitor = None
        self._destroyed = False

    def _container(self, node_ids: tp.Iterable[int]) -> tp.Any:
        container = self.ns.NodeContainer()
        for node_id in node_ids:
            container.Add(self._nodes[node_id])
        return container

    def create_nodes(self, count: int) -> tp.List[int]:
        container = self.ns.NodeContainer()
        container.Create(count)
        ids = []
        for i in range(container.GetN()):
            node = container.Get(i)
            self._nodes[node.GetId()] = node
            ids.append(node.GetId())
        logger.debug(f"Created nodes {ids}")
        return ids

    def install_point_to_point(
        self,
        node_ids: tp.Sequence[int],
        data_rate: str,
        delay: str,
    ) -> DeviceHandle:
        ns = self.ns
        helper = ns.PointToPointHelper()
        helper.SetDeviceAttribute("DataRate", ns.StringValue(data_rate))
        helper.SetChannelAttribute("Delay", ns.StringValue(delay))
        return helper.Install(self._container(node_ids))

    def install_csma(
        self,
        node_ids: tp.Sequence[int],
        data_rate: str,
        delay_ns: int,
    ) -> DeviceHandle:
        ns = self.ns
        helper = ns.CsmaHelper()
        helper.SetChannelAttribute("DataRate", ns.StringValue(data_rate))
        helper.SetChannelAttribute("Delay", ns.TimeValue(ns.NanoSeconds(delay_ns)))
        return helper.Install(self._container(node_ids))

    def install_wifi(
        self,
        station_ids: tp.Sequence[int],
        ap_ids: tp.Sequence[int],
        ssid: str,
        remote_station_manager: str,
    ) -> tp.Tuple[DeviceHandle, DeviceHandle]:
        ns = self.ns
        channel = ns.YansWifiChannelHelper.Default()
        phy = ns.YansWifiPhyHelper()
        phy.SetChannel(channel.Create())

        wifi = ns.WifiHelper()
        wifi.SetRemoteStationManager(remote_station_manager)

        mac = ns.WifiMacHelper()
        cell_ssid = ns.Ssid(ssid)
        mac.SetType(
            "ns3::StaWifiMac",
            "Ssid",
            ns.SsidValue(cell_ssid),
            "ActiveProbing",
            ns.BooleanValue(False),
        )
        sta_devices = wifi.Install(phy, mac, self._container(station_ids))

        mac.SetType("ns3::ApWifiMac", "Ssid", ns.SsidValue(cell_ssid))
        ap_devices = wifi.Install(phy, mac, self._container(ap_ids))
        return sta_devices, ap_devices

    def install_mobility(self, plan: MobilityPlan) -> None:
        ns = self.ns
        grid = plan.grid
        helper = ns.MobilityHelper()
        helper.SetPositionAllocator(
            "ns3::GridPositionAllocator",
            "MinX",
            ns.DoubleValue(grid.min_x),
            "MinY",
            ns.DoubleValue(grid.min_y),
            "DeltaX",
            ns.DoubleValue(grid.delta_x),
            "DeltaY",
            ns.DoubleValue(grid.delta_y),
            "GridWidth",
            ns.UintegerValue(grid.width),
            "LayoutType",
            ns.StringValue("RowFirst"),
        )

        for assignment in plan.assignments:
            profile = assignment.profile
            if profile.kind is MobilityKind.RANDOM_WALK:
                xmin, xmax, ymin, ymax = profile.bounds
                helper.SetMobilityModel(
                    "ns3::RandomWalk2dMobilityModel",
                    "Bounds",
                    ns.RectangleValue(ns.Rectangle(xmin, xmax, ymin, ymax)),
                    "Speed",
                    ns.StringValue(
                        f"ns3::ConstantRandomVariable[Constant={profile.speed}]"
                    ),
                )
            else:
                helper.SetMobilityModel("ns3::ConstantPositionMobilityModel")
            helper.Install(self._container(assignment.node_ids))
            logger.debug(f"Mobility {profile.kind.value} on {assignment.group}")

    def install_internet_stack(
        self,
        node_ids: tp.Sequence[int],
        routing: tp.Optional[RoutingProtocol] = None,
    ) -> None:
        ns = self.ns
        stack = ns.InternetStackHelper()
        if routing is RoutingProtocol.AODV:
            helper = ns.AodvHelper()
        elif routing is RoutingProtocol.DSDV:
            helper = ns.DsdvHelper()
        elif routing is None:
            helper = None
        else:
            raise ValueError(f"{routing.name} is not attached through the stack")

        if helper is not None:
            stack.SetRoutingHelper(helper)
            self._keep_alive.append(helper)
        stack.Install(self._container(node_ids))
        self._keep_alive.append(stack)

    def install_source_routing(self, node_ids: tp.Sequence[int]) -> None:
        dsr_main = self.ns.DsrMainHelper()
        dsr = self.ns.DsrHelper()
        dsr_main.Install(dsr, self._container(node_ids))
        self._keep_alive.extend([dsr_main, dsr])

    def assign_addresses(
        self,
        devices: DeviceHandle,
        network: IPv4Network,
        first_host: int,
    ) -> tp.List[str]:
        ns = self.ns
        helper = ns.Ipv4AddressHelper()
        helper.SetBase(
            ns.Ipv4Address(str(network.network_address)),
            ns.Ipv4Mask(str(network.netmask)),
            ns.Ipv4Address(str(IPv4Address(first_host))),
        )
        interfaces = helper.Assign(devices)
        self._keep_alive.append(interfaces)
        return [
            str(IPv4Address(interfaces.GetAddress(i).Get()))
            for i in range(interfaces.GetN())
        ]

    def install_echo_server(self, node_id: int, port: int, start: float, stop: float) -> None:
        ns = self.ns
        apps = ns.UdpEchoServerHelper(port).Install(self._nodes[node_id])
        apps.Start(ns.Seconds(start))
        apps.Stop(ns.Seconds(stop))

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
        ns = self.ns
        client = ns.UdpEchoClientHelper(ns.Ipv4Address(address).ConvertTo(), port)
        client.SetAttribute("MaxPackets", ns.UintegerValue(max_packets))
        client.SetAttribute("Interval", ns.TimeValue(ns.Seconds(interval)))
        client.SetAttribute("PacketSize", ns.UintegerValue(packet_size))
        apps = client.Install(self._nodes[node_id])
        apps.Start(ns.Seconds(start))
        apps.Stop(ns.Seconds(stop))

    def _on_course_change(self, context: str, x: float, y: float, time: float) -> None:
        # context: /NodeList/<id>/$ns3::MobilityModel/CourseChange
        node_id = int(str(context).split("/")[2])
        callback = self._course_change_callbacks.get(node_id)
        if callback is not None:
            callback(node_id, x, y, time)

    def watch_course_change(self, node_id: int, callback: CourseChangeCallback) -> None:
        ns = self.ns
        if not Ns3Backend._trampoline_defined:
            ns.cppyy.cppdef(_COURSE_CHANGE_TRAMPOLINE)
            Ns3Backend._trampoline_defined = True

        gbl = ns.cppyy.gbl
        gbl.hetmanet.courseChangeSink = self._on_course_change
        self._course_change_callbacks[node_id] = callback
        ns.Config.Connect(
            f"/NodeList/{node_id}/$ns3::MobilityModel/CourseChange",
            ns.MakeCallback(gbl.hetmanet.CourseChange),
        )

    def install_flow_monitor(self) -> None:
        self._flow_helper = self.ns.FlowMonitorHelper()
        self._monitor = self._flow_helper.InstallAll()

    def populate_global_routes(self) -> None:
        self.ns.Ipv4GlobalRoutingHelper.PopulateRoutingTables()

    def run(self, stop_time: float) -> None:
        self.ns.Simulator.Stop(self.ns.Seconds(stop_time))
        self.ns.Simulator.Run()

    def now(self) -> float:
        return self.ns.Simulator.Now().GetSeconds()

    def _require_monitor(self) -> None:
        if self._monitor is None:
            raise RuntimeError("Flow monitor is not installed")

    def flow_classifier(self) -> FlowClassifier:
        self._require_monitor()
        ns = self.ns
        classifier = ns.DynamicCast[ns.Ipv4FlowClassifier](self._flow_helper.GetClassifier())

        def classify(flow_id: int) -> FiveTuple:
            t = classifier.FindFlow(flow_id)
            return FiveTuple(
                protocol=int(t.protocol),
                source_address=str(IPv4Address(t.sourceAddress.Get())),
                source_port=int(t.sourcePort),
                destination_address=str(IPv4Address(t.destinationAddress.Get())),
                destination_port=int(t.destinationPort),
            )

        return classify

    def flow_stats(self) -> tp.Dict[int, FlowCounters]:
        self._require_monitor()
        self._monitor.CheckForLostPackets()

        stats = {}
        for flow_id, s in self._monitor.GetFlowStats():
            stats[int(flow_id)] = FlowCounters(
                lost_packets=int(s.lostPackets),
                rx_packets=int(s.rxPackets),
                delay_sum=s.delaySum.GetSeconds(),
                rx_bytes=int(s.rxBytes),
                time_first_tx_packet=s.timeFirstTxPacket.GetSeconds(),
                time_last_rx_packet=s.timeLastRxPacket.GetSeconds(),
                tx_packets=int(s.txPackets),
                tx_bytes=int(s.txBytes),
                jitter_sum=s.jitterSum.GetSeconds(),
                time_last_tx_packet=s.timeLastTxPacket.GetSeconds(),
                time_first_rx_packet=s.timeFirstRxPacket.GetSeconds(),
            )
        return stats

    def serialize_flow_monitor(self, path: str) -> None:
        self._require_monitor()
        self._monitor.SerializeToXmlFile(path, True, True)
        logger.info(f"Flow monitor state written to {path}")

    def destroy(self) -> None:
        if self._destroyed:
            return
        self.ns.Simulator.Destroy()
        self._nodes.clear()
        self._keep_alive.clear()
        self._course_change_callbacks.clear()
        self._monitor = None
        self._flow_helper = None
        self._destroyed = True
