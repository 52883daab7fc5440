import pytest

from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.routing import (
    InstallAction,
    RoutingProtocol,
    RoutingProtocolInstaller,
)
from hetmanet.simulation.topology import (
    BACKBONE,
    LAN,
    WIFI_AP,
    WIFI_STATIONS,
    TopologyBuilder,
)


def stacked_nodes(backend):
    return [n for node_ids, _ in backend.calls_to("install_internet_stack") for n in node_ids]


@pytest.mark.parametrize(
    "selector,protocol",
    [(0, RoutingProtocol.AODV), (1, RoutingProtocol.DSR), (2, RoutingProtocol.DSDV)],
)
def test_selectors(selector, protocol):
    assert RoutingProtocol.from_selector(selector) is protocol


@pytest.mark.parametrize("selector", [3, -1, 42])
def test_unknown_selector(selector):
    with pytest.raises(ConfigurationError):
        RoutingProtocol.from_selector(selector)


@pytest.mark.parametrize("protocol", [RoutingProtocol.AODV, RoutingProtocol.DSDV])
def test_table_driven_protocols_ride_the_stack(backend, protocol):
    topology = TopologyBuilder(backend).build(3, 3)
    steps = RoutingProtocolInstaller(backend).install(protocol, topology)

    stack_calls = backend.calls_to("install_internet_stack")
    assert all(routing is protocol for _, routing in stack_calls)
    assert "install_source_routing" not in backend.call_names

    # Every node gets exactly one stack, the gateway with the LAN
    assert sorted(stacked_nodes(backend)) == topology.node_ids
    assert [s.group for s in steps] == [LAN, WIFI_STATIONS, BACKBONE]
    assert steps[0].node_ids[0] == topology.gateway_id
    assert steps[-1].node_ids == (0,)
    assert all(s.action is InstallAction.ROUTED_STACK for s in steps)


def test_source_routing_installs_agents_per_node(backend):
    topology = TopologyBuilder(backend).build(3, 3)
    steps = RoutingProtocolInstaller(backend).install(RoutingProtocol.DSR, topology)

    assert all(routing is None for _, routing in backend.calls_to("install_internet_stack"))
    assert sorted(stacked_nodes(backend)) == topology.node_ids

    agent_calls = backend.calls_to("install_source_routing")
    assert agent_calls == [((0, 1),), ((2, 3, 4),), ((5, 6, 7),)]

    agent_steps = [s for s in steps if s.action is InstallAction.SOURCE_ROUTING]
    assert [s.group for s in agent_steps] == [BACKBONE, LAN, WIFI_STATIONS]


def test_source_routing_skips_wireless_agents_without_stations(backend):
    topology = TopologyBuilder(backend).build(3, 0)
    steps = RoutingProtocolInstaller(backend).install(1, topology)

    agent_calls = backend.calls_to("install_source_routing")
    assert agent_calls == [((0, 1),), ((2, 3, 4),)]
    assert not [s for s in steps if s.group in (WIFI_AP, WIFI_STATIONS)]


def test_gateway_gets_a_single_agent(backend):
    topology = TopologyBuilder(backend).build(0, 2)
    RoutingProtocolInstaller(backend).install(RoutingProtocol.DSR, topology)

    agents = [n for (node_ids,) in backend.calls_to("install_source_routing") for n in node_ids]
    assert agents.count(topology.gateway_id) == 1
    assert sorted(agents) == topology.node_ids


def test_install_rejects_unknown_selector(backend):
    topology = TopologyBuilder(backend).build(1, 1)
    before = list(backend.calls)

    with pytest.raises(ConfigurationError):
        RoutingProtocolInstaller(backend).install(3, topology)
    assert backend.calls == before
