import pytest

from hetmanet.scenario_config import TrafficConfig
from hetmanet.simulation.addressing import AddressPlan
from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.mobility import MobilityTrace
from hetmanet.simulation.topology import TopologyBuilder
from hetmanet.simulation.traffic import TrafficScenario


def build(backend, n_csma=3, n_wifi=3):
    topology = TopologyBuilder(backend).build(n_csma, n_wifi)
    plan = AddressPlan()
    plan.plan(topology)
    return topology, plan


def test_initiator_targets_the_responder_lan_address(backend):
    topology, plan = build(backend)
    endpoints = TrafficScenario(backend).start(topology, plan)

    assert endpoints.responder_id == 4
    assert endpoints.initiator_id == 7
    assert endpoints.destination_address == "10.1.2.4"
    assert endpoints.port == 9

    assert backend.calls_to("install_echo_server") == [(4, 9, 1.0, 10.0)]
    assert backend.calls_to("install_echo_client") == [
        (7, "10.1.2.4", 9, 100, 1.0, 1024, 2.0, 10.0)
    ]


def test_responder_falls_back_to_the_gateway(backend):
    topology, plan = build(backend, n_csma=0, n_wifi=2)
    endpoints = TrafficScenario(backend).start(topology, plan)

    assert endpoints.responder_id == topology.gateway_id
    assert endpoints.destination_address == "10.1.2.1"


def test_course_changes_feed_the_trace(backend):
    topology, plan = build(backend)
    trace = MobilityTrace()
    TrafficScenario(backend, trace=trace).start(topology, plan)

    assert backend.calls_to("watch_course_change") == [(7,)]
    backend.watchers[7](7, 3.0, 4.0, 1.0)
    assert trace.samples == [(7, 3.0, 4.0, 1.0)]


def test_no_traffic_without_stations(backend):
    topology, plan = build(backend, n_wifi=0)
    assert TrafficScenario(backend).start(topology, plan) is None
    assert "install_echo_client" not in backend.call_names
    assert "install_echo_server" not in backend.call_names


@pytest.mark.parametrize(
    "overrides",
    [
        dict(server_start=5.0, server_stop=5.0),
        dict(client_start=3.0, client_stop=2.0),
        dict(client_start=0.5),
        dict(client_stop=12.0),
        dict(max_packets=0),
        dict(interval=0.0),
    ],
)
def test_invalid_windows_are_rejected(backend, overrides):
    with pytest.raises(ConfigurationError):
        TrafficScenario(backend, TrafficConfig(**overrides))
