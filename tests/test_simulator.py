import random

import pytest

from faildetect import simulator as sim
from faildetect.gossip_node import GossipNode
from faildetect.heartbeat_node import HeartbeatNode
from faildetect.network import Network
from faildetect.simulator import DetectionResult, Simulator, calculate_accuracy


@pytest.fixture
def fast(monkeypatch):
    monkeypatch.setattr(sim, "TICK_SECONDS", 0.01)
    monkeypatch.setattr(sim, "WARMUP_ROUNDS", 3)
    monkeypatch.setattr(sim, "DETECTION_TIMEOUT_MS", 200)
    monkeypatch.setattr(sim, "CONVERGENCE_TIMEOUT_MS", 100)
    monkeypatch.setattr(sim, "HIGH_LOAD_WAIT_SECONDS", 0.05)
    monkeypatch.setattr(sim, "RECOVERY_PAUSE_SECONDS", 0.05)


@pytest.fixture
def simulator(fast):
    network = Network(random.Random(7))
    with Simulator(network) as s:
        yield s


def test_accuracy_with_no_outcomes_is_one():
    assert calculate_accuracy(0, 0, 0) == 1.0


def test_accuracy_ratio():
    assert calculate_accuracy(2, 1, 1) == pytest.approx(0.5)
    assert calculate_accuracy(5, 0, 0) == 1.0


def test_collect_metrics_on_quiet_network():
    s = Simulator(Network(random.Random(1)))
    result = s.collect_metrics("Quiet")
    assert result == DetectionResult("Quiet", 0.0, 0, 0, 0, 1.0)


def test_collect_metrics_counts_all_sent_messages():
    network = Network(random.Random(3))
    s = Simulator(network)
    for _ in range(20):
        network.send_message("a", "b", "x")
    result = s.collect_metrics("Traffic")
    assert result.messages_sent == 20
    assert result.detection_time_ms >= 0
    assert result.accuracy == 1.0
    assert result.false_positives == 0
    assert result.false_negatives == 0


def test_setup_gossip_network_and_cleanup(simulator):
    simulator.setup_gossip_network(3)
    node = simulator.network.get_node("node0")
    assert isinstance(node, GossipNode)
    assert node.running
    simulator.cleanup_network()
    assert not node.running
    assert simulator.network.get_node("node0") is None


def test_setup_heartbeat_network_marks_first_node_master(simulator):
    simulator.setup_heartbeat_network(3)
    master = simulator.network.get_node("node0")
    worker = simulator.network.get_node("node1")
    assert isinstance(master, HeartbeatNode)
    assert master.is_master is True
    assert worker.is_master is False


def test_simulate_failures_and_recoveries():
    network = Network(random.Random(0))
    s = Simulator(network)
    node = GossipNode("node1", [])
    network.add_node("node1", node)
    s.simulate_failures(["node1", "missing"])
    assert node.alive is False
    s.simulate_recoveries(["node1"])
    assert node.alive is True


def test_check_convergence_on_empty_network():
    assert Simulator(Network()).check_convergence() is True


def test_check_convergence_detects_disagreement():
    network = Network()
    s = Simulator(network)
    first = GossipNode("node0", ["node1"])
    second = GossipNode("node1", ["node0"])
    network.add_node("node0", first)
    network.add_node("node1", second)
    first.update_node_state("node1", False)
    assert s.check_convergence() is False
    second.update_node_state("node1", False)
    assert s.check_convergence() is True


def test_single_node_failure_test(simulator):
    result = simulator.run_single_node_failure_test(5)
    assert result.test_name == "Single Node Failure Test"
    assert result.detection_time_ms >= 0
    assert 0.0 <= result.accuracy <= 1.0
    assert simulator.network.get_node("node0") is None


def test_multiple_failures_test_fails_first_nodes(simulator):
    result = simulator.run_multiple_failures_test(4, 2)
    assert result.test_name == "Multiple Failures Test"
    assert simulator.network.get_node("node0").alive is False
    assert simulator.network.get_node("node1").alive is False
    assert simulator.network.get_node("node2").alive is True


def test_network_partition_test_heals(simulator):
    result = simulator.run_network_partition_test(4)
    assert result.test_name == "Network Partition Test"
    assert simulator.network.partitions == {}


def test_network_partition_needs_two_nodes(simulator):
    with pytest.raises(ValueError):
        simulator.run_network_partition_test(1)


def test_high_load_test_counts_pairwise_messages(simulator):
    result = simulator.run_high_load_test(3)
    assert result.test_name == "High Load Test"
    assert result.messages_sent == 6


def test_recovery_test_leaves_all_nodes_alive(simulator):
    result = simulator.run_recovery_test(3)
    assert result.test_name == "Recovery Test"
    assert all(simulator.network.get_node(f"node{i}").alive for i in range(3))


def test_compare_algorithms_returns_two_results(simulator):
    results = simulator.compare_algorithms(3)
    assert [r.test_name for r in results] == ["Single Node Failure Test"] * 2
    assert all(0.0 <= r.accuracy <= 1.0 for r in results)


def test_run_all_tests_prints_each_scenario(simulator, capsys):
    results = simulator.run_all_tests(4)
    out = capsys.readouterr().out
    assert len(results) == 5
    for name in (
        "Single Node Failure Test",
        "Multiple Failures Test",
        "Network Partition Test",
        "High Load Test",
        "Recovery Test",
    ):
        assert f"Test: {name}" in out
    assert out.count("False Positives: 0") == 5