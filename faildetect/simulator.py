"""Scenario runner that measures how failure detectors behave on a simulated network."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Iterable

from faildetect.gossip_node import GossipNode
from faildetect.heartbeat_node import HeartbeatNode
from faildetect.network import Network

MAX_NODES = 100
TICK_SECONDS = 0.1
WARMUP_ROUNDS = 50
DETECTION_TIMEOUT_MS = 5000
CONVERGENCE_TIMEOUT_MS = 5000
HIGH_LOAD_WAIT_SECONDS = 5.0
RECOVERY_PAUSE_SECONDS = 2.0


@dataclass
class DetectionResult:
    """Outcome of one test scenario."""

    test_name: str
    detection_time_ms: float
    false_positives: int
    false_negatives: int
    messages_sent: int
    accuracy: float


def calculate_accuracy(
    true_positives: int, false_positives: int, false_negatives: int
) -> float:
    """Fraction of correct outcomes; 1.0 when there were no outcomes at all."""
    total = true_positives + false_positives + false_negatives
    if total == 0:
        return 1.0
    return true_positives / total


def _node_id(index: int) -> str:
    return f"node{index}"


def _node_ids(count: int) -> list[str]:
    return [_node_id(i) for i in range(count)]


class Simulator:
    """Builds networks of detector nodes and runs failure scenarios on them."""

    def __init__(self, network: Network | None = None) -> None:
        self.network = network if network is not None else Network()
        self._rng = random.Random()

    def __enter__(self) -> "Simulator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup_network()

    def setup_gossip_network(self, num_nodes: int) -> None:
        """Replace the current nodes with running gossip nodes node0..nodeN-1."""
        self.cleanup_network()
        ids = _node_ids(num_nodes)
        for node_id in ids:
            node = GossipNode(node_id, ids)
            self.network.add_node(node_id, node)
            node.start()

    def setup_heartbeat_network(self, num_nodes: int) -> None:
        """Replace the current nodes with running heartbeat nodes; node0 is master."""
        self.cleanup_network()
        for node_id in _node_ids(num_nodes):
            node = HeartbeatNode(node_id, node_id == "node0")
            self.network.add_node(node_id, node)
            node.start()

    def cleanup_network(self) -> None:
        """Stop every node and remove it from the network."""
        ids = _node_ids(MAX_NODES)
        for node_id in ids:
            node = self.network.get_node(node_id)
            if node is not None:
                node.stop()
        for node_id in ids:
            self.network.remove_node(node_id)

    def run_single_node_failure_test(self, num_nodes: int) -> DetectionResult:
        """Fail one random node and time how long until another node notices."""
        self.cleanup_network()
        self.setup_gossip_network(num_nodes)

        for sender in range(num_nodes):
            for receiver in range(num_nodes):
                if sender != receiver:
                    self.network.send_message(
                        _node_id(sender), _node_id(receiver), "initial_traffic"
                    )

        for _ in range(WARMUP_ROUNDS):
            self.network.process_messages()
            time.sleep(TICK_SECONDS)

        self.network.reset_stats()

        failed_node = _node_id(self._rng.randrange(num_nodes))
        start = time.monotonic()
        self.simulate_failures([failed_node])

        detection_time_ms = float(DETECTION_TIMEOUT_MS)
        while (time.monotonic() - start) * 1000.0 < DETECTION_TIMEOUT_MS:
            self.network.process_messages()
            if self._failure_noticed(failed_node, num_nodes):
                detection_time_ms = float(int((time.monotonic() - start) * 1000.0))
                break
            time.sleep(TICK_SECONDS)

        result = self.collect_metrics("Single Node Failure Test")
        result.detection_time_ms = detection_time_ms
        self.cleanup_network()
        return result

    def _failure_noticed(self, failed_node: str, num_nodes: int) -> bool:
        for node_id in _node_ids(num_nodes):
            if node_id == failed_node:
                continue
            node = self.network.get_node(node_id)
            if isinstance(node, GossipNode) and failed_node in node.failed_nodes():
                return True
        return False

    def run_multiple_failures_test(
        self, num_nodes: int, num_failures: int
    ) -> DetectionResult:
        """Fail the first num_failures nodes and wait for the views to converge."""
        self.setup_gossip_network(num_nodes)
        self.wait_for_convergence(CONVERGENCE_TIMEOUT_MS)

        failed = _node_ids(num_failures)
        self._rng.shuffle(failed)
        self.simulate_failures(failed)

        self.wait_for_convergence(CONVERGENCE_TIMEOUT_MS)
        return self.collect_metrics("Multiple Failures Test")

    def run_network_partition_test(self, num_nodes: int) -> DetectionResult:
        """Split the nodes in two halves, wait, then heal the split."""
        self.setup_gossip_network(num_nodes)
        self.wait_for_convergence(CONVERGENCE_TIMEOUT_MS)

        half = num_nodes // 2
        ids = _node_ids(num_nodes)
        self.network.simulate_network_partition(ids[:half], ids[half:], 5000)

        self.wait_for_convergence(CONVERGENCE_TIMEOUT_MS)
        self.network.heal_network_partition()
        return self.collect_metrics("Network Partition Test")

    def run_high_load_test(self, num_nodes: int) -> DetectionResult:
        """Send a message between every ordered pair of nodes."""
        self.setup_gossip_network(num_nodes)
        self.wait_for_convergence(CONVERGENCE_TIMEOUT_MS)

        for sender in range(num_nodes):
            for receiver in range(num_nodes):
                if sender != receiver:
                    self.network.send_message(
                        _node_id(sender), _node_id(receiver), "high_load_test"
                    )

        time.sleep(HIGH_LOAD_WAIT_SECONDS)
        return self.collect_metrics("High Load Test")

    def run_recovery_test(self, num_nodes: int) -> DetectionResult:
        """Fail a random node, bring it back, and wait for convergence."""
        self.setup_gossip_network(num_nodes)
        self.wait_for_convergence(CONVERGENCE_TIMEOUT_MS)

        node_id = _node_id(self._rng.randrange(num_nodes))
        self.simulate_failures([node_id])
        time.sleep(RECOVERY_PAUSE_SECONDS)
        self.simulate_recoveries([node_id])

        self.wait_for_convergence(CONVERGENCE_TIMEOUT_MS)
        return self.collect_metrics("Recovery Test")

    def compare_algorithms(self, num_nodes: int) -> list[DetectionResult]:
        """Run the single-failure scenario after each kind of network setup."""
        results = []

        self.setup_gossip_network(num_nodes)
        results.append(self.run_single_node_failure_test(num_nodes))
        self.cleanup_network()

        self.setup_heartbeat_network(num_nodes)
        results.append(self.run_single_node_failure_test(num_nodes))
        self.cleanup_network()

        return results

    def run_all_tests(self, num_nodes: int) -> list[DetectionResult]:
        """Run every scenario, print a report of each and return the results."""
        results = [
            self.run_single_node_failure_test(num_nodes),
            self.run_multiple_failures_test(num_nodes, 3),
            self.run_network_partition_test(num_nodes),
            self.run_high_load_test(num_nodes),
            self.run_recovery_test(num_nodes),
        ]
        for result in results:
            print(
                f"Test: {result.test_name}\n"
                f"Detection Time: {result.detection_time_ms:g}ms\n"
                f"False Positives: {result.false_positives}\n"
                f"False Negatives: {result.false_negatives}\n"
                f"Messages Sent: {result.messages_sent}\n"
                f"Accuracy: {result.accuracy:g}\n"
            )
        return results

    def wait_for_convergence(self, timeout_ms: int) -> None:
        """Deliver messages until all nodes agree or the timeout passes."""
        start = time.monotonic()
        while not self.check_convergence():
            if (time.monotonic() - start) * 1000.0 > timeout_ms:
                break
            time.sleep(TICK_SECONDS)
            self.network.process_messages()

    def check_convergence(self) -> bool:
        """Whether every gossip node reports the same set of failed nodes."""
        reference: set[str] | None = None
        for node_id in _node_ids(MAX_NODES):
            node = self.network.get_node(node_id)
            if not isinstance(node, GossipNode):
                continue
            current = set(node.failed_nodes())
            if reference is None:
                reference = current
            elif current != reference:
                return False
        return True

    def simulate_failures(self, node_ids: Iterable[str]) -> None:
        """Mark the given nodes as dead."""
        self._set_alive(node_ids, False)

    def simulate_recoveries(self, node_ids: Iterable[str]) -> None:
        """Mark the given nodes as alive again."""
        self._set_alive(node_ids, True)

    def _set_alive(self, node_ids: Iterable[str], alive: bool) -> None:
        for node_id in node_ids:
            node = self.network.get_node(node_id)
            if node is not None:
                node.alive = alive

    def collect_metrics(self, test_name: str) -> DetectionResult:
        """Summarise the network's traffic counters as a result."""
        stats = self.network.stats()
        messages_sent = stats.delivered_messages + stats.dropped_messages
        detection_time_ms = (
            stats.total_delay / messages_sent if messages_sent > 0 else 0.0
        )
        false_positives = 0
        false_negatives = 0
        accuracy = calculate_accuracy(
            messages_sent - (false_positives + false_negatives),
            false_positives,
            false_negatives,
        )
        return DetectionResult(
            test_name=test_name,
            detection_time_ms=detection_time_ms,
            false_positives=false_positives,
            false_negatives=false_negatives,
            messages_sent=messages_sent,
            accuracy=accuracy,
        )