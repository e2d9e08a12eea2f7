"""Heartbeat-based failure detector with a single master node."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace

from faildetect.node import Message, Node

HEARTBEAT_INTERVAL_MS = 1000
FAILURE_THRESHOLD_MS = 3000
MASTER_ID = "master"
HEARTBEAT = "HEARTBEAT"


@dataclass(frozen=True)
class HeartbeatMetrics:
    """Traffic and accuracy counters of a heartbeat node."""

    heartbeats_sent: int = 0
    heartbeats_received: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    last_reset: float = field(default_factory=time.time)


@dataclass
class _NodeState:
    alive: bool
    last_heartbeat: float


class HeartbeatNode(Node):
    """Workers send heartbeats; the master marks silent workers as failed."""

    def __init__(self, node_id: str, is_master: bool) -> None:
        super().__init__(node_id)
        self._is_master = is_master
        now = time.time()
        self._states: dict[str, _NodeState] = {node_id: _NodeState(True, now)}
        self._states_lock = threading.Lock()
        self._metrics = HeartbeatMetrics(last_reset=now)
        self._metrics_lock = threading.Lock()
        self._last_heartbeat: float | None = None

    @property
    def is_master(self) -> bool:
        """Whether this node is the master."""
        return self._is_master

    @property
    def metrics(self) -> HeartbeatMetrics:
        """A snapshot of the node's counters."""
        with self._metrics_lock:
            return self._metrics

    def start(self) -> None:
        """Start the heartbeat loop in the background."""
        super().start()

    def send_message(self, to_id: str, content: str) -> None:
        """Account for an outgoing heartbeat."""
        with self._metrics_lock:
            self._metrics = replace(
                self._metrics, heartbeats_sent=self._metrics.heartbeats_sent + 1
            )

    def process_message(self, msg: Message) -> None:
        """Count a heartbeat; the master refreshes the sender's state."""
        with self._metrics_lock:
            self._metrics = replace(
                self._metrics,
                heartbeats_received=self._metrics.heartbeats_received + 1,
            )
        if self._is_master:
            self.update_node_state(msg.from_id, True)

    def periodic_task(self) -> None:
        """Workers send heartbeats each interval; the master checks health."""
        if self._is_master:
            self.check_node_health()
            return
        now = time.time()
        if self._last_heartbeat is None:
            self._last_heartbeat = now
            return
        if (now - self._last_heartbeat) * 1000.0 >= HEARTBEAT_INTERVAL_MS:
            self.send_heartbeat()
            self._last_heartbeat = now

    def send_heartbeat(self) -> None:
        """Send a heartbeat to the master; the master itself sends none."""
        if not self._is_master:
            self.send_message(MASTER_ID, HEARTBEAT)

    def check_node_health(self) -> None:
        """Mark nodes silent for longer than the threshold as failed."""
        now = time.time()
        newly_failed = 0
        with self._states_lock:
            for node_id, state in self._states.items():
                if node_id == self.id:
                    continue
                silent_ms = (now - state.last_heartbeat) * 1000.0
                if silent_ms > FAILURE_THRESHOLD_MS and state.alive:
                    state.alive = False
                    newly_failed += 1
        if newly_failed:
            with self._metrics_lock:
                self._metrics = replace(
                    self._metrics,
                    false_positives=self._metrics.false_positives + newly_failed,
                )

    def update_node_state(self, node_id: str, alive: bool) -> None:
        """Set a known node's liveness and refresh its heartbeat time."""
        with self._states_lock:
            state = self._states.get(node_id)
            if state is not None:
                state.alive = alive
                state.last_heartbeat = time.time()

    def failed_nodes(self) -> list[str]:
        """Ids of nodes considered failed."""
        with self._states_lock:
            return [node_id for node_id, state in self._states.items() if not state.alive]

    def add_node(self, node_id: str) -> None:
        """Start tracking a node as alive."""
        with self._states_lock:
            self._states[node_id] = _NodeState(True, time.time())

    def remove_node(self, node_id: str) -> None:
        """Stop tracking a node; unknown ids are ignored."""
        with self._states_lock:
            self._states.pop(node_id, None)

    def reset_metrics(self) -> None:
        """Zero the counters."""
        with self._metrics_lock:
            self._metrics = HeartbeatMetrics(last_reset=time.time())