"""Simulated lossy network with random delivery delays."""

from __future__ import annotations

import heapq
import itertools
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Iterable, Protocol

MESSAGE_LOSS_RATE = 0.1
MEAN_DELAY_MS = 50.0
STD_DEV_DELAY_MS = 10.0


class _Receiver(Protocol):
    def receive_message(self, from_id: str, content: str) -> None: ...


@dataclass
class NetworkStats:
    """Counters of delivered and dropped messages and accumulated delay."""

    delivered_messages: int = 0
    dropped_messages: int = 0
    total_delay: float = 0.0


@dataclass(order=True)
class _InFlight:
    delivery_time: float
    seq: int
    from_id: str = field(compare=False)
    to_id: str = field(compare=False)
    content: str = field(compare=False)


class Network:
    """Routes messages between registered nodes, dropping and delaying some."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._rng_lock = threading.Lock()
        self._nodes: dict[str, _Receiver] = {}
        self._nodes_lock = threading.Lock()
        self._queue: list[_InFlight] = []
        self._queue_lock = threading.Lock()
        self._seq = itertools.count()
        self._partitions: dict[str, frozenset[str]] = {}
        self._partition_lock = threading.Lock()
        self._stats = NetworkStats()
        self._stats_lock = threading.Lock()

    def add_node(self, node_id: str, node: _Receiver) -> None:
        """Register a node under the given id, replacing any previous one."""
        with self._nodes_lock:
            self._nodes[node_id] = node

    def remove_node(self, node_id: str) -> None:
        """Unregister a node; unknown ids are ignored."""
        with self._nodes_lock:
            self._nodes.pop(node_id, None)

    def get_node(self, node_id: str) -> _Receiver | None:
        """Return the node registered under the id, or None."""
        with self._nodes_lock:
            return self._nodes.get(node_id)

    def send_message(self, from_id: str, to_id: str, content: str) -> None:
        """Queue a message for later delivery, or drop it at random."""
        if self._should_drop():
            self._record(0, dropped=True)
            return
        delay_ms = self._delay_ms()
        message = _InFlight(
            time.monotonic() + delay_ms / 1000.0,
            next(self._seq),
            from_id,
            to_id,
            content,
        )
        with self._queue_lock:
            heapq.heappush(self._queue, message)
        self._record(delay_ms, dropped=False)

    def process_messages(self) -> None:
        """Deliver every message whose delivery time has come."""
        now = time.monotonic()
        due: list[_InFlight] = []
        with self._queue_lock:
            while self._queue and self._queue[0].delivery_time <= now:
                due.append(heapq.heappop(self._queue))
        for message in due:
            node = self.get_node(message.to_id)
            if node is not None:
                node.receive_message(message.from_id, message.content)

    def simulate_network_partition(
        self,
        partition1: Iterable[str],
        partition2: Iterable[str],
        duration_ms: int,
    ) -> None:
        """Record a split of the nodes into two groups."""
        first, second = list(partition1), list(partition2)
        if not first or not second:
            raise ValueError("both partitions must contain at least one node")
        with self._partition_lock:
            self._partitions[first[0]] = frozenset(first)
            self._partitions[second[0]] = frozenset(second)

    def heal_network_partition(self) -> None:
        """Forget all recorded partitions."""
        with self._partition_lock:
            self._partitions.clear()

    @property
    def partitions(self) -> dict[str, frozenset[str]]:
        """Recorded partitions keyed by their first member."""
        with self._partition_lock:
            return dict(self._partitions)

    def stats(self) -> NetworkStats:
        """Return a snapshot of the traffic counters."""
        with self._stats_lock:
            return NetworkStats(
                self._stats.delivered_messages,
                self._stats.dropped_messages,
                self._stats.total_delay,
            )

    def reset_stats(self) -> None:
        """Zero the traffic counters."""
        with self._stats_lock:
            self._stats = NetworkStats()

    def _should_drop(self) -> bool:
        with self._rng_lock:
            return self._rng.random() < MESSAGE_LOSS_RATE

    def _delay_ms(self) -> int:
        with self._rng_lock:
            sample = self._rng.gauss(MEAN_DELAY_MS, STD_DEV_DELAY_MS)
        return max(0, int(sample))

    def _record(self, delay_ms: int, *, dropped: bool) -> None:
        with self._stats_lock:
            if dropped:
                self._stats.dropped_messages += 1
            else:
                self._stats.delivered_messages += 1
                self._stats.total_delay += delay_ms