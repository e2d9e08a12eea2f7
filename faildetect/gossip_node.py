"""Gossip-based failure detector: peers exchange membership views."""

from __future__ import annotations

import random
import re
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Iterable

from faildetect.node import Message, Node

GOSSIP_INTERVAL_MS = 1000
SUSPICION_THRESHOLD = 3
FANOUT = 3

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class GossipMetrics:
    """Traffic and accuracy counters of a gossip node."""

    messages_sent: int = 0
    messages_received: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    last_reset: float = field(default_factory=time.time)


@dataclass
class _PeerState:
    alive: bool
    last_seen: float
    suspicion: int = 0


def _parse_timestamp(text: str) -> int:
    match = _LEADING_INT.match(text)
    if match is None:
        raise ValueError(f"invalid timestamp in gossip state: {text!r}")
    return int(match.group(1))


def _split_entry(entry: str) -> tuple[str, str, str] | None:
    """Split "id:alive:timestamp"; None when the entry has too few fields."""
    parts = entry.split(":")
    if len(parts) < 3 or (len(parts) == 3 and parts[2] == ""):
        return None
    return parts[0], parts[1], parts[2]


class GossipNode(Node):
    """Tracks peer liveness by periodically gossiping its view to random peers."""

    def __init__(
        self,
        node_id: str,
        peer_ids: Iterable[str],
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(node_id)
        self._rng = rng if rng is not None else random.Random()
        now = time.time()
        self._states: dict[str, _PeerState] = {
            peer_id: _PeerState(True, now) for peer_id in peer_ids
        }
        self._states[node_id] = _PeerState(True, now)
        self._states_lock = threading.Lock()
        self._metrics = GossipMetrics(last_reset=now)
        self._metrics_lock = threading.Lock()
        self._last_gossip: float | None = None

    @property
    def metrics(self) -> GossipMetrics:
        """A snapshot of the node's counters."""
        with self._metrics_lock:
            return self._metrics

    def start(self) -> None:
        """Start gossiping in the background."""
        super().start()

    def send_message(self, to_id: str, content: str) -> None:
        """Account for an outgoing gossip message."""
        with self._metrics_lock:
            self._metrics = replace(
                self._metrics, messages_sent=self._metrics.messages_sent + 1
            )

    def process_message(self, msg: Message) -> None:
        """Refresh the sender's state and merge the gossiped view."""
        with self._metrics_lock:
            self._metrics = replace(
                self._metrics, messages_received=self._metrics.messages_received + 1
            )
        with self._states_lock:
            state = self._states.get(msg.from_id)
            if state is not None:
                state.last_seen = msg.timestamp
                state.suspicion = 0
                state.alive = True
        self.deserialize_state(msg.content)

    def periodic_task(self) -> None:
        """Gossip once per interval and raise suspicion of silent peers."""
        now = time.time()
        if self._last_gossip is None:
            self._last_gossip = now
            return
        if (now - self._last_gossip) * 1000.0 < GOSSIP_INTERVAL_MS:
            return
        self.gossip_round()
        self._last_gossip = now
        with self._states_lock:
            for node_id, state in self._states.items():
                if node_id == self.id:
                    continue
                if (now - state.last_seen) * 1000.0 > GOSSIP_INTERVAL_MS:
                    state.suspicion += 1
                    if state.suspicion >= SUSPICION_THRESHOLD:
                        state.alive = False

    def gossip_round(self) -> None:
        """Send the current view to a random selection of peers."""
        payload = self.serialize_state()
        for peer in self.select_random_peers():
            self.send_message(peer, payload)

    def select_random_peers(self) -> list[str]:
        """Return up to FANOUT peers, chosen at random when there are more."""
        with self._states_lock:
            peers = [node_id for node_id in self._states if node_id != self.id]
        if len(peers) <= FANOUT:
            return peers
        return self._rng.sample(peers, FANOUT)

    def update_node_state(self, node_id: str, alive: bool) -> None:
        """Set a known node's liveness and clear its suspicion."""
        with self._states_lock:
            state = self._states.get(node_id)
            if state is not None:
                state.alive = alive
                state.last_seen = time.time()
                state.suspicion = 0

    def failed_nodes(self) -> list[str]:
        """Ids of nodes considered failed."""
        with self._states_lock:
            return [
                node_id
                for node_id, state in self._states.items()
                if not state.alive or state.suspicion >= SUSPICION_THRESHOLD
            ]

    def serialize_state(self) -> str:
        """Encode the view as "id:alive:timestamp;" entries."""
        with self._states_lock:
            return "".join(
                f"{node_id}:{int(state.alive)}:{int(state.last_seen)};"
                for node_id, state in self._states.items()
            )

    def deserialize_state(self, data: str) -> None:
        """Merge a gossiped view; entries for unknown nodes are ignored."""
        for entry in data.split(";"):
            fields = _split_entry(entry)
            if fields is None:
                continue
            node_id, alive_text, timestamp_text = fields
            timestamp = _parse_timestamp(timestamp_text)
            with self._states_lock:
                state = self._states.get(node_id)
                if state is not None:
                    state.alive = alive_text == "1"
                    state.last_seen = float(timestamp)
                    state.suspicion = 0

    def reset_metrics(self) -> None:
        """Zero the counters."""
        with self._metrics_lock:
            self._metrics = GossipMetrics(last_reset=time.time())

    def add_peer(self, peer_id: str) -> None:
        """Start tracking a peer as alive."""
        with self._states_lock:
            self._states[peer_id] = _PeerState(True, time.time())

    def remove_peer(self, peer_id: str) -> None:
        """Stop tracking a peer; unknown ids are ignored."""
        with self._states_lock:
            self._states.pop(peer_id, None)