"""Base node: a message inbox plus a background loop that runs periodic work."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field

TICK_SECONDS = 0.1


@dataclass(frozen=True)
class Message:
    """A message as received by a node."""

    from_id: str
    content: str
    timestamp: float = field(default_factory=time.time)


class Node(ABC):
    """A simulated cluster member running its own worker thread."""

    def __init__(self, node_id: str) -> None:
        self.id = node_id
        self.alive = True
        self._inbox: deque[Message] = deque()
        self._inbox_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._stop_event.set()
        self._thread: threading.Thread | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"

    def __enter__(self) -> "Node":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        """Whether the worker loop is currently meant to run."""
        return not self._stop_event.is_set()

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError(f"node {self.id!r} is already running")
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run, name=f"node-{self.id}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the worker thread and wait for it to finish."""
        self._stop_event.set()
        thread = self._thread
        if (
            thread is not None
            and thread.is_alive()
            and thread is not threading.current_thread()
        ):
            thread.join()
        self._thread = None

    @abstractmethod
    def send_message(self, to_id: str, content: str) -> None:
        """Send a message to another node."""

    def receive_message(self, from_id: str, content: str) -> None:
        """Queue an incoming message, stamped with the current time."""
        message = Message(from_id, content, time.time())
        with self._inbox_lock:
            self._inbox.append(message)

    @abstractmethod
    def process_message(self, msg: Message) -> None:
        """Handle one received message."""

    def process_message_queue(self) -> None:
        """Handle every queued message in arrival order."""
        with self._inbox_lock:
            pending = list(self._inbox)
            self._inbox.clear()
        for message in pending:
            self.process_message(message)

    @abstractmethod
    def periodic_task(self) -> None:
        """Work done once per tick of the worker loop."""

    def run(self) -> None:
        """Worker loop: drain the inbox, do periodic work, sleep a tick."""
        while not self._stop_event.is_set():
            self.process_message_queue()
            self.periodic_task()
            self._stop_event.wait(TICK_SECONDS)