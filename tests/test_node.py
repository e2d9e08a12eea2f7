import time

import pytest

from faildetect.node import Message, Node


class RecordingNode(Node):
    def __init__(self, node_id):
        super().__init__(node_id)
        self.processed = []
        self.sent = []
        self.ticks = 0

    def send_message(self, to_id, content):
        self.sent.append((to_id, content))

    def process_message(self, msg):
        self.processed.append(msg)

    def periodic_task(self):
        self.ticks += 1


def wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_basic_functionality():
    node = RecordingNode("test_node")
    assert isinstance(node, Node)
    assert node.id == "test_node"
    assert node.alive is True
    node.alive = False
    assert node.alive is False
    Node.stop(node)
    assert node.alive is False


def test_node_is_abstract():
    with pytest.raises(TypeError):
        Node("x")


def test_not_running_initially():
    node = RecordingNode("n")
    Node.process_message_queue(node)
    assert node.running is False
    assert node.processed == []


def test_queue_processed_in_order():
    node = RecordingNode("n")
    before = time.time()
    Node.receive_message(node, "a", "first")
    Node.receive_message(node, "b", "second")
    Node.process_message_queue(node)
    assert [(m.from_id, m.content) for m in node.processed] == [
        ("a", "first"),
        ("b", "second"),
    ]
    assert all(m.timestamp >= before for m in node.processed)


def test_queue_is_drained():
    node = RecordingNode("n")
    Node.receive_message(node, "a", "x")
    Node.process_message_queue(node)
    Node.process_message_queue(node)
    assert len(node.processed) == 1


def test_message_fields():
    msg = Message("a", "hello", 12.5)
    assert (msg.from_id, msg.content, msg.timestamp) == ("a", "hello", 12.5)


def test_start_runs_periodic_task_and_stop_ends():
    node = RecordingNode("n")
    Node.start(node)
    try:
        assert node.running is True
        assert wait_until(lambda: node.ticks > 0)
    finally:
        Node.stop(node)
    assert node.running is False
    ticks = node.ticks
    time.sleep(0.25)
    assert node.ticks == ticks


def test_running_thread_processes_messages():
    node = RecordingNode("n")
    with node:
        Node.receive_message(node, "peer", "ping")
        assert wait_until(lambda: len(node.processed) == 1)
    assert node.processed[0].content == "ping"
    assert node.running is False


def test_start_twice_raises():
    node = RecordingNode("n")
    Node.start(node)
    try:
        with pytest.raises(RuntimeError):
            Node.start(node)
    finally:
        Node.stop(node)
    assert node.running is False


def test_stop_without_start():
    node = RecordingNode("n")
    Node.stop(node)
    assert node.running is False
    assert node.ticks == 0


def test_restart_after_stop():
    node = RecordingNode("n")
    Node.start(node)
    Node.stop(node)
    Node.start(node)
    try:
        assert node.running is True
        assert wait_until(lambda: node.ticks >= 2)
    finally:
        Node.stop(node)