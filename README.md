# faildetect

A small real-time simulator for failure detection in distributed systems. It
builds a simulated network of nodes, injects node failures, recoveries,
partitions and heavy traffic, and reports a detection time, an accuracy figure
and the number of messages sent for each scenario.

## Modules

- `faildetect.node`: `Node`, the abstract base of all nodes. Each node has an
  inbox of `Message` objects and a background thread that drains the inbox and
  runs `periodic_task()` every 100 ms. A node can be started and stopped with
  `start()` / `stop()` or used as a context manager.
- `faildetect.network`: `Network` routes messages between registered nodes.
  About 10% of messages are dropped. Every other message is delayed by a
  normally distributed time, with a mean of 50 ms and a standard deviation of
  10 ms, and is delivered by `process_messages()` once that time has passed.
  `stats()` returns a `NetworkStats` snapshot with the delivered and dropped
  counts and the total delay. `reset_stats()` zeroes it. The constructor
  accepts an optional `random.Random` for reproducible loss and delay.
- `faildetect.gossip_node`: `GossipNode` sends its view of the cluster to up
  to three random peers once a second. The view is encoded as
  `"id:alive:timestamp;"` entries. A peer that has been silent for more than a
  second gains suspicion each round, and at a suspicion level of three it is
  reported by `failed_nodes()`. Counters are available as `metrics`, a
  `GossipMetrics`.
- `faildetect.heartbeat_node`: `HeartbeatNode` is either a master or a
  worker. Workers send a heartbeat once a second. The master marks a node it
  has not heard from in three seconds as failed. Counters are available as
  `metrics`, a `HeartbeatMetrics`.
- `faildetect.simulator`: `Simulator` runs the scenarios. Each `run_*_test`
  method returns a `DetectionResult`. The module also provides
  `calculate_accuracy()`.
- `faildetect.cli`: the `faildetect` command.

## Installation

```
pip install .
```

## Command line

```
faildetect
faildetect --sizes 5 10
```

For each network size, the command runs these scenarios and prints the
detection time, the accuracy and the number of messages sent for each one:

- single node failure
- multiple failures (half of the nodes)
- network partition
- high load
- recovery

The default sizes are 5, 10, 20 and 50. `--sizes` accepts sizes from 2 to 100.
The simulation runs in real time, so a full run takes several minutes.

## Library use

```python
import random

from faildetect.network import Network
from faildetect.simulator import Simulator

with Simulator(Network(random.Random(42))) as sim:
    result = sim.run_single_node_failure_test(5)
    print(result.detection_time_ms, result.accuracy, result.messages_sent)
```

Leaving the `with` block stops and removes every node. The seed controls only
message loss and delay. The simulator picks the nodes to fail at random, with
its own unseeded generator.

`sim.run_all_tests(5)` runs every scenario, prints a report for each one and
returns the list of results. `sim.compare_algorithms(5)` returns two
single-failure results.

## Limitations

- Nodes do not send their gossip or heartbeats through the `Network`. Their
  `send_message()` only counts the message in the node's metrics. Traffic on
  the network comes only from what the simulator sends itself.
- `simulate_network_partition()` records the two groups. It does not stop
  messages from crossing between them.
- A failed node, one with `alive` set to false, keeps running its loop. The
  detectors do not read that flag.
- `DetectionResult.false_positives` and `false_negatives` are always 0, so the
  accuracy is always 1.0. In every scenario except the single node failure
  test, `detection_time_ms` is the mean delay of the messages on the network.
- `run_single_node_failure_test()` always sets up a gossip network of its own.
  Both results from `compare_algorithms()` therefore come from gossip nodes.

## Running the tests

```
pip install .[test]
pytest
```