"""Command line entry point that runs every scenario for several network sizes."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from faildetect.simulator import MAX_NODES, DetectionResult, Simulator

DEFAULT_SIZES = (5, 10, 20, 50)


def format_result(title: str, result: DetectionResult) -> str:
    """Render one scenario's result as a short report block."""
    return (
        f"{title}:\n"
        f"Detection Time: {result.detection_time_ms:g}ms\n"
        f"Accuracy: {result.accuracy * 100:g}%\n"
        f"Messages Sent: {result.messages_sent}\n"
    )


def _network_size(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if not 2 <= value <= MAX_NODES:
        raise argparse.ArgumentTypeError(
            f"network size must be between 2 and {MAX_NODES}"
        )
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faildetect",
        description="Compare failure detection scenarios on simulated networks.",
    )
    parser.add_argument(
        "--sizes",
        type=_network_size,
        nargs="+",
        default=list(DEFAULT_SIZES),
        help="network sizes to test (default: %(default)s)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run all scenarios for each requested network size and print the results."""
    args = _parser().parse_args(argv)
    with Simulator() as simulator:
        for size in args.sizes:
            sys.stdout.write(f"\n=== Testing with {size} nodes ===\n")
            sections = [
                ("Single Node Failure Test", simulator.run_single_node_failure_test(size)),
                ("Multiple Failures Test", simulator.run_multiple_failures_test(size, size // 2)),
                ("Network Partition Test", simulator.run_network_partition_test(size)),
                ("High Load Test", simulator.run_high_load_test(size)),
                ("Recovery Test", simulator.run_recovery_test(size)),
            ]
            sys.stdout.write(
                "\n" + "\n".join(format_result(title, r) for title, r in sections)
            )
            sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())