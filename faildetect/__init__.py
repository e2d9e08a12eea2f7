"""Simulation of gossip and heartbeat failure detectors over a lossy, delayed network."""

__version__ = "0.1.0"
__all__ = ["node", "network", "gossip_node", "heartbeat_node", "simulator", "cli"]