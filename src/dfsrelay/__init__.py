"""Relay DFS slate uploads through a chain of remote agent jobs."""

__version__ = "0.1.0"
