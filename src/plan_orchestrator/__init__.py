"""Deployment plan orchestrator: streamed AI change analysis, policy gating and step execution."""

__version__ = "0.1.0"
