"""Multi-channel notification delivery orchestrator."""

__version__ = "1.0.0"
