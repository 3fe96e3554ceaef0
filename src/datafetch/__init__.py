"""datafetch: multi-source dataset fetch orchestrator."""

__version__ = "0.1.0"
