"""
Core utilities and configuration for latch-agent.

This package provides runtime settings and operational logging setup shared by
the agent core and the demo harness.
"""

from latch_agent.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
