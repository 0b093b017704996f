"""Telemetry and observability helpers.

This package emits deterministic phase logs for registration and synthesis.
"""

from .logger import RunLogger, configure_logging

__all__ = ["RunLogger", "configure_logging"]
