"""
Observability module: structured logging for boundary calls.
"""

from uplink.observability.logging import (
    StructuredLogger,
    JsonFormatter,
    LogLevel,
    setup_logging,
    configure_from_env,
    current_context,
)

__all__ = [
    "StructuredLogger",
    "JsonFormatter",
    "LogLevel",
    "setup_logging",
    "configure_from_env",
    "current_context",
]
