"""
multicache - Observability Module

Logging setup for the package.

Usage:
    from multicache.observability import configure_logging

    configure_logging("DEBUG", json_logs=True)
"""

from .logging import JSONFormatter, configure_logging, configure_logging_from_config

__all__ = [
    "JSONFormatter",
    "configure_logging",
    "configure_logging_from_config",
]
