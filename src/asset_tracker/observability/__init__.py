"""
asset_tracker.observability

Logging configuration and request-scoped log context for the auth service.
"""

from asset_tracker.observability.logging import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
