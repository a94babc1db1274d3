"""Observability helpers shared across packages."""

from .logging import get_logger, resolve_log_level, setup_logging

__all__ = ["get_logger", "resolve_log_level", "setup_logging"]
