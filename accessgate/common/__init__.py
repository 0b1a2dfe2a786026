"""Common utilities for accessgate."""

from .logger import configure_from_settings, reset_logger, setup_logger

__all__ = ["configure_from_settings", "reset_logger", "setup_logger"]
