"""Logging utilities for tempest-live."""

from tempest_live.logging.config import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "setup_logging"]
