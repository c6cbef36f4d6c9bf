"""Logging package."""

from pocket_ledger.logs.logger import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
