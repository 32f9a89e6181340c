"""Utility functions."""

from ionchannel.utils.log import setup_logger

__all__ = ["setup_logger"]
