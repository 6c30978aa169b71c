"""Monitoring package for logging and observability."""

from dirsync_api.monitoring.logger import configure_logger
from dirsync_api.monitoring.logger import log_response_info

__all__ = [
    "configure_logger",
    "log_response_info",
]
