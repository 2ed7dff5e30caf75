"""
Logging module for the application.
This module provides the console logging setup shared by the CLI and the servers.
"""

from .setup import setup_logging

__all__ = ["setup_logging"]
