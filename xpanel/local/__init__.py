"""
Local package for the xpanel application.

This package provides the bootstrap configuration, the panel database and its
services, the console commands and the server supervisor.
"""

from .config import effective_settings

__all__ = ["effective_settings"]
