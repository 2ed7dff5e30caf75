"""
Web application package for xpanel.

This package contains the panel web server, the threaded hypercorn runner
shared with the subscription server, and the panel's middleware.
"""

from .runner import ListenerSettings, ServerHandle, ServerStopError
from .server import PanelServer

__all__ = ["ListenerSettings", "PanelServer", "ServerHandle", "ServerStopError"]
