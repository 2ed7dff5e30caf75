"""
The Supervisor package.
Manages the lifecycle of the panel and subscription servers.

This package contains the central Supervisor class and its helper modules,
which together handle signal delivery, starting, reloading and stopping the
servers, and publishing the active servers to the rest of the process.
"""
from .registry import ServerRegistry
from .signals import SignalEvent, SignalQueue
from .supervisor import FatalServerError, Supervisor, SupervisorState

__all__ = ['FatalServerError', 'ServerRegistry', 'SignalEvent', 'SignalQueue', 'Supervisor', 'SupervisorState']
