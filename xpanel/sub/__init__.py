"""
Subscription server package: serves each client's share links by subscription id.
"""

from .server import SubServer, create_sub_app

__all__ = ["SubServer", "create_sub_app"]
