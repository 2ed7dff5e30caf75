"""
Services operating on the panel database.
Each service reads the database opened by `init_db` unless one is passed in.
"""

from .setting import SettingService
from .user import User, UserService
from .inbound import InboundService

__all__ = ["SettingService", "User", "UserService", "InboundService"]
