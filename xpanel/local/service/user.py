import logging
from typing import NamedTuple, Optional

from xpanel.local.database import PanelDBManager, get_db

log = logging.getLogger(__name__)


class User(NamedTuple):
    id: int
    username: str
    password: str


class UserService:
    """Reads and updates the panel's login account."""

    def __init__(self, db: Optional[PanelDBManager] = None) -> None:
        self._db = db

    @property
    def db(self) -> PanelDBManager:
        return self._db or get_db()

    def get_first_user(self) -> User:
        """
        Returns the first (administrative) panel user.

        :raises LookupError: If the users table is empty.
        """
        row = self.db.get_first_user()
        if row is None:
            raise LookupError("no panel user found")
        return User(row["id"], row["username"], row["password"])

    def update_first_user(self, username: str, password: str) -> None:
        """
        Replaces the credentials of the first panel user.

        :raises ValueError: If the username or password is empty.
        """
        if not username:
            raise ValueError("username can not be empty")
        if not password:
            raise ValueError("password can not be empty")
        user = self.get_first_user()
        self.db.update_user(user.id, username, password)
        log.info(f"Panel user #{user.id} credentials updated.")
