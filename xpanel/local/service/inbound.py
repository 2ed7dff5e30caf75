import json
import base64
import string
import secrets
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from xpanel.local.database import PanelDBManager, get_db
from xpanel.local.database.panel import INBOUND_COLUMNS

log = logging.getLogger(__name__)

SUB_ID_LENGTH = 16
_SUB_ID_ALPHABET = string.ascii_lowercase + string.digits


def random_sub_id(length: int = SUB_ID_LENGTH) -> str:
    return "".join(secrets.choice(_SUB_ID_ALPHABET) for _ in range(length))


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class InboundService:
    """Inbound queries used by the subscription server, and the one-shot migration."""

    def __init__(self, db: Optional[PanelDBManager] = None) -> None:
        self._db = db

    @property
    def db(self) -> PanelDBManager:
        return self._db or get_db()

    @staticmethod
    def _load_settings(inbound: Any) -> Optional[Dict[str, Any]]:
        """Decodes an inbound's settings column, or returns None if it is not a JSON object."""
        try:
            settings = json.loads(inbound["settings"] or "{}")
        except json.JSONDecodeError:
            log.warning(f"Inbound #{inbound['id']} has malformed settings JSON.")
            return None
        if not isinstance(settings, dict):
            log.warning(f"Inbound #{inbound['id']} settings are not a JSON object.")
            return None
        return settings

    @classmethod
    def get_clients(cls, inbound: Any) -> List[Dict[str, Any]]:
        """Returns the client objects stored in an inbound's JSON settings."""
        settings = cls._load_settings(inbound)
        if settings is None:
            return []
        clients = settings.get("clients", [])
        if not isinstance(clients, list):
            return []
        return [client for client in clients if isinstance(client, dict)]

    #* --- Migration ---
    def _add_missing_columns(self) -> None:
        existing = set(self.db.get_inbound_columns())
        for column, definition in INBOUND_COLUMNS.items():
            if column not in existing:
                log.info(f"Adding missing inbounds column '{column}'.")
                self.db.execute(f"ALTER TABLE inbounds ADD COLUMN {column} {definition}")

    def _fix_clients(self) -> None:
        known_emails = set(self.db.get_traffic_emails())
        for inbound in self.db.get_inbounds():
            settings = self._load_settings(inbound)
            if settings is None:
                continue

            clients = settings.get("clients")
            if not isinstance(clients, list):
                continue

            changed = False
            for client in clients:
                if not isinstance(client, dict):
                    continue
                if not client.get("subId"):
                    client["subId"] = random_sub_id()
                    changed = True
                if "enable" not in client:
                    client["enable"] = True
                    changed = True
                email = client.get("email")
                if email and email not in known_emails:
                    self.db.add_client_traffic(inbound["id"], email, client["enable"])
                    known_emails.add(email)

            if changed:
                self.db.update_inbound_settings(inbound["id"], json.dumps(settings))
                log.info(f"Inbound #{inbound['id']}: client fields migrated.")

    def migrate_db(self) -> None:
        """
        Brings a database written by an older release up to date.
        Safe to run repeatedly.
        """
        self._add_missing_columns()
        self._fix_clients()
        removed = self.db.delete_orphaned_traffics()
        if removed:
            log.info(f"Removed {removed} orphaned client traffic rows.")

    #* --- Subscription ---
    def get_sub_links(self, sub_id: str, host: str) -> List[str]:
        """
        Builds the share links of every enabled client with the given subId.

        :param sub_id: The subscription id requested by the client.
        :param host: The address clients should connect to.
        :return: One link per matching client, in inbound order.
        """
        links = []
        for inbound in self.db.get_inbounds(enabled_only=True):
            for client in self.get_clients(inbound):
                if client.get("subId") != sub_id or not client.get("enable", True):
                    continue
                link = self._build_link(inbound, client, inbound["listen"] or host)
                if link:
                    links.append(link)
        return links

    @staticmethod
    def _build_link(inbound: Any, client: Dict[str, Any], address: str) -> Optional[str]:
        protocol = inbound["protocol"]
        port = inbound["port"]
        remark = f"{inbound['remark']}-{client.get('email', '')}"
        fragment = quote(remark)

        if protocol == "vless":
            return f"vless://{client.get('id', '')}@{address}:{port}?type=tcp&security=none#{fragment}"
        if protocol == "trojan":
            return f"trojan://{client.get('password', '')}@{address}:{port}#{fragment}"
        if protocol == "vmess":
            payload = {"v": "2", "ps": remark, "add": address, "port": port,
                       "id": client.get("id", ""), "net": "tcp", "type": "none"}
            return "vmess://" + _b64(json.dumps(payload, separators=(",", ":")))
        if protocol == "shadowsocks":
            user_info = _b64(f"{client.get('method', 'chacha20-ietf-poly1305')}:{client.get('password', '')}")
            return f"ss://{user_info}@{address}:{port}#{fragment}"

        log.debug(f"No share link format for protocol '{protocol}'.")
        return None
