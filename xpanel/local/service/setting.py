import logging
from typing import Any, Optional

import xpanel.settings as default_settings
from xpanel.local.database import PanelDBManager, get_db

log = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Ensures a URL path starts and ends with a single '/'."""
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path += "/"
    return path


class SettingService:
    """
    Typed access to the panel settings persisted in the database.

    Values are stored as text; the type of each entry in
    `settings.DEFAULT_SETTINGS` decides how a stored value is parsed back.
    Unset keys return their default.
    """

    def __init__(self, db: Optional[PanelDBManager] = None) -> None:
        self._db = db

    @property
    def db(self) -> PanelDBManager:
        return self._db or get_db()

    def _get(self, key: str) -> Any:
        default = default_settings.DEFAULT_SETTINGS[key]
        stored = self.db.get_setting(key)
        if stored is None:
            return default
        if isinstance(default, bool):
            return stored.lower() in ('true', '1', 't', 'yes', 'y')
        if isinstance(default, int):
            return int(stored)
        return stored

    def _set(self, key: str, value: Any) -> None:
        if key not in default_settings.DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting '{key}'")
        if isinstance(value, bool):
            value = "true" if value else "false"
        self.db.set_setting(key, str(value))
        log.debug(f"Setting '{key}' updated.")

    def reset_settings(self) -> None:
        self.db.delete_all_settings()
        log.info("All panel settings reset to defaults.")

    #* --- Panel Server ---
    def get_port(self) -> int:
        return self._get("webPort")

    def set_port(self, port: int) -> None:
        if not 0 < port < 65536:
            raise ValueError(f"port {port} is out of range 1-65535")
        self._set("webPort", port)

    def get_listen(self) -> str:
        return self._get("webListen")

    def get_web_domain(self) -> str:
        return self._get("webDomain")

    def get_base_path(self) -> str:
        return normalize_path(self._get("webBasePath"))

    def set_base_path(self, base_path: str) -> None:
        self._set("webBasePath", normalize_path(base_path))

    def get_cert_file(self) -> str:
        return self._get("webCertFile")

    def set_cert_file(self, cert_file: str) -> None:
        self._set("webCertFile", cert_file)

    def get_key_file(self) -> str:
        return self._get("webKeyFile")

    def set_key_file(self, key_file: str) -> None:
        self._set("webKeyFile", key_file)

    #* --- Telegram Bot ---
    def get_tgbot_enabled(self) -> bool:
        return self._get("tgBotEnable")

    def set_tgbot_enabled(self, enabled: bool) -> None:
        self._set("tgBotEnable", enabled)

    def get_tgbot_token(self) -> str:
        return self._get("tgBotToken")

    def set_tgbot_token(self, token: str) -> None:
        self._set("tgBotToken", token)

    def get_tgbot_chat_id(self) -> str:
        return self._get("tgBotChatId")

    def set_tgbot_chat_id(self, chat_id: str) -> None:
        self._set("tgBotChatId", chat_id)

    def get_tgbot_runtime(self) -> str:
        return self._get("tgRunTime")

    def set_tgbot_runtime(self, runtime: str) -> None:
        self._set("tgRunTime", runtime)

    #* --- Subscription Server ---
    def get_sub_enable(self) -> bool:
        return self._get("subEnable")

    def get_sub_listen(self) -> str:
        return self._get("subListen")

    def get_sub_port(self) -> int:
        return self._get("subPort")

    def get_sub_path(self) -> str:
        return normalize_path(self._get("subPath"))

    def get_sub_domain(self) -> str:
        return self._get("subDomain")

    def get_sub_cert_file(self) -> str:
        return self._get("subCertFile")

    def get_sub_key_file(self) -> str:
        return self._get("subKeyFile")

    def get_sub_encrypt(self) -> bool:
        return self._get("subEncrypt")
