"""
This module contains the bootstrap configuration settings for the xpanel application.
It defines paths, logging, supervisor timeouts and the defaults of every panel
setting persisted in the database.
Runtime panel settings (ports, paths, certificates, bot) live in the database;
only the values below can be changed through the environment or a `.env` file.
"""

import os
import pathlib
from dotenv import load_dotenv

from xpanel import __version__

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 't', 'yes', 'y')


#* --- Application Identity ---
NAME = "xpanel"
VERSION = __version__

#* --- Core Paths ---
DB_FOLDER = pathlib.Path(os.getenv("XPANEL_DB_FOLDER", "/etc/xpanel"))

#* --- Logging ---
# One of: debug, info, warn, warning, error
LOG_LEVEL = os.getenv("XPANEL_LOG_LEVEL", "info").lower()
DEBUG = _env_flag("XPANEL_DEBUG")

#* --- Supervisor Settings ---
SIGNAL_POLL_INTERVAL = 1.0       # seconds between checks of the signal queue
SERVER_START_TIMEOUT = float(os.getenv("XPANEL_SERVER_START_TIMEOUT", "10"))
SERVER_STOP_TIMEOUT = float(os.getenv("XPANEL_SERVER_STOP_TIMEOUT", "10"))
SERVER_GRACEFUL_TIMEOUT = 3      # seconds hypercorn waits for open requests on stop

#* --- CLI Helpers ---
PUBLIC_IP_URL = os.getenv("XPANEL_PUBLIC_IP_URL", "https://api.ipify.org?format=text")
PUBLIC_IP_TIMEOUT = 5

#* --- Default Panel Account (seeded on first database open) ---
DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = "admin"

#* --- Default Values for Persisted Settings ---
# The type of each default decides how the stored text value is parsed back.
DEFAULT_SETTINGS = {
    # Panel server
    "webListen": "",
    "webDomain": "",
    "webPort": 2053,
    "webCertFile": "",
    "webKeyFile": "",
    "webBasePath": "/",
    # Telegram bot
    "tgBotEnable": False,
    "tgBotToken": "",
    "tgBotChatId": "",
    "tgRunTime": "@daily",
    # Subscription server
    "subEnable": True,
    "subListen": "",
    "subPort": 2096,
    "subPath": "/sub/",
    "subDomain": "",
    "subCertFile": "",
    "subKeyFile": "",
    "subEncrypt": True,
}
