import socket
import sqlite3
import logging
import ipaddress
from typing import List, Optional, Tuple

import psutil
import requests

from xpanel.local.config import effective_settings as config
from xpanel.local.database import PanelDBManager, init_db
from xpanel.local.service import InboundService, SettingService, UserService

log = logging.getLogger(__name__)

# Errors a single settings read/update may report without aborting the command.
SERVICE_ERRORS = (sqlite3.Error, ValueError, LookupError)


def open_database() -> Optional[PanelDBManager]:
    """Opens the panel database, printing the error and returning None on failure."""
    try:
        return init_db(config.get_db_path())
    except (sqlite3.Error, OSError) as e:
        print("Database initialization failed:", e)
        return None


#* --- Settings ---
def reset_setting() -> None:
    db = open_database()
    if db is None:
        return
    try:
        SettingService(db).reset_settings()
    except SERVICE_ERRORS as e:
        print("reset setting failed:", e)
    else:
        print("reset setting success")


def show_setting() -> None:
    """Prints the panel credentials, port and base path."""
    db = open_database()
    if db is None:
        return
    setting_service = SettingService(db)

    port = None
    try:
        port = setting_service.get_port()
    except SERVICE_ERRORS as e:
        print("get current port failed, error info:", e)

    web_base_path = ""
    try:
        web_base_path = setting_service.get_base_path()
    except SERVICE_ERRORS as e:
        print("get webBasePath failed, error info:", e)

    username, password = "", ""
    try:
        user = UserService(db).get_first_user()
        username, password = user.username, user.password
    except SERVICE_ERRORS as e:
        print("get current user info failed, error info:", e)

    if not username or not password:
        print("current username or password is empty")

    print("current panel settings as follows:")
    print("username:", username)
    print("password:", password)
    print("port:", port)
    if web_base_path:
        print("webBasePath:", web_base_path)
    else:
        print("webBasePath is not set")


def update_setting(port: int = 0, username: str = "", password: str = "", web_base_path: str = "") -> None:
    """
    Updates each given field independently; a failure on one field does not
    prevent the others from being attempted.
    """
    db = open_database()
    if db is None:
        return
    setting_service = SettingService(db)

    if port > 0:
        try:
            setting_service.set_port(port)
        except SERVICE_ERRORS as e:
            print("Failed to set port:", e)
        else:
            print(f"Port set successfully: {port}")

    if username or password:
        try:
            UserService(db).update_first_user(username, password)
        except SERVICE_ERRORS as e:
            print("Failed to update username and password:", e)
        else:
            print("Username and password updated successfully")

    if web_base_path:
        try:
            setting_service.set_base_path(web_base_path)
        except SERVICE_ERRORS as e:
            print("Failed to set base URI path:", e)
        else:
            print("Base URI path set successfully")


def update_tgbot_setting(token: str = "", chat_id: str = "", runtime: str = "") -> None:
    db = open_database()
    if db is None:
        return
    setting_service = SettingService(db)

    updates = [
        ("tgBotToken", token, setting_service.set_tgbot_token),
        ("tgRunTime", runtime, setting_service.set_tgbot_runtime),
        ("tgBotChatId", chat_id, setting_service.set_tgbot_chat_id),
    ]
    for label, value, setter in updates:
        if not value:
            continue
        try:
            setter(value)
        except SERVICE_ERRORS as e:
            print(f"Failed to set {label}:", e)
        else:
            print(f"{label} set successfully")


def update_tgbot_enable(status: bool) -> None:
    db = open_database()
    if db is None:
        return
    setting_service = SettingService(db)
    try:
        current = setting_service.get_tgbot_enabled()
        log.info(f"current enabletgbot status[{current}], need update to status[{status}]")
        if current != status:
            setting_service.set_tgbot_enabled(status)
            log.info(f"SetTgbotenabled[{status}] success")
    except SERVICE_ERRORS as e:
        print("Failed to update enabletgbot:", e)


def update_cert(public_key: str, private_key: str) -> None:
    """
    Sets both certificate paths, or clears both when both are empty.
    Supplying only one of them changes nothing.
    """
    if bool(public_key) != bool(private_key):
        print("both public and private key should be entered.")
        return

    db = open_database()
    if db is None:
        return
    setting_service = SettingService(db)

    try:
        setting_service.set_cert_file(public_key)
    except SERVICE_ERRORS as e:
        print("set certificate public key failed:", e)
    else:
        print("set certificate public key success")

    try:
        setting_service.set_key_file(private_key)
    except SERVICE_ERRORS as e:
        print("set certificate private key failed:", e)
    else:
        print("set certificate private key success")


#* --- Panel URI ---
def uri_prefix(port: int, tls: bool) -> Tuple[str, str]:
    """
    Returns the scheme and the port suffix of a panel URI.
    The port is omitted when it is the scheme's default.
    """
    proto = "https://" if tls else "http://"
    if (port == 443 and tls) or (port == 80 and not tls):
        return proto, ""
    return proto, f":{port}"


def format_host(ip: str) -> str:
    return f"[{ip}]" if ":" in ip else ip


def local_addresses() -> List[str]:
    """
    Lists the addresses of every up, non-loopback interface.
    Link-local IPv6 addresses are skipped.
    """
    addresses = []
    stats = psutil.net_if_stats()
    for name, addrs in psutil.net_if_addrs().items():
        if name not in stats or not stats[name].isup:
            continue
        for addr in addrs:
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            ip = addr.address.split("%")[0]
            try:
                parsed = ipaddress.ip_address(ip)
            except ValueError:
                continue
            if parsed.is_loopback or parsed.is_link_local:
                continue
            addresses.append(ip)
    return addresses


def fetch_public_ip() -> Optional[str]:
    try:
        response = requests.get(config.PUBLIC_IP_URL, timeout=config.PUBLIC_IP_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        log.debug(f"Public IP lookup failed: {e}")
        return None
    return response.text.strip() or None


def get_panel_uri() -> None:
    """Prints the URI(s) the panel can be reached at."""
    db = open_database()
    if db is None:
        return
    setting_service = SettingService(db)

    try:
        port = setting_service.get_port()
        base_path = setting_service.get_base_path()
        listen = setting_service.get_listen()
        domain = setting_service.get_web_domain()
        tls = bool(setting_service.get_key_file() and setting_service.get_cert_file())
    except SERVICE_ERRORS as e:
        print("read panel settings failed:", e)
        return

    proto, port_text = uri_prefix(port, tls)

    if domain:
        print(f"{proto}{domain}{port_text}{base_path}")
        return
    if listen:
        print(f"{proto}{format_host(listen)}{port_text}{base_path}")
        return

    print("Local address:")
    for ip in local_addresses():
        print(f"{proto}{format_host(ip)}{port_text}{base_path}")

    public_ip = fetch_public_ip()
    if public_ip:
        print(f"\nGlobal address:\n{proto}{format_host(public_ip)}{port_text}{base_path}")


#* --- Migration ---
def migrate_db() -> None:
    db = open_database()
    if db is None:
        raise SystemExit(1)
    print("Start migrating database...")
    InboundService(db).migrate_db()
    print("Migration done!")
