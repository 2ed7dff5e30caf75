import sqlite3
import logging
from typing import Optional

import setproctitle

from xpanel.log.setup import setup_logging
from xpanel.local.config import ConfigError, effective_settings as config
from xpanel.local.database import init_db
from xpanel.local.supervisor.registry import ServerRegistry
from xpanel.local.supervisor.signals import SignalQueue
from xpanel.local.supervisor.supervisor import FatalServerError, Supervisor
from xpanel.sub import SubServer
from xpanel.web import PanelServer

log = logging.getLogger(__name__)


def build_supervisor(registry: Optional[ServerRegistry] = None, events: Optional[SignalQueue] = None) -> Supervisor:
    """
    Wires the supervisor to factories of the real servers.

    :param registry: The registry shared with the panel server; a new one if omitted.
    :param events: The signal queue to wait on; a new one if omitted.
    """
    registry = registry or ServerRegistry()
    return Supervisor(
        web_factory=lambda: PanelServer(registry=registry),
        sub_factory=SubServer,
        registry=registry,
        events=events or SignalQueue(),
        poll_interval=config.SIGNAL_POLL_INTERVAL,
    )


def run_panel() -> None:
    """
    Runs the panel until SIGTERM, rebuilding both servers on every SIGHUP.
    Any initialization or server start failure exits the process with status 1.
    """
    setproctitle.setproctitle(f"{config.NAME} - Supervisor")
    log.info(f"{config.NAME} {config.VERSION}")

    try:
        setup_logging(config.get_log_level())
    except ConfigError as e:
        log.critical(e)
        raise SystemExit(1)

    try:
        init_db(config.get_db_path())
    except (sqlite3.Error, OSError) as e:
        log.critical(f"Database initialization failed: {e}", exc_info=True)
        raise SystemExit(1)

    supervisor = build_supervisor()
    supervisor.events.register()
    try:
        supervisor.run()
    except FatalServerError as e:
        log.critical(f"Exiting: {e}")
        raise SystemExit(1)
    finally:
        supervisor.events.restore()
