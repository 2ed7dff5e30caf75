import time
import socket
import asyncio
import logging
import threading
from typing import Any, NamedTuple, Optional

from hypercorn.asyncio import serve
from hypercorn.config import Config

from xpanel.local.config import effective_settings as config

log = logging.getLogger(__name__)


class ServerStopError(Exception):
    """Raised when a server's serving thread does not exit in time."""


class ListenerSettings(NamedTuple):
    listen: str
    port: int
    cert_file: str = ""
    key_file: str = ""
    enabled: bool = True


def bind_listener(listen: str, port: int) -> socket.socket:
    """
    Creates a listening TCP socket.

    An empty `listen` binds every interface, IPv6 included when the platform
    supports dual-stack sockets.

    :raises OSError: If the address cannot be bound (e.g. port in use).
    """
    if not listen:
        if socket.has_dualstack_ipv6():
            return socket.create_server(("", port), family=socket.AF_INET6, dualstack_ipv6=True)
        return socket.create_server(("", port))
    family = socket.AF_INET6 if ":" in listen else socket.AF_INET
    return socket.create_server((listen, port), family=family)


class ServerHandle:
    """
    A startable/stoppable ASGI server run by hypercorn on a dedicated thread.

    Subclasses provide `load_settings` and `build_app`; both are called on
    every `start`, so a new handle always serves freshly read settings.
    A handle is started at most once.
    """

    name = "server"

    def __init__(self, start_timeout: Optional[float] = None, stop_timeout: Optional[float] = None) -> None:
        self.start_timeout = start_timeout if start_timeout is not None else config.SERVER_START_TIMEOUT
        self.stop_timeout = stop_timeout if stop_timeout is not None else config.SERVER_STOP_TIMEOUT

        self.settings: Optional[ListenerSettings] = None
        self.port: Optional[int] = None
        self.started_at: Optional[float] = None

        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._error: Optional[BaseException] = None

    #* --- Subclass Hooks ---
    def load_settings(self) -> ListenerSettings:
        raise NotImplementedError

    def build_app(self) -> Any:
        raise NotImplementedError

    #* --- State ---
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def tls(self) -> bool:
        return bool(self.settings and self.settings.cert_file and self.settings.key_file)

    def _build_config(self, settings: ListenerSettings) -> Config:
        hc_config = Config()
        hc_config.graceful_timeout = config.SERVER_GRACEFUL_TIMEOUT
        hc_config.accesslog = logging.getLogger(f"xpanel.{self.name}.access")
        hc_config.errorlog = logging.getLogger(f"xpanel.{self.name}.error")
        if settings.cert_file and settings.key_file:
            hc_config.certfile = settings.cert_file
            hc_config.keyfile = settings.key_file
            # Loads the certificate chain now so bad TLS material fails start().
            hc_config.create_ssl_context()
        return hc_config

    #* --- Lifecycle ---
    def start(self) -> None:
        """
        Binds the listener and starts serving.
        Returns once hypercorn is accepting connections on the listener.

        :raises OSError: If the listener cannot be bound or TLS files cannot be read.
        :raises TimeoutError: If the serving loop does not come up in time.
        :raises RuntimeError: If the handle was already started or serving ended during startup.
        """
        if self._thread is not None:
            raise RuntimeError(f"{self.name} server was already started.")

        self.settings = self.load_settings()
        if not self.settings.enabled:
            log.info(f"{self.name.capitalize()} server is disabled in settings. Not listening.")
            return

        sock = bind_listener(self.settings.listen, self.settings.port)
        try:
            hc_config = self._build_config(self.settings)
            app = self.build_app()
        except Exception:
            sock.close()
            raise

        self.port = sock.getsockname()[1]
        # hypercorn takes ownership of the descriptor and closes it on shutdown.
        hc_config.bind = [f"fd://{sock.detach()}"]

        self._ready.clear()
        self._thread = threading.Thread(
            target=self._run, args=(hc_config, app), daemon=True, name=f"{self.name.capitalize()}ServerThread"
        )
        self._thread.start()

        if not self._ready.wait(self.start_timeout):
            self._request_shutdown()
            raise TimeoutError(f"{self.name} server loop did not start within {self.start_timeout}s.")
        if self._error is not None:
            raise self._error
        if not self.running:
            raise RuntimeError(f"{self.name} server exited during startup.")

        self.started_at = time.time()
        scheme = "https" if self.tls else "http"
        log.info(f"{self.name.capitalize()} server listening on {scheme}://{self.settings.listen or '*'}:{self.port}")

    def _run(self, hc_config: Config, app: Any) -> None:
        """Target of the serving thread."""
        try:
            asyncio.run(self._serve(hc_config, app))
        except Exception as e:
            self._error = e
            log.error(f"{self.name.capitalize()} server exited with an error: {e}", exc_info=True)
        finally:
            self._ready.set()

    async def _serve(self, hc_config: Config, app: Any) -> None:
        self._loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()
        await serve(app, hc_config, shutdown_trigger=self._wait_for_shutdown)

    async def _wait_for_shutdown(self) -> None:
        # hypercorn awaits the trigger only once every listener is accepting.
        self._ready.set()
        await self._shutdown_event.wait()

    def _request_shutdown(self) -> None:
        if self._loop is None or self._shutdown_event is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._shutdown_event.set)
        except RuntimeError:
            # The loop already closed.
            pass

    def stop(self) -> None:
        """
        Asks the serving loop to shut down and waits for the thread to exit.

        :raises ServerStopError: If the thread is still alive after the stop timeout.
        """
        if not self.running:
            log.debug(f"{self.name.capitalize()} server is not running. Nothing to stop.")
            return

        self._request_shutdown()
        self._thread.join(self.stop_timeout)
        if self._thread.is_alive():
            raise ServerStopError(f"{self.name} server did not stop within {self.stop_timeout}s.")
        log.debug(f"{self.name.capitalize()} server thread joined.")
