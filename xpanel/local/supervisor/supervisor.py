import time
import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from xpanel.local.supervisor.registry import ServerRegistry
from xpanel.local.supervisor.signals import SignalEvent, SignalQueue

if TYPE_CHECKING:
    from xpanel.web.runner import ServerHandle

log = logging.getLogger(__name__)

ServerFactory = Callable[[], "ServerHandle"]


class SupervisorState(Enum):
    INIT = "init"
    RUNNING = "running"
    RELOADING = "reloading"
    TERMINATED = "terminated"


class FatalServerError(Exception):
    """A server could not be started; the supervisor has no way to recover."""

    def __init__(self, kind: str, cause: BaseException) -> None:
        super().__init__(f"{kind} server failed to start: {cause}")
        self.kind = kind
        self.cause = cause


class Supervisor:
    """
    Owns the panel and subscription servers for the lifetime of the process.

    The supervisor boots both servers, then waits on a `SignalQueue`:
    RELOAD stops both servers and builds fresh ones from their factories,
    TERMINATE (or any other event) stops both and ends the loop. A server that
    fails to start is fatal, both at boot and during a reload; a server that
    fails to stop is only logged.
    """

    def __init__(
        self,
        web_factory: ServerFactory,
        sub_factory: ServerFactory,
        registry: Optional[ServerRegistry] = None,
        events: Optional[SignalQueue] = None,
        poll_interval: float = 1.0,
    ) -> None:
        """
        :param web_factory: Builds a new, stopped panel server.
        :param sub_factory: Builds a new, stopped subscription server.
        :param registry: Where the active servers are published.
        :param events: The queue the loop waits on.
        :param poll_interval: Seconds between checks of an empty queue.
        """
        self.web_factory = web_factory
        self.sub_factory = sub_factory
        self.registry = registry or ServerRegistry()
        self.events = events or SignalQueue()
        self.poll_interval = poll_interval

        self.state = SupervisorState.INIT
        self.web_server: Optional["ServerHandle"] = None
        self.sub_server: Optional["ServerHandle"] = None
        self.reload_count = 0
        self.start_time: Optional[float] = None

    def _start_server(self, kind: str, factory: ServerFactory) -> "ServerHandle":
        """
        Builds and starts one server.

        :raises FatalServerError: If construction or start fails.
        """
        log.info(f"Starting {kind} server...")
        try:
            server = factory()
            server.start()
        except Exception as e:
            log.critical(f"Failed to start {kind} server: {e}", exc_info=True)
            raise FatalServerError(kind, e) from e
        log.info(f"{kind.capitalize()} server started.")
        return server

    def _stop_server(self, kind: str, server: Optional["ServerHandle"]) -> None:
        if server is None:
            return
        try:
            server.stop()
            log.info(f"{kind.capitalize()} server stopped.")
        except Exception as e:
            log.warning(f"Stop {kind} server error: {e}")

    def start(self) -> None:
        """
        Boots both servers and publishes them: INIT -> RUNNING.

        :raises FatalServerError: If either server fails to start. Nothing is
            stopped in that case; the caller is expected to exit.
        """
        if self.state is not SupervisorState.INIT:
            raise RuntimeError(f"Supervisor already started (state: {self.state.value}).")

        log.info("=" * 20 + " Servers Starting " + "=" * 20)
        self.start_time = time.time()
        self.web_server = self._start_server("web", self.web_factory)
        self.sub_server = self._start_server("sub", self.sub_factory)
        self.registry.set_web_server(self.web_server)
        self.registry.set_sub_server(self.sub_server)
        self.state = SupervisorState.RUNNING
        log.info(f"All servers started in {time.time() - self.start_time:.2f} seconds.")

    def _reload(self) -> None:
        self.state = SupervisorState.RELOADING
        self._stop_server("web", self.web_server)
        self._stop_server("sub", self.sub_server)
        self.web_server = None
        self.sub_server = None

        self.web_server = self._start_server("web", self.web_factory)
        self.registry.set_web_server(self.web_server)
        self.sub_server = self._start_server("sub", self.sub_factory)
        self.registry.set_sub_server(self.sub_server)

        self.reload_count += 1
        self.state = SupervisorState.RUNNING
        log.info(f"Servers reloaded (reload #{self.reload_count}).")

    def _shutdown(self) -> None:
        self._stop_server("web", self.web_server)
        self._stop_server("sub", self.sub_server)
        self.state = SupervisorState.TERMINATED
        if self.start_time:
            runtime = time.strftime('%H:%M:%S', time.gmtime(time.time() - self.start_time))
            log.info(f"Supervisor stopped. Total runtime: {runtime}")
        else:
            log.info("Supervisor stopped.")

    def transition(self, event: SignalEvent) -> SupervisorState:
        """
        Applies one event to a running supervisor.

        :param event: The event taken from the queue.
        :return: The state after the event has been fully processed.
        :raises FatalServerError: If a server fails to start during a reload.
        """
        if self.state is SupervisorState.TERMINATED:
            log.debug(f"Ignoring {event.value} event: supervisor already terminated.")
            return self.state
        if self.state is not SupervisorState.RUNNING:
            raise RuntimeError(f"Cannot handle {event.value} event in state {self.state.value}.")

        if event is SignalEvent.RELOAD:
            log.info("Reload signal received. Restarting servers...")
            self._reload()
        else:
            log.info(f"Received {event.value} signal. Shutting down servers...")
            self._shutdown()
        return self.state

    def run(self) -> None:
        """Boots the servers, then processes events until terminated."""
        self.start()
        while self.state is not SupervisorState.TERMINATED:
            try:
                event = self.events.get(timeout=self.poll_interval)
            except KeyboardInterrupt:
                log.info("Supervisor loop interrupted by user.")
                event = SignalEvent.OTHER
            if event is None:
                continue
            self.transition(event)
