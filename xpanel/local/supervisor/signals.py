import queue
import signal
import logging
from enum import Enum
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)


class SignalEvent(Enum):
    """What the supervisor is asked to do by an incoming signal."""
    RELOAD = "reload"
    TERMINATE = "terminate"
    OTHER = "other"

    @classmethod
    def from_signal(cls, signum: int) -> "SignalEvent":
        if signum == getattr(signal, "SIGHUP", None):
            return cls.RELOAD
        if signum == signal.SIGTERM:
            return cls.TERMINATE
        return cls.OTHER


def supervised_signals() -> tuple:
    """The signals the supervisor listens to on this platform."""
    if hasattr(signal, "SIGHUP"):
        return (signal.SIGHUP, signal.SIGTERM)
    return (signal.SIGTERM,)


class SignalQueue:
    """
    Queue of `SignalEvent`s fed by OS signal handlers or by `put`.

    Handlers only enqueue; `queue.SimpleQueue.put` is reentrant, so it is safe
    to call from a handler that interrupts a `get` on the same thread.
    """

    def __init__(self) -> None:
        self._events: "queue.SimpleQueue[SignalEvent]" = queue.SimpleQueue()
        self._previous: Dict[int, Any] = {}

    def register(self) -> None:
        """
        Installs handlers for the reload and terminate signals.
        Must be called from the main thread.
        """
        for signum in supervised_signals():
            self._previous[signum] = signal.signal(signum, self._handle)
            log.debug(f"Handler installed for {signal.Signals(signum).name}.")

    def restore(self) -> None:
        """Reinstates the handlers that were active before `register`."""
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def _handle(self, signum: int, frame: Any) -> None:
        self.put(SignalEvent.from_signal(signum))

    def put(self, event: SignalEvent) -> None:
        self._events.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[SignalEvent]:
        """
        Waits for the next event.

        :param timeout: Seconds to wait, or None to wait indefinitely.
        :return: The next event, or None if the timeout expired.
        """
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None
