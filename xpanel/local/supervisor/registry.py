import threading
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from xpanel.web.runner import ServerHandle


class ServerRegistry:
    """
    Holds the currently active panel and subscription server handles.

    Only the supervisor writes it; any component may read it. During a reload
    a reader may still get the handle that is being stopped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._web_server: Optional["ServerHandle"] = None
        self._sub_server: Optional["ServerHandle"] = None

    def set_web_server(self, server: "ServerHandle") -> None:
        with self._lock:
            self._web_server = server

    def get_web_server(self) -> Optional["ServerHandle"]:
        with self._lock:
            return self._web_server

    def set_sub_server(self, server: "ServerHandle") -> None:
        with self._lock:
            self._sub_server = server

    def get_sub_server(self) -> Optional["ServerHandle"]:
        with self._lock:
            return self._sub_server
