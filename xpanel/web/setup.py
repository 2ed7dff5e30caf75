import time
import logging
from html import escape
from typing import Any, Dict, Optional

import psutil
from starlette.routing import Mount, Route
from starlette.requests import Request
from starlette.middleware import Middleware
from starlette.applications import Starlette
from starlette.responses import HTMLResponse, JSONResponse

from xpanel.local.config import effective_settings as config
from xpanel.local.supervisor.registry import ServerRegistry
from xpanel.web.middleware import SecurityHeadersMiddleware

log = logging.getLogger(__name__)


def _server_info(server: Any) -> Dict[str, Any]:
    if server is None:
        return {"running": False, "port": None}
    return {"running": server.running, "port": server.port}


def collect_status(registry: Optional[ServerRegistry], started_at: float) -> Dict[str, Any]:
    """Builds the payload of the panel's status endpoint."""
    memory = psutil.virtual_memory()
    return {
        "name": config.NAME,
        "version": config.VERSION,
        "uptime": int(time.time() - started_at),
        "cpu": psutil.cpu_percent(interval=None),
        "memory": {"total": memory.total, "used": memory.used, "percent": memory.percent},
        "subServer": _server_info(registry.get_sub_server() if registry else None),
    }


async def index_handler(request: Request) -> HTMLResponse:
    status = collect_status(request.app.state.registry, request.app.state.started_at)
    sub = status["subServer"]
    sub_text = f"running on port {sub['port']}" if sub["running"] else "not running"
    body = (
        f"<html><head><title>{escape(config.NAME)}</title></head><body>"
        f"<h1>{escape(config.NAME)} {escape(config.VERSION)}</h1>"
        f"<p>Uptime: {status['uptime']}s | CPU: {status['cpu']:.1f}% | "
        f"Memory: {status['memory']['percent']:.1f}%</p>"
        f"<p>Subscription server: {sub_text}</p>"
        "</body></html>"
    )
    return HTMLResponse(body)


async def status_handler(request: Request) -> JSONResponse:
    return JSONResponse(collect_status(request.app.state.registry, request.app.state.started_at))


def create_app(base_path: str = "/", registry: Optional[ServerRegistry] = None) -> Starlette:
    """
    Creates the panel ASGI application mounted under `base_path`.

    :param base_path: URL prefix of every panel route, with leading and trailing '/'.
    :param registry: The registry the status endpoint reads the subscription server from.
    """
    routes = [
        Route("/", endpoint=index_handler, methods=["GET"]),
        Route("/server/status", endpoint=status_handler, methods=["GET"]),
    ]
    app = Starlette(
        debug=config.DEBUG,
        routes=[Mount(base_path.rstrip("/"), routes=routes)],
        middleware=[Middleware(SecurityHeadersMiddleware)],
    )
    app.state.registry = registry
    app.state.started_at = time.time()
    log.debug(f"Panel application created with base path '{base_path}'.")
    return app
