import base64
import logging
from typing import Optional

from starlette.routing import Route
from starlette.requests import Request
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse, Response

from xpanel.local.config import effective_settings as config
from xpanel.local.service import InboundService, SettingService
from xpanel.web.runner import ListenerSettings, ServerHandle

log = logging.getLogger(__name__)


def create_sub_app(
    sub_path: str = "/sub/",
    encrypt: bool = True,
    domain: str = "",
    inbound_service: Optional[InboundService] = None,
) -> Starlette:
    """
    Creates the subscription ASGI application.

    :param sub_path: URL prefix before the subscription id, with leading and trailing '/'.
    :param encrypt: Whether to base64-encode the link list.
    :param domain: Address put into links; defaults to the host the client requested.
    :param inbound_service: Source of the share links.
    """
    inbounds = inbound_service or InboundService()

    async def subscription_handler(request: Request) -> Response:
        sub_id = request.path_params["sub_id"]
        host = domain or request.url.hostname or "localhost"
        links = inbounds.get_sub_links(sub_id, host)
        if not links:
            log.debug(f"No clients for subscription '{sub_id}'.")
            return PlainTextResponse("Subscription not found", status_code=404)

        body = "\n".join(links)
        if encrypt:
            body = base64.b64encode(body.encode("utf-8")).decode("ascii")
        headers = {"Subscription-Userinfo": "upload=0; download=0; total=0",
                   "Profile-Title": config.NAME}
        return PlainTextResponse(body, headers=headers)

    routes = [Route(f"{sub_path}{{sub_id}}", endpoint=subscription_handler, methods=["GET"])]
    return Starlette(debug=config.DEBUG, routes=routes)


class SubServer(ServerHandle):
    """The subscription delivery server."""

    name = "sub"

    def __init__(
        self,
        setting_service: Optional[SettingService] = None,
        inbound_service: Optional[InboundService] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.setting_service = setting_service or SettingService()
        self.inbound_service = inbound_service or InboundService()

    def load_settings(self) -> ListenerSettings:
        service = self.setting_service
        return ListenerSettings(
            listen=service.get_sub_listen(),
            port=service.get_sub_port(),
            cert_file=service.get_sub_cert_file(),
            key_file=service.get_sub_key_file(),
            enabled=service.get_sub_enable(),
        )

    def build_app(self) -> Starlette:
        service = self.setting_service
        return create_sub_app(
            sub_path=service.get_sub_path(),
            encrypt=service.get_sub_encrypt(),
            domain=service.get_sub_domain(),
            inbound_service=self.inbound_service,
        )
