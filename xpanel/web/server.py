import logging
from typing import Optional

from starlette.applications import Starlette

from xpanel.local.service import SettingService
from xpanel.local.supervisor.registry import ServerRegistry
from xpanel.web.runner import ListenerSettings, ServerHandle
from xpanel.web.setup import create_app

log = logging.getLogger(__name__)


class PanelServer(ServerHandle):
    """The panel's management web server."""

    name = "web"

    def __init__(
        self,
        registry: Optional[ServerRegistry] = None,
        setting_service: Optional[SettingService] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.registry = registry
        self.setting_service = setting_service or SettingService()
        self.base_path = "/"

    def load_settings(self) -> ListenerSettings:
        service = self.setting_service
        self.base_path = service.get_base_path()
        return ListenerSettings(
            listen=service.get_listen(),
            port=service.get_port(),
            cert_file=service.get_cert_file(),
            key_file=service.get_key_file(),
        )

    def build_app(self) -> Starlette:
        return create_app(self.base_path, self.registry)
