"""
Tests for the panel (web/setup.py) and subscription (sub/server.py) applications.
"""

import json
import base64

import pytest
from starlette.testclient import TestClient

from tests.conftest import FakeServer
from xpanel import __version__
from xpanel.local.service import InboundService
from xpanel.local.supervisor import ServerRegistry
from xpanel.sub import create_sub_app
from xpanel.web.setup import create_app


# =============================================================================
# Panel Application
# =============================================================================


@pytest.mark.unit
class TestPanelApp:

    def test_index_under_base_path(self):
        client = TestClient(create_app("/panel/", ServerRegistry()))

        response = client.get("/panel/")

        assert response.status_code == 200
        assert "Subscription server: not running" in response.text

    def test_outside_base_path_is_404(self):
        client = TestClient(create_app("/panel/", ServerRegistry()))

        assert client.get("/other/").status_code == 404

    def test_status_reports_published_sub_server(self):
        registry = ServerRegistry()
        sub = FakeServer("sub", 0, [])
        sub.start()
        registry.set_sub_server(sub)
        client = TestClient(create_app("/", registry))

        status = client.get("/server/status").json()

        assert status["version"] == __version__
        assert status["subServer"] == {"running": True, "port": 2000}

    def test_status_follows_registry_updates(self):
        registry = ServerRegistry()
        client = TestClient(create_app("/", registry))
        assert client.get("/server/status").json()["subServer"]["running"] is False

        replacement = FakeServer("sub", 1, [])
        replacement.start()
        registry.set_sub_server(replacement)

        assert client.get("/server/status").json()["subServer"]["port"] == 2001

    def test_security_headers(self):
        client = TestClient(create_app("/", ServerRegistry()))

        response = client.get("/")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "Strict-Transport-Security" not in response.headers


# =============================================================================
# Subscription Application
# =============================================================================


@pytest.fixture
def sub_db(db):
    clients = [{"id": "u1", "email": "a@x", "subId": "abc", "enable": True}]
    db.add_inbound("main", "vless", 443, json.dumps({"clients": clients}))
    return db


@pytest.mark.unit
class TestSubApp:

    def test_plain_links(self, sub_db):
        app = create_sub_app("/sub/", encrypt=False, inbound_service=InboundService(sub_db))

        response = TestClient(app).get("/sub/abc")

        assert response.status_code == 200
        assert response.text == "vless://u1@testserver:443?type=tcp&security=none#main-a%40x"

    def test_encrypted_links(self, sub_db):
        app = create_sub_app("/sub/", encrypt=True, inbound_service=InboundService(sub_db))

        response = TestClient(app).get("/sub/abc")

        assert base64.b64decode(response.text).decode().startswith("vless://u1@testserver:443")

    def test_configured_domain_is_used(self, sub_db):
        app = create_sub_app("/s/", encrypt=False, domain="sub.example.com",
                             inbound_service=InboundService(sub_db))

        assert "@sub.example.com:443" in TestClient(app).get("/s/abc").text

    def test_unknown_subscription_is_404(self, sub_db):
        app = create_sub_app("/sub/", inbound_service=InboundService(sub_db))

        assert TestClient(app).get("/sub/nope").status_code == 404

    def test_malformed_inbound_does_not_break_other_links(self, sub_db):
        sub_db.add_inbound("broken", "vless", 8443, json.dumps({"clients": ["x"]}))
        app = create_sub_app("/sub/", encrypt=False, inbound_service=InboundService(sub_db))

        response = TestClient(app).get("/sub/abc")

        assert response.status_code == 200
        assert response.text.startswith("vless://u1@testserver:443")
