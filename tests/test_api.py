import pytest
from fastapi.testclient import TestClient

from fixcnchar.api.dependencies import get_config_source
from fixcnchar.config import Settings
from fixcnchar.core.config_source import SettingsConfigSource, StaticConfigSource
from fixcnchar.main import app


@pytest.fixture
def source():
    return SettingsConfigSource(Settings(rules={'，': ',', '。': '.'}))


@pytest.fixture
def client(source):
    app.dependency_overrides[get_config_source] = lambda: source
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_root(client):
    data = client.get("/").json()
    assert data["name"] == "fixcnchar"
    assert data["docs"] == "/docs"


class TestRewriteRoutes:
    def test_selection(self, client):
        resp = client.post("/api/v1/rewrite/selection", json={"text": "你好，世界。"})
        assert resp.status_code == 200
        assert resp.json() == {"text": "你好,世界.", "changed": True, "replacements": 2}

    def test_document_unchanged(self, client):
        resp = client.post("/api/v1/rewrite/document", json={"text": "hello"})
        assert resp.json() == {"text": "hello", "changed": False, "replacements": 0}

    def test_request_rules_override_config(self, client):
        resp = client.post("/api/v1/rewrite/document", json={"text": "一，二。", "rules": {"，": ";"}})
        assert resp.json()["text"] == "一;二。"

    def test_uses_updated_config(self, client, source):
        source.update(rules={'，': '!'})
        resp = client.post("/api/v1/rewrite/document", json={"text": "一，二"})
        assert resp.json()["text"] == "一!二"

    def test_missing_text(self, client):
        resp = client.post("/api/v1/rewrite/document", json={})
        assert resp.status_code == 422


class TestRulesRoutes:
    def test_get(self, client):
        data = client.get("/api/v1/rules").json()
        assert data == {"rules": {'，': ',', '。': '.'}, "enable_realtime": True, "rules_file": None}

    def test_put(self, client, source):
        resp = client.put("/api/v1/rules", json={"rules": {"？": "?"}, "enable_realtime": False})
        assert resp.status_code == 200
        assert resp.json()["rules"] == {"？": "?"}
        assert resp.json()["enable_realtime"] is False
        assert not source.is_realtime_enabled()

    def test_put_partial(self, client, source):
        client.put("/api/v1/rules", json={"enable_realtime": False})
        assert source.get_rules() == {'，': ',', '。': '.'}

    def test_put_invalid(self, client):
        resp = client.put("/api/v1/rules", json={"enable_realtime": "sometimes"})
        assert resp.status_code == 422

    def test_reload(self, client, source, tmp_path):
        rules_file = tmp_path / "rules.txt"
        rules_file.write_text("， = ;\n", encoding="utf-8")
        source.settings.rules_file = rules_file

        data = client.post("/api/v1/rules/reload").json()
        assert data["rules"]["，"] == ";"
        assert data["rules_file"] == str(rules_file)


def test_read_only_config():
    app.dependency_overrides[get_config_source] = lambda: StaticConfigSource()
    try:
        with TestClient(app) as c:
            assert c.get("/api/v1/rules").status_code == 200
            assert c.put("/api/v1/rules", json={"enable_realtime": False}).status_code == 409
            assert c.post("/api/v1/rules/reload").status_code == 409
    finally:
        app.dependency_overrides.clear()
