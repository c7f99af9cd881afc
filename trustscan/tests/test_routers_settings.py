"""
Tests for settings, links and review routers.
"""

from fastapi.testclient import TestClient

from trustscan.config import Settings


class TestProcessSettings:
    """Tests for process configuration defaults."""

    def test_remote_sources_are_disabled_by_default(self, monkeypatch):
        for name in ("AI_ENGINE_URL", "SCAN_API_BASE_URL", "BACKEND_BASE_URL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.ai_engine_url == ""
        assert settings.scan_api_base_url == ""
        assert settings.backend_base_url == ""

    def test_config_reports_media_limits(self, client: TestClient, test_settings):
        media = client.get("/api/settings/config").json()["media"]
        assert media == {"uploads": str(test_settings.uploads_path), "max_size_mb": 10}


class TestSettingsRouter:
    """Tests for the user settings endpoints."""

    def test_defaults(self, client: TestClient):
        response = client.get("/api/settings")
        assert response.status_code == 200
        assert response.json() == {
            "language": "en",
            "privacy_mode": True,
            "save_history": True,
            "auto_delete": "never",
            "advanced_scan": False,
        }

    def test_partial_update(self, client: TestClient):
        response = client.patch("/api/settings", json={"language": "es"})
        assert response.status_code == 200
        assert response.json()["language"] == "es"
        assert client.get("/api/settings").json()["privacy_mode"] is True

    def test_invalid_value(self, client: TestClient):
        response = client.patch("/api/settings", json={"auto_delete": "90"})
        assert response.status_code == 422

    def test_config_hides_secrets(self, client: TestClient):
        data = client.get("/api/settings/config").json()
        assert data["storage"]["backend"] == "memory"
        assert "ai_engine_api_key" not in str(data)

    def test_device_identity_is_stable(self, client: TestClient):
        first = client.get("/api/settings/device").json()["device_id"]
        assert first.startswith("dev_")
        assert client.get("/api/settings/device").json()["device_id"] == first


class TestLinksRouter:
    """Tests for deep link endpoints."""

    def test_resolve_result_link(self, client: TestClient):
        response = client.post("/api/links/resolve", json={"raw": "https://trustscan.app/r/scan_1_abc"})
        assert response.status_code == 200
        data = response.json()
        assert data["intent"]["type"] == "result"
        assert data["app_path"] == "/result?scanId=scan_1_abc"

    def test_resolve_shared_text(self, client: TestClient):
        data = client.post("/api/links/resolve", json={"raw": "wow https://deal.example/x!"}).json()
        assert data["intent"] == {"type": "scan", "scan_id": None, "url": "https://deal.example/x"}

    def test_resolve_nothing(self, client: TestClient):
        data = client.post("/api/links/resolve", json={}).json()
        assert data["app_path"] == "/"

    def test_result_links_use_language(self, client: TestClient):
        client.patch("/api/settings", json={"language": "es"})
        data = client.get("/api/links/result/scan_1").json()
        assert data["app_link"] == "trustscan://result?scanId=scan_1&lang=es"
        assert data["web_url"] == "https://trustscan.app/r/scan_1"

    def test_scan_link(self, client: TestClient):
        data = client.get("/api/links/scan", params={"url": "https://a.example"}).json()
        assert data["app_link"] == "trustscan://scan?url=https%3A%2F%2Fa.example&lang=en"


class TestReviewRouter:
    """Tests for the store review prompt endpoints."""

    def test_initial_state(self, client: TestClient):
        data = client.get("/api/review").json()
        assert data == {"last_prompt_at": None, "scan_count": 0, "has_reviewed": False}
        assert client.get("/api/review/due").json() == {"due": False}

    def test_mark_reviewed(self, client: TestClient):
        assert client.post("/api/review/reviewed").json()["has_reviewed"] is True
