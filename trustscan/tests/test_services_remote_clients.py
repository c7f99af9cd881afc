"""Tests for the AI engine and remote scan API clients."""

import base64
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from trustscan.services.ai_engine import IMAGE_UNREADABLE_NOTE, AIScanEngine
from trustscan.services.identity import DeviceIdentity
from trustscan.services.media import MediaLibrary
from trustscan.services.scan_api import DEFAULT_TIMEOUT, DEVICE_ID_HEADER, ScanApiClient


def json_response(payload) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.raise_for_status = MagicMock()
    response.json.return_value = payload
    return response


ENGINE_PAYLOAD = {
    "badge": "VERIFIED",
    "score": 87,
    "reasons": {"E": {"title": "Link Safety", "summary": "HTTPS and reputable domain"}},
    "domain": "example.com",
    "title": "Example",
}


class TestAIScanEngine:
    @pytest.fixture
    def engine(self):
        return AIScanEngine("https://engine.example.test/generate", api_key="secret")

    def test_disabled_without_endpoint(self):
        assert AIScanEngine("").enabled is False

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_analyze_url(self, mock_post, engine):
        mock_post.return_value = json_response(ENGINE_PAYLOAD)

        analysis = await engine.analyze_url("https://example.com")

        assert analysis.badge == "VERIFIED"
        assert analysis.score == 87
        assert analysis.reasons.E.summary == "HTTPS and reputable domain"
        body = mock_post.call_args.kwargs["json"]
        assert "https://example.com" in body["messages"][0]["content"]
        assert body["schema"]["properties"]["badge"]["enum"] == ["VERIFIED", "UNVERIFIED", "HIGH_RISK"]
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_wrapped_object_is_unwrapped(self, mock_post, engine):
        mock_post.return_value = json_response({"object": ENGINE_PAYLOAD})
        analysis = await engine.analyze_url("https://example.com")
        assert analysis.domain == "example.com"

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_failure_returns_none(self, mock_post, engine):
        mock_post.side_effect = httpx.ConnectError("refused")
        assert await engine.analyze_url("https://example.com") is None

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_unusable_output_returns_none(self, mock_post, engine):
        mock_post.return_value = json_response(["not", "an", "object"])
        assert await engine.analyze_url("https://example.com") is None

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_image_is_attached_as_data_uri(self, mock_post, tmp_path):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "shot.png").write_bytes(b"\x89PNG fake")
        engine = AIScanEngine("https://engine.example.test/generate", media=MediaLibrary(uploads))
        mock_post.return_value = json_response(ENGINE_PAYLOAD)

        await engine.analyze_image("shot.png")

        content = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
        assert content[1]["type"] == "image"
        assert content[1]["image"] == "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_files_outside_uploads_are_never_sent(self, mock_post, tmp_path):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        secret = tmp_path / "secret.txt"
        secret.write_text("DB_PASSWORD=hunter2")
        engine = AIScanEngine("https://engine.example.test/generate", media=MediaLibrary(uploads))
        mock_post.return_value = json_response(ENGINE_PAYLOAD)

        for reference in (str(secret), f"file://{secret}", "../secret.txt"):
            await engine.analyze_image(reference)
            content = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
            assert isinstance(content, str)
            assert content.endswith(IMAGE_UNREADABLE_NOTE)

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_without_media_library_only_data_uris_are_attached(self, mock_post, engine, tmp_path):
        image = tmp_path / "shot.png"
        image.write_bytes(b"png")
        mock_post.return_value = json_response(ENGINE_PAYLOAD)

        await engine.analyze_image(str(image))
        assert isinstance(mock_post.call_args.kwargs["json"]["messages"][0]["content"], str)

        await engine.analyze_image("data:image/png;base64,AAAA")
        content = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
        assert content[1]["image"] == "data:image/png;base64,AAAA"

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_unreadable_image_falls_back_to_text(self, mock_post, engine):
        mock_post.return_value = json_response(ENGINE_PAYLOAD)
        await engine.analyze_image("/does/not/exist.png")
        content = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
        assert isinstance(content, str)
        assert content.endswith(IMAGE_UNREADABLE_NOTE)

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.post", new_callable=AsyncMock)
    async def test_disabled_engine_reads_nothing(self, mock_post):
        media = MagicMock()
        media.read_data_uri = AsyncMock()
        assert await AIScanEngine("", media=media).analyze_image("shot.png") is None
        media.read_data_uri.assert_not_called()
        mock_post.assert_not_called()


class TestScanApiClient:
    @pytest.fixture
    def api(self, kv):
        return ScanApiClient("https://api.example.test/", DeviceIdentity(kv))

    def test_defaults(self, api):
        assert api.base_url == "https://api.example.test"
        assert api.timeout == DEFAULT_TIMEOUT == 15.0

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_scan_url(self, mock_request, api):
        mock_request.return_value = json_response(
            {"id": "srv_1", "badge": "UNVERIFIED", "score": 62, "domain": "a.example", "timestamp": 5}
        )

        response = await api.scan_url("https://a.example", advanced_scan=True)

        assert response.id == "srv_1"
        assert response.score == 62
        assert mock_request.call_args.args[:2] == ("POST", "https://api.example.test/scan/url")
        assert mock_request.call_args.kwargs["json"] == {"url": "https://a.example", "advancedScan": True}
        assert mock_request.call_args.kwargs["headers"][DEVICE_ID_HEADER].startswith("dev_")

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_device_id_is_stable(self, mock_request, api):
        mock_request.return_value = json_response({"id": "srv_1", "score": 1})
        await api.scan_url("https://a.example")
        first = mock_request.call_args.kwargs["headers"][DEVICE_ID_HEADER]
        await api.fetch_result("srv_1")
        assert mock_request.call_args.kwargs["headers"][DEVICE_ID_HEADER] == first

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_fetch_result_sends_scan_id(self, mock_request, api):
        mock_request.return_value = json_response({"id": "srv_2", "score": 91, "disclaimerKey": "d1"})
        response = await api.fetch_result("srv_2")
        assert response.disclaimer_key == "d1"
        assert mock_request.call_args.kwargs["params"] == {"scanId": "srv_2"}

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_timeout_returns_none(self, mock_request, api):
        mock_request.side_effect = httpx.TimeoutException("timed out")
        assert await api.scan_url("https://a.example") is None

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_http_error_returns_none(self, mock_request, api):
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "boom", request=httpx.Request("POST", "https://api.example.test/scan/url"), response=MagicMock()
        )
        mock_request.return_value = response
        assert await api.scan_url("https://a.example") is None

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_response_without_id_is_rejected(self, mock_request, api):
        mock_request.return_value = json_response({"score": 50})
        assert await api.scan_url("https://a.example") is None

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_submit_result_returns_canonical_id(self, mock_request, api):
        mock_request.return_value = json_response({"id": "canonical_1"})
        canonical = await api.submit_result("https://a.example", 88, "a.example")
        assert canonical == "canonical_1"
        body = mock_request.call_args.kwargs["json"]
        assert body == {"url": "https://a.example", "score": 88, "entityType": "domain", "entityKey": "a.example"}

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_scan_media_uploads_file(self, mock_request, kv, tmp_path):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "shot.jpg").write_bytes(b"jpeg")
        api = ScanApiClient("https://api.example.test/", DeviceIdentity(kv), media=MediaLibrary(uploads))
        mock_request.return_value = json_response({"id": "srv_m", "score": 40})

        response = await api.scan_media(f"file://{uploads / 'shot.jpg'}")

        assert response.id == "srv_m"
        assert mock_request.call_args.kwargs["files"] == {"file": ("shot.jpg", b"jpeg")}
        assert mock_request.call_args.kwargs["data"] == {"advancedScan": "false"}

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.request", new_callable=AsyncMock)
    async def test_scan_media_does_not_attach_files_outside_uploads(self, mock_request, kv, tmp_path):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (tmp_path / "secret.txt").write_text("DB_PASSWORD=hunter2")
        api = ScanApiClient("https://api.example.test/", DeviceIdentity(kv), media=MediaLibrary(uploads))
        mock_request.return_value = json_response({"id": "srv_m", "score": 40})

        await api.scan_media("../secret.txt")
        assert mock_request.call_args.kwargs["files"] is None
        await api.scan_media(str(tmp_path / "secret.txt"))
        assert mock_request.call_args.kwargs["files"] is None

    @pytest.mark.asyncio
    async def test_disabled_client_makes_no_requests(self, kv):
        api = ScanApiClient("", DeviceIdentity(kv))
        assert await api.scan_url("https://a.example") is None
        assert await api.submit_result("https://a.example", 1, "a.example") is None
