"""Tests for the Telegram Bot API client."""

import json
from pathlib import Path

import httpx
import pytest

from wyvern.client.api import (
    BotApiError,
    BotClient,
    BotResponse,
    RemoteFile,
    SentMessage,
)
from wyvern.core.config import BotConfig

BASE = "http://test/botTOKEN"


def make_client() -> BotClient:
    """Create a BotClient pointed at the mock API."""
    return BotClient(BotConfig(token="TOKEN", api_url="http://test"))


def sent_document(message_id: int = 7, file_id: str = "file-abc", size: int = 4) -> dict:
    """sendDocument success envelope."""
    return {
        "ok": True,
        "result": {
            "message_id": message_id,
            "date": 1700000000,
            "chat": {"id": -100123, "type": "channel", "title": "Backups"},
            "document": {
                "file_id": file_id,
                "file_unique_id": "uniq-abc",
                "file_name": "IMG_0001.jpg",
                "mime_type": "image/jpeg",
                "file_size": size,
            },
        },
    }


class TestResultTypes:
    """Tests for result dataclasses."""

    def test_sent_message_from_dict(self) -> None:
        """Should parse the message id, chat and document."""
        message = SentMessage.from_dict(sent_document()["result"])

        assert message.message_id == 7
        assert message.chat_id == -100123
        assert message.document is not None
        assert message.document.file_id == "file-abc"
        assert message.document.file_size == 4

    def test_sent_message_without_document(self) -> None:
        """Text messages carry no document."""
        message = SentMessage.from_dict({"message_id": 1, "chat": {"id": 5}})
        assert message.document is None

    def test_remote_file_from_dict(self) -> None:
        """Should parse the getFile result."""
        remote = RemoteFile.from_dict(
            {"file_id": "f", "file_unique_id": "u", "file_path": "documents/file_1.jpg"}
        )
        assert remote.file_path == "documents/file_1.jpg"
        assert remote.file_size is None


class TestBotResponse:
    """Tests for the response envelope."""

    def test_unwrap_success(self) -> None:
        """Should return the result."""
        assert BotResponse(ok=True, result=3).unwrap() == 3

    def test_unwrap_failure_raises(self) -> None:
        """Should raise BotApiError carrying description and code."""
        response = BotResponse.failure("Too Many Requests: retry after 5", 429)

        with pytest.raises(BotApiError) as exc_info:
            response.unwrap()

        assert exc_info.value.error_code == 429
        assert exc_info.value.description == "Too Many Requests: retry after 5"

    def test_unwrap_missing_result_raises(self) -> None:
        """ok with no result is still a failure."""
        with pytest.raises(BotApiError):
            BotResponse(ok=True).unwrap()


class TestBotClient:
    """Tests for BotClient methods."""

    def test_get_me_success(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return the bot identity."""
        httpx_mock.add_response(
            url=f"{BASE}/getMe",
            json={
                "ok": True,
                "result": {
                    "id": 42,
                    "is_bot": True,
                    "first_name": "Wyvern",
                    "username": "wyvern_bot",
                },
            },
        )

        with make_client() as client:
            response = client.verify_identity()

        assert response.ok
        assert response.result is not None
        assert response.result.username == "wyvern_bot"

    def test_get_me_invalid_token(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should surface the API error instead of raising."""
        httpx_mock.add_response(
            url=f"{BASE}/getMe",
            status_code=401,
            json={"ok": False, "error_code": 401, "description": "Unauthorized"},
        )

        with make_client() as client:
            response = client.get_me()

        assert not response.ok
        assert response.error_code == 401
        assert response.description == "Unauthorized"

    def test_error_code_falls_back_to_http_status(  # type: ignore[no-untyped-def]
        self, httpx_mock
    ) -> None:
        """An envelope without error_code takes the HTTP status."""
        httpx_mock.add_response(
            url=f"{BASE}/getMe",
            status_code=502,
            json={"ok": False, "description": "Bad Gateway"},
        )

        with make_client() as client:
            response = client.get_me()

        assert response.error_code == 502

    def test_non_json_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should report an invalid response with the HTTP status."""
        httpx_mock.add_response(url=f"{BASE}/getMe", status_code=503, text="<html>")

        with make_client() as client:
            response = client.get_me()

        assert not response.ok
        assert response.description == "Invalid response"
        assert response.error_code == 503

    def test_transport_error_is_network_error(  # type: ignore[no-untyped-def]
        self, httpx_mock
    ) -> None:
        """Connection failures come back as a failed response."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with make_client() as client:
            response = client.get_me()

        assert not response.ok
        assert response.error_code is None
        assert response.description is not None
        assert response.description.startswith("Network error")

    def test_get_chat_sends_chat_id(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should post the chat id as JSON."""
        httpx_mock.add_response(
            url=f"{BASE}/getChat",
            json={"ok": True, "result": {"id": -100123, "type": "channel", "title": "Backups"}},
        )

        with make_client() as client:
            response = client.verify_destination("-100123")

        request = httpx_mock.get_request()
        assert json.loads(request.content) == {"chat_id": "-100123"}
        assert response.result is not None
        assert response.result.title == "Backups"

    def test_send_message(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should post the chat id and text and parse the sent message."""
        httpx_mock.add_response(
            url=f"{BASE}/sendMessage",
            json={"ok": True, "result": {"message_id": 42, "date": 1700000000}},
        )

        with make_client() as client:
            response = client.send_message(-100123, "Wyvern connected")

        request = httpx_mock.get_request()
        assert json.loads(request.content) == {"chat_id": -100123, "text": "Wyvern connected"}
        assert response.result is not None
        assert response.result.message_id == 42
        assert response.result.document is None

    def test_delete_message(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return True when the message was deleted."""
        httpx_mock.add_response(url=f"{BASE}/deleteMessage", json={"ok": True, "result": True})

        with make_client() as client:
            response = client.delete_message(-100123, 7)

        assert response.result is True


class TestUploadFile:
    """Tests for sendDocument uploads."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Should fail without sending anything."""
        with make_client() as client:
            response = client.upload_file(-100123, tmp_path / "gone.jpg")

        assert not response.ok
        assert response.description == "File does not exist"

    def test_upload_reports_progress(  # type: ignore[no-untyped-def]
        self, httpx_mock, tmp_path: Path
    ) -> None:
        """Progress goes up to 100 as the body is sent."""
        path = tmp_path / "local.jpg"
        path.write_bytes(b"x" * 200_000)
        progress: list[int] = []
        bodies: list[bytes] = []

        def respond(request: httpx.Request) -> httpx.Response:
            bodies.append(request.read())
            return httpx.Response(200, json=sent_document(size=200_000))

        httpx_mock.add_callback(respond, url=f"{BASE}/sendDocument")

        with make_client() as client:
            response = client.upload_file(
                -100123,
                path,
                display_name="IMG_0001.jpg",
                on_progress=progress.append,
                caption="IMG_0001.jpg",
            )

        assert response.ok
        assert response.result is not None
        assert response.result.document is not None
        assert response.result.document.file_id == "file-abc"
        assert progress[-1] == 100
        assert progress == sorted(progress)
        assert len(set(progress)) == len(progress)
        assert b'filename="IMG_0001.jpg"' in bodies[0]
        assert b'name="caption"' in bodies[0]

    def test_upload_empty_file_reports_complete(  # type: ignore[no-untyped-def]
        self, httpx_mock, tmp_path: Path
    ) -> None:
        """An empty file is 100% sent."""
        path = tmp_path / "empty.jpg"
        path.write_bytes(b"")
        progress: list[int] = []
        httpx_mock.add_response(url=f"{BASE}/sendDocument", json=sent_document(size=0))

        with make_client() as client:
            client.upload_file(-100123, path, on_progress=progress.append)

        assert progress == [100]

    def test_upload_rate_limited(  # type: ignore[no-untyped-def]
        self, httpx_mock, tmp_path: Path
    ) -> None:
        """A 429 envelope is returned as-is."""
        path = tmp_path / "a.jpg"
        path.write_bytes(b"data")
        httpx_mock.add_response(
            url=f"{BASE}/sendDocument",
            status_code=429,
            json={
                "ok": False,
                "error_code": 429,
                "description": "Too Many Requests: retry after 3",
            },
        )

        with make_client() as client:
            response = client.upload_file(-100123, path)

        assert not response.ok
        assert response.error_code == 429


class TestDownload:
    """Tests for getFile and file downloads."""

    def test_download_file(  # type: ignore[no-untyped-def]
        self, httpx_mock, tmp_path: Path
    ) -> None:
        """Should resolve the path then write the bytes."""
        httpx_mock.add_response(
            url=f"{BASE}/getFile",
            json={
                "ok": True,
                "result": {
                    "file_id": "file-abc",
                    "file_unique_id": "u",
                    "file_path": "documents/file_1.jpg",
                },
            },
        )
        httpx_mock.add_response(
            url="http://test/file/botTOKEN/documents/file_1.jpg", content=b"jpeg-bytes"
        )
        dest = tmp_path / "cache" / "photo.jpg"

        with make_client() as client:
            assert client.download_file("file-abc", dest) is True

        assert dest.read_bytes() == b"jpeg-bytes"

    def test_download_resolution_failure(  # type: ignore[no-untyped-def]
        self, httpx_mock, tmp_path: Path
    ) -> None:
        """A failed getFile means no download and no file."""
        httpx_mock.add_response(
            url=f"{BASE}/getFile",
            status_code=400,
            json={"ok": False, "error_code": 400, "description": "Bad Request: invalid file_id"},
        )
        dest = tmp_path / "photo.jpg"

        with make_client() as client:
            assert client.download_file("nope", dest) is False

        assert not dest.exists()

    def test_download_http_error(  # type: ignore[no-untyped-def]
        self, httpx_mock, tmp_path: Path
    ) -> None:
        """A non-200 file response is a failure."""
        httpx_mock.add_response(
            url="http://test/file/botTOKEN/documents/file_1.jpg", status_code=404
        )
        dest = tmp_path / "photo.jpg"

        with make_client() as client:
            assert client.download_file_path("documents/file_1.jpg", dest) is False

        assert not dest.exists()
