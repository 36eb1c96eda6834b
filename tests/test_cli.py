"""Tests for CLI commands - bot, settings, index, upload, status, cloud, download."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from wyvern.client.cli import cli, save_config
from wyvern.client.state import BotRecord, LocalPhotoStore

API = "http://test/bot1:abc"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at a temp dir and the API at the mock server."""
    config_dir = tmp_path / ".wyvern"
    monkeypatch.setenv("WYVERN_HOME", str(config_dir))
    save_config({"api_url": "http://test"})
    return config_dir


@pytest.fixture
def secrets() -> Iterator[dict[tuple[str, str], str]]:
    """In-memory keyring."""
    stored: dict[tuple[str, str], str] = {}
    with patch("wyvern.client.keystore.keyring") as mock_keyring:
        mock_keyring.set_password.side_effect = lambda s, k, v: stored.__setitem__((s, k), v)
        mock_keyring.get_password.side_effect = lambda s, k: stored.get((s, k))
        yield stored


@pytest.fixture
def photos(tmp_path: Path) -> Path:
    """Folder with two photos and a non-media file."""
    folder = tmp_path / "DCIM"
    folder.mkdir()
    (folder / "IMG_0001.jpg").write_bytes(b"jpeg-1")
    (folder / "IMG_0002.jpg").write_bytes(b"jpeg-2")
    (folder / "notes.txt").write_text("not a photo")
    return folder


def configure_bot(home: Path, secrets: dict[tuple[str, str], str], wifi_only: bool = False) -> None:
    """Store a primary bot and its token directly."""
    store = LocalPhotoStore(home / "wyvern.db")
    store.insert_bot(BotRecord(id="bot-1", name="Main", channel_id="-1001", created_at=1))
    store.primary_bot_id = "bot-1"
    store.wifi_only = wifi_only
    store.close()
    secrets[("wyvern", "bot_token_bot-1")] = "1:abc"


def sent(file_id: str, name: str, message_id: int = 10) -> dict:
    return {
        "ok": True,
        "result": {
            "message_id": message_id,
            "chat": {"id": -1001, "type": "channel"},
            "document": {
                "file_id": file_id,
                "file_unique_id": f"u{file_id}",
                "file_name": name,
                "file_size": 6,
            },
        },
    }


class TestBotCommands:
    """Tests for 'wyvern bot' commands."""

    def test_bot_add(  # type: ignore[no-untyped-def]
        self, runner: CliRunner, home: Path, secrets: dict, httpx_mock
    ) -> None:
        """Verifies the bot, stores the token and makes it primary."""
        httpx_mock.add_response(
            url=f"{API}/getMe",
            json={
                "ok": True,
                "result": {
                    "id": 1,
                    "is_bot": True,
                    "first_name": "Wyvern",
                    "username": "wyvern_bot",
                },
            },
        )
        httpx_mock.add_response(
            url=f"{API}/getChat",
            json={"ok": True, "result": {"id": -1001, "type": "channel", "title": "Backups"}},
        )

        result = runner.invoke(
            cli, ["bot", "add", "--name", "Main", "--token", "1:abc", "--channel=-1001"]
        )

        assert result.exit_code == 0, result.output
        assert "configured successfully" in result.output
        assert "@wyvern_bot" in result.output
        assert "Backups" in result.output
        assert list(secrets.values()) == ["1:abc"]
        store = LocalPhotoStore(home / "wyvern.db")
        bots = store.list_bots()
        assert store.primary_bot_id == bots[0].id
        store.close()

    def test_bot_add_invalid_token(  # type: ignore[no-untyped-def]
        self, runner: CliRunner, home: Path, secrets: dict, httpx_mock
    ) -> None:
        httpx_mock.add_response(
            url=f"{API}/getMe",
            status_code=401,
            json={"ok": False, "error_code": 401, "description": "Unauthorized"},
        )

        result = runner.invoke(
            cli, ["bot", "add", "--token", "1:abc", "--channel=-1001"]
        )

        assert result.exit_code == 1
        assert "invalid" in result.output
        assert secrets == {}

    def test_bot_add_channel_error_lists_hints(  # type: ignore[no-untyped-def]
        self, runner: CliRunner, home: Path, secrets: dict, httpx_mock
    ) -> None:
        httpx_mock.add_response(
            url=f"{API}/getMe",
            json={"ok": True, "result": {"id": 1, "is_bot": True, "first_name": "Wyvern"}},
        )
        httpx_mock.add_response(
            url=f"{API}/getChat",
            status_code=400,
            json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
        )

        result = runner.invoke(
            cli, ["bot", "add", "--token", "1:abc", "--channel=-1009"]
        )

        assert result.exit_code == 1
        assert "Channel Access Error" in result.output
        assert "The bot is added to the channel" in result.output

    def test_bot_list_empty(self, runner: CliRunner, home: Path) -> None:
        result = runner.invoke(cli, ["bot", "list"])
        assert result.exit_code == 0
        assert "No bots configured" in result.output

    def test_bot_list_marks_primary(self, runner: CliRunner, home: Path, secrets: dict) -> None:
        configure_bot(home, secrets)

        result = runner.invoke(cli, ["bot", "list"])

        assert result.exit_code == 0
        assert "* bot-1  Main  -> -1001" in result.output

    def test_bot_use_unknown(self, runner: CliRunner, home: Path) -> None:
        result = runner.invoke(cli, ["bot", "use", "nope"])
        assert result.exit_code == 1
        assert "No bot with id nope" in result.output


class TestSettingsCommand:
    """Tests for 'wyvern settings'."""

    def test_defaults_to_wifi_only(self, runner: CliRunner, home: Path) -> None:
        result = runner.invoke(cli, ["settings"])
        assert result.exit_code == 0
        assert "Wi-Fi only: on" in result.output

    def test_any_network(self, runner: CliRunner, home: Path) -> None:
        result = runner.invoke(cli, ["settings", "--any-network"])
        assert "Wi-Fi only: off" in result.output

        result = runner.invoke(cli, ["settings"])
        assert "Wi-Fi only: off" in result.output


class TestIndexCommand:
    """Tests for 'wyvern index'."""

    def test_index_folder(self, runner: CliRunner, home: Path, photos: Path) -> None:
        result = runner.invoke(cli, ["index", str(photos)])

        assert result.exit_code == 0
        assert "Found 2 media file(s), 2 new" in result.output

        result = runner.invoke(cli, ["index", str(photos)])
        assert "2 media file(s), 0 new. 2 indexed in total" in result.output


class TestUploadCommand:
    """Tests for 'wyvern upload'."""

    def test_requires_paths_or_pending(self, runner: CliRunner, home: Path) -> None:
        result = runner.invoke(cli, ["upload"])
        assert result.exit_code == 1
        assert "--pending" in result.output

    def test_no_bot_configured(
        self, runner: CliRunner, home: Path, secrets: dict, photos: Path
    ) -> None:
        result = runner.invoke(cli, ["upload", str(photos)])

        assert result.exit_code == 1
        assert "configure your Telegram bot" in result.output

    def test_upload_folder(  # type: ignore[no-untyped-def]
        self, runner: CliRunner, home: Path, secrets: dict, photos: Path, httpx_mock
    ) -> None:
        """Both photos are sent and show up in status and cloud."""
        configure_bot(home, secrets)
        httpx_mock.add_response(url=f"{API}/sendDocument", json=sent("file-1", "IMG_0001.jpg", 10))
        httpx_mock.add_response(url=f"{API}/sendDocument", json=sent("file-2", "IMG_0002.jpg", 11))

        result = runner.invoke(cli, ["upload", "--no-progress", str(photos)])

        assert result.exit_code == 0, result.output
        assert "Uploaded 2 of 2 file(s)." in result.output

        status = runner.invoke(cli, ["status"])
        assert "Indexed: 2, backed up: 2, pending: 0" in status.output
        assert "Cloud: 2 file(s)" in status.output

        cloud = runner.invoke(cli, ["cloud"])
        assert "file-1" in cloud.output
        assert "IMG_0002.jpg" in cloud.output

    def test_upload_failure_exits_nonzero(  # type: ignore[no-untyped-def]
        self, runner: CliRunner, home: Path, secrets: dict, photos: Path, httpx_mock
    ) -> None:
        """A terminal error fails the item and the command."""
        configure_bot(home, secrets)
        httpx_mock.add_response(
            url=f"{API}/sendDocument",
            status_code=400,
            json={"ok": False, "error_code": 400, "description": "Bad Request: file is too big"},
        )

        result = runner.invoke(cli, ["upload", str(photos / "IMG_0001.jpg")])

        assert result.exit_code == 1
        assert "Uploaded 0 of 1 file(s)." in result.output
        assert "file is too big" in result.output

    def test_pending_skips_uploaded(  # type: ignore[no-untyped-def]
        self, runner: CliRunner, home: Path, secrets: dict, photos: Path, httpx_mock
    ) -> None:
        """--pending uploads only indexed photos not yet backed up."""
        configure_bot(home, secrets)
        runner.invoke(cli, ["index", str(photos)])
        store = LocalPhotoStore(home / "wyvern.db")
        store.mark_photo_uploaded(str((photos / "IMG_0001.jpg").resolve()), "file-old", 1)
        store.close()
        httpx_mock.add_response(url=f"{API}/sendDocument", json=sent("file-2", "IMG_0002.jpg"))

        result = runner.invoke(cli, ["upload", "--pending"])

        assert result.exit_code == 0, result.output
        assert "Uploaded 1 of 1 file(s)." in result.output

    def test_wifi_only_on_cellular(
        self, runner: CliRunner, home: Path, secrets: dict, photos: Path
    ) -> None:
        """Uploads are refused on cellular when Wi-Fi only is on."""
        from wyvern.client.network import NetworkType

        configure_bot(home, secrets, wifi_only=True)
        with patch(
            "wyvern.client.network.SystemNetworkProbe.current_type",
            return_value=NetworkType.CELLULAR,
        ):
            result = runner.invoke(cli, ["upload", str(photos)])

        assert result.exit_code == 1
        assert "WiFi Required" in result.output


class TestDownloadCommand:
    """Tests for 'wyvern download'."""

    def test_download(  # type: ignore[no-untyped-def]
        self, runner: CliRunner, home: Path, secrets: dict, httpx_mock
    ) -> None:
        configure_bot(home, secrets)
        httpx_mock.add_response(
            url=f"{API}/getFile",
            json={
                "ok": True,
                "result": {
                    "file_id": "file-1",
                    "file_unique_id": "u",
                    "file_path": "documents/file_1.jpg",
                },
            },
        )
        httpx_mock.add_response(
            url="http://test/file/bot1:abc/documents/file_1.jpg", content=b"jpeg"
        )

        result = runner.invoke(cli, ["download", "file-1", "--name", "IMG_0001.jpg"])

        assert result.exit_code == 0, result.output
        cached = list((home / "cache").iterdir())
        assert len(cached) == 1
        assert cached[0].name.endswith("_IMG_0001.jpg")
        assert cached[0].read_bytes() == b"jpeg"

    def test_download_without_bot(self, runner: CliRunner, home: Path, secrets: dict) -> None:
        result = runner.invoke(cli, ["download", "file-1"])
        assert result.exit_code == 1
        assert "configure your Telegram bot" in result.output
