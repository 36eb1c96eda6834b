"""HTTP client for the Telegram Bot API.

This module provides:
- BotClient: credential-scoped client for the bot methods wyvern uses
- BotResponse: uniform {ok, result, description, error_code} envelope
- Result dataclasses (BotUser, BotChat, BotDocument, SentMessage, RemoteFile)

Ordinary network failures never raise: they come back as a failed
BotResponse so callers (and the retry policy) can classify them uniformly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Generic, TypeVar

import httpx

from wyvern.core.config import BotConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Percentage callback used during uploads (0..100)
UploadProgressCallback = Callable[[int], None]


class BotApiError(Exception):
    """A Bot API call returned ok=false.

    Attributes:
        description: Error text reported by the API (or by the client).
        error_code: HTTP-style status code from the envelope, if any.
    """

    def __init__(self, description: str, error_code: int | None = None) -> None:
        super().__init__(description)
        self.description = description
        self.error_code = error_code


@dataclass
class BotResponse(Generic[T]):
    """Envelope shared by every Bot API method."""

    ok: bool
    result: T | None = None
    description: str | None = None
    error_code: int | None = None

    @classmethod
    def failure(
        cls, description: str, error_code: int | None = None
    ) -> BotResponse[Any]:
        """Build a failed response."""
        return cls(ok=False, description=description, error_code=error_code)

    def unwrap(self) -> T:
        """Return the result or raise BotApiError.

        Raises:
            BotApiError: If the call failed or carried no result.
        """
        if not self.ok or self.result is None:
            raise BotApiError(self.description or "Request failed", self.error_code)
        return self.result


@dataclass
class BotUser:
    """Identity returned by getMe."""

    id: int
    first_name: str
    username: str | None = None
    is_bot: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BotUser:
        """Create from API result dictionary."""
        return cls(
            id=data["id"],
            first_name=data.get("first_name", ""),
            username=data.get("username"),
            is_bot=data.get("is_bot", True),
        )


@dataclass
class BotChat:
    """Chat (channel, group or private) returned by getChat."""

    id: int
    type: str
    title: str | None = None
    username: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BotChat:
        """Create from API result dictionary."""
        return cls(
            id=data["id"],
            type=data["type"],
            title=data.get("title"),
            username=data.get("username"),
        )


@dataclass
class BotDocument:
    """Document attached to a message."""

    file_id: str
    file_unique_id: str
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BotDocument:
        """Create from API result dictionary."""
        return cls(
            file_id=data["file_id"],
            file_unique_id=data["file_unique_id"],
            file_name=data.get("file_name"),
            mime_type=data.get("mime_type"),
            file_size=data.get("file_size"),
        )


@dataclass
class SentMessage:
    """Message returned by sendDocument / sendMessage."""

    message_id: int
    date: int | None = None
    chat_id: int | None = None
    document: BotDocument | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SentMessage:
        """Create from API result dictionary."""
        chat = data.get("chat") or {}
        return cls(
            message_id=data["message_id"],
            date=data.get("date"),
            chat_id=chat.get("id"),
            document=(
                BotDocument.from_dict(data["document"])
                if data.get("document")
                else None
            ),
        )


@dataclass
class RemoteFile:
    """File location returned by getFile."""

    file_id: str
    file_unique_id: str
    file_size: int | None = None
    file_path: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteFile:
        """Create from API result dictionary."""
        return cls(
            file_id=data["file_id"],
            file_unique_id=data["file_unique_id"],
            file_size=data.get("file_size"),
            file_path=data.get("file_path"),
        )


class _ProgressReader:
    """Wraps an open file and reports how much of it has been read.

    httpx pulls multipart file parts through read(), so the number of bytes
    handed out here is the number of bytes written to the request body.
    """

    def __init__(
        self,
        fileobj: IO[bytes],
        total: int,
        callback: UploadProgressCallback | None,
    ) -> None:
        self._file = fileobj
        self._total = total
        self._callback = callback
        self._sent = 0
        self._last_percent = -1

    def read(self, size: int = -1) -> bytes:
        chunk = self._file.read(size)
        if chunk:
            self._sent += len(chunk)
            self._report()
        return chunk

    def seek(self, offset: int, whence: int = 0) -> int:
        position = self._file.seek(offset, whence)
        self._sent = position
        return position

    def tell(self) -> int:
        return self._file.tell()

    def fileno(self) -> int:
        return self._file.fileno()

    def _report(self) -> None:
        if self._callback is None or self._total <= 0:
            return
        percent = min(100, self._sent * 100 // self._total)
        if percent != self._last_percent:
            self._last_percent = percent
            self._callback(percent)


class BotClient:
    """HTTP client for the Telegram Bot API, scoped to one bot token."""

    def __init__(self, config: BotConfig) -> None:
        """Initialize the bot client.

        Args:
            config: Bot configuration (token, API URL, timeouts).
        """
        self._config = config
        self._client = httpx.Client(timeout=config.timeout)

    @classmethod
    def from_token(cls, token: str) -> BotClient:
        """Create a client for a token with default settings."""
        return cls(BotConfig(token=token))

    @property
    def config(self) -> BotConfig:
        """Get the bot configuration."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> BotClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _parse_response(
        self,
        method: str,
        response: httpx.Response,
        parse: Callable[[Any], T] | None,
    ) -> BotResponse[T]:
        """Convert an HTTP response into a BotResponse.

        The Bot API reports errors with a non-2xx status and a JSON envelope,
        so the body is parsed regardless of the status code.
        """
        http_error = response.status_code if response.status_code >= 400 else None
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"{method}: response body is not JSON (HTTP {response.status_code})")
            return BotResponse.failure("Invalid response", http_error)

        if not isinstance(data, dict):
            return BotResponse.failure("Invalid response", http_error)

        if not data.get("ok"):
            error_code = data.get("error_code")
            if not isinstance(error_code, int):
                error_code = http_error
            description = data.get("description") or f"{method} failed"
            logger.debug(f"{method} returned error {error_code}: {description}")
            return BotResponse.failure(description, error_code)

        raw = data.get("result")
        if parse is None:
            return BotResponse(ok=True, result=raw)
        try:
            return BotResponse(ok=True, result=parse(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"{method}: malformed result: {e}")
            return BotResponse.failure("Invalid response")

    def _request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        parse: Callable[[Any], T] | None = None,
    ) -> BotResponse[T]:
        """Call a Bot API method with a JSON body."""
        url = f"{self._config.base_url}/{method}"
        try:
            response = self._client.post(url, json=params)
        except httpx.HTTPError as e:
            logger.warning(f"{method} failed: {e}")
            return BotResponse.failure(f"Network error: {e}")
        return self._parse_response(method, response, parse)

    # === Identity and destination ===

    def get_me(self) -> BotResponse[BotUser]:
        """Verify the bot token.

        Returns:
            Response carrying the bot's identity.
        """
        return self._request("getMe", parse=BotUser.from_dict)

    verify_identity = get_me

    def get_chat(self, chat_id: str | int) -> BotResponse[BotChat]:
        """Look up a chat to confirm the bot can address it.

        Args:
            chat_id: Channel/group id or @username.

        Returns:
            Response carrying the chat info.
        """
        return self._request("getChat", {"chat_id": chat_id}, parse=BotChat.from_dict)

    verify_destination = get_chat

    # === Messages ===

    def send_message(self, chat_id: str | int, text: str) -> BotResponse[SentMessage]:
        """Send a text message to a chat."""
        return self._request(
            "sendMessage",
            {"chat_id": chat_id, "text": text},
            parse=SentMessage.from_dict,
        )

    def delete_message(self, chat_id: str | int, message_id: int) -> BotResponse[bool]:
        """Delete a message (removes an uploaded photo from the channel).

        Args:
            chat_id: Channel the message lives in.
            message_id: Message to delete.

        Returns:
            Response whose result is True when the message was deleted.
        """
        return self._request(
            "deleteMessage",
            {"chat_id": chat_id, "message_id": message_id},
            parse=bool,
        )

    # === Files ===

    def upload_file(
        self,
        chat_id: str | int,
        local_path: Path | str,
        display_name: str | None = None,
        on_progress: UploadProgressCallback | None = None,
        caption: str | None = None,
    ) -> BotResponse[SentMessage]:
        """Upload a file as a document (keeps original quality).

        Args:
            chat_id: Destination channel/group.
            local_path: File to upload.
            display_name: File name shown in the chat (default: local name).
            on_progress: Called with the floored percentage of bytes sent.
            caption: Optional message caption.

        Returns:
            Response carrying the sent message and its document.
        """
        path = Path(local_path)
        if not path.is_file():
            return BotResponse.failure("File does not exist")

        file_name = display_name or path.name
        data = {"chat_id": str(chat_id)}
        if caption:
            data["caption"] = caption

        try:
            total = path.stat().st_size
            with path.open("rb") as fh:
                reader = _ProgressReader(fh, total, on_progress)
                response = self._client.post(
                    f"{self._config.base_url}/sendDocument",
                    data=data,
                    files={"document": (file_name, reader, "application/octet-stream")},
                    timeout=self._config.upload_timeout,
                )
        except httpx.HTTPError as e:
            logger.warning(f"sendDocument failed for {file_name}: {e}")
            return BotResponse.failure(f"Network error: {e}")
        except OSError as e:
            logger.warning(f"sendDocument could not read {path}: {e}")
            return BotResponse.failure(f"Upload failed: {e}")

        if total == 0 and on_progress:
            on_progress(100)

        return self._parse_response("sendDocument", response, SentMessage.from_dict)

    def get_file(self, file_id: str) -> BotResponse[RemoteFile]:
        """Resolve the download path of an uploaded file.

        Args:
            file_id: Remote file id.

        Returns:
            Response carrying the file location.
        """
        return self._request("getFile", {"file_id": file_id}, parse=RemoteFile.from_dict)

    fetch_file_location = get_file

    def download_file_path(self, file_path: str, destination: Path | str) -> bool:
        """Stream a file from the file endpoint to disk.

        Args:
            file_path: Path returned by getFile.
            destination: Local file to write.

        Returns:
            True if the file was written completely.
        """
        destination = Path(destination)
        url = f"{self._config.file_base_url}/{file_path}"
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with self._client.stream("GET", url) as response:
                if response.status_code != 200:
                    logger.error(
                        f"File download failed with HTTP {response.status_code}"
                    )
                    return False
                with destination.open("wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"File download failed: {e}")
            destination.unlink(missing_ok=True)
            return False
        return True

    def download_file(self, file_id: str, destination: Path | str) -> bool:
        """Download a file by id: resolve its location, then fetch it.

        Args:
            file_id: Remote file id.
            destination: Local file to write.

        Returns:
            True on success; any failure (including resolution) is False.
        """
        location = self.get_file(file_id)
        if not location.ok or location.result is None or not location.result.file_path:
            logger.error(f"getFile failed for {file_id}: {location.description}")
            return False
        return self.download_file_path(location.result.file_path, destination)
