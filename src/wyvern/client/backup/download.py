"""Download of backed-up photos into a local cache.

This module provides:
- PhotoDownloader: Fetches a remote file by id using the primary bot
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from wyvern.client.api import BotClient
from wyvern.client.backup.credentials import ClientFactory, resolve_credential
from wyvern.client.state import now_ms

if TYPE_CHECKING:
    from wyvern.client.keystore import TokenStore
    from wyvern.client.state import LocalPhotoStore

logger = logging.getLogger(__name__)


def cache_file_name(file_name: str) -> str:
    """Unique cache name for a download: "<epoch ms>_<file name>"."""
    safe_name = Path(file_name).name or "file"
    return f"{now_ms()}_{safe_name}"


class PhotoDownloader:
    """Downloads remote photos with the primary bot's credential."""

    def __init__(
        self,
        store: LocalPhotoStore,
        token_store: TokenStore,
        cache_dir: Path,
        client_factory: ClientFactory = BotClient.from_token,
    ) -> None:
        """Initialize the downloader.

        Args:
            store: State store holding the bot configuration.
            token_store: Secure storage holding bot tokens.
            cache_dir: Directory downloads are written to.
            client_factory: Builds a Bot API client from a token.
        """
        self._store = store
        self._token_store = token_store
        self._cache_dir = Path(cache_dir)
        self._client_factory = client_factory

    def download(self, remote_id: str, file_name: str) -> Path | None:
        """Download a remote file into the cache.

        Args:
            remote_id: Remote file id.
            file_name: Name to give the cached copy.

        Returns:
            Path of the downloaded file, or None if the download failed.

        Raises:
            BatchRejectedError: The primary bot or its token is missing.
        """
        credential = resolve_credential(self._store, self._token_store)
        destination = self._cache_dir / cache_file_name(file_name)

        client = self._client_factory(credential.token)
        try:
            success = client.download_file(remote_id, destination)
        finally:
            client.close()

        if not success:
            logger.error(f"Failed to download {remote_id}")
            return None

        logger.info(f"Downloaded {remote_id} to {destination}")
        return destination
