"""Sequential batch upload to the backup channel.

This module provides:
- UploadOrchestrator: Drives a batch of media items to the channel

Items are uploaded one at a time, in submission order, so exactly one item
is ever current and the Bot API rate limits are respected. A failing item
is marked failed and the batch moves on.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING

from wyvern.client.api import BotApiError, BotClient, BotDocument
from wyvern.client.backup.credentials import ClientFactory, Credential, resolve_credential
from wyvern.client.backup.retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    retry_with_backoff,
)
from wyvern.client.backup.tracker import UploadTracker
from wyvern.client.backup.types import BatchStats, UploadStatus
from wyvern.client.media import MediaAsset, mime_type_for
from wyvern.client.state import RemoteRecord, now_ms

if TYPE_CHECKING:
    from wyvern.client.keystore import TokenStore
    from wyvern.client.network import NetworkProbe
    from wyvern.client.state import LocalPhotoStore

logger = logging.getLogger(__name__)

# Seconds tracked state stays visible after a batch settles
DEFAULT_CLEAR_DELAY = 3.0


class UploadOrchestrator:
    """Uploads batches of media items and records the outcome.

    Usage:
        orchestrator = UploadOrchestrator(store, TokenStore())
        unsubscribe = orchestrator.tracker.subscribe(render)
        stats = orchestrator.upload_batch(assets)
    """

    def __init__(
        self,
        store: LocalPhotoStore,
        token_store: TokenStore,
        client_factory: ClientFactory = BotClient.from_token,
        network_probe: NetworkProbe | None = None,
        tracker: UploadTracker | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        clear_delay: float | None = DEFAULT_CLEAR_DELAY,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Durable photo/remote-record store.
            token_store: Secure storage holding bot tokens.
            client_factory: Builds a Bot API client from a token.
            network_probe: Probe used by the Wi-Fi-only gate.
            tracker: Progress tracker (a new one by default).
            max_retries: Retries per item for transient failures.
            base_delay: First backoff delay in seconds.
            clear_delay: Seconds before tracked state is cleared after a
                batch; None keeps it until the next batch.
        """
        self._store = store
        self._token_store = token_store
        self._client_factory = client_factory
        self._network_probe = network_probe
        self._tracker = tracker or UploadTracker()
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._clear_delay = clear_delay
        self._clear_timer: threading.Timer | None = None

    @property
    def tracker(self) -> UploadTracker:
        """Progress tracker observers read from."""
        return self._tracker

    def stats(self) -> BatchStats:
        """Aggregate stats of the tracked batch."""
        return self._tracker.stats()

    def cancel(self, item_id: str) -> None:
        """Stop tracking an item.

        An item that has not started yet is skipped. An upload already in
        flight is not interrupted and may still complete and be recorded.
        """
        if self._tracker.remove(item_id):
            logger.info(f"Cancelled tracking of {item_id}")

    def upload_batch(self, items: Sequence[MediaAsset]) -> BatchStats:
        """Upload a batch of media items sequentially.

        Args:
            items: Media items, uploaded in this order.

        Returns:
            Stats of the batch once every item has settled.

        Raises:
            BatchRejectedError: A precondition failed; nothing was uploaded.
        """
        items = self._unique(items)
        credential = resolve_credential(
            self._store,
            self._token_store,
            check_network=True,
            network_probe=self._network_probe,
        )

        self._cancel_pending_clear()
        generation = self._tracker.start_batch(
            (item.id, str(item.path)) for item in items
        )
        logger.info(
            f"Uploading {len(items)} item(s) with bot {credential.bot.name} "
            f"to {credential.bot.channel_id}"
        )

        client = self._client_factory(credential.token)
        try:
            for item in items:
                if self._tracker.get(item.id) is None:
                    logger.info(f"Skipping cancelled item {item.id}")
                    continue
                self._upload_item(client, credential, item)
        finally:
            client.close()

        stats = self._tracker.stats()
        if stats.completed:
            self._store.last_backup_time = now_ms()
        self._store.touch_bot(credential.bot.id)
        logger.info(
            f"Batch finished: {stats.completed} uploaded, {stats.failed} failed "
            f"of {stats.total}"
        )

        self._schedule_clear(generation)
        return stats

    @staticmethod
    def _unique(items: Sequence[MediaAsset]) -> list[MediaAsset]:
        """Drop repeated ids, keeping the first occurrence."""
        unique: list[MediaAsset] = []
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                logger.warning(f"Ignoring duplicate item {item.id} in batch")
                continue
            seen.add(item.id)
            unique.append(item)
        return unique

    def _upload_item(
        self, client: BotClient, credential: Credential, item: MediaAsset
    ) -> None:
        """Upload one item and record the outcome. Never raises."""
        self._tracker.update(
            item.id, status=UploadStatus.UPLOADING, progress=0, retry_count=0
        )
        retries = 0

        def on_retry(attempt: int, delay: float, error: BaseException) -> None:
            nonlocal retries
            retries = attempt
            self._tracker.update(item.id, retry_count=attempt, progress=0)

        def on_progress(percent: int) -> None:
            self._tracker.update(item.id, progress=percent)

        def send() -> tuple[int, BotDocument]:
            response = client.upload_file(
                credential.bot.channel_id,
                item.path,
                display_name=item.file_name,
                on_progress=on_progress,
                caption=item.file_name,
            )
            message = response.unwrap()
            if message.document is None:
                raise BotApiError("Upload failed: no document in response")
            return message.message_id, message.document

        try:
            message_id, document = retry_with_backoff(
                send,
                max_retries=self._max_retries,
                base_delay=self._base_delay,
                on_retry=on_retry,
            )
            self._record_success(item, message_id, document)
        except Exception as e:
            description = getattr(e, "description", None) or str(e) or "Upload failed"
            logger.error(
                f"Failed to upload {item.file_name} after {retries} retries: {description}"
            )
            self._tracker.update(
                item.id,
                status=UploadStatus.FAILED,
                progress=0,
                error=description,
                retry_count=retries,
            )
            return

        self._tracker.update(item.id, status=UploadStatus.COMPLETED, progress=100)
        logger.info(f"Uploaded {item.file_name}")

    def _record_success(
        self, item: MediaAsset, message_id: int, document: BotDocument
    ) -> None:
        """Persist a finished upload: flip the photo, append the remote record."""
        self._store.record_upload(
            item.id,
            RemoteRecord(
                remote_id=document.file_id,
                file_name=item.file_name,
                mime_type=mime_type_for(item),
                file_size=document.file_size,
                uploaded_at=now_ms(),
                message_id=message_id,
            ),
        )

    def _schedule_clear(self, generation: int) -> None:
        if self._clear_delay is None:
            return
        timer = threading.Timer(self._clear_delay, self._tracker.clear, args=(generation,))
        timer.daemon = True
        self._clear_timer = timer
        timer.start()

    def _cancel_pending_clear(self) -> None:
        if self._clear_timer is not None:
            self._clear_timer.cancel()
            self._clear_timer = None
