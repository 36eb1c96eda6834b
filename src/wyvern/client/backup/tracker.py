"""Per-item progress tracking for upload batches.

This module provides:
- UploadTracker: Thread-safe container of UploadItem snapshots
- compute_stats: Aggregate BatchStats from a list of items

Only the orchestrator mutates the tracker. Observers read snapshots or
subscribe to change notifications; they never get the live mapping.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from wyvern.client.backup.types import (
    BatchStats,
    TrackerListener,
    UploadItem,
    UploadStatus,
)

logger = logging.getLogger(__name__)


def compute_stats(items: list[UploadItem]) -> BatchStats:
    """Project a list of tracked items into aggregate stats."""
    current = 0
    current_progress = 0
    for index, item in enumerate(items):
        if item.status == UploadStatus.UPLOADING:
            current = index + 1
            current_progress = item.progress
            break

    return BatchStats(
        total=len(items),
        completed=sum(1 for i in items if i.status == UploadStatus.COMPLETED),
        failed=sum(1 for i in items if i.status == UploadStatus.FAILED),
        current=current,
        current_progress=current_progress,
    )


class UploadTracker:
    """Holds the tracked state of the current batch, in submission order."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._items: dict[str, UploadItem] = {}
        self._listeners: list[TrackerListener] = []
        self._generation = 0

    @property
    def generation(self) -> int:
        """Counter bumped every time a new batch starts."""
        return self._generation

    # === Observer side ===

    def snapshot(self) -> list[UploadItem]:
        """Get the tracked items in submission order."""
        with self._lock:
            return list(self._items.values())

    def get(self, item_id: str) -> UploadItem | None:
        """Get one tracked item."""
        with self._lock:
            return self._items.get(item_id)

    def stats(self) -> BatchStats:
        """Get aggregate stats for the tracked items."""
        return compute_stats(self.snapshot())

    def subscribe(self, listener: TrackerListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change.

        Returns:
            Function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # === Orchestrator side ===

    def start_batch(self, entries: Iterable[tuple[str, str]]) -> int:
        """Replace tracked state with a new batch, every item PENDING.

        Args:
            entries: (item_id, local_reference) pairs in submission order.

        Returns:
            The generation number of the new batch.
        """
        with self._lock:
            self._generation += 1
            self._items = {
                item_id: UploadItem(item_id=item_id, local_reference=reference)
                for item_id, reference in entries
            }
            generation = self._generation
        self._notify()
        return generation

    def update(self, item_id: str, **changes: Any) -> UploadItem | None:
        """Apply changes to a tracked item.

        Items that are no longer tracked (cancelled or cleared) stay gone.

        Returns:
            The new snapshot of the item, or None if it is not tracked.
        """
        with self._lock:
            current = self._items.get(item_id)
            if current is None:
                return None
            updated = replace(current, **changes)
            if updated == current:
                return current
            self._items[item_id] = updated
        self._notify()
        return updated

    def remove(self, item_id: str) -> bool:
        """Stop tracking an item.

        Returns:
            True if the item was tracked.
        """
        with self._lock:
            removed = self._items.pop(item_id, None) is not None
        if removed:
            self._notify()
        return removed

    def clear(self, generation: int | None = None) -> bool:
        """Drop all tracked items.

        Args:
            generation: Only clear if this batch is still the latest one.

        Returns:
            True if the state was cleared.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._items = {}
        self._notify()
        return True

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            items = list(self._items.values())
        for listener in listeners:
            try:
                listener(items)
            except Exception:
                logger.exception("Upload progress listener failed")
