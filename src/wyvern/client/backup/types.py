"""Shared types and dataclasses for backup operations.

This module provides:
- BackupError, BatchRejectedError and its subclasses: Exception classes
- UploadStatus: Lifecycle of one item in a batch
- UploadItem: Tracked state of one item
- BatchStats: Aggregate view of a batch
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class BackupError(Exception):
    """Base exception for backup errors."""


class BatchRejectedError(BackupError):
    """A batch was refused before any item was attempted.

    Attributes:
        title: Short heading for the alert shown to the user.
        user_message: What the user should do about it.
    """

    title = "Error"

    def __init__(self, user_message: str) -> None:
        super().__init__(user_message)
        self.user_message = user_message


class BotNotConfiguredError(BatchRejectedError):
    """No primary bot is configured (or its record is gone)."""

    def __init__(
        self,
        user_message: str = "Please configure your Telegram bot first (wyvern bot add).",
    ) -> None:
        super().__init__(user_message)


class BotTokenMissingError(BatchRejectedError):
    """The primary bot's token is missing from secure storage."""

    def __init__(
        self,
        user_message: str = "Bot token not found. Please reconfigure your bot.",
    ) -> None:
        super().__init__(user_message)


class NetworkNotAllowedError(BatchRejectedError):
    """Wi-Fi-only uploads are enabled and the current network does not qualify."""

    title = "WiFi Required"

    def __init__(
        self,
        user_message: str = (
            "WiFi-only uploads is enabled. Please connect to WiFi and try again."
        ),
    ) -> None:
        super().__init__(user_message)


class UploadStatus(str, Enum):
    """Status of one item in a batch."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadItem:
    """Tracked state of one batch item.

    Instances are immutable snapshots; the tracker replaces them on every
    transition.

    Attributes:
        item_id: Local id of the media item.
        local_reference: Path of the file being uploaded.
        progress: Percentage of bytes sent (0..100).
        status: Current status.
        error: Last error description, for failed items.
        retry_count: Retries performed for this item.
    """

    item_id: str
    local_reference: str
    progress: int = 0
    status: UploadStatus = UploadStatus.PENDING
    error: str | None = None
    retry_count: int = 0


@dataclass(frozen=True)
class BatchStats:
    """Aggregate progress of a batch.

    Attributes:
        total: Number of tracked items.
        completed: Items uploaded successfully.
        failed: Items that gave up.
        current: 1-based position of the uploading item (0 if none).
        current_progress: Progress of the uploading item.
    """

    total: int = 0
    completed: int = 0
    failed: int = 0
    current: int = 0
    current_progress: int = 0

    @property
    def settled(self) -> int:
        """Items that reached a final status."""
        return self.completed + self.failed


# Type alias for tracker change notifications
TrackerListener = Callable[[list[UploadItem]], None]
