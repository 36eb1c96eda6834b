"""Backup operations: batch upload and download of photos.

Architecture:
    UploadOrchestrator → retry_with_backoff → BotClient.upload_file
                       → LocalPhotoStore (durable outcome)
                       → UploadTracker (live progress for observers)

Components:
- **UploadOrchestrator**: Sequential batch upload with per-item state
- **UploadTracker**: Snapshot/subscription view of per-item progress
- **retry_with_backoff / is_retriable**: Backoff policy
- **PhotoDownloader**: Fetches backed-up files into a local cache
- **register_bot / resolve_credential**: Bot setup and lookup
"""

from wyvern.client.backup.credentials import (
    BotSetupError,
    Credential,
    DestinationAccessError,
    InvalidTokenError,
    RegisteredBot,
    register_bot,
    resolve_credential,
)
from wyvern.client.backup.download import PhotoDownloader
from wyvern.client.backup.orchestrator import DEFAULT_CLEAR_DELAY, UploadOrchestrator
from wyvern.client.backup.retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    is_retriable,
    retry_with_backoff,
)
from wyvern.client.backup.tracker import UploadTracker, compute_stats
from wyvern.client.backup.types import (
    BackupError,
    BatchRejectedError,
    BatchStats,
    BotNotConfiguredError,
    BotTokenMissingError,
    NetworkNotAllowedError,
    UploadItem,
    UploadStatus,
)

__all__ = [
    # Orchestration
    "DEFAULT_CLEAR_DELAY",
    "PhotoDownloader",
    "UploadOrchestrator",
    "UploadTracker",
    "compute_stats",
    # Retry
    "DEFAULT_BASE_DELAY",
    "DEFAULT_MAX_RETRIES",
    "is_retriable",
    "retry_with_backoff",
    # Credentials
    "BotSetupError",
    "Credential",
    "DestinationAccessError",
    "InvalidTokenError",
    "RegisteredBot",
    "register_bot",
    "resolve_credential",
    # Types
    "BackupError",
    "BatchRejectedError",
    "BatchStats",
    "BotNotConfiguredError",
    "BotTokenMissingError",
    "NetworkNotAllowedError",
    "UploadItem",
    "UploadStatus",
]
