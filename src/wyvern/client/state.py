"""Local state management for the backup client.

This module provides:
- LocalPhotoStore: SQLite-backed store for photos, remote records, bots, settings
- Photo: A local media item and its upload status
- RemoteRecord: A file known to exist in the backup channel
- BotRecord: A configured bot (its token lives in the keyring, not here)

Architecture:
    The photos table is the local view (one row per indexed file). The
    remote_photos table is append-only and records every successful
    upload, independent of the local photos that produced it.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Setting keys
PRIMARY_BOT_ID = "primary_bot_id"
WIFI_ONLY = "wifi_only"
LAST_BACKUP_TIME = "last_backup_time"


def now_ms() -> int:
    """Current time as Unix milliseconds."""
    return int(time.time() * 1000)


@dataclass
class Photo:
    """A local media item tracked for backup.

    Attributes:
        id: Local identifier (absolute path of the file).
        file_name: File name.
        mime_type: MIME type.
        file_size: Size in bytes.
        date_added: Creation time (ms).
        date_modified: Modification time (ms).
        remote_id: Remote file id once uploaded.
        is_uploaded: Whether the photo has been backed up.
        uploaded_at: Upload time (ms).
        message_id: Channel message holding the file.
        folder_id: Optional folder.
        ocr_text: Optional extracted text.
        is_encrypted: Whether the uploaded payload was encrypted.
    """

    id: str
    file_name: str
    mime_type: str
    file_size: int
    date_added: int
    date_modified: int
    remote_id: str | None = None
    is_uploaded: bool = False
    uploaded_at: int | None = None
    message_id: int | None = None
    folder_id: str | None = None
    ocr_text: str | None = None
    is_encrypted: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Photo:
        """Create Photo from database row."""
        return cls(
            id=row["id"],
            file_name=row["file_name"],
            mime_type=row["mime_type"],
            file_size=row["file_size"],
            date_added=row["date_added"],
            date_modified=row["date_modified"],
            remote_id=row["remote_id"],
            is_uploaded=bool(row["is_uploaded"]),
            uploaded_at=row["uploaded_at"],
            message_id=row["message_id"],
            folder_id=row["folder_id"],
            ocr_text=row["ocr_text"],
            is_encrypted=bool(row["is_encrypted"]),
        )


@dataclass
class RemoteRecord:
    """A file stored in the backup channel."""

    remote_id: str
    mime_type: str
    uploaded_at: int
    file_name: str | None = None
    file_size: int | None = None
    message_id: int | None = None
    thumbnail_cached: bool = False
    folder_id: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> RemoteRecord:
        """Create RemoteRecord from database row."""
        return cls(
            remote_id=row["remote_id"],
            mime_type=row["mime_type"],
            uploaded_at=row["uploaded_at"],
            file_name=row["file_name"],
            file_size=row["file_size"],
            message_id=row["message_id"],
            thumbnail_cached=bool(row["thumbnail_cached"]),
            folder_id=row["folder_id"],
        )


@dataclass
class BotRecord:
    """A configured bot and the channel it uploads into."""

    id: str
    name: str
    channel_id: str
    created_at: int
    is_active: bool = True
    last_used: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> BotRecord:
        """Create BotRecord from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            channel_id=row["channel_id"],
            created_at=row["created_at"],
            is_active=bool(row["is_active"]),
            last_used=row["last_used"],
        )


@dataclass
class CloudStats:
    """Totals over the remote records."""

    count: int
    total_size: int


class LocalPhotoStore:
    """SQLite-based durable state for the backup client."""

    def __init__(self, db_path: Path) -> None:
        """Initialize the state database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS photos (
                id TEXT PRIMARY KEY NOT NULL,
                remote_id TEXT,
                file_name TEXT NOT NULL,
                mime_type TEXT NOT NULL,
                file_size INTEGER NOT NULL,
                date_added INTEGER NOT NULL,
                date_modified INTEGER NOT NULL,
                is_uploaded INTEGER NOT NULL DEFAULT 0,
                uploaded_at INTEGER,
                message_id INTEGER,
                folder_id TEXT,
                ocr_text TEXT,
                is_encrypted INTEGER NOT NULL DEFAULT 0
            );

            -- Append-only record of files in the backup channel
            CREATE TABLE IF NOT EXISTS remote_photos (
                remote_id TEXT PRIMARY KEY NOT NULL,
                file_name TEXT,
                mime_type TEXT NOT NULL,
                file_size INTEGER,
                uploaded_at INTEGER NOT NULL,
                message_id INTEGER,
                thumbnail_cached INTEGER NOT NULL DEFAULT 0,
                folder_id TEXT
            );

            -- Bot tokens are kept in the keyring, never in this table
            CREATE TABLE IF NOT EXISTS bots (
                id TEXT PRIMARY KEY NOT NULL,
                name TEXT NOT NULL,
                channel_id TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL,
                last_used INTEGER
            );

            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_photos_uploaded ON photos(is_uploaded);
            CREATE INDEX IF NOT EXISTS idx_photos_date ON photos(date_added DESC);
            CREATE INDEX IF NOT EXISTS idx_remote_photos_date
                ON remote_photos(uploaded_at DESC);
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # === Photos ===

    def insert_photo(self, photo: Photo) -> None:
        """Insert or replace a photo record."""
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO photos (
                    id, remote_id, file_name, mime_type, file_size, date_added,
                    date_modified, is_uploaded, uploaded_at, message_id, folder_id,
                    ocr_text, is_encrypted
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    photo.id,
                    photo.remote_id,
                    photo.file_name,
                    photo.mime_type,
                    photo.file_size,
                    photo.date_added,
                    photo.date_modified,
                    int(photo.is_uploaded),
                    photo.uploaded_at,
                    photo.message_id,
                    photo.folder_id,
                    photo.ocr_text,
                    int(photo.is_encrypted),
                ),
            )

    def add_photo_if_missing(self, photo: Photo) -> bool:
        """Index a photo without touching an existing record.

        Returns:
            True if a new row was created.
        """
        with self._lock:
            if self.get_photo(photo.id) is not None:
                return False
            self.insert_photo(photo)
        return True

    def get_photo(self, photo_id: str) -> Photo | None:
        """Get a photo by local id."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM photos WHERE id = ?", (photo_id,)
            ).fetchone()
        return Photo.from_row(row) if row else None

    def list_photos(self, limit: int = 100, offset: int = 0) -> list[Photo]:
        """List photos, newest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM photos ORDER BY date_added DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [Photo.from_row(row) for row in rows]

    def list_not_uploaded(self) -> list[Photo]:
        """List photos that have not been backed up yet, newest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM photos WHERE is_uploaded = 0 ORDER BY date_added DESC"
            ).fetchall()
        return [Photo.from_row(row) for row in rows]

    def mark_photo_uploaded(
        self,
        photo_id: str,
        remote_id: str,
        message_id: int | None,
        uploaded_at: int | None = None,
    ) -> bool:
        """Record a successful upload for a local photo.

        Args:
            photo_id: Local id.
            remote_id: Remote file id.
            message_id: Channel message holding the file.
            uploaded_at: Upload time (ms), default now.

        Returns:
            True if a photo row was updated.
        """
        with self._lock:
            cursor = self._conn.execute(
                """
                UPDATE photos
                SET is_uploaded = 1, remote_id = ?, uploaded_at = ?, message_id = ?
                WHERE id = ?
                """,
                (remote_id, uploaded_at or now_ms(), message_id, photo_id),
            )
        if cursor.rowcount == 0:
            logger.warning(f"No indexed photo {photo_id} to mark as uploaded")
            return False
        return True

    def photo_count(self) -> int:
        """Count indexed photos."""
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS count FROM photos").fetchone()
        return int(row["count"])

    def uploaded_photo_count(self) -> int:
        """Count photos that have been backed up."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) AS count FROM photos WHERE is_uploaded = 1"
            ).fetchone()
        return int(row["count"])

    # === Remote records ===

    def insert_remote_photo(self, record: RemoteRecord) -> bool:
        """Append a remote record. Existing rows are never overwritten.

        Returns:
            True if the record was inserted.
        """
        with self._lock:
            cursor = self._conn.execute(
                """
                INSERT OR IGNORE INTO remote_photos (
                    remote_id, file_name, mime_type, file_size, uploaded_at,
                    message_id, thumbnail_cached, folder_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.remote_id,
                    record.file_name,
                    record.mime_type,
                    record.file_size,
                    record.uploaded_at,
                    record.message_id,
                    int(record.thumbnail_cached),
                    record.folder_id,
                ),
            )
        if cursor.rowcount == 0:
            logger.warning(f"Remote record {record.remote_id} already exists")
            return False
        return True

    def record_upload(self, photo_id: str, record: RemoteRecord) -> bool:
        """Mark a photo uploaded and append its remote record atomically.

        Either both writes land or neither does.

        Args:
            photo_id: Local id of the uploaded photo.
            record: Remote record for the uploaded file.

        Returns:
            True if the remote record was inserted.
        """
        with self._lock:
            self._conn.execute("BEGIN")
            try:
                self.mark_photo_uploaded(
                    photo_id,
                    remote_id=record.remote_id,
                    message_id=record.message_id,
                    uploaded_at=record.uploaded_at,
                )
                inserted = self.insert_remote_photo(record)
            except Exception:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")
        return inserted

    def get_remote_photo(self, remote_id: str) -> RemoteRecord | None:
        """Get a remote record by remote id."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM remote_photos WHERE remote_id = ?", (remote_id,)
            ).fetchone()
        return RemoteRecord.from_row(row) if row else None

    def list_remote_photos(self, limit: int = 100, offset: int = 0) -> list[RemoteRecord]:
        """List remote records, most recent upload first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM remote_photos ORDER BY uploaded_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [RemoteRecord.from_row(row) for row in rows]

    def cloud_stats(self) -> CloudStats:
        """Count remote records and sum their sizes."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) AS count, COALESCE(SUM(file_size), 0) AS total "
                "FROM remote_photos"
            ).fetchone()
        return CloudStats(count=int(row["count"]), total_size=int(row["total"]))

    # === Bots ===

    def insert_bot(self, bot: BotRecord) -> None:
        """Insert or replace a bot record."""
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO bots (
                    id, name, channel_id, is_active, created_at, last_used
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    bot.id,
                    bot.name,
                    bot.channel_id,
                    int(bot.is_active),
                    bot.created_at,
                    bot.last_used,
                ),
            )

    def get_bot(self, bot_id: str) -> BotRecord | None:
        """Get a bot by id."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM bots WHERE id = ?", (bot_id,)
            ).fetchone()
        return BotRecord.from_row(row) if row else None

    def list_bots(self) -> list[BotRecord]:
        """List all bots in creation order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM bots ORDER BY created_at"
            ).fetchall()
        return [BotRecord.from_row(row) for row in rows]

    def list_active_bots(self) -> list[BotRecord]:
        """List active bots in creation order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM bots WHERE is_active = 1 ORDER BY created_at"
            ).fetchall()
        return [BotRecord.from_row(row) for row in rows]

    def touch_bot(self, bot_id: str) -> None:
        """Stamp a bot's last_used time."""
        with self._lock:
            self._conn.execute(
                "UPDATE bots SET last_used = ? WHERE id = ?", (now_ms(), bot_id)
            )

    # === Settings ===

    def get_setting(self, key: str) -> str | None:
        """Get a setting value."""
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM settings WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: Any) -> None:
        """Set a setting value (stored as text)."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, None if value is None else str(value)),
            )

    @property
    def primary_bot_id(self) -> str | None:
        """Id of the bot used for backups."""
        return self.get_setting(PRIMARY_BOT_ID) or None

    @primary_bot_id.setter
    def primary_bot_id(self, bot_id: str | None) -> None:
        self.set_setting(PRIMARY_BOT_ID, bot_id)

    @property
    def wifi_only(self) -> bool:
        """Whether uploads require Wi-Fi (on unless explicitly disabled)."""
        return self.get_setting(WIFI_ONLY) != "0"

    @wifi_only.setter
    def wifi_only(self, enabled: bool) -> None:
        self.set_setting(WIFI_ONLY, "1" if enabled else "0")

    @property
    def last_backup_time(self) -> int | None:
        """Time (ms) of the last batch that uploaded something."""
        value = self.get_setting(LAST_BACKUP_TIME)
        return int(value) if value else None

    @last_backup_time.setter
    def last_backup_time(self, timestamp: int) -> None:
        self.set_setting(LAST_BACKUP_TIME, timestamp)
