"""Local media discovery.

This module provides:
- MediaAsset: A local photo or video selected for backup
- scan_media: Find media files under a folder
- asset_from_path / to_photo: Conversions used when indexing
"""

from __future__ import annotations

import mimetypes
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from wyvern.client.state import Photo

PHOTO_EXTS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".heif", ".bmp", ".tif", ".tiff",
    ".arw", ".cr2", ".cr3", ".nef", ".dng", ".raf", ".rw2",
}
VIDEO_EXTS = {".mp4", ".mov", ".m4v", ".avi", ".mkv", ".3gp", ".webm"}


@dataclass
class MediaAsset:
    """A local media item.

    Attributes:
        id: Stable local identifier (absolute path).
        path: File location.
        file_name: Name used for the upload.
        media_type: "photo" or "video".
        size: Size in bytes.
        created: Creation time (ms).
        modified: Modification time (ms).
    """

    id: str
    path: Path
    file_name: str
    media_type: str
    size: int = 0
    created: int = 0
    modified: int = 0


def media_type_of(path: Path) -> str | None:
    """Return "photo", "video" or None for non-media files."""
    suffix = path.suffix.lower()
    if suffix in PHOTO_EXTS:
        return "photo"
    if suffix in VIDEO_EXTS:
        return "video"
    return None


def is_media(path: Path) -> bool:
    return media_type_of(path) is not None


def asset_from_path(path: Path) -> MediaAsset:
    """Build a MediaAsset from a file on disk.

    Raises:
        ValueError: If the file is not a recognized photo or video.
        OSError: If the file cannot be stat'ed.
    """
    path = Path(path).expanduser().resolve()
    media_type = media_type_of(path)
    if media_type is None:
        raise ValueError(f"Not a photo or video: {path}")
    stat = path.stat()
    created = getattr(stat, "st_birthtime", stat.st_ctime)
    return MediaAsset(
        id=str(path),
        path=path,
        file_name=path.name,
        media_type=media_type,
        size=stat.st_size,
        created=int(created * 1000),
        modified=int(stat.st_mtime * 1000),
    )


def scan_media(folder: Path, recursive: bool = True) -> Iterator[MediaAsset]:
    """Yield media assets under a folder, in path order.

    Hidden files and directories are skipped.
    """
    folder = Path(folder).expanduser()
    pattern = "**/*" if recursive else "*"
    for path in sorted(folder.glob(pattern)):
        if any(part.startswith(".") for part in path.relative_to(folder).parts):
            continue
        if path.is_file() and is_media(path):
            yield asset_from_path(path)


def mime_type_for(asset: MediaAsset) -> str:
    """MIME type of an asset, guessed from its name."""
    guessed, _ = mimetypes.guess_type(asset.file_name)
    if guessed:
        return guessed
    return "image/jpeg" if asset.media_type == "photo" else "video/mp4"


def to_photo(asset: MediaAsset) -> Photo:
    """Create the (not yet uploaded) photo record for an asset."""
    return Photo(
        id=asset.id,
        file_name=asset.file_name,
        mime_type=mime_type_for(asset),
        file_size=asset.size,
        date_added=asset.created,
        date_modified=asset.modified,
    )
