"""Backup commands for the wyvern CLI.

Commands:
- index: Index the media files of a folder
- upload: Upload media files to the backup channel
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

import click

from wyvern.client.cli.config import make_client, open_store

if TYPE_CHECKING:
    from wyvern.client.backup import UploadItem
    from wyvern.client.media import MediaAsset
    from wyvern.client.state import LocalPhotoStore


def collect_assets(paths: Iterable[Path]) -> list[MediaAsset]:
    """Expand files and folders into media assets, skipping non-media files."""
    from wyvern.client.media import asset_from_path, is_media, scan_media

    assets: list[MediaAsset] = []
    seen: set[str] = set()
    for path in paths:
        if path.is_dir():
            found = list(scan_media(path))
        elif is_media(path):
            found = [asset_from_path(path)]
        else:
            click.echo(f"Skipping {path}: not a photo or video", err=True)
            continue
        for asset in found:
            if asset.id not in seen:
                seen.add(asset.id)
                assets.append(asset)
    return assets


def index_assets(store: LocalPhotoStore, assets: Iterable[MediaAsset]) -> int:
    """Add assets to the photo index. Returns how many were new."""
    from wyvern.client.media import to_photo

    return sum(1 for asset in assets if store.add_photo_if_missing(to_photo(asset)))


def pending_assets(store: LocalPhotoStore) -> list[MediaAsset]:
    """Indexed photos that are not uploaded yet and still exist on disk."""
    from wyvern.client.media import asset_from_path

    assets = []
    for photo in store.list_not_uploaded():
        path = Path(photo.id)
        if path.is_file():
            assets.append(asset_from_path(path))
        else:
            click.echo(f"Skipping {photo.file_name}: file no longer exists", err=True)
    return assets


class ProgressLine:
    """Single status line that follows the item being uploaded."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._width = 0

    def render(self, items: list[UploadItem]) -> None:
        from wyvern.client.backup import UploadStatus, compute_stats

        stats = compute_stats(items)
        current = next(
            (item for item in items if item.status is UploadStatus.UPLOADING), None
        )
        if current is None:
            return
        name = Path(current.local_reference).name
        line = f"[{stats.current}/{stats.total}] {name} {current.progress}%"
        if current.retry_count:
            line += f" (retry {current.retry_count})"
        with self._lock:
            padding = " " * max(0, self._width - len(line))
            click.echo(f"\r{line}{padding}", nl=False)
            self._width = len(line)

    def finish(self) -> None:
        with self._lock:
            if self._width:
                click.echo("\r" + " " * self._width + "\r", nl=False)
                self._width = 0


@click.command()
@click.argument(
    "folder", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("--no-recursive", is_flag=True, help="Only index the folder itself.")
def index(folder: Path, no_recursive: bool) -> None:
    """Index the photos and videos in FOLDER."""
    from wyvern.client.media import scan_media

    store = open_store()
    try:
        assets = list(scan_media(folder, recursive=not no_recursive))
        added = index_assets(store, assets)
        total = store.photo_count()
    finally:
        store.close()
    click.echo(f"Found {len(assets)} media file(s), {added} new. {total} indexed in total.")


@click.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--pending", is_flag=True, help="Upload every indexed photo not yet backed up.")
@click.option("--no-progress", is_flag=True, help="Disable the progress line.")
def upload(paths: tuple[Path, ...], pending: bool, no_progress: bool) -> None:
    """Upload photos and videos to the backup channel.

    PATHS may be files or folders. They are indexed before uploading.
    """
    from wyvern.client.backup import BatchRejectedError, UploadOrchestrator, UploadStatus
    from wyvern.client.keystore import TokenStore

    if not paths and not pending:
        click.echo("Error: Give files or folders to upload, or use --pending.", err=True)
        sys.exit(1)

    store = open_store()
    try:
        assets = collect_assets(paths)
        index_assets(store, assets)
        if pending:
            known = {asset.id for asset in assets}
            assets.extend(a for a in pending_assets(store) if a.id not in known)

        if not assets:
            click.echo("Nothing to upload.")
            return

        # The process exits after the batch, so tracked state is never cleared
        orchestrator = UploadOrchestrator(
            store, TokenStore(), client_factory=make_client, clear_delay=None
        )
        progress = ProgressLine()
        unsubscribe = None
        if not no_progress:
            unsubscribe = orchestrator.tracker.subscribe(progress.render)

        click.echo(f"Uploading {len(assets)} file(s)...")
        try:
            stats = orchestrator.upload_batch(assets)
        except BatchRejectedError as e:
            click.echo(f"{e.title}: {e}", err=True)
            sys.exit(1)
        finally:
            if unsubscribe is not None:
                unsubscribe()
            progress.finish()

        failed = [
            item
            for item in orchestrator.tracker.snapshot()
            if item.status is UploadStatus.FAILED
        ]
    finally:
        store.close()

    click.echo(f"Uploaded {stats.completed} of {stats.total} file(s).")
    if failed:
        click.echo(f"{len(failed)} file(s) failed:", err=True)
        for item in failed:
            click.echo(f"  {item.local_reference}: {item.error}", err=True)
        sys.exit(1)
