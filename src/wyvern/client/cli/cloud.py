"""Cloud and status commands for the wyvern CLI.

Commands:
- status: Show backup status
- cloud: List backed-up files
- download: Download a backed-up file into the cache
"""

from __future__ import annotations

import sys
from datetime import datetime

import click

from wyvern.client.cli.config import get_cache_dir, make_client, open_store


def format_size(size: int | None) -> str:
    """Human readable byte count."""
    if size is None:
        return "?"
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def format_time(timestamp_ms: int | None) -> str:
    if not timestamp_ms:
        return "never"
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")


@click.command()
def status() -> None:
    """Show backup status."""
    store = open_store()
    try:
        indexed = store.photo_count()
        uploaded = store.uploaded_photo_count()
        cloud = store.cloud_stats()
        primary_id = store.primary_bot_id
        bot = store.get_bot(primary_id) if primary_id else None
        click.echo(f"Bot: {bot.name + ' -> ' + bot.channel_id if bot else 'not configured'}")
        click.echo(f"Wi-Fi only: {'on' if store.wifi_only else 'off'}")
        click.echo(f"Indexed: {indexed}, backed up: {uploaded}, pending: {indexed - uploaded}")
        click.echo(f"Cloud: {cloud.count} file(s), {format_size(cloud.total_size)}")
        click.echo(f"Last backup: {format_time(store.last_backup_time)}")
    finally:
        store.close()


@click.command()
@click.option("--limit", default=50, show_default=True, help="Maximum number of files to list.")
def cloud(limit: int) -> None:
    """List backed-up files, newest first."""
    store = open_store()
    try:
        records = store.list_remote_photos(limit=limit)
        stats = store.cloud_stats()
    finally:
        store.close()

    if not records:
        click.echo("No files backed up yet.")
        return

    for record in records:
        click.echo(
            f"{format_time(record.uploaded_at)}  {format_size(record.file_size):>9}  "
            f"{record.file_name or '-'}  {record.remote_id}"
        )
    click.echo(f"\n{stats.count} file(s), {format_size(stats.total_size)} in total.")


@click.command()
@click.argument("remote_id")
@click.option("--name", help="File name for the downloaded copy.")
def download(remote_id: str, name: str | None) -> None:
    """Download the backed-up file REMOTE_ID into the cache."""
    from wyvern.client.backup import BatchRejectedError, PhotoDownloader
    from wyvern.client.keystore import TokenStore

    store = open_store()
    try:
        if name is None:
            record = store.get_remote_photo(remote_id)
            name = record.file_name if record and record.file_name else remote_id
        downloader = PhotoDownloader(
            store, TokenStore(), get_cache_dir(), client_factory=make_client
        )
        try:
            path = downloader.download(remote_id, name)
        except BatchRejectedError as e:
            click.echo(f"{e.title}: {e}", err=True)
            sys.exit(1)
    finally:
        store.close()

    if path is None:
        click.echo(f"Error: Failed to download {remote_id}.", err=True)
        sys.exit(1)
    click.echo(f"Downloaded to {path}")
