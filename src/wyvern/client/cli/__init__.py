"""Command-line interface for Wyvern Photos.

This module provides the main CLI entry point and assembles all commands.

Commands:
- bot: Manage the Telegram bots used for backups
- settings: Show or change upload settings
- index: Index the media files of a folder
- upload: Upload media files to the backup channel
- status: Show backup status
- cloud: List backed-up files
- download: Download a backed-up file
"""

from __future__ import annotations

import click

from wyvern.client.cli.backup import index, upload
from wyvern.client.cli.bot import bot, settings
from wyvern.client.cli.cloud import cloud, download, status
from wyvern.client.cli.config import (
    get_cache_dir,
    get_config_dir,
    get_config_file,
    get_db_path,
    load_config,
    save_config,
    setup_logging,
)


@click.group()
@click.version_option(package_name="wyvern-photos")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Wyvern Photos - back up photos and videos to a Telegram channel."""
    setup_logging(verbose)


# Bot commands
cli.add_command(bot)
cli.add_command(settings)

# Backup commands
cli.add_command(index)
cli.add_command(upload)

# Cloud commands
cli.add_command(status)
cli.add_command(cloud)
cli.add_command(download)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_cache_dir",
    "get_config_dir",
    "get_config_file",
    "get_db_path",
    "load_config",
    "save_config",
]
