"""Bot and settings commands for the wyvern CLI.

Commands:
- bot add: Verify and store a bot for a channel
- bot list: Show configured bots
- bot use: Make a bot the primary one
- settings: Show or change upload settings
"""

from __future__ import annotations

import sys

import click

from wyvern.client.cli.config import make_client, open_store


@click.group()
def bot() -> None:
    """Manage the Telegram bots used for backups."""


@bot.command("add")
@click.option("--name", default="Wyvern Bot", show_default=True, help="Display name for the bot.")
@click.option(
    "--token",
    prompt="Bot token (from @BotFather)",
    hide_input=True,
    help="Bot token issued by @BotFather.",
)
@click.option("--channel", required=True, help="Channel ID (e.g., -1001234567890) or @username.")
@click.option("--primary", is_flag=True, help="Use this bot for backups even if another is set.")
def add_bot(name: str, token: str, channel: str, primary: bool) -> None:
    """Verify a bot token and channel access, then save the bot.

    The token is stored in the system keyring, never in the database.
    """
    from wyvern.client.backup import (
        DestinationAccessError,
        InvalidTokenError,
        register_bot,
    )
    from wyvern.client.keystore import TokenStore, TokenStoreError

    if not token.strip() or not channel.strip():
        click.echo("Error: Bot token and channel ID are required.", err=True)
        sys.exit(1)

    store = open_store()
    try:
        click.echo("Verifying bot token and channel access...")
        registered = register_bot(
            store,
            TokenStore(),
            name=name,
            token=token,
            channel_id=channel,
            client_factory=make_client,
            make_primary=primary,
        )
    except InvalidTokenError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except DestinationAccessError as e:
        click.echo(f"Channel Access Error: {e}", err=True)
        sys.exit(1)
    except TokenStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    chat = registered.chat
    click.echo(f"\nBot '{name}' configured successfully!")
    click.echo(f"Bot: @{registered.identity.username or registered.identity.first_name}")
    click.echo(f"Channel: {chat.title or chat.username or chat.id} ({chat.type})")
    click.echo(f"Bot ID: {registered.bot.id}")
    if registered.is_primary:
        click.echo("This bot is now used for backups.")


@bot.command("list")
def list_bots() -> None:
    """Show configured bots."""
    store = open_store()
    try:
        bots = store.list_bots()
        primary = store.primary_bot_id
    finally:
        store.close()

    if not bots:
        click.echo("No bots configured. Run 'wyvern bot add' first.")
        return

    for record in bots:
        marker = "*" if record.id == primary else " "
        state = "" if record.is_active else " (inactive)"
        click.echo(f"{marker} {record.id}  {record.name}  -> {record.channel_id}{state}")


@bot.command("use")
@click.argument("bot_id")
def use_bot(bot_id: str) -> None:
    """Make BOT_ID the bot used for backups."""
    store = open_store()
    try:
        record = store.get_bot(bot_id)
        if record is None:
            click.echo(f"Error: No bot with id {bot_id}.", err=True)
            sys.exit(1)
        store.primary_bot_id = record.id
    finally:
        store.close()
    click.echo(f"Backups now use '{record.name}'.")


@click.command()
@click.option(
    "--wifi-only/--any-network",
    default=None,
    help="Only upload on Wi-Fi (or Ethernet), or on any network.",
)
def settings(wifi_only: bool | None) -> None:
    """Show or change upload settings."""
    store = open_store()
    try:
        if wifi_only is not None:
            store.wifi_only = wifi_only
        click.echo(f"Wi-Fi only: {'on' if store.wifi_only else 'off'}")
        click.echo(f"Primary bot: {store.primary_bot_id or 'not configured'}")
    finally:
        store.close()
