"""Bot credential setup and resolution.

This module provides:
- register_bot: Verify a token and channel, then store the bot
- resolve_credential: Find the primary bot and its token before a batch
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wyvern.client.api import BotChat, BotClient, BotUser
from wyvern.client.backup.types import (
    BackupError,
    BotNotConfiguredError,
    BotTokenMissingError,
    NetworkNotAllowedError,
)
from wyvern.client.network import NetworkProbe, is_network_allowed
from wyvern.client.state import BotRecord, now_ms

if TYPE_CHECKING:
    from wyvern.client.keystore import TokenStore
    from wyvern.client.state import LocalPhotoStore

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], BotClient]

DESTINATION_HINTS = (
    "The bot is added to the channel",
    "The bot has admin permissions",
    "The channel ID is correct",
)


class BotSetupError(BackupError):
    """A bot could not be configured."""


class InvalidTokenError(BotSetupError):
    """getMe rejected the token."""


class DestinationAccessError(BotSetupError):
    """The bot cannot reach the configured channel.

    Attributes:
        description: Error reported by the API.
        hints: Likely causes the user should check.
    """

    def __init__(self, channel_id: str, description: str | None) -> None:
        self.channel_id = channel_id
        self.description = description
        self.hints = DESTINATION_HINTS
        checklist = "\n".join(f"- {hint}" for hint in self.hints)
        super().__init__(
            f"Cannot access channel {channel_id} ({description or 'unknown error'}). "
            f"Make sure:\n{checklist}"
        )


@dataclass
class Credential:
    """The bot used for a batch and its token."""

    bot: BotRecord
    token: str


@dataclass
class RegisteredBot:
    """Outcome of register_bot."""

    bot: BotRecord
    identity: BotUser
    chat: BotChat
    is_primary: bool


def resolve_credential(
    store: LocalPhotoStore,
    token_store: TokenStore,
    check_network: bool = False,
    network_probe: NetworkProbe | None = None,
) -> Credential:
    """Resolve the primary bot and its token.

    Checks run in order: primary bot configured, Wi-Fi-only gate (when
    check_network is set), token present.

    Raises:
        BotNotConfiguredError: No primary bot, or its record is gone.
        NetworkNotAllowedError: Wi-Fi-only is on and the network is refused.
        BotTokenMissingError: The token is not in secure storage.
    """
    bot_id = store.primary_bot_id
    if not bot_id:
        raise BotNotConfiguredError()

    bot = store.get_bot(bot_id)
    if bot is None:
        raise BotNotConfiguredError("Bot configuration not found.")

    if check_network and not is_network_allowed(store.wifi_only, network_probe):
        raise NetworkNotAllowedError()

    token = token_store.get_token(bot.id)
    if not token:
        raise BotTokenMissingError()

    return Credential(bot=bot, token=token)


def register_bot(
    store: LocalPhotoStore,
    token_store: TokenStore,
    name: str,
    token: str,
    channel_id: str,
    client_factory: ClientFactory = BotClient.from_token,
    make_primary: bool = False,
) -> RegisteredBot:
    """Verify a bot token and channel, then save the bot.

    The bot becomes primary when requested or when no primary bot exists.

    Raises:
        InvalidTokenError: The token was rejected.
        DestinationAccessError: The channel is not reachable by the bot.
        TokenStoreError: The token could not be stored.
    """
    token = token.strip()
    channel_id = channel_id.strip()

    client = client_factory(token)
    try:
        me = client.verify_identity()
        if not me.ok or me.result is None:
            raise InvalidTokenError(
                f"The bot token is invalid ({me.description or 'unknown error'})."
            )

        chat = client.verify_destination(channel_id)
        if not chat.ok or chat.result is None:
            raise DestinationAccessError(channel_id, chat.description)
    finally:
        client.close()

    bot = BotRecord(
        id=str(uuid.uuid4()),
        name=name,
        channel_id=channel_id,
        created_at=now_ms(),
    )
    # Token first, so a bot row never exists without its secret
    token_store.save_token(bot.id, token)
    store.insert_bot(bot)

    is_primary = make_primary or not store.primary_bot_id
    if is_primary:
        store.primary_bot_id = bot.id

    logger.info(
        f"Registered bot {name} (@{me.result.username}) for chat {chat.result.id}"
    )
    return RegisteredBot(bot=bot, identity=me.result, chat=chat.result, is_primary=is_primary)
