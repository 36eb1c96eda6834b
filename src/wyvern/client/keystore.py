"""Secure storage for bot tokens.

Bot tokens never touch the state database: they are kept in the OS keyring
under the "wyvern" service, one entry per bot id.
"""

from __future__ import annotations

import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "wyvern"
BOT_TOKEN_PREFIX = "bot_token_"


class TokenStoreError(Exception):
    """Exception raised when a token cannot be written to the keyring."""


class TokenStore:
    """Reads and writes bot tokens in the OS keyring."""

    def __init__(self, service: str = KEYRING_SERVICE) -> None:
        self._service = service

    @staticmethod
    def _entry(bot_id: str) -> str:
        return f"{BOT_TOKEN_PREFIX}{bot_id}"

    def save_token(self, bot_id: str, token: str) -> None:
        """Store a bot token.

        Raises:
            TokenStoreError: If the keyring rejects the write.
        """
        try:
            keyring.set_password(self._service, self._entry(bot_id), token)
        except KeyringError as e:
            raise TokenStoreError(f"Failed to save bot token securely: {e}") from e

    def get_token(self, bot_id: str) -> str | None:
        """Get a bot token.

        Returns:
            The token, or None if it is missing or the keyring is unavailable.
        """
        try:
            return keyring.get_password(self._service, self._entry(bot_id))
        except KeyringError as e:
            logger.error(f"Failed to read bot token for {bot_id}: {e}")
            return None

    def has_token(self, bot_id: str) -> bool:
        """Check whether a token is stored for a bot."""
        return bool(self.get_token(bot_id))

    def delete_token(self, bot_id: str) -> None:
        """Delete a bot token (missing tokens are ignored).

        Raises:
            TokenStoreError: If the keyring fails for another reason.
        """
        try:
            keyring.delete_password(self._service, self._entry(bot_id))
        except PasswordDeleteError:
            logger.debug(f"No token stored for {bot_id}")
        except KeyringError as e:
            raise TokenStoreError(f"Failed to delete bot token: {e}") from e
