"""Shared configuration classes for wyvern.

This module defines the connection settings used by the bot API client.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_API_URL = "https://api.telegram.org"


@dataclass
class BotConfig:
    """Configuration for talking to the Telegram Bot API on behalf of a bot.

    Attributes:
        token: Bot token issued by @BotFather.
        api_url: Root URL of the Bot API (e.g., "https://api.telegram.org").
        timeout: Request timeout in seconds.
        upload_timeout: Timeout in seconds for sendDocument uploads.
    """

    token: str
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    upload_timeout: float = 300.0

    def __post_init__(self) -> None:
        """Normalize API URL."""
        self.api_url = self.api_url.rstrip("/")

    @property
    def base_url(self) -> str:
        """Get the method endpoint prefix for this bot.

        Returns:
            URL that method names are appended to.
        """
        return f"{self.api_url}/bot{self.token}"

    @property
    def file_base_url(self) -> str:
        """Get the file download prefix for this bot.

        Returns:
            URL that getFile paths are appended to.
        """
        return f"{self.api_url}/file/bot{self.token}"

    def __repr__(self) -> str:
        return f"BotConfig(api_url={self.api_url!r}, timeout={self.timeout})"
