"""Core module - Shared configuration."""

from wyvern.core.config import DEFAULT_API_URL, BotConfig

__all__ = [
    "DEFAULT_API_URL",
    "BotConfig",
]
