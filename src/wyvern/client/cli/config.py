"""Configuration utilities for the wyvern CLI.

Paths, the config.json file and the shared helpers every command uses to
open the store and build a Bot API client.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from wyvern.client.api import BotClient
from wyvern.client.state import LocalPhotoStore
from wyvern.core.config import DEFAULT_API_URL, BotConfig

CONFIG_DIR_ENV = "WYVERN_HOME"


def get_config_dir() -> Path:
    """Get the configuration directory for wyvern.

    Returns:
        Path to $WYVERN_HOME, or ~/.wyvern.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".wyvern"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_db_path() -> Path:
    """Get the path to the state database."""
    return get_config_dir() / "wyvern.db"


def get_cache_dir() -> Path:
    """Get the download cache directory (configured or <config dir>/cache)."""
    config = load_config()
    if config.get("cache_dir"):
        return Path(config["cache_dir"]).expanduser().resolve()
    return get_config_dir() / "cache"


def open_store() -> LocalPhotoStore:
    """Open the state database."""
    return LocalPhotoStore(get_db_path())


def make_client(token: str) -> BotClient:
    """Create a Bot API client honoring the configured API URL."""
    config = load_config()
    return BotClient(
        BotConfig(token=token, api_url=config.get("api_url") or DEFAULT_API_URL)
    )


def setup_logging(verbose: bool) -> None:
    """Configure logging for CLI runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs request URLs, and Bot API URLs embed the token
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
