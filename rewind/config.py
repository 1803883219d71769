"""Configuration management for Rewind CLI."""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get config directory path."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "rewind"


def get_data_dir() -> Path:
    """Get data directory path."""
    if os.name == "nt":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home()))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "rewind"


def get_cookie_file() -> Path:
    return get_data_dir() / "cookies.json"


@dataclass
class Config:
    """Rewind CLI configuration."""
    server_url: str = ""
    username: str = ""
    default_player: Literal["mpv", "vlc"] = "mpv"
    mpv_args: list[str] = field(default_factory=list)
    vlc_args: list[str] = field(default_factory=list)
    request_timeout: float = 30.0
    available_poll_seconds: float = 15.0
    pending_poll_seconds: float = 0.5
    persist_cookies: bool = True


_config: Config | None = None


def load_config() -> Config:
    """Load configuration from file."""
    global _config
    if _config is not None:
        return _config

    config_file = get_config_dir() / "config.json"

    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            _config = Config(**{k: v for k, v in data.items() if k in Config.__dataclass_fields__})
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Failed to load config from %s: %s", config_file, e)
            _config = Config()
    else:
        _config = Config()

    return _config


def save_config(config: Config) -> None:
    """Save configuration to file."""
    global _config
    _config = config

    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_file = config_dir / "config.json"

    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(asdict(config), f, indent=2)


def get_config() -> Config:
    """Get current configuration."""
    return load_config()


def reset_config() -> None:
    """Forget the cached configuration so the next access reloads it."""
    global _config
    _config = None
