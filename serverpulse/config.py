"""Configuration loader for serverpulse.

Reads settings from environment variables (optionally from a ``.env`` file)
and validates them once at startup. A missing required value is a fatal
startup error.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_MINECRAFT_PORT = 25565
DEFAULT_STATUS_API_URL = "https://api.mcsrvstat.us/3"

# env var -> BotConfig field
ENV_FIELDS = {
    "DISCORD_TOKEN": "discord_token",
    "CHANNEL_ID": "channel_id",
    "MC_SERVER_ADDRESS": "server_address",
    "UPDATE_INTERVAL": "update_interval",
    "RECENT_PLAYER_DAYS": "recent_player_days",
    "DATA_DIR": "data_dir",
    "STATUS_API_URL": "status_api_url",
    "LOG_LEVEL": "log_level",
}

REQUIRED_ENV = ("DISCORD_TOKEN", "CHANNEL_ID", "MC_SERVER_ADDRESS")


class ConfigError(ValueError):
    """Raised when the bot configuration is missing or invalid."""


class BotConfig(BaseModel):
    """Validated bot configuration, constant for the process lifetime."""

    discord_token: str = Field(..., min_length=1)
    channel_id: str = Field(..., min_length=1)
    server_address: str = Field(..., min_length=1)

    update_interval: int = Field(5, ge=1, description="Poll interval in minutes")
    recent_player_days: int = Field(7, ge=1, description="Recently seen retention window")

    data_dir: Path = Path("data")
    status_api_url: str = DEFAULT_STATUS_API_URL
    log_level: str = "INFO"

    @field_validator("discord_token", "channel_id", "server_address")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @property
    def server_host(self) -> str:
        return split_address(self.server_address)[0]

    @property
    def server_port(self) -> int:
        port = split_address(self.server_address)[1]
        return port if port is not None else DEFAULT_MINECRAFT_PORT

    @property
    def database_path(self) -> Path:
        return self.data_dir / "database.json"


def split_address(address: str) -> tuple[str, Optional[int]]:
    """Split ``host[:port]`` into host and optional port.

    A port that is not a valid integer in 1..65535 is treated as absent.
    """
    address = address.strip()
    host, sep, port_str = address.rpartition(":")
    if not sep or not host:
        return address, None
    try:
        port = int(port_str)
    except ValueError:
        return address, None
    if not 0 < port <= 65535:
        return host, None
    return host, port


def load_config(
    env_file: Optional[str | Path] = None,
    environ: Optional[dict[str, str]] = None,
) -> BotConfig:
    """Load and validate configuration.

    Args:
        env_file: Optional path to a .env file. Defaults to ``.env`` lookup
            in the working directory.
        environ: Environment mapping to read (defaults to ``os.environ``).

    Returns:
        Validated BotConfig

    Raises:
        ConfigError: If a required value is missing or a value is invalid
    """
    if environ is None:
        load_dotenv(dotenv_path=env_file, override=False)
        environ = dict(os.environ)

    missing = [name for name in REQUIRED_ENV if not environ.get(name, "").strip()]
    if missing:
        raise ConfigError(f"{', '.join(missing)} is required in .env file")

    values: dict[str, Any] = {}
    for env_name, field_name in ENV_FIELDS.items():
        raw = environ.get(env_name)
        if raw is not None and raw.strip():
            values[field_name] = raw.strip()

    try:
        config = BotConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e

    logger.debug(
        f"Loaded config: server={config.server_address}, channel={config.channel_id}, "
        f"interval={config.update_interval}m, recent_days={config.recent_player_days}"
    )
    return config
