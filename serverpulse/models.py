"""
Core data model - observations and presence records

Observation is built fresh every poll cycle from the status API document
(mcsrvstat.us v3) and is immutable afterwards.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_PORT = 25565

# Fields that only make sense for an online server
DESCRIPTIVE_FIELDS = (
    "ip",
    "hostname",
    "version",
    "software",
    "motd",
    "map_name",
    "gamemode",
    "plugins",
    "mods",
    "info",
    "icon",
    "eula_blocked",
    "players_online",
    "players_max",
    "api_version",
)


class AddOn(BaseModel):
    """Installed plugin or mod"""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str | None = None


class Observation(BaseModel):
    """Result of one poll cycle.

    An offline observation never carries players or descriptive fields;
    they are discarded at construction.
    """

    model_config = ConfigDict(frozen=True)

    online: bool
    host: str
    port: int = Field(DEFAULT_PORT, ge=0, le=65535)
    latency_ms: int | None = Field(None, ge=0)
    online_players: list[str] = Field(default_factory=list)

    # Opaque pass-through data used for rendering only
    ip: str | None = None
    hostname: str | None = None
    version: str | None = None
    software: str | None = None
    motd: list[str] = Field(default_factory=list)
    map_name: str | None = None
    gamemode: str | None = None
    plugins: list[AddOn] = Field(default_factory=list)
    mods: list[AddOn] = Field(default_factory=list)
    info: list[str] = Field(default_factory=list)
    icon: str | None = None
    eula_blocked: bool | None = None
    players_online: int | None = None
    players_max: int | None = None
    api_version: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _strip_offline_fields(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("online"):
            data = {k: v for k, v in data.items() if k not in DESCRIPTIVE_FIELDS}
            data["online_players"] = []
        return data

    @property
    def address(self) -> str:
        """host, with the port appended when it is not the default"""
        if self.port and self.port != DEFAULT_PORT:
            return f"{self.host}:{self.port}"
        return self.host

    @property
    def has_player_counts(self) -> bool:
        return self.players_online is not None and self.players_max is not None

    @classmethod
    def offline(cls, host: str, port: int | None = None, latency_ms: int | None = None) -> Observation:
        """Synthetic observation for an unreachable server or status API."""
        return cls(
            online=False,
            host=host,
            port=port if port is not None else DEFAULT_PORT,
            latency_ms=latency_ms,
        )

    @classmethod
    def from_api(
        cls,
        document: dict[str, Any],
        latency_ms: int | None,
        host: str,
        port: int | None = None,
    ) -> Observation:
        """
        Build an observation from a mcsrvstat.us v3 document.

        Args:
            document: Raw status document
            latency_ms: Probe latency to merge in (None if unknown)
            host: Requested host (kept instead of the resolved ip)
            port: Requested port, falls back to the document's port

        Returns:
            Observation
        """
        if port is None:
            port = _as_int(document.get("port"))
        if port is None or not 0 <= port <= 65535:
            port = DEFAULT_PORT

        if not document.get("online"):
            return cls.offline(host, port, latency_ms)

        players = document.get("players") if isinstance(document.get("players"), dict) else {}
        names = [
            str(p["name"])
            for p in players.get("list") or []
            if isinstance(p, dict) and p.get("name")
        ]
        debug = document.get("debug") if isinstance(document.get("debug"), dict) else {}
        map_info = document.get("map")

        return cls(
            online=True,
            host=host,
            port=port,
            latency_ms=latency_ms,
            online_players=names,
            ip=_as_str(document.get("ip")),
            hostname=_as_str(document.get("hostname")),
            version=_as_str(document.get("version")),
            software=_as_str(document.get("software")),
            motd=_clean_lines(document.get("motd")),
            map_name=_as_str(map_info.get("clean")) if isinstance(map_info, dict) else _as_str(map_info),
            gamemode=_as_str(document.get("gamemode")),
            plugins=_addons(document.get("plugins")),
            mods=_addons(document.get("mods")),
            info=_clean_lines(document.get("info")),
            icon=_as_str(document.get("icon")),
            eula_blocked=bool(document.get("eula_blocked")) if "eula_blocked" in document else None,
            players_online=_as_int(players.get("online")),
            players_max=_as_int(players.get("max")),
            api_version=_as_int(debug.get("apiversion")),
        )


class PresenceRecord(BaseModel):
    """Last time a player name was seen online"""

    name: str
    last_seen_at: datetime


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _clean_lines(block: Any) -> list[str]:
    """Extract the ``clean`` lines of a motd/info block"""
    if not isinstance(block, dict):
        return []
    lines = block.get("clean") or []
    if not isinstance(lines, list):
        return []
    return [str(line) for line in lines]


def _addons(items: Any) -> list[AddOn]:
    if not isinstance(items, list):
        return []
    result = []
    for item in items:
        if isinstance(item, dict) and item.get("name"):
            result.append(AddOn(name=str(item["name"]), version=_as_str(item.get("version"))))
        elif isinstance(item, str) and item:
            result.append(AddOn(name=item))
    return result
