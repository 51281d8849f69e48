"""Discord embed rendering for server status.

Pure functions: an Observation plus the recently seen view become a
Discord embed dict. Sections whose data is missing are left out.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence
from urllib.parse import quote

from .models import DEFAULT_PORT, AddOn, Observation, PresenceRecord

TITLE_PREFIX = "Minecraft Server Status: "

COLOR_ONLINE = 0x4CAF50
COLOR_OFFLINE = 0xF44336

DEFAULT_ICON_URL = "https://images.icon-icons.com/2699/PNG/512/minecraft_logo_icon_168974.png"
SERVER_ICON_URL = "https://api.mcsrvstat.us/icon/{address}"

# Discord embed limits
MAX_FIELD_VALUE = 1024
MAX_DESCRIPTION = 4096

MAX_ADDONS_SHOWN = 10


def status_title(host: str, port: int | None = None) -> str:
    """Embed title; also the marker used to find our status message."""
    if port and port != DEFAULT_PORT:
        return f"{TITLE_PREFIX}{host}:{port}"
    return f"{TITLE_PREFIX}{host}"


def format_last_seen(last_seen: datetime, now: datetime) -> str:
    """Relative time like "5 minutes ago", "2 hours ago", "3 days ago"."""
    minutes = max(0, int((now - last_seen).total_seconds() // 60))
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"

    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"


def ping_indicator(latency_ms: int) -> str:
    if latency_ms < 100:
        return "🟢"
    if latency_ms < 300:
        return "🟡"
    return "🔴"


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)] + "…"


def _field(name: str, value: str, inline: bool = False) -> dict[str, Any]:
    return {"name": name, "value": _truncate(value, MAX_FIELD_VALUE), "inline": inline}


def _format_addons(items: Sequence[AddOn]) -> str:
    shown = ", ".join(
        f"{item.name} ({item.version})" if item.version else item.name
        for item in items[:MAX_ADDONS_SHOWN]
    )
    if len(items) > MAX_ADDONS_SHOWN:
        return f"{shown} and {len(items) - MAX_ADDONS_SHOWN} more..."
    return shown


def _footer_text(observation: Observation) -> str:
    text = "Last updated"
    if observation.latency_ms is not None:
        text += f" | Ping: {ping_indicator(observation.latency_ms)} {observation.latency_ms}ms"
    if observation.api_version is not None:
        text += f" | API v{observation.api_version}"
    return text


def build_status_embed(
    observation: Observation,
    recently_seen: Sequence[PresenceRecord],
    now: datetime,
) -> dict[str, Any]:
    """
    Render the status embed.

    Args:
        observation: Latest poll result
        recently_seen: Players seen recently but not online now
        now: Render time (embed timestamp and relative times)

    Returns:
        Discord embed dict
    """
    embed: dict[str, Any] = {
        "title": status_title(observation.host, observation.port),
        "color": COLOR_ONLINE if observation.online else COLOR_OFFLINE,
        "timestamp": now.isoformat(),
        "thumbnail": {
            "url": SERVER_ICON_URL.format(address=quote(observation.address, safe=":"))
            if observation.icon
            else DEFAULT_ICON_URL
        },
        "footer": {"text": _footer_text(observation)},
    }

    if not observation.online:
        embed["description"] = "⚠️ **Server is offline** ⚠️"
        return embed

    fields: list[dict[str, Any]] = [
        _field("Status", "🟢 Online", inline=True),
        _field("Version", observation.version or "Unknown", inline=True),
    ]

    if observation.software and observation.software != "Vanilla":
        fields.append(_field("Software", observation.software, inline=True))

    motd = "\n".join(observation.motd).strip()
    if motd:
        embed["description"] = _truncate(f"**MOTD:**\n{motd}", MAX_DESCRIPTION)

    if observation.has_player_counts:
        fields.append(
            _field("👥 Players", f"{observation.players_online}/{observation.players_max}", inline=True)
        )

    if observation.online_players:
        fields.append(_field("🎮 Online Players", ", ".join(observation.online_players)))

    if recently_seen:
        lines = "\n".join(
            f"{record.name} ({format_last_seen(record.last_seen_at, now)})"
            for record in recently_seen
        )
        fields.append(_field("👻 Recently Online", lines))

    if observation.map_name:
        fields.append(_field("🗺️ Map", observation.map_name, inline=True))

    if observation.gamemode:
        fields.append(_field("🎮 Gamemode", observation.gamemode, inline=True))

    if observation.plugins:
        fields.append(_field("🧩 Plugins", _format_addons(observation.plugins)))

    if observation.mods:
        fields.append(_field("🧱 Mods", _format_addons(observation.mods)))

    info = "\n".join(observation.info).strip()
    if info:
        fields.append(_field("Additional Info", info))

    if observation.eula_blocked:
        fields.append(
            _field("⚠️ EULA Warning", "This server appears to be blocked by the Minecraft EULA")
        )

    embed["fields"] = fields
    return embed
