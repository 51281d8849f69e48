"""Discord REST client.

Provides the handful of channel message operations the status bot needs,
on top of the Discord HTTP API v10.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .. import __version__
from .errors import DiscordApiError, DiscordNotFoundError
from .retry import DISCORD_RETRY_DEFAULTS, RetryConfig, retry_async

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
DISCORD_TIMEOUT = 15.0

# Discord API limits
MAX_MESSAGES_PER_FETCH = 100


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:180]
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text[:180]


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    try:
        data = response.json()
        if isinstance(data, dict) and data.get("retry_after") is not None:
            return float(data["retry_after"])
    except ValueError:
        pass
    header = response.headers.get("Retry-After")
    if header:
        try:
            return float(header)
        except ValueError:
            return None
    return None


class DiscordClient:
    """
    Async Discord REST client authenticated with a bot token.

    Usage:
        async with DiscordClient(token) as client:
            me = await client.get_current_user()
            message = await client.create_message(channel_id, {"embeds": [embed]})
    """

    def __init__(
        self,
        token: str,
        base_url: str = DISCORD_API_BASE,
        timeout: float = DISCORD_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_config: RetryConfig | None = None,
    ):
        if not token:
            raise ValueError("Discord bot token not provided")
        self._token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or DISCORD_RETRY_DEFAULTS
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._user: dict[str, Any] | None = None

    async def __aenter__(self) -> DiscordClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                transport=self._transport,
                timeout=self.timeout,
                headers={
                    "Authorization": f"Bot {self._token}",
                    "User-Agent": f"DiscordBot (https://github.com/serverpulse, {__version__})",
                },
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    async def _request_once(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client().request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise DiscordApiError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise DiscordNotFoundError(f"{method} {path}: {_error_detail(response)}", status_code=404)
        if response.status_code == 429:
            raise DiscordApiError(
                f"{method} {path}: rate limited",
                status_code=429,
                retry_after=_retry_after_seconds(response),
            )
        if response.status_code >= 400:
            raise DiscordApiError(
                f"{method} {path}: {response.status_code} {_error_detail(response)}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DiscordApiError(f"{method} {path}: invalid JSON response") from e

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await retry_async(
            lambda: self._request_once(method, path, json=json, params=params),
            config=self.retry_config,
            label=f"{method} {path}",
        )

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------
    async def get_current_user(self) -> dict[str, Any]:
        """The bot's own user (cached after the first call)."""
        if self._user is None:
            self._user = await self._request("GET", "/users/@me")
        return self._user

    async def fetch_message(self, channel_id: str, message_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/channels/{channel_id}/messages/{message_id}")

    async def edit_message(self, channel_id: str, message_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/channels/{channel_id}/messages/{message_id}", json=payload)

    async def list_messages(self, channel_id: str, limit: int = 50) -> list[dict[str, Any]]:
        """Most recent messages in the channel, newest first."""
        limit = max(1, min(limit, MAX_MESSAGES_PER_FETCH))
        data = await self._request("GET", f"/channels/{channel_id}/messages", params={"limit": limit})
        return data if isinstance(data, list) else []

    async def create_message(self, channel_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        message = await self._request("POST", f"/channels/{channel_id}/messages", json=payload)
        if not isinstance(message, dict) or "id" not in message:
            raise DiscordApiError("create message response has no id")
        return message
