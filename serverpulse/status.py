"""Server status fetching.

McStatusClient talks to the mcsrvstat.us API. StatusFetcher combines it
with the latency prober and always returns a well-formed Observation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from . import __version__
from .config import DEFAULT_STATUS_API_URL, split_address
from .models import DEFAULT_PORT, Observation
from .probe import LatencyProber

logger = logging.getLogger(__name__)

STATUS_API_TIMEOUT = 10.0
USER_AGENT = f"serverpulse/{__version__}"


class StatusApiError(Exception):
    """Status API unreachable, non-2xx or returned a malformed body."""


class McStatusClient:
    """Minimal async client for the mcsrvstat.us v3 API."""

    def __init__(
        self,
        base_url: str = DEFAULT_STATUS_API_URL,
        timeout: float = STATUS_API_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def get_status(self, address: str) -> dict[str, Any]:
        """Fetch the raw status document for ``address``.

        Raises:
            StatusApiError: On transport failure, non-2xx or non-object body
        """
        url = f"{self.base_url}/{address}"
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            ) as client:
                response = await client.get(url, follow_redirects=True)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise StatusApiError(f"status API returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StatusApiError(f"status API request failed: {e}") from e
        except ValueError as e:
            raise StatusApiError(f"status API returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise StatusApiError(f"status API returned {type(data).__name__}, expected object")
        return data


class StatusFetcher:
    """
    Produce one Observation per call; never raises.

    The probe and the API call run concurrently. An API failure degrades
    into an offline observation that still carries the probe latency.
    """

    def __init__(self, client: McStatusClient | None = None, prober: LatencyProber | None = None):
        self.client = client or McStatusClient()
        self.prober = prober or LatencyProber()

    async def fetch_status(self, address: str) -> Observation:
        host, port = split_address(address)

        results = await asyncio.gather(
            self.client.get_status(address),
            self.prober.probe(host, port),
            return_exceptions=True,
        )
        document, latency = results

        if isinstance(latency, BaseException):
            logger.warning(f"Latency probe for {host} failed: {latency}")
            latency = None

        if isinstance(document, BaseException):
            logger.warning(f"Error fetching server status for {address}: {document}")
            return Observation.offline(host, port if port is not None else DEFAULT_PORT, latency)

        try:
            observation = Observation.from_api(document, latency, host, port)
        except Exception as e:
            logger.warning(f"Malformed status document for {address}: {e}")
            return Observation.offline(host, port if port is not None else DEFAULT_PORT, latency)

        logger.info(
            f"Server {observation.address} is {'online' if observation.online else 'offline'}"
            f" ({len(observation.online_players)} players, latency={observation.latency_ms}ms)"
        )
        return observation
