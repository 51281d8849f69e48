"""Discord API errors and retry classification.

Identifies recoverable errors (rate limits, server errors, network
failures) for the retry policy.
"""

from __future__ import annotations

import errno

import httpx

# Recoverable socket errors
RECOVERABLE_ERRNOS = {
    errno.ECONNRESET,
    errno.ECONNREFUSED,
    errno.EPIPE,
    errno.ETIMEDOUT,
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
    errno.ECONNABORTED,
}


class DiscordApiError(Exception):
    """Discord REST call failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class DiscordNotFoundError(DiscordApiError):
    """Unknown message/channel (HTTP 404)."""


def _collect_error_candidates(err: BaseException) -> list[BaseException]:
    """Collect error and all chained causes."""
    candidates = [err]
    seen = {id(err)}

    current = err
    while True:
        nxt = current.__cause__ or current.__context__
        if nxt is None or id(nxt) in seen:
            break
        candidates.append(nxt)
        seen.add(id(nxt))
        current = nxt

    return candidates


def is_recoverable_discord_error(err: BaseException) -> bool:
    """Check if a failed Discord call is worth retrying.

    Retryable: 429 rate limits, 5xx responses, httpx transport errors and
    timeouts. A 404 or other 4xx is final.
    """
    for candidate in _collect_error_candidates(err):
        if isinstance(candidate, DiscordNotFoundError):
            return False
        if isinstance(candidate, DiscordApiError) and candidate.status_code is not None:
            code = candidate.status_code
            if code == 429 or 500 <= code < 600:
                return True
            return False
        if isinstance(candidate, (httpx.TransportError, httpx.TimeoutException)):
            return True
        if isinstance(candidate, OSError) and candidate.errno in RECOVERABLE_ERRNOS:
            return True

    return False
