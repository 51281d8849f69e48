"""
Status message reconciliation.

Keeps one Discord message in sync with the latest status embed. Each
cycle walks an ordered list of steps until one succeeds:

1. known  - edit the message whose id was persisted last time
2. search - find our own status message among the 50 most recent
3. create - post a new message

Whichever step succeeds, its message id is persisted for the next cycle.
Older duplicates left behind by earlier create fallbacks are not removed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

from ..presence.store import PresenceStore
from .client import DiscordClient
from .errors import DiscordNotFoundError

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50

ReconcileState = Literal["known", "search", "create", "failed"]


@dataclass(frozen=True)
class StepResult:
    """Uniform outcome of one reconcile step"""

    ok: bool
    message_id: str | None = None
    reason: str | None = None

    @classmethod
    def done(cls, message_id: str) -> StepResult:
        return cls(ok=True, message_id=message_id)

    @classmethod
    def skip(cls, reason: str) -> StepResult:
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class ReconcileOutcome:
    state: ReconcileState
    message_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.state != "failed"


def message_has_marker(message: dict[str, Any], marker: str) -> bool:
    """True if any embed title of the message equals ``marker``."""
    for embed in message.get("embeds") or []:
        title = embed.get("title") if isinstance(embed, dict) else None
        if title and title.strip() == marker:
            return True
    return False


class StatusMessageReconciler:
    """
    Find, update or create the single status message in a channel.

    Usage:
        reconciler = StatusMessageReconciler(client, store, channel_id, marker)
        outcome = await reconciler.reconcile(embed)
    """

    def __init__(
        self,
        client: DiscordClient,
        store: PresenceStore,
        channel_id: str,
        title_marker: str,
        search_limit: int = SEARCH_LIMIT,
    ):
        self.client = client
        self.store = store
        self.channel_id = channel_id
        self.title_marker = title_marker
        self.search_limit = search_limit

    async def reconcile(self, embed: dict[str, Any]) -> ReconcileOutcome:
        """Bring the channel's status message in line with ``embed``. Never raises."""
        payload = {"embeds": [embed]}
        steps: list[tuple[ReconcileState, Callable[[dict[str, Any]], Awaitable[StepResult]]]] = [
            ("known", self._update_known),
            ("search", self._update_found),
            ("create", self._create_new),
        ]

        for state, step in steps:
            errored = False
            try:
                result = await step(payload)
            except Exception as e:
                errored = True
                result = StepResult.skip(f"{type(e).__name__}: {e}")

            if result.ok and result.message_id:
                if state != "known":
                    try:
                        self.store.save_message_id(result.message_id)
                    except Exception as e:
                        logger.error(f"Failed to persist status message id {result.message_id}: {e}")
                return ReconcileOutcome(state=state, message_id=result.message_id)

            if state == "create":
                logger.error(f"Failed to send new server status message: {result.reason}")
            elif errored:
                logger.warning(f"Status message {state} step failed: {result.reason}")
            elif result.reason:
                logger.info(f"Status message {state} step skipped: {result.reason}")

        return ReconcileOutcome(state="failed")

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------
    async def _update_known(self, payload: dict[str, Any]) -> StepResult:
        message_id = self.store.get_last_message_id()
        if not message_id:
            return StepResult.skip("no stored message id")

        try:
            await self.client.fetch_message(self.channel_id, message_id)
        except DiscordNotFoundError:
            logger.warning(f"Could not find status message {message_id}, searching the channel")
            return StepResult.skip("stored message not found")

        await self.client.edit_message(self.channel_id, message_id, payload)
        logger.info("Server status message updated")
        return StepResult.done(message_id)

    async def _update_found(self, payload: dict[str, Any]) -> StepResult:
        me = await self.client.get_current_user()
        bot_id = str(me.get("id"))

        messages = await self.client.list_messages(self.channel_id, limit=self.search_limit)
        for message in messages:
            author = message.get("author") or {}
            if str(author.get("id")) != bot_id:
                continue
            if not message_has_marker(message, self.title_marker):
                continue

            message_id = str(message["id"])
            await self.client.edit_message(self.channel_id, message_id, payload)
            logger.info(f"Found and updated existing server status message {message_id}")
            return StepResult.done(message_id)

        return StepResult.skip(f"no status message among the last {len(messages)} messages")

    async def _create_new(self, payload: dict[str, Any]) -> StepResult:
        logger.info("Sending new server status message")
        message = await self.client.create_message(self.channel_id, payload)
        return StepResult.done(str(message["id"]))
