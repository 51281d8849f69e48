"""
Poll cycle orchestration.

One cycle: fetch status -> record online players -> render embed with the
recently seen view -> reconcile the Discord status message.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from .config import BotConfig
from .discord.client import DiscordClient
from .discord.reconciler import ReconcileOutcome, StatusMessageReconciler
from .models import Observation
from .presence.cache import RecentlySeenCache
from .presence.store import PresenceStore, utc_now
from .probe import LatencyProber
from .render import build_status_embed, status_title
from .status import McStatusClient, StatusFetcher

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """What one poll cycle did"""

    ok: bool
    observation: Observation | None = None
    outcome: ReconcileOutcome | None = None
    error: str | None = None


class StatusService:
    """
    Run poll cycles for one server and one channel.

    Usage:
        service = StatusService.from_config(config, discord_client)
        report = await service.run_cycle()
    """

    def __init__(
        self,
        server_address: str,
        fetcher: StatusFetcher,
        store: PresenceStore,
        cache: RecentlySeenCache,
        reconciler: StatusMessageReconciler,
        recent_window: timedelta,
        now: Callable[[], datetime] = utc_now,
    ):
        self.server_address = server_address
        self.fetcher = fetcher
        self.store = store
        self.cache = cache
        self.reconciler = reconciler
        self.recent_window = recent_window
        self._now = now

    @classmethod
    def from_config(cls, config: BotConfig, client: DiscordClient) -> StatusService:
        """Wire the default collaborators from configuration"""
        store = PresenceStore(config.database_path)
        fetcher = StatusFetcher(
            client=McStatusClient(base_url=config.status_api_url),
            prober=LatencyProber(),
        )
        reconciler = StatusMessageReconciler(
            client=client,
            store=store,
            channel_id=config.channel_id,
            title_marker=status_title(config.server_host, config.server_port),
        )
        return cls(
            server_address=config.server_address,
            fetcher=fetcher,
            store=store,
            cache=RecentlySeenCache(store),
            reconciler=reconciler,
            recent_window=timedelta(days=config.recent_player_days),
        )

    async def run_cycle(self) -> CycleReport:
        """Run one poll cycle. Never raises."""
        try:
            observation = await self.fetcher.fetch_status(self.server_address)

            if observation.online and observation.online_players:
                self.store.upsert_seen(observation.online_players, self._now())

            recently_seen = self.cache.get_recently_seen(observation.online_players, self.recent_window)
            embed = build_status_embed(observation, recently_seen, self._now())

            outcome = await self.reconciler.reconcile(embed)
            return CycleReport(ok=outcome.ok, observation=observation, outcome=outcome)

        except Exception as e:
            logger.error(f"Error updating server status: {e}", exc_info=True)
            return CycleReport(ok=False, error=str(e))
