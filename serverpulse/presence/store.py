"""Player presence store.

Key features:
- Single JSON document with atomic writes (temp file + rename)
- Backup of the previous document before overwrite
- Upsert-by-name of last-seen timestamps, never moving backward
- Windowed "recently seen" queries
- Persists the id of the synced Discord status message
"""
from __future__ import annotations

import json
import logging
import shutil
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from ..models import PresenceRecord

logger = logging.getLogger(__name__)

STORE_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass
class PresenceDocument:
    """In-memory form of the store file"""

    players: dict[str, datetime] = field(default_factory=dict)
    last_message_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": STORE_VERSION,
            "players": [
                {"name": name, "lastSeen": seen.isoformat()}
                for name, seen in self.players.items()
            ],
        }
        if self.last_message_id:
            data["lastMessageId"] = self.last_message_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PresenceDocument:
        doc = cls()
        players = data.get("players") or []
        if not isinstance(players, list):
            logger.error(f"Ignoring presence players of type {type(players).__name__}")
            players = []
        for raw in players:
            try:
                name = str(raw["name"])
                seen = _parse_timestamp(raw["lastSeen"])
            except Exception as e:
                logger.error(f"Skipping malformed player record {raw!r}: {e}")
                continue
            previous = doc.players.get(name)
            doc.players[name] = seen if previous is None else max(previous, seen)

        message_id = data.get("lastMessageId")
        doc.last_message_id = str(message_id) if message_id else None
        return doc


class PresenceStore:
    """
    File-based persistent storage for player presence.

    Every operation reads the document from disk; writes replace it
    atomically so an interrupted write never leaves a partial upsert.
    Read failures behave as an empty store, write failures are logged and
    leave the previous file in place.
    """

    def __init__(self, store_path: Path):
        self.store_path = Path(store_path)
        self.backup_path = self.store_path.with_suffix(".json.bak")
        self.store_path.parent.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # load / save
    # ------------------------------------------------------------------
    def load(self) -> PresenceDocument:
        """Load the document (empty on missing or unreadable file)."""
        try:
            return self._read()
        except OSError as e:
            logger.error(f"Error loading presence store: {e}", exc_info=True)
            return PresenceDocument()

    def _read(self) -> PresenceDocument:
        """Read the document; OSError propagates so writers can back off.

        An unparsable file counts as empty (its content survives in the
        backup on the next save).
        """
        if not self.store_path.exists():
            return PresenceDocument()

        with open(self.store_path, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                # JSONDecodeError and UnicodeDecodeError
                logger.error(f"Error parsing presence store {self.store_path}: {e}")
                return PresenceDocument()

        if not isinstance(data, dict):
            logger.error(f"Presence store {self.store_path} is not an object, ignoring it")
            return PresenceDocument()
        return PresenceDocument.from_dict(data)

    def _read_for_update(self) -> Optional[PresenceDocument]:
        try:
            return self._read()
        except OSError as e:
            logger.error(f"Cannot read presence store, skipping write: {e}")
            return None

    def save(self, doc: PresenceDocument) -> bool:
        """Save the document atomically. Returns False on failure."""
        temp_path = self.store_path.with_suffix(f".tmp.{uuid.uuid4().hex[:8]}")
        try:
            if self.store_path.exists():
                shutil.copy2(self.store_path, self.backup_path)

            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(doc.to_dict(), f, indent=2)

            temp_path.replace(self.store_path)
            logger.debug(f"Saved {len(doc.players)} players to {self.store_path}")
            return True

        except OSError as e:
            logger.error(f"Error saving presence store: {e}", exc_info=True)
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            return False

    # ------------------------------------------------------------------
    # presence
    # ------------------------------------------------------------------
    def upsert_seen(self, names: Iterable[str], now: datetime | None = None) -> bool:
        """Mark every name as seen at ``now``.

        Idempotent, and never moves an existing timestamp backward.
        """
        now = now or utc_now()
        unique = {name for name in names if name}
        if not unique:
            return True

        doc = self._read_for_update()
        if doc is None:
            return False
        for name in unique:
            previous = doc.players.get(name)
            doc.players[name] = now if previous is None else max(previous, now)

        return self.save(doc)

    def query_recently_seen(
        self,
        excluding: Iterable[str],
        window: timedelta,
        now: datetime | None = None,
    ) -> list[PresenceRecord]:
        """Records seen within ``window`` of ``now`` that are not in ``excluding``.

        Sorted most recent first.
        """
        now = now or utc_now()
        cutoff = now - window
        excluded = set(excluding)

        records = [
            PresenceRecord(name=name, last_seen_at=seen)
            for name, seen in self.load().players.items()
            if name not in excluded and seen >= cutoff
        ]
        records.sort(key=lambda r: r.last_seen_at, reverse=True)
        return records

    def all_records(self) -> list[PresenceRecord]:
        """Every known player, most recent first."""
        records = [
            PresenceRecord(name=name, last_seen_at=seen)
            for name, seen in self.load().players.items()
        ]
        records.sort(key=lambda r: r.last_seen_at, reverse=True)
        return records

    # ------------------------------------------------------------------
    # synced status message
    # ------------------------------------------------------------------
    def get_last_message_id(self) -> Optional[str]:
        return self.load().last_message_id

    def save_message_id(self, message_id: str) -> bool:
        doc = self._read_for_update()
        if doc is None:
            return False
        if doc.last_message_id == message_id:
            return True
        doc.last_message_id = message_id
        return self.save(doc)
