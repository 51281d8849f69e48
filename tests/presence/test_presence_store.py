"""
Tests for PresenceStore
"""
import json
from datetime import timedelta
from unittest.mock import patch

import pytest

from serverpulse.presence.store import PresenceStore


def test_upsert_creates_records(presence_store, fixed_now):
    """New names get a record with last_seen_at = now"""
    assert presence_store.upsert_seen(["Bob", "Alice"], fixed_now)

    records = {r.name: r.last_seen_at for r in presence_store.all_records()}
    assert records == {"Bob": fixed_now, "Alice": fixed_now}


def test_upsert_is_idempotent(presence_store, store_path, fixed_now):
    """Upserting the same names twice at the same time changes nothing"""
    presence_store.upsert_seen(["Bob", "Alice", "Bob"], fixed_now)
    first = json.loads(store_path.read_text())

    presence_store.upsert_seen(["Bob", "Alice"], fixed_now)
    second = json.loads(store_path.read_text())

    assert first == second
    assert len(second["players"]) == 2


def test_upsert_never_moves_backward(presence_store, fixed_now):
    """An older timestamp does not overwrite a newer one"""
    presence_store.upsert_seen(["Bob"], fixed_now)
    presence_store.upsert_seen(["Bob"], fixed_now - timedelta(hours=3))

    [record] = presence_store.all_records()
    assert record.last_seen_at == fixed_now


def test_upsert_updates_existing(presence_store, fixed_now):
    later = fixed_now + timedelta(minutes=5)
    presence_store.upsert_seen(["Bob"], fixed_now)
    presence_store.upsert_seen(["Bob"], later)

    [record] = presence_store.all_records()
    assert record.last_seen_at == later


def test_query_includes_and_excludes(presence_store, fixed_now):
    """Bob seen at t is returned an hour later unless excluded"""
    presence_store.upsert_seen(["Bob"], fixed_now)
    later = fixed_now + timedelta(hours=1)

    included = presence_store.query_recently_seen(set(), timedelta(days=7), later)
    assert [(r.name, r.last_seen_at) for r in included] == [("Bob", fixed_now)]

    excluded = presence_store.query_recently_seen({"Bob"}, timedelta(days=7), later)
    assert excluded == []


def test_query_sorted_most_recent_first(presence_store, fixed_now):
    presence_store.upsert_seen(["Old"], fixed_now - timedelta(days=3))
    presence_store.upsert_seen(["Recent"], fixed_now - timedelta(days=1))

    records = presence_store.query_recently_seen(set(), timedelta(days=7), fixed_now)

    assert [r.name for r in records] == ["Recent", "Old"]


def test_query_window_cutoff(presence_store, fixed_now):
    """A record 8 days old is outside a 7 day window but inside 9 days"""
    presence_store.upsert_seen(["Bob"], fixed_now - timedelta(days=8))

    assert presence_store.query_recently_seen(set(), timedelta(days=7), fixed_now) == []
    assert [r.name for r in presence_store.query_recently_seen(set(), timedelta(days=9), fixed_now)] == ["Bob"]


def test_persists_across_instances(store_path, fixed_now):
    PresenceStore(store_path).upsert_seen(["Bob"], fixed_now)

    reopened = PresenceStore(store_path)
    assert [r.name for r in reopened.all_records()] == ["Bob"]


def test_message_id_roundtrip(presence_store, fixed_now):
    """The synced message id is stored next to the players"""
    assert presence_store.get_last_message_id() is None

    presence_store.upsert_seen(["Bob"], fixed_now)
    presence_store.save_message_id("1234567890")

    assert presence_store.get_last_message_id() == "1234567890"
    assert [r.name for r in presence_store.all_records()] == ["Bob"]


def test_reads_legacy_document(store_path):
    """Documents without a version and with 'Z' timestamps load fine"""
    store_path.parent.mkdir(parents=True, exist_ok=True)
    store_path.write_text(json.dumps({
        "players": [{"name": "Bob", "lastSeen": "2026-10-17T08:30:00.000Z"}],
        "lastMessageId": "42",
    }))

    store = PresenceStore(store_path)

    [record] = store.all_records()
    assert record.name == "Bob"
    assert record.last_seen_at.tzinfo is not None
    assert store.get_last_message_id() == "42"


def test_corrupt_file_reads_as_empty(presence_store, store_path, fixed_now):
    store_path.write_text("{not json")

    assert presence_store.query_recently_seen(set(), timedelta(days=7), fixed_now) == []
    assert presence_store.get_last_message_id() is None


def test_invalid_utf8_reads_as_empty(presence_store, store_path, fixed_now):
    """Undecodable bytes behave as an empty store and survive in the backup"""
    bad = b'{"players": [{"name": "\xff\xfe"}]}'
    store_path.write_bytes(bad)

    assert presence_store.query_recently_seen(set(), timedelta(days=7), fixed_now) == []
    assert presence_store.get_last_message_id() is None

    assert presence_store.upsert_seen(["Bob"], fixed_now)
    assert [r.name for r in presence_store.all_records()] == ["Bob"]
    assert presence_store.backup_path.read_bytes() == bad


@pytest.mark.parametrize("players", [None, "Bob", {"name": "Bob"}, 3])
def test_non_list_players_reads_as_empty(presence_store, store_path, fixed_now, players):
    store_path.write_text(json.dumps({"version": 1, "players": players, "lastMessageId": "111"}))

    assert presence_store.query_recently_seen(set(), timedelta(days=7), fixed_now) == []
    assert presence_store.get_last_message_id() == "111"
    assert presence_store.save_message_id("222")
    assert presence_store.upsert_seen(["Alice"], fixed_now)
    assert [r.name for r in presence_store.all_records()] == ["Alice"]


def test_malformed_record_is_skipped(store_path):
    store_path.parent.mkdir(parents=True, exist_ok=True)
    store_path.write_text(json.dumps({
        "players": [
            {"name": "Bob", "lastSeen": "not a date"},
            {"name": "Alice", "lastSeen": "2026-10-17T08:30:00+00:00"},
        ],
    }))

    assert [r.name for r in PresenceStore(store_path).all_records()] == ["Alice"]


def test_write_failure_leaves_state_unchanged(presence_store, store_path, fixed_now):
    """A failed write is reported and the previous file survives"""
    presence_store.upsert_seen(["Bob"], fixed_now)
    before = store_path.read_text()

    with patch("serverpulse.presence.store.json.dump", side_effect=OSError("disk full")):
        assert presence_store.upsert_seen(["Alice"], fixed_now) is False

    assert store_path.read_text() == before
    assert list(store_path.parent.glob("*.tmp.*")) == []


def test_read_failure_skips_write(presence_store, store_path, fixed_now):
    """If the store cannot be read, upsert does not overwrite it"""
    presence_store.upsert_seen(["Bob"], fixed_now)
    before = store_path.read_text()

    with patch.object(PresenceStore, "_read", side_effect=PermissionError("denied")):
        assert presence_store.upsert_seen(["Alice"], fixed_now) is False
        assert presence_store.all_records() == []

    assert store_path.read_text() == before


def test_empty_upsert_is_noop(presence_store, store_path, fixed_now):
    assert presence_store.upsert_seen([], fixed_now) is True
    assert not store_path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
