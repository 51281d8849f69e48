"""
Pytest configuration for serverpulse tests

Shared fixtures: temporary presence store, fixed clock, sample status
documents.
"""
from datetime import datetime, timezone

import pytest

from serverpulse.presence.store import PresenceStore


@pytest.fixture
def store_path(tmp_path):
    """Path of a presence store inside a temporary data dir"""
    return tmp_path / "data" / "database.json"


@pytest.fixture
def presence_store(store_path):
    """Empty PresenceStore"""
    return PresenceStore(store_path)


@pytest.fixture
def fixed_now():
    """A fixed, timezone-aware 'now'"""
    return datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def online_document():
    """mcsrvstat.us v3 response for an online server"""
    return {
        "online": True,
        "ip": "203.0.113.7",
        "port": 25565,
        "hostname": "mc.example.com",
        "debug": {"ping": True, "query": False, "srv": False, "apiversion": 3},
        "version": "1.20.4",
        "software": "Paper",
        "players": {
            "online": 2,
            "max": 20,
            "list": [
                {"name": "Alice", "uuid": "a-uuid"},
                {"name": "Steve", "uuid": "s-uuid"},
            ],
        },
        "motd": {"raw": ["§aWelcome"], "clean": ["Welcome", "to the server"], "html": []},
        "map": {"raw": "world", "clean": "world", "html": "world"},
        "plugins": [{"name": "EssentialsX", "version": "2.20.1"}, {"name": "LuckPerms", "version": "5.4"}],
        "icon": "data:image/png;base64,iVBORw0KGgo=",
    }


@pytest.fixture
def offline_document():
    """mcsrvstat.us v3 response for an offline server"""
    return {
        "online": False,
        "ip": "203.0.113.7",
        "port": 25565,
        "hostname": "mc.example.com",
        "debug": {"ping": False, "query": False, "srv": False, "apiversion": 3},
    }
