"""
Tests for Observation construction
"""
import pytest
from pydantic import ValidationError

from serverpulse.models import AddOn, Observation


def test_from_api_online(online_document):
    obs = Observation.from_api(online_document, 35, "mc.example.com")

    assert obs.online
    assert obs.ip == "203.0.113.7"
    assert obs.players_online == 2
    assert obs.players_max == 20
    assert obs.motd == ["Welcome", "to the server"]
    assert obs.map_name == "world"
    assert obs.plugins == [AddOn(name="EssentialsX", version="2.20.1"), AddOn(name="LuckPerms", version="5.4")]
    assert obs.api_version == 3
    assert obs.software == "Paper"


def test_offline_strips_descriptive_fields():
    """An offline observation never carries players or metadata"""
    obs = Observation(
        online=False,
        host="mc.example.com",
        online_players=["Bob"],
        version="1.20.4",
        motd=["hello"],
    )

    assert obs.online_players == []
    assert obs.version is None
    assert obs.motd == []


def test_online_without_player_list(online_document):
    del online_document["players"]["list"]

    obs = Observation.from_api(online_document, None, "mc.example.com")

    assert obs.online
    assert obs.online_players == []
    assert obs.has_player_counts


def test_observation_is_frozen():
    obs = Observation.offline("mc.example.com")

    with pytest.raises(ValidationError):
        obs.online = True


def test_address_includes_non_default_port():
    assert Observation.offline("mc.example.com", 25570).address == "mc.example.com:25570"
    assert Observation.offline("mc.example.com").address == "mc.example.com"


def test_from_api_tolerates_odd_shapes():
    doc = {
        "online": True,
        "port": "not-a-port",
        "players": {"online": "3", "max": None, "list": [{"uuid": "x"}, {"name": "Eve"}]},
        "map": "lobby",
        "mods": ["somemod"],
    }

    obs = Observation.from_api(doc, None, "mc.example.com")

    assert obs.port == 25565
    assert obs.online_players == ["Eve"]
    assert obs.players_online == 3
    assert not obs.has_player_counts
    assert obs.map_name == "lobby"
    assert obs.mods == [AddOn(name="somemod")]
