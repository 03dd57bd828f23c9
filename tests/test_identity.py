import pytest

from shared.utils import is_hostport, split_hostport, to_id, to_room_id
from showdown.entities import Room, User


def test_to_id_strips_everything_but_alphanumerics():
    assert to_id("Pokémon Black-2") == "pokmonblack2"
    assert to_id("") == ""
    assert to_id("  Zarel ") == "zarel"


def test_to_room_id_keeps_hyphens():
    assert to_room_id("Pokémon Black-2") == "pokmonblack-2"
    assert to_room_id("Tournaments (OU)") == "tournamentsou"


@pytest.mark.parametrize("name", ["Pokémon Black-2", "", "A--B", "ÀÉÎ!?", "x|y,z", "Lobby-1"])
def test_normalizers_are_idempotent(name):
    assert to_id(to_id(name)) == to_id(name)
    assert to_room_id(to_room_id(name)) == to_room_id(name)


def test_room_equality_ignores_case_and_punctuation():
    room = Room("Pokémon Black-2")
    assert room.equals("PokmoNB Lack-2")
    assert not room.equals("PokmoNB Lack2")
    assert room.equals(Room("pokmonblack-2"))


def test_user_equality_ignores_case_and_punctuation():
    user = User("Pokémon Black-2")
    assert user.equals("PokmoNB Lack-2")
    assert user.equals("pokmonblack2")
    assert not user.equals("pokmonblack3")


def test_equality_is_reflexive_and_symmetric():
    a, b = User("Some User"), User("someuser")
    assert a.equals(a)
    assert a.equals(b) and b.equals(a)
    assert a == b
    assert hash(a) == hash(b)


@pytest.mark.parametrize("other", [None, 42, object(), ["user"]])
def test_equals_rejects_other_types(other):
    assert User("user").equals(other) is False
    assert Room("lobby").equals(other) is False


def test_user_and_room_are_not_equal():
    assert not User("lobby").equals(Room("lobby"))
    assert User("lobby") != Room("lobby")


def test_hostport_helpers():
    assert is_hostport("localhost:8000")
    assert is_hostport("192.168.1.5:8080")
    assert not is_hostport("sim.psim.us")
    assert not is_hostport(":8000")
    assert not is_hostport("host:99999")
    assert split_hostport("localhost:8000") == ("localhost", 8000)
    with pytest.raises(ValueError):
        split_hostport("showdown")
