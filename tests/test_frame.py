import pytest

from shared.frame import (
    Frame,
    FrameDecodeError,
    decode_frame,
    encode_chat,
    encode_command,
    escape_chat,
    escape_pm,
)
from shared.protocol import Command, raw_event


def test_decode_frame_with_room_header():
    assert decode_frame(">room\n|cmd|payload") == Frame(room="room", command="cmd", payload="payload")


def test_decode_frame_defaults_room():
    frame = decode_frame("|challstr|4|abcdef")
    assert frame.room == "lobby"
    assert frame.command == "challstr"
    assert frame.payload == "4|abcdef"


def test_decode_frame_custom_default_room():
    assert decode_frame("|init|chat", default_room="home").room == "home"


def test_payload_keeps_pipes_and_newlines():
    frame = decode_frame(">lobby\n|init|chat\n|title|Lobby\n|users|2, a, b")
    assert frame.command == "init"
    assert frame.payload == "chat\n|title|Lobby\n|users|2, a, b"


def test_body_without_command_is_payload_of_empty_command():
    assert decode_frame(">lobby\nplain text") == Frame("lobby", "", "plain text")
    # A command needs both delimiters
    assert decode_frame("|deinit") == Frame("lobby", "", "|deinit")
    assert decode_frame("") == Frame("lobby", "", "")


def test_decode_frame_accepts_utf8_bytes():
    assert decode_frame("|c:|1|Pokémon|hi".encode()).payload == "1|Pokémon|hi"


@pytest.mark.parametrize("raw", [b"\xff\xfe|c:|1", 12345, None])
def test_decode_frame_rejects_non_text(raw):
    with pytest.raises(FrameDecodeError):
        decode_frame(raw)


def test_frame_fields():
    frame = decode_frame("|c:|1|user|a|b")
    assert frame.fields(2) == ["1", "user", "a|b"]


def test_escape_chat():
    assert escape_chat("/foo") == "//foo"
    assert escape_chat("!alert") == " !alert"
    assert escape_chat(">> 1+1") == " >> 1+1"
    assert escape_chat(">>> 1+1") == " >>> 1+1"
    assert escape_chat("normal text") == "normal text"
    # Slash rule wins; only one escape is applied
    assert escape_chat("/!x") == "//!x"


def test_escape_pm_only_escapes_slash():
    assert escape_pm("/me waves") == "//me waves"
    assert escape_pm("!dt pikachu") == "!dt pikachu"


def test_encode_command_compresses_default_room():
    assert encode_command("join", "lobby") == "|/join lobby"
    assert encode_command(Command.JOIN, "techcode", room="techcode") == "techcode|/join techcode"
    assert encode_command("logout") == "|/logout "


def test_encode_chat():
    assert encode_chat("/foo") == "|//foo"
    assert encode_chat("!alert", room="help") == "help| !alert"
    assert encode_chat("hi", room="home", default_room="home") == "|hi"


def test_raw_event_names():
    assert raw_event("init") == "raw-init"
    assert raw_event(Command.CHALLSTR) == "raw-challstr"
    assert raw_event("") == "raw-"
