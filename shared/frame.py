from __future__ import annotations
from dataclasses import dataclass
from typing import Union
import re

from shared.protocol import DEFAULT_ROOM, Command


class FrameDecodeError(Exception):
    """Raised when an inbound frame does not follow the frame grammar."""
    pass


# ">ROOM\n" header (optional) followed by the body
_FRAME_RE = re.compile(r'^(?:>([^\n]+)\n)?(.*)$', re.DOTALL)
# "|COMMAND|PAYLOAD", payload may contain further '|' and newlines
_COMMAND_RE = re.compile(r'^\|([^|]+)\|(.*)$', re.DOTALL)
# Leading '!' is an announcement; '>> ' and '>>> ' are admin eval
_CHAT_ESCAPE_RE = re.compile(r'^!|>>>? ')


@dataclass(frozen=True)
class Frame:
    """
    One decoded inbound frame.

    Wire form:
        >ROOM
        |COMMAND|PAYLOAD

    The room header is optional (default room). A body that does not start
    with "|COMMAND|" is kept whole as the payload of command "".
    """
    room: str
    command: str
    payload: str

    def fields(self, maxsplit: int = -1) -> list:
        """Split the payload on '|'."""
        return self.payload.split('|', maxsplit)


def decode_frame(raw: Union[str, bytes], default_room: str = DEFAULT_ROOM) -> Frame:
    """Parse one raw inbound frame into a Frame."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"Frame is not valid UTF-8: {e}") from e
    if not isinstance(raw, str):
        raise FrameDecodeError(f"Unrecognized frame type {type(raw).__name__!r}")

    match = _FRAME_RE.match(raw)
    if match is None:
        raise FrameDecodeError(f"Invalid frame received: {raw[:64]!r}")
    room, body = match.groups()

    command_match = _COMMAND_RE.match(body)
    if command_match is None:
        command, payload = "", body
    else:
        command, payload = command_match.groups()

    return Frame(room=room or default_room, command=command, payload=payload)


# ========================================
#           OUTBOUND ENCODING
# ========================================

def room_prefix(room: str, default_room: str = DEFAULT_ROOM) -> str:
    """Showdown accepts an empty prefix for the default room."""
    return "" if room == default_room else room


def escape_pm(text: str) -> str:
    """Messages starting with / would be interpreted as commands."""
    if text.startswith('/'):
        return '/' + text
    return text


def escape_chat(text: str) -> str:
    """Escape command, announcement and eval prefixes in chat text."""
    if text.startswith('/'):
        return '/' + text
    if _CHAT_ESCAPE_RE.search(text):
        return ' ' + text
    return text


def encode_command(command: Union[str, Command], argument: str = "",
                   room: str = DEFAULT_ROOM, default_room: str = DEFAULT_ROOM) -> str:
    """Build a "ROOM|/command argument" frame."""
    if isinstance(command, Command):
        command = command.value
    return f"{room_prefix(room, default_room)}|/{command} {argument}"


def encode_chat(text: str, room: str = DEFAULT_ROOM, default_room: str = DEFAULT_ROOM) -> str:
    """Build a "ROOM|text" chat frame with escaping applied."""
    return f"{room_prefix(room, default_room)}|{escape_chat(text)}"
