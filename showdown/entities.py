from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from shared.frame import escape_pm
from shared.protocol import Command
from shared.utils import to_id, to_room_id

if TYPE_CHECKING:
    from showdown.session import Session


class User:
    """A Showdown user, compared by canonical user id."""

    def __init__(self, nick: str, session: Optional["Session"] = None) -> None:
        self.nick = nick
        # Non-owning: the session created this user, not the other way round
        self.session = session

    @property
    def id(self) -> str:
        return to_id(self.nick)

    def equals(self, other: Any) -> bool:
        """
        Compare by identifier with another User or a user name.
        Any other value compares unequal.
        """
        if isinstance(other, str):
            other = User(other)
        if isinstance(other, User):
            return self.id == other.id
        return False

    def pm(self, text: str) -> None:
        """Send a private message to this user."""
        _require_session(self).send(Command.PM, f"{self.id},{escape_pm(text)}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash((User, self.id))

    def __str__(self) -> str:
        return self.nick

    def __repr__(self) -> str:
        return f"User({self.nick!r})"


class Room:
    """A chat room, compared by canonical room id."""

    def __init__(self, name: str, session: Optional["Session"] = None) -> None:
        self.name = name
        self.session = session

    @property
    def id(self) -> str:
        return to_room_id(self.name)

    def equals(self, other: Any) -> bool:
        if isinstance(other, str):
            other = Room(other)
        if isinstance(other, Room):
            return self.id == other.id
        return False

    def say(self, text: str) -> None:
        _require_session(self).say(text, self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Room):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash((Room, self.id))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Room({self.name!r})"


@dataclass
class ChatMessage:
    """Message received in a chat room."""
    room: Room
    user: User
    text: str
    timestamp: Optional[int] = field(default=None, compare=False)

    def reply(self, text: str) -> None:
        """Reply in the room the message was said in."""
        self.room.say(text)


@dataclass
class PrivateMessage:
    """Message received in a PM."""
    user: User
    text: str

    def reply(self, text: str) -> None:
        self.user.pm(text)


def _require_session(entity: Any) -> "Session":
    if entity.session is None:
        raise ValueError(f"{entity!r} is not bound to a session")
    return entity.session
