"""
Client for the Pokémon Showdown chat protocol.

    session = Session()
    session.on("message", lambda message: message.reply("Hi!"))
    await session.connect("showdown")
    await session.login("name", "password")
"""

from showdown.config import SessionConfig, load_config
from showdown.entities import ChatMessage, PrivateMessage, Room, User
from showdown.errors import (
    LoginError,
    ServerResolutionError,
    SessionConnectError,
    SessionStateError,
    ShowdownError,
)
from showdown.outbound_queue import OutboundQueue
from showdown.server_info import ServerInfo, resolve_server
from showdown.session import Session, SessionState

__all__ = [
    "ChatMessage",
    "LoginError",
    "OutboundQueue",
    "PrivateMessage",
    "Room",
    "ServerInfo",
    "ServerResolutionError",
    "Session",
    "SessionConfig",
    "SessionConnectError",
    "SessionState",
    "SessionStateError",
    "ShowdownError",
    "User",
    "load_config",
    "resolve_server",
]
