from __future__ import annotations

from enum import Enum


# Wire defaults
DEFAULT_ROOM = "lobby"
MESSAGE_DELAY = 0.5                      # seconds between outbound frames (flood control)
WEBSOCKET_PATH = "/showdown/websocket"
DEFAULT_SERVER_SUFFIX = ".psim.us"
CROSSDOMAIN_URL = "https://play.pokemonshowdown.com/crossdomain.php"
LOGIN_SERVER_URL = "https://play.pokemonshowdown.com/~~{server_id}/action.php"


class Command(str, Enum):
    """Showdown protocol commands this client knows about."""

    # Inbound
    CHALLSTR = "challstr"          # Login challenge: "<keyid>|<challenge>"
    UPDATEUSER = "updateuser"      # Login acknowledgment: "<nick>|<named>|<avatar>..."
    CHAT = "c:"                    # Room chat: "<timestamp>|<user>|<message>"
    PM = "pm"                      # Private message: "<sender>|<target>|<message>"
    INIT = "init"                  # Room joined
    DEINIT = "deinit"              # Room left
    POPUP = "popup"
    NAMETAKEN = "nametaken"

    # Outbound (sent as "/<command> <argument>")
    TRN = "trn"                    # Rename with assertion: "<name>,0,<assertion>"
    JOIN = "join"
    LEAVE = "leave"


class EventKind(str, Enum):
    """Events a Session emits to registered handlers."""

    CONNECTION = "connection"      # payload: ServerInfo
    DISCONNECT = "disconnect"      # payload: Session
    RAW = "raw"                    # payload: Frame (every frame)
    CHAT = "chat"                  # payload: ChatMessage
    PM = "pm"                      # payload: PrivateMessage
    MESSAGE = "message"            # payload: ChatMessage | PrivateMessage
    ERROR = "error"                # payload: Exception


RAW_PREFIX = "raw-"


def raw_event(command: str) -> str:
    """Name of the per-command event for `command`, e.g. 'raw-challstr'."""
    if isinstance(command, Command):
        command = command.value
    return f"{RAW_PREFIX}{command}"

