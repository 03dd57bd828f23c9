from __future__ import annotations

import asyncio
from contextlib import suppress
from enum import Enum
from typing import Any, Optional, Set, Union

import httpx

from shared.frame import Frame, FrameDecodeError, decode_frame, encode_chat, encode_command
from shared.log import get_logger, log_frame
from shared.protocol import Command, EventKind, raw_event
from shared.utils import to_id
from showdown.auth import fetch_assertion, parse_challenge
from showdown.config import SessionConfig
from showdown.entities import ChatMessage, PrivateMessage, Room, User
from showdown.errors import SessionConnectError, SessionStateError
from showdown.events import Condition, EventDispatcher, EventName, Handler
from showdown.outbound_queue import OutboundQueue
from showdown.server_info import ServerInfo, ServerRef, resolve_server
from showdown.transport import ConnectionLink, Connector, websocket_connector

logger = get_logger(__name__)


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


class Session:
    """
    One connection to a Showdown server.

    A Session is built idle; connect() performs all I/O. Inbound frames are
    decoded in arrival order and dispatched as events:

        raw            Frame, for every frame
        raw-<command>  Frame, for every frame with that command
        chat / pm      ChatMessage / PrivateMessage from other users
        message        either of the above
        connection     ServerInfo, once the transport is up
        disconnect     this Session
        error          exception for malformed frames, failed sends or
                       handlers that raised

    Outbound frames all go through an OutboundQueue so that no two sends
    are closer than config.message_delay.

    The session only knows its own user after the server acknowledges the
    login with |updateuser|. Chat or PMs received before that are never
    treated as self-authored.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        *,
        http: Optional[httpx.AsyncClient] = None,
        connector: Optional[Connector] = None,
        debug: Optional[bool] = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.debug = self.config.debug if debug is None else debug
        self.user: Optional[User] = None
        self.server: Optional[ServerInfo] = None
        self.state = SessionState.DISCONNECTED
        self.http = http
        self._connector = connector or websocket_connector(
            self.config.ping_interval, self.config.ping_timeout,
        )
        self._link: Optional[ConnectionLink] = None
        self._recv_task: Optional[asyncio.Task] = None
        self._challenge: Optional[asyncio.Future] = None
        self._events = EventDispatcher(self._on_handler_error)
        # Waiters tied to the current connection (login challenge and ack)
        self._connection_waiters: Set[asyncio.Future] = set()
        self._queue = OutboundQueue(
            self._write,
            self.config.message_delay,
            on_error=self._on_send_error,
            paused=True,
        )
        self._error_tasks: Set[asyncio.Task] = set()

    # ========================================
    #           EVENTS
    # ========================================

    def on(self, kind: EventName, handler: Handler) -> Handler:
        return self._events.on(kind, handler)

    def off(self, kind: EventName, handler: Handler) -> None:
        self._events.off(kind, handler)

    def once(self, kind: EventName, handler: Handler) -> Handler:
        return self._events.once(kind, handler)

    def wait_for(self, kind: EventName, condition: Optional[Condition] = None) -> asyncio.Future:
        """Future for the next `kind` event matching `condition`."""
        return self._events.wait_for(kind, condition)

    async def emit(self, kind: EventName, payload: Any = None) -> None:
        await self._events.emit(kind, payload)

    # ========================================
    #           CONNECTION LIFECYCLE
    # ========================================

    @property
    def connected(self) -> bool:
        return self._link is not None and not self._link.closed

    @property
    def outbound(self) -> OutboundQueue:
        return self._queue

    async def connect(self, server: ServerRef, *, debug: Optional[bool] = None) -> None:
        """
        Resolve `server` and open the transport.

        Raises:
            ServerResolutionError: `server` could not be resolved
            SessionConnectError: the transport could not be opened
        """
        if self.state != SessionState.DISCONNECTED:
            raise SessionStateError(f"Session is already {self.state.value}; use reconnect()")
        if debug is not None:
            self.debug = debug
        self.state = SessionState.CONNECTING
        try:
            self.server = await resolve_server(
                server, self.http, crossdomain_url=self.config.crossdomain_url,
                timeout=self.config.http_timeout,
            )
        except BaseException:
            self.state = SessionState.DISCONNECTED
            raise
        await self._init_connection()

    async def _init_connection(self) -> None:
        assert self.server is not None
        url = self.server.websocket_url(self.config.websocket_path)
        self.state = SessionState.CONNECTING
        logger.info("Connecting to %s", url)
        try:
            websocket = await self._connector(url)
        except Exception as e:
            self.state = SessionState.DISCONNECTED
            raise SessionConnectError(f"Failed to connect to {url}: {e}") from e

        link = ConnectionLink(websocket, url)
        self._link = link
        self.state = SessionState.CONNECTED
        # Armed before anything is read so the challenge cannot be missed
        self._challenge = self._connection_waiter(raw_event(Command.CHALLSTR))
        self._recv_task = asyncio.create_task(self._recv_loop(link))
        self._queue.resume()
        logger.info("Connected to %s", url)
        await self.emit(EventKind.CONNECTION, self.server)

    async def disconnect(self) -> None:
        """
        Close the transport.

        Queued outbound frames are kept and flushed after the next connect.
        Pending login waiters (challenge, acknowledgment) are cancelled;
        waiters registered through wait_for() are left alone.
        """
        link, self._link = self._link, None
        if link is None:
            return
        self._detach()
        await link.close()
        task, self._recv_task = self._recv_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        logger.info("Disconnected from %s", link.url)
        await self.emit(EventKind.DISCONNECT, self)

    async def reconnect(self) -> None:
        """Disconnect, then open a fresh connection to the same server."""
        if self.server is None:
            raise SessionStateError("Session was never connected")
        await self.disconnect()
        await self._init_connection()

    async def _recv_loop(self, link: ConnectionLink) -> None:
        async for raw in link.frames():
            try:
                await self.handle_frame(raw)
            except Exception as e:
                logger.exception("Failed to process inbound frame: %s", e)
                await self._emit_error(e)
        if self._link is link:
            # Closed by the server rather than by disconnect()
            self._link = None
            self._recv_task = None
            self._detach()
            logger.warning("Connection to %s lost", link.url)
            await self.emit(EventKind.DISCONNECT, self)

    def _detach(self) -> None:
        """Forget per-connection state. Queued frames stay for the next connection."""
        self._queue.pause()
        for future in list(self._connection_waiters):
            future.cancel()
        self._connection_waiters.clear()
        self._challenge = None
        self.state = SessionState.DISCONNECTED
        self.user = None

    def _connection_waiter(self, kind: EventName, condition: Optional[Condition] = None) -> asyncio.Future:
        future = self._events.wait_for(kind, condition)
        self._connection_waiters.add(future)
        future.add_done_callback(self._connection_waiters.discard)
        return future

    # ========================================
    #           LOGIN
    # ========================================

    async def login(self, name: str, password: str) -> User:
        """
        Log in as `name`.

        Waits for the server's login challenge, exchanges it for an
        assertion with the login server, sends /trn and waits for the
        |updateuser| acknowledgment naming this user.

        Raises:
            LoginError: the login server rejected the credentials
            SessionStateError: the session is not connected
        """
        if self._challenge is None:
            raise SessionStateError("Session is not connected")
        assert self.server is not None
        link = self._link
        frame: Frame = await self._challenge
        challenge_key_id, challenge = parse_challenge(frame.payload)

        assertion = await fetch_assertion(
            self.server.server_id,
            challenge_key_id,
            challenge,
            name,
            password,
            self.http,
            login_server_url=self.config.login_server_url,
            timeout=self.config.http_timeout,
        )
        if self._link is not link:
            raise SessionStateError("Connection lost during login")
        expected = to_id(name)
        acknowledged = self._connection_waiter(
            raw_event(Command.UPDATEUSER),
            lambda f: to_id(f.fields(1)[0]) == expected,
        )
        self.send(Command.TRN, f"{name},0,{assertion}")
        await acknowledged
        logger.info("Logged in as %s", name, extra={"user": name})
        assert self.user is not None
        return self.user

    # ========================================
    #           OUTBOUND
    # ========================================

    def send(self, command: Union[str, Command], argument: str = "",
             room: Union[str, Room, None] = None) -> None:
        """Send a /command to a room (default room if omitted)."""
        self._queue.enqueue(encode_command(
            command, argument, self._room_name(room), self.config.default_room,
        ))

    def say(self, text: str, room: Union[str, Room, None] = None) -> None:
        """Say `text` in a room (default room if omitted)."""
        self._queue.enqueue(encode_chat(
            text, self._room_name(room), self.config.default_room,
        ))

    def join_room(self, room: Union[str, Room]) -> None:
        self.send(Command.JOIN, self._room_name(room))

    def leave_room(self, room: Union[str, Room]) -> None:
        self.send(Command.LEAVE, self._room_name(room))

    def _room_name(self, room: Union[str, Room, None]) -> str:
        if room is None:
            return self.config.default_room
        return str(room)

    async def _write(self, frame: str) -> None:
        link = self._link
        if link is None:
            raise SessionStateError("Cannot send without a connection")
        if self.debug:
            log_frame(logger, "snd", frame, level="info")
        await link.send(frame)

    def _on_send_error(self, exc: BaseException) -> None:
        task = asyncio.get_running_loop().create_task(self._emit_error(exc))
        self._error_tasks.add(task)
        task.add_done_callback(self._error_tasks.discard)

    async def _emit_error(self, exc: BaseException) -> None:
        await self.emit(EventKind.ERROR, exc)

    async def _on_handler_error(self, kind: str, exc: Exception) -> None:
        # A failing error handler is only logged
        if kind != EventKind.ERROR.value:
            await self._emit_error(exc)

    # ========================================
    #           INBOUND
    # ========================================

    async def handle_frame(self, raw: Union[str, bytes]) -> None:
        """
        Decode one inbound frame and dispatch its events.

        A malformed frame is reported as an `error` event instead of raising.
        """
        try:
            frame = decode_frame(raw, self.config.default_room)
        except FrameDecodeError as e:
            logger.error("Dropping malformed frame: %s", e)
            await self._emit_error(e)
            return

        if self.debug:
            log_frame(logger, "rcv", frame.payload, room=frame.room,
                      command=frame.command, level="info")

        # Session state first, so user handlers see an up-to-date session
        if frame.command == Command.UPDATEUSER.value:
            self._on_update_user(frame)

        await self.emit(EventKind.RAW, frame)
        await self.emit(raw_event(frame.command), frame)

        if frame.command == Command.CHAT.value:
            await self._on_chat_message(frame)
        elif frame.command == Command.PM.value:
            await self._on_private_message(frame)

    def _on_update_user(self, frame: Frame) -> None:
        fields = frame.fields()
        nick = fields[0].strip()
        self.user = self._create_user(nick)
        # "USER|NAMED|AVATAR...": NAMED is "1" once the rename went through
        if len(fields) > 1:
            named = fields[1].strip() == "1"
        else:
            named = bool(self.user.id) and not self.user.id.startswith("guest")
        if named and self.state == SessionState.CONNECTED:
            self.state = SessionState.AUTHENTICATED
        logger.debug("Session user is now %s", nick, extra={"user": nick})

    async def _on_chat_message(self, frame: Frame) -> None:
        parts = frame.fields(2)
        if len(parts) < 3:
            logger.warning("Ignoring short chat payload %r", frame.payload,
                           extra={"room": frame.room})
            return
        timestamp, sender, text = parts
        user = self._create_user(sender)
        if self._is_own(user):
            return
        message = ChatMessage(self._create_room(frame.room), user, text, _parse_int(timestamp))
        await self.emit(EventKind.CHAT, message)
        await self.emit(EventKind.MESSAGE, message)

    async def _on_private_message(self, frame: Frame) -> None:
        parts = frame.fields(2)
        if len(parts) < 3:
            logger.warning("Ignoring short pm payload %r", frame.payload)
            return
        sender, _target, text = parts
        user = self._create_user(sender)
        if self._is_own(user):
            return
        message = PrivateMessage(user, text)
        await self.emit(EventKind.PM, message)
        await self.emit(EventKind.MESSAGE, message)

    def _is_own(self, user: User) -> bool:
        if self.user is None:
            # No |updateuser| yet, so nothing can be recognized as our own
            logger.debug("Own user unknown; not filtering message from %s", user)
            return False
        return user.equals(self.user)

    def _create_user(self, nick: str) -> User:
        return User(nick, self)

    def _create_room(self, name: str) -> Room:
        return Room(name, self)


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None
