from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


_CLOSED = object()


class DummyWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, fail_send: bool = False) -> None:
        self.sent_messages: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.fail_send = fail_send
        self._inbound: asyncio.Queue = asyncio.Queue()

    def push(self, frame) -> None:
        """Deliver an inbound frame to the client."""
        self._inbound.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._inbound.put_nowait(_CLOSED)

    async def send(self, data: str) -> None:
        if self.fail_send:
            raise ConnectionResetError("connection reset by peer")
        if self.closed:
            raise ConnectionError("send on closed connection")
        self.sent_messages.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = True
        self.close_code = code
        self.close_reason = reason
        self._inbound.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbound.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class DummyConnector:
    """Connector handing out a fresh DummyWebSocket per connect."""

    def __init__(self, error: Exception | None = None, fail_send: bool = False) -> None:
        self.error = error
        self.fail_send = fail_send
        self.urls: list[str] = []
        self.sockets: list[DummyWebSocket] = []

    async def __call__(self, url: str) -> DummyWebSocket:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        ws = DummyWebSocket(fail_send=self.fail_send)
        self.sockets.append(ws)
        return ws

    @property
    def websocket(self) -> DummyWebSocket:
        return self.sockets[-1]


class LoginServer:
    """httpx handler answering the crossdomain lookup and login action."""

    def __init__(self, config: dict | None = None, reject: bool = False) -> None:
        self.config = config or {"host": "sim3.psim.us", "port": 443, "id": "showdown"}
        self.reject = reject
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/crossdomain.php"):
            body = f"<script>\nvar config = {json.dumps(self.config)};\n</script>"
            return httpx.Response(200, text=body)
        if request.url.path.endswith("/action.php"):
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            if self.reject:
                data = {"actionsuccess": False, "assertion": ";;Wrong password."}
            else:
                data = {"actionsuccess": True, "assertion": f"ASSERT-{form['name']}"}
            return httpx.Response(200, text="]" + json.dumps(data))
        return httpx.Response(404)

    def forms(self) -> list[dict]:
        return [
            {k: v[0] for k, v in parse_qs(r.content.decode()).items()}
            for r in self.requests
            if r.method == "POST"
        ]


async def _wait_until(predicate, timeout: float = 2.0) -> bool:
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while loop.time() < end:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


@pytest.fixture
def connector() -> DummyConnector:
    return DummyConnector()


@pytest.fixture
def login_server() -> LoginServer:
    return LoginServer()


@pytest_asyncio.fixture
async def http(login_server):
    async with httpx.AsyncClient(transport=httpx.MockTransport(login_server)) as client:
        yield client


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def fast_config():
    from showdown.config import SessionConfig

    return SessionConfig(message_delay=0.0)
