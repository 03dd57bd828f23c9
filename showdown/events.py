from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from shared.log import get_logger
from shared.protocol import EventKind

logger = get_logger(__name__)


Handler = Callable[[Any], Union[Awaitable[None], None]]
Condition = Callable[[Any], bool]
EventName = Union[str, EventKind]
# Receives (event name, exception) when a handler raises
HandlerErrorCallback = Callable[[str, Exception], Awaitable[None]]


def _key(kind: EventName) -> str:
    return kind.value if isinstance(kind, EventKind) else kind


class EventDispatcher:
    """
    Dispatch table from event kind to handlers.

    Every event carries exactly one payload object. Handlers run in
    registration order; coroutine handlers are awaited before the next
    handler runs. A handler that raises is logged and reported to
    `on_handler_error`; the remaining handlers still run.
    """

    def __init__(self, on_handler_error: Optional[HandlerErrorCallback] = None) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._waiters: Dict[str, List[Tuple[asyncio.Future, Optional[Condition]]]] = {}
        self._on_handler_error = on_handler_error

    def on(self, kind: EventName, handler: Handler) -> Handler:
        self._handlers.setdefault(_key(kind), []).append(handler)
        return handler

    def off(self, kind: EventName, handler: Handler) -> None:
        handlers = self._handlers.get(_key(kind), [])
        if handler in handlers:
            handlers.remove(handler)

    def once(self, kind: EventName, handler: Handler) -> Handler:
        """Register a handler that is removed after its first call."""
        def wrapper(payload: Any) -> Union[Awaitable[None], None]:
            self.off(kind, wrapper)
            return handler(payload)
        return self.on(kind, wrapper)

    def wait_for(self, kind: EventName, condition: Optional[Condition] = None) -> asyncio.Future:
        """
        Return a future resolved with the payload of the next matching event.

        The future resolves at most once. Cancelling it withdraws the waiter.
        """
        future = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(_key(kind), []).append((future, condition))
        return future

    async def emit(self, kind: EventName, payload: Any = None) -> None:
        key = _key(kind)
        self._resolve_waiters(key, payload)
        for handler in list(self._handlers.get(key, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception("Handler for %r raised: %s", key, e)
                if self._on_handler_error is not None:
                    await self._on_handler_error(key, e)

    def _resolve_waiters(self, key: str, payload: Any) -> None:
        futures = self._waiters.get(key)
        if not futures:
            return
        remaining = []
        for future, condition in futures:
            if future.done():
                continue
            if condition is not None and not condition(payload):
                remaining.append((future, condition))
                continue
            future.set_result(payload)
        if remaining:
            self._waiters[key] = remaining
        else:
            self._waiters.pop(key, None)
