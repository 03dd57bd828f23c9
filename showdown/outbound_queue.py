from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, Set

from shared.log import get_logger
from shared.protocol import MESSAGE_DELAY

logger = get_logger(__name__)


Sender = Callable[[str], Awaitable[None]]
ErrorCallback = Callable[[BaseException], None]


class OutboundQueue:
    """
    Time-gated FIFO of outbound frames.

    Showdown penalizes clients that send faster than one message per
    MESSAGE_DELAY, so every outbound frame goes through this gate. Frames are
    never dropped or reordered; a backlog drains one frame per interval
    through a single one-shot timer.
    """

    def __init__(
        self,
        sender: Sender,
        min_interval: float = MESSAGE_DELAY,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_error: Optional[ErrorCallback] = None,
        paused: bool = False,
    ) -> None:
        """
        Args:
            sender: Coroutine function that writes one frame to the transport
            min_interval: Minimum seconds between two sends
            clock: Monotonic clock, same timebase as the event loop
            on_error: Called with the exception when a send fails
            paused: Start without sending until resume() is called
        """
        self.min_interval = min_interval
        self.last_sent_at = float("-inf")
        self.paused = paused
        self._sender = sender
        self._clock = clock
        self._on_error = on_error
        self._frames: Deque[str] = deque()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of frames waiting to be sent."""
        return len(self._frames)

    @property
    def timer_scheduled(self) -> bool:
        return self._timer is not None

    def enqueue(self, frame: str) -> None:
        self._frames.append(frame)
        self._check()

    def pause(self) -> None:
        """Stop sending. Queued frames are kept."""
        self.paused = True
        self._cancel_timer()

    def resume(self) -> None:
        self.paused = False
        self._check()

    def clear(self) -> int:
        """Drop every queued frame and return how many were dropped."""
        dropped = len(self._frames)
        self._frames.clear()
        self._cancel_timer()
        return dropped

    async def flush(self) -> None:
        """Wait until the queue is drained and every send has completed."""
        while self._in_flight or (self._frames and not self.paused):
            if self._in_flight:
                await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            else:
                await asyncio.sleep(max(self.last_sent_at + self.min_interval - self._clock(), 0))

    def _check(self) -> None:
        while self._frames and not self.paused:
            now = self._clock()
            ready_at = self.last_sent_at + self.min_interval
            if now < ready_at:
                if self._timer is None:
                    loop = asyncio.get_running_loop()
                    self._timer = loop.call_later(ready_at - now, self._on_timer)
                return
            self._send_head(now)

    def _on_timer(self) -> None:
        self._timer = None
        if self.paused or not self._frames:
            return
        self._send_head(self._clock())
        self._check()

    def _send_head(self, now: float) -> None:
        frame = self._frames.popleft()
        self.last_sent_at = now
        task = asyncio.get_running_loop().create_task(self._sender(frame))
        self._in_flight.add(task)
        task.add_done_callback(self._on_sent)

    def _on_sent(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("Failed to send outbound frame: %s", exc)
        if self._on_error is not None:
            self._on_error(exc)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
