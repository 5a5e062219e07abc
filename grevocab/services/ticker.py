"""
Repeating timer on the running asyncio loop
"""
import asyncio
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()


class AsyncioTicker:
    """Calls ``callback`` every ``interval`` seconds until cancelled.

    The callback returns False to stop ticking. Once ``cancel()`` has returned
    no further callback runs, including one whose timer already fired.
    """

    def __init__(self, callback: Callable[[], bool], interval: float = 1.0,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.callback = callback
        self.interval = interval
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._cancelled

    def start(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._cancelled = False
        self._schedule()

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self.interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        try:
            keep_going = self.callback()
        except Exception:
            logger.exception("ticker_callback_failed")
            keep_going = False
        if keep_going is False or self._cancelled:
            self._handle = None
            return
        self._schedule()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
