"""Fixed-interval keyword polling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class KeywordPoller:
    """Polls the keyword engine on a timer and hands keywords to a dispatcher.

    Each tick runs as its own task: the timer never waits for a dispatch to
    finish, so a slow pipeline can overlap with the next tick's dispatch.
    """

    poll: Callable[[], Awaitable[str | None]]
    dispatch: Callable[[str], Awaitable[object]]
    on_error: Callable[[Exception], None]
    interval_seconds: float = 1.0
    logger: logging.Logger = LOGGER
    _timer: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _ticks: set[asyncio.Task[None]] = field(default_factory=set, init=False, repr=False)

    @property
    def running(self) -> bool:
        """Return True while the interval timer is scheduled."""
        return self._timer is not None and not self._timer.done()

    @property
    def pending_ticks(self) -> int:
        """Return the number of ticks whose dispatch has not finished."""
        return len(self._ticks)

    def start(self) -> None:
        """Schedule the interval timer; a running timer is left alone."""
        if self.running:
            return
        self._timer = asyncio.get_running_loop().create_task(
            self._run(), name="keyword-poller"
        )
        self.logger.debug("Keyword polling started every %.2fs.", self.interval_seconds)

    def stop(self) -> None:
        """Cancel the interval timer. In-flight ticks keep running."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        self.logger.debug("Keyword polling stopped.")

    async def poll_once(self) -> None:
        """Run one tick inline: poll, then dispatch a non-empty keyword."""
        try:
            keyword: str | None = await self.poll()
        except Exception as error:
            self.logger.error("Error checking keyword: %s", error)
            self.on_error(error)
            return

        if keyword:
            await self.dispatch(keyword)

    async def wait_for_ticks(self) -> None:
        """Wait until every tick started so far has finished dispatching."""
        while self._ticks:
            await asyncio.gather(*tuple(self._ticks), return_exceptions=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            tick: asyncio.Task[None] = asyncio.get_running_loop().create_task(self.poll_once())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)
