"""Scheduled ambient posts.

One cycle visits every configured channel:

  1. Load the document once.
  2. Run post_to_channel() for each channel; a failure is logged and the
     cycle moves on to the next channel.
  3. Save the document once, keeping every lastPostedAt stamped above.

AmbientScheduler repeats the cycle: first FIRST_RUN_DELAY after start, then
roughly every POST_EVERY. Sleeps are planned on a fixed grid of POST_EVERY
steps, so time spent inside a cycle delays the following ticks by that much.
Missed ticks are not caught up.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Literal

from ambient_bot.generator import AmbientGenerator
from ambient_bot.posting import ChannelResolver, post_to_channel
from ambient_bot.storage import ConfigStore

logger = logging.getLogger(__name__)

POST_EVERY = timedelta(hours=24)
FIRST_RUN_DELAY = timedelta(seconds=29)

Outcome = Literal["posted", "skipped", "failed"]


async def run_scheduled_posts(
    store: ConfigStore,
    *,
    resolver: ChannelResolver,
    generator: AmbientGenerator,
) -> dict[str, Outcome]:
    """Run one cycle and return what happened per channel."""
    doc = store.load()
    outcomes: dict[str, Outcome] = {}

    for channel_id in list(doc.channels):
        try:
            posted = await post_to_channel(
                channel_id, doc, resolver=resolver, generator=generator,
            )
        except Exception:
            logger.exception("scheduled post failed for channel %s", channel_id)
            outcomes[channel_id] = "failed"
            continue
        outcomes[channel_id] = "posted" if posted else "skipped"

    store.save(doc)
    logger.info(
        "scheduled cycle done: %d posted, %d failed, %d skipped",
        sum(1 for o in outcomes.values() if o == "posted"),
        sum(1 for o in outcomes.values() if o == "failed"),
        sum(1 for o in outcomes.values() if o == "skipped"),
    )
    return outcomes


class AmbientScheduler:
    """Cancellable repeating task around a cycle coroutine.

    Args:
        cycle:      Coroutine function run on every tick.
        period:     Seconds between ticks.
        first_delay: Seconds from start() to the first tick.
        sleep:      Awaitable sleep, replaced by a fake in tests.
    """

    def __init__(
        self,
        cycle: Callable[[], Awaitable[object]],
        *,
        period: float = POST_EVERY.total_seconds(),
        first_delay: float = FIRST_RUN_DELAY.total_seconds(),
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self._cycle = cycle
        self._period = period
        self._first_delay = max(first_delay, 0.0)
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ambient-scheduler")
        logger.info(
            "rolling schedule started: first run in %.0fs, then every %.1f hours",
            self._first_delay, self._period / 3600,
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("rolling schedule stopped")

    async def _tick(self) -> None:
        try:
            await self._cycle()
        except Exception:
            logger.exception("scheduled cycle failed")

    async def _run(self) -> None:
        # Sleeps follow a k * period grid (cycle run time not counted); the first-run tick is extra.
        # Ticks that fell inside the first delay are dropped, not caught up.
        await self._sleep(self._first_delay)
        await self._tick()
        elapsed = self._first_delay
        next_tick = self._period
        while True:
            while next_tick < elapsed:
                next_tick += self._period
            await self._sleep(next_tick - elapsed)
            elapsed = next_tick
            await self._tick()
            next_tick += self._period
