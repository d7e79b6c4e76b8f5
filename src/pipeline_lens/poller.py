"""
Poll loop for the active target.

MetricsPoller drives a MonitorSession on a fixed interval:
- Refreshes the pipeline graph when it is older than the config TTL
- Runs one metrics cycle per tick
- Calls an optional callback with the active context after each tick
  (a failing callback is counted and logged like a failed fetch)
- Handles graceful shutdown via asyncio.Event

Cycles run one after another, so a new cycle never starts while the
previous one is outstanding. Fetch and parse failures are logged and the
loop keeps polling; retry policy is simply "try again next tick".
"""

import asyncio
import logging
from collections.abc import Callable

from pipeline_lens.session import MonitorSession, TargetContext

logger = logging.getLogger(__name__)

# Metrics every 5s, pipeline definition considered stale after 30s
DEFAULT_INTERVAL_SECONDS = 5.0
DEFAULT_CONFIG_TTL_SECONDS = 30.0


class MetricsPoller:
    """
    Long-running poll loop for whichever target is active.

    Uses asyncio.Event for shutdown coordination and Event.wait() with a
    timeout for interruptible sleep between ticks.

    Example:
        session = MonitorSession(targets)
        session.select("orders")
        poller = MetricsPoller(session, interval_seconds=5.0)
        async with asyncio.TaskGroup() as tg:
            tg.create_task(poller.run())
            ...
            poller.stop()
    """

    def __init__(
        self,
        session: MonitorSession,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        config_ttl_seconds: float = DEFAULT_CONFIG_TTL_SECONDS,
        on_update: Callable[[TargetContext], None] | None = None,
    ) -> None:
        """
        Initialize poller.

        Args:
            session: Session whose active target is polled
            interval_seconds: Seconds between ticks (default 5)
            config_ttl_seconds: Max age of the resolved graph (default 30)
            on_update: Called with the active context after each tick
        """
        self.session = session
        self.interval = interval_seconds
        self.config_ttl = config_ttl_seconds
        self.on_update = on_update
        self._shutdown = asyncio.Event()

        # Stats
        self.cycle_count = 0
        self.error_count = 0

    async def run(self) -> None:
        """Poll until stop() is called."""
        logger.info("Poller starting (interval: %ss)", self.interval)

        while not self._shutdown.is_set():
            await self.tick()

            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Poller stopped after %d cycle(s)", self.cycle_count)

    def stop(self) -> None:
        """Signal the loop to exit after the current tick."""
        self._shutdown.set()

    async def tick(self) -> None:
        """
        Run one refresh-and-poll cycle for the active target.

        Does nothing when no target is selected.
        """
        if self.session.active is None:
            return

        self.cycle_count += 1

        if self.session.config_due(self.config_ttl):
            try:
                await self.session.refresh_config()
            except Exception as e:
                self.error_count += 1
                logger.warning("Config refresh for %s failed: %s", self.session.active, e)

        try:
            await self.session.poll_metrics()
        except Exception as e:
            self.error_count += 1
            logger.warning("Metrics poll for %s failed: %s", self.session.active, e)

        if self.on_update is not None and self.session.active is not None:
            try:
                self.on_update(self.session.active_context())
            except Exception as e:
                self.error_count += 1
                logger.warning("Update callback for %s failed: %s", self.session.active, e)
