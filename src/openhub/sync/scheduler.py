"""Timed loop that starts synchronization passes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from openhub.sync.dispatcher import run_pass
from openhub.sync.state import SyncState

if TYPE_CHECKING:
    from openhub.config import Configuration
    from openhub.sync.engine import Executor, Outcome, StatusClient

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs a pass immediately and then one per interval.

    A tick that finds the previous pass still running is dropped, not
    queued, so slow passes never pile up.
    """

    def __init__(
        self,
        config: Configuration,
        status_client: StatusClient,
        executor: Executor,
        state: SyncState | None = None,
    ) -> None:
        """Initialize scheduler.

        Args:
            config: Listeners, credentials and loop options.
            status_client: Answers build status and revision queries.
            executor: Performs the action for a listener with a new revision.
            state: Sync state to use (default: a fresh, empty one).
        """
        self._config = config
        self._status_client = status_client
        self._executor = executor
        self.state = state or SyncState()
        self._current: asyncio.Task[dict[str, Outcome | None]] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        return self._config.options.interval_seconds

    @property
    def pass_in_flight(self) -> bool:
        return self._current is not None and not self.state.done

    def _start_pass(self) -> asyncio.Task[dict[str, Outcome | None]]:
        self._current = asyncio.create_task(
            run_pass(self._config, self.state, self._status_client, self._executor)
        )
        return self._current

    def tick(self) -> bool:
        """Start a new pass unless the previous one is still running.

        Returns:
            True if a pass was started.
        """
        if self.pass_in_flight:
            logger.warning("Previous execution is not done, waiting...")
            return False

        self.state.done = False
        self._start_pass()
        return True

    async def run_once(self) -> dict[str, Outcome | None]:
        """Perform exactly one pass and wait for it."""
        self.state.done = False
        return await self._start_pass()

    async def _loop(self) -> None:
        self.state.done = False
        self._start_pass()
        logger.info("Listening...")

        try:
            while True:
                await asyncio.sleep(self.interval)
                self.tick()
        finally:
            if self._current is not None and not self._current.done():
                self._current.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._current

    async def run(self) -> None:
        """Run until cancelled, or once when configured as single shot."""
        if self._config.single_shot:
            await self.run_once()
            logger.info("Only one execution was needed, stopping...")
            return

        await self.start()
        try:
            if self._task is not None:
                await self._task
        finally:
            await self.stop()

    async def start(self) -> None:
        """Start the loop in the background; pair with stop()."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Stop the background loop and cancel a pass still in flight."""
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Scheduler stopped")


async def sync(
    config: Configuration,
    status_client: StatusClient | None = None,
    executor: Executor | None = None,
) -> None:
    """Synchronize the configured listeners, building default collaborators if needed."""
    from openhub.actions import ActionExecutor
    from openhub.obs import OBSClient

    if status_client is None or executor is None:
        obs = OBSClient(config.credentials, timeout=config.options.request_timeout)
        status_client = status_client or obs
        executor = executor or ActionExecutor.from_config(config, obs)

    await Scheduler(config, status_client, executor).run()
