"""Runs one synchronization pass over all listeners concurrently."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from openhub.sync.engine import Outcome, synchronize

if TYPE_CHECKING:
    from openhub.config import Configuration
    from openhub.sync.engine import Executor, StatusClient
    from openhub.sync.state import SyncState

logger = logging.getLogger(__name__)


async def run_pass(
    config: Configuration,
    state: SyncState,
    status_client: StatusClient,
    executor: Executor,
) -> dict[str, Outcome | None]:
    """Synchronize every listener concurrently and wait for all of them.

    A unit that raises is logged and reported as None; it never affects its
    siblings. ``state.done`` is set only after every unit has finished.

    Returns:
        Mapping of listener name to the outcome of its unit.
    """
    try:
        listeners = config.listeners
        results = await asyncio.gather(
            *(synchronize(config, listener, state, status_client, executor) for listener in listeners),
            return_exceptions=True,
        )

        outcomes: dict[str, Outcome | None] = {}
        for listener, result in zip(listeners, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "%s: synchronization failed: %s",
                    listener.name,
                    result,
                    exc_info=(type(result), result, result.__traceback__),
                )
                outcomes[listener.name] = None
            else:
                outcomes[listener.name] = result

        logger.debug("Pass finished: %s", outcomes)
        return outcomes
    finally:
        state.done = True
