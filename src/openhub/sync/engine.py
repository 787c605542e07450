"""Per-listener decision: is the remote build new, and if so, act on it."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from openhub.exceptions import ActionError

if TYPE_CHECKING:
    from openhub.config import Configuration, Listener
    from openhub.sync.state import SyncState

logger = logging.getLogger(__name__)


class StatusClient(Protocol):
    async def is_succeeded(self, listener: Listener) -> bool: ...

    async def current_revision(self, listener: Listener) -> str: ...


class Executor(Protocol):
    async def execute(self, config: Configuration, listener: Listener) -> None: ...


class Outcome(StrEnum):
    """What a synchronization unit ended up doing."""

    NOT_READY = "not_ready"
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    FAILED = "failed"


def join_tags(tags: list[str]) -> str:
    """Render tags as "'a', 'b'" for log lines."""
    return ", ".join(f"'{tag}'" for tag in tags)


async def synchronize(
    config: Configuration,
    listener: Listener,
    state: SyncState,
    status_client: StatusClient,
    executor: Executor,
) -> Outcome:
    """Act on a listener at most once per newly observed revision.

    A failed build status and an unreachable server look the same here: both
    end the unit without touching the state. The observed revision is
    recorded even when the action fails, so a failure is only retried once
    the remote revision changes again.
    """
    if not await status_client.is_succeeded(listener):
        logger.debug("%s: build not succeeded or status unavailable", listener.name)
        return Outcome.NOT_READY

    revision = await status_client.current_revision(listener)
    if not revision:
        logger.debug("%s: revision unavailable", listener.name)
        return Outcome.NOT_READY

    if state.revisions.get(listener.name) == revision:
        logger.info("%s: everything up-to-date, skipping...", listener.name)
        return Outcome.UP_TO_DATE

    outcome = Outcome.UPDATED
    try:
        await executor.execute(config, listener)
    except ActionError as e:
        outcome = Outcome.FAILED
        logger.error(
            "Failed to update to revision '%s' for the tags: %s; for repository '%s': %s",
            revision,
            join_tags(listener.tags),
            listener.repository,
            e,
        )
    except Exception:
        outcome = Outcome.FAILED
        logger.exception(
            "Unexpected error updating to revision '%s' the tags: %s; for repository '%s'",
            revision,
            join_tags(listener.tags),
            listener.repository,
        )
    else:
        logger.info(
            "Updated to revision '%s' the tags: %s; for repository '%s'",
            revision,
            join_tags(listener.tags),
            listener.repository,
        )

    state.revisions.record(listener.name, revision)
    return outcome
