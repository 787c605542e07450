"""Picks and runs the downstream action for a listener."""

from __future__ import annotations

from typing import TYPE_CHECKING

from openhub.build import BuildPipeline
from openhub.hub import HubClient

if TYPE_CHECKING:
    from openhub.config import Configuration, Listener
    from openhub.obs import OBSClient


class ActionExecutor:
    """Runs either the local build pipeline or the Docker Hub trigger.

    Both paths raise an ActionError subclass on failure.
    """

    def __init__(self, pipeline: BuildPipeline, hub: HubClient) -> None:
        self.pipeline = pipeline
        self.hub = hub

    @classmethod
    def from_config(cls, config: Configuration, obs: OBSClient) -> ActionExecutor:
        return cls(
            pipeline=BuildPipeline(obs, download_dir=config.options.download_dir),
            hub=HubClient(timeout=config.options.request_timeout),
        )

    async def execute(self, config: Configuration, listener: Listener) -> None:
        if listener.local_build:
            await self.pipeline.build_and_push(listener)
        else:
            await self.hub.update_hub(config.credentials.token, listener.repository, listener.tags)
