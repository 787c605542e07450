"""Docker Hub build triggers."""

from __future__ import annotations

import logging

import httpx

from openhub.exceptions import TriggerError

logger = logging.getLogger(__name__)

HUB_URL = "https://registry.hub.docker.com"
REQUEST_TIMEOUT = 15.0


def trigger_url(repository: str, token: str, base_url: str = HUB_URL) -> str:
    return f"{base_url.rstrip('/')}/u/{repository}/trigger/{token}/"


class HubClient:
    """Fires Docker Hub automated build triggers, one call per tag."""

    def __init__(
        self,
        base_url: str = HUB_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    async def trigger_tag(self, token: str, repository: str, tag: str) -> None:
        """Ask Docker Hub to rebuild one tag of a repository.

        Raises:
            TriggerError: On transport errors or a non-200 response.
        """
        url = trigger_url(repository, token, self._base_url)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json={"docker_tag": tag})
        except httpx.HTTPError as e:
            raise TriggerError(f"could not trigger tag '{tag}': {e!r}", tag=tag) from e

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Status %d when updating tag '%s' on Docker Hub", response.status_code, tag
            )
            logger.warning("Given response: %s", response.text)
            raise TriggerError(
                f"Docker Hub answered {response.status_code} for tag '{tag}'", tag=tag
            )

    async def update_hub(self, token: str, repository: str, tags: list[str]) -> None:
        """Trigger every tag in order, stopping at the first failure.

        Tags triggered before the failing one stay triggered.
        """
        for tag in tags:
            await self.trigger_tag(token, repository, tag)
            logger.debug("Triggered '%s:%s'", repository, tag)
