"""Client for the Open Build Service API."""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from openhub.config import Credentials, Listener

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15.0


def build_endpoint(listener: Listener, suffix: str = "") -> str:
    """Path of a package's build resource, e.g. /build/<project>/<dist>/<arch>/<package>/_status."""
    parts = [
        "build",
        listener.project,
        listener.distribution,
        listener.architecture,
        listener.package,
    ]
    if suffix:
        parts.append(suffix)
    return "/" + "/".join(parts)


class OBSClient:
    """Answers build status questions for listeners.

    The status methods never raise: transport errors, unexpected status
    codes and malformed XML are logged and reported as "not succeeded" or
    as an empty revision.
    """

    def __init__(
        self,
        credentials: Credentials,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Server location and basic auth credentials.
            timeout: Timeout in seconds applied to every request.
            transport: Optional httpx transport (used by tests).
        """
        self._credentials = credentials
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._credentials.server.rstrip("/"),
            auth=(self._credentials.user, self._credentials.password),
            timeout=self._timeout,
            transport=self._transport,
        )

    async def fetch(self, listener: Listener, suffix: str = "") -> bytes:
        """GET a build resource and return its body.

        Raises:
            httpx.HTTPError: On transport errors or a non-200 response.
        """
        async with self._client() as client:
            response = await client.get(build_endpoint(listener, suffix))
            if response.status_code != httpx.codes.OK:
                raise httpx.HTTPStatusError(
                    f"Status {response.status_code} when requesting '{response.request.url}'",
                    request=response.request,
                    response=response,
                )
            return response.content

    async def _fetch_xml(self, listener: Listener, suffix: str) -> ET.Element | None:
        try:
            body = await self.fetch(listener, suffix)
        except httpx.HTTPStatusError as e:
            logger.warning("%s: %s", listener.name, e)
            return None
        except httpx.HTTPError as e:
            logger.error("%s: request for '%s' failed: %r", listener.name, suffix or "binaries", e)
            return None

        try:
            return ET.fromstring(body)
        except ET.ParseError as e:
            logger.error("%s: could not decode '%s' response: %s", listener.name, suffix, e)
            return None

    async def is_succeeded(self, listener: Listener) -> bool:
        """Whether the last build of the listener's package succeeded."""
        root = await self._fetch_xml(listener, "_status")
        if root is None or root.tag != "status":
            return False
        return root.get("code") == "succeeded"

    async def current_revision(self, listener: Listener) -> str:
        """Source revision the last build was made from, or "" if unknown."""
        root = await self._fetch_xml(listener, "_buildinfo")
        if root is None or root.tag != "buildinfo":
            return ""
        return (root.findtext("rev") or "").strip()

    async def list_binaries(self, listener: Listener) -> list[str]:
        """File names of the binaries produced by the last build.

        Raises:
            httpx.HTTPError: If the binary list cannot be fetched.
            ValueError: If the response is not a binary list.
        """
        body = await self.fetch(listener)
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            raise ValueError(f"could not decode the binary list: {e}") from e
        if root.tag != "binarylist":
            raise ValueError(f"unexpected '{root.tag}' document instead of a binary list")
        return [b.get("filename", "") for b in root.iter("binary") if b.get("filename")]

    async def download(self, listener: Listener, filename: str, directory: Path) -> Path:
        """Stream a build binary into the given directory.

        Raises:
            httpx.HTTPError: On transport errors or a non-200 response.
        """
        directory.mkdir(parents=True, exist_ok=True)
        destination = directory / filename
        logger.info("Downloading file '%s' into '%s'", filename, directory)

        async with self._client() as client:
            async with client.stream("GET", build_endpoint(listener, filename)) as response:
                if response.status_code != httpx.codes.OK:
                    raise httpx.HTTPStatusError(
                        f"Status {response.status_code} when downloading '{filename}'",
                        request=response.request,
                        response=response,
                    )
                with destination.open("wb") as f:
                    async for chunk in response.aiter_bytes():
                        await asyncio.to_thread(f.write, chunk)

        return destination
