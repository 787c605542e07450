"""Local pipeline: fetch an image tarball from OBS, verify, load and push it."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from openhub.exceptions import BuildError

if TYPE_CHECKING:
    from openhub.config import Listener
    from openhub.obs import OBSClient

logger = logging.getLogger(__name__)

TARBALL_RE = re.compile(r"\.docker\.tar$")
CHECKSUM_RE = re.compile(r"\.docker\.tar\.sha256$")
SHA256_RE = re.compile(r"\b[0-9a-fA-F]{64}\b")
LOADED_RE = re.compile(r"Loaded image(?: ID)?: (\S+)")


@dataclass
class Artifacts:
    """A downloaded image tarball and its checksum sidecar."""

    tarball: Path
    checksum: Path


def file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()


def expected_sha256(checksum: Path) -> str:
    """Extract the digest from a sha256 sidecar ("<digest>  <filename>", possibly signed)."""
    match = SHA256_RE.search(checksum.read_text(encoding="utf-8", errors="replace"))
    if not match:
        raise BuildError(f"'{checksum.name}' does not contain a sha256 digest")
    return match.group(0).lower()


def verify_checksum(artifacts: Artifacts) -> None:
    """Raises BuildError if the tarball does not match its sidecar."""
    expected = expected_sha256(artifacts.checksum)
    actual = file_sha256(artifacts.tarball)
    if actual != expected:
        raise BuildError(
            f"'{artifacts.tarball.name}' does not match sha256 file '{artifacts.checksum.name}'"
        )


async def run_docker(*args: str) -> str:
    """Run a docker CLI command and return its stdout.

    Raises:
        BuildError: If docker is missing or exits with a non-zero status.
    """
    logger.debug("Running docker %s", " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            "docker",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise BuildError("the docker executable could not be found") from e

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise BuildError(
            f"'docker {args[0]}' exited with {proc.returncode}: "
            f"{stderr.decode(errors='replace').strip()}"
        )
    return stdout.decode(errors="replace")


class BuildPipeline:
    """Fetches, verifies, loads and pushes the image built by OBS."""

    def __init__(self, obs: OBSClient, download_dir: Path | None = None) -> None:
        """Initialize the pipeline.

        Args:
            obs: Client used to list and download build binaries.
            download_dir: Directory for downloads (default: a fresh temporary directory per run).
        """
        self._obs = obs
        self._download_dir = download_dir

    async def fetch_artifacts(self, listener: Listener, directory: Path) -> Artifacts:
        """Download the image tarball and its checksum sidecar."""
        try:
            binaries = await self._obs.list_binaries(listener)
        except (httpx.HTTPError, ValueError) as e:
            raise BuildError(f"could not fetch the binaries for the '{listener.package}' package: {e}") from e

        tarball = next((b for b in binaries if TARBALL_RE.search(b)), None)
        checksum = next((b for b in binaries if CHECKSUM_RE.search(b)), None)
        if tarball is None or checksum is None:
            raise BuildError(f"no docker image tarball with checksum found for '{listener.package}'")

        paths: list[Path] = []
        for filename in (tarball, checksum):
            try:
                paths.append(await self._obs.download(listener, filename, directory))
            except (httpx.HTTPError, OSError) as e:
                raise BuildError(f"could not download '{filename}': {e}") from e

        return Artifacts(tarball=paths[0], checksum=paths[1])

    async def remove_images(self, listener: Listener) -> None:
        """Force-remove local images for every repository:tag, ignoring missing ones."""
        for tag in listener.tags:
            image = f"{listener.repository}:{tag}"
            try:
                await run_docker("image", "rm", "--force", image)
            except BuildError as e:
                logger.debug("Could not remove '%s': %s", image, e)

    async def verify_and_load(self, artifacts: Artifacts, listener: Listener) -> None:
        """Verify the tarball, replace the old images and load the new one."""
        await asyncio.to_thread(verify_checksum, artifacts)
        await self.remove_images(listener)

        output = await run_docker("load", "--quiet", "--input", str(artifacts.tarball))
        for line in output.splitlines():
            if line.strip():
                logger.info("%s", line.strip())

        match = LOADED_RE.search(output)
        if not match:
            raise BuildError(f"could not tell which image was loaded from '{artifacts.tarball.name}'")
        loaded = match.group(1)

        for tag in listener.tags:
            target = f"{listener.repository}:{tag}"
            if loaded != target:
                await run_docker("tag", loaded, target)

    async def push(self, listener: Listener) -> None:
        for tag in listener.tags:
            await run_docker("push", f"{listener.repository}:{tag}")

    async def build_and_push(self, listener: Listener) -> None:
        """Run the whole pipeline; any failing step aborts the remaining ones.

        Raises:
            BuildError: Describing the step that failed.
        """
        if self._download_dir is None:
            with tempfile.TemporaryDirectory(prefix="openhub-") as tmpdir:
                await self._run(listener, Path(tmpdir))
            return

        directory = self._download_dir / listener.name
        try:
            await self._run(listener, directory)
        finally:
            await asyncio.to_thread(shutil.rmtree, directory, True)

    async def _run(self, listener: Listener, directory: Path) -> None:
        artifacts = await self.fetch_artifacts(listener, directory)
        await self.verify_and_load(artifacts, listener)
        await self.push(listener)
