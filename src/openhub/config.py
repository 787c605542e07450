"""Configuration models and the YAML services file loader."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from openhub.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "https://api.opensuse.org"
DEFAULT_DISTRIBUTION = "openSUSE_Leap_15.0"
DEFAULT_ARCHITECTURE = "x86_64"


class Listener(BaseModel):
    """A watched OBS package paired with the Docker tags that follow it."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique key, taken from the services entry")
    project: str = Field(description="OBS project, e.g. Virtualization:containers:Portus")
    distribution: str = Field(default=DEFAULT_DISTRIBUTION)
    architecture: str = Field(default=DEFAULT_ARCHITECTURE)
    package: str = Field(description="OBS package name")
    repository: str = Field(description="Docker repository, e.g. opensuse/portus")
    tags: list[str] = Field(description="Tags to update, in order")
    local_build: bool = Field(default=False, description="Build locally instead of triggering Docker Hub")


class Credentials(BaseModel):
    """Global credentials for OBS and Docker Hub."""

    server: str = Field(default=DEFAULT_SERVER, description="Location of the OBS API server")
    user: str = Field(default="", description="OBS user")
    password: str = Field(default="", description="OBS password")
    token: str = Field(default="", description="Docker Hub trigger token")


class Options(BaseModel):
    """Runtime options for the synchronization loop."""

    single_shot: bool = Field(default=False, description="Run exactly one pass and stop")
    interval_seconds: float = Field(default=300.0, gt=0, description="Seconds between passes")
    request_timeout: float = Field(default=15.0, gt=0, description="Per-request timeout in seconds")
    download_dir: Path | None = Field(
        default=None,
        description="Where build artifacts are downloaded (default: a temporary directory)",
    )


class Configuration(BaseModel):
    """Everything the synchronization loop needs."""

    credentials: Credentials = Field(default_factory=Credentials)
    options: Options = Field(default_factory=Options)
    listeners: list[Listener] = Field(default_factory=list)

    @property
    def single_shot(self) -> bool:
        return self.options.single_shot


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read and parse the YAML configuration file."""
    try:
        text = path.expanduser().resolve().read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"could not read configuration file '{path}': {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"could not parse configuration file '{path}': {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"configuration file '{path}' must contain a mapping")
    return data


def sanitize_listeners(services: dict[str, Any]) -> list[Listener]:
    """Validate the parsed services and fill in defaults.

    Args:
        services: Mapping of service name to its raw settings.

    Returns:
        Listeners sorted by name.

    Raises:
        ConfigurationError: If a service misses a mandatory attribute.
    """
    listeners: list[Listener] = []

    for key in sorted(services, key=str):
        name = str(key)
        raw = services[key] or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{name} service must be a mapping!")

        for attr in ("project", "package", "repository"):
            if not raw.get(attr):
                raise ConfigurationError(f"{name} service does not provide a {attr}!")
        if not raw.get("tags"):
            raise ConfigurationError(f"{name} service does not provide tags!")

        settings = dict(raw)
        if not settings.get("distribution"):
            settings["distribution"] = DEFAULT_DISTRIBUTION
            logger.info(
                "%s service does not provide a distribution, assuming %s", name, DEFAULT_DISTRIBUTION
            )
        if not settings.get("architecture"):
            settings["architecture"] = DEFAULT_ARCHITECTURE
            logger.info(
                "%s service does not provide an architecture, assuming %s", name, DEFAULT_ARCHITECTURE
            )
        if not isinstance(settings["tags"], list):
            settings["tags"] = [settings["tags"]]
        settings["tags"] = [str(tag) for tag in settings["tags"]]
        settings["name"] = name

        try:
            listeners.append(Listener(**settings))
        except ValidationError as e:
            raise ConfigurationError(f"{name} service is not valid: {e}") from e

    return listeners


def load_configuration(
    path: Path | str,
    credentials: Credentials | None = None,
    options: Options | None = None,
) -> Configuration:
    """Build a Configuration from the services file plus the given flags."""
    data = _read_config_file(Path(path))

    services = data.get("services") or {}
    if not isinstance(services, dict):
        raise ConfigurationError("'services' must be a mapping of service names")

    listeners = sanitize_listeners(services)
    if not listeners:
        logger.warning("No services were configured in '%s'", path)

    return Configuration(
        credentials=credentials or Credentials(),
        options=options or Options(),
        listeners=listeners,
    )
