"""Exception hierarchy for openhub."""

from __future__ import annotations


class OpenhubError(Exception):
    """Base exception for all openhub errors."""


class ConfigurationError(OpenhubError):
    """The configuration file or the given flags are not usable."""


class ActionError(OpenhubError):
    """A downstream action for a listener could not be completed."""


class BuildError(ActionError):
    """A step of the local fetch/verify/load/push pipeline failed."""


class TriggerError(ActionError):
    """A Docker Hub trigger call failed.

    Calls issued for earlier tags are not rolled back.
    """

    def __init__(self, message: str, tag: str | None = None) -> None:
        super().__init__(message)
        self.tag = tag
