"""mongorecon error types.

All custom exceptions inherit from MongoReconError to allow
catching any mongorecon-specific error.
"""

from collections.abc import Mapping, Sequence
from typing import Any


class MongoReconError(Exception):
    """Base exception for all mongorecon errors."""

    pass


class ConfigurationError(MongoReconError):
    """Invalid configuration or inventory."""

    pass


class ClusterConnectionError(MongoReconError):
    """No candidate endpoint could be reached within the retry budget."""

    def __init__(self, message: str, hosts: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.hosts = list(hosts)


class CommandError(MongoReconError):
    """An administrative command failed or could not be delivered."""

    def __init__(
        self,
        message: str,
        command: str,
        result: Mapping[str, Any] | None = None,
        connection_lost: bool = False,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.result = dict(result) if result is not None else None
        self.connection_lost = connection_lost

    @property
    def errmsg(self) -> str:
        """Server error message, falling back to the exception text."""
        if self.result and self.result.get("errmsg"):
            return str(self.result["errmsg"])
        return str(self)


class ConfigMismatchError(MongoReconError):
    """Live replica set config does not match the intended one after a reconfigure."""

    def __init__(
        self,
        message: str,
        live: Sequence[Mapping[str, Any]],
        target: Sequence[Mapping[str, Any]],
    ) -> None:
        super().__init__(message)
        self.live = [dict(m) for m in live]
        self.target = [dict(m) for m in target]
