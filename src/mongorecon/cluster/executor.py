"""Administrative command execution."""

from collections.abc import Mapping
from typing import Any

from bson import SON
from loguru import logger
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from mongorecon.errors import CommandError
from mongorecon.ports.cluster import ClusterClientPort
from mongorecon.utils.retry import RetryPolicy


def command_name(command: Mapping[str, Any]) -> str:
    """The command verb is the first key of the request document."""
    return next(iter(command))


def redacted(command: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of a command that is safe to log."""
    return {k: ("***" if k == "pwd" else v) for k, v in command.items()}


def is_ok(result: Mapping[str, Any] | None) -> bool:
    return bool(result) and result.get("ok") == 1  # type: ignore[union-attr]


class CommandExecutor:
    """
    Sends administrative commands and returns their result documents.

    ``execute`` never raises for ``ok: 0`` results; callers inspect
    ``ok``/``errmsg`` themselves. Driver failures are raised as
    CommandError, flagged ``connection_lost`` for network errors.
    """

    def __init__(self, retry: RetryPolicy) -> None:
        self.retry = retry

    def execute(
        self, client: ClusterClientPort, database: str, command: Mapping[str, Any]
    ) -> dict[str, Any]:
        """
        Run a single command against ``database``.

        Raises:
            CommandError: The driver could not deliver the command or
                raised on its own.
        """
        name = command_name(command)
        logger.debug("Running {} on {}: {}", name, database, redacted(command))
        try:
            result = client[database].command(SON(command), check=False)
        except OperationFailure as e:
            raise CommandError(
                f"{name} failed: {e}", name, result=e.details or {"ok": 0, "errmsg": str(e)}
            ) from e
        except ConnectionFailure as e:
            raise CommandError(f"{name} lost its connection: {e}", name, connection_lost=True) from e
        except PyMongoError as e:
            raise CommandError(f"{name} failed: {e}", name) from e
        return dict(result)

    def execute_retrying(
        self, client: ClusterClientPort, database: str, command: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Run ``command`` under the retry policy; re-raises the last CommandError."""

        def run_command() -> dict[str, Any]:
            return self.execute(client, database, command)

        run_command.__name__ = f"run_{command_name(command)}"
        return self.retry.call(run_command, exceptions=CommandError)
