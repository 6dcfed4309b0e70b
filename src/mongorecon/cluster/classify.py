"""Classification of free-text server error messages.

The server reports "already applied" states only through ``errmsg``
text, so every text match lives here. The patterns track the server
versions the project is run against and need revisiting on upgrades.
"""

import re
from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    """Broad class of a server error."""

    ALREADY_DONE = "already_done"
    TRANSIENT = "transient"
    FATAL = "fatal"


class AlreadyDone(StrEnum):
    """Which administrative step the server reports as already applied."""

    REPLSET_INITIATED = "replset_initiated"
    SHARDING_ENABLED = "sharding_enabled"
    COLLECTION_SHARDED = "collection_sharded"
    USER_EXISTS = "user_exists"


@dataclass(frozen=True)
class ServerErrorClass:
    """Result of classifying a server error message."""

    kind: ErrorKind
    already_done: AlreadyDone | None = None
    responder: str | None = None

    def is_already(self, what: AlreadyDone) -> bool:
        return self.kind == ErrorKind.ALREADY_DONE and self.already_done == what


_INITIATED_BY = re.compile(r"(\S+) is already initiated", re.IGNORECASE)
_INITIALIZED = re.compile(r"already (?:initiated|initialized)", re.IGNORECASE)
_USER_EXISTS = re.compile(r"already exists", re.IGNORECASE)
_TRANSIENT = re.compile(
    r"timed out|timeout|network|connection|not master|not primary|"
    r"notwritableprimary|node is recovering|interrupted|shutdown in progress",
    re.IGNORECASE,
)

# enablesharding / shardcollection report these as the complete errmsg
_SHARDING_ENABLED = "already enabled"
_COLLECTION_SHARDED = "already sharded"


def classify_server_error(errmsg: str | None) -> ServerErrorClass:
    """
    Classify a server ``errmsg``.

    Args:
        errmsg: Error text from a command result or exception.

    Returns:
        ServerErrorClass. For "<host:port> is already initiated" the
        responding host is captured in ``responder``.
    """
    text = (errmsg or "").strip()

    match = _INITIATED_BY.search(text)
    if match:
        return ServerErrorClass(
            ErrorKind.ALREADY_DONE, AlreadyDone.REPLSET_INITIATED, responder=match.group(1)
        )
    if _INITIALIZED.search(text):
        return ServerErrorClass(ErrorKind.ALREADY_DONE, AlreadyDone.REPLSET_INITIATED)
    if text == _SHARDING_ENABLED:
        return ServerErrorClass(ErrorKind.ALREADY_DONE, AlreadyDone.SHARDING_ENABLED)
    if text == _COLLECTION_SHARDED:
        return ServerErrorClass(ErrorKind.ALREADY_DONE, AlreadyDone.COLLECTION_SHARDED)
    if _USER_EXISTS.search(text):
        return ServerErrorClass(ErrorKind.ALREADY_DONE, AlreadyDone.USER_EXISTS)
    if _TRANSIENT.search(text):
        return ServerErrorClass(ErrorKind.TRANSIENT)
    return ServerErrorClass(ErrorKind.FATAL)
