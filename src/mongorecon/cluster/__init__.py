"""Cluster access: connections, command execution and error classification."""

from mongorecon.cluster.classify import (
    AlreadyDone,
    ErrorKind,
    ServerErrorClass,
    classify_server_error,
)
from mongorecon.cluster.connection import ConnectionManager
from mongorecon.cluster.executor import CommandExecutor, command_name, is_ok

__all__ = [
    "AlreadyDone",
    "CommandExecutor",
    "ConnectionManager",
    "ErrorKind",
    "ServerErrorClass",
    "classify_server_error",
    "command_name",
    "is_ok",
]
