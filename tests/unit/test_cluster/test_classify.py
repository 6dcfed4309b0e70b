"""Tests for server error classification."""

import pytest

from mongorecon.cluster.classify import AlreadyDone, ErrorKind, classify_server_error


def test_initiated_by_captures_responder() -> None:
    result = classify_server_error("db2.example.com:27017 is already initiated")
    assert result.is_already(AlreadyDone.REPLSET_INITIATED)
    assert result.responder == "db2.example.com:27017"


@pytest.mark.parametrize("errmsg", ["already initialized", "replSet already initiated"])
def test_already_initialized(errmsg: str) -> None:
    result = classify_server_error(errmsg)
    assert result.is_already(AlreadyDone.REPLSET_INITIATED)


def test_sharding_messages_match_exactly() -> None:
    assert classify_server_error("already enabled").is_already(AlreadyDone.SHARDING_ENABLED)
    assert classify_server_error("already sharded").is_already(AlreadyDone.COLLECTION_SHARDED)
    assert classify_server_error("sharding already enabled for app").kind == ErrorKind.FATAL


def test_user_exists() -> None:
    result = classify_server_error('User "app@admin" already exists')
    assert result.is_already(AlreadyDone.USER_EXISTS)
    assert not result.is_already(AlreadyDone.SHARDING_ENABLED)


@pytest.mark.parametrize(
    "errmsg",
    ["not primary", "operation timed out", "node is recovering", "connection reset"],
)
def test_transient(errmsg: str) -> None:
    assert classify_server_error(errmsg).kind == ErrorKind.TRANSIENT


@pytest.mark.parametrize("errmsg", [None, "", "bad key pattern"])
def test_everything_else_is_fatal(errmsg: str | None) -> None:
    result = classify_server_error(errmsg)
    assert result.kind == ErrorKind.FATAL
    assert result.already_done is None
