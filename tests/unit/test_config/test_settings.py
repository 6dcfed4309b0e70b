"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from mongorecon.config.models import ConnectionConfig, Inventory, RetryConfig, Settings


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Nested settings can be set from MONGORECON_ variables."""
    monkeypatch.setenv("MONGORECON_CONNECTION__LOCAL_HOST", "127.0.0.1")
    monkeypatch.setenv("MONGORECON_RETRY__MAX_RETRIES", "1")

    settings = Settings()

    assert settings.connection.local_host == "127.0.0.1"
    assert settings.retry.max_retries == 1


def test_retry_bounds() -> None:
    with pytest.raises(ValidationError):
        RetryConfig(max_retries=-1)


def test_read_preference_validated() -> None:
    with pytest.raises(ValidationError):
        ConnectionConfig(read_preference="fastest")


@pytest.mark.parametrize("field", ["indexes", "sharded_collections"])
def test_inventory_namespaces_must_be_qualified(field: str) -> None:
    value = {"users": [{"key": "email"}]} if field == "indexes" else {"users": "email"}
    with pytest.raises(ValidationError, match="<db>.<collection>"):
        Inventory(**{field: value})


def test_inventory_accepts_qualified_namespaces() -> None:
    inventory = Inventory(indexes={"app.users": [{"key": "email"}]})
    assert inventory.indexes["app.users"][0].key == "email"
