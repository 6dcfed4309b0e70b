"""Desired-state specs for sharding, indexes and users."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

KeyDirection = int | str
KeySpec = str | dict[str, KeyDirection]


def normalize_key(key: str | Mapping[str, KeyDirection]) -> dict[str, KeyDirection]:
    """Turn a bare field name into an ascending key document."""
    if isinstance(key, Mapping):
        return dict(key)
    return {str(key): 1}


def split_namespace(namespace: str) -> tuple[str, str]:
    """Split ``db.collection`` on the first dot."""
    database, _, collection = namespace.partition(".")
    return database, collection


def check_namespace(namespace: str) -> str:
    """Require a database-qualified collection name."""
    database, collection = split_namespace(namespace)
    if not database or not collection:
        raise ValueError(f"namespace must be '<db>.<collection>', got {namespace!r}")
    return namespace


class ShardedCollectionSpec(BaseModel):
    """A collection to shard on a given key."""

    namespace: str = Field(min_length=1)
    key: KeySpec

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        return check_namespace(v)

    @property
    def database(self) -> str:
        return split_namespace(self.namespace)[0]

    def key_document(self) -> dict[str, KeyDirection]:
        return normalize_key(self.key)


class IndexSpec(BaseModel):
    """Index definition forwarded to ``createIndexes``."""

    key: KeySpec
    name: str | None = None
    background: bool | None = None
    sparse: bool | None = None
    unique: bool | None = None
    drop_dups: bool | None = Field(default=None, alias="dropDups")

    model_config = {"populate_by_name": True}

    def to_document(self) -> dict[str, Any]:
        """Index descriptor with only the set, recognized fields."""
        doc: dict[str, Any] = {}
        if self.name is not None:
            doc["name"] = self.name
        doc["key"] = normalize_key(self.key)
        for field, value in (
            ("background", self.background),
            ("sparse", self.sparse),
            ("unique", self.unique),
            ("dropDups", self.drop_dups),
        ):
            if value is not None:
                doc[field] = value
        return doc


class RoleSpec(BaseModel):
    """A role grant on a database."""

    role: str = Field(min_length=1)
    db: str = "admin"


class UserSpec(BaseModel):
    """A database user to provision."""

    username: str = Field(min_length=1)
    password: str
    roles: list[RoleSpec] = Field(default_factory=list)

    @field_validator("roles", mode="before")
    @classmethod
    def coerce_roles(cls, v: Any) -> Any:
        """Accept bare role names as grants on ``admin``."""
        if not isinstance(v, list):
            return v
        return [{"role": r} if isinstance(r, str) else r for r in v]

    def role_documents(self) -> list[dict[str, str]]:
        return [role.model_dump() for role in self.roles]


def sharded_collections_from_mapping(
    collections: Mapping[str, str | Mapping[str, KeyDirection]],
) -> list[ShardedCollectionSpec]:
    """Build specs from a ``namespace -> key`` mapping."""
    return [
        ShardedCollectionSpec(namespace=namespace, key=key)
        for namespace, key in collections.items()
    ]
