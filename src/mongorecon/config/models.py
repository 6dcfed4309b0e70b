"""Pydantic configuration models for mongorecon."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from mongorecon.models.members import MemberDefaults, NodeConfig
from mongorecon.models.specs import IndexSpec, KeySpec, RoleSpec, UserSpec, check_namespace


def _default_admin_roles() -> list[RoleSpec]:
    return [
        RoleSpec(role="dbAdmin", db="admin"),
        RoleSpec(role="dbOwner", db="admin"),
        RoleSpec(role="root", db="admin"),
    ]


class AdminCredentials(UserSpec):
    """Administrative account used for authenticated connections."""

    username: str = "admin"
    password: str = "admin"
    roles: list[RoleSpec] = Field(default_factory=_default_admin_roles)


class ConnectionConfig(BaseModel):
    """How candidate endpoints are reached."""

    local_host: str = "localhost"
    auth: bool = False
    auth_source: str = "admin"
    admin: AdminCredentials = Field(default_factory=AdminCredentials)
    server_selection_timeout_seconds: float = Field(default=3.0, gt=0, le=60)
    connect_timeout_seconds: float = Field(default=1.0, gt=0, le=60)
    read_preference: Literal[
        "primary", "primaryPreferred", "secondary", "secondaryPreferred", "nearest"
    ] = "secondaryPreferred"


class RetryConfig(BaseModel):
    """Bounded retry applied to connects and administrative commands."""

    max_retries: int = Field(default=3, ge=0, le=20)
    delay_seconds: float = Field(default=1.5, ge=0, le=60)


class LoggingConfig(BaseModel):
    """Logging configuration for loguru."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["console", "json"] = "console"
    file: Path | None = None
    rotation: str = "10 MB"
    retention: str = "7 days"


class Inventory(BaseModel):
    """Desired cluster state supplied by the node inventory."""

    node: NodeConfig | None = None
    replica_set_name: str | None = None
    discovery: bool = True
    members: list[NodeConfig] = Field(default_factory=list)
    shard_nodes: list[NodeConfig] = Field(default_factory=list)
    sharded_collections: dict[str, KeySpec] = Field(default_factory=dict)
    indexes: dict[str, list[IndexSpec]] = Field(default_factory=dict)
    users: list[UserSpec] = Field(default_factory=list)

    @field_validator("members", "shard_nodes")
    @classmethod
    def validate_unique_names(cls, v: list[NodeConfig]) -> list[NodeConfig]:
        """Node names identify members and must be unique."""
        names = [n.name for n in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate node names: {', '.join(duplicates)}")
        return v

    @field_validator("sharded_collections", "indexes")
    @classmethod
    def validate_namespaces(cls, v: dict) -> dict:
        """Keys name collections as ``db.collection``."""
        for namespace in v:
            check_namespace(namespace)
        return v


class Settings(BaseSettings):
    """Root configuration for mongorecon."""

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    defaults: MemberDefaults = Field(default_factory=MemberDefaults)
    inventory: Inventory = Field(default_factory=Inventory)

    model_config = {
        "env_prefix": "MONGORECON_",
        "env_nested_delimiter": "__",
    }
