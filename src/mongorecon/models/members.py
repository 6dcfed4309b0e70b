"""Replica set member models.

Inventory nodes arrive as partial records (``NodeConfig``) that are
overlaid on cluster-wide defaults (``MemberDefaults``) to produce a
fully-typed ``CandidateMember``.
"""

from typing import Any

from pydantic import BaseModel, Field


class ReplicaOptions(BaseModel):
    """Per-member replication options."""

    arbiter_only: bool = False
    build_indexes: bool = True
    hidden: bool = False
    slave_delay: int = Field(default=0, ge=0)
    priority: float = Field(default=1, ge=0)
    tags: dict[str, str] = Field(default_factory=dict)
    votes: int = Field(default=1, ge=0)

    model_config = {"frozen": True}

    @property
    def effective_priority(self) -> float:
        """Priority after forcing non-serving members to 0."""
        if not self.build_indexes or self.hidden or self.slave_delay > 0:
            return 0
        return self.priority

    def to_member_fields(self) -> dict[str, Any]:
        """
        Render options as replica set member fields.

        Only values that differ from the server defaults are emitted,
        so the result can be compared with a normalized live member.
        """
        fields: dict[str, Any] = {}
        if self.arbiter_only:
            fields["arbiterOnly"] = True
        if not self.build_indexes:
            fields["buildIndexes"] = False
        if self.hidden:
            fields["hidden"] = True
        if self.slave_delay > 0:
            fields["slaveDelay"] = self.slave_delay
        priority = self.effective_priority
        if priority != 1:
            fields["priority"] = int(priority) if float(priority).is_integer() else priority
        if self.tags:
            fields["tags"] = dict(self.tags)
        if self.votes != 1:
            fields["votes"] = self.votes
        return fields


class ReplicaOverrides(BaseModel):
    """Replication options set on a single node; unset fields fall back to defaults."""

    arbiter_only: bool | None = None
    build_indexes: bool | None = None
    hidden: bool | None = None
    slave_delay: int | None = Field(default=None, ge=0)
    priority: float | None = Field(default=None, ge=0)
    tags: dict[str, str] | None = None
    votes: int | None = Field(default=None, ge=0)


class MemberDefaults(BaseModel):
    """Cluster-wide defaults applied to every inventory node."""

    port: int = Field(default=27017, ge=1, le=65535)
    replica_set: str | None = None
    shard_name: str | None = None
    replica: ReplicaOptions = Field(default_factory=ReplicaOptions)


class NodeConfig(BaseModel):
    """A node as supplied by the inventory."""

    name: str = Field(min_length=1)
    hostname: str | None = None
    ipaddress: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    replica_set: str | None = None
    shard_name: str | None = None
    replica: ReplicaOverrides = Field(default_factory=ReplicaOverrides)


class CandidateMember(BaseModel):
    """Fully resolved view of a cluster node."""

    name: str
    hostname: str
    ipaddress: str
    port: int
    replica_set: str | None = None
    shard_name: str | None = None
    options: ReplicaOptions = Field(default_factory=ReplicaOptions)

    model_config = {"frozen": True}

    @property
    def host(self) -> str:
        """``hostname:port`` address used in replica set configs."""
        return f"{self.hostname}:{self.port}"

    @property
    def ip_host(self) -> str:
        """``ip:port`` address, as written by earlier IP-based configs."""
        return f"{self.ipaddress}:{self.port}"


def resolve_member_view(defaults: MemberDefaults, node: NodeConfig) -> CandidateMember:
    """
    Overlay a node's settings on the cluster defaults.

    Args:
        defaults: Cluster-wide defaults.
        node: Node record from the inventory.

    Returns:
        Resolved CandidateMember. ``hostname`` falls back to the node
        name and ``ipaddress`` falls back to the hostname.
    """
    overrides = node.replica.model_dump(exclude_none=True)
    options = defaults.replica.model_copy(update=overrides)
    hostname = node.hostname or node.name
    return CandidateMember(
        name=node.name,
        hostname=hostname,
        ipaddress=node.ipaddress or hostname,
        port=node.port or defaults.port,
        replica_set=node.replica_set or defaults.replica_set,
        shard_name=node.shard_name or defaults.shard_name,
        options=ReplicaOptions.model_validate(options.model_dump()),
    )
