"""Domain models for mongorecon."""

from mongorecon.models.members import (
    CandidateMember,
    MemberDefaults,
    NodeConfig,
    ReplicaOptions,
    ReplicaOverrides,
    resolve_member_view,
)
from mongorecon.models.outcome import Outcome, OutcomeStatus
from mongorecon.models.specs import (
    IndexSpec,
    RoleSpec,
    ShardedCollectionSpec,
    UserSpec,
    check_namespace,
    normalize_key,
    sharded_collections_from_mapping,
    split_namespace,
)

__all__ = [
    "CandidateMember",
    "IndexSpec",
    "MemberDefaults",
    "NodeConfig",
    "Outcome",
    "OutcomeStatus",
    "ReplicaOptions",
    "ReplicaOverrides",
    "RoleSpec",
    "ShardedCollectionSpec",
    "UserSpec",
    "check_namespace",
    "normalize_key",
    "resolve_member_view",
    "sharded_collections_from_mapping",
    "split_namespace",
]
