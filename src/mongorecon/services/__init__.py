"""Reconciliation services for mongorecon."""

from mongorecon.services.orchestrator import ClusterOrchestrator, DesiredState
from mongorecon.services.replicaset import ReplicaSetReconciler
from mongorecon.services.sharding import ShardingConfigurator
from mongorecon.services.shards import ShardRegistrar
from mongorecon.services.users import UserProvisioner

__all__ = [
    "ClusterOrchestrator",
    "DesiredState",
    "ReplicaSetReconciler",
    "ShardRegistrar",
    "ShardingConfigurator",
    "UserProvisioner",
]
