"""Runs the reconciliation components in sequence.

Order is replica set, shard registration, collection sharding, indexes,
users. Components are independent: one failing does not stop the rest.
"""

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from mongorecon.cluster.connection import ClientFactory, ConnectionManager
from mongorecon.cluster.executor import CommandExecutor
from mongorecon.config.models import Settings
from mongorecon.errors import ConfigurationError
from mongorecon.models.members import CandidateMember, resolve_member_view
from mongorecon.models.outcome import Outcome
from mongorecon.models.specs import (
    IndexSpec,
    ShardedCollectionSpec,
    UserSpec,
    sharded_collections_from_mapping,
)
from mongorecon.services.replicaset import ReplicaSetReconciler
from mongorecon.services.shards import ShardRegistrar
from mongorecon.services.sharding import ShardingConfigurator
from mongorecon.services.users import UserProvisioner
from mongorecon.utils.retry import RetryPolicy


@dataclass(frozen=True)
class DesiredState:
    """Immutable snapshot of the inventory for one run."""

    reference: CandidateMember
    replica_set_name: str | None
    members: tuple[CandidateMember, ...]
    shard_nodes: tuple[CandidateMember, ...]
    sharded_collections: tuple[ShardedCollectionSpec, ...]
    indexes: dict[str, list[IndexSpec]]
    users: tuple[UserSpec, ...]

    @classmethod
    def from_settings(cls, settings: Settings) -> "DesiredState":
        inventory = settings.inventory
        if inventory.node is None:
            raise ConfigurationError("inventory.node (the reference node) is required")

        defaults = settings.defaults
        users: list[UserSpec] = list(inventory.users)
        if settings.connection.auth:
            admin = settings.connection.admin
            users.insert(0, UserSpec(username=admin.username, password=admin.password, roles=admin.roles))

        return cls(
            reference=resolve_member_view(defaults, inventory.node),
            replica_set_name=inventory.replica_set_name,
            members=tuple(resolve_member_view(defaults, n) for n in inventory.members),
            shard_nodes=tuple(resolve_member_view(defaults, n) for n in inventory.shard_nodes),
            sharded_collections=tuple(
                sharded_collections_from_mapping(inventory.sharded_collections)
            ),
            indexes={ns: list(specs) for ns, specs in inventory.indexes.items()},
            users=tuple(users),
        )


class ClusterOrchestrator:
    """Wires the components from settings and runs them."""

    def __init__(
        self,
        settings: Settings,
        connections: ConnectionManager | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.settings = settings
        retry = RetryPolicy.from_config(settings.retry)
        if connections is None:
            if client_factory is None:
                connections = ConnectionManager(settings.connection, retry)
            else:
                connections = ConnectionManager(settings.connection, retry, client_factory)
        executor = CommandExecutor(retry)

        self.replica_set = ReplicaSetReconciler(
            connections, executor, discovery=settings.inventory.discovery
        )
        self.shards = ShardRegistrar(connections, executor)
        self.sharding = ShardingConfigurator(connections, executor)
        self.users = UserProvisioner(connections, executor)

    def state(self) -> DesiredState:
        return DesiredState.from_settings(self.settings)

    def run_replica_set(self) -> Outcome:
        def run() -> Outcome:
            state = self.state()
            if not state.replica_set_name:
                raise ConfigurationError("inventory.replica_set_name is required")
            return self.replica_set.reconcile(
                state.reference, state.members, state.replica_set_name
            )

        return self._guard("replicaset", run)

    def run_shards(self) -> Outcome:
        def run() -> Outcome:
            state = self.state()
            return self.shards.register_shards(state.reference, state.shard_nodes)

        return self._guard("shards", run)

    def run_sharding(self) -> Outcome:
        def run() -> Outcome:
            state = self.state()
            return self.sharding.enable_sharding(state.reference, state.sharded_collections)

        return self._guard("sharding", run)

    def run_indexes(self) -> Outcome:
        def run() -> Outcome:
            state = self.state()
            return self.sharding.create_indexes(state.reference, state.indexes)

        return self._guard("indexes", run)

    def run_users(self) -> Outcome:
        def run() -> Outcome:
            state = self.state()
            return self.users.provision_users(state.reference, state.users)

        return self._guard("users", run)

    def run_all(self) -> list[Outcome]:
        """Run every component in order."""
        return [
            self.run_replica_set(),
            self.run_shards(),
            self.run_sharding(),
            self.run_indexes(),
            self.run_users(),
        ]

    @staticmethod
    def _guard(component: str, run: Callable[[], Outcome]) -> Outcome:
        try:
            return run()
        except ConfigurationError as e:
            return Outcome(component).fail("Invalid configuration: {}", e)
        except Exception as e:
            logger.exception("Unexpected error in {}", component)
            return Outcome(component).fail("Unexpected error: {}", e)
