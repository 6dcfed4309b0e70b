"""Sharding and index configurator.

Enables sharding on databases, shards collections and builds indexes.
Each item is handled on its own: an "already configured" answer is a
no-op and any other failure is logged before moving to the next item.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from mongorecon.cluster.classify import AlreadyDone, classify_server_error
from mongorecon.cluster.connection import ConnectionManager
from mongorecon.cluster.executor import CommandExecutor, is_ok
from mongorecon.errors import ClusterConnectionError, CommandError
from mongorecon.models.members import CandidateMember
from mongorecon.models.outcome import Outcome
from mongorecon.models.specs import IndexSpec, ShardedCollectionSpec, split_namespace
from mongorecon.ports.cluster import ClusterClientPort


class ShardingConfigurator:
    """Issues ``enablesharding``, ``shardcollection`` and ``createIndexes``."""

    def __init__(self, connections: ConnectionManager, executor: CommandExecutor) -> None:
        self.connections = connections
        self.executor = executor

    def enable_sharding(
        self, reference: CandidateMember, collections: Sequence[ShardedCollectionSpec]
    ) -> Outcome:
        """
        Enable sharding for every database named in ``collections``,
        then shard each collection on its key.
        """
        outcome = Outcome("sharding")
        if not collections:
            return outcome.skip("No sharded collections configured, doing nothing")

        try:
            client = self.connections.connect_local(reference)
        except ClusterConnectionError as e:
            return outcome.skip("Could not connect to database: {}", e)

        try:
            databases = list(dict.fromkeys(spec.database for spec in collections))
            outcome.info("Enabling sharding for databases: {}", databases)
            for db_name in databases:
                self._enable_database(client, db_name, outcome)
            for spec in collections:
                self._shard_collection(client, spec, outcome)
        finally:
            client.close()
        return outcome.finish()

    def create_indexes(
        self,
        reference: CandidateMember,
        indexes: Mapping[str, Sequence[IndexSpec]],
    ) -> Outcome:
        """Create the listed indexes on each ``db.collection``."""
        outcome = Outcome("indexes")
        if not indexes:
            return outcome.skip("No indexes configured, doing nothing")

        try:
            client = self.connections.connect_local(reference)
        except ClusterConnectionError as e:
            return outcome.skip("Could not connect to database: {}", e)

        try:
            for namespace, specs in indexes.items():
                self._create_collection_indexes(client, namespace, specs, outcome)
        finally:
            client.close()
        return outcome.finish()

    def _enable_database(self, client: ClusterClientPort, db_name: str, outcome: Outcome) -> None:
        try:
            result = self.executor.execute_retrying(client, "admin", {"enablesharding": db_name})
        except CommandError as e:
            outcome.error(
                "Enable sharding for '{}' timed out, run again to check the result: {}", db_name, e
            )
            return

        if is_ok(result):
            outcome.info("Enabled sharding for database '{}'", db_name)
            outcome.mark_applied()
        elif classify_server_error(result.get("errmsg")).is_already(AlreadyDone.SHARDING_ENABLED):
            outcome.info("Sharding is already enabled for database '{}', doing nothing", db_name)
        else:
            outcome.error("Failed to enable sharding for database '{}', result was: {}", db_name, result)

    def _shard_collection(
        self, client: ClusterClientPort, spec: ShardedCollectionSpec, outcome: Outcome
    ) -> None:
        key = spec.key_document()
        command = {"shardcollection": spec.namespace, "key": key}
        try:
            result = self.executor.execute_retrying(client, "admin", command)
        except CommandError as e:
            outcome.error(
                "Sharding '{}' on key {} timed out, run again to check the result: {}",
                spec.namespace,
                key,
                e,
            )
            return

        if is_ok(result) and result.get("collectionsharded"):
            outcome.info("Sharding for collection '{}' enabled", result["collectionsharded"])
            outcome.mark_applied()
        elif classify_server_error(result.get("errmsg")).is_already(AlreadyDone.COLLECTION_SHARDED):
            outcome.info(
                "Sharding is already configured for collection '{}', doing nothing", spec.namespace
            )
        else:
            outcome.error("Failed to shard collection '{}', result was: {}", spec.namespace, result)

    def _create_collection_indexes(
        self,
        client: ClusterClientPort,
        namespace: str,
        specs: Sequence[IndexSpec],
        outcome: Outcome,
    ) -> None:
        db_name, collection = split_namespace(namespace)
        command: dict[str, Any] = {
            "createIndexes": collection,
            "indexes": [spec.to_document() for spec in specs],
        }
        try:
            result = self.executor.execute_retrying(client, db_name, command)
        except CommandError as e:
            outcome.error("Command {} on '{}' timed out: {}", command, db_name, e)
            return

        if is_ok(result):
            outcome.info("Indexes for {}.{} are created successfully", db_name, collection)
            outcome.mark_applied()
        else:
            outcome.error("Failed to execute command {}, result was: {}", command, result)
