"""Shard registrar.

Registers shard replica sets (or standalone hosts) with the routing
tier via ``addShard``. The server treats re-adding a registered shard
as a no-op, so every run re-submits the full list.
"""

from collections.abc import Sequence

from pymongo.errors import PyMongoError

from mongorecon.cluster.connection import ConnectionManager
from mongorecon.cluster.executor import CommandExecutor, is_ok
from mongorecon.errors import ClusterConnectionError, CommandError
from mongorecon.models.members import CandidateMember
from mongorecon.models.outcome import Outcome
from mongorecon.services.planning import group_shards, shard_strings


class ShardRegistrar:
    """Groups shard nodes and registers each group with the router."""

    def __init__(self, connections: ConnectionManager, executor: CommandExecutor) -> None:
        self.connections = connections
        self.executor = executor

    def register_shards(
        self, reference: CandidateMember, shard_nodes: Sequence[CandidateMember]
    ) -> Outcome:
        """
        Register all visible shard nodes.

        Each shard string is submitted independently; a failure is
        recorded and the remaining shards are still registered.
        """
        outcome = Outcome("shards")
        groups = group_shards(shard_nodes)
        shards = shard_strings(groups)
        outcome.details["groups"] = groups
        outcome.details["shards"] = shards
        outcome.info("Shard groups: {}", groups)

        if not shards:
            return outcome.skip("No shard nodes found, nothing to register")

        try:
            client = self.connections.connect_local(reference)
        except ClusterConnectionError as e:
            return outcome.skip("Could not connect to database: {}", e)

        results: dict[str, dict] = {}
        try:
            for shard in shards:
                try:
                    result = self.executor.execute_retrying(client, "admin", {"addShard": shard})
                except (CommandError, PyMongoError) as e:
                    outcome.error("Failed to add shard '{}': {}", shard, e)
                    continue
                results[shard] = result
                if is_ok(result):
                    outcome.info("Shard '{}' registered: {}", shard, result)
                    outcome.mark_applied()
                else:
                    outcome.error("Failed to add shard '{}', result was: {}", shard, result)
        finally:
            client.close()

        outcome.details["results"] = results
        return outcome.finish()
