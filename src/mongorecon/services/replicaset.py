"""Replica set reconciler.

Initiates the replica set when it does not exist yet and otherwise
converges the live configuration to the inventory with a single
``replSetReconfig``.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger
from pymongo.errors import PyMongoError

from mongorecon.cluster.classify import AlreadyDone, ErrorKind, classify_server_error
from mongorecon.cluster.connection import ConnectionManager
from mongorecon.cluster.executor import CommandExecutor, is_ok
from mongorecon.errors import (
    ClusterConnectionError,
    CommandError,
    ConfigMismatchError,
    MongoReconError,
)
from mongorecon.models.members import CandidateMember
from mongorecon.models.outcome import Outcome
from mongorecon.ports.cluster import ClusterClientPort
from mongorecon.services.planning import (
    ReplicaSetPlan,
    hosts_match,
    members_match,
    migrate_hosts,
    plan_replica_set,
    reconcile_membership,
)

REPLSET_DATABASE = "local"
REPLSET_COLLECTION = "system.replset"


class ReplicaSetReconciler:
    """
    Converges replica set membership and member options.

    A reconfigure that changes hosts usually drops the connection it was
    sent on. A dropped connection is never taken as failure: the live
    config is re-read from the reference node and compared with what was
    submitted.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        executor: CommandExecutor,
        discovery: bool = True,
    ) -> None:
        self.connections = connections
        self.executor = executor
        self.discovery = discovery

    def reconcile(
        self,
        reference: CandidateMember,
        candidates: Sequence[CandidateMember],
        set_name: str,
    ) -> Outcome:
        """
        Reconcile replica set ``set_name``.

        Args:
            reference: Node running the reconciliation; always a member.
            candidates: Desired members from the inventory.
            set_name: Replica set name.

        Returns:
            Outcome of the run.
        """
        outcome = Outcome("replicaset", details={"set": set_name})
        try:
            self._reconcile(reference, candidates, set_name, outcome)
        except ClusterConnectionError as e:
            outcome.skip("Could not connect to database: {}", e)
        except ConfigMismatchError as e:
            outcome.details["live_members"] = e.live
            outcome.details["target_members"] = e.target
            outcome.fail("{} Current members: {} Target members: {}", e, e.live, e.target)
        except (MongoReconError, PyMongoError) as e:
            outcome.fail("Failed to configure replica set '{}': {}", set_name, e)
        return outcome.finish()

    def _reconcile(
        self,
        reference: CandidateMember,
        candidates: Sequence[CandidateMember],
        set_name: str,
        outcome: Outcome,
    ) -> None:
        if not candidates:
            if self.discovery:
                outcome.skip("Cannot configure replica set '{}', no member nodes found", set_name)
                return
            outcome.warning(
                "Member discovery is disabled, defaulting to a single node replica set"
            )

        client = self.connections.connect_local(reference)
        plan = plan_replica_set(reference, candidates, set_name)
        outcome.details["target_members"] = plan.target
        outcome.info(
            "Configuring replica set '{}' with members {}",
            set_name,
            ", ".join(m.hostname for m in plan.members),
        )

        try:
            result = self.executor.execute_retrying(client, "admin", plan.initiate_command())
        except CommandError as e:
            outcome.skip(
                "Started configuring replica set '{}', this can take some time; "
                "another run should complete it: {}",
                set_name,
                e,
            )
            return
        finally:
            client.close()

        if is_ok(result):
            outcome.info("Initiated replica set '{}'", set_name)
            outcome.mark_applied()
            return

        classified = classify_server_error(result.get("errmsg"))
        if not classified.is_already(AlreadyDone.REPLSET_INITIATED):
            hint = ""
            if classified.kind == ErrorKind.TRANSIENT:
                hint = " (transient, will retry on next run)"
            outcome.fail("Failed to initiate replica set '{}'{}: {}", set_name, hint, result)
            return

        self._converge(reference, plan, classified.responder, outcome)

    def _converge(
        self,
        reference: CandidateMember,
        plan: ReplicaSetPlan,
        responder: str | None,
        outcome: Outcome,
    ) -> None:
        host = self._responder_host(reference, responder)
        client = self.connections.connect([host])
        try:
            live = self._read_live_config(client, plan.name)
        finally:
            client.close()

        live_members = live.get("members", [])
        if members_match(live_members, plan.target):
            outcome.info("Replica set '{}' already configured", plan.name)
            return

        live_hosts = [m["host"] for m in live_members]
        if live_hosts != plan.hosts and hosts_match(live_members, plan.target_ips):
            outcome.info("Converting IP addresses to hostnames for replica set '{}'", plan.name)
            new_config = migrate_hosts(live, plan)
        else:
            change = reconcile_membership(live, plan)
            new_config = change.config
            if members_match(new_config["members"], live_members):
                outcome.info("Replica set '{}' already configured", plan.name)
                return
            outcome.details["added"] = change.added
            outcome.details["removed"] = change.removed
            outcome.info(
                "Updating replica set '{}': adding {} removing {}",
                plan.name,
                change.added or "none",
                change.removed or "none",
            )

        self._apply(reference, live_hosts, new_config, outcome)

    def _apply(
        self,
        reference: CandidateMember,
        old_hosts: list[str],
        new_config: dict[str, Any],
        outcome: Outcome,
    ) -> None:
        client = self.connections.connect(old_hosts, prefer_primary=True)
        try:
            result = self.executor.execute(client, "admin", {"replSetReconfig": new_config})
        except CommandError as e:
            if not e.connection_lost:
                raise
            self._verify_after_disconnect(reference, new_config, e, outcome)
            return
        finally:
            client.close()

        if result.get("errmsg") or not is_ok(result):
            outcome.fail("Configuring replica set returned: {}", result)
            return
        outcome.info(
            "Reconfigured replica set '{}' to version {}", new_config["_id"], new_config["version"]
        )
        outcome.mark_applied()

    def _verify_after_disconnect(
        self,
        reference: CandidateMember,
        new_config: dict[str, Any],
        error: CommandError,
        outcome: Outcome,
    ) -> None:
        logger.debug("Reconfigure dropped the connection, re-reading live config: {}", error)
        client = self.connections.connect_local(reference)
        try:
            live = self._read_live_config(client, new_config["_id"])
        finally:
            client.close()

        if not members_match(live.get("members", []), new_config["members"]):
            raise ConfigMismatchError(
                f"Failed to apply new config to replica set '{new_config['_id']}' "
                f"(previous error: {error}).",
                live.get("members", []),
                new_config["members"],
            )
        outcome.info("New config successfully applied: {}, previous error: {}", live, error)
        outcome.mark_applied()

    def _responder_host(self, reference: CandidateMember, responder: str | None) -> str:
        if not responder:
            return self.connections.local_hosts(reference)[0]
        _host, sep, port = responder.rpartition(":")
        if sep and port.isdigit():
            return responder
        return f"{responder}:{reference.port}"

    @staticmethod
    def _read_live_config(client: ClusterClientPort, set_name: str) -> Mapping[str, Any]:
        config = client[REPLSET_DATABASE][REPLSET_COLLECTION].find_one({"_id": set_name})
        if config is None:
            raise CommandError(
                f"No live configuration found for replica set '{set_name}'", "find"
            )
        return config
