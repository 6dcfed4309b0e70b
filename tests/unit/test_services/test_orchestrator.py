"""Tests for DesiredState and ClusterOrchestrator."""

from unittest.mock import patch

import pytest
from conftest import FakeCluster

from mongorecon.config.models import ConnectionConfig, Inventory, RetryConfig, Settings
from mongorecon.errors import ConfigurationError
from mongorecon.models.members import NodeConfig
from mongorecon.models.outcome import OutcomeStatus
from mongorecon.models.specs import IndexSpec, UserSpec
from mongorecon.services.orchestrator import ClusterOrchestrator, DesiredState


@pytest.fixture
def settings() -> Settings:
    return Settings(
        retry=RetryConfig(delay_seconds=0),
        inventory=Inventory(
            node=NodeConfig(name="db1"),
            replica_set_name="rs0",
            members=[NodeConfig(name="db2"), NodeConfig(name="db3")],
            shard_nodes=[NodeConfig(name="db1", replica_set="rs0")],
            sharded_collections={"app.events": "user_id"},
            indexes={"app.events": [IndexSpec(key="created_at")]},
            users=[UserSpec(username="app", password="pw", roles=["readWrite"])],
        ),
    )


class TestDesiredState:
    def test_reference_node_required(self) -> None:
        with pytest.raises(ConfigurationError, match="reference node"):
            DesiredState.from_settings(Settings())

    def test_resolves_inventory(self, settings: Settings) -> None:
        state = DesiredState.from_settings(settings)

        assert state.reference.host == "db1:27017"
        assert [m.name for m in state.members] == ["db2", "db3"]
        assert state.sharded_collections[0].namespace == "app.events"
        assert [u.username for u in state.users] == ["app"]

    def test_admin_user_first_when_auth_enabled(self, settings: Settings) -> None:
        settings.connection = ConnectionConfig(auth=True)

        state = DesiredState.from_settings(settings)

        assert [u.username for u in state.users] == ["admin", "app"]
        assert {r.role for r in state.users[0].roles} == {"dbAdmin", "dbOwner", "root"}


class TestClusterOrchestrator:
    def test_run_all_converges_every_component(
        self, fake_cluster: FakeCluster, settings: Settings
    ) -> None:
        orchestrator = ClusterOrchestrator(settings, client_factory=fake_cluster.client)

        outcomes = orchestrator.run_all()

        assert [o.component for o in outcomes] == [
            "replicaset",
            "shards",
            "sharding",
            "indexes",
            "users",
        ]
        assert all(o.status == OutcomeStatus.APPLIED for o in outcomes)
        assert [m["host"] for m in fake_cluster.replset["members"]] == [
            "db1:27017",
            "db2:27017",
            "db3:27017",
        ]
        assert fake_cluster.shards == ["rs0/db1:27017,"]
        assert "app" in fake_cluster.users

    def test_second_run_changes_nothing(
        self, fake_cluster: FakeCluster, settings: Settings
    ) -> None:
        orchestrator = ClusterOrchestrator(settings, client_factory=fake_cluster.client)
        orchestrator.run_all()

        outcomes = orchestrator.run_all()

        assert all(o.ok for o in outcomes)
        by_component = {o.component: o.status for o in outcomes}
        assert by_component["replicaset"] == OutcomeStatus.UNCHANGED
        assert by_component["sharding"] == OutcomeStatus.UNCHANGED
        assert by_component["users"] == OutcomeStatus.UNCHANGED

    def test_missing_set_name_reported(
        self, fake_cluster: FakeCluster, settings: Settings
    ) -> None:
        settings.inventory.replica_set_name = None
        orchestrator = ClusterOrchestrator(settings, client_factory=fake_cluster.client)

        outcome = orchestrator.run_replica_set()

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.errors[0].startswith("Invalid configuration")

    def test_component_failure_does_not_stop_the_rest(
        self, fake_cluster: FakeCluster, settings: Settings
    ) -> None:
        orchestrator = ClusterOrchestrator(settings, client_factory=fake_cluster.client)

        with patch.object(
            orchestrator.shards, "register_shards", side_effect=RuntimeError("boom")
        ):
            outcomes = orchestrator.run_all()

        statuses = [o.status for o in outcomes]
        assert statuses[1] == OutcomeStatus.FAILED
        assert "Unexpected error: boom" in outcomes[1].errors[0]
        assert statuses[2:] == [OutcomeStatus.APPLIED] * 3
