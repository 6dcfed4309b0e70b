"""Shared pytest fixtures for mongorecon tests."""

import copy
import io
from collections.abc import Callable, Generator, Mapping
from typing import Any

import pytest
from loguru import logger
from pymongo.errors import AutoReconnect, OperationFailure, ServerSelectionTimeoutError

from mongorecon.cluster.connection import ConnectionManager
from mongorecon.cluster.executor import CommandExecutor
from mongorecon.config.models import ConnectionConfig
from mongorecon.models.members import CandidateMember, ReplicaOptions
from mongorecon.utils.retry import RetryPolicy


class FakeCollection:
    """Read-only view of ``local.system.replset``."""

    def __init__(self, cluster: "FakeCluster", database: str, name: str) -> None:
        self._cluster = cluster
        self._database = database
        self._name = name

    def find_one(self, filter: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        replset = self._cluster.replset
        if (self._database, self._name) != ("local", "system.replset") or replset is None:
            return None
        if filter and filter.get("_id") != replset["_id"]:
            return None
        return copy.deepcopy(replset)


class FakeDatabase:
    def __init__(self, cluster: "FakeCluster", host: str, name: str) -> None:
        self._cluster = cluster
        self._host = host
        self.name = name

    def command(self, command: Mapping[str, Any], check: bool = True) -> dict[str, Any]:
        return self._cluster.run(self._host, self.name, dict(command))

    def __getitem__(self, name: str) -> FakeCollection:
        return FakeCollection(self._cluster, self.name, name)


class FakeClient:
    def __init__(self, cluster: "FakeCluster", host: str, options: dict[str, Any]) -> None:
        self._cluster = cluster
        self.host = host
        self.options = options
        self.closed = False

    def __getitem__(self, name: str) -> FakeDatabase:
        return FakeDatabase(self._cluster, self.host, name)

    def list_database_names(self) -> list[str]:
        if self.host in self._cluster.unreachable:
            raise ServerSelectionTimeoutError(f"{self.host}: timed out")
        if "username" in self.options and self._cluster.reject_credentials:
            raise OperationFailure("Authentication failed.", code=18)
        return ["admin", "config", "local"]

    def close(self) -> None:
        self.closed = True


class FakeCluster:
    """
    In-memory stand-in for a mongod/mongos reachable under several hosts.

    Commands behave like the server for the cases mongorecon cares
    about; ``script`` queues canned replies (or exceptions) per command.
    """

    def __init__(self) -> None:
        self.replset: dict[str, Any] | None = None
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.clients: list[FakeClient] = []
        self.unreachable: set[str] = set()
        self.reject_credentials = False
        self.primary: str | None = None
        self.initiate_responder: str | None = None
        self.drop_on_reconfig = False
        self.shards: list[str] = []
        self.sharded_databases: set[str] = set()
        self.sharded_collections: dict[str, dict[str, Any]] = {}
        self.indexes: dict[str, list[dict[str, Any]]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self._scripted: dict[str, list[Any]] = {}

    def client(self, host: str, **options: Any) -> FakeClient:
        client = FakeClient(self, host, options)
        self.clients.append(client)
        return client

    def script(self, name: str, *responses: Any) -> None:
        self._scripted.setdefault(name, []).extend(responses)

    def commands(self, name: str) -> list[dict[str, Any]]:
        return [command for _, _, command in self.calls if next(iter(command)) == name]

    def calls_for(self, name: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [call for call in self.calls if next(iter(call[2])) == name]

    def run(self, host: str, database: str, command: dict[str, Any]) -> dict[str, Any]:
        name = next(iter(command))
        self.calls.append((host, database, copy.deepcopy(command)))
        queued = self._scripted.get(name)
        if queued:
            response = queued.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        handler = getattr(self, f"_cmd_{name}", None)
        if handler is None:
            return {"ok": 1}
        return handler(host, database, command)

    def _cmd_hello(self, host: str, database: str, command: dict[str, Any]) -> dict[str, Any]:
        return {"ok": 1, "isWritablePrimary": self.primary is None or host == self.primary}

    def _cmd_replSetInitiate(
        self, host: str, database: str, command: dict[str, Any]
    ) -> dict[str, Any]:
        if self.replset is not None:
            if self.initiate_responder:
                return {"ok": 0, "errmsg": f"{self.initiate_responder} is already initiated"}
            return {"ok": 0, "errmsg": "already initialized", "code": 23}
        spec = command["replSetInitiate"]
        self.replset = {
            "_id": spec["_id"],
            "version": 1,
            "members": copy.deepcopy(spec["members"]),
        }
        return {"ok": 1}

    def _cmd_replSetReconfig(
        self, host: str, database: str, command: dict[str, Any]
    ) -> dict[str, Any]:
        new = copy.deepcopy(command["replSetReconfig"])
        if self.replset is None:
            return {"ok": 0, "errmsg": "no replset config has been received"}
        if new["version"] != self.replset["version"] + 1:
            return {"ok": 0, "errmsg": "version field value is out of order"}
        ids = [m["_id"] for m in new["members"]]
        if len(ids) != len(set(ids)):
            return {"ok": 0, "errmsg": "duplicate member _id"}
        self.replset = new
        if self.drop_on_reconfig:
            raise AutoReconnect("connection closed")
        return {"ok": 1}

    def _cmd_addShard(self, host: str, database: str, command: dict[str, Any]) -> dict[str, Any]:
        shard = command["addShard"]
        if shard not in self.shards:
            self.shards.append(shard)
        return {"ok": 1, "shardAdded": shard.split("/")[0]}

    def _cmd_enablesharding(
        self, host: str, database: str, command: dict[str, Any]
    ) -> dict[str, Any]:
        db_name = command["enablesharding"]
        if db_name in self.sharded_databases:
            return {"ok": 0, "errmsg": "already enabled"}
        self.sharded_databases.add(db_name)
        return {"ok": 1}

    def _cmd_shardcollection(
        self, host: str, database: str, command: dict[str, Any]
    ) -> dict[str, Any]:
        namespace = command["shardcollection"]
        if namespace in self.sharded_collections:
            return {"ok": 0, "errmsg": "already sharded"}
        self.sharded_collections[namespace] = dict(command["key"])
        return {"ok": 1, "collectionsharded": namespace}

    def _cmd_createIndexes(
        self, host: str, database: str, command: dict[str, Any]
    ) -> dict[str, Any]:
        namespace = f"{database}.{command['createIndexes']}"
        self.indexes.setdefault(namespace, []).extend(copy.deepcopy(command["indexes"]))
        return {"ok": 1, "numIndexesAfter": len(self.indexes[namespace]) + 1}

    def _cmd_createUser(
        self, host: str, database: str, command: dict[str, Any]
    ) -> dict[str, Any]:
        username = command["createUser"]
        if username in self.users:
            return {
                "ok": 0,
                "errmsg": f'User "{username}@{database}" already exists',
                "code": 51003,
            }
        self.users[username] = {"pwd": command["pwd"], "roles": copy.deepcopy(command["roles"])}
        return {"ok": 1}


@pytest.fixture
def fake_cluster() -> FakeCluster:
    """Provide an empty in-memory cluster."""
    return FakeCluster()


@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Default attempt budget with no sleeping."""
    return RetryPolicy(max_retries=3, delay_seconds=0)


@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig()


@pytest.fixture
def connections(
    fake_cluster: FakeCluster, connection_config: ConnectionConfig, retry_policy: RetryPolicy
) -> ConnectionManager:
    return ConnectionManager(connection_config, retry_policy, fake_cluster.client)


@pytest.fixture
def executor(retry_policy: RetryPolicy) -> CommandExecutor:
    return CommandExecutor(retry_policy)


@pytest.fixture
def make_member() -> Callable[..., CandidateMember]:
    """Build a CandidateMember; extra keyword arguments become replica options."""

    def _make(
        name: str,
        ip: str | None = None,
        port: int = 27017,
        replica_set: str | None = None,
        shard_name: str | None = None,
        **options: Any,
    ) -> CandidateMember:
        return CandidateMember(
            name=name,
            hostname=name,
            ipaddress=ip or name,
            port=port,
            replica_set=replica_set,
            shard_name=shard_name,
            options=ReplicaOptions(**options),
        )

    return _make


@pytest.fixture
def log_capture() -> Generator[io.StringIO, None, None]:
    """Capture loguru output to a string buffer."""
    string_io = io.StringIO()
    handler_id = logger.add(string_io, format="{level} {message}")
    yield string_io
    logger.remove(handler_id)
