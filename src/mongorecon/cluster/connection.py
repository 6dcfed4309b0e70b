"""Connection manager for candidate cluster endpoints.

Connections are always direct (no topology discovery): the cluster may
be only partially formed, so each candidate ``host:port`` is contacted
on its own and verified by listing databases.
"""

from collections.abc import Callable, Sequence
from typing import Any

from loguru import logger
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from mongorecon.config.models import ConnectionConfig
from mongorecon.errors import ClusterConnectionError
from mongorecon.models.members import CandidateMember
from mongorecon.ports.cluster import ClusterClientPort
from mongorecon.utils.retry import RetryPolicy

ClientFactory = Callable[..., Any]


class ConnectionManager:
    """
    Opens verified, direct connections to cluster endpoints.

    When authentication is enabled the admin credentials are tried first;
    if that fails the same endpoint is retried without credentials, which
    covers a freshly initiated cluster where auth is not active yet.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        retry: RetryPolicy,
        client_factory: ClientFactory = MongoClient,
    ) -> None:
        self.config = config
        self.retry = retry
        self._client_factory = client_factory

    def local_hosts(self, reference: CandidateMember) -> list[str]:
        """Endpoint of the mongod/mongos on the reference node."""
        return [f"{self.config.local_host}:{reference.port}"]

    def connect(
        self, hosts: Sequence[str], *, prefer_primary: bool = False
    ) -> ClusterClientPort:
        """
        Connect to the first reachable candidate.

        Args:
            hosts: Ordered ``host:port`` candidates.
            prefer_primary: Skip reachable secondaries when a writable
                primary is among the candidates.

        Returns:
            A verified client.

        Raises:
            ClusterConnectionError: No candidates given, or none reachable
                within the retry budget.
        """
        candidates = list(hosts)
        if not candidates:
            raise ClusterConnectionError("No candidate hosts to connect to", candidates)

        def connect_to_candidates() -> ClusterClientPort:
            return self._connect_once(candidates, prefer_primary)

        return self.retry.call(connect_to_candidates, exceptions=ClusterConnectionError)

    def connect_local(self, reference: CandidateMember) -> ClusterClientPort:
        return self.connect(self.local_hosts(reference))

    def _connect_once(self, hosts: list[str], prefer_primary: bool) -> ClusterClientPort:
        fallback: ClusterClientPort | None = None
        failures: list[str] = []

        for host in hosts:
            try:
                client = self._open(host)
            except PyMongoError as e:
                failures.append(f"{host}: {e}")
                continue

            if not prefer_primary or self._is_writable_primary(client):
                if fallback is not None:
                    fallback.close()
                logger.debug("Connected to {}", host)
                return client

            if fallback is None:
                fallback = client
            else:
                client.close()

        if fallback is not None:
            logger.debug("No writable primary among {}, using first reachable member", hosts)
            return fallback

        raise ClusterConnectionError(
            f"Could not connect to any of {', '.join(hosts)}: {'; '.join(failures)}", hosts
        )

    def _open(self, host: str) -> ClusterClientPort:
        if self.config.auth:
            try:
                return self._verified_client(host, with_credentials=True)
            except PyMongoError as e:
                logger.debug("Authenticated connect to {} failed, trying without auth: {}", host, e)
        return self._verified_client(host, with_credentials=False)

    def _verified_client(self, host: str, *, with_credentials: bool) -> ClusterClientPort:
        options: dict[str, Any] = {
            "directConnection": True,
            "serverSelectionTimeoutMS": int(self.config.server_selection_timeout_seconds * 1000),
            "connectTimeoutMS": int(self.config.connect_timeout_seconds * 1000),
            "readPreference": self.config.read_preference,
        }
        if with_credentials:
            options["username"] = self.config.admin.username
            options["password"] = self.config.admin.password
            options["authSource"] = self.config.auth_source

        client = self._client_factory(host, **options)
        try:
            client.list_database_names()
        except PyMongoError:
            client.close()
            raise
        return client

    @staticmethod
    def _is_writable_primary(client: ClusterClientPort) -> bool:
        try:
            hello = client["admin"].command({"hello": 1})
        except PyMongoError:
            return False
        return bool(hello.get("isWritablePrimary") or hello.get("ismaster"))
