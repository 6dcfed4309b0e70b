"""User provisioner."""

from collections.abc import Sequence
from typing import Any

from pymongo.errors import PyMongoError

from mongorecon.cluster.classify import AlreadyDone, classify_server_error
from mongorecon.cluster.connection import ConnectionManager
from mongorecon.cluster.executor import CommandExecutor, is_ok
from mongorecon.errors import ClusterConnectionError, CommandError
from mongorecon.models.members import CandidateMember
from mongorecon.models.outcome import Outcome
from mongorecon.models.specs import UserSpec
from mongorecon.ports.cluster import ClusterClientPort

USER_DATABASE = "admin"


class UserProvisioner:
    """
    Creates database users with ``createUser``.

    An existing user is left untouched: "already exists" counts as
    success and does not consume a retry.
    """

    def __init__(self, connections: ConnectionManager, executor: CommandExecutor) -> None:
        self.connections = connections
        self.executor = executor

    def provision_user(self, reference: CandidateMember, spec: UserSpec) -> Outcome:
        return self.provision_users(reference, [spec])

    def provision_users(self, reference: CandidateMember, specs: Sequence[UserSpec]) -> Outcome:
        """Provision each user in order, continuing past individual failures."""
        outcome = Outcome("users")
        if not specs:
            return outcome.skip("No users configured, doing nothing")

        try:
            client = self.connections.connect_local(reference)
        except ClusterConnectionError as e:
            return outcome.skip("Could not connect to database: {}", e)

        try:
            for spec in specs:
                try:
                    self._create_user(client, spec, outcome)
                except (CommandError, PyMongoError) as e:
                    outcome.error("Failed to create user '{}': {}", spec.username, e)
        finally:
            client.close()
        return outcome.finish()

    def _create_user(self, client: ClusterClientPort, spec: UserSpec, outcome: Outcome) -> None:
        command = {
            "createUser": spec.username,
            "pwd": spec.password,
            "roles": spec.role_documents(),
        }
        existed = False

        def create_user() -> dict[str, Any]:
            nonlocal existed
            try:
                result = self.executor.execute(client, USER_DATABASE, command)
            except CommandError as e:
                if classify_server_error(e.errmsg).is_already(AlreadyDone.USER_EXISTS):
                    existed = True
                    return e.result or {"ok": 0, "errmsg": e.errmsg}
                raise
            if not is_ok(result):
                if classify_server_error(result.get("errmsg")).is_already(AlreadyDone.USER_EXISTS):
                    existed = True
                    return result
                raise CommandError(
                    f"createUser {spec.username} failed: {result.get('errmsg')}",
                    "createUser",
                    result=result,
                )
            return result

        result = self.executor.retry.call(create_user, exceptions=CommandError)
        if existed:
            outcome.info("User '{}' already exists", spec.username)
        else:
            outcome.info("Created user '{}': {}", spec.username, result)
            outcome.mark_applied()
