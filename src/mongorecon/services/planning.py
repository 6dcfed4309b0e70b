"""Pure planning functions for replica set and shard reconciliation.

Nothing here talks to the cluster: these functions turn inventory
members and live config documents into the documents that should be
sent, so they can be exercised (and printed by ``mongorecon plan``)
without a connection.
"""

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from mongorecon.models.members import CandidateMember

SINGLE_SHARD_KEY = "_single"

# Member fields compared between live and target configs, with server defaults
_MEMBER_DEFAULTS: dict[str, Any] = {
    "arbiterOnly": False,
    "buildIndexes": True,
    "hidden": False,
    "slaveDelay": 0,
    "priority": 1,
    "tags": {},
    "votes": 1,
}


def build_member_document(member_id: int, host: str, options: Mapping[str, Any]) -> dict[str, Any]:
    return {"_id": member_id, "host": host, **options}


def normalize_member(member: Mapping[str, Any]) -> dict[str, Any]:
    """
    Reduce a member document to ``_id``, ``host`` and non-default options.

    Live configs carry every option (and newer servers name the delay
    ``secondaryDelaySecs``), while generated documents omit defaults.
    Arbiters always run at priority 0, so their priority is ignored.
    """
    fields = dict(member)
    if "secondaryDelaySecs" in fields and "slaveDelay" not in fields:
        fields["slaveDelay"] = fields["secondaryDelaySecs"]

    normalized: dict[str, Any] = {"_id": int(fields["_id"]), "host": fields["host"]}
    for name, default in _MEMBER_DEFAULTS.items():
        value = fields.get(name, default)
        if value is None or value == default:
            continue
        if name == "priority" and fields.get("arbiterOnly"):
            continue
        normalized[name] = dict(value) if name == "tags" else value
    return normalized


def members_match(
    live: Sequence[Mapping[str, Any]], target: Sequence[Mapping[str, Any]]
) -> bool:
    """Ordered comparison of two member lists after normalization."""
    return [normalize_member(m) for m in live] == [normalize_member(m) for m in target]


def hosts_match(
    live: Sequence[Mapping[str, Any]], target: Sequence[Mapping[str, Any]]
) -> bool:
    """Ordered comparison of ``(_id, host)`` pairs, ignoring member options."""
    return [(int(m["_id"]), m["host"]) for m in live] == [
        (int(m["_id"]), m["host"]) for m in target
    ]


@dataclass
class ReplicaSetPlan:
    """Target replica set computed from the inventory."""

    name: str
    members: list[CandidateMember]
    target: list[dict[str, Any]]
    target_ips: list[dict[str, Any]]
    options_by_host: dict[str, dict[str, Any]]
    ip_to_host: dict[str, str]

    @property
    def hosts(self) -> list[str]:
        return [m["host"] for m in self.target]

    def initiate_command(self) -> dict[str, Any]:
        return {"replSetInitiate": {"_id": self.name, "members": self.target}}


def merge_members(
    reference: CandidateMember, candidates: Sequence[CandidateMember]
) -> list[CandidateMember]:
    """Add the reference node if absent and sort by name."""
    members = list(candidates)
    if not any(m.name == reference.name for m in members):
        members.append(reference)
    return sorted(members, key=lambda m: m.name)


def plan_replica_set(
    reference: CandidateMember, candidates: Sequence[CandidateMember], set_name: str
) -> ReplicaSetPlan:
    """
    Compute the target member list for ``set_name``.

    Member ids follow the sorted member order. ``target_ips`` holds only
    the ``_id`` and IP-based ``host`` of each member, used to recognise
    configs created before hostnames resolved.
    """
    members = merge_members(reference, candidates)
    target: list[dict[str, Any]] = []
    target_ips: list[dict[str, Any]] = []
    options_by_host: dict[str, dict[str, Any]] = {}
    ip_to_host: dict[str, str] = {}

    for member_id, member in enumerate(members):
        options = member.options.to_member_fields()
        options_by_host[member.host] = options
        ip_to_host[member.ip_host] = member.host
        target.append(build_member_document(member_id, member.host, options))
        target_ips.append(build_member_document(member_id, member.ip_host, {}))

    return ReplicaSetPlan(
        name=set_name,
        members=members,
        target=target,
        target_ips=target_ips,
        options_by_host=options_by_host,
        ip_to_host=ip_to_host,
    )


def migrate_hosts(live_config: Mapping[str, Any], plan: ReplicaSetPlan) -> dict[str, Any]:
    """
    Rewrite an IP-addressed live config to hostnames in one version step.

    Member ids are kept; options are re-applied per host.
    """
    config = copy.deepcopy(dict(live_config))
    members = []
    for member in config["members"]:
        host = plan.ip_to_host[member["host"]]
        members.append(build_member_document(member["_id"], host, plan.options_by_host[host]))
    config["members"] = members
    config["version"] = int(config["version"]) + 1
    return config


@dataclass
class MembershipChange:
    """A reconfigured replica set document and the hosts it adds and removes."""

    config: dict[str, Any]
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


def reconcile_membership(live_config: Mapping[str, Any], plan: ReplicaSetPlan) -> MembershipChange:
    """
    Apply membership drift to a live config.

    Departing hosts are dropped, retained members keep their ``_id`` and
    get current options, and new hosts get ids counting up from the
    highest id in the live config. The version is bumped by one.
    """
    config = copy.deepcopy(dict(live_config))
    live_members = config.get("members", [])
    live_hosts = [m["host"] for m in live_members]
    target_hosts = plan.hosts

    removed = [h for h in live_hosts if h not in target_hosts]
    added = [h for h in target_hosts if h not in live_hosts]

    members = [
        build_member_document(m["_id"], m["host"], plan.options_by_host[m["host"]])
        for m in live_members
        if m["host"] not in removed
    ]
    max_id = max((int(m["_id"]) for m in live_members), default=-1)
    for host in added:
        max_id += 1
        members.append(build_member_document(max_id, host, plan.options_by_host[host]))

    config["members"] = members
    config["version"] = int(config.get("version", 0)) + 1
    return MembershipChange(config=config, added=added, removed=removed)


def shard_group_key(node: CandidateMember) -> str:
    """Replica set name, else ``rs_<shard_name>``, else the standalone key."""
    if node.replica_set:
        return node.replica_set
    if node.shard_name:
        return f"rs_{node.shard_name}"
    return SINGLE_SHARD_KEY


def group_shards(shard_nodes: Sequence[CandidateMember]) -> dict[str, list[str]]:
    """Group visible shard nodes by shard key, preserving input order."""
    groups: dict[str, list[str]] = {}
    for node in shard_nodes:
        if node.options.hidden:
            continue
        groups.setdefault(shard_group_key(node), []).append(node.host)
    return groups


def shard_strings(groups: Mapping[str, Sequence[str]]) -> list[str]:
    """
    Render ``addShard`` arguments.

    Standalone members become one shard each; every other group becomes
    ``<name>/<member>,<member>,``.
    """
    shards: list[str] = []
    for name, members in groups.items():
        if name == SINGLE_SHARD_KEY:
            shards.extend(members)
        else:
            shards.append(f"{name}/{','.join(members)},")
    return shards
