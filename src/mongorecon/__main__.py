"""CLI entry point for mongorecon.

Each component can be run on its own, or all of them in order with
``apply``. ``plan`` prints the computed documents without connecting.
"""

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import click

from mongorecon import __version__
from mongorecon.models.outcome import Outcome, OutcomeStatus

if TYPE_CHECKING:
    from mongorecon.services.orchestrator import ClusterOrchestrator

config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """MongoDB cluster reconciliation.

    Converges a live replica set or sharded cluster to the inventory
    in the configuration file. Every command is safe to re-run.
    """
    pass


def _orchestrator(config: Path | None) -> "ClusterOrchestrator":
    from mongorecon.config.loader import load_config
    from mongorecon.errors import ConfigurationError
    from mongorecon.services.orchestrator import ClusterOrchestrator
    from mongorecon.utils.logging import configure_logging

    try:
        settings = load_config(config)
    except (ConfigurationError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    configure_logging(settings.logging)
    return ClusterOrchestrator(settings)


def _report(outcomes: list[Outcome]) -> None:
    for outcome in outcomes:
        tag = "FAIL" if outcome.status == OutcomeStatus.FAILED else "OK"
        click.echo(f"[{tag}] {outcome.component}: {outcome.status.value}")
        for warning in outcome.warnings:
            click.echo(f"  [WARN] {warning}")
        for error in outcome.errors:
            click.echo(f"  [ERROR] {error}")

    if any(not outcome.ok for outcome in outcomes):
        sys.exit(1)


def _run_one(config: Path | None, step: Callable[["ClusterOrchestrator"], Outcome]) -> None:
    orchestrator = _orchestrator(config)
    _report([step(orchestrator)])


@cli.command()
@config_option
def replicaset(config: Path | None) -> None:
    """Initiate or reconfigure the replica set."""
    _run_one(config, lambda o: o.run_replica_set())


@cli.command()
@config_option
def shards(config: Path | None) -> None:
    """Register shards with the router."""
    _run_one(config, lambda o: o.run_shards())


@cli.command()
@config_option
def sharding(config: Path | None) -> None:
    """Enable sharding on databases and shard collections."""
    _run_one(config, lambda o: o.run_sharding())


@cli.command()
@config_option
def indexes(config: Path | None) -> None:
    """Create configured indexes."""
    _run_one(config, lambda o: o.run_indexes())


@cli.command()
@config_option
def users(config: Path | None) -> None:
    """Create database users (and the admin user when auth is on)."""
    _run_one(config, lambda o: o.run_users())


@cli.command()
@config_option
def apply(config: Path | None) -> None:
    """Run every component: replica set, shards, sharding, indexes, users."""
    orchestrator = _orchestrator(config)
    _report(orchestrator.run_all())


@cli.command()
@config_option
def plan(config: Path | None) -> None:
    """Show the replica set members and shards that would be configured.

    Does not contact the cluster.
    """
    from mongorecon.config.loader import load_config
    from mongorecon.errors import ConfigurationError
    from mongorecon.services.orchestrator import DesiredState
    from mongorecon.services.planning import group_shards, plan_replica_set, shard_strings

    try:
        state = DesiredState.from_settings(load_config(config))
    except (ConfigurationError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if state.replica_set_name:
        rs_plan = plan_replica_set(state.reference, state.members, state.replica_set_name)
        click.echo(f"Replica set '{rs_plan.name}':")
        click.echo(json.dumps(rs_plan.target, indent=2))
    else:
        click.echo("No replica set configured.")

    shard_list = shard_strings(group_shards(state.shard_nodes))
    if shard_list:
        click.echo("Shards:")
        for shard in shard_list:
            click.echo(f"  {shard}")
    else:
        click.echo("No shards configured.")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
