"""
Click CLI for studr.
"""

import json
import logging
import sys
from typing import List

import click

from .clouds import CloudEnvironment
from .config import Settings, load_settings
from .errors import ReconcileError, RouteTableNotFound, StudrError, UnknownServiceTag
from .events import last_event, read_events
from .reconciler import Operation
from .runner import RunRequest, RunResult, RunStatus, run
from .snapshot import fetch_snapshot, load_snapshot_file
from .state import is_valid_run_id, list_runs

CLOUD_CHOICES = [cloud.value for cloud in CloudEnvironment]


def _exit_code(error: StudrError) -> int:
    if isinstance(error, RouteTableNotFound):
        return 2
    if isinstance(error, ReconcileError):
        return 3
    return 1


def _split_tags(tags: tuple) -> List[str]:
    names: List[str] = []
    for value in tags:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


def _settings(ctx: click.Context, **overrides) -> Settings:
    return load_settings(ctx.obj.get("config"), **overrides)


def _fail(error: StudrError, output_json: bool) -> None:
    if output_json:
        print(json.dumps({"error": str(error), "kind": type(error).__name__}))
    else:
        click.echo(f"❌ {error}", err=True)
    sys.exit(_exit_code(error))


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML settings file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, config_path, verbose):
    """
    studr - keep route tables in step with published service tags.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_path
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_result(result: RunResult) -> None:
    for tag_plan in result.plan.tags:
        marker = "🔄" if tag_plan.changed else "✅"
        click.echo(f"{marker} {tag_plan.tag} (change {tag_plan.change_number}): {tag_plan.reason}")

    for name in result.plan.to_remove:
        click.echo(f"  - {name}")
    for route in result.plan.to_add:
        click.echo(f"  + {route.name} {route.address_prefix} -> {route.next_hop_type}")

    if result.status == RunStatus.NO_CHANGE:
        click.echo(f"No change needed for {result.table_id}")
    elif result.status == RunStatus.PLANNED:
        click.echo(
            f"Dry run for {result.table_id}: would remove {len(result.plan.to_remove)}, "
            f"add {len(result.plan.to_add)}; table would hold {len(result.projected)} routes"
        )
    else:
        click.echo(
            f"Updated {result.table_id}: removed {result.applied.removed}, "
            f"added {result.applied.added}"
        )


@main.command("reconcile")
@click.option("--tag", "tags", multiple=True, required=True,
              help="Service tag name (repeatable or comma separated)")
@click.option("--resource-group", required=True, help="Resource group of the route table")
@click.option("--route-table", required=True, help="Route table name")
@click.option("--operation", type=click.Choice(["add", "sync", "remove"], case_sensitive=False),
              required=True, help="Add/refresh the tag routes or remove them")
@click.option("--cloud", type=click.Choice(CLOUD_CHOICES, case_sensitive=False),
              help="Cloud environment [default: Public]")
@click.option("--prefix", "route_prefix", help="Route name prefix [default: STUDR]")
@click.option("--capacity", type=int, help="Maximum routes in the table [default: 400]")
@click.option("--subscription-id", help="Azure subscription id (or AZURE_SUBSCRIPTION_ID)")
@click.option("--snapshot-file", type=click.Path(exists=True, dir_okay=False),
              help="Use a downloaded service tag JSON file instead of fetching")
@click.option("--dry-run", is_flag=True, help="Compute the plan without changing the table")
@click.option("--record-events/--no-record-events", default=None,
              help="Write the run event log under STUDR_HOME")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
@click.pass_context
def reconcile_cmd(ctx, tags, resource_group, route_table, operation, cloud, route_prefix,
                  capacity, subscription_id, snapshot_file, dry_run, record_events, output_json):
    """
    Add, refresh or remove the routes for one or more service tags.
    """
    try:
        settings = _settings(
            ctx,
            cloud=cloud,
            route_prefix=route_prefix,
            capacity=capacity,
            subscription_id=subscription_id,
            record_events=record_events,
        )
        request = RunRequest(
            tags=_split_tags(tags),
            resource_group=resource_group,
            route_table=route_table,
            operation=Operation.parse(operation),
            dry_run=dry_run,
            snapshot_file=snapshot_file,
        )
        result = run(settings, request, gateway=ctx.obj.get("gateway"))
    except StudrError as e:
        _fail(e, output_json)
        return

    if output_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)


@main.command("show-tag")
@click.option("--tag", required=True, help="Service tag name")
@click.option("--cloud", type=click.Choice(CLOUD_CHOICES, case_sensitive=False),
              help="Cloud environment [default: Public]")
@click.option("--snapshot-file", type=click.Path(exists=True, dir_okay=False),
              help="Use a downloaded service tag JSON file instead of fetching")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
@click.pass_context
def show_tag_cmd(ctx, tag, cloud, snapshot_file, output_json):
    """
    Show the current change number and prefixes of a service tag.
    """
    try:
        settings = _settings(ctx, cloud=cloud)
        if snapshot_file:
            snapshot = load_snapshot_file(snapshot_file, cloud=settings.cloud)
        else:
            snapshot = fetch_snapshot(settings.cloud, timeout=settings.http_timeout)
        entry = snapshot.lookup(tag)
        if entry is None:
            raise UnknownServiceTag(tag, cloud=snapshot.cloud)
    except StudrError as e:
        _fail(e, output_json)
        return

    if output_json:
        print(json.dumps({
            "cloud": snapshot.cloud,
            "snapshot_change_number": snapshot.change_number,
            "tag": entry.name,
            "change_number": entry.change_number,
            "region": entry.region,
            "system_service": entry.system_service,
            "address_prefixes": list(entry.address_prefixes),
        }, indent=2))
        return

    click.echo(f"🏷️  {entry.name} ({snapshot.cloud})")
    click.echo(f"Change number: {entry.change_number} (snapshot {snapshot.change_number})")
    click.echo(f"Prefixes: {len(entry.address_prefixes)}")
    for prefix in entry.address_prefixes:
        click.echo(f"  • {prefix}")


@main.command("events")
@click.argument("run_id")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
def events_cmd(run_id: str, output_json: bool):
    """
    Show the recorded events of a run.
    """
    if not is_valid_run_id(run_id):
        click.echo(f"Invalid run ID: {run_id}", err=True)
        sys.exit(1)

    events = read_events(run_id)
    if not events:
        click.echo(f"No events recorded for {run_id}", err=True)
        sys.exit(2)

    if output_json:
        print(json.dumps(events, indent=2))
        return

    for event in events:
        data = event.get("data", {})
        summary = ", ".join(f"{k}={v}" for k, v in data.items() if not isinstance(v, (list, dict)))
        click.echo(f"{event.get('ts', 'unknown')} {event.get('type', 'unknown')} {summary}".rstrip())


@main.command("runs")
def runs_cmd():
    """
    List recorded runs, oldest first.
    """
    for run_id in list_runs():
        last = last_event(run_id) or {}
        click.echo(f"{run_id} {last.get('type', 'unknown')}")


if __name__ == "__main__":
    main()
