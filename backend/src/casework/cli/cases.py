"""CLI commands for inspecting a case snapshot.

Reads a JSON snapshot (``cases``, ``generalInterventions``,
``generalTasks``, ``professionals``) and prints the dashboard alerts and
aggregates computed from it.
"""

import json
import sys
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError as PydanticValidationError

from ..cases.alerts import (
    build_dashboard,
    cases_by_ceas,
    cases_by_status,
    expired_actions,
    missing_professionals,
    notebook,
    todays_agenda,
)
from ..cases.models import CurrentUser, Intervention
from ..cases.store import CaseStore
from ..config import get_settings

DATETIME_FORMATS = ["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M"]

snapshot_option = click.option(
    "--snapshot",
    "-f",
    "snapshot_path",
    required=True,
    envvar="CASEWORK_SNAPSHOT",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Case snapshot JSON file (env: CASEWORK_SNAPSHOT)",
)
now_option = click.option(
    "--now",
    type=click.DateTime(formats=DATETIME_FORMATS),
    default=None,
    help="Reference instant in UTC (default: current time)",
)
json_option = click.option("--json", "as_json", is_flag=True, help="Output as JSON")


def load_store(path: Path) -> CaseStore:
    """Load a snapshot file, exiting with an error message if it is invalid."""
    try:
        return CaseStore.model_validate_json(path.read_text(encoding="utf-8"))
    except PydanticValidationError as e:
        click.echo(f"Invalid snapshot {path}: {e.error_count()} error(s)", err=True)
        click.echo(str(e), err=True)
        sys.exit(1)


def _echo_json(data: object) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _echo_interventions(interventions: list[Intervention]) -> None:
    tz = get_settings().tzinfo
    for i in interventions:
        start = i.start.astimezone(tz).strftime("%Y-%m-%d %H:%M")
        scope = i.case_id or "general"
        click.echo(f"  {start}  {i.title}")
        click.echo(f"    Type: {i.intervention_type.value}")
        click.echo(f"    Status: {i.status.value}")
        click.echo(f"    Case: {scope}")


@click.group("case")
def case_group() -> None:
    """Inspect cases and dashboard alerts."""
    pass


@case_group.command("agenda")
@snapshot_option
@click.option("--user", "-u", "user_id", required=True, help="Professional id")
@now_option
@json_option
def agenda(snapshot_path: Path, user_id: str, now: datetime | None, as_json: bool) -> None:
    """Show a professional's interventions for today."""
    store = load_store(snapshot_path)
    items = todays_agenda(store, user_id, now=now)

    if as_json:
        _echo_json([i.to_record() for i in items])
        return

    click.echo(f"Agenda for {user_id} ({len(items)} items):")
    _echo_interventions(items)


@case_group.command("expired")
@snapshot_option
@now_option
@json_option
def expired(snapshot_path: Path, now: datetime | None, as_json: bool) -> None:
    """List planned interventions that were never closed."""
    store = load_store(snapshot_path)
    items = expired_actions(store, now=now)

    if as_json:
        _echo_json([i.to_record() for i in items])
        return

    click.echo(f"Expired actions ({len(items)}):")
    _echo_interventions(items)


@case_group.command("team")
@snapshot_option
@json_option
def team(snapshot_path: Path, as_json: bool) -> None:
    """List active cases without a complete professional team."""
    store = load_store(snapshot_path)
    alerts = missing_professionals(store)

    if as_json:
        _echo_json([a.model_dump(mode="json") for a in alerts])
        return

    click.echo(f"Cases missing professionals ({len(alerts)}):")
    for alert in alerts:
        missing = []
        if alert.missing_ts:
            missing.append("social worker")
        if alert.missing_edis:
            missing.append("EDIS technician")
        click.echo(f"  {alert.case_id}  {alert.case_name}")
        click.echo(f"    Missing: {', '.join(missing)}")


@case_group.command("stats")
@snapshot_option
@json_option
def stats(snapshot_path: Path, as_json: bool) -> None:
    """Show active cases by status and by CEAS."""
    store = load_store(snapshot_path)
    by_status = cases_by_status(store)
    by_ceas = cases_by_ceas(store)

    if as_json:
        _echo_json(
            {
                "byStatus": [b.model_dump(mode="json") for b in by_status],
                "byCeas": [b.model_dump(mode="json") for b in by_ceas],
            }
        )
        return

    click.echo("Active cases by status:")
    for bucket in by_status:
        click.echo(f"  {bucket.status.value}: {bucket.count} ({bucket.percent:.1f}%)")
    click.echo("")
    click.echo("Active cases by CEAS:")
    for bucket in by_ceas:
        click.echo(f"  {bucket.ceas}: {bucket.count} ({bucket.percent:.1f}%)")


@case_group.command("notebook")
@snapshot_option
@click.argument("case_id")
@json_option
def show_notebook(snapshot_path: Path, case_id: str, as_json: bool) -> None:
    """Show the field notebook of a case, newest first."""
    store = load_store(snapshot_path)
    case = store.get_case(case_id)

    if case is None:
        click.echo(f"Case not found: {case_id}", err=True)
        sys.exit(1)

    entries = notebook(case)
    if as_json:
        _echo_json([i.to_record() for i in entries])
        return

    click.echo(f"Field notebook of {case.display_name} ({len(entries)} entries):")
    _echo_interventions(entries)


@case_group.command("dashboard")
@snapshot_option
@click.option("--user", "-u", "user_id", required=True, help="Professional id")
@click.option(
    "--role",
    type=click.Choice(["admin", "tecnico"]),
    default="tecnico",
    help="System role of the user",
)
@now_option
def dashboard(snapshot_path: Path, user_id: str, role: str, now: datetime | None) -> None:
    """Print the full dashboard summary of a user as JSON."""
    store = load_store(snapshot_path)
    summary = build_dashboard(store, CurrentUser(id=user_id, role=role), now=now)
    _echo_json(summary.model_dump(mode="json"))
