from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from autopilot_provisioner.config import load_settings
from autopilot_provisioner.errors import ProvisioningError, RowError
from autopilot_provisioner.graph import ApiError, GraphClient, GraphConfig
from autopilot_provisioner.provision import RowOutcome, assign_profile, provision_rows
from autopilot_provisioner.render import (
    render_assignment_ids,
    render_outcomes,
    render_summary,
)
from autopilot_provisioner.rows import ProfileRow, RowParseFailure, read_rows

app = typer.Typer(add_completion=False, help="Windows Autopilot deployment profile provisioning")


@app.callback()
def main_callback(
    ctx: typer.Context,
    graph_url: str = typer.Option(
        None,
        "--graph-url",
        help="Management API base URL (default: AUTOPILOT_GRAPH_BASE_URL or Graph beta)",
    ),
    token: str = typer.Option(
        None,
        "--token",
        help="Bearer token (default: AUTOPILOT_GRAPH_TOKEN)",
    ),
    log_level: str = typer.Option(None, "--log-level", help="debug|info|warning|error"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    settings = load_settings(graph_base_url=graph_url, graph_token=token, log_level=log_level)
    _configure_logging(settings.log_level)
    ctx.obj = {"settings": settings, "json": bool(json_out)}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=str(level or "info").upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _console() -> Console:
    # If output is redirected, avoid rich's color codes.
    no_color = not os.isatty(1)
    return Console(no_color=no_color)


def _client(ctx: typer.Context) -> GraphClient:
    s = ctx.obj["settings"]
    if not s.graph_token:
        raise typer.BadParameter("Token required (set AUTOPILOT_GRAPH_TOKEN or --token)")
    return GraphClient(
        GraphConfig(base_url=s.graph_base_url, token=s.graph_token, timeout_s=s.timeout_s)
    )


def _pretty_json(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, default=str)


def _read(ctx: typer.Context, csv_path: Path) -> tuple[list[ProfileRow], list[RowParseFailure]]:
    try:
        return read_rows(csv_path, group_separator=ctx.obj["settings"].group_separator)
    except RowError as e:
        _console().print(f"{csv_path}: {e}")
        raise typer.Exit(code=2)


def _finish(
    ctx: typer.Context,
    outcomes: list[RowOutcome],
    failures: list[RowParseFailure],
    *,
    title: str,
) -> None:
    if ctx.obj.get("json"):
        payload = {
            "rows": [o.to_dict() for o in outcomes],
            "parse_failures": [
                {"row": f.row_number, "display_name": f.display_name, "error": f.error.to_dict()}
                for f in failures
            ],
        }
        print(_pretty_json(payload))
    else:
        console = _console()
        render_outcomes(console, outcomes, failures=failures, title=title)
        render_summary(console, outcomes, failures)

    if failures or any(o.failed for o in outcomes):
        raise typer.Exit(code=1)


@app.command("validate")
def validate(
    ctx: typer.Context,
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    """Check every row offline; nothing is sent to the service."""
    rows, failures = _read(ctx, csv_path)
    outcomes = provision_rows(None, rows, dry_run=True)
    _finish(ctx, outcomes, failures, title=f"Validation: {csv_path.name}")


@app.command("plan")
def plan(
    ctx: typer.Context,
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    """Print the request bodies that apply would send."""
    rows, failures = _read(ctx, csv_path)
    outcomes = provision_rows(None, rows, dry_run=True)
    if not ctx.obj.get("json"):
        console = _console()
        for o in outcomes:
            if o.request is None:
                continue
            console.rule(f"row {o.row_number}: {o.display_name}")
            console.print_json(data=o.to_dict()["body"])
    _finish(ctx, outcomes, failures, title=f"Plan: {csv_path.name}")


@app.command("apply")
def apply(
    ctx: typer.Context,
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    stop_on_error: bool = typer.Option(
        False, "--stop-on-error", help="Stop at the first failed row instead of skipping it"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate only; do not call the service"),
) -> None:
    """Create one profile per row and assign it to the row's groups."""
    rows, failures = _read(ctx, csv_path)
    if failures and stop_on_error:
        _finish(ctx, [], failures, title=f"Apply: {csv_path.name}")

    if dry_run:
        outcomes = provision_rows(None, rows, dry_run=True)
    else:
        with _client(ctx) as client:
            outcomes = provision_rows(client, rows, stop_on_error=stop_on_error)
    _finish(ctx, outcomes, failures, title=f"Apply: {csv_path.name}")


@app.command("assign")
def assign(
    ctx: typer.Context,
    profile_name: str = typer.Argument(..., help="Deployment profile display name (exact)"),
    include: list[str] = typer.Option(
        [], "--include", "-i", help="Group to include (repeatable; AllDevices for every device)"
    ),
    exclude: list[str] = typer.Option([], "--exclude", "-e", help="Group to exclude (repeatable)"),
) -> None:
    """Assign an existing profile to groups."""
    if not include and not exclude:
        raise typer.BadParameter("Give at least one --include or --exclude")

    console = _console()
    with _client(ctx) as client:
        try:
            assignment_ids = assign_profile(client, profile_name, include, exclude)
        except (ProvisioningError, ApiError) as e:
            console.print(f"Assignment failed: {e}")
            raise typer.Exit(code=1)

    if ctx.obj.get("json"):
        print(_pretty_json({"profile": profile_name, "assignment_ids": assignment_ids}))
        return
    render_assignment_ids(console, profile_name, assignment_ids)
