from __future__ import annotations

from typing import Any, Iterable

from rich.console import Console
from rich.table import Table

from autopilot_provisioner.provision import RowOutcome
from autopilot_provisioner.rows import RowParseFailure


def _trunc(s: str, n: int = 60) -> str:
    if len(s) <= n:
        return s
    return s[: max(0, n - 1)] + "…"


def _error_text(error: dict[str, Any] | None) -> str:
    if not error:
        return ""
    return f"[{error.get('code')}] {error.get('message')}"


def render_outcomes(
    console: Console,
    outcomes: Iterable[RowOutcome],
    *,
    failures: Iterable[RowParseFailure] = (),
    title: str = "Profiles",
) -> None:
    t = Table(title=title)
    t.add_column("row", justify="right")
    t.add_column("display_name")
    t.add_column("status")
    t.add_column("kind")
    t.add_column("usage")
    t.add_column("locale")
    t.add_column("template")
    t.add_column("profile_id", overflow="fold")
    t.add_column("assignments", justify="right")
    t.add_column("error", overflow="fold")

    rows: list[tuple[int, list[str]]] = []
    for o in outcomes:
        req = o.request
        rows.append(
            (
                o.row_number,
                [
                    str(o.row_number),
                    o.display_name,
                    o.status,
                    req.resource_kind.value if req else "",
                    req.device_usage_type.value if req else "",
                    req.locale if req else "",
                    req.device_name_template if req else "",
                    o.profile_id or "",
                    str(len(o.assignment_ids)),
                    _trunc(_error_text(o.error), 120),
                ],
            )
        )
    for f in failures:
        rows.append(
            (
                f.row_number,
                [
                    str(f.row_number),
                    f.display_name,
                    "failed",
                    "",
                    "",
                    "",
                    "",
                    "",
                    "0",
                    _trunc(_error_text(f.error.to_dict()), 120),
                ],
            )
        )

    for _, cells in sorted(rows, key=lambda r: r[0]):
        t.add_row(*cells)

    console.print(t)


def render_summary(
    console: Console, outcomes: list[RowOutcome], failures: list[RowParseFailure]
) -> None:
    counts: dict[str, int] = {"planned": 0, "created": 0, "failed": len(failures)}
    for o in outcomes:
        counts[o.status] = counts.get(o.status, 0) + 1
    console.print(" ".join(f"{k}={v}" for k, v in counts.items()))


def render_assignment_ids(console: Console, profile_name: str, assignment_ids: list[str]) -> None:
    t = Table(title=f"Assignments: {profile_name}")
    t.add_column("#", justify="right")
    t.add_column("assignment_id", overflow="fold")
    for idx, aid in enumerate(assignment_ids, start=1):
        t.add_row(str(idx), aid)
    console.print(t)
