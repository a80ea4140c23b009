from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence

from autopilot_provisioner.assignments import AssignmentTarget, check_targets, resolve
from autopilot_provisioner.errors import ProvisioningError
from autopilot_provisioner.graph import ApiError
from autopilot_provisioner.locales import LocaleCatalog
from autopilot_provisioner.payloads import profile_body
from autopilot_provisioner.profiles import ProfileRequest, build
from autopilot_provisioner.rows import ProfileRow

log = logging.getLogger("autopilot_provisioner.provision")


class ProfileService(Protocol):
    """What the driver needs from the remote service (GraphClient satisfies it)."""

    def find_profile_ids(self, display_name: str) -> list[str]: ...

    def find_group_id(self, display_name: str) -> str: ...

    def create_profile(self, req: ProfileRequest) -> str: ...

    def create_assignment(self, profile_id: str, target: AssignmentTarget) -> str: ...


@dataclass
class RowOutcome:
    row_number: int
    display_name: str
    status: str  # planned|created|failed
    profile_id: str | None = None
    request: ProfileRequest | None = None
    assignment_ids: list[str] = field(default_factory=list)
    error: dict[str, Any] | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row_number,
            "display_name": self.display_name,
            "status": self.status,
            "profile_id": self.profile_id,
            "assignment_ids": list(self.assignment_ids),
            "body": profile_body(self.request) if self.request else None,
            "error": self.error,
        }


def _error_dict(e: Exception) -> dict[str, Any]:
    if isinstance(e, ProvisioningError):
        return e.to_dict()
    if isinstance(e, ApiError):
        return {"code": "api_error", "status_code": e.status_code, "message": str(e)}
    return {"code": type(e).__name__, "message": str(e)}


def assign_profile(
    client: ProfileService,
    profile_name: str,
    include_names: Sequence[str],
    exclude_names: Sequence[str],
    *,
    submitted: list[str] | None = None,
) -> list[str]:
    """Assign an existing profile. Every name is resolved before the first submission.

    Ids are appended to `submitted` as each assignment is created, so a caller
    still sees the ones that went through when a later submission fails.
    """
    pairs = resolve(
        profile_name,
        include_names,
        exclude_names,
        client.find_profile_ids,
        client.find_group_id,
    ).unwrap()

    ids = submitted if submitted is not None else []
    for profile_id, target in pairs:
        ids.append(client.create_assignment(profile_id, target))
    return ids


def provision_row(
    client: ProfileService | None,
    row: ProfileRow,
    *,
    dry_run: bool = False,
    locales: LocaleCatalog | None = None,
) -> RowOutcome:
    name = row.config.display_name
    req = build(row.config, locales=locales).unwrap()
    check_targets(row.include_groups, row.exclude_groups)

    if dry_run or client is None:
        return RowOutcome(row.row_number, name, "planned", request=req)

    outcome = RowOutcome(row.row_number, name, "created", request=req)
    outcome.profile_id = client.create_profile(req)
    if not (row.include_groups or row.exclude_groups):
        return outcome

    try:
        assign_profile(
            client,
            req.display_name,
            row.include_groups,
            row.exclude_groups,
            submitted=outcome.assignment_ids,
        )
    except (ProvisioningError, ApiError) as e:
        # The profile exists remotely; keep its id so the operator can finish by hand.
        outcome.status = "failed"
        outcome.error = _error_dict(e)
    return outcome


def provision_rows(
    client: ProfileService | None,
    rows: Iterable[ProfileRow],
    *,
    dry_run: bool = False,
    stop_on_error: bool = False,
    locales: LocaleCatalog | None = None,
) -> list[RowOutcome]:
    """Process rows in order. A failing row is recorded and skipped unless stop_on_error."""
    outcomes: list[RowOutcome] = []
    for row in rows:
        try:
            outcome = provision_row(client, row, dry_run=dry_run, locales=locales)
        except (ProvisioningError, ApiError) as e:
            log.warning(
                "row failed row=%s name=%s error=%s", row.row_number, row.config.display_name, e
            )
            outcomes.append(
                RowOutcome(
                    row.row_number, row.config.display_name, "failed", error=_error_dict(e)
                )
            )
            if stop_on_error:
                break
            continue

        if outcome.failed:
            log.warning(
                "assignments failed row=%s name=%s profile_id=%s error=%s",
                outcome.row_number,
                outcome.display_name,
                outcome.profile_id,
                (outcome.error or {}).get("message"),
            )
            outcomes.append(outcome)
            if stop_on_error:
                break
            continue

        log.info(
            "row %s row=%s name=%s profile_id=%s assignments=%s",
            outcome.status,
            outcome.row_number,
            outcome.display_name,
            outcome.profile_id,
            len(outcome.assignment_ids),
        )
        outcomes.append(outcome)
    return outcomes
