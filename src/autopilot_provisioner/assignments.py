from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Union

from autopilot_provisioner.errors import (
    AmbiguousProfile,
    InvalidAllDevicesCombination,
    ProfileNotFound,
    ProvisioningError,
)
from autopilot_provisioner.result import Err, Ok, Result

ALL_DEVICES = "AllDevices"

LookupProfileFn = Callable[[str], Sequence[str]]
LookupGroupFn = Callable[[str], str]


@dataclass(frozen=True)
class IncludeGroup:
    group_id: str
    kind = "include"


@dataclass(frozen=True)
class ExcludeGroup:
    group_id: str
    kind = "exclude"


@dataclass(frozen=True)
class AllDevices:
    kind = "all_devices"


AssignmentTarget = Union[IncludeGroup, ExcludeGroup, AllDevices]


def is_all_devices(name: str) -> bool:
    return name.strip().lower() == ALL_DEVICES.lower()


def resolve_profile_id(profile_name: str, lookup_profile: LookupProfileFn) -> str:
    ids = list(lookup_profile(profile_name))
    if not ids:
        raise ProfileNotFound(
            f"no deployment profile named {profile_name!r}",
            field="profile_name",
            value=profile_name,
            expected="exactly one match",
        )
    if len(ids) > 1:
        raise AmbiguousProfile(
            f"{len(ids)} deployment profiles are named {profile_name!r}",
            field="profile_name",
            value=profile_name,
            expected="exactly one match",
        )
    return ids[0]


def check_targets(include_names: Sequence[str], exclude_names: Sequence[str]) -> None:
    """Reject AllDevices mixed with anything else. Needs no lookups."""
    if any(is_all_devices(n) for n in include_names):
        if len(include_names) > 1 or exclude_names:
            raise InvalidAllDevicesCombination(
                f"{ALL_DEVICES} must be the only target; got include={list(include_names)} "
                f"exclude={list(exclude_names)}",
                field="include_names",
                value=list(include_names),
                expected=f"[{ALL_DEVICES!r}] with no exclusions",
            )


def resolve_targets(
    include_names: Sequence[str],
    exclude_names: Sequence[str],
    lookup_group: LookupGroupFn,
) -> list[AssignmentTarget]:
    """Turn group names into targets, includes first, each in input order.

    Every name is looked up before anything is returned, so a missing group
    aborts the whole batch. Duplicates are kept.
    """
    include_names = [n.strip() for n in include_names]
    exclude_names = [n.strip() for n in exclude_names]
    check_targets(include_names, exclude_names)
    if include_names and is_all_devices(include_names[0]):
        return [AllDevices()]

    targets: list[AssignmentTarget] = []
    for name in include_names:
        targets.append(IncludeGroup(lookup_group(name)))
    for name in exclude_names:
        targets.append(ExcludeGroup(lookup_group(name)))
    return targets


def resolve(
    profile_name: str,
    include_names: Sequence[str],
    exclude_names: Sequence[str],
    lookup_profile: LookupProfileFn,
    lookup_group: LookupGroupFn,
) -> Result[list[tuple[str, AssignmentTarget]]]:
    try:
        profile_id = resolve_profile_id(profile_name, lookup_profile)
        targets = resolve_targets(include_names, exclude_names, lookup_group)
    except ProvisioningError as e:
        return Err(e)
    return Ok([(profile_id, t) for t in targets])
