from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from autopilot_provisioner.errors import ProvisioningError, RowError
from autopilot_provisioner.profiles import (
    DeploymentMode,
    DeviceClass,
    ProfileConfig,
    default_flags,
)

REQUIRED_COLUMNS = (
    "DisplayName",
    "DeploymentMode",
    "JoinToEntraIDAs",
    "LanguageLocale",
    "ProfileType",
    "ApplyDeviceNameTemplate",
    "AllowPreprovisionedDeployment",
    "IncludedGroups",
    "ExcludedGroups",
)

# Optional column -> ProfileConfig field. Absent or blank cells fall back to the
# value the rule table pins for the row's class/mode, then to the dataclass default.
OPTIONAL_FLAG_COLUMNS = {
    "HideLicenseTerms": "hide_license_terms",
    "HidePrivacySettings": "hide_privacy_settings",
    "HideChangeAccountOptions": "hide_change_account_options",
    "SkipKeyboardSelectionPage": "keyboard_auto_configure",
    "ConvertAllTargetedDevices": "convert_all_targeted_devices",
    "SkipConnectivityCheck": "skip_ad_connectivity_check",
}

_TRUE = {"true", "yes", "y", "1", "on"}
_FALSE = {"false", "no", "n", "0", "off", ""}


@dataclass(frozen=True)
class ProfileRow:
    row_number: int
    config: ProfileConfig
    include_groups: list[str] = field(default_factory=list)
    exclude_groups: list[str] = field(default_factory=list)


def parse_bool(value: Any, *, column: str) -> bool:
    s = str(value if value is not None else "").strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise RowError(
        f"{column}={value!r} is not a boolean",
        field=column,
        value=value,
        expected="true or false",
    )


def split_groups(cell: Any, separator: str = ";") -> list[str]:
    return [p.strip() for p in str(cell or "").split(separator) if p.strip()]


def _cell(row: Mapping[str, Any], column: str) -> str:
    return str(row.get(column) or "").strip()


def row_to_profile(
    row: Mapping[str, Any], *, row_number: int, group_separator: str = ";"
) -> ProfileRow:
    device_class = DeviceClass.parse(_cell(row, "ProfileType") or "WindowsPC", field="ProfileType")
    mode_raw = _cell(row, "DeploymentMode")
    mode = DeploymentMode.parse(mode_raw, field="DeploymentMode") if mode_raw else None

    kwargs: dict[str, Any] = dict(default_flags(device_class, mode or DeploymentMode.USER_DRIVEN))
    # Fields backed by required columns always come from the row itself.
    for attr in ("join_mode", "deployment_mode", "preprovisioning_allowed"):
        kwargs.pop(attr, None)

    for column, attr in OPTIONAL_FLAG_COLUMNS.items():
        if _cell(row, column):
            kwargs[attr] = parse_bool(row.get(column), column=column)

    if _cell(row, "UserType"):
        kwargs["user_type"] = _cell(row, "UserType")

    config = ProfileConfig(
        display_name=_cell(row, "DisplayName"),
        description=_cell(row, "Description"),
        device_class=device_class,
        deployment_mode=mode,
        join_mode=_cell(row, "JoinToEntraIDAs") or None,
        locale=_cell(row, "LanguageLocale") or "os-default",
        device_name_template=_cell(row, "ApplyDeviceNameTemplate"),
        preprovisioning_allowed=parse_bool(
            row.get("AllowPreprovisionedDeployment"), column="AllowPreprovisionedDeployment"
        ),
        **kwargs,
    )
    return ProfileRow(
        row_number=row_number,
        config=config,
        include_groups=split_groups(row.get("IncludedGroups"), group_separator),
        exclude_groups=split_groups(row.get("ExcludedGroups"), group_separator),
    )


@dataclass(frozen=True)
class RowParseFailure:
    row_number: int
    display_name: str
    error: ProvisioningError


def check_columns(fieldnames: Iterable[str] | None) -> None:
    present = {str(f or "").strip() for f in (fieldnames or [])}
    missing = [c for c in REQUIRED_COLUMNS if c not in present]
    if missing:
        raise RowError(
            f"missing required column(s): {', '.join(missing)}",
            field="header",
            value=sorted(present),
            expected=list(REQUIRED_COLUMNS),
        )


def read_rows(
    path: Path, *, group_separator: str = ";"
) -> tuple[list[ProfileRow], list[RowParseFailure]]:
    """Read a profile CSV. Bad cells are reported per row; a bad header raises RowError."""
    rows: list[ProfileRow] = []
    failures: list[RowParseFailure] = []

    # utf-8-sig: tolerate the BOM Excel writes.
    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        check_columns(reader.fieldnames)
        for idx, raw in enumerate(reader, start=2):
            row = {str(k or "").strip(): v for k, v in raw.items()}
            if not any(str(v or "").strip() for v in row.values()):
                continue
            try:
                rows.append(row_to_profile(row, row_number=idx, group_separator=group_separator))
            except ProvisioningError as e:
                failures.append(RowParseFailure(idx, _cell(row, "DisplayName"), e))

    return rows, failures
