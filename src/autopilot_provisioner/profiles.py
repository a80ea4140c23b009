from __future__ import annotations

import re
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from autopilot_provisioner.errors import (
    InvalidLocale,
    ProvisioningError,
    TemplateAllDigits,
    TemplateHasWhitespace,
    TemplateInvalidCharacters,
    TemplateTooLong,
    UnsupportedCombination,
    ValidationError,
)
from autopilot_provisioner.locales import OS_DEFAULT, LocaleCatalog, default_catalog
from autopilot_provisioner.result import Err, Ok, Result


def _norm_key(value: str) -> str:
    return re.sub(r"[\s_-]+", "", value).lower()


class _ParsableEnum(str, Enum):
    """str-valued enum that also accepts a few spellings seen in CSV exports."""

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def parse(cls, value: Any, *, field: str):
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip()
        key = _norm_key(raw)
        for member in cls:
            if _norm_key(member.value) == key:
                return member
        alias = cls._aliases().get(key)
        if alias is not None:
            return cls(alias)
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(
            f"{field}={raw!r} is not recognised; expected one of {allowed}",
            field=field,
            value=raw,
            expected=allowed,
        )


class DeviceClass(_ParsableEnum):
    WINDOWS_PC = "WindowsPC"
    HOLOLENS = "HoloLens"

    @property
    def graph_value(self) -> str:
        return "windowsPc" if self is DeviceClass.WINDOWS_PC else "holoLens"


class DeploymentMode(_ParsableEnum):
    USER_DRIVEN = "UserDriven"
    SELF_DEPLOYING = "SelfDeploying"


class JoinMode(_ParsableEnum):
    HYBRID = "Hybrid"
    AZURE_AD = "AzureAD"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "hybridazureadjoin": "Hybrid",
            "hybridazureadjoined": "Hybrid",
            "microsoftentrahybridjoined": "Hybrid",
            "entrahybridjoined": "Hybrid",
            "azureadjoin": "AzureAD",
            "azureadjoined": "AzureAD",
            "entraid": "AzureAD",
            "entraidjoined": "AzureAD",
            "microsoftentrajoined": "AzureAD",
            "entrajoined": "AzureAD",
        }


class UserType(_ParsableEnum):
    STANDARD = "Standard"
    ADMINISTRATOR = "Administrator"

    @property
    def graph_value(self) -> str:
        return self.value.lower()


class DeviceUsageType(str, Enum):
    SINGLE_USER = "SingleUser"
    SHARED = "Shared"

    @property
    def graph_value(self) -> str:
        return "singleUser" if self is DeviceUsageType.SINGLE_USER else "shared"


class ResourceKind(str, Enum):
    HYBRID_JOIN = "HybridJoin"
    AZURE_AD_JOIN = "AzureADJoin"


@dataclass(frozen=True)
class ProfileConfig:
    """Caller-supplied description of one deployment profile.

    Enum fields also accept their string spellings; `build` coerces them.
    """

    display_name: str
    join_mode: JoinMode | str | None
    device_class: DeviceClass | str = DeviceClass.WINDOWS_PC
    deployment_mode: DeploymentMode | str | None = DeploymentMode.USER_DRIVEN
    description: str = ""
    locale: str = OS_DEFAULT
    device_name_template: str = ""
    preprovisioning_allowed: bool = False
    skip_ad_connectivity_check: bool = False
    hide_license_terms: bool = False
    hide_privacy_settings: bool = False
    hide_change_account_options: bool = True
    keyboard_auto_configure: bool = False
    user_type: UserType | str = UserType.STANDARD
    convert_all_targeted_devices: bool = False


@dataclass(frozen=True)
class ProfileRequest:
    resource_kind: ResourceKind
    display_name: str
    description: str
    device_class: DeviceClass
    deployment_mode: DeploymentMode
    device_usage_type: DeviceUsageType
    locale: str
    device_name_template: str
    preprovisioning_allowed: bool
    skip_ad_connectivity_check: bool
    hide_license_terms: bool
    hide_privacy_settings: bool
    hide_change_account_options: bool
    keyboard_auto_configure: bool
    user_type: UserType
    hardware_hash_extraction_enabled: bool


# ---- rule table ----


@dataclass(frozen=True)
class ProfileRule:
    """Constraints for one device class / deployment mode combination.

    `deployment_mode=None` matches every mode of the class, so a class-wide rule
    can itself require a particular mode.
    """

    label: str
    device_class: DeviceClass
    deployment_mode: DeploymentMode | None
    required: tuple[tuple[str, Any], ...]
    usage: DeviceUsageType
    hybrid_requires_empty_template: bool = False

    def matches(self, device_class: DeviceClass, mode: DeploymentMode) -> bool:
        if self.device_class is not device_class:
            return False
        return self.deployment_mode is None or self.deployment_mode is mode


# Evaluated top to bottom; the first matching rule applies.
PROFILE_RULES: tuple[ProfileRule, ...] = (
    ProfileRule(
        label="HoloLens",
        device_class=DeviceClass.HOLOLENS,
        deployment_mode=None,
        required=(
            ("deployment_mode", DeploymentMode.SELF_DEPLOYING),
            ("join_mode", JoinMode.AZURE_AD),
            ("hide_license_terms", False),
            ("hide_privacy_settings", False),
            ("user_type", UserType.STANDARD),
            ("preprovisioning_allowed", False),
            ("hide_change_account_options", True),
        ),
        usage=DeviceUsageType.SHARED,
    ),
    ProfileRule(
        label="WindowsPC self-deploying",
        device_class=DeviceClass.WINDOWS_PC,
        deployment_mode=DeploymentMode.SELF_DEPLOYING,
        required=(
            ("join_mode", JoinMode.AZURE_AD),
            ("hide_license_terms", True),
            ("hide_privacy_settings", True),
            ("user_type", UserType.STANDARD),
        ),
        usage=DeviceUsageType.SHARED,
    ),
    ProfileRule(
        label="WindowsPC user-driven",
        device_class=DeviceClass.WINDOWS_PC,
        deployment_mode=DeploymentMode.USER_DRIVEN,
        required=(),
        usage=DeviceUsageType.SINGLE_USER,
        hybrid_requires_empty_template=True,
    ),
)


def find_rule(
    device_class: DeviceClass,
    deployment_mode: DeploymentMode,
    rules: tuple[ProfileRule, ...] = PROFILE_RULES,
) -> ProfileRule:
    for rule in rules:
        if rule.matches(device_class, deployment_mode):
            return rule
    raise UnsupportedCombination(
        f"no profile rule for device_class={device_class.value} "
        f"deployment_mode={deployment_mode.value}",
        field="deployment_mode",
        value=deployment_mode.value,
    )


def default_flags(device_class: DeviceClass, deployment_mode: DeploymentMode) -> dict[str, Any]:
    """Values the rule table pins for this combination (empty if none match)."""
    try:
        rule = find_rule(device_class, deployment_mode)
    except UnsupportedCombination:
        return {}
    return dict(rule.required)


def _display(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


def _check_rule(rule: ProfileRule, values: dict[str, Any]) -> None:
    for field_name, expected in rule.required:
        actual = values[field_name]
        if actual != expected:
            raise ValidationError(
                f"{field_name}={_display(actual)} is not allowed for {rule.label} profiles; "
                f"it must be {_display(expected)}",
                field=field_name,
                value=_display(actual),
                expected=_display(expected),
            )

    if (
        rule.hybrid_requires_empty_template
        and values["join_mode"] is JoinMode.HYBRID
        and values["device_name_template"]
    ):
        raise ValidationError(
            f"device_name_template={values['device_name_template']!r} is not allowed for "
            f"hybrid-joined {rule.label} profiles; it must be empty",
            field="device_name_template",
            value=values["device_name_template"],
            expected="",
        )


# ---- locale / template ----


def _check_locale(locale: str, catalog: LocaleCatalog) -> str:
    raw = str(locale or "").strip()
    if raw.lower() == OS_DEFAULT:
        return OS_DEFAULT
    canonical = catalog.canonical(raw)
    if canonical is None:
        raise InvalidLocale(
            f"locale={raw!r} is not a known culture name (or {OS_DEFAULT!r})",
            field="locale",
            value=raw,
            expected=f"{OS_DEFAULT} or a culture name such as en-US",
        )
    return canonical


TEMPLATE_MAX_LENGTH = 15

_ALL_DIGITS_RE = re.compile(r"^\d+$")
_WHITESPACE_RE = re.compile(r"\s")
_ALLOWED_CHARS_RE = re.compile(r"^[A-Za-z0-9-]+$")
_SERIAL_MACRO_RE = re.compile(r"%SERIAL%", re.IGNORECASE)
_RAND_MACRO_RE = re.compile(r"%RAND:\d+%", re.IGNORECASE)


def validate_device_name_template(template: str) -> None:
    """Apply the naming rules to a non-empty template; raises a TemplateError."""
    if not template:
        return

    def _err(cls, why: str, expected: str):
        return cls(
            f"device_name_template={template!r} {why}",
            field="device_name_template",
            value=template,
            expected=expected,
        )

    if len(template) > TEMPLATE_MAX_LENGTH:
        raise _err(
            TemplateTooLong,
            f"is {len(template)} characters long",
            f"at most {TEMPLATE_MAX_LENGTH} characters",
        )
    if _ALL_DIGITS_RE.match(template):
        raise _err(TemplateAllDigits, "contains only digits", "at least one non-digit")
    # Checked on the raw string, so macros do not excuse embedded spaces.
    if _WHITESPACE_RE.search(template):
        raise _err(TemplateHasWhitespace, "contains whitespace", "no whitespace")
    if not (
        _ALLOWED_CHARS_RE.match(template)
        or _SERIAL_MACRO_RE.search(template)
        or _RAND_MACRO_RE.search(template)
    ):
        raise _err(
            TemplateInvalidCharacters,
            "contains characters other than letters, digits and hyphens",
            "letters, digits, hyphens, %SERIAL% or %RAND:x%",
        )


# ---- builder ----


def _coerce(config: ProfileConfig) -> dict[str, Any]:
    values = {f.name: getattr(config, f.name) for f in fields(config)}

    if values["join_mode"] is None or not str(values["join_mode"]).strip():
        raise ValidationError(
            "join_mode is required",
            field="join_mode",
            value=None,
            expected="Hybrid or AzureAD",
        )

    values["device_class"] = DeviceClass.parse(values["device_class"], field="device_class")
    values["join_mode"] = JoinMode.parse(values["join_mode"], field="join_mode")
    mode = values["deployment_mode"]
    if mode is None or not str(mode).strip():
        mode = DeploymentMode.USER_DRIVEN
    values["deployment_mode"] = DeploymentMode.parse(mode, field="deployment_mode")
    values["user_type"] = UserType.parse(values["user_type"], field="user_type")
    values["device_name_template"] = str(values["device_name_template"] or "")
    values["display_name"] = str(values["display_name"] or "").strip()
    values["description"] = str(values["description"] or "")

    if not values["display_name"]:
        raise ValidationError(
            "display_name is required", field="display_name", value="", expected="non-empty"
        )
    return values


def build_or_raise(
    config: ProfileConfig, *, locales: LocaleCatalog | None = None
) -> ProfileRequest:
    """Validate `config` and return the normalized request; raises ProvisioningError."""
    values = _coerce(config)

    rule = find_rule(values["device_class"], values["deployment_mode"])
    _check_rule(rule, values)

    locale = _check_locale(values["locale"], locales or default_catalog())
    validate_device_name_template(values["device_name_template"])

    if values["join_mode"] is JoinMode.HYBRID:
        kind = ResourceKind.HYBRID_JOIN
        template = ""
        skip_check = bool(values["skip_ad_connectivity_check"])
    else:
        kind = ResourceKind.AZURE_AD_JOIN
        template = values["device_name_template"]
        skip_check = False

    return ProfileRequest(
        resource_kind=kind,
        display_name=values["display_name"],
        description=values["description"],
        device_class=values["device_class"],
        deployment_mode=values["deployment_mode"],
        device_usage_type=rule.usage,
        locale=locale,
        device_name_template=template,
        preprovisioning_allowed=bool(values["preprovisioning_allowed"]),
        skip_ad_connectivity_check=skip_check,
        hide_license_terms=bool(values["hide_license_terms"]),
        hide_privacy_settings=bool(values["hide_privacy_settings"]),
        hide_change_account_options=bool(values["hide_change_account_options"]),
        keyboard_auto_configure=bool(values["keyboard_auto_configure"]),
        user_type=values["user_type"],
        hardware_hash_extraction_enabled=bool(values["convert_all_targeted_devices"]),
    )


def build(
    config: ProfileConfig, *, locales: LocaleCatalog | None = None
) -> Result[ProfileRequest]:
    try:
        return Ok(build_or_raise(config, locales=locales))
    except ProvisioningError as e:
        return Err(e)
