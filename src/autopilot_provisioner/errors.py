from __future__ import annotations

from typing import Any


class ProvisioningError(Exception):
    """Base class for every error raised while turning a row into remote resources.

    `field`, `value` and `expected` are filled in where a single input field is
    at fault so an operator can fix the row without reading code.
    """

    code = "provisioning_error"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        expected: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.field is not None:
            out["field"] = self.field
            out["value"] = self.value
            out["expected"] = self.expected
        return out


# ---- profile validation ----


class ValidationError(ProvisioningError):
    code = "validation_error"


class UnsupportedCombination(ProvisioningError):
    code = "unsupported_combination"


class InvalidLocale(ValidationError):
    code = "invalid_locale"


class TemplateError(ValidationError):
    code = "template_error"


class TemplateTooLong(TemplateError):
    code = "template_too_long"


class TemplateAllDigits(TemplateError):
    code = "template_all_digits"


class TemplateHasWhitespace(TemplateError):
    code = "template_has_whitespace"


class TemplateInvalidCharacters(TemplateError):
    code = "template_invalid_characters"


# ---- name resolution ----


class ResolutionError(ProvisioningError):
    code = "resolution_error"


class ProfileNotFound(ResolutionError):
    code = "profile_not_found"


class AmbiguousProfile(ResolutionError):
    code = "ambiguous_profile"


class GroupNotFound(ResolutionError):
    code = "group_not_found"


class AmbiguousGroup(ResolutionError):
    code = "ambiguous_group"


class InvalidAllDevicesCombination(ResolutionError):
    code = "invalid_all_devices_combination"


# ---- tabular input ----


class RowError(ProvisioningError):
    code = "row_error"
