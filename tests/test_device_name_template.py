from __future__ import annotations

import pytest

from autopilot_provisioner.errors import (
    TemplateAllDigits,
    TemplateHasWhitespace,
    TemplateInvalidCharacters,
    TemplateTooLong,
)
from autopilot_provisioner.profiles import (
    ProfileConfig,
    build,
    validate_device_name_template,
)


@pytest.mark.parametrize(
    "template",
    ["HOLO%SERIAL%", "NA-%SERIAL%", "LAB-%RAND:5%", "DESKTOP-01", "abc", "x" * 15, ""],
)
def test_valid_templates(template):
    validate_device_name_template(template)


def test_template_longer_than_15_is_rejected():
    with pytest.raises(TemplateTooLong) as ei:
        validate_device_name_template("A" * 16)
    assert ei.value.field == "device_name_template"


def test_all_digit_template_is_rejected():
    with pytest.raises(TemplateAllDigits):
        validate_device_name_template("12345")


def test_whitespace_is_rejected_even_with_a_macro():
    with pytest.raises(TemplateHasWhitespace):
        validate_device_name_template("NA %SERIAL%")


@pytest.mark.parametrize("template", ["NA_PC", "PC#1", "ÄBC-1"])
def test_characters_outside_the_allowed_set_are_rejected(template):
    with pytest.raises(TemplateInvalidCharacters):
        validate_device_name_template(template)


def test_macro_exempts_other_characters():
    # %SERIAL% accepts the rest of the string as-is, underscores included.
    validate_device_name_template("NA_%SERIAL%")


def test_length_is_checked_before_digits():
    with pytest.raises(TemplateTooLong):
        validate_device_name_template("1" * 20)


def test_builder_surfaces_template_errors(locales):
    cfg = ProfileConfig(display_name="x", join_mode="AzureAD", device_name_template="A" * 16)
    result = build(cfg, locales=locales)
    assert isinstance(result.error, TemplateTooLong)
