from __future__ import annotations

import pytest

from autopilot_provisioner.locales import LocaleCatalog, culture_names, default_catalog


def test_catalog_lookup_is_case_insensitive():
    cat = LocaleCatalog(["en-US", "zh-Hant-TW", "", "  "])

    assert "en-us" in cat
    assert "ZH-HANT-TW" in cat
    assert cat.canonical("zh-hant-tw") == "zh-Hant-TW"
    assert cat.canonical("xx-YY") is None
    assert len(cat) == 2


def test_default_catalog_uses_hyphenated_culture_names():
    cat = default_catalog()

    assert "en-US" in cat
    assert "fr-FR" in cat
    assert cat.canonical("de-de") == "de-DE"
    assert "en_US" not in cat


def test_culture_names_add_region_alias_for_likely_script():
    likely = {"zh": "zh_Hans_CN", "zh_TW": "zh_Hant_TW", "zh_HK": "zh_Hant_HK"}
    names = culture_names(
        ["zh", "zh_Hans_CN", "zh_Hant_TW", "zh_Hant_HK", "zh_Hans_HK", "en_US_POSIX"], likely
    )

    assert "zh-CN" in names
    assert "zh-TW" in names
    assert names.count("zh-HK") == 1
    assert "zh-Hans-HK" in names
    assert not any("POSIX" in n for n in names)


@pytest.mark.parametrize(
    "tag",
    [
        "zh-CN", "zh-TW", "zh-HK", "zh-Hant-TW",
        "sr-RS", "sr-Latn-RS", "pa-IN", "az-AZ", "uz-UZ", "bs-BA",
    ],
)
def test_default_catalog_knows_script_and_region_only_names(tag):
    assert tag in default_catalog()


def test_default_catalog_drops_variant_identifiers():
    cat = default_catalog()
    assert "en-US-POSIX" not in cat
    assert cat.canonical("zh-tw") == "zh-TW"
