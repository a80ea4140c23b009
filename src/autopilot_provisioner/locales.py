from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Mapping

from babel.core import get_global, parse_locale
from babel.localedata import locale_identifiers

OS_DEFAULT = "os-default"


class LocaleCatalog:
    """Set of known culture names (``en-US``, ``zh-Hant-TW``, ...).

    Lookups are case-insensitive; `canonical` returns the catalog's own spelling.
    """

    def __init__(self, tags: Iterable[str]) -> None:
        self._by_lower: dict[str, str] = {}
        for tag in tags:
            t = str(tag or "").strip()
            if t:
                self._by_lower.setdefault(t.lower(), t)

    def __contains__(self, tag: object) -> bool:
        return isinstance(tag, str) and tag.strip().lower() in self._by_lower

    def __len__(self) -> int:
        return len(self._by_lower)

    def canonical(self, tag: str) -> str | None:
        return self._by_lower.get(str(tag or "").strip().lower())


def _culture_name(*parts: str | None) -> str:
    # Babel uses underscores (zh_Hant_TW); culture names use hyphens.
    return "-".join(p for p in parts if p)


def culture_names(identifiers: Iterable[str], likely: Mapping[str, str]) -> list[str]:
    """Hyphenated culture names for Babel locale identifiers.

    Identifiers with a variant (``en_US_POSIX``) are not cultures and are dropped.
    A ``lang_Script_TERR`` identifier also yields ``lang-TERR`` when Script is the
    one CLDR considers likely for that language and territory, so ``zh-TW`` and
    ``sr-RS`` resolve alongside ``zh-Hant-TW`` and ``sr-Cyrl-RS``.
    """
    names: list[str] = []
    for identifier in identifiers:
        lang, territory, script, variant = parse_locale(identifier)[:4]
        if variant:
            continue
        names.append(_culture_name(lang, script, territory))
        if script and territory:
            expanded = likely.get(f"{lang}_{territory}") or likely.get(lang) or ""
            if expanded and parse_locale(expanded)[2] == script:
                names.append(_culture_name(lang, territory))
    return names


@lru_cache(maxsize=1)
def default_catalog() -> LocaleCatalog:
    return LocaleCatalog(culture_names(locale_identifiers(), get_global("likely_subtags")))
