from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Prioritize the in-repo package during tests.
_SRC = Path(__file__).resolve().parents[1] / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from autopilot_provisioner.errors import GroupNotFound
from autopilot_provisioner.locales import LocaleCatalog

HEADER = (
    "DisplayName,DeploymentMode,JoinToEntraIDAs,LanguageLocale,ProfileType,"
    "ApplyDeviceNameTemplate,AllowPreprovisionedDeployment,IncludedGroups,ExcludedGroups"
)


@pytest.fixture()
def locales() -> LocaleCatalog:
    return LocaleCatalog(["en-US", "en-GB", "fr-FR", "de-DE", "ja-JP", "zh-Hant-TW"])


@pytest.fixture()
def write_csv(tmp_path: Path):
    def _write(*lines: str, header: str = HEADER, name: str = "profiles.csv") -> Path:
        p = tmp_path / name
        p.write_text("\n".join([header, *lines]) + "\n", encoding="utf-8")
        return p

    return _write


class FakeService:
    """In-memory stand-in for GraphClient that records every call in order."""

    def __init__(self, *, groups: dict[str, str] | None = None) -> None:
        self.groups = dict(groups or {})
        self.profiles: dict[str, list[str]] = {}
        self.calls: list[tuple] = []
        self.assignments: list[tuple] = []
        self._next = 0

    def _id(self, prefix: str) -> str:
        self._next += 1
        return f"{prefix}-{self._next}"

    def find_profile_ids(self, display_name: str) -> list[str]:
        self.calls.append(("find_profile_ids", display_name))
        return list(self.profiles.get(display_name, []))

    def find_group_id(self, display_name: str) -> str:
        self.calls.append(("find_group_id", display_name))
        if display_name not in self.groups:
            raise GroupNotFound(
                f"no group named {display_name!r}", field="group", value=display_name
            )
        return self.groups[display_name]

    def create_profile(self, req) -> str:
        self.calls.append(("create_profile", req.display_name))
        pid = self._id("profile")
        self.profiles.setdefault(req.display_name, []).append(pid)
        return pid

    def create_assignment(self, profile_id: str, target) -> str:
        self.calls.append(("create_assignment", profile_id, target))
        self.assignments.append((profile_id, target))
        return self._id("assignment")


@pytest.fixture()
def service() -> FakeService:
    return FakeService(groups={"Group1": "g-1", "Group2": "g-2", "Group3": "g-3"})
