from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from autopilot_provisioner.assignments import AssignmentTarget
from autopilot_provisioner.errors import AmbiguousGroup, GroupNotFound
from autopilot_provisioner.payloads import assignment_body, profile_body
from autopilot_provisioner.profiles import ProfileRequest

DEFAULT_GRAPH_URL = "https://graph.microsoft.com/beta"
PROFILES_PATH = "/deviceManagement/windowsAutopilotDeploymentProfiles"

log = logging.getLogger("autopilot_provisioner.graph")


class ApiError(RuntimeError):
    def __init__(self, status_code: int, detail: Any):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")


@dataclass(frozen=True)
class GraphConfig:
    base_url: str
    token: str
    timeout_s: float = 30.0


def odata_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class GraphClient:
    """Thin client for the deployment-profile and group endpoints.

    Token acquisition happens elsewhere; this only sends the bearer token it is given.
    """

    def __init__(self, cfg: GraphConfig, *, transport: httpx.BaseTransport | None = None):
        base_url = (cfg.base_url or "").rstrip("/")
        if not base_url:
            raise ValueError("base_url is required")
        if not cfg.token:
            raise ValueError("token is required")

        self.cfg = cfg
        self._client = httpx.Client(
            base_url=base_url,
            timeout=cfg.timeout_s,
            transport=transport,
            headers={
                "Authorization": f"Bearer {cfg.token}",
                "Accept": "application/json",
                "User-Agent": "autopilot-provisioner",
            },
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GraphClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        r = self._client.request(method, path, params=params, json=json_body)
        log.debug("graph %s %s status=%s", method, path, r.status_code)
        if r.status_code >= 400:
            try:
                detail: Any = r.json()
            except Exception:
                detail = r.text
            raise ApiError(r.status_code, detail)

        if r.status_code == 204:
            return None

        try:
            return r.json()
        except json.JSONDecodeError:
            return r.text

    def list_all(
        self, path: str, *, params: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """GET a collection and follow @odata.nextLink until exhausted."""
        items: list[dict[str, Any]] = []
        payload = self.request("GET", path, params=params)
        while True:
            items.extend((payload or {}).get("value") or [])
            next_link = (payload or {}).get("@odata.nextLink")
            if not next_link:
                return items
            payload = self.request("GET", str(next_link))

    # ---- lookups ----

    def find_profile_ids(self, display_name: str) -> list[str]:
        items = self.list_all(
            PROFILES_PATH,
            params={"$filter": f"displayName eq {odata_quote(display_name)}"},
        )
        # The service filter is case-insensitive; names are matched exactly here.
        return [str(p.get("id")) for p in items if p.get("displayName") == display_name]

    def find_group_id(self, display_name: str) -> str:
        items = self.list_all(
            "/groups",
            params={
                "$filter": f"displayName eq {odata_quote(display_name)}",
                "$select": "id,displayName",
            },
        )
        if not items:
            raise GroupNotFound(
                f"no group named {display_name!r}",
                field="group",
                value=display_name,
                expected="exactly one match",
            )
        if len(items) > 1:
            raise AmbiguousGroup(
                f"{len(items)} groups are named {display_name!r}",
                field="group",
                value=display_name,
                expected="exactly one match",
            )
        return str(items[0].get("id"))

    # ---- writes ----

    def create_profile(self, req: ProfileRequest) -> str:
        payload = self.request("POST", PROFILES_PATH, json_body=profile_body(req))
        profile_id = str((payload or {}).get("id") or "")
        log.info("profile created name=%s id=%s", req.display_name, profile_id)
        return profile_id

    def create_assignment(self, profile_id: str, target: AssignmentTarget) -> str:
        payload = self.request(
            "POST",
            f"{PROFILES_PATH}/{profile_id}/assignments",
            json_body=assignment_body(target),
        )
        assignment_id = str((payload or {}).get("id") or "")
        log.info(
            "assignment created profile_id=%s kind=%s group_id=%s id=%s",
            profile_id,
            target.kind,
            getattr(target, "group_id", None),
            assignment_id,
        )
        return assignment_id
