from __future__ import annotations

import json

import httpx
import pytest

from autopilot_provisioner.assignments import AllDevices, ExcludeGroup, IncludeGroup
from autopilot_provisioner.errors import AmbiguousGroup, GroupNotFound
from autopilot_provisioner.graph import ApiError, GraphClient, GraphConfig, odata_quote
from autopilot_provisioner.profiles import ProfileConfig, build_or_raise

BASE = "https://graph.example.test/beta"


def _client(handler) -> GraphClient:
    return GraphClient(
        GraphConfig(base_url=BASE + "/", token="t0ken"),
        transport=httpx.MockTransport(handler),
    )


def test_requires_base_url_and_token():
    with pytest.raises(ValueError):
        GraphClient(GraphConfig(base_url="", token="x"))
    with pytest.raises(ValueError):
        GraphClient(GraphConfig(base_url=BASE, token=""))


def test_odata_quote_doubles_single_quotes():
    assert odata_quote("O'Brien PCs") == "'O''Brien PCs'"


def test_find_group_id_sends_filter_and_bearer():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"value": [{"id": "g-1", "displayName": "Group1"}]})

    with _client(handler) as c:
        assert c.find_group_id("Group1") == "g-1"

    req = seen[0]
    assert req.url.path == "/beta/groups"
    assert req.url.params["$filter"] == "displayName eq 'Group1'"
    assert req.headers["Authorization"] == "Bearer t0ken"


def test_find_group_id_zero_and_many():
    payloads = iter(
        [
            {"value": []},
            {"value": [{"id": "a", "displayName": "Dup"}, {"id": "b", "displayName": "Dup"}]},
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=next(payloads))

    with _client(handler) as c:
        with pytest.raises(GroupNotFound):
            c.find_group_id("Nope")
        with pytest.raises(AmbiguousGroup):
            c.find_group_id("Dup")


def test_find_profile_ids_follows_next_link_and_matches_exactly():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("page") == "2":
            return httpx.Response(200, json={"value": [{"id": "p-2", "displayName": "Kiosk"}]})
        return httpx.Response(
            200,
            json={
                "value": [
                    {"id": "p-1", "displayName": "Kiosk"},
                    {"id": "p-x", "displayName": "kiosk"},
                ],
                "@odata.nextLink": BASE
                + "/deviceManagement/windowsAutopilotDeploymentProfiles?page=2",
            },
        )

    with _client(handler) as c:
        assert c.find_profile_ids("Kiosk") == ["p-1", "p-2"]


def test_create_profile_posts_graph_body(locales):
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(201, json={"id": "p-9"})

    req = build_or_raise(
        ProfileConfig(display_name="NA", join_mode="AzureAD", locale="en-US"), locales=locales
    )
    with _client(handler) as c:
        assert c.create_profile(req) == "p-9"

    body = seen[0]
    assert body["@odata.type"] == "#microsoft.graph.azureADWindowsAutopilotDeploymentProfile"
    assert body["displayName"] == "NA"


@pytest.mark.parametrize(
    "target, expected",
    [
        (AllDevices(), {"@odata.type": "#microsoft.graph.allDevicesAssignmentTarget"}),
        (
            IncludeGroup("g-1"),
            {"@odata.type": "#microsoft.graph.groupAssignmentTarget", "groupId": "g-1"},
        ),
        (
            ExcludeGroup("g-3"),
            {"@odata.type": "#microsoft.graph.exclusionGroupAssignmentTarget", "groupId": "g-3"},
        ),
    ],
)
def test_create_assignment_target_shapes(target, expected):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "a-1"})

    with _client(handler) as c:
        assert c.create_assignment("p-1", target) == "a-1"

    assert seen[0].url.path.endswith("/windowsAutopilotDeploymentProfiles/p-1/assignments")
    assert json.loads(seen[0].content) == {"target": expected}


def test_http_errors_raise_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"code": "Forbidden"}})

    with _client(handler) as c:
        with pytest.raises(ApiError) as ei:
            c.find_profile_ids("x")

    assert ei.value.status_code == 403
    assert ei.value.detail == {"error": {"code": "Forbidden"}}
