from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from autopilot_provisioner.assignments import AllDevices, AssignmentTarget, ExcludeGroup
from autopilot_provisioner.profiles import ProfileRequest, ResourceKind

ODATA_TYPES = {
    ResourceKind.AZURE_AD_JOIN: "#microsoft.graph.azureADWindowsAutopilotDeploymentProfile",
    ResourceKind.HYBRID_JOIN: "#microsoft.graph.activeDirectoryWindowsAutopilotDeploymentProfile",
}

ALL_DEVICES_TARGET = "#microsoft.graph.allDevicesAssignmentTarget"
GROUP_TARGET = "#microsoft.graph.groupAssignmentTarget"
EXCLUSION_GROUP_TARGET = "#microsoft.graph.exclusionGroupAssignmentTarget"


class _GraphModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OutOfBoxExperienceSetting(_GraphModel):
    device_usage_type: str
    escape_link_hidden: bool
    privacy_settings_hidden: bool
    eula_hidden: bool
    user_type: str
    keyboard_selection_page_skipped: bool


class DeploymentProfileBody(_GraphModel):
    odata_type: str = Field(alias="@odata.type")
    display_name: str
    description: str = ""
    device_name_template: str = ""
    locale: str
    preprovisioning_allowed: bool
    device_type: str
    hardware_hash_extraction_enabled: bool
    role_scope_tag_ids: list[str] = Field(default_factory=list)
    hybrid_azure_ad_join_skip_connectivity_check: bool = Field(
        alias="hybridAzureADJoinSkipConnectivityCheck"
    )
    out_of_box_experience_setting: OutOfBoxExperienceSetting


class AssignmentTargetBody(_GraphModel):
    odata_type: str = Field(alias="@odata.type")
    group_id: str | None = None


class AssignmentBody(_GraphModel):
    target: AssignmentTargetBody


def profile_body(req: ProfileRequest) -> dict[str, Any]:
    body = DeploymentProfileBody(
        odata_type=ODATA_TYPES[req.resource_kind],
        display_name=req.display_name,
        description=req.description,
        device_name_template=req.device_name_template,
        locale=req.locale,
        preprovisioning_allowed=req.preprovisioning_allowed,
        device_type=req.device_class.graph_value,
        hardware_hash_extraction_enabled=req.hardware_hash_extraction_enabled,
        hybrid_azure_ad_join_skip_connectivity_check=req.skip_ad_connectivity_check,
        out_of_box_experience_setting=OutOfBoxExperienceSetting(
            device_usage_type=req.device_usage_type.graph_value,
            escape_link_hidden=req.hide_change_account_options,
            privacy_settings_hidden=req.hide_privacy_settings,
            eula_hidden=req.hide_license_terms,
            user_type=req.user_type.graph_value,
            keyboard_selection_page_skipped=req.keyboard_auto_configure,
        ),
    )
    return body.model_dump(by_alias=True)


def assignment_body(target: AssignmentTarget) -> dict[str, Any]:
    if isinstance(target, AllDevices):
        t = AssignmentTargetBody(odata_type=ALL_DEVICES_TARGET)
    elif isinstance(target, ExcludeGroup):
        t = AssignmentTargetBody(odata_type=EXCLUSION_GROUP_TARGET, group_id=target.group_id)
    else:
        t = AssignmentTargetBody(odata_type=GROUP_TARGET, group_id=target.group_id)
    return AssignmentBody(target=t).model_dump(by_alias=True, exclude_none=True)
