from pydantic_settings import BaseSettings, SettingsConfigDict

from autopilot_provisioner.graph import DEFAULT_GRAPH_URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AUTOPILOT_", env_file=".env", extra="ignore")

    graph_base_url: str = DEFAULT_GRAPH_URL
    # Bearer token for the management API. Acquire it with your usual tooling
    # (az account get-access-token, MSAL, ...) and export AUTOPILOT_GRAPH_TOKEN.
    graph_token: str = ""
    timeout_s: float = 30.0
    log_level: str = "info"

    # Separator between group names inside the IncludedGroups / ExcludedGroups cells.
    group_separator: str = ";"


def load_settings(**overrides) -> Settings:
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
