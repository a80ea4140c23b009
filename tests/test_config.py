from __future__ import annotations

from autopilot_provisioner.config import load_settings
from autopilot_provisioner.graph import DEFAULT_GRAPH_URL


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for k in ("AUTOPILOT_GRAPH_BASE_URL", "AUTOPILOT_GRAPH_TOKEN", "AUTOPILOT_GROUP_SEPARATOR"):
        monkeypatch.delenv(k, raising=False)

    s = load_settings()

    assert s.graph_base_url == DEFAULT_GRAPH_URL
    assert s.graph_token == ""
    assert s.group_separator == ";"


def test_env_then_explicit_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AUTOPILOT_GRAPH_TOKEN", "from-env")
    monkeypatch.setenv("AUTOPILOT_GROUP_SEPARATOR", ",")

    s = load_settings(graph_token=None)
    assert s.graph_token == "from-env"
    assert s.group_separator == ","

    s = load_settings(graph_token="from-cli")
    assert s.graph_token == "from-cli"


def test_dotenv_file_is_read(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("AUTOPILOT_LOG_LEVEL", raising=False)
    (tmp_path / ".env").write_text("AUTOPILOT_LOG_LEVEL=debug\n", encoding="utf-8")

    assert load_settings().log_level == "debug"
