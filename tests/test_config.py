import json

import pytest

from nodeflow.utils import config as config_module
from nodeflow.utils.config import ConfigManager, ExecutionConfig, NodeflowConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("NODEFLOW_TRIGGER_URL", "NODEFLOW_LLM_URL", "GEMINI_API_KEY", "NODEFLOW_NODE_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def manager(tmp_path):
    return ConfigManager(config_file=tmp_path / "nodeflow" / "config.json")


def test_defaults_without_file(manager):
    config = manager.load()

    assert config.collaborators.trigger_url.endswith("/functions/v1/http-trigger")
    assert config.execution == ExecutionConfig()


def test_save_then_load(manager):
    config = NodeflowConfig()
    config.execution.node_timeout = 12.0
    config.collaborators.llm_url = "http://llm.test"
    manager.save(config)

    loaded = ConfigManager(config_file=manager.CONFIG_FILE).load()

    assert loaded.execution.node_timeout == 12.0
    assert loaded.collaborators.llm_url == "http://llm.test"
    assert oct(manager.CONFIG_FILE.stat().st_mode & 0o777) == oct(0o600)


def test_environment_overrides_file(manager, monkeypatch):
    manager.save(NodeflowConfig())
    monkeypatch.setenv("NODEFLOW_TRIGGER_URL", "http://trigger.test")
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("NODEFLOW_NODE_TIMEOUT", "2.5")

    config = manager.load()

    assert config.collaborators.trigger_url == "http://trigger.test"
    assert config.collaborators.gemini_api_key == "secret"
    assert config.execution.node_timeout == 2.5


def test_invalid_environment_value_is_ignored(manager, monkeypatch):
    monkeypatch.setenv("NODEFLOW_NODE_TIMEOUT", "soon")

    assert manager.load().execution.node_timeout == 30.0


def test_corrupt_file_falls_back_to_defaults(manager):
    manager.CONFIG_FILE.parent.mkdir(parents=True)
    manager.CONFIG_FILE.write_text("{not json")

    assert manager.load() == NodeflowConfig()


def test_gemini_key_without_prompt(manager):
    assert manager.get_gemini_api_key(prompt=False) is None

    config = NodeflowConfig()
    config.collaborators.gemini_api_key = "stored"
    manager.save(config)

    assert manager.get_gemini_api_key(prompt=False) == "stored"


def test_clear_credentials(manager):
    config = NodeflowConfig()
    config.collaborators.gemini_api_key = "stored"
    manager.save(config)

    manager.clear_credentials()

    data = json.loads(manager.CONFIG_FILE.read_text())
    assert data["collaborators"]["gemini_api_key"] is None


def test_gemini_key_prompt_stores_key(manager, monkeypatch):
    monkeypatch.setattr(config_module.getpass, "getpass", lambda prompt: "  typed-key ")

    assert manager.get_gemini_api_key(prompt=True) == "typed-key"

    data = json.loads(manager.CONFIG_FILE.read_text())
    assert data["collaborators"]["gemini_api_key"] == "typed-key"


def test_stored_key_does_not_capture_environment_overrides(manager, monkeypatch):
    monkeypatch.setenv("NODEFLOW_TRIGGER_URL", "http://from-env.test")
    monkeypatch.setattr(config_module.getpass, "getpass", lambda prompt: "typed-key")

    manager.get_gemini_api_key(prompt=True)
    manager.clear_credentials()

    data = json.loads(manager.CONFIG_FILE.read_text())
    assert data["collaborators"]["trigger_url"] != "http://from-env.test"
    assert manager.load().collaborators.trigger_url == "http://from-env.test"
