"""Settings and execution config tests"""

import pytest
from pydantic import ValidationError

from deepagent.config import DeepAgentSettings, ExecutionConfig, SummarizationConfig


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEEPAGENT_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("DEEPAGENT_DEFAULT_MAX_STEPS", "7")
    monkeypatch.setenv("DEEPAGENT_TAVILY_API_KEY", "tvly-abc")

    settings = DeepAgentSettings(_env_file=None)

    assert settings.log_level == "DEBUG"
    assert settings.default_max_steps == 7
    assert settings.tavily_api_key.get_secret_value() == "tvly-abc"
    assert "tvly-abc" not in repr(settings)


def test_invalid_values_are_rejected(monkeypatch):
    monkeypatch.setenv("DEEPAGENT_SANDBOX_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        DeepAgentSettings(_env_file=None)


def test_execution_config_defaults():
    config = ExecutionConfig()

    assert config.max_steps >= 1
    assert config.event_queue_size == 1
    assert config.include_general_purpose_agent
    assert not config.enable_web_tools
    assert config.max_delegation_depth == 5


def test_config_bounds():
    with pytest.raises(ValidationError):
        ExecutionConfig(max_steps=0)
    with pytest.raises(ValidationError):
        SummarizationConfig(keep_messages=-1)
