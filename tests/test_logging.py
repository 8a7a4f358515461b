"""Log redaction and agent failure logging tests"""

import pytest
from unittest.mock import patch

from structlog.testing import CapturingLogger

from deepagent import DeepAgent
from deepagent.utils.logging import filter_sensitive_data


def test_tokens_not_redacted_in_logs():
    event_dict = {
        "event": "llm_response",
        "total_tokens": 150,
        "prompt_tokens": 50,
        "api_key": "sk-secret",
        "password": "hunter2",
        "openai_api_key": "sk-other",
    }

    filtered = filter_sensitive_data(CapturingLogger(), "info", event_dict.copy())

    assert filtered["total_tokens"] == 150
    assert filtered["prompt_tokens"] == 50
    assert filtered["api_key"] == "***REDACTED***"
    assert filtered["password"] == "***REDACTED***"
    assert filtered["openai_api_key"] == "***REDACTED***"


def test_nested_values_are_redacted():
    event_dict = {
        "event": "http_request",
        "headers": {"Authorization": "Bearer tvly-123", "Accept": "application/json"},
        "attempts": [{"secret": "x", "status": 500}],
    }

    filtered = filter_sensitive_data(CapturingLogger(), "info", event_dict)

    assert filtered["headers"] == {"Authorization": "***REDACTED***", "Accept": "application/json"}
    assert filtered["attempts"] == [{"secret": "***REDACTED***", "status": 500}]


@pytest.mark.asyncio
async def test_agent_failure_is_logged(make_model):
    agent = DeepAgent(model=make_model(ValueError("Simulated LLM failure")))

    with patch("deepagent.agent.logger") as mock_logger:
        events = [event async for event in agent.stream_with_events("test input")]

    assert events[-1].error_type == "ValueError"
    event, kwargs = mock_logger.error.call_args[0][0], mock_logger.error.call_args[1]
    assert event == "agent_run_failed"
    assert kwargs["error_type"] == "ValueError"
    assert kwargs["exc_info"] is True
