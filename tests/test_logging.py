"""
Test structured logging helpers and the retry decorator.
"""

import pytest
from structlog.testing import CapturingLogger

from agentrun.utils import filter_sensitive_data, get_logger, retry_async
from agentrun.utils import logging as agentrun_logging


def test_sensitive_keys_are_redacted():
    event = {
        "event": "llm_request",
        "api_key": "sk-123",
        "Authorization": "Bearer abc",
        "db_password": "hunter2",
        "client_secret": "s3cr3t",
        "token": "tok",
        "model": "gpt-4o-mini",
    }

    result = filter_sensitive_data(CapturingLogger(), "info", event)

    assert result["event"] == "llm_request"
    assert result["api_key"] == "***REDACTED***"
    assert result["Authorization"] == "***REDACTED***"
    assert result["db_password"] == "***REDACTED***"
    assert result["client_secret"] == "***REDACTED***"
    assert result["token"] == "***REDACTED***"
    assert result["model"] == "gpt-4o-mini"


def test_token_counts_are_not_redacted():
    """Usage counters contain 'token' but are not credentials"""
    event = {
        "event": "llm_response",
        "prompt_tokens": 100,
        "completion_tokens": 50,
        "total_tokens": 150,
        "tokens": 150,
    }

    result = filter_sensitive_data(CapturingLogger(), "info", dict(event))

    assert result == event


def test_none_values_are_left_alone():
    assert filter_sensitive_data(CapturingLogger(), "info", {"api_key": None})["api_key"] is None


def test_get_logger_returns_usable_logger():
    logger = get_logger("agentrun.tests")
    logger.debug("test_event", value=1)
    logger.info("test_event", api_key="sk-should-not-leak")


def test_get_logger_leaves_configuration_to_the_application(monkeypatch):
    monkeypatch.setattr(agentrun_logging, "_configured", False)
    calls = []
    monkeypatch.setattr(agentrun_logging.structlog, "configure", lambda **kw: calls.append(kw))

    get_logger("agentrun.tests.quiet")

    assert calls == []
    assert agentrun_logging._configured is False


def test_configure_logging_is_idempotent(monkeypatch):
    monkeypatch.setattr(agentrun_logging, "_configured", False)
    calls = []
    monkeypatch.setattr(agentrun_logging.structlog, "configure", lambda **kw: calls.append(kw))
    monkeypatch.setattr(agentrun_logging.logging, "basicConfig", lambda **kw: None)

    agentrun_logging.configure_logging(level="debug", fmt="json")
    agentrun_logging.configure_logging(level="info")

    assert len(calls) == 1
    assert filter_sensitive_data in calls[0]["processors"]


@pytest.mark.asyncio
async def test_retry_async_retries_until_success():
    attempts = 0

    @retry_async(max_attempts=3, min_wait=0, max_wait=0)
    async def flaky():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise ConnectionError("connection reset")
        return "ok"

    assert await flaky() == "ok"
    assert attempts == 3


@pytest.mark.asyncio
async def test_retry_async_reraises_after_last_attempt():
    attempts = 0

    @retry_async(max_attempts=2, min_wait=0, max_wait=0)
    async def always_down():
        nonlocal attempts
        attempts += 1
        raise TimeoutError("still down")

    with pytest.raises(TimeoutError):
        await always_down()
    assert attempts == 2


@pytest.mark.asyncio
async def test_retry_async_ignores_other_exceptions():
    attempts = 0

    @retry_async(max_attempts=3, min_wait=0, max_wait=0)
    async def bad_request():
        nonlocal attempts
        attempts += 1
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await bad_request()
    assert attempts == 1
