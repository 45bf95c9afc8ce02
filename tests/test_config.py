"""
Tests for environment settings and config models.
"""

import pytest
from pydantic import ValidationError

from agentrun.config import (
    DEFAULT_LIMIT_NOTICE,
    AgentrunSettings,
    ExecutionConfig,
    SessionConfig,
    settings,
)


class TestAgentrunSettings:
    def test_defaults(self, monkeypatch):
        for name in ("AGENTRUN_DEFAULT_MODEL", "AGENTRUN_DEFAULT_MAX_ITERATIONS"):
            monkeypatch.delenv(name, raising=False)
        config = AgentrunSettings(_env_file=None)
        assert config.default_model == "gpt-4o-mini"
        assert config.default_max_iterations == 5
        assert config.log_format == "console"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("AGENTRUN_DEFAULT_MAX_ITERATIONS", "7")
        monkeypatch.setenv("AGENTRUN_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("AGENTRUN_OPENAI_API_KEY", "sk-secret")

        config = AgentrunSettings(_env_file=None)

        assert config.default_max_iterations == 7
        assert config.log_level == "DEBUG"
        assert config.openai_api_key.get_secret_value() == "sk-secret"
        assert "sk-secret" not in repr(config)

    def test_invalid_values(self, monkeypatch):
        monkeypatch.setenv("AGENTRUN_DEFAULT_MAX_ITERATIONS", "0")
        with pytest.raises(ValidationError):
            AgentrunSettings(_env_file=None)


class TestExecutionConfig:
    def test_defaults(self):
        config = ExecutionConfig()
        assert config.max_iterations == 5
        assert config.tool_timeout is None
        assert config.max_parallel_tools == 8
        assert config.limit_notice == DEFAULT_LIMIT_NOTICE

    @pytest.mark.parametrize(
        "field, value",
        [("max_iterations", 0), ("tool_timeout", 0), ("max_parallel_tools", 0)],
    )
    def test_bounds(self, field, value):
        with pytest.raises(ValidationError):
            ExecutionConfig(**{field: value})

    def test_no_upper_bound_on_iterations(self):
        assert ExecutionConfig(max_iterations=200).max_iterations == 200

    def test_limit_notice(self):
        assert "3 iterations" in ExecutionConfig().render_limit_notice(3)
        assert ExecutionConfig(limit_notice="Stop at {max_iterations}").render_limit_notice(2) == "Stop at 2"

    def test_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "default_max_iterations", 9)
        monkeypatch.setattr(settings, "tool_timeout", 2.5)
        monkeypatch.setattr(settings, "max_parallel_tools", 3)

        config = ExecutionConfig.from_settings()

        assert (config.max_iterations, config.tool_timeout, config.max_parallel_tools) == (9, 2.5, 3)


class TestSessionConfig:
    def test_defaults(self):
        config = SessionConfig()
        assert config.tools_format == "snippet"
        assert config.include_datetime is True
        assert config.persona is None
        assert config.execution == ExecutionConfig()

    def test_unknown_tools_format(self):
        with pytest.raises(ValidationError):
            SessionConfig(tools_format="yaml")
