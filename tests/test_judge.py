"""Tests for the pydantic-ai backed judge."""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock, patch

from evalent.tools.scoring.errors import JudgeError, JudgeUnavailableError
from evalent.tools.scoring.judge import DEFAULT_TIMEOUT_SECONDS, AgentJudge


@pytest.fixture
def configs():
    return {"anthropic": {"api_key": "test-key", "timeout_seconds": 5}}


def agent_returning(output=None, side_effect=None):
    agent = Mock()
    agent.run = AsyncMock(return_value=Mock(output=output), side_effect=side_effect)
    return agent


class TestAgentJudge:
    """Test the judge wrapper around create_agent."""

    def test_timeout_from_config(self, configs):
        assert AgentJudge(configs).timeout == 5.0

    def test_default_timeout(self):
        assert AgentJudge({"anthropic": {"api_key": "k"}}).timeout == DEFAULT_TIMEOUT_SECONDS

    @pytest.mark.asyncio
    async def test_missing_key_is_unavailable(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        judge = AgentJudge({"anthropic": {"api_key": ""}})

        assert not judge.is_configured
        with pytest.raises(JudgeUnavailableError):
            await judge("system", "user")

    @pytest.mark.asyncio
    async def test_returns_stripped_output(self, configs):
        agent = agent_returning(output="  A fine response.\n")
        with patch("evalent.tools.scoring.judge.create_agent", return_value=agent) as mock_create:
            text = await AgentJudge(configs)("Be an assessor.", "Evaluate this.", max_tokens=300)

        assert text == "A fine response."
        agent.run.assert_awaited_once_with("Evaluate this.")
        kwargs = mock_create.call_args.kwargs
        assert kwargs["system_prompt"] == "Be an assessor."
        assert kwargs["settings_dict"] == {"max_tokens": 300}
        assert kwargs["api_key"] == "test-key"

    @pytest.mark.asyncio
    async def test_failure_becomes_judge_error(self, configs):
        agent = agent_returning(side_effect=RuntimeError("529 overloaded"))
        with patch("evalent.tools.scoring.judge.create_agent", return_value=agent):
            with pytest.raises(JudgeError, match="529 overloaded"):
                await AgentJudge(configs)("system", "user")

    @pytest.mark.asyncio
    async def test_timeout_becomes_judge_error(self, configs):
        async def slow_run(prompt):
            await asyncio.sleep(1)

        agent = Mock()
        agent.run = slow_run
        with patch("evalent.tools.scoring.judge.create_agent", return_value=agent):
            with pytest.raises(JudgeError, match="timed out"):
                await AgentJudge(configs, timeout=0.01)("system", "user")
