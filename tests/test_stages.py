# =============================================================================
# Unit Tests — Stage Executor and Prompt Threading
# =============================================================================
#
# LLM providers are replaced by in-process fakes through the
# provider_factory hook, so no API keys or network are needed.
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from quantalpha.agents.prompts import (
    build_system_prompt,
    build_user_message,
    format_prior_outputs,
)
from quantalpha.agents.roles import (
    DEFAULT_AGENTS,
    TIER_ROLES,
    AgentRole,
    Tier,
)
from quantalpha.agents.stages import run_stage
from quantalpha.services.llm import LLMResponse


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _response(content: str) -> LLMResponse:
    return LLMResponse(content=content, model="fake", input_tokens=10, output_tokens=5)


class FakeProvider:
    """Records calls; optionally sleeps or raises per role."""

    def __init__(self, role, delays=None, failures=None, calls=None):
        self.role = role
        self.delays = delays or {}
        self.failures = failures or {}
        self.calls = calls if calls is not None else []

    async def complete(self, messages, system=None, temperature=None, max_tokens=None):
        self.calls.append({
            "role": self.role,
            "messages": messages,
            "system": system,
            "temperature": temperature,
        })
        await asyncio.sleep(self.delays.get(self.role, 0))
        if self.role in self.failures:
            raise self.failures[self.role]
        return _response(f"{self.role.value} says hi")


def _factory(**kwargs):
    calls = []

    def factory(config, api_keys):
        return FakeProvider(config.role, calls=calls, **kwargs)

    return factory, calls


def _stage(tier, factory, prior=None):
    return _run(run_stage(
        tier,
        "600519",
        prior or {},
        DEFAULT_AGENTS,
        None,
        "实时行情",
        provider_factory=factory,
    ))


# ---------------------------------------------------------------------------
# Test: run_stage
# ---------------------------------------------------------------------------


class TestRunStage:
    def test_returns_one_output_per_seat(self):
        factory, calls = _factory()
        results = _stage(Tier.ANALYSTS, factory)
        assert set(results) == set(TIER_ROLES[Tier.ANALYSTS])
        assert results[AgentRole.MACRO] == "macro says hi"
        assert len(calls) == 5

    def test_result_independent_of_completion_order(self):
        roles = TIER_ROLES[Tier.ANALYSTS]
        forward, _ = _factory(delays={r: 0.001 * i for i, r in enumerate(roles)})
        backward, _ = _factory(
            delays={r: 0.001 * (len(roles) - i) for i, r in enumerate(roles)},
        )
        assert _stage(Tier.ANALYSTS, forward) == _stage(Tier.ANALYSTS, backward)

    def test_seat_failure_propagates_original_exception(self):
        boom = RuntimeError("DeepSeek API error: 401")
        factory, _ = _factory(failures={AgentRole.RISK_SYSTEM: boom})
        with pytest.raises(RuntimeError) as exc_info:
            _stage(Tier.RISK, factory)
        assert exc_info.value is boom

    def test_siblings_cancelled_on_failure(self):
        finished = []

        class SlowProvider:
            def __init__(self, role):
                self.role = role

            async def complete(self, messages, system=None, temperature=None,
                               max_tokens=None):
                if self.role is AgentRole.MACRO:
                    raise ValueError("bad seat")
                await asyncio.sleep(5)
                finished.append(self.role)
                return _response("late")

        with pytest.raises(ValueError):
            _stage(Tier.ANALYSTS, lambda config, keys: SlowProvider(config.role))
        assert finished == []

    def test_factory_error_fails_stage(self):
        def factory(config, api_keys):
            raise ValueError("No API key configured")

        with pytest.raises(ValueError, match="No API key"):
            _stage(Tier.GM, factory)

    def test_seat_temperature_and_system_prompt_forwarded(self):
        factory, calls = _factory()
        _stage(Tier.GM, factory)
        (call,) = calls
        assert call["temperature"] == DEFAULT_AGENTS[AgentRole.GM].temperature
        assert call["system"] == build_system_prompt(AgentRole.GM)
        assert call["messages"][0]["role"] == "user"

    def test_prior_outputs_reach_the_prompt(self):
        factory, calls = _factory()
        prior = {AgentRole.MACRO: "宏观偏暖", AgentRole.TECHNICAL: "放量突破"}
        _stage(Tier.MANAGERS, factory, prior=prior)
        for call in calls:
            content = call["messages"][0]["content"]
            assert "宏观偏暖" in content
            assert "放量突破" in content
            assert "实时行情" in content

    def test_works_with_async_mock_provider(self):
        provider = AsyncMock()
        provider.complete.return_value = _response("决策: 持有")
        results = _stage(Tier.GM, lambda config, keys: provider)
        assert results == {AgentRole.GM: "决策: 持有"}
        provider.complete.assert_awaited_once()


# ---------------------------------------------------------------------------
# Test: Prompt Building
# ---------------------------------------------------------------------------


class TestPrompts:
    def test_every_role_has_a_system_prompt(self):
        for role in AgentRole:
            assert build_system_prompt(role)

    def test_gm_prompt_asks_for_intervals(self):
        prompt = build_system_prompt(AgentRole.GM)
        assert "目标价" in prompt
        assert "止损价" in prompt

    def test_same_tier_outputs_excluded(self):
        prior = {AgentRole.MACRO: "宏观偏暖", AgentRole.INDUSTRY: "行业景气"}
        assert format_prior_outputs(AgentRole.TECHNICAL, prior) == ""

    def test_prior_sections_in_tier_order(self):
        prior = {
            AgentRole.MANAGER_MOMENTUM: "动量观点",
            AgentRole.MACRO: "宏观观点",
        }
        text = format_prior_outputs(AgentRole.RISK_SYSTEM, prior)
        assert text.index("宏观观点") < text.index("动量观点")
        assert f"【{DEFAULT_AGENTS[AgentRole.MACRO].title}】" in text

    def test_user_message_uppercases_symbol(self):
        message = build_user_message(AgentRole.MACRO, "sh600519", "", {})
        assert "SH600519" in message
        assert "暂无实时行情数据" in message
        assert "前序报告" not in message
