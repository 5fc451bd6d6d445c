# =============================================================================
# Stage Executor — Concurrent Fan-Out of One Panel Tier
# =============================================================================
#
# Runs every seat of a tier concurrently and merges the results by role.
#
# DESIGN DECISION: asyncio.gather() over the seat coroutines.
# Seats within a tier are independent by contract, so completion order
# does not matter; results are keyed by role, which makes the merge
# commutative.
#
# DESIGN DECISION: All-or-nothing.
# The first failing seat fails the stage. Sibling tasks are cancelled and
# the original exception is re-raised unchanged, so no partial stage
# result ever reaches the workflow state. There is no retry.
#
# DESIGN DECISION: Prior outputs arrive as a read-only Mapping snapshot.
# Seats read it concurrently; nobody writes to it. The stage returns a new
# dict that the orchestrator merges into the next snapshot.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping

from quantalpha.agents.prompts import build_system_prompt, build_user_message
from quantalpha.agents.roles import TIER_ROLES, AgentConfig, AgentRole, Tier
from quantalpha.services.llm import ApiKeys, LLMProvider, create_agent_provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[AgentConfig, ApiKeys | None], LLMProvider]


async def run_stage(
    tier: Tier,
    symbol: str,
    prior_outputs: Mapping[AgentRole, str],
    configs: Mapping[AgentRole, AgentConfig],
    api_keys: ApiKeys | None,
    prompt_context: str,
    provider_factory: ProviderFactory = create_agent_provider,
) -> dict[AgentRole, str]:
    """
    Run every seat of `tier` concurrently.

    Args:
        tier: The pipeline tier to run.
        symbol: Stock symbol under analysis.
        prior_outputs: Read-only outputs of all earlier tiers.
        configs: Seat configurations captured at run start.
        api_keys: Request-scoped keys (settings fill in the rest).
        prompt_context: Real-time market block injected into every prompt.
        provider_factory: Resolves a seat config into an LLM provider.

    Returns:
        Mapping of role → generated text, one entry per seat in the tier.

    Raises:
        Whatever the first failing seat raised, unchanged.
    """
    roles = TIER_ROLES[tier]
    logger.info(
        "Stage %d (%s): dispatching %d seats for %s",
        tier.value, tier.name, len(roles), symbol,
    )

    tasks = [
        asyncio.create_task(
            _invoke_seat(
                role=role,
                symbol=symbol,
                prior_outputs=prior_outputs,
                config=configs[role],
                api_keys=api_keys,
                prompt_context=prompt_context,
                provider_factory=provider_factory,
            ),
            name=f"seat-{role.value}",
        )
        for role in roles
    ]

    try:
        texts = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Let cancelled siblings unwind before the error propagates
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    logger.info("Stage %d (%s) complete", tier.value, tier.name)
    return dict(zip(roles, texts, strict=True))


async def _invoke_seat(
    role: AgentRole,
    symbol: str,
    prior_outputs: Mapping[AgentRole, str],
    config: AgentConfig,
    api_keys: ApiKeys | None,
    prompt_context: str,
    provider_factory: ProviderFactory,
) -> str:
    """Resolve the seat's provider, build its prompt, and call the LLM."""
    llm = provider_factory(config, api_keys)

    response = await llm.complete(
        messages=[{
            "role": "user",
            "content": build_user_message(
                role, symbol, prompt_context, prior_outputs,
            ),
        }],
        system=build_system_prompt(role),
        temperature=config.temperature,
    )

    logger.info(
        "Seat %s complete: model=%s, tokens=%d+%d",
        role.value, response.model, response.input_tokens,
        response.output_tokens,
    )
    return response.content
