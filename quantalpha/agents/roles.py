# =============================================================================
# Agent Panel — Roles, Tiers, Providers, Default Configuration
# =============================================================================
#
# Ten seats in four tiers. Tiers run in order; seats inside a tier run
# concurrently and never read each other's output.
#
#   Tier 1 ANALYSTS  — macro, industry, technical, funds, fundamental
#   Tier 2 MANAGERS  — fundamental manager, momentum manager
#   Tier 3 RISK      — systemic risk, portfolio risk
#   Tier 4 GM        — general manager (final decision)
#
# DESIGN DECISION: ModelProvider is a closed enum resolved into a client
# once per seat (services/llm.py::create_agent_provider). The default
# mapping sends macro, industry and funds seats to Gemini and every other
# seat to DeepSeek.
# =============================================================================

from __future__ import annotations

import enum
from dataclasses import dataclass


class AgentRole(str, enum.Enum):
    """Identity of one panel seat. Doubles as its output slot key."""

    MACRO = "macro"
    INDUSTRY = "industry"
    TECHNICAL = "technical"
    FUNDS = "funds"
    FUNDAMENTAL = "fundamental"
    MANAGER_FUNDAMENTAL = "manager_fundamental"
    MANAGER_MOMENTUM = "manager_momentum"
    RISK_SYSTEM = "risk_system"
    RISK_PORTFOLIO = "risk_portfolio"
    GM = "gm"


class Tier(enum.IntEnum):
    """Pipeline stage. The integer value is the step number."""

    ANALYSTS = 1
    MANAGERS = 2
    RISK = 3
    GM = 4


TIER_ROLES: dict[Tier, tuple[AgentRole, ...]] = {
    Tier.ANALYSTS: (
        AgentRole.MACRO,
        AgentRole.INDUSTRY,
        AgentRole.TECHNICAL,
        AgentRole.FUNDS,
        AgentRole.FUNDAMENTAL,
    ),
    Tier.MANAGERS: (
        AgentRole.MANAGER_FUNDAMENTAL,
        AgentRole.MANAGER_MOMENTUM,
    ),
    Tier.RISK: (
        AgentRole.RISK_SYSTEM,
        AgentRole.RISK_PORTFOLIO,
    ),
    Tier.GM: (AgentRole.GM,),
}


def tier_of(role: AgentRole) -> Tier:
    """Return the tier a role sits in."""
    for tier, roles in TIER_ROLES.items():
        if role in roles:
            return tier
    raise ValueError(f"Role {role!r} is not seated in any tier")


class ModelProvider(str, enum.Enum):
    """Backing LLM provider for a seat."""

    GEMINI = "gemini"
    DEEPSEEK = "deepseek"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class AgentConfig:
    """
    Per-seat configuration.

    Frozen: a config is replaced, never edited in place. Runs capture the
    mapping of configs at start, so edits only affect later runs.
    """

    role: AgentRole
    title: str
    description: str
    model_provider: ModelProvider
    model_name: str
    temperature: float
    icon: str = "Bot"
    color: str = "slate"

    def __post_init__(self) -> None:
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(
                f"temperature must be within [0.0, 1.0], got {self.temperature}"
            )


# Default model names per provider. Used when a config switches provider
# without naming a model.
DEFAULT_MODEL_NAMES: dict[ModelProvider, str] = {
    ModelProvider.GEMINI: "gemini-2.5-flash",
    ModelProvider.DEEPSEEK: "deepseek-chat",
    ModelProvider.ANTHROPIC: "claude-sonnet-4-6",
}


def _seat(
    role: AgentRole,
    title: str,
    description: str,
    provider: ModelProvider,
    temperature: float,
    icon: str,
    color: str,
) -> AgentConfig:
    return AgentConfig(
        role=role,
        title=title,
        description=description,
        model_provider=provider,
        model_name=DEFAULT_MODEL_NAMES[provider],
        temperature=temperature,
        icon=icon,
        color=color,
    )


DEFAULT_AGENTS: dict[AgentRole, AgentConfig] = {
    config.role: config
    for config in (
        _seat(AgentRole.MACRO, "宏观分析师", "宏观经济与政策环境",
              ModelProvider.GEMINI, 0.3, "Globe", "slate"),
        _seat(AgentRole.INDUSTRY, "行业分析师", "行业景气度与竞争格局",
              ModelProvider.GEMINI, 0.3, "Factory", "cyan"),
        _seat(AgentRole.TECHNICAL, "技术分析师", "量价形态与趋势",
              ModelProvider.DEEPSEEK, 0.2, "LineChart", "violet"),
        _seat(AgentRole.FUNDS, "资金分析师", "主力资金与北向资金流向",
              ModelProvider.GEMINI, 0.3, "Wallet", "emerald"),
        _seat(AgentRole.FUNDAMENTAL, "基本面分析师", "财务质量与估值",
              ModelProvider.DEEPSEEK, 0.2, "FileText", "blue"),
        _seat(AgentRole.MANAGER_FUNDAMENTAL, "基本面投资总监", "整合宏观、行业与财务观点",
              ModelProvider.DEEPSEEK, 0.4, "Briefcase", "indigo"),
        _seat(AgentRole.MANAGER_MOMENTUM, "动量投资总监", "整合技术面与资金面观点",
              ModelProvider.DEEPSEEK, 0.5, "TrendingUp", "fuchsia"),
        _seat(AgentRole.RISK_SYSTEM, "系统性风险总监", "市场与政策系统性风险",
              ModelProvider.DEEPSEEK, 0.2, "ShieldAlert", "orange"),
        _seat(AgentRole.RISK_PORTFOLIO, "组合风险总监", "仓位、止损与回撤控制",
              ModelProvider.DEEPSEEK, 0.2, "ShieldCheck", "amber"),
        _seat(AgentRole.GM, "总经理", "最终投资决策",
              ModelProvider.DEEPSEEK, 0.3, "Gavel", "red"),
    )
}
