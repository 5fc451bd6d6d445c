# =============================================================================
# Panel Prompts — Role-Specific System Prompts and Context Threading
# =============================================================================
#
# Each seat gets a role-specific system prompt. The user message carries
# the symbol, the real-time market block, and every output produced by
# earlier tiers (never outputs from the same tier).
#
# DESIGN DECISION: Prior outputs are presented as labelled sections in
# tier order, so later seats can attribute each view to its author.
# =============================================================================

from __future__ import annotations

from collections.abc import Mapping

from quantalpha.agents.roles import (
    DEFAULT_AGENTS,
    TIER_ROLES,
    AgentRole,
    Tier,
    tier_of,
)

_COMMON_RULES = (
    "\n\n通用规则:\n"
    "- 严格基于提供的实时行情数据与前序报告，不得编造价格\n"
    "- 给出价格区间时使用“下限-上限元”的格式（如 12.50-13.20元）\n"
    "- 结论清晰，篇幅控制在 400 字以内\n"
    "- 使用 Markdown 小标题组织内容"
)

SYSTEM_PROMPTS: dict[AgentRole, str] = {
    AgentRole.MACRO: (
        "你是一名A股宏观分析师。评估当前宏观经济、货币政策与监管环境"
        "对该股票所在板块的影响，给出宏观面评分（0-100）。"
    ),
    AgentRole.INDUSTRY: (
        "你是一名A股行业分析师。分析该股票所处行业的景气度、竞争格局"
        "与产业链地位，给出行业面评分（0-100）。"
    ),
    AgentRole.TECHNICAL: (
        "你是一名A股技术分析师。基于实时量价数据判断趋势、关键支撑位"
        "与压力位，给出技术面评分（0-100）。"
    ),
    AgentRole.FUNDS: (
        "你是一名A股资金面分析师。评估主力资金、北向资金与成交活跃度，"
        "判断资金流向，给出资金面评分（0-100）。"
    ),
    AgentRole.FUNDAMENTAL: (
        "你是一名A股基本面分析师。评估公司盈利能力、财务质量与估值水平，"
        "给出基本面评分（0-100）。"
    ),
    AgentRole.MANAGER_FUNDAMENTAL: (
        "你是基本面投资总监。整合五位分析师的报告，侧重宏观、行业与"
        "基本面观点，形成中长期投资观点与建议仓位。"
    ),
    AgentRole.MANAGER_MOMENTUM: (
        "你是动量投资总监。整合五位分析师的报告，侧重技术面与资金面观点，"
        "形成短中期交易策略与进出场区间。"
    ),
    AgentRole.RISK_SYSTEM: (
        "你是系统性风险总监。审阅分析师与投资总监的结论，识别市场、政策与"
        "流动性层面的系统性风险，给出风险等级（低/中/高）。"
    ),
    AgentRole.RISK_PORTFOLIO: (
        "你是组合风险总监。审阅分析师与投资总监的结论，给出仓位上限、"
        "止损价区间与最大回撤控制方案。"
    ),
    AgentRole.GM: (
        "你是投资决策委员会总经理。综合全部报告做出最终决策，必须包含:\n"
        "1. 操作建议（买入/增持/持有/减持/卖出）\n"
        "2. 目标价区间（如 目标价 12.50-13.20元）\n"
        "3. 止损价区间（如 止损价 11.00-11.20元）\n"
        "4. 关键支撑位与压力位区间\n"
        "5. 建议仓位与持有周期"
    ),
}


def build_system_prompt(role: AgentRole) -> str:
    """Return the full system prompt for a seat."""
    return SYSTEM_PROMPTS[role] + _COMMON_RULES


def build_user_message(
    role: AgentRole,
    symbol: str,
    prompt_context: str,
    prior_outputs: Mapping[AgentRole, str],
) -> str:
    """
    Build the user message for one seat.

    Only outputs from tiers strictly before the seat's own tier are
    included, in tier order.
    """
    sections = [
        f"分析标的: {symbol.upper()}",
        prompt_context or "（暂无实时行情数据）",
    ]

    prior = format_prior_outputs(role, prior_outputs)
    if prior:
        sections.append(f"前序报告:\n\n{prior}")

    sections.append(f"请以{DEFAULT_AGENTS[role].title}的身份完成你的分析。")
    return "\n\n".join(sections)


def format_prior_outputs(
    role: AgentRole,
    prior_outputs: Mapping[AgentRole, str],
) -> str:
    """
    Format outputs from earlier tiers as labelled sections.

    Example output:
        【宏观分析师】
        宏观环境偏暖...

        ---

        【行业分析师】
        行业景气度回升...
    """
    own_tier = tier_of(role)
    sections = []
    for tier in Tier:
        if tier >= own_tier:
            break
        for prior_role in TIER_ROLES[tier]:
            text = prior_outputs.get(prior_role)
            if text:
                title = DEFAULT_AGENTS[prior_role].title
                sections.append(f"【{title}】\n{text}")
    return "\n\n---\n\n".join(sections)
