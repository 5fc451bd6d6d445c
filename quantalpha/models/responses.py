# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# These models define the shape of data coming OUT of the API.
#
# DESIGN DECISION: Separate response models from the domain dataclasses.
# WorkflowState carries the run's API keys; response models never expose
# them.
# =============================================================================

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from quantalpha.agents.orchestrator import WorkflowState
from quantalpha.agents.roles import AgentConfig


class HealthResponse(BaseModel):
    """Response for GET /health — confirms the API is running."""

    status: str = "ok"
    version: str
    service: str


class AgentConfigResponse(BaseModel):
    """One seat's configuration."""

    role: str
    title: str
    description: str
    model_provider: str
    model_name: str
    temperature: float
    icon: str
    color: str

    model_config = ConfigDict(protected_namespaces=())

    @classmethod
    def from_config(cls, config: AgentConfig) -> AgentConfigResponse:
        return cls(
            role=config.role.value,
            title=config.title,
            description=config.description,
            model_provider=config.model_provider.value,
            model_name=config.model_name,
            temperature=config.temperature,
            icon=config.icon,
            color=config.color,
        )


class StockContextResponse(BaseModel):
    """Numeric market snapshot used for interval validation."""

    current_price: float
    daily_amplitude_pct: float
    volume: float
    volatility_20d_pct: float


class WorkflowStateResponse(BaseModel):
    """
    Snapshot of the workflow for the presentation layer.

    `outputs` is keyed by role value (e.g. "macro", "gm").
    """

    status: str
    current_step: int = Field(ge=0, le=5)
    stock_symbol: str
    stock_data_context: str
    stock_context: StockContextResponse | None = None
    outputs: dict[str, str]
    agent_configs: dict[str, AgentConfigResponse]
    error: str | None = None

    @classmethod
    def from_state(cls, state: WorkflowState) -> WorkflowStateResponse:
        ctx = state.stock_context
        return cls(
            status=state.status.value,
            current_step=state.current_step,
            stock_symbol=state.stock_symbol,
            stock_data_context=state.stock_data_context,
            stock_context=(
                StockContextResponse(
                    current_price=ctx.current_price,
                    daily_amplitude_pct=ctx.daily_amplitude_pct,
                    volume=ctx.volume,
                    volatility_20d_pct=ctx.volatility_20d_pct,
                )
                if ctx is not None else None
            ),
            outputs={role.value: text for role, text in state.outputs.items()},
            agent_configs={
                role.value: AgentConfigResponse.from_config(config)
                for role, config in state.agent_configs.items()
            },
            error=state.error,
        )
