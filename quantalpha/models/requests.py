# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# These models define the shape of data coming INTO the API.
# FastAPI uses them for request validation (automatic 422 errors),
# OpenAPI docs, and editor type hints.
#
# DESIGN DECISION: Symbol format is NOT validated here.
# An invalid symbol is a workflow outcome (status "error" with a
# user-facing message), not a malformed request.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field

from quantalpha.agents.roles import ModelProvider


class ApiKeysPayload(BaseModel):
    """Optional per-request API keys. Missing keys fall back to settings."""

    gemini: str | None = Field(default=None, description="Gemini API key")
    deepseek: str | None = Field(default=None, description="DeepSeek API key")
    anthropic: str | None = Field(default=None, description="Anthropic API key")
    juhe: str | None = Field(default=None, description="Juhe market-data key")


class AnalyzeRequest(BaseModel):
    """
    Request body for POST /analysis — run the panel for one symbol.

    Example:
        {"symbol": "600519", "api_keys": {"deepseek": "sk-..."}}
    """

    symbol: str = Field(
        ...,
        min_length=1,
        max_length=16,
        description="A-share code, e.g. 600519, sh600519, sz000001",
        examples=["600519"],
    )
    api_keys: ApiKeysPayload | None = Field(
        default=None,
        description="Per-request API keys; omitted keys use server settings",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"symbol": "600519"},
                {"symbol": "sz000001", "api_keys": {"juhe": "your-key"}},
            ]
        }
    )


class AgentConfigUpdate(BaseModel):
    """
    Request body for PUT /agents/{role} — partial seat configuration update.

    Omitted fields keep their current values. Switching provider without a
    model name selects that provider's default model.
    """

    model_provider: ModelProvider | None = None
    model_name: str | None = Field(default=None, min_length=1, max_length=100)
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)

    model_config = ConfigDict(protected_namespaces=())
