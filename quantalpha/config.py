# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# DESIGN DECISION: Pydantic V2 `BaseSettings` for configuration.
# Values load in this priority order (highest first):
#   1. Environment variables (e.g., `DEEPSEEK_API_KEY=...`)
#   2. Values from the .env file
#   3. Default values defined below
#
# API keys supplied with a run request take precedence over the keys
# configured here (see services/llm.py::ApiKeys).
#
# USAGE:
#   from quantalpha.config import settings
#   print(settings.plausibility_multiplier)
# =============================================================================

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every setting has a default so the service starts without a .env file.
    Provider keys default to empty; a run fails at the first stage that
    needs a missing key.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "QuantAlpha Multi-Agent Stock Decision Service"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # LLM Providers
    # -------------------------------------------------------------------------
    # Gemini and DeepSeek are both reached through their OpenAI-compatible
    # endpoints, so one client implementation serves both. Anthropic uses
    # its native SDK.
    # -------------------------------------------------------------------------
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    anthropic_api_key: str = ""
    llm_max_tokens: int = 4096

    # -------------------------------------------------------------------------
    # Market Data — Juhe (聚合数据) Shanghai/Shenzhen quote API
    # -------------------------------------------------------------------------
    juhe_api_key: str = ""
    juhe_base_url: str = "http://web.juhe.cn/finance/stock/hs"
    market_data_timeout: float = 10.0

    # -------------------------------------------------------------------------
    # Interval Validation Heuristics
    # -------------------------------------------------------------------------
    # volatility_proxy_factor: volatility_20d_pct = daily_amplitude_pct × factor.
    #   No 20-day price series is available, so this is an approximation.
    # plausibility_multiplier (k): maximum plausible move per horizon, in
    #   units of the volatility proxy. Band = price × (1 ± vol/100 × k).
    # stop_loss_ratio: where a stop-loss at or above the current price is
    #   clamped to, as a fraction of the current price.
    # -------------------------------------------------------------------------
    volatility_proxy_factor: float = Field(default=1.8, gt=0)
    plausibility_multiplier: float = Field(default=3.0, gt=0)
    stop_loss_ratio: float = Field(default=0.98, gt=0, lt=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    In tests, override with FastAPI's dependency_overrides or pass a
    Settings object directly to the orchestrator.
    """
    return Settings()


# Import this directly in most cases:
#   from quantalpha.config import settings
settings = get_settings()
