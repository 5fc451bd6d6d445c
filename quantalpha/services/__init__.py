# =============================================================================
# Services Package — Business Logic
# =============================================================================
#   - llm.py: Multi-provider LLM abstraction (Gemini, DeepSeek, Anthropic)
#   - symbols.py: A-share symbol format check and exchange routing
#   - market_data.py: Juhe real-time quote client + prompt formatting
#   - stock_context.py: numeric market snapshot for validation
#   - intervals.py: numeric range extraction and keyword classification
#   - interval_validator.py: plausibility checks and clamping
#   - interval_report.py: Markdown report of validator findings
# =============================================================================
