# =============================================================================
# QuantAlpha — Multi-Agent Stock Decision Service
# =============================================================================
# A ten-seat panel of LLM agents produces an investment recommendation for
# an A-share symbol; the general manager's price ranges are then checked
# against a real-time quote before they are presented.
#
# Package structure:
#   quantalpha/
#   ├── agents/       → Panel roles, prompts, stage executor, LangGraph
#   │                    workflow orchestrator
#   ├── api/          → FastAPI route handlers (run, state, reset, seats)
#   ├── models/       → Pydantic V2 request/response schemas
#   └── services/     → LLM providers, market data, symbol check, interval
#                        extraction / validation / reporting
# =============================================================================
