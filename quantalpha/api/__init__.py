# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - analysis.py: run the panel, observe/reset state, configure seats
#   - deps.py: process-wide orchestrator dependency
# =============================================================================
