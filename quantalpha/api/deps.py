# =============================================================================
# API Dependencies — Shared Orchestrator
# =============================================================================
#
# DESIGN DECISION: One WorkflowOrchestrator per process.
# The orchestrator owns a single session and runs one pipeline at a time;
# concurrent start requests get HTTP 409 instead of a second run.
#
# Testable via dependency_overrides:
#   app.dependency_overrides[get_orchestrator] = lambda: fake_orchestrator
# =============================================================================

from __future__ import annotations

from functools import lru_cache

from quantalpha.agents.orchestrator import WorkflowOrchestrator


@lru_cache
def get_orchestrator() -> WorkflowOrchestrator:
    """Create and cache the process-wide orchestrator."""
    return WorkflowOrchestrator()
