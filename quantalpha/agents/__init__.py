# =============================================================================
# Agents Package — Staged Panel Orchestration
# =============================================================================
#   - roles.py: the ten seats, their tiers, providers and default configs
#   - prompts.py: role-specific system prompts + prior-output threading
#   - stages.py: concurrent, all-or-nothing execution of one tier
#   - orchestrator.py: LangGraph pipeline and the observable WorkflowState
#
# Pipeline: fetch data → analysts → managers → risk → GM → validate intervals
# =============================================================================
