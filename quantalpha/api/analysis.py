# =============================================================================
# Analysis API — Run the Panel, Observe State, Configure Seats
# =============================================================================
#
# Endpoints:
#   POST /analysis        — run the full pipeline for a symbol
#   GET  /analysis/state  — current WorkflowState snapshot (poll during a run)
#   POST /analysis/reset  — back to idle, keeping seat configs and keys
#   GET  /agents          — all seat configurations
#   PUT  /agents/{role}   — update one seat (idle only)
#
# This module is thin by design: request validation, error mapping and
# response shaping. The orchestrator does the work.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException

from quantalpha.agents.orchestrator import WorkflowOrchestrator
from quantalpha.agents.roles import DEFAULT_MODEL_NAMES, AgentRole
from quantalpha.api.deps import get_orchestrator
from quantalpha.errors import WorkflowBusyError
from quantalpha.models.requests import AgentConfigUpdate, AnalyzeRequest
from quantalpha.models.responses import AgentConfigResponse, WorkflowStateResponse
from quantalpha.services.llm import ApiKeys

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analysis"])


# ---------------------------------------------------------------------------
# POST /analysis — Run the panel
# ---------------------------------------------------------------------------


@router.post(
    "/analysis",
    response_model=WorkflowStateResponse,
    summary="Run the ten-seat panel for a stock symbol",
    description=(
        "Fetches a real-time quote, runs the four panel tiers in order, "
        "validates the general manager's price ranges against the quote, "
        "and returns the final workflow state. Failures end in status "
        "'error' with a message; earlier tiers' outputs are kept."
    ),
)
async def run_analysis(
    request: AnalyzeRequest,
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
) -> WorkflowStateResponse:
    keys = None
    if request.api_keys is not None:
        keys = ApiKeys(**request.api_keys.model_dump())

    logger.info("Analysis request: symbol=%s", request.symbol)

    try:
        state = await orchestrator.run(request.symbol, keys)
    except WorkflowBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    return WorkflowStateResponse.from_state(state)


# ---------------------------------------------------------------------------
# GET /analysis/state — Observe progress
# ---------------------------------------------------------------------------


@router.get(
    "/analysis/state",
    response_model=WorkflowStateResponse,
    summary="Current workflow state",
)
async def get_state(
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
) -> WorkflowStateResponse:
    return WorkflowStateResponse.from_state(orchestrator.state)


# ---------------------------------------------------------------------------
# POST /analysis/reset — Back to idle
# ---------------------------------------------------------------------------


@router.post(
    "/analysis/reset",
    response_model=WorkflowStateResponse,
    summary="Reset the workflow, keeping seat configurations",
)
async def reset_analysis(
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
) -> WorkflowStateResponse:
    try:
        state = orchestrator.reset()
    except WorkflowBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return WorkflowStateResponse.from_state(state)


# ---------------------------------------------------------------------------
# Seat configuration
# ---------------------------------------------------------------------------


@router.get(
    "/agents",
    response_model=list[AgentConfigResponse],
    summary="List all seat configurations",
)
async def list_agents(
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
) -> list[AgentConfigResponse]:
    return [
        AgentConfigResponse.from_config(config)
        for config in orchestrator.state.agent_configs.values()
    ]


@router.put(
    "/agents/{role}",
    response_model=AgentConfigResponse,
    summary="Update one seat's model or temperature",
)
async def update_agent(
    role: str,
    update: AgentConfigUpdate,
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
) -> AgentConfigResponse:
    try:
        agent_role = AgentRole(role)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=f"Unknown role '{role}'") from e

    current = orchestrator.state.agent_configs[agent_role]
    changes = update.model_dump(exclude_none=True)

    # Switching provider without naming a model → provider's default model
    if "model_provider" in changes and "model_name" not in changes:
        if changes["model_provider"] is not current.model_provider:
            changes["model_name"] = DEFAULT_MODEL_NAMES[changes["model_provider"]]

    try:
        state = orchestrator.update_agent_config(
            agent_role, replace(current, **changes),
        )
    except WorkflowBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    logger.info("Updated seat %s: %s", agent_role.value, changes)
    return AgentConfigResponse.from_config(state.agent_configs[agent_role])
