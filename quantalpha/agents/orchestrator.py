# =============================================================================
# Workflow Orchestrator — LangGraph Pipeline + Session State Owner
# =============================================================================
#
# Drives one run of the ten-seat panel for a stock symbol and owns the
# WorkflowState the presentation layer observes.
#
# GRAPH TOPOLOGY:
#   START ──▶ fetch_data ──▶ analysts ──▶ managers ──▶ risk ──▶ gm
#                                                               │
#                                      END ◀── validate_intervals
#
# STATE MACHINE:
#   idle ──▶ fetching_data ──▶ running (step 1..4) ──▶ completed (step 5)
#                 │                    │
#                 └──────▶ error ◀─────┘        reset() ──▶ idle
#
# DESIGN DECISION: Linear graph, errors as exceptions.
# A missing quote or a failed stage raises out of the graph; the
# orchestrator turns it into the `error` status. Outputs merged by stages
# that already completed stay in the state for display.
#
# DESIGN DECISION: Stream node updates (stream_mode="updates").
# Each node's partial update is applied to the WorkflowState as soon as
# the node finishes, so observers see step-by-step progress.
#
# DESIGN DECISION: Outputs use a merge reducer.
# Each stage node receives a read-only snapshot of cumulative outputs and
# returns only its own seats' texts; LangGraph merges them by role key.
#
# DESIGN DECISION: validate_intervals never fails the run.
# Interval post-processing is best-effort: any failure is logged and the
# original GM text is kept.
# =============================================================================

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Annotated

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from quantalpha.agents.roles import (
    DEFAULT_AGENTS,
    TIER_ROLES,
    AgentConfig,
    AgentRole,
    Tier,
)
from quantalpha.agents.stages import run_stage
from quantalpha.config import Settings, get_settings
from quantalpha.errors import (
    DataUnavailableError,
    InputValidationError,
    IntervalProcessingError,
    StageExecutionError,
    WorkflowBusyError,
    WorkflowError,
)
from quantalpha.services.interval_report import generate_interval_report
from quantalpha.services.interval_validator import validate_intervals
from quantalpha.services.intervals import extract_intervals
from quantalpha.services.llm import ApiKeys
from quantalpha.services.market_data import Quote, fetch_quote, format_prompt_context
from quantalpha.services.stock_context import StockContext, build_stock_context
from quantalpha.services.symbols import validate_symbol_format

logger = logging.getLogger(__name__)

REPORT_DELIMITER = "\n\n---\n\n"

QuoteFetcher = Callable[[str, str | None], Awaitable[Quote | None]]
StageRunner = Callable[
    [
        Tier,
        str,
        Mapping[AgentRole, str],
        Mapping[AgentRole, AgentConfig],
        ApiKeys | None,
        str,
    ],
    Awaitable[Mapping[AgentRole, str]],
]


# ---------------------------------------------------------------------------
# Workflow State (observable by the presentation layer)
# ---------------------------------------------------------------------------


class WorkflowStatus(str, enum.Enum):
    IDLE = "idle"
    FETCHING_DATA = "fetching_data"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class WorkflowState:
    """
    Immutable snapshot of one session.

    The orchestrator replaces the snapshot on every mutation, so a
    snapshot handed to an observer never changes underneath it.
    """

    status: WorkflowStatus = WorkflowStatus.IDLE
    current_step: int = 0
    stock_symbol: str = ""
    stock_data_context: str = ""
    stock_context: StockContext | None = None
    outputs: Mapping[AgentRole, str] = field(
        default_factory=lambda: _frozen({}),
    )
    agent_configs: Mapping[AgentRole, AgentConfig] = field(
        default_factory=lambda: _frozen(DEFAULT_AGENTS),
    )
    api_keys: ApiKeys = field(default_factory=ApiKeys)
    error: str | None = None


# ---------------------------------------------------------------------------
# Pipeline State Schema
# ---------------------------------------------------------------------------


def merge_outputs(
    left: Mapping[AgentRole, str] | None,
    right: Mapping[AgentRole, str] | None,
) -> dict[AgentRole, str]:
    """Reducer: merge a stage's texts into the cumulative outputs by role."""
    return {**(left or {}), **(right or {})}


class PipelineState(TypedDict, total=False):
    """
    State that flows through the LangGraph graph.

    Uses total=False so nodes only need to return the keys they update.
    """

    # --- Input (set by the orchestrator) ---
    symbol: str
    api_keys: ApiKeys
    agent_configs: Mapping[AgentRole, AgentConfig]

    # --- Collaborator injection ---
    # NOTE: Callables and Settings are not JSON-serialisable. Safe as long
    # as no checkpointer is configured on the graph (current: none).
    fetch_quote: QuoteFetcher
    stage_runner: StageRunner
    settings: Settings

    # --- Set by nodes ---
    stock_data_context: str
    stock_context: StockContext
    outputs: Annotated[dict[AgentRole, str], merge_outputs]


# ---------------------------------------------------------------------------
# Node Functions
# ---------------------------------------------------------------------------


async def fetch_data_node(state: PipelineState) -> dict:
    """Fetch the quote and project it into prompt text and a StockContext."""
    symbol = state["symbol"]
    quote = await state["fetch_quote"](
        symbol, state["api_keys"].market_data_key(),
    )

    if quote is None:
        raise DataUnavailableError(
            f"无法获取股票 {symbol.upper()} 的实时数据。请检查：\n"
            "1. 股票代码是否正确（如: 600519, 000001, 300750）\n"
            "2. 是否为沪深股市代码（不支持港股/美股）\n"
            "3. API服务是否正常"
        )

    stock_context = build_stock_context(
        quote, state["settings"].volatility_proxy_factor,
    )
    logger.info(
        "Market data ready for %s (%s): %s", quote.name, quote.gid,
        stock_context,
    )
    return {
        "stock_data_context": format_prompt_context(quote),
        "stock_context": stock_context,
    }


def _stage_node(tier: Tier) -> Callable[[PipelineState], Awaitable[dict]]:
    """Build the graph node that runs one tier through the stage runner."""

    async def node(state: PipelineState) -> dict:
        snapshot = _frozen(state.get("outputs") or {})
        try:
            results = await state["stage_runner"](
                tier,
                state["symbol"],
                snapshot,
                state["agent_configs"],
                state["api_keys"],
                state["stock_data_context"],
            )
            missing = [r.value for r in TIER_ROLES[tier] if r not in results]
            if missing:
                raise RuntimeError(
                    f"Stage {tier.name} returned no output for: "
                    f"{', '.join(missing)}"
                )
        except Exception as e:
            logger.error("Stage %d (%s) failed: %s", tier.value, tier.name, e)
            raise StageExecutionError(tier, e) from e

        # A stage only ever writes its own seats
        return {"outputs": {role: results[role] for role in TIER_ROLES[tier]}}

    node.__name__ = f"{tier.name.lower()}_node"
    return node


async def validate_intervals_node(state: PipelineState) -> dict:
    """Append an interval validation report to the GM text when needed."""
    gm_text = state["outputs"][AgentRole.GM]
    final_text = annotate_with_interval_report(
        gm_text, state.get("stock_context"), state["settings"],
    )
    return {"outputs": {AgentRole.GM: final_text}}


# ---------------------------------------------------------------------------
# Graph Assembly
# ---------------------------------------------------------------------------
# Compiled once at module level and reused across runs.
# ---------------------------------------------------------------------------

_STAGE_NODES: dict[Tier, str] = {
    Tier.ANALYSTS: "analysts",
    Tier.MANAGERS: "managers",
    Tier.RISK: "risk",
    Tier.GM: "gm",
}

_builder = StateGraph(PipelineState)
_builder.add_node("fetch_data", fetch_data_node)
for _tier, _name in _STAGE_NODES.items():
    _builder.add_node(_name, _stage_node(_tier))
_builder.add_node("validate_intervals", validate_intervals_node)

_builder.add_edge(START, "fetch_data")
_builder.add_edge("fetch_data", "analysts")
_builder.add_edge("analysts", "managers")
_builder.add_edge("managers", "risk")
_builder.add_edge("risk", "gm")
_builder.add_edge("gm", "validate_intervals")
_builder.add_edge("validate_intervals", END)

pipeline = _builder.compile()

# current_step once a node's update has been applied. The GM stage keeps
# step 4 until post-processing completes the run.
_STEP_AFTER_NODE: dict[str, int] = {
    "fetch_data": 1,
    "analysts": 2,
    "managers": 3,
    "risk": 4,
    "gm": 4,
    "validate_intervals": 5,
}


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class WorkflowOrchestrator:
    """
    Owns one WorkflowState and runs at most one pipeline at a time.

    Collaborators are injected so tests (and alternative data sources) can
    replace the quote fetcher and stage runner.
    """

    def __init__(
        self,
        fetch_quote: QuoteFetcher = fetch_quote,
        stage_runner: StageRunner = run_stage,
        settings: Settings | None = None,
    ) -> None:
        self._fetch_quote = fetch_quote
        self._stage_runner = stage_runner
        self._settings = settings or get_settings()
        self._state = WorkflowState()
        self._listeners: list[Callable[[WorkflowState], None]] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    def add_listener(self, callback: Callable[[WorkflowState], None]) -> None:
        """Register a callback that receives every new state snapshot."""
        self._listeners.append(callback)

    async def run(
        self,
        symbol: str,
        api_keys: ApiKeys | None = None,
    ) -> WorkflowState:
        """
        Run the full pipeline for `symbol` and return the final snapshot.

        Fatal errors never escape: they end in the `error` status with the
        message in `state.error`.

        Raises:
            WorkflowBusyError: If the workflow is not idle.
        """
        if self._state.status is not WorkflowStatus.IDLE:
            raise WorkflowBusyError(
                f"Cannot start a run while status is "
                f"'{self._state.status.value}'; reset first"
            )

        try:
            _ensure_valid_symbol(symbol)
        except InputValidationError as e:
            logger.warning("Rejected symbol '%s': %s", symbol, e)
            self._update(status=WorkflowStatus.ERROR, error=str(e))
            return self._state

        keys = api_keys or self._state.api_keys
        # Captured for the whole run; configs cannot change while not idle
        configs = self._state.agent_configs

        self._update(
            status=WorkflowStatus.FETCHING_DATA,
            current_step=0,
            stock_symbol=symbol,
            outputs=_frozen({}),
            api_keys=keys,
            error=None,
        )

        pipeline_input: PipelineState = {
            "symbol": symbol,
            "api_keys": keys,
            "agent_configs": configs,
            "fetch_quote": self._fetch_quote,
            "stage_runner": self._stage_runner,
            "settings": self._settings,
            "outputs": {},
        }

        logger.info("Starting workflow for %s", symbol)

        try:
            async for chunk in pipeline.astream(
                pipeline_input, stream_mode="updates",
            ):
                for node_name, update in chunk.items():
                    self._apply_node_update(node_name, update or {})
        except WorkflowError as e:
            logger.error("Workflow for %s failed: %s", symbol, e)
            self._update(status=WorkflowStatus.ERROR, error=str(e))
        except Exception as e:
            logger.exception("Workflow for %s failed unexpectedly", symbol)
            self._update(
                status=WorkflowStatus.ERROR, error=str(e) or "发生未知错误",
            )
        else:
            logger.info("Workflow for %s completed", symbol)

        return self._state

    def reset(self) -> WorkflowState:
        """
        Return to the initial state, keeping agent configs and API keys.

        Raises:
            WorkflowBusyError: If a run is in flight.
        """
        if self._state.status in (
            WorkflowStatus.FETCHING_DATA, WorkflowStatus.RUNNING,
        ):
            raise WorkflowBusyError("Cannot reset while a run is in progress")

        self._replace_state(WorkflowState(
            agent_configs=self._state.agent_configs,
            api_keys=self._state.api_keys,
        ))
        return self._state

    def update_agent_config(
        self,
        role: AgentRole,
        config: AgentConfig,
    ) -> WorkflowState:
        """
        Replace one seat's configuration. Only allowed while idle.

        Raises:
            WorkflowBusyError: If the workflow is not idle.
            ValueError: If `config.role` does not match `role`.
        """
        if self._state.status is not WorkflowStatus.IDLE:
            raise WorkflowBusyError(
                "Agent configuration can only change while the workflow is idle"
            )
        if config.role is not role:
            raise ValueError(
                f"Config for '{config.role.value}' cannot be stored under "
                f"'{role.value}'"
            )

        self._update(agent_configs=_frozen({
            **self._state.agent_configs, role: config,
        }))
        return self._state

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------

    def _apply_node_update(self, node_name: str, update: Mapping) -> None:
        step = _STEP_AFTER_NODE.get(node_name)
        if step is None:
            return

        if node_name == "fetch_data":
            self._update(
                status=WorkflowStatus.RUNNING,
                current_step=step,
                stock_data_context=update["stock_data_context"],
                stock_context=update["stock_context"],
            )
            return

        outputs = _frozen({
            **self._state.outputs, **update.get("outputs", {}),
        })
        if node_name == "validate_intervals":
            self._update(
                status=WorkflowStatus.COMPLETED,
                current_step=step,
                outputs=outputs,
            )
        else:
            self._update(current_step=step, outputs=outputs)

    def _update(self, **changes) -> None:
        self._replace_state(replace(self._state, **changes))

    def _replace_state(self, new_state: WorkflowState) -> None:
        self._state = new_state
        logger.debug(
            "Workflow state: status=%s step=%d",
            new_state.status.value, new_state.current_step,
        )
        for callback in self._listeners:
            callback(new_state)


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _ensure_valid_symbol(symbol: str) -> None:
    validation = validate_symbol_format(symbol)
    if not validation.valid:
        raise InputValidationError(validation.message or "股票代码无效")


def annotate_with_interval_report(
    text: str,
    stock_context: StockContext | None,
    settings: Settings | None = None,
) -> str:
    """
    Validate the intervals in `text` and append a report if anything changed.

    Best-effort: any failure is logged and the original text is returned
    unmodified.
    """
    cfg = settings or get_settings()
    try:
        intervals = list(extract_intervals(text))
        if not intervals:
            return text
        if stock_context is None:
            raise IntervalProcessingError("No stock context for validation")

        outcome = validate_intervals(
            intervals,
            stock_context,
            role=AgentRole.GM,
            plausibility_multiplier=cfg.plausibility_multiplier,
            stop_loss_ratio=cfg.stop_loss_ratio,
        )
        if not outcome.has_findings:
            return text
        report = generate_interval_report(outcome)
    except Exception as e:
        logger.warning(
            "Interval validation failed, keeping original GM output: %s", e,
        )
        return text

    return f"{text}{REPORT_DELIMITER}{report}"
