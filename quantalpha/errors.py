# =============================================================================
# Workflow Errors
# =============================================================================
#
# Fatal to a run (surfaced as WorkflowState.error):
#   InputValidationError  — symbol failed the format check, nothing ran
#   DataUnavailableError  — no quote from the market-data collaborator
#   StageExecutionError   — an agent call failed, its stage was discarded
#
# Internal only:
#   IntervalProcessingError — extraction/validation failed; logged, the
#                             GM text is kept unmodified
#
# Raised to the caller:
#   WorkflowBusyError     — operation not allowed in the current status
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quantalpha.agents.roles import Tier


class WorkflowError(Exception):
    """Base class for errors that end a run."""


class InputValidationError(WorkflowError):
    """The stock symbol failed the format/market-prefix check."""


class DataUnavailableError(WorkflowError):
    """The market-data collaborator returned no quote."""


class StageExecutionError(WorkflowError):
    """
    An agent call inside a stage failed.

    The message is the underlying error's message, verbatim. The original
    exception is kept on `.original` (and chained as `__cause__` by the
    raiser) so callers can inspect its identity.
    """

    def __init__(self, tier: Tier, original: BaseException) -> None:
        super().__init__(str(original) or type(original).__name__)
        self.tier = tier
        self.original = original


class IntervalProcessingError(Exception):
    """Interval extraction or validation could not be completed."""


class WorkflowBusyError(Exception):
    """The requested operation is not allowed in the current workflow status."""
