"""Pipeline state machine for webhook deliveries.

This module tracks a delivery through pipeline stages:
- received → verified → classified → dispatching → completed
- classified may end in ignored or duplicate_skipped
- any non-terminal stage may end in failed
"""

from src.changelog.state.machine import (
    InvalidTransitionError,
    PipelineStateMachine,
)
from src.changelog.state.models import (
    VALID_TRANSITIONS,
    PipelineRun,
    PipelineStage,
    StateTransition,
    is_terminal_stage,
    is_valid_transition,
)

__all__ = [
    # Models
    "PipelineRun",
    "PipelineStage",
    "StateTransition",
    "VALID_TRANSITIONS",
    "is_terminal_stage",
    "is_valid_transition",
    # State machine
    "InvalidTransitionError",
    "PipelineStateMachine",
]
