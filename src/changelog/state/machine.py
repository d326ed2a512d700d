"""Pipeline state machine implementation.

This module implements the PipelineStateMachine class that tracks one
webhook delivery through the pipeline stages with transition validation,
timestamp recording, and error capture.

A machine instance belongs to a single invocation. Concurrent deliveries
each get their own machine, so there is no shared mutable state here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.changelog.state.models import (
    PipelineRun,
    PipelineStage,
    StateTransition,
    is_terminal_stage,
    is_valid_transition,
)


logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted.

    Attributes:
        from_stage: The current stage.
        to_stage: The attempted target stage.
        message: Human-readable error message.
    """

    def __init__(
        self,
        from_stage: PipelineStage,
        to_stage: PipelineStage,
        message: Optional[str] = None,
    ):
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.message = message or (
            f"Invalid transition from {from_stage.value} to {to_stage.value}"
        )
        super().__init__(self.message)


class PipelineStateMachine:
    """State machine for one webhook delivery.

    The state machine enforces the following invariants:
    - Only transitions listed in VALID_TRANSITIONS are allowed
    - Every transition is recorded with a timestamp in state_history
    - Transitions to FAILED always carry an error message

    Attributes:
        run: The PipelineRun being tracked.

    Example:
        >>> machine = PipelineStateMachine(delivery_id="abc-123")
        >>> machine.transition(PipelineStage.VERIFIED)
        >>> machine.current_stage
        PipelineStage.VERIFIED
    """

    def __init__(self, delivery_id: Optional[str] = None):
        self.run = PipelineRun(delivery_id=delivery_id)

    @property
    def current_stage(self) -> PipelineStage:
        return self.run.current_stage

    @property
    def is_finished(self) -> bool:
        return is_terminal_stage(self.run.current_stage)

    def transition(
        self,
        to_stage: PipelineStage,
        details: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """Move the run to a new stage.

        Args:
            to_stage: The target pipeline stage.
            details: Optional metadata about the transition. For FAILED
                     transitions, should include an "error" key.

        Returns:
            The recorded transition.

        Raises:
            InvalidTransitionError: If the transition is not valid.
        """
        details = details or {}
        from_stage = self.run.current_stage

        if not is_valid_transition(from_stage, to_stage):
            logger.warning(
                "Invalid state transition attempted",
                extra={
                    "run_id": self.run.run_id,
                    "from_stage": from_stage.value,
                    "to_stage": to_stage.value,
                },
            )
            raise InvalidTransitionError(from_stage, to_stage)

        now = datetime.now(timezone.utc)
        transition = StateTransition(
            from_stage=from_stage,
            to_stage=to_stage,
            timestamp=now,
            details=details,
        )

        if to_stage == PipelineStage.FAILED:
            error_message = details.get("error")
            if not error_message:
                error_message = "Unknown error (no details provided)"
                logger.warning(
                    "Transition to FAILED without error details",
                    extra={"run_id": self.run.run_id},
                )
            self.run.error = error_message

        self.run.state_history.append(transition)
        self.run.current_stage = to_stage
        self.run.updated_at = now

        logger.debug(
            "Transitioned pipeline state",
            extra={
                "run_id": self.run.run_id,
                "from_stage": from_stage.value,
                "to_stage": to_stage.value,
            },
        )
        return transition

    def set_classification(self, classification: Dict[str, Any], event_key: str) -> None:
        self.run.classification = classification
        self.run.event_key = event_key

    def set_session_handle(self, session_handle: str) -> None:
        self.run.session_handle = session_handle
