"""Pipeline state machine models.

This module defines the data models for the per-delivery state machine:
- PipelineStage: Enum of all pipeline stages
- StateTransition: Record of a transition with timestamp and details
- PipelineRun: State of one webhook delivery moving through the pipeline
- VALID_TRANSITIONS: Map defining allowed state transitions

The models use Pydantic for validation, consistent with the pipeline's
approach in webhook/models.py and config.py.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PipelineStage(str, Enum):
    """Stages a webhook delivery progresses through.

    Stage Flow:
        received → verified → classified → dispatching → completed

    ``classified`` may instead end in ``ignored`` (not actionable or
    unsupported repository) or ``duplicate_skipped`` (event key already
    recorded). ``received``, ``verified``, ``classified`` and
    ``dispatching`` can all end in ``failed``.

    Attributes:
        RECEIVED: Delivery accepted, not yet authenticated.
        VERIFIED: Signature checked (or bypassed in development).
        CLASSIFIED: Payload mapped to a ClassifiedEvent.
        IGNORED: Terminal, event needs no changelog update.
        DUPLICATE_SKIPPED: Terminal, event was already dispatched.
        DISPATCHING: Synthesizing and submitting the Devin task.
        COMPLETED: Terminal, task dispatched.
        FAILED: Terminal, a stage raised an error.
    """

    RECEIVED = "received"
    VERIFIED = "verified"
    CLASSIFIED = "classified"
    IGNORED = "ignored"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    FAILED = "failed"


class StateTransition(BaseModel):
    """Record of a state transition in the pipeline.

    Attributes:
        from_stage: The stage before the transition.
        to_stage: The stage after the transition.
        timestamp: When the transition occurred (UTC).
        details: Optional metadata about the transition.
    """

    from_stage: PipelineStage = Field(
        ...,
        description="The pipeline stage before this transition",
    )

    to_stage: PipelineStage = Field(
        ...,
        description="The pipeline stage after this transition",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the transition occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Optional metadata about the transition",
    )


class PipelineRun(BaseModel):
    """State of one webhook delivery in the pipeline.

    Runs live only for the duration of a single invocation; they are not
    persisted.

    Attributes:
        run_id: Unique identifier for this invocation.
        delivery_id: GitHub delivery id from X-GitHub-Delivery, if sent.
        current_stage: The current pipeline stage.
        state_history: Ordered list of all state transitions.
        classification: Classification result, once available.
        event_key: Idempotency key, once classified.
        session_handle: Devin session id, once dispatched.
        error: Error message if the run failed.
        created_at: When the run started (UTC).
        updated_at: When the run last changed stage (UTC).
    """

    run_id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        description="Unique identifier for this pipeline invocation",
    )

    delivery_id: Optional[str] = Field(
        default=None,
        description="GitHub delivery identifier",
    )

    current_stage: PipelineStage = Field(
        default=PipelineStage.RECEIVED,
        description="The current stage of the pipeline",
    )

    state_history: List[StateTransition] = Field(
        default_factory=list,
        description="Ordered list of all state transitions",
    )

    classification: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Classification result for the payload",
    )

    event_key: Optional[str] = Field(
        default=None,
        description="Idempotency key derived from the classification",
    )

    session_handle: Optional[str] = Field(
        default=None,
        description="Devin session id once the task is dispatched",
    )

    error: Optional[str] = Field(
        default=None,
        description="Error message if the pipeline failed",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def repository(self) -> str:
        """Repository name from the classification, or "unknown"."""
        if self.classification:
            return self.classification.get("repository_name") or "unknown"
        return "unknown"


# Valid state transitions map
#
# - RECEIVED, VERIFIED, CLASSIFIED and DISPATCHING can fail
# - IGNORED, DUPLICATE_SKIPPED, COMPLETED and FAILED are terminal
# - There is no recovery edge; a retried delivery starts a new run
VALID_TRANSITIONS: Dict[PipelineStage, List[PipelineStage]] = {
    PipelineStage.RECEIVED: [
        PipelineStage.VERIFIED,
        PipelineStage.FAILED,
    ],
    PipelineStage.VERIFIED: [
        PipelineStage.CLASSIFIED,
        PipelineStage.FAILED,
    ],
    PipelineStage.CLASSIFIED: [
        PipelineStage.IGNORED,
        PipelineStage.DUPLICATE_SKIPPED,
        PipelineStage.DISPATCHING,
        PipelineStage.FAILED,
    ],
    PipelineStage.DISPATCHING: [
        PipelineStage.COMPLETED,
        PipelineStage.FAILED,
    ],
    PipelineStage.IGNORED: [],
    PipelineStage.DUPLICATE_SKIPPED: [],
    PipelineStage.COMPLETED: [],
    PipelineStage.FAILED: [],
}


def is_valid_transition(from_stage: PipelineStage, to_stage: PipelineStage) -> bool:
    """Check if a state transition is valid.

    Example:
        >>> is_valid_transition(PipelineStage.RECEIVED, PipelineStage.VERIFIED)
        True
        >>> is_valid_transition(PipelineStage.RECEIVED, PipelineStage.DISPATCHING)
        False
    """
    valid_targets = VALID_TRANSITIONS.get(from_stage, [])
    return to_stage in valid_targets


def is_terminal_stage(stage: PipelineStage) -> bool:
    """Check if a stage is terminal (has no outgoing transitions)."""
    return len(VALID_TRANSITIONS.get(stage, [])) == 0
