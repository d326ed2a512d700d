"""Pipeline event models for observability.

This module defines the data models for pipeline events:
- EventType: Enum of all event types emitted by the pipeline
- PipelineEvent: Structured event with run, repository and details

Events are emitted for monitoring, alerting, and debugging. They are
separate from the response returned to the webhook caller.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the changelog pipeline.

    Attributes:
        STATE_TRANSITION: A delivery moved between pipeline stages.
        IGNORED: A delivery ended without dispatch (not actionable).
        DUPLICATE: A delivery matched an already-dispatched event key.
        ERROR: A stage failed.
        COMPLETION: A changelog task was dispatched.
    """

    STATE_TRANSITION = "state_transition"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    ERROR = "error"
    COMPLETION = "completion"


class PipelineEvent(BaseModel):
    """Structured event emitted by the changelog pipeline.

    Attributes:
        event_type: The category of event.
        run_id: Pipeline run identifier, for correlating events.
        repository: Repository name, or "unknown" before classification.
        timestamp: When the event occurred (UTC timezone).
        details: Additional context specific to the event type.

    Details Field Conventions:
        STATE_TRANSITION: from_stage, to_stage
        IGNORED / DUPLICATE: reason, event_key
        ERROR: stage, error_message, error_type
        COMPLETION: event_key, session_id, version
    """

    event_type: EventType = Field(
        ...,
        description="The category of event being emitted",
    )

    run_id: str = Field(
        ...,
        min_length=1,
        description="Pipeline run identifier",
    )

    repository: str = Field(
        default="unknown",
        description="Repository name, once known",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context specific to the event type",
    )

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert event to a flat dictionary for structured logging."""
        return {
            "event_type": self.event_type.value,
            "run_id": self.run_id,
            "repository": self.repository,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
