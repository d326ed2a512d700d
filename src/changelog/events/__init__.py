"""Pipeline event emission for observability.

This module provides event emission for:
- State transitions between pipeline stages
- Ignored and duplicate deliveries
- Errors during processing
- Dispatched changelog tasks

Events can be emitted to logs and Prometheus metrics.
"""

from src.changelog.events.emitter import (
    CompositeEventEmitter,
    EventEmitter,
    EventSinkType,
    LoggingEventEmitter,
    NullEventEmitter,
    create_event_emitter,
)
from src.changelog.events.models import EventType, PipelineEvent

__all__ = [
    "CompositeEventEmitter",
    "EventEmitter",
    "EventSinkType",
    "EventType",
    "LoggingEventEmitter",
    "NullEventEmitter",
    "PipelineEvent",
    "create_event_emitter",
]
