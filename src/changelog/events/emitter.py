"""Event emitter implementations for pipeline observability.

This module defines an abstract EventEmitter interface and concrete
implementations for different event sinks:

- LoggingEventEmitter: Emits events as structured log entries
- CompositeEventEmitter: Emits to multiple sinks simultaneously
- NullEventEmitter: Discards events

Source:
- src/changelog/events/models.py (PipelineEvent, EventType)
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from src.changelog.events.models import EventType, PipelineEvent

if TYPE_CHECKING:
    from src.changelog.events.metrics import PipelineMetrics


logger = logging.getLogger(__name__)


class EventSinkType(str, Enum):
    """Types of event sinks supported by the pipeline.

    Attributes:
        LOGGING: Emit events as structured log entries.
        METRICS: Emit events as Prometheus metrics.
    """

    LOGGING = "logging"
    METRICS = "metrics"


class EventEmitter(ABC):
    """Abstract base class for pipeline event emitters.

    Implementations should be async-safe and should not raise; the
    orchestrator also guards every emit so a failing sink cannot change
    a pipeline outcome.
    """

    @abstractmethod
    async def emit(self, event: PipelineEvent) -> None:
        """Emit a pipeline event."""
        pass

    async def close(self) -> None:
        """Close the emitter and release resources."""
        pass


class LoggingEventEmitter(EventEmitter):
    """Event emitter that logs events using structured logging.

    State transitions are logged at DEBUG, errors at ERROR and all other
    events at INFO.
    """

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = (
            logging.getLogger(logger_name)
            if logger_name
            else logger
        )
        self._log_level_map = {
            EventType.STATE_TRANSITION: logging.DEBUG,
            EventType.IGNORED: logging.INFO,
            EventType.DUPLICATE: logging.INFO,
            EventType.COMPLETION: logging.INFO,
            EventType.ERROR: logging.ERROR,
        }

    async def emit(self, event: PipelineEvent) -> None:
        log_level = self._log_level_map.get(event.event_type, logging.INFO)

        self._logger.log(
            log_level,
            "Pipeline event: %s for %s",
            event.event_type.value,
            event.repository,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Event emitter that delegates to multiple child emitters.

    Failures in one emitter do not affect others; each error is logged
    and the next emitter is still called.

    Args:
        emitters: Child emitters, called in order.
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = emitters or []

    async def emit(self, event: PipelineEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Failed to emit event to %s: %s",
                    type(emitter).__name__,
                    str(e),
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "run_id": event.run_id,
                    },
                )

    async def close(self) -> None:
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                logger.error(
                    "Failed to close emitter %s: %s",
                    type(emitter).__name__,
                    str(e),
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: PipelineEvent) -> None:
        pass


def create_event_emitter(
    sink_types: Optional[List[EventSinkType]] = None,
    logger_name: Optional[str] = None,
    metrics: Optional["PipelineMetrics"] = None,
) -> EventEmitter:
    """Create an event emitter for the requested sinks.

    Returns a LoggingEventEmitter when no sinks are requested, the single
    emitter when one is, and a CompositeEventEmitter otherwise.

    Args:
        sink_types: Sinks to emit to.
        logger_name: Logger used by the logging sink.
        metrics: Metrics updated by the metrics sink. Pass a process-wide
            instance; a new PipelineMetrics registers its counters on the
            global registry and can only be created once.

    Example:
        >>> emitter = create_event_emitter(
        ...     [EventSinkType.LOGGING, EventSinkType.METRICS],
        ...     metrics=PipelineMetrics(),
        ... )
        >>> isinstance(emitter, CompositeEventEmitter)
        True
    """
    if not sink_types:
        return LoggingEventEmitter(logger_name=logger_name)

    emitters: List[EventEmitter] = []

    for sink_type in sink_types:
        if sink_type == EventSinkType.LOGGING:
            emitters.append(LoggingEventEmitter(logger_name=logger_name))
        elif sink_type == EventSinkType.METRICS:
            # Deferred: metrics.py imports EventEmitter from this module
            from src.changelog.events.metrics import MetricsEventEmitter

            emitters.append(MetricsEventEmitter(metrics=metrics))
        else:
            logger.warning(
                "Unknown event sink type: %s, skipping",
                sink_type,
            )

    if not emitters:
        return LoggingEventEmitter(logger_name=logger_name)

    if len(emitters) == 1:
        return emitters[0]

    return CompositeEventEmitter(emitters)
