"""Pipeline orchestrator connecting all stages of the changelog workflow.

Receives one webhook delivery and drives it through the full pipeline:
signature → classifier → idempotency check → synthesizer → Devin → ledger.

Each stage is a separate method. Gates short-circuit with a structured
response ("ignored", "already_processed"); stage errors transition the
run to failed and return an "error" response. ``process`` never raises.

Ordering constraints:
- The signature gate runs before the payload is interpreted.
- Unsupported or non-actionable events return before the store is read.
- The ledger is written only after dispatch succeeds, and a failed write
  does not change the caller-visible success.

Source:
- src/changelog/webhook/signature.py (SignatureVerifier)
- src/changelog/classifier/agent.py (EventClassifier)
- src/changelog/store/idempotency.py (IdempotencyStore)
- src/changelog/synthesizer.py (TaskPromptSynthesizer)
- src/changelog/dispatch/devin.py (DevinClient)
- src/changelog/state/machine.py (PipelineStateMachine)
- src/changelog/events/emitter.py (EventEmitter)
"""

import logging
from typing import Optional, Protocol

from src.changelog.catalog import canonical_repository_name
from src.changelog.classifier.agent import ClassificationError, EventClassifier
from src.changelog.classifier.models import ClassifiedEvent
from src.changelog.config import PipelineConfig
from src.changelog.dispatch.devin import DispatchError, DispatchResult
from src.changelog.events.emitter import EventEmitter, NullEventEmitter
from src.changelog.events.models import EventType, PipelineEvent
from src.changelog.state.machine import PipelineStateMachine
from src.changelog.state.models import PipelineStage
from src.changelog.store.backends import StoreError
from src.changelog.store.idempotency import IdempotencyStore
from src.changelog.store.models import ProcessedEventRecord, event_key_for
from src.changelog.synthesizer import (
    SynthesisError,
    TaskPromptSynthesizer,
    TaskSpecification,
)
from src.changelog.webhook.models import InboundEvent, PipelineResponse
from src.changelog.webhook.signature import SignatureVerifier, VerificationError

logger = logging.getLogger(__name__)


class TaskDispatcher(Protocol):
    """Anything that can start a changelog task for a specification."""

    async def dispatch(self, spec: TaskSpecification) -> DispatchResult:
        ...


class PipelineOrchestrator:
    """Orchestrates the webhook-to-Devin changelog pipeline.

    Accepts all dependencies via constructor injection. The configuration
    object carries the catalog, used to canonicalize repository names in
    event keys, and the verification bypass flag; nothing is read from the
    environment here.

    Attributes:
        config: Explicit pipeline configuration.
        verifier: Webhook signature verifier.
        classifier: LLM-based payload classifier.
        store: Idempotency ledger.
        synthesizer: Task prompt synthesizer.
        dispatcher: Devin task dispatcher.
        event_emitter: Emits pipeline events for observability.
    """

    def __init__(
        self,
        config: PipelineConfig,
        verifier: SignatureVerifier,
        classifier: EventClassifier,
        store: IdempotencyStore,
        synthesizer: TaskPromptSynthesizer,
        dispatcher: TaskDispatcher,
        event_emitter: Optional[EventEmitter] = None,
    ):
        self.config = config
        self.verifier = verifier
        self.classifier = classifier
        self.store = store
        self.synthesizer = synthesizer
        self.dispatcher = dispatcher
        self.event_emitter = event_emitter or NullEventEmitter()

    async def process(self, event: InboundEvent) -> PipelineResponse:
        """Drive one webhook delivery to a terminal state.

        Args:
            event: The raw webhook delivery.

        Returns:
            PipelineResponse describing the terminal outcome. Never raises.
        """
        machine = PipelineStateMachine(delivery_id=event.delivery_id)

        logger.info(
            "Received webhook request",
            extra={
                "run_id": machine.run.run_id,
                "delivery_id": event.delivery_id,
                "github_event": event.github_event,
            },
        )

        try:
            return await self._run(machine, event)
        except Exception as exc:
            # Stage methods handle their own errors; this is the last guard
            logger.exception(
                "Unexpected pipeline error",
                extra={"run_id": machine.run.run_id},
            )
            stage = machine.current_stage.value
            if not machine.is_finished:
                await self._fail(machine, stage, exc)
            return PipelineResponse.error(f"Unexpected error: {exc}")

    async def _run(
        self, machine: PipelineStateMachine, event: InboundEvent
    ) -> PipelineResponse:
        failure = await self._verify(machine, event)
        if failure is not None:
            return failure

        classified = await self._classify(machine, event)
        if isinstance(classified, PipelineResponse):
            return classified

        if not classified.should_dispatch:
            return await self._ignore(machine, classified)

        event_key = machine.run.event_key or self._event_key(classified)

        gate = await self._check_duplicate(machine, classified, event_key)
        if gate is not None:
            return gate

        return await self._dispatch(machine, classified, event_key, event)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _verify(
        self, machine: PipelineStateMachine, event: InboundEvent
    ) -> Optional[PipelineResponse]:
        """Authenticate the delivery. Returns an error response on failure."""
        if self.config.verification_bypass:
            logger.warning(
                "Development mode - skipping webhook signature verification",
                extra={"run_id": machine.run.run_id},
            )
            await self._transition(
                machine, PipelineStage.VERIFIED, {"bypassed": True}
            )
            return None

        try:
            self.verifier.verify(event.body, event.signature)
        except VerificationError as exc:
            await self._fail(machine, "verification", exc)
            return PipelineResponse.error(exc.message)

        await self._transition(machine, PipelineStage.VERIFIED)
        return None

    async def _classify(
        self, machine: PipelineStateMachine, event: InboundEvent
    ):
        """Classify the payload. Returns the ClassifiedEvent or an error response."""
        try:
            classified = await self.classifier.classify(event.payload_text)
        except ClassificationError as exc:
            await self._fail(machine, "classification", exc)
            return PipelineResponse.error(exc.message)

        machine.set_classification(classified.to_dict(), self._event_key(classified))
        await self._transition(
            machine,
            PipelineStage.CLASSIFIED,
            {
                "event_kind": classified.event_kind.value,
                "is_actionable": classified.is_actionable,
                "is_supported": classified.is_supported_repository,
            },
        )
        return classified

    async def _ignore(
        self, machine: PipelineStateMachine, classified: ClassifiedEvent
    ) -> PipelineResponse:
        """End the run without dispatch; the store is not consulted."""
        await self._transition(
            machine,
            PipelineStage.IGNORED,
            {"reason": classified.rationale},
        )
        await self._safe_emit(
            PipelineEvent(
                event_type=EventType.IGNORED,
                run_id=machine.run.run_id,
                repository=classified.repository_name or "unknown",
                details={"reason": classified.rationale},
            )
        )
        logger.info(
            "Ignoring webhook",
            extra={
                "run_id": machine.run.run_id,
                "repository": classified.repository_name,
                "reason": classified.rationale,
            },
        )
        return PipelineResponse.ignored(classified.rationale)

    async def _check_duplicate(
        self,
        machine: PipelineStateMachine,
        classified: ClassifiedEvent,
        event_key: str,
    ) -> Optional[PipelineResponse]:
        """Consult the ledger. A read failure aborts rather than risk a duplicate."""
        try:
            seen = await self.store.exists(event_key)
        except StoreError as exc:
            await self._fail(machine, "idempotency_check", exc)
            return PipelineResponse.error(
                f"Unable to check processed events: {exc.message}"
            )

        if not seen:
            return None

        reason = (
            f"Event already processed: {classified.repository_name} "
            f"{classified.version} ({classified.event_kind.value})"
        )
        await self._transition(
            machine,
            PipelineStage.DUPLICATE_SKIPPED,
            {"event_key": event_key},
        )
        await self._safe_emit(
            PipelineEvent(
                event_type=EventType.DUPLICATE,
                run_id=machine.run.run_id,
                repository=classified.repository_name,
                details={"reason": reason, "event_key": event_key},
            )
        )
        logger.info(
            "Skipping duplicate webhook",
            extra={"run_id": machine.run.run_id, "event_key": event_key},
        )
        return PipelineResponse.already_processed(reason)

    async def _dispatch(
        self,
        machine: PipelineStateMachine,
        classified: ClassifiedEvent,
        event_key: str,
        event: InboundEvent,
    ) -> PipelineResponse:
        """Synthesize the task, dispatch it, then record the event key."""
        await self._transition(
            machine, PipelineStage.DISPATCHING, {"event_key": event_key}
        )

        try:
            spec = await self.synthesizer.synthesize(classified, event.payload_text)
        except SynthesisError as exc:
            await self._fail(machine, "synthesis", exc)
            return PipelineResponse.error(exc.message)

        try:
            result = await self.dispatcher.dispatch(spec)
        except DispatchError as exc:
            logger.error(
                "Devin dispatch failed",
                extra={
                    "run_id": machine.run.run_id,
                    "status_code": exc.status_code,
                    "response_body": (exc.body or "")[:1000],
                },
            )
            await self._fail(machine, "dispatch", exc)
            return PipelineResponse.error(exc.message)

        machine.set_session_handle(result.session_handle)
        await self._record(machine, classified, event_key, result)

        await self._transition(
            machine,
            PipelineStage.COMPLETED,
            {"session_id": result.session_handle},
        )
        await self._safe_emit(
            PipelineEvent(
                event_type=EventType.COMPLETION,
                run_id=machine.run.run_id,
                repository=classified.repository_name,
                details={
                    "event_key": event_key,
                    "session_id": result.session_handle,
                    "version": classified.version,
                },
            )
        )
        logger.info(
            "Changelog task dispatched",
            extra={
                "run_id": machine.run.run_id,
                "event_key": event_key,
                "session_id": result.session_handle,
            },
        )
        return PipelineResponse.success(
            repository=classified.repository_name,
            event_type=classified.event_kind.value,
            version=classified.version,
            session_id=result.session_handle,
        )

    async def _record(
        self,
        machine: PipelineStateMachine,
        classified: ClassifiedEvent,
        event_key: str,
        result: DispatchResult,
    ) -> None:
        """Write the ledger entry; failures are logged, not raised.

        The task is already running, so a lost record only widens the
        at-least-once window for a later duplicate delivery.
        """
        record = ProcessedEventRecord(
            repository=canonical_repository_name(
                classified.repository_name, self.config.catalog
            ),
            version=classified.version,
            event_kind=classified.event_kind,
            session_handle=result.session_handle,
        )
        try:
            await self.store.record(event_key, record)
        except StoreError:
            logger.exception(
                "Failed to record processed event after dispatch",
                extra={
                    "run_id": machine.run.run_id,
                    "event_key": event_key,
                    "session_id": result.session_handle,
                },
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _event_key(self, classified: ClassifiedEvent) -> str:
        """Dedup key with the repository canonicalized against the catalog."""
        return event_key_for(classified, self.config.catalog)

    async def _transition(
        self,
        machine: PipelineStateMachine,
        to_stage: PipelineStage,
        details: Optional[dict] = None,
    ) -> None:
        """Transition state and emit a state-transition event."""
        transition = machine.transition(to_stage, details)
        await self._safe_emit(
            PipelineEvent(
                event_type=EventType.STATE_TRANSITION,
                run_id=machine.run.run_id,
                repository=machine.run.repository,
                details={
                    "from_stage": transition.from_stage.value,
                    "to_stage": transition.to_stage.value,
                },
            )
        )

    async def _fail(
        self,
        machine: PipelineStateMachine,
        stage: str,
        exc: Exception,
    ) -> None:
        """Transition to FAILED and emit an error event."""
        error_message = f"{stage}: {exc}"
        logger.error(
            "Pipeline stage failed",
            extra={
                "run_id": machine.run.run_id,
                "stage": stage,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )

        try:
            machine.transition(PipelineStage.FAILED, {"error": error_message})
        except Exception:
            logger.exception(
                "Failed to transition to FAILED state",
                extra={"run_id": machine.run.run_id},
            )

        await self._safe_emit(
            PipelineEvent(
                event_type=EventType.ERROR,
                run_id=machine.run.run_id,
                repository=machine.run.repository,
                details={
                    "stage": stage,
                    "error_message": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
        )

    async def _safe_emit(self, event: PipelineEvent) -> None:
        """Emit an event, swallowing exceptions to avoid disrupting the pipeline."""
        try:
            await self.event_emitter.emit(event)
        except Exception:
            logger.exception(
                "Failed to emit pipeline event",
                extra={
                    "event_type": event.event_type.value,
                    "run_id": event.run_id,
                },
            )
