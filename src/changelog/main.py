"""FastAPI application entry point for the changelog pipeline.

Hosts the webhook endpoint that runs the pipeline for each delivery, plus
health, readiness and Prometheus metrics endpoints.

The pipeline runs inline for each request and the structured result is
returned as the response body.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from .classifier.agent import EventClassifier
from .config import ChangelogSettings, build_pipeline_config, get_settings
from .dispatch.devin import DevinClient
from .events.emitter import EventSinkType, create_event_emitter
from .events.metrics import PipelineMetrics
from .llm import LangChainLLM
from .orchestrator import PipelineOrchestrator
from .store.backends import InMemoryKeyValueStore, KeyValueStore, PostgresKeyValueStore
from .store.idempotency import IdempotencyStore
from .synthesizer import TaskPromptSynthesizer
from .webhook.models import InboundEvent, PipelineResponse
from .webhook.signature import SignatureVerifier

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global instances, initialized during lifespan startup
settings: Optional[ChangelogSettings] = None
orchestrator: Optional[PipelineOrchestrator] = None
devin_client: Optional[DevinClient] = None
kv_backend: Optional[KeyValueStore] = None
llm: Optional[LangChainLLM] = None

# Counters register on the global Prometheus registry, so they are created
# once per process and shared by every lifespan
pipeline_metrics = PipelineMetrics()


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if not value:
        return "(not set)"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(cfg: ChangelogSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Changelog pipeline configuration:")
    logger.info(f"  Environment: {cfg.environment}")
    logger.info(f"  Signature Verification Bypass: {cfg.verification_bypass}")
    logger.info(
        f"  GitHub Webhook Secret: {_redact_secret(cfg.github_webhook_secret)}"
    )
    logger.info(f"  Devin Base URL: {cfg.devin_base_url}")
    logger.info(f"  Devin API Key: {_redact_secret(cfg.devin_api_key)}")
    logger.info(f"  LLM URL: {cfg.llm_url}")
    logger.info(f"  LLM Model: {cfg.llm_model}")
    logger.info(f"  Database URL: {_redact_secret(cfg.database_url)}")
    logger.info(f"  Idempotency Namespace: {cfg.idempotency_namespace}")
    logger.info(f"  Docs Repository: {cfg.docs_repository_url}")
    logger.info(f"  Host: {cfg.host}")
    logger.info(f"  Port: {cfg.port}")

    if cfg.verification_bypass:
        logger.warning(
            "Webhook signature verification is DISABLED (development environment)"
        )


async def _create_kv_backend(cfg: ChangelogSettings) -> KeyValueStore:
    """Create the idempotency backend: PostgreSQL if configured, else in-memory."""
    if cfg.database_url:
        backend = PostgresKeyValueStore(cfg.database_url)
        await backend.connect()
        return backend

    logger.warning(
        "No database_url configured; processed events are kept in memory "
        "and lost on restart"
    )
    return InMemoryKeyValueStore()


def _build_orchestrator(
    cfg: ChangelogSettings,
    backend: KeyValueStore,
    client: DevinClient,
    language_model: LangChainLLM,
) -> PipelineOrchestrator:
    """Wire all pipeline dependencies into a PipelineOrchestrator."""
    pipeline_config = build_pipeline_config(cfg)

    return PipelineOrchestrator(
        config=pipeline_config,
        verifier=SignatureVerifier(secret=cfg.github_webhook_secret),
        classifier=EventClassifier(
            extractor=language_model, catalog=pipeline_config.catalog
        ),
        store=IdempotencyStore(backend, namespace=cfg.idempotency_namespace),
        synthesizer=TaskPromptSynthesizer(
            generator=language_model,
            docs_repository_url=cfg.docs_repository_url,
        ),
        dispatcher=client,
        event_emitter=create_event_emitter(
            [EventSinkType.LOGGING, EventSinkType.METRICS],
            metrics=pipeline_metrics,
        ),
    )


async def _shutdown() -> None:
    """Release whatever startup managed to create."""
    global orchestrator, devin_client, kv_backend, llm

    if orchestrator is not None:
        await orchestrator.event_emitter.close()
    if devin_client is not None:
        await devin_client.close()
    if isinstance(kv_backend, PostgresKeyValueStore):
        await kv_backend.disconnect()

    orchestrator = None
    devin_client = None
    kv_backend = None
    llm = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    global settings, orchestrator, devin_client, kv_backend, llm

    logger.info("Changelog pipeline starting up...")

    try:
        settings = get_settings()
        _log_configuration(settings)

        kv_backend = await _create_kv_backend(settings)
        devin_client = DevinClient(
            api_key=settings.devin_api_key,
            base_url=settings.devin_base_url,
            timeout=settings.devin_timeout_seconds,
        )
        llm = LangChainLLM(
            llm_url=settings.llm_url,
            model_name=settings.llm_model,
            api_key=settings.llm_api_key,
            timeout=settings.llm_timeout_seconds,
            temperature=settings.llm_temperature,
        )
        orchestrator = _build_orchestrator(settings, kv_backend, devin_client, llm)

        logger.info("Changelog pipeline started successfully")

        yield
    finally:
        logger.info("Changelog pipeline shutting down...")
        await _shutdown()
        logger.info("Changelog pipeline shutdown complete")


app = FastAPI(
    title="Changelog Webhook Pipeline",
    description="Dispatches changelog updates for repository releases",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Liveness endpoint."""
    return {"status": "healthy"}


@app.get("/ready")
async def ready():
    """Readiness endpoint.

    Ready once the orchestrator is wired and the LLM endpoint answers.

    Returns:
        dict: Status and dependency health information.
    """
    if orchestrator is None or llm is None:
        return {"status": "not_ready", "dependencies": {"llm": "not_configured"}}

    llm_status = "healthy" if await llm.health_check() else "unhealthy"
    status = "ready" if llm_status == "healthy" else "not_ready"

    return {
        "status": status,
        "dependencies": {
            "llm": llm_status,
        },
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=pipeline_metrics.generate_metrics(),
        media_type=CONTENT_TYPE_LATEST,
    )


@app.post("/webhooks/github")
async def github_webhook(request: Request):
    """GitHub webhook receiver endpoint.

    Reads the raw body (signature verification needs the exact bytes) and
    runs the pipeline for the delivery.

    Returns:
        dict: The pipeline response.
    """
    if orchestrator is None:
        logger.error("Pipeline not initialized")
        return PipelineResponse.error("Pipeline not initialized").to_dict()

    body = await request.body()
    event = InboundEvent(body=body, headers=dict(request.headers))

    result = await orchestrator.process(event)
    return result.to_dict()


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.changelog.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
