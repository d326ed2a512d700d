"""LLM-based webhook classifier for the changelog pipeline.

This module implements the EventClassifier that uses a structured-extraction
capability to map an arbitrary GitHub webhook payload to a ClassifiedEvent:
- Event kind (release, tag, other)
- Repository name and whether it is in the supported catalog
- Version string
- Whether the event is actionable, with a rationale

The decision policy lives in the prompt and is not re-derived locally.
Payload shapes vary by event and evolve over time, so extraction is
best-effort; signature validity and dedup identity never depend on it.

Source:
- src/changelog/classifier/models.py (ClassifiedEvent, EventKind)
- src/changelog/catalog.py (RepositoryDescriptor)
- src/changelog/llm.py (StructuredExtractor)
"""

import json
import logging
from typing import Iterable, Optional, Tuple

from src.changelog.catalog import SUPPORTED_REPOSITORIES, RepositoryDescriptor
from src.changelog.classifier.models import ClassifiedEvent
from src.changelog.llm import StructuredExtractor


logger = logging.getLogger(__name__)


CLASSIFICATION_PROMPT_TEMPLATE = """You are a GitHub webhook analyst for a changelog automation system.

Analyze this GitHub webhook payload and extract the requested fields:
{payload}

Supported repositories:
{catalog}

Rules:
1. event_kind is "release" for release events, "tag" for tag events, otherwise "other".
2. For a release, the version is release.tag_name.
3. For a tag, the version is the last part of the ref (format: refs/tags/v1.0.0).
4. A release is actionable only if its action is "published".
5. A tag is actionable only if it is a newly created tag. Tag deletions and updates are not actionable.
6. Any version with a pre-release marker (for example "-next", "-alpha", "-beta", "-rc") is not actionable.
7. is_supported_repository is true only if the repository matches one of the supported repositories above.
8. repository_name is the repository name without the owner prefix.
9. If the version cannot be determined, use an empty string.

Explain your decision in rationale."""


class ClassificationError(Exception):
    """Raised when webhook classification fails.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception that caused the failure.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


def _format_payload(payload_text: str) -> str:
    """Pretty-print a JSON payload, or return it unchanged if not JSON."""
    try:
        return json.dumps(json.loads(payload_text), indent=2)
    except (ValueError, TypeError):
        return payload_text


def _format_catalog(catalog: Iterable[RepositoryDescriptor]) -> str:
    lines = [f"- {repository.describe()}" for repository in catalog]
    return "\n".join(lines) if lines else "(none)"


def build_classification_prompt(
    payload_text: str,
    catalog: Iterable[RepositoryDescriptor],
) -> str:
    """Build the extraction prompt for a webhook payload.

    Args:
        payload_text: The raw webhook body as text.
        catalog: Supported repositories.

    Returns:
        Formatted prompt string for the extraction capability.
    """
    return CLASSIFICATION_PROMPT_TEMPLATE.format(
        payload=_format_payload(payload_text),
        catalog=_format_catalog(catalog),
    )


class EventClassifier:
    """Classifies webhook payloads into ClassifiedEvent records.

    Attributes:
        extractor: Schema-constrained extraction capability.
        catalog: Supported repositories embedded in the prompt.

    Example:
        >>> classifier = EventClassifier(extractor=LangChainLLM(...))
        >>> event = await classifier.classify(payload_text)
        >>> event.event_kind
        EventKind.RELEASE
    """

    def __init__(
        self,
        extractor: StructuredExtractor,
        catalog: Iterable[RepositoryDescriptor] = SUPPORTED_REPOSITORIES,
    ):
        self.extractor = extractor
        self.catalog: Tuple[RepositoryDescriptor, ...] = tuple(catalog)

    async def classify(self, payload_text: str) -> ClassifiedEvent:
        """Classify a webhook payload.

        Args:
            payload_text: The raw webhook body as text.

        Returns:
            ClassifiedEvent with the extraction result.

        Raises:
            ClassificationError: If extraction fails or the output does not
                conform to the schema.
        """
        prompt = build_classification_prompt(payload_text, self.catalog)

        logger.info(
            "Classifying webhook payload",
            extra={"payload_length": len(payload_text)},
        )

        try:
            result = await self.extractor.extract(prompt, ClassifiedEvent)
        except Exception as e:
            logger.error(
                "Webhook classification failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise ClassificationError(f"Classification failed: {e}", cause=e) from e

        if not isinstance(result, ClassifiedEvent):
            raise ClassificationError(
                f"Unexpected classification result type: {type(result)}"
            )

        logger.info(
            "Webhook classified",
            extra={
                "event_kind": result.event_kind.value,
                "repository": result.repository_name,
                "version": result.version,
                "is_actionable": result.is_actionable,
                "is_supported": result.is_supported_repository,
            },
        )
        return result
