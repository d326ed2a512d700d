"""Task prompt synthesis for the changelog authoring agent.

Turns a classified release/tag event into natural-language instructions
for the Devin session that will update the changelogs. The instructions
are generated by an LLM from a fixed meta-prompt so they carry the
repository-specific context, while the non-negotiable conventions
(Keep a Changelog, docs repository update, no new pages, no deleted
entries, insertion order) are embedded verbatim.

The output is free-form text consumed by the downstream agent; it is
not validated against a schema.
"""

import json
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from src.changelog.catalog import DOCS_REPOSITORY_URL
from src.changelog.classifier.models import ClassifiedEvent
from src.changelog.llm import TextGenerator

logger = logging.getLogger(__name__)


UNDETERMINED_VERSION = "undetermined - infer it from the payload and the repository tags"

SYNTHESIS_PROMPT_TEMPLATE = """Generate a detailed prompt for Devin AI to update a changelog.
Devin will use this prompt to update the changelog for a given repository and the matching documentation changelog page.

Repository: {repository}
Event Type: {event_kind}
Version: {version}

Consider:
- Link all the PRs that were merged in this release by comparing all the changes since the previous release
- Changelogs must follow the Keep a Changelog format (https://keepachangelog.com/)
- Include repository-specific considerations
- The changelog in the repository is the CHANGELOG.md file at the repository root
- Add the new entry at the top of the existing entries, in the position that keeps the existing chronological ordering
- Do not delete or rewrite any previous changelog entries

MUST INCLUDE THIS VERBIAGE: The documentation changelog page for the respective topic needs
to be updated in the docs repository: {docs_repository}.
Don't create a new file or page, we already have them (sdk-js, sdk-py, etc). Make sure you format
following the previous release examples.

Original payload information:
{payload}
"""


class SynthesisError(Exception):
    """Raised when task prompt generation fails.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class TaskSpecification(BaseModel):
    """Instructions for one changelog authoring task.

    Attributes:
        prompt: Natural-language task for the downstream agent.
        event: The classified event the task was derived from.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    event: ClassifiedEvent


def build_synthesis_prompt(
    event: ClassifiedEvent,
    payload_text: str,
    docs_repository_url: str = DOCS_REPOSITORY_URL,
) -> str:
    """Build the meta-prompt that asks the LLM for Devin's instructions."""
    try:
        payload = json.dumps(json.loads(payload_text), indent=2)
    except (ValueError, TypeError):
        payload = payload_text

    return SYNTHESIS_PROMPT_TEMPLATE.format(
        repository=event.repository_name,
        event_kind=event.event_kind.value,
        version=event.version.strip() or UNDETERMINED_VERSION,
        docs_repository=docs_repository_url,
        payload=payload,
    )


class TaskPromptSynthesizer:
    """Generates Devin task specifications for classified events.

    Attributes:
        generator: Free-text generation capability.
        docs_repository_url: Companion documentation repository.
    """

    def __init__(
        self,
        generator: TextGenerator,
        docs_repository_url: str = DOCS_REPOSITORY_URL,
    ):
        self.generator = generator
        self.docs_repository_url = docs_repository_url

    async def synthesize(
        self, event: ClassifiedEvent, payload_text: str
    ) -> TaskSpecification:
        """Produce the task specification for an event.

        Args:
            event: The classified, actionable event.
            payload_text: The raw webhook body, included for ground truth.

        Returns:
            TaskSpecification with the generated prompt.

        Raises:
            SynthesisError: If generation fails or returns empty output.
        """
        meta_prompt = build_synthesis_prompt(
            event, payload_text, self.docs_repository_url
        )

        try:
            text = await self.generator.generate(meta_prompt)
        except Exception as e:
            logger.error(
                "Task prompt generation failed",
                extra={"error": str(e), "repository": event.repository_name},
            )
            raise SynthesisError(f"Prompt generation failed: {e}", cause=e) from e

        if not isinstance(text, str) or not text.strip():
            raise SynthesisError("Prompt generation returned empty output")

        logger.info(
            "Generated Devin prompt",
            extra={
                "repository": event.repository_name,
                "version": event.version,
                "prompt_length": len(text),
            },
        )
        return TaskSpecification(prompt=text.strip(), event=event)
