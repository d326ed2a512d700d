"""Webhook classification models for the changelog pipeline.

This module defines the structured result of classifying a webhook
payload. The ClassifiedEvent model doubles as the output schema handed
to the structured-extraction capability, so field descriptions here are
also instructions to the model.

The models use Pydantic for validation, consistent with the pipeline's
approach in webhook/models.py and state/models.py.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Kind of repository event carried by a webhook.

    Attributes:
        RELEASE: A GitHub release event.
        TAG: A tag creation (or deletion) event, e.g. ``create``/``push``.
        OTHER: Anything else.
    """

    RELEASE = "release"
    TAG = "tag"
    OTHER = "other"


class ClassifiedEvent(BaseModel):
    """Structured extraction result for one webhook payload.

    Attributes:
        is_actionable: Whether the event warrants a changelog update.
        event_kind: Release, tag, or other.
        repository_name: Short repository name (no owner prefix).
        version: Version string, or empty when it cannot be determined.
        rationale: Explanation of the decision.
        is_supported_repository: Whether the repository is in the catalog.
    """

    model_config = ConfigDict(frozen=True)

    is_actionable: bool = Field(
        ...,
        description=(
            "True only for a published release or a newly created tag "
            "whose version has no pre-release marker"
        ),
    )

    event_kind: EventKind = Field(
        ...,
        description="One of: release, tag, other",
    )

    repository_name: str = Field(
        ...,
        description="Repository name without the owner prefix",
    )

    version: str = Field(
        ...,
        description=(
            "Release tag_name or the last segment of refs/tags/...; "
            "empty string if unknown"
        ),
    )

    rationale: str = Field(
        ...,
        description="Brief explanation of the decision",
    )

    is_supported_repository: bool = Field(
        ...,
        description="True only if the repository matches a supported entry",
    )

    @property
    def should_dispatch(self) -> bool:
        """Whether this event proceeds past classification."""
        return self.is_actionable and self.is_supported_repository

    def to_dict(self) -> dict:
        return {
            "is_actionable": self.is_actionable,
            "event_kind": self.event_kind.value,
            "repository_name": self.repository_name,
            "version": self.version,
            "rationale": self.rationale,
            "is_supported_repository": self.is_supported_repository,
        }
