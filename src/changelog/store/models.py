"""Idempotency ledger models.

A ProcessedEventRecord is written once, after a changelog task has been
dispatched for an event key. Its presence in the store is the dedup
signal; the stored fields exist for operators.
"""

import json
from datetime import datetime, timezone
from typing import Iterable, Union

from pydantic import BaseModel, ConfigDict, Field

from src.changelog.catalog import (
    SUPPORTED_REPOSITORIES,
    RepositoryDescriptor,
    canonical_repository_name,
)
from src.changelog.classifier.models import ClassifiedEvent, EventKind


EVENT_KEY_PREFIX = "changelog-event"


def generate_event_key(
    repository_name: str,
    version: str,
    event_kind: Union[EventKind, str],
) -> str:
    """Generate the dedup key for a (repository, version, event kind) triple.

    Args:
        repository_name: Short repository name.
        version: Release or tag version.
        event_kind: Kind of event.

    Returns:
        Key in format "changelog-event:{repository}:{version}:{kind}".
    """
    kind = event_kind.value if isinstance(event_kind, EventKind) else event_kind
    return f"{EVENT_KEY_PREFIX}:{repository_name}:{version}:{kind}"


def event_key_for(
    event: ClassifiedEvent,
    catalog: Iterable[RepositoryDescriptor] = SUPPORTED_REPOSITORIES,
) -> str:
    """Dedup key for a classified event; other fields do not contribute.

    The repository name is canonicalized against the catalog, so
    ``agentuity/SDK-JS`` and ``sdk-js`` produce the same key.
    """
    return generate_event_key(
        canonical_repository_name(event.repository_name, catalog),
        event.version.strip(),
        event.event_kind,
    )


class ProcessedEventRecord(BaseModel):
    """Ledger entry for an event whose changelog task was dispatched.

    Attributes:
        repository: Short repository name.
        version: Release or tag version.
        event_kind: Kind of event.
        processed_at: When dispatch succeeded (UTC).
        session_handle: Devin session identifier for the dispatched task.
    """

    model_config = ConfigDict(frozen=True)

    repository: str
    version: str
    event_kind: EventKind
    processed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    session_handle: str

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"))

    @classmethod
    def from_json(cls, raw: str) -> "ProcessedEventRecord":
        return cls.model_validate_json(raw)
