"""Webhook request and response models for the changelog pipeline.

InboundEvent carries the untouched request body and headers for one
pipeline invocation. The body is kept as raw bytes because signature
verification must hash exactly what GitHub sent.

PipelineResponse is the single structured result returned to the caller
for every terminal pipeline state.

The models use Pydantic for validation, consistent with the pipeline's
configuration approach in config.py.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


SIGNATURE_HEADER = "x-hub-signature-256"
EVENT_HEADER = "x-github-event"
DELIVERY_HEADER = "x-github-delivery"


class InboundEvent(BaseModel):
    """Raw webhook delivery as received from the transport.

    Header names are normalised to lower case on construction so lookups
    are case-insensitive, matching HTTP semantics.

    Attributes:
        body: Exact payload bytes from the request.
        headers: Transport headers with lower-cased names.
    """

    model_config = ConfigDict(frozen=True)

    body: bytes = Field(
        default=b"",
        description="Exact request body bytes",
    )

    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Request headers keyed by lower-cased name",
    )

    @field_validator("headers", mode="before")
    @classmethod
    def lowercase_header_names(cls, v: Any) -> Dict[str, str]:
        """Lower-case header names for case-insensitive lookup."""
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("headers must be a mapping")
        return {str(name).lower(): str(value) for name, value in v.items()}

    @property
    def signature(self) -> Optional[str]:
        """The X-Hub-Signature-256 header value, if present."""
        value = self.headers.get(SIGNATURE_HEADER)
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def github_event(self) -> Optional[str]:
        """The X-GitHub-Event header value (informational only)."""
        return self.headers.get(EVENT_HEADER)

    @property
    def delivery_id(self) -> Optional[str]:
        return self.headers.get(DELIVERY_HEADER)

    @property
    def payload_text(self) -> str:
        """Payload decoded as UTF-8, replacing undecodable bytes."""
        return self.body.decode("utf-8", errors="replace")


class PipelineStatus(str, Enum):
    """Terminal outcome reported to the webhook caller.

    Attributes:
        SUCCESS: A changelog task was dispatched.
        IGNORED: The event is not actionable or the repository is unsupported.
        ALREADY_PROCESSED: The event key was found in the idempotency store.
        ERROR: A stage failed; the message describes why.
    """

    SUCCESS = "success"
    IGNORED = "ignored"
    ALREADY_PROCESSED = "already_processed"
    ERROR = "error"


class PipelineResponse(BaseModel):
    """Structured response for a pipeline invocation.

    Field aliases are the camelCase names of the wire contract; use
    ``to_dict()`` to produce the JSON body.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: PipelineStatus
    repository: Optional[str] = None
    event_type: Optional[str] = Field(default=None, alias="eventType")
    version: Optional[str] = None
    devin_session_id: Optional[str] = Field(default=None, alias="devinSessionId")
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(
        cls,
        repository: str,
        event_type: str,
        version: str,
        session_id: str,
    ) -> "PipelineResponse":
        return cls(
            status=PipelineStatus.SUCCESS,
            repository=repository,
            event_type=event_type,
            version=version,
            devin_session_id=session_id,
        )

    @classmethod
    def ignored(cls, reason: str) -> "PipelineResponse":
        return cls(status=PipelineStatus.IGNORED, reason=reason)

    @classmethod
    def already_processed(cls, reason: str) -> "PipelineResponse":
        return cls(status=PipelineStatus.ALREADY_PROCESSED, reason=reason)

    @classmethod
    def error(cls, message: str) -> "PipelineResponse":
        return cls(status=PipelineStatus.ERROR, message=message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the wire shape, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
