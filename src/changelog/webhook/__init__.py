"""GitHub webhook intake for the changelog pipeline.

This module holds the raw delivery model, the caller-facing response
model, and HMAC-SHA256 signature verification over the raw body.
"""

from .models import InboundEvent, PipelineResponse, PipelineStatus
from .signature import (
    SignatureVerifier,
    VerificationError,
    VerificationFailure,
    compute_signature,
)

__all__ = [
    "InboundEvent",
    "PipelineResponse",
    "PipelineStatus",
    "SignatureVerifier",
    "VerificationError",
    "VerificationFailure",
    "compute_signature",
]
