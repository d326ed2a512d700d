"""GitHub webhook signature verification.

GitHub signs each delivery with HMAC-SHA256 over the raw request body
using the shared webhook secret, and sends the hex digest in the
X-Hub-Signature-256 header as ``sha256=<hex>``.

The digest is computed over the exact bytes received. Re-serialising the
parsed JSON would change whitespace and key order and make valid
deliveries fail verification.
"""

import hashlib
import hmac
import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


SIGNATURE_PREFIX = "sha256="


class VerificationFailure(str, Enum):
    """Reasons a webhook delivery fails authentication.

    Attributes:
        MISSING_SIGNATURE: No X-Hub-Signature-256 header on the request.
        MISSING_SECRET: The webhook secret is not configured (deployment defect).
        SIGNATURE_MISMATCH: The header does not match the computed digest.
    """

    MISSING_SIGNATURE = "missing_signature"
    MISSING_SECRET = "missing_secret"
    SIGNATURE_MISMATCH = "signature_mismatch"


class VerificationError(Exception):
    """Raised when a webhook delivery cannot be authenticated.

    Attributes:
        reason: Which verification check failed.
        message: Human-readable error description.
    """

    def __init__(self, reason: VerificationFailure, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


def compute_signature(secret: str, body: bytes) -> str:
    """Compute the X-Hub-Signature-256 header value for a body.

    Args:
        secret: The shared webhook secret.
        body: Raw request body bytes.

    Returns:
        The header value in the form ``sha256=<hex digest>``.
    """
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


class SignatureVerifier:
    """Authenticates webhook deliveries against the shared secret.

    The development bypass is decided by the orchestrator from its
    PipelineConfig; this class always verifies.

    Attributes:
        secret: The shared webhook secret, or None when not configured.
    """

    def __init__(self, secret: Optional[str]):
        self.secret = secret

    def verify(self, body: bytes, signature: Optional[str]) -> None:
        """Verify the signature header for a raw body.

        Args:
            body: Exact request body bytes.
            signature: The X-Hub-Signature-256 header value.

        Raises:
            VerificationError: If the header or secret is missing, or the
                signature does not match.
        """
        if not signature:
            logger.error("No X-Hub-Signature-256 header found in the request")
            raise VerificationError(
                VerificationFailure.MISSING_SIGNATURE,
                "Missing X-Hub-Signature-256 header",
            )

        if not self.secret:
            logger.error("Webhook secret is not configured")
            raise VerificationError(
                VerificationFailure.MISSING_SECRET,
                "Server configuration error: webhook secret not configured",
            )

        expected = compute_signature(self.secret, body)

        # compare_digest needs equal types; encode both sides
        if not hmac.compare_digest(
            expected.encode("utf-8"), signature.strip().encode("utf-8")
        ):
            logger.error(
                "Invalid webhook signature",
                extra={"body_length": len(body)},
            )
            raise VerificationError(
                VerificationFailure.SIGNATURE_MISMATCH,
                "Invalid webhook signature",
            )

        logger.info("Webhook signature verified successfully")
