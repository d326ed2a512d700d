"""Devin sessions API client.

Starts a Devin session for a task specification and returns the session
handle. This is a one-way send: the session runs on its own and this
client never polls it to completion.

Starting a session is not idempotent; every successful call launches a
new task. For that reason the client never retries. Deduplication
happens before dispatch, in the idempotency store.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from src.changelog.synthesizer import TaskSpecification


logger = logging.getLogger(__name__)


UNKNOWN_SESSION = "unknown"


class DispatchError(Exception):
    """Raised when the Devin API rejects or fails a session request.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code, or None for transport failures.
        body: Response body (or transport error text) for diagnosis.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(message)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of starting a Devin session.

    Attributes:
        session_handle: Devin session identifier, or "unknown".
        status_code: HTTP status code of the response.
    """

    session_handle: str
    status_code: int


class DevinClient:
    """Async client for the Devin sessions API.

    Attributes:
        api_key: Devin API bearer token.
        base_url: Base URL for the Devin API.
        timeout: Request timeout in seconds.

    Example:
        >>> async with DevinClient(api_key="...") as client:
        ...     result = await client.dispatch(spec)
        >>> result.session_handle
        'devin-abc123'
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.devin.ai/v1",
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DevinClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def dispatch(self, spec: TaskSpecification) -> DispatchResult:
        """Start a Devin session for the task specification.

        Args:
            spec: The synthesized task specification.

        Returns:
            DispatchResult with the session handle and status code.

        Raises:
            DispatchError: On transport failure or a non-2xx response. A 2xx
                response without a readable session id is still a dispatch.
        """
        logger.info(
            "Calling Devin API",
            extra={
                "repository": spec.event.repository_name,
                "version": spec.event.version,
            },
        )

        try:
            response = await self.client.post("/sessions", json={"prompt": spec.prompt})
        except httpx.HTTPError as e:
            logger.error("Devin API request failed: %s", e)
            raise DispatchError(
                f"Devin API request failed: {e}", body=str(e)
            ) from e

        if not response.is_success:
            logger.error(
                "Devin API returned %d",
                response.status_code,
                extra={"response_body": response.text[:1000]},
            )
            raise DispatchError(
                f"Devin API returned {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        # A 2xx is a dispatch; the body only supplies the handle
        try:
            data = response.json()
        except ValueError:
            data = None

        session_handle = (
            _extract_session_handle(data) if isinstance(data, dict) else UNKNOWN_SESSION
        )
        if session_handle == UNKNOWN_SESSION:
            logger.warning(
                "Devin API response did not include a session id",
                extra={
                    "status_code": response.status_code,
                    "response_body": response.text[:1000],
                },
            )

        logger.info(
            "Devin API response",
            extra={
                "status_code": response.status_code,
                "session_id": session_handle,
            },
        )
        return DispatchResult(
            session_handle=session_handle,
            status_code=response.status_code,
        )


def _extract_session_handle(data: Dict[str, Any]) -> str:
    """Read the session id, accepting both snake and camel case keys."""
    for field in ("session_id", "sessionId"):
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return UNKNOWN_SESSION
