"""Idempotency ledger over a namespaced key-value store.

The orchestrator checks ``exists`` after classification and before any
dispatch, and calls ``record`` only after dispatch succeeds, so a failed
dispatch never marks its key as processed.

Two deliveries of the same event racing through the pipeline can both
pass ``exists`` before either records; at most two tasks are dispatched
for the key in that window. The backends offer no compare-and-set to
close it.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from src.changelog.config import DEFAULT_NAMESPACE
from src.changelog.store.backends import KeyValueStore, StoreError
from src.changelog.store.models import ProcessedEventRecord


logger = logging.getLogger(__name__)


class IdempotencyStore:
    """Ledger of event keys whose changelog task was dispatched.

    Attributes:
        backend: Key-value store holding the ledger.
        namespace: Fixed namespace for this pipeline's keys.
    """

    def __init__(self, backend: KeyValueStore, namespace: str = DEFAULT_NAMESPACE):
        self.backend = backend
        self.namespace = namespace

    async def exists(self, key: str) -> bool:
        """Check whether an event key has already been processed.

        Raises:
            StoreError: If the backend read fails.
        """
        value = await self._read(key)
        found = value is not None
        logger.debug(
            "Idempotency lookup",
            extra={"event_key": key, "found": found},
        )
        return found

    async def get(self, key: str) -> Optional[ProcessedEventRecord]:
        """Return the ledger entry for a key, if any.

        Raises:
            StoreError: If the read fails or the entry is not a valid record.
        """
        value = await self._read(key)
        if value is None:
            return None
        try:
            return ProcessedEventRecord.from_json(value)
        except ValidationError as e:
            raise StoreError(
                f"Corrupt ledger entry for {key}", original_error=e
            ) from e

    async def record(self, key: str, record: ProcessedEventRecord) -> None:
        """Write the ledger entry for a dispatched event.

        Raises:
            StoreError: If the backend write fails.
        """
        try:
            await self.backend.set(self.namespace, key, record.to_json())
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(
                f"Failed to record event {key}: {e}", original_error=e
            ) from e

        logger.info(
            "Recorded processed event",
            extra={"event_key": key, "session_handle": record.session_handle},
        )

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.backend.get(self.namespace, key)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(
                f"Failed to look up event {key}: {e}", original_error=e
            ) from e
