"""Idempotency ledger for dispatched changelog events.

Events are keyed by (repository, version, event kind). A key is written
only after its changelog task has been dispatched; its presence makes
later deliveries of the same event a no-op.
"""

from src.changelog.store.backends import (
    InMemoryKeyValueStore,
    KeyValueStore,
    PostgresKeyValueStore,
    StoreError,
)
from src.changelog.store.idempotency import IdempotencyStore
from src.changelog.store.models import (
    EVENT_KEY_PREFIX,
    ProcessedEventRecord,
    event_key_for,
    generate_event_key,
)

__all__ = [
    # Models
    "EVENT_KEY_PREFIX",
    "ProcessedEventRecord",
    "event_key_for",
    "generate_event_key",
    # Backends
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "PostgresKeyValueStore",
    "StoreError",
    # Ledger
    "IdempotencyStore",
]
