"""Shop-scoped metafield store.

Holds the JSON configuration blob written by the admin flow and read
when an evaluation is set up. Records are keyed by (shop, namespace, key)
so one shop can never read another's configuration.

In-memory. Replace backing store for production.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Optional

from patterns.domain_config import MetafieldLocation


@dataclass
class MetafieldRecord:
    """A single stored metafield value."""
    shop: str
    namespace: str
    key: str
    value: str
    value_type: str = "json"
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MetafieldStore:
    """Key/value metafield records isolated per shop."""

    def __init__(self):
        self._records: dict[tuple[str, str, str], MetafieldRecord] = {}
        self._lock = Lock()

    def get(self, shop: str, namespace: str, key: str) -> Optional[MetafieldRecord]:
        return self._records.get((shop, namespace, key))

    def set(self, shop: str, namespace: str, key: str, value: str, value_type: str = "json") -> MetafieldRecord:
        record = MetafieldRecord(shop=shop, namespace=namespace, key=key, value=value, value_type=value_type)
        with self._lock:
            self._records[(shop, namespace, key)] = record
        return record

    def delete(self, shop: str, namespace: str, key: str) -> bool:
        with self._lock:
            return self._records.pop((shop, namespace, key), None) is not None


class ConfigurationRepository:
    """Reads and writes the discount configuration blob for a shop."""

    def __init__(self, store: MetafieldStore, location: Optional[MetafieldLocation] = None):
        self.store = store
        self.location = location or MetafieldLocation()

    def load(self, shop: str) -> Optional[str]:
        record = self.store.get(shop, self.location.namespace, self.location.key)
        return record.value if record else None

    def save(self, shop: str, blob: str) -> MetafieldRecord:
        return self.store.set(shop, self.location.namespace, self.location.key, blob)

    def clear(self, shop: str) -> bool:
        return self.store.delete(shop, self.location.namespace, self.location.key)


# ---------------------------------------------------------------------------
# FastAPI dependency injection
# ---------------------------------------------------------------------------

_store = MetafieldStore()


def get_configuration_repository() -> ConfigurationRepository:
    """FastAPI dependency: configuration repository over the process store."""
    return ConfigurationRepository(_store)
