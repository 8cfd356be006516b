import datetime
import logging
import threading
from typing import Dict, Optional, Tuple

from wwfm_fields.aggregation.models import AggregatedFieldMap

PairingKey = Tuple[str, str]  # (goal_id, implementation_id)


class StoredAggregate:
    """An aggregated field map plus bookkeeping for one goal/solution pairing."""

    def __init__(
        self,
        goal_id: str,
        implementation_id: str,
        fields: AggregatedFieldMap,
    ):
        self.goal_id: str = goal_id
        self.implementation_id: str = implementation_id
        self.fields: AggregatedFieldMap = fields
        self.updated_at: datetime.datetime = datetime.datetime.now(
            datetime.timezone.utc
        )
        # Number of times the map has been (re)written for this pairing
        self.revision: int = 1

    @property
    def key(self) -> PairingKey:
        return (self.goal_id, self.implementation_id)

    def __repr__(self) -> str:
        return (
            f"StoredAggregate(goal_id='{self.goal_id}', "
            f"implementation_id='{self.implementation_id}', "
            f"fields={len(self.fields)}, revision={self.revision})"
        )


class ThreadSafeAggregateStore:
    """A thread-safe in-memory store of aggregated field maps.

    Writes are last-writer-wins per pairing; the map is always replaced as a
    whole, never patched.
    """

    def __init__(self):
        self._aggregates: Dict[PairingKey, StoredAggregate] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def put(
        self, goal_id: str, implementation_id: str, fields: AggregatedFieldMap
    ) -> StoredAggregate:
        """Store *fields* for the pairing, replacing any previous map."""
        with self._lock:
            key = (goal_id, implementation_id)
            existing = self._aggregates.get(key)
            stored = StoredAggregate(goal_id, implementation_id, fields)
            if existing is not None:
                stored.revision = existing.revision + 1
            self._aggregates[key] = stored

        self._logger.info(
            "aggregate_stored",
            extra={
                "goal_id": goal_id,
                "implementation_id": implementation_id,
                "revision": stored.revision,
            },
        )
        return stored

    def get(self, goal_id: str, implementation_id: str) -> Optional[StoredAggregate]:
        """Return the stored aggregate for the pairing or None if absent."""
        with self._lock:
            return self._aggregates.get((goal_id, implementation_id))

    def remove(self, goal_id: str, implementation_id: str) -> Optional[StoredAggregate]:
        """Remove and return the stored aggregate, or None if not found."""
        with self._lock:
            return self._aggregates.pop((goal_id, implementation_id), None)

    def get_all(self) -> Dict[PairingKey, StoredAggregate]:
        """Returns a shallow copy of all stored aggregates."""
        with self._lock:
            return dict(self._aggregates)

    def count(self) -> int:
        with self._lock:
            return len(self._aggregates)
