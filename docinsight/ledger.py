"""
Append-Only View Ledger.

Every detected tag transition is recorded as an ``Observation``: which
employee saw which tag, what it resolved to, and when.  Unresolved tags are
recorded too, with an empty type.  The ledger offers no way to modify or
remove an observation; retention and purging belong to the store operator.

Timestamps come from the engine's clock and are stored as given.  Duplicate
or out-of-order timestamps are accepted; window queries filter on the
timestamp value, not on insertion order.

**Isolation:** all reads and writes are keyed by ``employee_id``.  One
wearer's observations are never returned for another wearer.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from docinsight.models import Observation
from docinsight.store import LedgerStore

logger = logging.getLogger(__name__)


class ViewLedger:
    """Domain-facing wrapper over a ``LedgerStore``."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def append(
        self,
        employee_id: str,
        tag_id: str,
        type: str,
        info: str,
        timestamp: datetime,
    ) -> Observation:
        """Record one observation.

        Returns:
            The immutable ``Observation`` that was written.

        Raises:
            StoreError: If the underlying store rejects the write.
        """
        observation = Observation(
            employee_id=employee_id,
            tag_id=tag_id,
            type=type,
            info=info,
            timestamp=timestamp,
        )
        self._store.append(observation)
        logger.debug(
            "Ledger append employee=%s tag=%r type=%r at %s",
            employee_id, tag_id, type, timestamp.isoformat(),
        )
        return observation

    def query_window(
        self,
        employee_id: str,
        type: str,
        from_timestamp: datetime,
        until: Optional[datetime] = None,
    ) -> set[str]:
        """Distinct tag ids of ``type`` seen at or after ``from_timestamp``.

        ``until`` caps the range at the evaluation time (inclusive).  This
        is a pure read.

        Raises:
            StoreError: If the underlying store query fails.
        """
        return self._store.recent_by_type(employee_id, type, from_timestamp, until)

    def history(self, employee_id: str) -> list[Observation]:
        """All observations for ``employee_id``, oldest first."""
        return self._store.observations(employee_id)
