"""
Knowledge Resolver -- tag to meaning, with a ledger side effect.

Resolving a tag always records that the wearer saw it, whether or not the
tag is known.  "I saw this tag" is worth keeping even when its meaning is
not.
"""

from __future__ import annotations

import logging
from datetime import datetime

from docinsight.ledger import ViewLedger
from docinsight.models import Resolution
from docinsight.store import ReferenceStore, StoreError

logger = logging.getLogger(__name__)


class KnowledgeResolver:
    """Looks tags up in the reference store and logs each lookup."""

    def __init__(self, store: ReferenceStore, ledger: ViewLedger, employee_id: str) -> None:
        self._store = store
        self._ledger = ledger
        self._employee_id = employee_id

    def resolve(self, tag_id: str, timestamp: datetime) -> Resolution:
        """Resolve ``tag_id`` and append one observation for it.

        Args:
            tag_id: The decoded tag (may be empty for "nothing in view").
            timestamp: Observation time from the engine clock.

        Returns:
            The ``Resolution``; ``resolved`` is False when no row matched.

        Raises:
            StoreError: If the lookup or the ledger append fails.  A failed
                lookup never produces a resolution.  The unresolved
                observation is still appended before the error propagates.
        """
        try:
            entry = self._store.resolve(tag_id)
        except StoreError:
            logger.error("Lookup failed for tag %r; recording it as unresolved", tag_id)
            self._record(Resolution.unresolved(tag_id), timestamp)
            raise

        if entry is None:
            resolution = Resolution.unresolved(tag_id)
            if tag_id:
                logger.info("Tag %r is not in the reference store", tag_id)
        else:
            resolution = Resolution.from_entry(entry)

        self._record(resolution, timestamp)
        return resolution

    def _record(self, resolution: Resolution, timestamp: datetime) -> None:
        self._ledger.append(
            employee_id=self._employee_id,
            tag_id=resolution.tag_id,
            type=resolution.type,
            info=resolution.info,
            timestamp=timestamp,
        )
