"""
Reference and Ledger Stores.

The engine talks to persistence through two narrow interfaces:

* ``ReferenceStore`` -- read-only tag meanings and prescriptions.
* ``LedgerStore`` -- append-only observation rows keyed by ``employee_id``.

``SQLiteStore`` implements both against the headset's ``qrdb.db`` file
(tables ``qr_lookup``, ``drug_admin_schedule`` and ``view_field``).  All
statements are parameterised.  ``InMemoryStore`` implements the same
interfaces for tests and demonstrations.

Any failure to reach or query the store is raised as ``StoreError`` so that
callers can tell "the store is down" apart from "the tag is unknown".
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Protocol, runtime_checkable

from docinsight.models import KnowledgeEntry, Observation, PrescriptionEntry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """Raised when the store cannot be reached or a query fails."""
    pass


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be opened at startup."""
    pass


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------

@runtime_checkable
class ReferenceStore(Protocol):
    def resolve(self, tag_id: str) -> Optional[KnowledgeEntry]:
        """Return the entry for ``tag_id`` or None if no row matches."""
        ...

    def prescribed_drugs(self, patient_id: str) -> set[str]:
        """Return the drug ids scheduled for ``patient_id`` (empty if unknown)."""
        ...


@runtime_checkable
class LedgerStore(Protocol):
    def append(self, observation: Observation) -> None:
        ...

    def recent_by_type(
        self,
        employee_id: str,
        type: str,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> set[str]:
        """Distinct tag ids of ``type`` seen by the employee in ``[since, until]``."""
        ...

    def observations(self, employee_id: str) -> list[Observation]:
        """All observations for the employee, oldest first."""
        ...


@runtime_checkable
class HeadsetStore(ReferenceStore, LedgerStore, Protocol):
    """A single backend serving both reference lookups and the ledger."""


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------

def _as_utc(ts: datetime) -> datetime:
    # Naive datetimes are taken to be UTC.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _to_epoch(ts: datetime) -> float:
    return _as_utc(ts).timestamp()


def _from_epoch(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _in_range(ts: datetime, since: datetime, until: Optional[datetime]) -> bool:
    ts = _as_utc(ts)
    if ts < _as_utc(since):
        return False
    if until is not None and ts > _as_utc(until):
        return False
    return True


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryStore:
    """Reference data and an append-only ledger held in process memory.

    The ledger has no ``update()`` or ``delete()``; rows are partitioned by
    ``employee_id`` so one wearer's history never leaks into another's
    queries.
    """

    def __init__(
        self,
        entries: Iterable[KnowledgeEntry] = (),
        prescriptions: Iterable[PrescriptionEntry] = (),
    ) -> None:
        self._entries: dict[str, KnowledgeEntry] = {}
        self._prescriptions: dict[str, set[str]] = defaultdict(set)
        self._ledger: dict[str, list[Observation]] = defaultdict(list)
        self.seed(entries, prescriptions)

    def seed(
        self,
        entries: Iterable[KnowledgeEntry] = (),
        prescriptions: Iterable[PrescriptionEntry] = (),
    ) -> None:
        for entry in entries:
            self._entries[entry.tag_id] = entry
        for p in prescriptions:
            self._prescriptions[p.patient_id].add(p.drug_id)

    # -- reference --

    def resolve(self, tag_id: str) -> Optional[KnowledgeEntry]:
        return self._entries.get(tag_id)

    def prescribed_drugs(self, patient_id: str) -> set[str]:
        return set(self._prescriptions.get(patient_id, set()))

    # -- ledger --

    def append(self, observation: Observation) -> None:
        self._ledger[observation.employee_id].append(observation)

    def recent_by_type(
        self,
        employee_id: str,
        type: str,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> set[str]:
        return {
            obs.tag_id
            for obs in self._ledger.get(employee_id, [])
            if obs.type == type and _in_range(obs.timestamp, since, until)
        }

    def observations(self, employee_id: str) -> list[Observation]:
        rows = self._ledger.get(employee_id, [])
        return sorted(rows, key=lambda obs: _as_utc(obs.timestamp))

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._ledger.values())


# ---------------------------------------------------------------------------
# SQLite store
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS qr_lookup (
    qr_data TEXT PRIMARY KEY,
    type TEXT NOT NULL DEFAULT '',
    info TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS drug_admin_schedule (
    patient_id TEXT NOT NULL,
    drug_id TEXT NOT NULL,
    PRIMARY KEY (patient_id, drug_id)
);

CREATE TABLE IF NOT EXISTS view_field (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    employee_id TEXT NOT NULL,
    qr_data TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT '',
    info TEXT NOT NULL DEFAULT '',
    timestamp REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_view_field_employee_type_ts
    ON view_field (employee_id, type, timestamp);
"""

# Every column the store reads or writes, per table.
_SCHEMA_PROBES = (
    "SELECT qr_data, type, info FROM qr_lookup LIMIT 0",
    "SELECT patient_id, drug_id FROM drug_admin_schedule LIMIT 0",
    "SELECT id, employee_id, qr_data, type, info, timestamp FROM view_field LIMIT 0",
)


class SQLiteStore:
    """Reference store and view ledger backed by a single SQLite file.

    Calls are serialised with a lock so ticks for different employees that
    share one store never interleave writes.  ``timeout`` bounds how long a
    call waits on a locked database before failing with ``StoreError``.
    """

    def __init__(self, path: str | Path, timeout: float = 5.0) -> None:
        self._path = str(path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                self._path, timeout=timeout, check_same_thread=False
            )
            self._conn.execute("SELECT 1")
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Can't open database {self._path}: {e}") from e
        logger.info("Opened store %s", self._path)

    def _execute(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                rows = cursor.fetchall()
                self._conn.commit()
                return rows
            except sqlite3.Error as e:
                raise StoreError(f"Store query failed: {e}") from e

    def initialize_schema(self) -> None:
        """Create the lookup, schedule and ledger tables if missing."""
        with self._lock:
            try:
                self._conn.executescript(_SCHEMA)
            except sqlite3.Error as e:
                raise StoreError(f"Schema creation failed: {e}") from e

    def check_schema(self) -> None:
        """Raise ``StoreError`` unless every table and column in use is present."""
        for probe in _SCHEMA_PROBES:
            self._execute(probe)

    def seed(
        self,
        entries: Iterable[KnowledgeEntry] = (),
        prescriptions: Iterable[PrescriptionEntry] = (),
    ) -> None:
        """Insert or replace reference rows."""
        with self._lock:
            try:
                with self._conn:
                    self._conn.executemany(
                        "INSERT OR REPLACE INTO qr_lookup (qr_data, type, info) VALUES (?, ?, ?)",
                        [(e.tag_id, e.type, e.info) for e in entries],
                    )
                    self._conn.executemany(
                        "INSERT OR IGNORE INTO drug_admin_schedule (patient_id, drug_id) VALUES (?, ?)",
                        [(p.patient_id, p.drug_id) for p in prescriptions],
                    )
            except sqlite3.Error as e:
                raise StoreError(f"Seeding failed: {e}") from e

    # -- reference --

    def resolve(self, tag_id: str) -> Optional[KnowledgeEntry]:
        rows = self._execute(
            "SELECT info, type FROM qr_lookup WHERE qr_data = ?", (tag_id,)
        )
        if not rows:
            return None
        info, type_ = rows[0]
        return KnowledgeEntry(tag_id=tag_id, type=type_ or "", info=info or "")

    def prescribed_drugs(self, patient_id: str) -> set[str]:
        rows = self._execute(
            "SELECT drug_id FROM drug_admin_schedule WHERE patient_id = ?",
            (patient_id,),
        )
        return {row[0] for row in rows}

    # -- ledger --

    def append(self, observation: Observation) -> None:
        self._execute(
            "INSERT INTO view_field (employee_id, qr_data, type, info, timestamp) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                observation.employee_id,
                observation.tag_id,
                observation.type,
                observation.info,
                _to_epoch(observation.timestamp),
            ),
        )

    def recent_by_type(
        self,
        employee_id: str,
        type: str,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> set[str]:
        sql = (
            "SELECT DISTINCT qr_data FROM view_field "
            "WHERE employee_id = ? AND type = ? AND timestamp >= ?"
        )
        params: tuple = (employee_id, type, _to_epoch(since))
        if until is not None:
            sql += " AND timestamp <= ?"
            params += (_to_epoch(until),)
        return {row[0] for row in self._execute(sql, params)}

    def observations(self, employee_id: str) -> list[Observation]:
        rows = self._execute(
            "SELECT qr_data, type, info, timestamp FROM view_field "
            "WHERE employee_id = ? ORDER BY timestamp, id",
            (employee_id,),
        )
        return [
            Observation(
                employee_id=employee_id,
                tag_id=tag_id,
                type=type_,
                info=info,
                timestamp=_from_epoch(ts),
            )
            for tag_id, type_, info, ts in rows
        ]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_store(path: str | Path, timeout: float = 5.0, create: bool = False) -> SQLiteStore:
    """Open the headset store, optionally creating the schema.

    Raises:
        StoreUnavailableError: If the database cannot be opened or, when
            ``create`` is False, does not hold the expected tables.
    """
    path = Path(path)
    if not create and not path.exists():
        raise StoreUnavailableError(f"Database not found: {path}")

    store = SQLiteStore(path, timeout=timeout)
    if create:
        store.initialize_schema()
        return store

    try:
        store.check_schema()
    except StoreError as e:
        store.close()
        raise StoreUnavailableError(f"Database {path} is missing required tables: {e}") from e
    return store
