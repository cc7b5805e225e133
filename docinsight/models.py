"""
Core data models for Doc InSight.

Reference data (``KnowledgeEntry``, ``PrescriptionEntry``) is owned by the
external store and is read-only to the engine.  ``Observation`` records are
created by the engine, one per detected tag transition, and are never
updated afterwards.  ``AlertResult`` is derived state and is never persisted.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TagType(str, enum.Enum):
    """Tag categories the safety rule cares about.

    The stored ``type`` column is an open label set; any other label is
    treated generically (displayed and logged, never evaluated).
    """

    PATIENT = "patient"
    DRUG = "drug"


ALERT_MESSAGE = "Warning! Drug has not been prescribed to this patient."


def utc_now() -> datetime:
    """Default clock for the engine."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

class KnowledgeEntry(BaseModel):
    """What a tag means: its category and descriptive text."""

    model_config = ConfigDict(frozen=True)

    tag_id: str = Field(
        ...,
        min_length=1,
        description="Decoded tag payload, e.g. the QR code contents.",
    )
    type: str = Field(
        default="",
        description="Category label ('patient', 'drug', or any other label).",
    )
    info: str = Field(
        default="",
        description="Free-form display text; '|||' separates display lines.",
    )


class PrescriptionEntry(BaseModel):
    """One drug on a patient's administration schedule."""

    model_config = ConfigDict(frozen=True)

    patient_id: str = Field(..., min_length=1)
    drug_id: str = Field(..., min_length=1)


class Resolution(BaseModel):
    """Outcome of resolving a tag.

    An unresolved tag is a valid outcome, not an error: ``resolved`` is
    False and ``type``/``info`` are empty.
    """

    model_config = ConfigDict(frozen=True)

    tag_id: str
    type: str = ""
    info: str = ""
    resolved: bool = False

    @classmethod
    def unresolved(cls, tag_id: str) -> "Resolution":
        return cls(tag_id=tag_id)

    @classmethod
    def from_entry(cls, entry: KnowledgeEntry) -> "Resolution":
        return cls(tag_id=entry.tag_id, type=entry.type, info=entry.info, resolved=True)

    @property
    def is_patient(self) -> bool:
        return self.type == TagType.PATIENT.value


# ---------------------------------------------------------------------------
# Ledger records
# ---------------------------------------------------------------------------

class Observation(BaseModel):
    """A single "employee saw this tag at this time" record.

    Frozen: once appended to the view ledger an observation cannot change.
    """

    model_config = ConfigDict(frozen=True)

    employee_id: str = Field(
        ...,
        min_length=1,
        description="Wearer identity; the isolation key of the ledger.",
    )
    tag_id: str = Field(
        default="",
        description="Tag payload; empty when the transition was to 'nothing in view'.",
    )
    type: str = Field(
        default="",
        description="Resolved category, empty when the tag did not resolve.",
    )
    info: str = Field(default="")
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the transition was observed (supplied by the engine clock).",
    )


# ---------------------------------------------------------------------------
# Rule output
# ---------------------------------------------------------------------------

class AlertResult(BaseModel):
    """Result of evaluating the prescription rule for one patient view."""

    model_config = ConfigDict(frozen=True)

    triggered: bool = False
    message: str = ""
    patient_id: str = ""
    mismatched_drugs: list[str] = Field(
        default_factory=list,
        description="Recently viewed drugs that are not prescribed to the patient (sorted).",
    )

    @classmethod
    def clear(cls) -> "AlertResult":
        return cls()
