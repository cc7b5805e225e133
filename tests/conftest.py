"""Shared fixtures: a synthetic ward and a store that can be made to fail."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from docinsight.models import KnowledgeEntry, PrescriptionEntry
from docinsight.store import InMemoryStore, StoreError

T0 = datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)

WARD_TAGS = [
    KnowledgeEntry(tag_id="PAT1", type="patient", info="Synthetic Person A|||Room 12"),
    KnowledgeEntry(tag_id="PAT2", type="patient", info="Synthetic Person B|||Room 14"),
    KnowledgeEntry(tag_id="DRUGA", type="drug", info="Drug A"),
    KnowledgeEntry(tag_id="DRUGB", type="drug", info="Drug B"),
    KnowledgeEntry(tag_id="DRUGC", type="drug", info="Drug C"),
    KnowledgeEntry(tag_id="DRUGX", type="drug", info="Drug X"),
    KnowledgeEntry(tag_id="CART7", type="equipment", info="Medication cart 7"),
]

WARD_PRESCRIPTIONS = [
    PrescriptionEntry(patient_id="PAT1", drug_id="DRUGA"),
    PrescriptionEntry(patient_id="PAT1", drug_id="DRUGB"),
    PrescriptionEntry(patient_id="PAT2", drug_id="DRUGX"),
]


class FlakyStore(InMemoryStore):
    """In-memory store whose individual calls can be switched to fail."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail_resolve = False
        self.fail_prescriptions = False
        self.fail_recent = False
        self.fail_append = False

    def resolve(self, tag_id):
        if self.fail_resolve:
            raise StoreError("simulated resolve failure")
        return super().resolve(tag_id)

    def prescribed_drugs(self, patient_id):
        if self.fail_prescriptions:
            raise StoreError("simulated prescription lookup failure")
        return super().prescribed_drugs(patient_id)

    def recent_by_type(self, employee_id, type, since, until=None):
        if self.fail_recent:
            raise StoreError("simulated ledger query failure")
        return super().recent_by_type(employee_id, type, since, until)

    def append(self, observation):
        if self.fail_append:
            raise StoreError("simulated ledger write failure")
        super().append(observation)


@pytest.fixture
def ward_store() -> FlakyStore:
    return FlakyStore(WARD_TAGS, WARD_PRESCRIPTIONS)
