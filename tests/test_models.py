"""
Tests for docinsight.models -- Reference, Ledger and Rule Models.
"""

import pytest
from pydantic import ValidationError

from docinsight.models import (
    AlertResult,
    KnowledgeEntry,
    Observation,
    PrescriptionEntry,
    Resolution,
    TagType,
)


class TestResolution:
    def test_unresolved_has_empty_fields(self):
        r = Resolution.unresolved("X1")
        assert r.tag_id == "X1"
        assert r.type == ""
        assert r.info == ""
        assert r.resolved is False
        assert not r.is_patient

    def test_from_entry(self):
        entry = KnowledgeEntry(tag_id="PAT1", type=TagType.PATIENT.value, info="A")
        r = Resolution.from_entry(entry)
        assert r.resolved is True
        assert r.is_patient

    def test_generic_type_is_not_patient(self):
        r = Resolution.from_entry(KnowledgeEntry(tag_id="C", type="equipment"))
        assert r.resolved is True
        assert not r.is_patient


class TestReferenceModels:
    def test_knowledge_entry_requires_tag(self):
        with pytest.raises(ValidationError):
            KnowledgeEntry(tag_id="")

    def test_prescription_requires_both_ids(self):
        with pytest.raises(ValidationError):
            PrescriptionEntry(patient_id="PAT1", drug_id="")

    def test_observation_requires_employee(self):
        with pytest.raises(ValidationError):
            Observation(employee_id="", tag_id="PAT1")

    def test_observation_default_timestamp_is_utc(self):
        obs = Observation(employee_id="e1", tag_id="PAT1")
        assert obs.timestamp.tzinfo is not None


class TestAlertResult:
    def test_clear_is_not_triggered(self):
        alert = AlertResult.clear()
        assert alert.triggered is False
        assert alert.message == ""
        assert alert.mismatched_drugs == []

    def test_alert_is_immutable(self):
        alert = AlertResult(triggered=True, message="x")
        with pytest.raises(ValidationError):
            alert.triggered = False
