"""
Tests for docinsight.rule_evaluator -- Prescription Mismatch Rule.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from docinsight.ledger import ViewLedger
from docinsight.models import ALERT_MESSAGE
from docinsight.rule_evaluator import EvaluationError, SafetyRuleEvaluator

from conftest import T0

W = timedelta(seconds=15)


def _evaluator(store, employee_id: str = "e1") -> tuple[SafetyRuleEvaluator, ViewLedger]:
    ledger = ViewLedger(store)
    return SafetyRuleEvaluator(store, ledger, employee_id, W), ledger


class TestSafetyRuleEvaluator:
    def test_no_drugs_viewed_no_alert(self, ward_store):
        evaluator, _ = _evaluator(ward_store)
        result = evaluator.evaluate("PAT1", T0)
        assert result.triggered is False
        assert result.message == ""
        assert result.mismatched_drugs == []

    def test_prescribed_drugs_no_alert(self, ward_store):
        evaluator, ledger = _evaluator(ward_store)
        ledger.append("e1", "DRUGA", "drug", "", T0)
        ledger.append("e1", "DRUGB", "drug", "", T0 + timedelta(seconds=2))
        result = evaluator.evaluate("PAT1", T0 + timedelta(seconds=5))
        assert result.triggered is False

    def test_unprescribed_drug_in_window_triggers(self, ward_store):
        """Prescribed {A, B}; A viewed outside the window, C inside."""
        evaluator, ledger = _evaluator(ward_store)
        now = T0 + timedelta(seconds=60)
        ledger.append("e1", "DRUGA", "drug", "", now - timedelta(seconds=30))
        ledger.append("e1", "DRUGC", "drug", "", now - timedelta(seconds=5))
        result = evaluator.evaluate("PAT1", now)
        assert result.triggered is True
        assert result.message == ALERT_MESSAGE
        assert result.mismatched_drugs == ["DRUGC"]
        assert result.patient_id == "PAT1"

    def test_drug_outside_window_ignored(self, ward_store):
        evaluator, ledger = _evaluator(ward_store)
        now = T0 + timedelta(seconds=60)
        ledger.append("e1", "DRUGX", "drug", "", now - timedelta(seconds=16))
        assert evaluator.evaluate("PAT1", now).triggered is False

    def test_window_start_is_inclusive(self, ward_store):
        evaluator, ledger = _evaluator(ward_store)
        now = T0 + timedelta(seconds=60)
        ledger.append("e1", "DRUGX", "drug", "", now - W)
        assert evaluator.evaluate("PAT1", now).triggered is True

    def test_just_outside_window_start_excluded(self, ward_store):
        evaluator, ledger = _evaluator(ward_store)
        now = T0 + timedelta(seconds=60)
        ledger.append("e1", "DRUGX", "drug", "", now - W - timedelta(milliseconds=1))
        assert evaluator.evaluate("PAT1", now).triggered is False

    def test_all_mismatches_enumerated(self, ward_store):
        evaluator, ledger = _evaluator(ward_store)
        ledger.append("e1", "DRUGX", "drug", "", T0)
        ledger.append("e1", "DRUGA", "drug", "", T0)
        ledger.append("e1", "DRUGC", "drug", "", T0)
        result = evaluator.evaluate("PAT1", T0 + timedelta(seconds=1))
        assert result.triggered is True
        assert result.mismatched_drugs == ["DRUGC", "DRUGX"]

    def test_unknown_patient_means_nothing_prescribed(self, ward_store):
        evaluator, ledger = _evaluator(ward_store)
        ledger.append("e1", "DRUGA", "drug", "", T0)
        result = evaluator.evaluate("PAT404", T0 + timedelta(seconds=1))
        assert result.triggered is True
        assert result.mismatched_drugs == ["DRUGA"]

    def test_other_wearers_drugs_do_not_count(self, ward_store):
        evaluator, ledger = _evaluator(ward_store, employee_id="e1")
        ledger.append("e2", "DRUGX", "drug", "", T0)
        assert evaluator.evaluate("PAT1", T0 + timedelta(seconds=1)).triggered is False

    def test_prescription_lookup_failure_raises(self, ward_store):
        evaluator, ledger = _evaluator(ward_store)
        ledger.append("e1", "DRUGX", "drug", "", T0)
        ward_store.fail_prescriptions = True
        with pytest.raises(EvaluationError):
            evaluator.evaluate("PAT1", T0 + timedelta(seconds=1))

    def test_ledger_query_failure_raises(self, ward_store):
        evaluator, _ = _evaluator(ward_store)
        ward_store.fail_recent = True
        with pytest.raises(EvaluationError):
            evaluator.evaluate("PAT1", T0)

    def test_non_positive_window_rejected(self, ward_store):
        with pytest.raises(ValueError):
            SafetyRuleEvaluator(ward_store, ViewLedger(ward_store), "e1", timedelta(0))
