"""
Tests for docinsight.resolver -- Knowledge Resolution with Ledger Side Effect.
"""

from __future__ import annotations

import pytest

from docinsight.ledger import ViewLedger
from docinsight.resolver import KnowledgeResolver
from docinsight.store import StoreError

from conftest import T0


def _resolver(store, employee_id: str = "e1") -> KnowledgeResolver:
    return KnowledgeResolver(store, ViewLedger(store), employee_id)


class TestKnowledgeResolver:
    def test_known_tag_resolves_and_is_logged(self, ward_store):
        resolution = _resolver(ward_store).resolve("PAT1", T0)
        assert resolution.resolved is True
        assert resolution.type == "patient"
        assert resolution.info == "Synthetic Person A|||Room 12"
        assert resolution.is_patient

        [obs] = ward_store.observations("e1")
        assert obs.tag_id == "PAT1"
        assert obs.type == "patient"
        assert obs.timestamp == T0

    def test_unknown_tag_is_unresolved_but_logged(self, ward_store):
        resolution = _resolver(ward_store).resolve("UNKNOWN42", T0)
        assert resolution.resolved is False
        assert resolution.type == ""
        assert resolution.info == ""

        [obs] = ward_store.observations("e1")
        assert obs.tag_id == "UNKNOWN42"
        assert obs.type == ""

    def test_empty_tag_is_logged(self, ward_store):
        resolution = _resolver(ward_store).resolve("", T0)
        assert resolution.resolved is False
        assert len(ward_store) == 1

    def test_each_call_appends_once(self, ward_store):
        resolver = _resolver(ward_store)
        for tag in ["PAT1", "DRUGA", "NOPE", "PAT1"]:
            resolver.resolve(tag, T0)
        assert len(ward_store) == 4

    def test_lookup_failure_is_not_an_unresolved_result(self, ward_store):
        ward_store.fail_resolve = True
        with pytest.raises(StoreError):
            _resolver(ward_store).resolve("PAT1", T0)

    def test_lookup_failure_still_records_the_view(self, ward_store):
        ward_store.fail_resolve = True
        with pytest.raises(StoreError):
            _resolver(ward_store).resolve("PAT1", T0)
        [obs] = ward_store.observations("e1")
        assert obs.tag_id == "PAT1"
        assert obs.type == ""

    def test_append_failure_propagates(self, ward_store):
        ward_store.fail_append = True
        with pytest.raises(StoreError):
            _resolver(ward_store).resolve("PAT1", T0)
