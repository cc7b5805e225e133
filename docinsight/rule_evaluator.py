"""
Safety Rule Evaluator -- Prescription Mismatch.

When the wearer looks at a patient, every drug the same wearer looked at
within the trailing window must be on that patient's administration
schedule.  Any drug that is not raises an alert.

The result is derived state: a pure function of the patient id, the
patient's prescriptions and the wearer's recent drug observations at the
evaluation time.

**Fail-safe:** a store failure during evaluation raises
``EvaluationError``.  It is never reported as "no alert", so callers keep
whatever alert they were already showing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from docinsight.ledger import ViewLedger
from docinsight.models import ALERT_MESSAGE, AlertResult, TagType
from docinsight.store import ReferenceStore, StoreError

logger = logging.getLogger(__name__)


class EvaluationError(Exception):
    """Raised when the rule cannot be evaluated because a lookup failed."""
    pass


class SafetyRuleEvaluator:
    """Evaluates the prescription rule for one wearer."""

    def __init__(
        self,
        store: ReferenceStore,
        ledger: ViewLedger,
        employee_id: str,
        window: timedelta,
    ) -> None:
        if window <= timedelta(0):
            raise ValueError(f"window must be positive, got {window}")
        self._store = store
        self._ledger = ledger
        self._employee_id = employee_id
        self._window = window

    def evaluate(self, patient_id: str, now: datetime) -> AlertResult:
        """Check recently viewed drugs against ``patient_id``'s prescriptions.

        Args:
            patient_id: The patient tag currently in view.
            now: Evaluation time; the window is ``[now - W, now]``.

        Returns:
            An ``AlertResult``.  ``triggered`` is True when at least one
            recently viewed drug is not prescribed; ``mismatched_drugs``
            lists every such drug.

        Raises:
            EvaluationError: If either lookup fails.
        """
        try:
            prescribed = self._store.prescribed_drugs(patient_id)
        except StoreError as e:
            raise EvaluationError(
                f"Prescription lookup failed for patient {patient_id!r}: {e}"
            ) from e

        try:
            recent = self._ledger.query_window(
                self._employee_id,
                TagType.DRUG.value,
                now - self._window,
                until=now,
            )
        except StoreError as e:
            raise EvaluationError(
                f"Recent drug lookup failed for employee {self._employee_id!r}: {e}"
            ) from e

        mismatched = sorted(recent - prescribed)
        if not mismatched:
            return AlertResult(patient_id=patient_id)

        logger.warning(
            "Employee %s viewed drug(s) %s not prescribed to patient %s",
            self._employee_id, ", ".join(mismatched), patient_id,
        )
        return AlertResult(
            triggered=True,
            message=ALERT_MESSAGE,
            patient_id=patient_id,
            mismatched_drugs=mismatched,
        )
