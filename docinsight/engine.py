"""
Observation-to-Alert Correlation Engine.

One synchronous tick per camera frame:

    decoded tag -> transition? -> resolve (+ ledger append)
                -> evaluate prescription rule if the tag is a patient
                -> frame output (display text, alert text)

At most one transition, one append and one evaluation happen per tick.
Values produced along the way are passed explicitly from step to step; the
only state carried between ticks is the detector's last tag, the current
display text and the current alert.

The alert is replaced whenever the wearer turns to a patient (re-evaluated)
or to any other non-empty tag (cleared).  A frame with nothing in view is
logged and blanks the info text but leaves the alert up.

**Error policy:**

* A store failure during resolution is logged; the frame shows no info and
  the previous alert stays up.  The tick loop keeps running.
* A store failure during evaluation is logged; the resolved info is shown
  and the previous alert stays up.  A lookup failure never clears an alert.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from docinsight.config import HeadsetConfig
from docinsight.ledger import ViewLedger
from docinsight.models import AlertResult, Resolution, utc_now
from docinsight.presentation import split_display_lines
from docinsight.resolver import KnowledgeResolver
from docinsight.rule_evaluator import EvaluationError, SafetyRuleEvaluator
from docinsight.store import HeadsetStore, LedgerStore, ReferenceStore, StoreError
from docinsight.transition import Transition, TransitionDetector

logger = logging.getLogger(__name__)


class FrameOutput:
    """What the presentation layer needs for one frame."""

    def __init__(
        self,
        display_text: str,
        display_lines: list[str],
        alert: AlertResult,
        transition: Optional[Transition] = None,
        resolution: Optional[Resolution] = None,
        error: str = "",
    ) -> None:
        self.display_text = display_text
        self.display_lines = display_lines
        self.alert = alert
        self.transition = transition
        self.resolution = resolution
        self.error = error

    @property
    def alert_text(self) -> str:
        return self.alert.message

    @property
    def triggered(self) -> bool:
        return self.alert.triggered

    def __repr__(self) -> str:
        return (
            f"FrameOutput(display_text={self.display_text!r}, "
            f"alert_text={self.alert_text!r}, transition={self.transition})"
        )


class CorrelationEngine:
    """Drives detection, resolution, logging and rule evaluation per frame."""

    def __init__(
        self,
        reference_store: ReferenceStore,
        ledger_store: LedgerStore,
        employee_id: str,
        window: timedelta,
        clock: Callable[[], datetime] = utc_now,
        delimiter: str = "|||",
    ) -> None:
        self._employee_id = employee_id
        self._clock = clock
        self._delimiter = delimiter

        self._detector = TransitionDetector()
        self._ledger = ViewLedger(ledger_store)
        self._resolver = KnowledgeResolver(reference_store, self._ledger, employee_id)
        self._evaluator = SafetyRuleEvaluator(
            reference_store, self._ledger, employee_id, window
        )

        self._display_text = ""
        self._alert = AlertResult.clear()

    @classmethod
    def from_config(
        cls,
        config: HeadsetConfig,
        store: HeadsetStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> "CorrelationEngine":
        """Build an engine over a store implementing both store interfaces."""
        return cls(
            reference_store=store,
            ledger_store=store,
            employee_id=config.employee_id,
            window=config.window,
            clock=clock,
            delimiter=config.display_delimiter,
        )

    # -- read-only state --

    @property
    def employee_id(self) -> str:
        return self._employee_id

    @property
    def ledger(self) -> ViewLedger:
        return self._ledger

    @property
    def alert(self) -> AlertResult:
        return self._alert

    @property
    def display_text(self) -> str:
        return self._display_text

    # -- tick --

    def tick(self, tag_id: str, now: Optional[datetime] = None) -> FrameOutput:
        """Process one frame's decoded tag.

        Args:
            tag_id: The frame's decoded tag, or "" when nothing is in view.
            now: Frame time; read from the engine clock when omitted.

        Returns:
            The ``FrameOutput`` for this frame.
        """
        transition = self._detector.observe(tag_id)
        if transition is None:
            return self._output()

        now = now if now is not None else self._clock()
        logger.debug("Transition %r -> %r", transition.previous, transition.tag_id)

        try:
            resolution = self._resolver.resolve(transition.tag_id, now)
        except StoreError as e:
            logger.error("Resolution failed for tag %r: %s", transition.tag_id, e)
            self._display_text = ""
            return self._output(transition=transition, error=str(e))

        self._display_text = resolution.info

        if not resolution.is_patient:
            # An empty frame leaves the alert up; any other tag replaces it.
            if transition.tag_id:
                self._alert = AlertResult.clear()
            return self._output(transition=transition, resolution=resolution)

        try:
            self._alert = self._evaluator.evaluate(resolution.tag_id, now)
        except EvaluationError as e:
            logger.error("Keeping previous alert state; rule evaluation failed: %s", e)
            return self._output(transition=transition, resolution=resolution, error=str(e))

        return self._output(transition=transition, resolution=resolution)

    def _output(self, **kwargs) -> FrameOutput:
        return FrameOutput(
            display_text=self._display_text,
            display_lines=split_display_lines(self._display_text, self._delimiter),
            alert=self._alert,
            **kwargs,
        )
