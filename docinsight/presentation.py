"""Display-line segmentation and alert blink cadence."""

from __future__ import annotations

import enum


class TextStyle(str, enum.Enum):
    NORMAL = "NORMAL"
    ALERT = "ALERT"


def split_display_lines(text: str, delimiter: str = "|||") -> list[str]:
    """Split a tag's info text into display lines.

    Empty text yields a single empty line, matching what the overlay draws.
    """
    if not delimiter:
        raise ValueError("delimiter must not be empty")
    return text.split(delimiter)


class AlertPresentationState:
    """Frame-counter driven blink for an active alert.

    While an alert is shown the counter advances once per frame; every Nth
    frame the alert is drawn in the normal style, otherwise in the alert
    style.  The counter does not advance while no alert is shown.
    """

    def __init__(self, blink_every_n_frames: int = 10) -> None:
        if blink_every_n_frames < 2:
            raise ValueError("blink_every_n_frames must be >= 2")
        self._every = blink_every_n_frames
        self._frame_count = 0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def next_style(self, alert_text: str) -> TextStyle | None:
        """Style for this frame's alert text, or None when nothing is shown."""
        if not alert_text:
            return None
        self._frame_count += 1
        if self._frame_count % self._every != 0:
            return TextStyle.ALERT
        return TextStyle.NORMAL
