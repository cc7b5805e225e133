"""
Camera loop and on-frame overlay.

Reads frames from the headset camera with OpenCV, decodes barcodes with
pyzbar, feeds the last decoded payload to the correlation engine and draws
the resulting info lines and alert text on the frame.
"""

from __future__ import annotations

import logging

import cv2
from pyzbar import pyzbar

from docinsight.config import HeadsetConfig
from docinsight.engine import CorrelationEngine, FrameOutput
from docinsight.presentation import AlertPresentationState, TextStyle

logger = logging.getLogger(__name__)

# BGR
COLOR_NORMAL = (244, 69, 66)
COLOR_ALERT = (0, 0, 255)

_FONT = cv2.FONT_HERSHEY_COMPLEX_SMALL
_FONT_SCALE = 0.8
_INFO_ORIGIN = (15, 30)
_LINE_HEIGHT = 15
_ALERT_ORIGIN = (40, 440)


def decode_tag(frame) -> str:
    """Decode barcodes in a BGR frame; the last symbol found wins.

    Returns "" when the frame holds no readable symbol.
    """
    grayscale = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    tag = ""
    for symbol in pyzbar.decode(grayscale):
        tag = symbol.data.decode("utf-8", errors="replace")
    return tag


def _put_text(frame, text: str, origin: tuple[int, int], color: tuple[int, int, int]) -> None:
    cv2.putText(frame, text, origin, _FONT, _FONT_SCALE, color, 1, cv2.LINE_AA)


def draw_overlay(frame, output: FrameOutput, alert_style: TextStyle | None) -> None:
    """Write the info lines and, if any, the alert onto ``frame`` in place."""
    x, y = _INFO_ORIGIN
    for line in output.display_lines:
        _put_text(frame, line, (x, y), COLOR_NORMAL)
        y += _LINE_HEIGHT

    if alert_style is not None:
        color = COLOR_ALERT if alert_style == TextStyle.ALERT else COLOR_NORMAL
        _put_text(frame, output.alert_text, _ALERT_ORIGIN, color)


def run_camera_loop(engine: CorrelationEngine, config: HeadsetConfig) -> int:
    """Show the annotated camera feed until a key is pressed.

    Returns:
        The number of frames processed.
    """
    stream = cv2.VideoCapture(config.camera_id)
    if not stream.isOpened():
        logger.error("Error opening camera %d", config.camera_id)

    presentation = AlertPresentationState(config.blink_every_n_frames)
    frames = 0
    try:
        while True:
            ok, frame = stream.read()
            if not ok:
                logger.error("Camera %d returned no frame; stopping", config.camera_id)
                break

            output = engine.tick(decode_tag(frame))
            draw_overlay(frame, output, presentation.next_style(output.alert_text))
            frames += 1

            cv2.imshow(config.window_title, frame)
            if cv2.waitKey(config.frame_delay_ms) >= 0:
                break
    finally:
        stream.release()
        cv2.destroyAllWindows()

    logger.info("Camera loop stopped after %d frames", frames)
    return frames
