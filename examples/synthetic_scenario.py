"""
Synthetic Scenario: Medication Round Walkthrough
================================================

This script feeds a scripted sequence of decoded tags through the Doc
InSight correlation engine, using synthetic reference data and a simulated
clock instead of a camera.

Steps demonstrated:
  1. Load headset settings and reference data from YAML
  2. Seed an in-memory store
  3. Look at a patient with no drugs viewed yet (no alert)
  4. Look at a drug that is not prescribed to that patient
  5. Return to the patient inside the trailing window (alert)
  6. Let the window lapse and look at the patient again (alert clears)
  7. Print the wearer's view ledger

Usage:
    python -m examples.synthetic_scenario
    # or: python examples/synthetic_scenario.py
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from docinsight.config import HeadsetConfig, load_config_from_yaml, load_reference_data_from_yaml
from docinsight.engine import CorrelationEngine
from docinsight.presentation import AlertPresentationState
from docinsight.store import InMemoryStore


class SimulatedClock:
    """Clock the walkthrough advances by hand."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    def __call__(self) -> datetime:
        return self.now


def _banner(text: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {text}")
    print(f"{'=' * 60}\n")


def _show_frames(engine: CorrelationEngine, tag: str, frames: int, blink: AlertPresentationState) -> None:
    output = None
    for _ in range(frames):
        output = engine.tick(tag)
        blink.next_style(output.alert_text)
    print(f"Tag in view: {tag or '(nothing)'} for {frames} frames")
    for line in output.display_lines:
        print(f"  | {line}")
    if output.triggered:
        print(f"  ALERT: {output.alert_text}")
        print(f"  Not prescribed: {output.alert.mismatched_drugs}")
    else:
        print("  No alert.")


def main() -> None:
    _banner("Doc InSight Synthetic Scenario: Medication Round")
    print("All tags, patients and prescriptions in this demo are synthetic.\n")

    # ------------------------------------------------------------------
    # Step 1: Load settings and reference data
    # ------------------------------------------------------------------
    _banner("Step 1: Load Settings and Reference Data")

    here = Path(__file__).parent
    settings_yaml = here / "headset.yaml"
    if settings_yaml.exists():
        config = load_config_from_yaml(settings_yaml)
        print(f"Loaded settings for employee {config.employee_id}")
    else:
        config = HeadsetConfig(employee_id="demo_nurse", window_seconds=15)
        print(f"Created inline settings for employee {config.employee_id}")
    print(f"  Trailing window: {config.window_seconds}s")

    entries, prescriptions = load_reference_data_from_yaml(here / "ward_reference_data.yaml")
    print(f"Loaded {len(entries)} tags and {len(prescriptions)} prescriptions")

    # ------------------------------------------------------------------
    # Step 2: Build the engine
    # ------------------------------------------------------------------
    store = InMemoryStore(entries, prescriptions)
    clock = SimulatedClock(datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc))
    engine = CorrelationEngine.from_config(config, store, clock=clock)
    blink = AlertPresentationState(config.blink_every_n_frames)

    # ------------------------------------------------------------------
    # Step 3: Patient first
    # ------------------------------------------------------------------
    _banner("Step 2: Look at Patient PAT1")
    _show_frames(engine, "PAT1", 30, blink)

    # ------------------------------------------------------------------
    # Step 4: Unprescribed drug
    # ------------------------------------------------------------------
    _banner("Step 3: Pick Up DRUGX (prescribed to PAT2 only)")
    clock.advance(4)
    _show_frames(engine, "", 5, blink)
    clock.advance(1)
    _show_frames(engine, "DRUGX", 30, blink)

    # ------------------------------------------------------------------
    # Step 5: Back to the patient inside the window
    # ------------------------------------------------------------------
    _banner("Step 4: Return to PAT1 Within the Window")
    clock.advance(6)
    _show_frames(engine, "PAT1", 30, blink)

    # ------------------------------------------------------------------
    # Step 6: Window lapses
    # ------------------------------------------------------------------
    _banner("Step 5: Look Away, Wait, Return to PAT1")
    clock.advance(2)
    _show_frames(engine, "CART7", 10, blink)
    clock.advance(config.window_seconds + 1)
    _show_frames(engine, "PAT1", 10, blink)

    # ------------------------------------------------------------------
    # Step 7: Ledger
    # ------------------------------------------------------------------
    _banner("Step 6: View Ledger")
    for obs in engine.ledger.history(config.employee_id):
        print(
            f"  {obs.timestamp.isoformat(timespec='seconds')}  "
            f"{obs.tag_id or '(nothing)':<8} {obs.type or 'unresolved'}"
        )

    _banner("Scenario Complete")
    print("This demo exercised:")
    print("  - Settings and reference data loading from YAML")
    print("  - Transition detection over repeated frames")
    print("  - Tag resolution with an append-only view ledger")
    print("  - Prescription mismatch alert inside the trailing window")
    print()
    print("All data was synthetic.")


if __name__ == "__main__":
    main()
