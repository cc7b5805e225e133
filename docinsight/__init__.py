"""
Doc InSight
===========

Wearable-camera awareness for medication rounds.  QR tags on patients and
drugs are decoded from the headset's video feed, resolved to their meaning,
recorded in a per-wearer view ledger, and checked against a safety rule:
when the wearer looks at a patient, every drug they looked at within the
trailing window must be prescribed to that patient, otherwise an alert is
shown.
"""

__version__ = "0.2.0"
