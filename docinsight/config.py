"""
Headset Configuration and Reference-Data Loading.

A running headset serves exactly one wearer.  Its identity, the camera to
read from, the store location and the trailing window used by the safety
rule are fixed at startup and treated as constants for the lifetime of the
process.  This module holds those settings as a validated pydantic model
and provides YAML loaders for both the settings and the reference data
(tag meanings and prescriptions) used to seed a store.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from docinsight.models import KnowledgeEntry, PrescriptionEntry


# ---------------------------------------------------------------------------
# Headset configuration model
# ---------------------------------------------------------------------------

class HeadsetConfig(BaseModel):
    """Startup configuration for a single headset."""

    employee_id: str = Field(
        ...,
        min_length=1,
        description=(
            "Identity of the wearer this headset is linked to.  Every "
            "observation is recorded under this key, and the safety rule only "
            "considers drugs viewed by this employee."
        ),
    )
    camera_id: int = Field(
        default=0,
        ge=0,
        description="Video capture device index.",
    )
    database_path: Path = Field(
        default=Path("qrdb.db"),
        description="SQLite file holding tag meanings, prescriptions and the view ledger.",
    )
    window_seconds: float = Field(
        default=15.0,
        gt=0,
        description=(
            "Length of the trailing window, in seconds, ending at evaluation "
            "time.  Drugs viewed inside it are checked against the patient's "
            "prescriptions."
        ),
    )
    store_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description=(
            "Upper bound on how long a store call may block a frame.  A call "
            "exceeding it is reported as a lookup failure."
        ),
    )
    display_delimiter: str = Field(
        default="|||",
        min_length=1,
        description="Separator splitting a tag's info text into display lines.",
    )
    blink_every_n_frames: int = Field(
        default=10,
        ge=2,
        description="An active alert is drawn in the normal colour once every N frames.",
    )
    frame_delay_ms: int = Field(
        default=5,
        ge=1,
        description="Milliseconds each frame is shown before polling the keyboard.",
    )
    window_title: str = Field(default="Doc InSight")

    @field_validator("employee_id")
    @classmethod
    def employee_id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("employee_id must not be blank")
        return v

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


DEFAULT_CONFIG = HeadsetConfig(
    employee_id="12345",
    camera_id=0,
    database_path=Path("qrdb.db"),
    window_seconds=15.0,
)
"""Settings matching the original single-headset deployment."""


# ---------------------------------------------------------------------------
# YAML loaders
# ---------------------------------------------------------------------------

def _read_yaml_mapping(path: str | Path) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a YAML mapping at the top level.")
    return raw


def load_config_from_yaml(path: str | Path) -> HeadsetConfig:
    """Load headset settings from a YAML file.

    Example YAML structure::

        headset:
          employee_id: "12345"
          camera_id: 0
          database_path: "qrdb.db"
          window_seconds: 15

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the ``headset`` key is missing or not a mapping.
        pydantic.ValidationError: If any setting fails validation.
    """
    raw = _read_yaml_mapping(path)
    if "headset" not in raw:
        raise ValueError("YAML file must contain a top-level 'headset' key.")
    if not isinstance(raw["headset"], dict):
        raise ValueError("'headset' must be a mapping of settings.")
    return HeadsetConfig(**raw["headset"])


def load_reference_data_from_yaml(
    path: str | Path,
) -> tuple[list[KnowledgeEntry], list[PrescriptionEntry]]:
    """Load tag meanings and prescriptions used to seed a store.

    Example YAML structure::

        tags:
          - tag_id: "PAT1"
            type: "patient"
            info: "Jane Doe|||Room 12"
        prescriptions:
          - patient_id: "PAT1"
            drug_id: "DRUGA"

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If ``tags`` is missing or either section is malformed.
        pydantic.ValidationError: If an entry fails validation.
    """
    raw = _read_yaml_mapping(path)
    if "tags" not in raw:
        raise ValueError("YAML file must contain a top-level 'tags' key.")

    tags_data = raw["tags"] or []
    prescriptions_data = raw.get("prescriptions") or []
    if not isinstance(tags_data, list):
        raise ValueError("'tags' must be a list of tag objects.")
    if not isinstance(prescriptions_data, list):
        raise ValueError("'prescriptions' must be a list of prescription objects.")

    entries: list[KnowledgeEntry] = []
    for idx, item in enumerate(tags_data):
        if not isinstance(item, dict):
            raise ValueError(f"Tag entry at index {idx} must be a mapping.")
        # Tag payloads like 12345 come back from YAML as ints.
        item = {k: str(v) if v is not None else "" for k, v in item.items()}
        entries.append(KnowledgeEntry(**item))

    prescriptions: list[PrescriptionEntry] = []
    for idx, item in enumerate(prescriptions_data):
        if not isinstance(item, dict):
            raise ValueError(f"Prescription entry at index {idx} must be a mapping.")
        item = {k: str(v) for k, v in item.items()}
        prescriptions.append(PrescriptionEntry(**item))

    return entries, prescriptions
