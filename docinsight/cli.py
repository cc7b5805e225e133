"""Command line interface for the Doc InSight headset.

Commands:
    init-db   Create the store schema, optionally seeding reference data.
    history   Show what an employee has viewed recently.
    run       Start the camera loop.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from docinsight.config import (
    DEFAULT_CONFIG,
    HeadsetConfig,
    load_config_from_yaml,
    load_reference_data_from_yaml,
)
from docinsight.engine import CorrelationEngine
from docinsight.ledger import ViewLedger
from docinsight.models import utc_now
from docinsight.store import StoreError, StoreUnavailableError, open_store

app = typer.Typer(
    name="docinsight",
    help="Doc InSight: QR-driven patient and drug awareness for a wearable camera",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


def _load_config(config_file: Optional[Path], **overrides) -> HeadsetConfig:
    """Load settings and apply command-line overrides, exiting on bad input."""
    try:
        config = load_config_from_yaml(config_file) if config_file else DEFAULT_CONFIG
        overrides = {k: v for k, v in overrides.items() if v is not None}
        # Rebuilt rather than copied so the overrides are validated too.
        return HeadsetConfig(**{**config.model_dump(), **overrides})
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]✗[/red] Invalid configuration: {e}")
        raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command("init-db")
def init_db(
    database: Path = typer.Argument(Path("qrdb.db"), help="SQLite file to create or update"),
    seed: Optional[Path] = typer.Option(
        None, "--seed", "-s", help="YAML file with 'tags' and 'prescriptions'", exists=True
    ),
) -> None:
    """Create the lookup, schedule and ledger tables."""
    try:
        with open_store(database, create=True) as store:
            if seed is not None:
                entries, prescriptions = load_reference_data_from_yaml(seed)
                store.seed(entries, prescriptions)
                console.print(
                    f"[green]✓[/green] Seeded {len(entries)} tags and "
                    f"{len(prescriptions)} prescriptions"
                )
    except (StoreError, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Store ready at {database}")


@app.command()
def history(
    employee_id: Optional[str] = typer.Option(None, "--employee", "-e", help="Employee to show"),
    seconds: Optional[float] = typer.Option(
        None, "--seconds", help="Only show observations from the last N seconds"
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True),
    database: Optional[Path] = typer.Option(None, "--database", "-d"),
) -> None:
    """Print an employee's view history."""
    config = _load_config(config_file, database_path=database)
    employee_id = employee_id or config.employee_id
    try:
        with open_store(config.database_path, timeout=config.store_timeout_seconds) as store:
            observations = ViewLedger(store).history(employee_id)
    except StoreError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    if seconds is not None:
        since = utc_now() - timedelta(seconds=seconds)
        observations = [o for o in observations if o.timestamp >= since]

    table = Table(title=f"View history for employee {employee_id}")
    table.add_column("Timestamp (UTC)")
    table.add_column("Tag")
    table.add_column("Type")
    table.add_column("Info")
    for obs in observations:
        table.add_row(
            obs.timestamp.isoformat(timespec="seconds"),
            obs.tag_id or "[dim](none)[/dim]",
            obs.type or "[dim]unresolved[/dim]",
            obs.info.replace(config.display_delimiter, " / "),
        )
    console.print(table)


@app.command()
def run(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True),
    database: Optional[Path] = typer.Option(None, "--database", "-d"),
    camera_id: Optional[int] = typer.Option(None, "--camera", help="Override the camera index"),
) -> None:
    """Start the headset camera loop."""
    config = _load_config(config_file, database_path=database, camera_id=camera_id)

    try:
        store = open_store(config.database_path, timeout=config.store_timeout_seconds)
    except StoreUnavailableError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    # cv2 and pyzbar are only needed by this command.
    from docinsight.capture import run_camera_loop

    engine = CorrelationEngine.from_config(config, store)
    logger.info(
        "Headset running for employee %s (window %.1fs)",
        config.employee_id, config.window_seconds,
    )
    with store:
        run_camera_loop(engine, config)


if __name__ == "__main__":
    app()
