"""Command line entry point: fetch a shelter's pets and write the JSON artifact."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from src.config.logger_config import logger
from src.config.settings import load_settings
from src.pets.application.workflows.update_pets import UpdateWorkflowConfig
from src.pets.domain.errors import PetsSyncError
from src.pets.domain.models import UpdateSummary
from src.pets.update import run_update

app = typer.Typer(
    name="update-pets",
    help="Fetch pets from Adoptapet API and write to JSON file.",
    add_completion=False,
)


def echo_summary(summary: UpdateSummary) -> None:
    typer.echo(f"Fetched {summary.total} pets from listing")
    for name in summary.without_photo_names:
        typer.echo(f"{name} had no photo")
    typer.echo(f"{summary.total} pets total, {summary.with_photo} with photos")
    breakdown = summary.by_type
    typer.echo(f"Breakdown: {breakdown.dogs} dogs, {breakdown.cats} cats, {breakdown.other} other")
    typer.echo(f"Wrote {summary.total} pets to {summary.output_path}")


@app.command()
def update(
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Adoptapet API key [env: ADOPTAPET_API_KEY]."),
    shelter_id: Optional[str] = typer.Option(None, "--shelter-id", help="Shelter ID [env: SHELTER_ID, default: 83349]."),
    output: Optional[Path] = typer.Option(
        None,
        "-o",
        "--output",
        help="Output JSON file path [env: PETS_OUTPUT, default: data/pets.json].",
    ),
    photo_metadata: bool = typer.Option(
        False,
        "--photo-metadata/--no-photo-metadata",
        help="Also fetch original dimensions for every photo.",
    ),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a progress bar for detail fetches."),
) -> None:
    """Fetch pets from Adoptapet API and write to JSON file."""
    settings = load_settings()
    api_key = api_key or settings.api_key
    if not api_key:
        typer.echo("Error: an API key is required (--api-key or ADOPTAPET_API_KEY).", err=True)
        raise typer.Exit(code=2)

    try:
        summary = run_update(
            api_key=api_key,
            shelter_id=shelter_id or settings.shelter_id,
            output_path=output or Path(settings.output_path),
            base_url=settings.base_url,
            workflow_config=UpdateWorkflowConfig(fetch_photo_metadata=photo_metadata),
            show_progress=progress,
        )
    except PetsSyncError as exc:
        logger.error("Update failed: {}", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    echo_summary(summary)


if __name__ == "__main__":
    app()
