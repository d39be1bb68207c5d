"""
cli.py — Click CLI entrypoint for the collection and export workers.

Usage:
    frequence collect --types biodiversity,weather --region Nouvelle-Aquitaine
    frequence step biodiversity --log-id <uuid> --marche-id <uuid> --lat 44.8 --lon -0.57
    frequence export word --out manuscrit.docx --title "Dordogne" --by marche
    frequence export epub --preset frequence_vivant --title "Carnets de la Dordogne"
    frequence export csv --out textes.csv --marche-id <uuid> --marche-id <uuid>
    frequence status
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
import structlog

from frequence_shared.config import settings
from frequence_shared.constants import COLLECTION_TYPES

log = structlog.get_logger(__name__)


def _split_csv(value: str | None) -> list[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--log-format",
    default=settings.log_format,
    type=click.Choice(["json", "console"]),
    help="Log renderer",
)
def main(log_level: str, log_format: str) -> None:
    """La Fréquence du Vivant collection and export workers."""
    from frequence_pipeline.utils.logging import configure_logging

    configure_logging(log_level, log_format)


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--types",
    "types_",
    default=",".join(COLLECTION_TYPES),
    show_default=True,
    help="Comma-separated collection types",
)
@click.option("--mode", type=click.Choice(["manual", "scheduled"]), default="manual")
@click.option("--ids", default=None, help="Comma-separated marche ids")
@click.option("--region", default=None)
@click.option("--departement", default=None)
def collect(
    types_: str,
    mode: str,
    ids: str | None,
    region: str | None,
    departement: str | None,
) -> None:
    """Run a batch collection in the foreground."""
    from pydantic import ValidationError

    from frequence_shared.models import BatchCollectionRequest, MarchesFilter
    from frequence_pipeline.pipelines import batch_collector

    marches_filter = MarchesFilter(ids=_split_csv(ids) or None, region=region, departement=departement)
    try:
        request = BatchCollectionRequest(
            collectionTypes=_split_csv(types_),
            mode=mode,
            marchesFilter=None if marches_filter.is_empty else marches_filter,
        )
    except ValidationError as exc:
        raise click.BadParameter(str(exc), param_hint="--types") from exc

    result = asyncio.run(batch_collector.run(request))
    click.echo(
        f"Collection {result.log_id}: {result.marches_processed}/{result.marches_total} marchés, "
        f"{result.errors_count} erreurs, {result.success_rate}% de réussite "
        f"({result.duration_seconds}s)"
    )


@main.command()
@click.argument("kind", type=click.Choice(["biodiversity", "real-estate"], case_sensitive=False))
@click.option("--log-id", required=True)
@click.option("--marche-id", required=True)
@click.option("--lat", "latitude", required=True, type=float)
@click.option("--lon", "longitude", required=True, type=float)
@click.option("--name", "marche_name", default=None, help="Marche name shown in progress")
def step(
    kind: str,
    log_id: str,
    marche_id: str,
    latitude: float,
    longitude: float,
    marche_name: str | None,
) -> None:
    """Collect one data type for one marche inside an existing collection log."""
    from frequence_shared.models import StepCollectionRequest
    from frequence_pipeline.pipelines import biodiversity_step, real_estate_step

    request = StepCollectionRequest(
        logId=log_id,
        marcheId=marche_id,
        latitude=latitude,
        longitude=longitude,
        marcheName=marche_name,
    )
    runner = biodiversity_step if kind.lower() == "biodiversity" else real_estate_step
    result = asyncio.run(runner.run(request))
    click.echo(result.to_response())
    if not result.success:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

@main.command()
@click.argument("fmt", type=click.Choice(["word", "pdf", "epub", "csv"], case_sensitive=False))
@click.option("--out", "out_path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--title", default=None, help="Document title")
@click.option("--by", "organization_mode", type=click.Choice(["type", "marche"]), default=None)
@click.option("--marche-id", "marche_ids", multiple=True, help="Restrict to these marches")
@click.option("--type", "types_", multiple=True, help="Restrict to these text types")
@click.option("--preset", default=None, help="PDF page preset or ePub artistic direction")
def export(
    fmt: str,
    out_path: Path | None,
    title: str | None,
    organization_mode: str | None,
    marche_ids: tuple[str, ...],
    types_: tuple[str, ...],
    preset: str | None,
) -> None:
    """Export the literary texts as Word, PDF, ePub or CSV."""
    from frequence_shared.models import EpubExportOptions, PdfExportOptions, WordExportOptions
    from frequence_pipeline import exports
    from frequence_pipeline.loaders.supabase_loader import SupabaseLoader

    textes = asyncio.run(SupabaseLoader().fetch_textes(marche_ids or None, types_ or None))
    if not textes:
        click.echo("No texts to export.", err=True)
        raise SystemExit(1)

    common = {}
    if organization_mode:
        common["organization_mode"] = organization_mode
    if title:
        common["title"] = title

    fmt = fmt.lower()
    if fmt == "word":
        options = WordExportOptions(**common)
        data = exports.export_textes_to_word(textes, options)
        default_name = exports.word_filename(options.title)
    elif fmt == "pdf":
        pdf_options = PdfExportOptions(preset=preset, **common)
        data = exports.export_textes_to_pdf(textes, pdf_options)
        default_name = exports.pdf_filename(pdf_options.title)
    elif fmt == "epub":
        if preset:
            common["format"] = preset
        epub_options = EpubExportOptions(**common)
        data = exports.export_textes_to_epub(textes, epub_options)
        default_name = exports.epub_filename(epub_options.title)
    else:
        data = exports.export_textes_to_csv(textes)
        default_name = exports.csv_filename()

    target = out_path or Path(default_name)
    target.write_bytes(data)
    log.info("export_written", format=fmt, path=str(target), textes=len(textes), bytes=len(data))
    click.echo(f"Wrote {len(textes)} texts to {target}")


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

@main.command()
@click.option("--limit", default=20, show_default=True)
def status(limit: int) -> None:
    """Show the most recent collection runs and their progress."""
    from frequence_pipeline.loaders.supabase_loader import SupabaseLoader
    from frequence_pipeline.progress import describe_progress

    click.echo("Collection runs:")
    try:
        logs = asyncio.run(SupabaseLoader().list_collection_logs(limit))
    except Exception as exc:
        click.echo(f"  Error fetching status: {exc}", err=True)
        raise SystemExit(1) from exc

    if not logs:
        click.echo("  No collection runs found.")
        return
    for row in logs:
        view = describe_progress(row)
        started = f"{row.started_at:%Y-%m-%d %H:%M:%S}" if row.started_at else ""
        status_emoji = {"completed": "✓", "failed": "✗", "running": "⟳", "pending": "…"}.get(
            row.status, "?"
        )
        click.echo(
            f"  {status_emoji} {row.id[:8]} {row.status:10s} "
            f"{view.progress:3d}%  {row.marches_processed}/{row.marches_total}  "
            f"{row.errors_count} err  {view.current_data_type}  "
            f"{started}"
        )


if __name__ == "__main__":
    main()
