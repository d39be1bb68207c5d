"""
exports/csv.py — Spreadsheet export of the literary texts.

Semicolon separated, every data cell double-quoted (embedded quotes
doubled), UTF-8 with a BOM so Excel opens accents correctly, creation
date as dd/mm/yyyy.

Usage:
    from frequence_pipeline.exports.csv import export_textes_to_csv, csv_filename

    Path(csv_filename()).write_bytes(export_textes_to_csv(textes))
"""

from __future__ import annotations

import io
from collections.abc import Sequence
from datetime import date

import polars as pl

from frequence_shared.models.textes import TexteExport
from frequence_shared.time_utils import format_french_short_date

CSV_HEADERS: tuple[str, ...] = (
    "Titre", "Type", "Marche", "Ville", "Région", "Contenu", "Date de création",
)
SEPARATOR = ";"
BOM = "\ufeff"


def csv_filename(day: date | None = None) -> str:
    return f"textes_export_{(day or date.today()).isoformat()}.csv"


def textes_frame(textes: Sequence[TexteExport]) -> pl.DataFrame:
    rows = [
        [
            texte.titre,
            texte.type_texte,
            texte.marche_nom or "",
            texte.marche_ville or "",
            texte.marche_region or "",
            texte.contenu,
            format_french_short_date(texte.created_at),
        ]
        for texte in textes
    ]
    return pl.DataFrame(rows, schema={h: pl.Utf8 for h in CSV_HEADERS}, orient="row")


def render_csv(textes: Sequence[TexteExport]) -> str:
    """CSV text with a bare header line and quoted data cells."""
    buf = io.BytesIO()
    textes_frame(textes).write_csv(
        buf,
        separator=SEPARATOR,
        quote_style="always",
        include_header=False,
    )
    header = SEPARATOR.join(CSV_HEADERS)
    body = buf.getvalue().decode()
    return f"{BOM}{header}\n{body}"


def export_textes_to_csv(textes: Sequence[TexteExport]) -> bytes:
    return render_csv(textes).encode("utf-8")
