"""
tests/test_exports/test_csv_export.py — Semicolon CSV with BOM.
"""

from __future__ import annotations

from datetime import date

from frequence_shared.models import TexteExport
from frequence_pipeline.exports.csv import (
    BOM,
    csv_filename,
    export_textes_to_csv,
    render_csv,
    textes_frame,
)

HEADER = "Titre;Type;Marche;Ville;Région;Contenu;Date de création"


def test_bom_and_bare_header(sample_textes):
    text = render_csv(sample_textes)
    assert text.startswith(BOM)
    assert text[len(BOM):].split("\n", 1)[0] == HEADER


def test_rows_quoted_with_french_dates(sample_textes):
    lines = render_csv(sample_textes[:1]).split("\n")
    assert lines[1] == (
        '"Le fleuve respire";"poeme";"Marche des Berges";"BORDEAUX";'
        '"Nouvelle-Aquitaine";"<p>Le courant <em>lent</em> sous le pont</p><p>et la berge</p>";'
        '"20/06/2025"'
    )


def test_embedded_quotes_doubled_and_missing_fields_empty():
    texte = TexteExport(id="x", titre='Le "sage"', contenu="a;b", type_texte="fable")
    line = render_csv([texte]).split("\n")[1]
    assert line == '"Le ""sage""";"fable";"";"";"";"a;b";""'


def test_frame_shape(sample_textes):
    frame = textes_frame(sample_textes)
    assert frame.shape == (3, 7)
    assert frame["Date de création"].to_list() == ["20/06/2025", "21/06/2025", ""]


def test_empty_export_is_header_only():
    assert render_csv([]) == f"{BOM}{HEADER}\n"


def test_bytes_are_utf8_with_bom(sample_textes):
    data = export_textes_to_csv(sample_textes)
    assert data.startswith(b"\xef\xbb\xbf")
    assert "Région".encode() in data


def test_csv_filename():
    assert csv_filename(date(2025, 6, 14)) == "textes_export_2025-06-14.csv"
