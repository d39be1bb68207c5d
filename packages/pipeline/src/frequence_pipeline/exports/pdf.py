"""
exports/pdf.py — Print-ready PDF of the literary texts, rendered by WeasyPrint.

The book is produced as one HTML document with paged-media CSS:
  - @page size and margins from the options (presets fill them in), with
    inner and outer margins swapped between left and right pages
  - page numbers in the bottom margin unless page_numbering is "none"
  - front matter (cover, faux-titre, contents) and the colophon carry no
    number
  - the contents and the indexes use target-counter() so WeasyPrint
    resolves the page of every text anchor

Usage:
    from frequence_pipeline.exports.pdf import export_textes_to_pdf, pdf_filename

    data = export_textes_to_pdf(textes, PdfExportOptions(preset="collection_poche"))
    Path(pdf_filename("Dordogne")).write_bytes(data)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from html import escape

from frequence_shared.config import settings
from frequence_shared.models.textes import PdfExportOptions, TexteExport
from frequence_shared.time_utils import format_french_long_date
from frequence_pipeline.exports.grouping import (
    bookmark_id,
    fold_accents,
    group_by_marche,
    group_by_partie,
    group_by_type,
    has_partie_assignments,
    is_short_form,
    marche_key,
    short_title,
    sort_by_marche_date,
    type_label,
)
from frequence_pipeline.exports.html_content import paragraph_to_html, parse_html_content, to_title_case
from frequence_pipeline.exports.word import word_filename
from frequence_pipeline.utils.logging import get_logger

log = get_logger(__name__)

_BASE_CSS = """
body { font-family: "Times New Roman", Georgia, serif; font-size: 11pt; line-height: 1.5; color: #1a1a1a; }
h1, h2, h3 { font-weight: bold; page-break-after: avoid; }
.front, .colophon { page: front; }
.cover, .faux-titre, .partie { text-align: center; page-break-after: always; }
.cover { padding-top: 35%; }
.cover .author { font-size: 13pt; letter-spacing: 0.15em; text-transform: uppercase; margin-bottom: 3em; }
.cover .title { font-size: 22pt; text-transform: uppercase; margin: 0 0 0.5em; }
.cover .subtitle { font-size: 13pt; font-style: italic; color: #555; }
.cover .publisher { margin-top: 6em; font-size: 10pt; color: #888; }
.faux-titre { padding-top: 40%; font-size: 16pt; }
.toc, .index { page-break-after: always; }
.toc h1, .index h1 { font-size: 16pt; margin-bottom: 1.2em; }
.toc ul, .index ul { list-style: none; padding: 0; margin: 0 0 0.8em; }
.toc li, .index li { margin: 0.15em 0; }
.toc .group { font-weight: bold; margin-top: 0.8em; }
.toc .entry { padding-left: 1.2em; }
a.page-ref { color: inherit; text-decoration: none; }
a.page-ref::after { content: target-counter(attr(href), page); }
.partie { padding-top: 45%; }
.partie .numero { font-size: 30pt; color: #333; }
.partie .titre { font-size: 20pt; text-transform: uppercase; }
.partie .sous-titre { font-size: 14pt; font-style: italic; color: #666; }
.partie .rule { color: #aaa; margin-top: 1.5em; }
.section { page-break-before: always; }
.section > h1 { font-size: 15pt; border-bottom: 0.5pt solid #ccc; padding-bottom: 0.3em; margin-bottom: 0.2em; }
.section .date { font-size: 9pt; font-style: italic; color: #888; margin-bottom: 1.5em; }
.texte h2 { font-size: 12.5pt; margin: 1.6em 0 0.4em; }
.texte .ville { font-size: 10pt; font-style: italic; color: #888; margin-bottom: 0.8em; }
.texte p { margin: 0 0 0.3em; }
.texte .separator { text-align: center; color: #aaa; font-size: 8pt; margin: 1.2em 0 1.8em; }
.texte.short-form { page-break-before: always; page-break-after: always; padding-top: 35%; text-align: center; }
.texte.short-form h2 { font-size: 12pt; }
.texte.short-form p { font-style: italic; }
.colophon { page-break-before: always; padding-top: 50%; font-size: 9pt; color: #555; white-space: pre-line; }
.index h2 { font-size: 12pt; margin: 1em 0 0.3em; }
.index .detail { font-style: italic; color: #888; }
"""


def pdf_filename(title: str, day: date | None = None) -> str:
    return word_filename(title, day).removesuffix(".docx") + ".pdf"


def _mm(value: float) -> str:
    return f"{value:g}mm"


def page_css(options: PdfExportOptions) -> str:
    """@page rules for the size, binding margins and page numbers."""
    width, height = options.page_size_mm
    top, bottom = _mm(options.margin_top_mm), _mm(options.margin_bottom_mm)
    inner, outer = _mm(options.margin_inner_mm), _mm(options.margin_outer_mm)
    numbering = (
        "@bottom-center { content: counter(page); font-size: 9pt; color: #666; }"
        if options.page_numbering == "arabic"
        else ""
    )
    return (
        f"@page {{ size: {_mm(width)} {_mm(height)}; margin: {top} {outer} {bottom} {inner}; {numbering} }}\n"
        f"@page :left {{ margin-left: {outer}; margin-right: {inner}; }}\n"
        f"@page :right {{ margin-left: {inner}; margin-right: {outer}; }}\n"
        "@page front { @bottom-center { content: none; } }\n"
    )


def colophon_text(options: PdfExportOptions, texte_count: int, day: date | None = None) -> str:
    if options.colophon_text:
        return options.colophon_text
    printed = format_french_long_date(day or date.today())
    # Drop the weekday: "Samedi 14 juin 2025" -> "14 juin 2025"
    printed = printed.split(" ", 1)[1] if " " in printed else printed
    return (
        f"Achevé d'imprimer le {printed}\n"
        f"pour le compte des Éditions {options.publisher or 'Auto-édition'}\n\n"
        f"Ce recueil contient {texte_count} textes poétiques.\n\n"
        "Mise en page réalisée avec La Fréquence du Vivant."
    )


class _BookRenderer:
    def __init__(self, options: PdfExportOptions) -> None:
        self.options = options
        self.parts: list[str] = []

    def add(self, markup: str) -> None:
        self.parts.append(markup)

    # -- front matter ----------------------------------------------------

    def cover(self) -> None:
        opts = self.options
        title, _, split_subtitle = opts.title.partition(" — ")
        subtitle = opts.subtitle or split_subtitle
        lines = [
            f'<p class="author">{escape(opts.author or settings.export_author)}</p>',
            f'<h1 class="title">{escape(title)}</h1>',
        ]
        if subtitle:
            lines.append(f'<p class="subtitle">{escape(subtitle)}</p>')
        if opts.publisher:
            lines.append(f'<p class="publisher">{escape(opts.publisher)}</p>')
        self.add(f'<section class="front cover">{"".join(lines)}</section>')

    def faux_titre(self) -> None:
        title = self.options.title.partition(" — ")[0]
        self.add(f'<section class="front faux-titre"><p>{escape(title)}</p></section>')

    def table_of_contents(self, sections: list[tuple[str, list[TexteExport]]]) -> None:
        items: list[str] = []
        for heading, textes in sections:
            items.append(f'<li class="group">{escape(heading)}</li>')
            for texte in textes:
                items.append(
                    f'<li class="entry">{escape(texte.titre)} '
                    f'<a class="page-ref" href="#{bookmark_id(texte)}"></a></li>'
                )
        self.add(
            '<section class="front toc"><h1>Table des matières</h1>'
            f'<ul>{"".join(items)}</ul></section>'
        )

    # -- body ------------------------------------------------------------

    def partie(self, numero_romain: str, titre: str, sous_titre: str | None) -> None:
        lines = [
            f'<p class="numero">{escape(numero_romain)}</p>',
            f'<h1 class="titre">{escape(titre)}</h1>',
        ]
        if sous_titre:
            lines.append(f'<p class="sous-titre">{escape(sous_titre)}</p>')
        lines.append('<p class="rule">───────────────────</p>')
        self.add(f'<section class="partie">{"".join(lines)}</section>')

    def texte(self, texte: TexteExport) -> str:
        short_form = is_short_form(texte)
        title = f"Fable : {texte.titre}" if fold_accents(texte.type_texte) == "fable" else texte.titre
        lines = [f'<h2 id="{bookmark_id(texte)}">{escape(title)}</h2>']

        if self.options.include_metadata and not short_form and texte.marche_ville:
            if texte.marche_ville.lower() not in (texte.marche_nom or "").lower():
                lines.append(f'<p class="ville">{escape(to_title_case(texte.marche_ville))}</p>')

        lines.extend(paragraph_to_html(p) for p in parse_html_content(texte.contenu))
        if not short_form:
            lines.append('<p class="separator">• • •</p>')
        css_class = "texte short-form" if short_form else "texte"
        return f'<article class="{css_class}">{"".join(lines)}</article>'

    def section(self, heading: str, textes: Sequence[TexteExport], marche_date: str | None = None) -> None:
        lines = [f"<h1>{escape(heading)}</h1>"]
        if marche_date:
            lines.append(f'<p class="date">{escape(format_french_long_date(marche_date))}</p>')
        lines.extend(self.texte(t) for t in textes)
        self.add(f'<section class="section">{"".join(lines)}</section>')

    # -- back matter -----------------------------------------------------

    def index_entry(self, texte: TexteExport, detail: str, limit: int) -> str:
        return (
            f"<li>{escape(short_title(texte.titre, limit))} "
            f'<span class="detail">{escape(detail)}</span> — p. '
            f'<a class="page-ref" href="#{bookmark_id(texte)}"></a></li>'
        )

    def index_lieux(self, textes: Sequence[TexteExport]) -> None:
        lines = ["<h1>Index des lieux</h1>"]
        for group in group_by_marche(textes):
            lines.append(f"<h2>{escape(group.name)}</h2><ul>")
            lines.extend(
                self.index_entry(t, f"({type_label(t.type_texte)})", 50) for t in group.textes
            )
            lines.append("</ul>")
        self.add(f'<section class="index">{"".join(lines)}</section>')

    def index_genres(self, textes: Sequence[TexteExport]) -> None:
        lines = ["<h1>Index des genres</h1>"]
        for type_key, group in group_by_type(textes).items():
            lines.append(f"<h2>{escape(type_label(type_key))}</h2><ul>")
            lines.extend(
                self.index_entry(t, f"— {marche_key(t)}", 45) for t in sort_by_marche_date(group)
            )
            lines.append("</ul>")
        self.add(f'<section class="index">{"".join(lines)}</section>')

    def colophon(self, texte_count: int) -> None:
        text = escape(colophon_text(self.options, texte_count))
        self.add(f'<section class="colophon">{text}</section>')

    def document(self) -> str:
        return (
            '<!DOCTYPE html><html lang="fr"><head><meta charset="utf-8">'
            f"<title>{escape(self.options.title)}</title>"
            f"<style>{page_css(self.options)}{_BASE_CSS}</style>"
            f'</head><body>{"".join(self.parts)}</body></html>'
        )


def _body_sections(textes: Sequence[TexteExport], options: PdfExportOptions):
    """Yield ("partie", Partie) and ("section", heading, textes, date) in reading order."""
    if options.organization_mode == "type":
        for type_key, group in group_by_type(textes).items():
            yield "section", type_label(type_key), group, None
        return

    if not has_partie_assignments(textes):
        for group in group_by_marche(textes):
            yield "section", group.name, group.textes, group.date
        return

    for partie_group in group_by_partie(textes):
        if partie_group.partie is not None:
            yield "partie", partie_group.partie
        for group in partie_group.marches:
            yield "section", group.name, group.textes, group.date


def render_pdf_html(
    textes: Sequence[TexteExport],
    options: PdfExportOptions | None = None,
) -> str:
    """Build the full paged HTML document for the book."""
    options = options or PdfExportOptions()
    renderer = _BookRenderer(options)
    body = list(_body_sections(textes, options))
    toc_sections = [(item[1], item[2]) for item in body if item[0] == "section"]

    if options.include_cover:
        renderer.cover()
    if options.include_faux_titre:
        renderer.faux_titre()
    if options.include_table_of_contents:
        renderer.table_of_contents(toc_sections)

    for item in body:
        if item[0] == "partie":
            partie = item[1]
            renderer.partie(partie.numero_romain, partie.titre, partie.sous_titre)
        else:
            _, heading, group, marche_date = item
            renderer.section(heading, group, marche_date)

    if options.include_index_lieux:
        renderer.index_lieux(textes)
    if options.include_index_genres:
        renderer.index_genres(textes)
    if options.include_colophon:
        renderer.colophon(len(textes))
    return renderer.document()


def export_textes_to_pdf(
    textes: Sequence[TexteExport],
    options: PdfExportOptions | None = None,
) -> bytes:
    """Render the book through WeasyPrint and return the PDF bytes."""
    # WeasyPrint loads Pango at import time; keep it out of module import
    from weasyprint import HTML
    from weasyprint.text.fonts import FontConfiguration

    html_string = render_pdf_html(textes, options)
    pdf = HTML(string=html_string).write_pdf(font_config=FontConfiguration())
    log.info("pdf_export_complete", textes=len(textes), bytes=len(pdf))
    return pdf
