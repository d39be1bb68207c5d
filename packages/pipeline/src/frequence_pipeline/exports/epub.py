"""
exports/epub.py — Reflowable ePub of the literary texts, packaged by ebooklib.

The book is a sequence of XHTML chapters:
  - cover and an in-book table of contents (kept out of the reader's nav)
  - in "marche" mode, one cover page per partie followed by one chapter
    per marche, texts grouped by genre inside it; marches outside any
    partie come last
  - in "type" mode, one chapter per genre
  - an index of places and an index of genres

Colours and fonts come from the chosen preset (EPUB_PRESETS) and end up
in a single stylesheet shared by every chapter.

Usage:
    from frequence_pipeline.exports.epub import export_textes_to_epub, epub_filename

    data = export_textes_to_epub(textes, EpubExportOptions(format="frequence_vivant"))
    Path(epub_filename("Dordogne")).write_bytes(data)
"""

from __future__ import annotations

import io
import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from html import escape

from ebooklib import epub

from frequence_shared.config import settings
from frequence_shared.models.textes import EpubExportOptions, TexteExport
from frequence_shared.time_utils import format_french_long_date
from frequence_pipeline.exports.grouping import (
    MarcheGroup,
    fold_accents,
    group_by_partie,
    group_by_type,
    is_short_form,
    marche_key,
    type_label,
    type_rank,
)
from frequence_pipeline.exports.html_content import paragraph_to_html, parse_html_content
from frequence_pipeline.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_PUBLISHER = "Auto-édition"
STYLESHEET_PATH = "style/book.css"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class EpubChapter:
    title: str
    file_name: str
    content: str
    in_toc: bool = True
    is_partie: bool = False
    in_partie: bool = False  # listed under the preceding partie in the nav


def epub_filename(title: str, day: date | None = None) -> str:
    """'Carnets de la Dordogne' -> 'carnets-de-la-dordogne-2025-06-14.epub'."""
    day = day or date.today()
    slug = _SLUG_RE.sub("-", title.lower()).strip("-")
    return f"{slug}-{day.isoformat()}.epub"


def epub_css(options: EpubExportOptions) -> str:
    colors, fonts = options.color_scheme, options.typography
    heading = f"'{fonts.heading_font}', serif"
    return f"""
body {{ font-family: '{fonts.body_font}', Georgia, 'Times New Roman', serif; font-size: {fonts.base_font_size}rem; line-height: {fonts.line_height}; color: {colors.text}; background-color: {colors.background}; padding: 1.5rem; }}
h1, h2, h3, h4 {{ font-family: {heading}; color: {colors.primary}; margin-bottom: 0.5em; line-height: 1.3; }}
p {{ margin: 0 0 0.8em; text-align: justify; hyphens: auto; }}
.cover-page {{ text-align: center; padding-top: 30%; }}
.cover-title {{ font-size: 2.5rem; font-weight: 700; }}
.cover-subtitle {{ font-size: 1.4rem; color: {colors.secondary}; font-style: italic; margin-bottom: 2rem; }}
.cover-author {{ font-size: 1.2rem; margin-top: 3rem; text-align: center; }}
.cover-publisher {{ color: {colors.secondary}; margin-top: 1rem; text-align: center; }}
.partie-cover {{ text-align: center; padding-top: 35%; }}
.partie-numeral {{ font-family: {heading}; font-size: 4rem; color: {colors.primary}; font-weight: 700; text-align: center; }}
.partie-titre {{ font-size: 1.8rem; text-transform: uppercase; letter-spacing: 0.1em; }}
.partie-sous-titre {{ font-size: 1.2rem; color: {colors.secondary}; font-style: italic; text-align: center; }}
.partie-separator {{ color: {colors.accent}; margin-top: 2rem; text-align: center; }}
.marche-header {{ margin: 2rem 0 1rem; padding-bottom: 0.5rem; border-bottom: 2px solid {colors.accent}; }}
.marche-name {{ font-size: 1.5rem; margin-bottom: 0.25rem; }}
.marche-date {{ font-size: 0.9rem; color: {colors.secondary}; font-style: italic; }}
.type-header {{ font-size: 1.2rem; color: {colors.secondary}; margin-top: 1.5rem; text-transform: uppercase; letter-spacing: 0.05em; }}
.texte-container {{ margin-bottom: 1.5rem; page-break-inside: avoid; }}
.texte-titre {{ font-size: 1.1rem; font-weight: 600; }}
.haiku-container {{ text-align: center; margin: 2rem auto; max-width: 80%; }}
.haiku-container p {{ text-align: center; margin-bottom: 0.3em; }}
.fable-prefix {{ color: {colors.accent}; font-weight: 600; }}
.toc-title {{ font-size: 1.8rem; text-align: center; margin-bottom: 2rem; }}
.toc-entry {{ margin-bottom: 0.5rem; padding-left: 1rem; }}
.toc-entry-partie {{ font-weight: 700; margin-top: 1rem; padding-left: 0; }}
.toc-entry-marche {{ padding-left: 1.5rem; color: {colors.secondary}; }}
.index-title {{ font-size: 1.5rem; padding-bottom: 0.5rem; border-bottom: 2px solid {colors.accent}; }}
.index-entry-label {{ font-weight: 600; color: {colors.primary}; }}
.index-entry-items {{ color: {colors.secondary}; }}
""".strip()


# ---------------------------------------------------------------------------
# Chapters
# ---------------------------------------------------------------------------

def _cover(options: EpubExportOptions) -> EpubChapter:
    lines = [f'<h1 class="cover-title">{escape(options.title)}</h1>']
    if options.subtitle:
        lines.append(f'<p class="cover-subtitle">{escape(options.subtitle)}</p>')
    lines.append(f'<p class="cover-author">{escape(options.author or settings.export_author)}</p>')
    if options.publisher:
        lines.append(f'<p class="cover-publisher">{escape(options.publisher)}</p>')
    return EpubChapter(
        "Couverture",
        "couverture.xhtml",
        f'<div class="cover-page">{"".join(lines)}</div>',
        in_toc=False,
    )


def _table_of_contents(entries: Sequence[tuple[str, bool]]) -> EpubChapter:
    """entries: (label, is_partie) in reading order."""
    lines = ['<h1 class="toc-title">Table des Matières</h1>']
    for label, is_partie in entries:
        if is_partie:
            lines.append(f'<p class="toc-entry toc-entry-partie">{escape(label)}</p>')
        else:
            lines.append(f'<p class="toc-entry toc-entry-marche">• {escape(label)}</p>')
    return EpubChapter(
        "Table des Matières",
        "sommaire.xhtml",
        f'<div class="toc-container">{"".join(lines)}</div>',
        in_toc=False,
    )


def _partie_page(numero_romain: str, titre: str, sous_titre: str | None, file_name: str) -> EpubChapter:
    lines = [
        f'<p class="partie-numeral">{escape(numero_romain)}</p>',
        f'<h1 class="partie-titre">{escape(titre)}</h1>',
    ]
    if sous_titre:
        lines.append(f'<p class="partie-sous-titre">{escape(sous_titre)}</p>')
    lines.append('<p class="partie-separator">───────────────────</p>')
    return EpubChapter(
        f"{numero_romain}. {titre}",
        file_name,
        f'<div class="partie-cover">{"".join(lines)}</div>',
        is_partie=True,
    )


def _texte_html(texte: TexteExport) -> str:
    title = escape(texte.titre)
    if fold_accents(texte.type_texte) == "fable":
        title = f'<span class="fable-prefix">Fable : </span>{title}'
    container = "texte-container haiku-container" if is_short_form(texte) else "texte-container"
    body = "".join(paragraph_to_html(p) for p in parse_html_content(texte.contenu))
    return (
        f'<div class="{container}"><h4 class="texte-titre">{title}</h4>'
        f'<div class="texte-contenu">{body}</div></div>'
    )


def _marche_chapter(group: MarcheGroup, options: EpubExportOptions, file_name: str) -> EpubChapter:
    lines = [f'<div class="marche-header"><h2 class="marche-name">{escape(group.name)}</h2>']
    if group.date and options.include_metadata:
        lines.append(f'<p class="marche-date">{escape(format_french_long_date(group.date))}</p>')
    lines.append("</div>")
    for type_key, textes in group_by_type(group.textes).items():
        lines.append(f'<h3 class="type-header">{escape(type_label(type_key))}</h3>')
        lines.extend(_texte_html(t) for t in textes)
    return EpubChapter(
        group.name,
        file_name,
        f'<div class="marche-chapter">{"".join(lines)}</div>',
    )


def _type_chapter(type_key: str, textes: Sequence[TexteExport], file_name: str) -> EpubChapter:
    label = type_label(type_key)
    lines = [f'<h2 class="marche-name">{escape(label)}</h2>']
    lines.extend(_texte_html(t) for t in textes)
    return EpubChapter(label, file_name, f'<div class="type-chapter">{"".join(lines)}</div>')


def _index_chapter(title: str, heading: str, entries: dict[str, list[str]], file_name: str) -> EpubChapter:
    lines = [f'<h2 class="index-title">{escape(heading)}</h2>']
    for label, items in entries.items():
        lines.append(
            f'<p class="index-entry"><span class="index-entry-label">{escape(label)}</span>'
            f'<span class="index-entry-items"> — {escape(", ".join(items))}</span></p>'
        )
    return EpubChapter(title, file_name, f'<div class="index-container">{"".join(lines)}</div>')


def index_by_place(textes: Sequence[TexteExport]) -> dict[str, list[str]]:
    """Place -> genre labels found there, both alphabetical."""
    places: dict[str, set[str]] = {}
    for texte in textes:
        places.setdefault(marche_key(texte), set()).add(type_label(texte.type_texte))
    return {
        place: sorted(places[place], key=fold_accents)
        for place in sorted(places, key=fold_accents)
    }


def index_by_genre(textes: Sequence[TexteExport]) -> dict[str, list[str]]:
    """Genre label (editorial order) -> places where it was written."""
    genres: dict[str, set[str]] = {}
    for texte in textes:
        genres.setdefault(texte.type_texte.lower(), set()).add(marche_key(texte))
    return {
        type_label(key): sorted(genres[key], key=fold_accents)
        for key in sorted(genres, key=type_rank)
    }


def build_epub_chapters(
    textes: Sequence[TexteExport],
    options: EpubExportOptions | None = None,
) -> list[EpubChapter]:
    """All chapters of the book in reading order."""
    options = options or EpubExportOptions()
    body: list[EpubChapter] = []
    toc_entries: list[tuple[str, bool]] = []

    if options.organization_mode == "type":
        for n, (type_key, group) in enumerate(group_by_type(textes).items(), start=1):
            chapter = _type_chapter(type_key, group, f"genre_{n:02d}.xhtml")
            body.append(chapter)
            toc_entries.append((chapter.title, False))
    else:
        marche_n = 0
        for partie_n, partie_group in enumerate(group_by_partie(textes), start=1):
            partie = partie_group.partie
            if partie is not None and options.include_partie_pages:
                chapter = _partie_page(
                    partie.numero_romain, partie.titre, partie.sous_titre, f"partie_{partie_n:02d}.xhtml"
                )
                body.append(chapter)
                toc_entries.append((chapter.title, True))
            for group in partie_group.marches:
                marche_n += 1
                chapter = _marche_chapter(group, options, f"marche_{marche_n:03d}.xhtml")
                chapter.in_partie = partie is not None and options.include_partie_pages
                body.append(chapter)
                toc_entries.append((chapter.title, False))

    chapters: list[EpubChapter] = []
    if options.include_cover:
        chapters.append(_cover(options))
    if options.include_table_of_contents:
        chapters.append(_table_of_contents(toc_entries))
    chapters.extend(body)
    if options.include_indexes:
        chapters.append(
            _index_chapter("Index par Lieu", "Index par Lieu", index_by_place(textes), "index_lieux.xhtml")
        )
        chapters.append(
            _index_chapter(
                "Index par Genre", "Index par Genre Littéraire", index_by_genre(textes), "index_genres.xhtml"
            )
        )
    return chapters


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------

def _navigation(chapters: Sequence[EpubChapter], items: Sequence[epub.EpubHtml]) -> list:
    """Reader nav: parties as sections holding their marches."""
    toc: list = []
    current: list | None = None
    for chapter, item in zip(chapters, items):
        if not chapter.in_toc:
            continue
        link = epub.Link(item.file_name, chapter.title, item.id)
        if chapter.is_partie:
            current = []
            toc.append((epub.Section(chapter.title, item.file_name), current))
        elif chapter.in_partie and current is not None:
            current.append(link)
        else:
            current = None
            toc.append(link)
    return toc


def build_epub_book(
    textes: Sequence[TexteExport],
    options: EpubExportOptions | None = None,
) -> epub.EpubBook:
    options = options or EpubExportOptions()
    book = epub.EpubBook()
    book.set_identifier(f"urn:isbn:{options.isbn}" if options.isbn else f"urn:uuid:{uuid.uuid4()}")
    book.set_title(options.title)
    book.set_language(options.language)
    book.add_author(options.author or settings.export_author)
    book.add_metadata("DC", "publisher", options.publisher or DEFAULT_PUBLISHER)
    if options.description:
        book.add_metadata("DC", "description", options.description)

    stylesheet = epub.EpubItem(
        uid="style_book",
        file_name=STYLESHEET_PATH,
        media_type="text/css",
        content=epub_css(options).encode("utf-8"),
    )
    book.add_item(stylesheet)

    chapters = build_epub_chapters(textes, options)
    items: list[epub.EpubHtml] = []
    for n, chapter in enumerate(chapters):
        item = epub.EpubHtml(
            uid=f"chapitre_{n:03d}",
            title=chapter.title,
            file_name=chapter.file_name,
            lang=options.language,
        )
        item.content = chapter.content
        item.add_item(stylesheet)
        book.add_item(item)
        items.append(item)

    book.toc = _navigation(chapters, items)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = items
    return book


def export_textes_to_epub(
    textes: Sequence[TexteExport],
    options: EpubExportOptions | None = None,
) -> bytes:
    """Build the ePub and return the zipped bytes."""
    book = build_epub_book(textes, options)
    buffer = io.BytesIO()
    epub.write_epub(buffer, book, {})
    data = buffer.getvalue()
    log.info("epub_export_complete", textes=len(textes), chapters=len(book.spine), bytes=len(data))
    return data
