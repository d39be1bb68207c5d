"""
exports/word.py — Manuscript export of the literary texts as .docx.

Layout of the generated document:
  cover page        author, title (split on " — " into title/subtitle),
                    genre line, text count, contact, month and year
  contents          placeholder note and a TOC field Word fills on update
  sections          one per type, marche or partie/marche; each text gets
                    a heading-2 title wrapped in a bookmark
  indexes           by place, by genre and optionally by keyword, with
                    PAGEREF fields pointing at the text bookmarks

Haiku and senryu sit alone on a centred page in italics; other texts are
followed by a "• • •" separator.

Usage:
    from frequence_pipeline.exports.word import export_textes_to_word, word_filename

    data = export_textes_to_word(textes, WordExportOptions(title="Dordogne"))
    Path(word_filename("Dordogne")).write_bytes(data)
"""

from __future__ import annotations

import io
import itertools
import re
from collections.abc import Sequence
from datetime import date

from docx import Document
from docx.document import Document as DocxDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt, RGBColor, Twips
from docx.text.paragraph import Paragraph

from frequence_shared.config import settings
from frequence_shared.models.textes import TexteExport, WordExportOptions
from frequence_shared.time_utils import format_french_long_date, format_french_month_year
from frequence_pipeline.exports.grouping import (
    MarcheGroup,
    bookmark_id,
    extract_keywords,
    fold_accents,
    group_by_marche,
    group_by_partie,
    group_by_type,
    has_partie_assignments,
    is_short_form,
    keyword_category_label,
    keywords_by_category,
    marche_key,
    short_title,
    sort_by_marche_date,
    type_label,
)
from frequence_pipeline.exports.html_content import ParsedParagraph, parse_html_content, to_title_case

FONT_NAME = "Times New Roman"
GENRE_LINE = "Poésie et prose géopoétique"
TOC_NOTE = "(La table des matières sera générée automatiquement dans Word)"
SEPARATOR = "• • •"
PARTIE_RULE = "───────────────────"

GREY = "888888"
MID_GREY = "666666"
LIGHT_GREY = "AAAAAA"
RULE_GREY = "CCCCCC"

# pPr children that must follow w:pBdr
_PBDR_SUCCESSORS = (
    "w:shd", "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap",
    "w:overflowPunct", "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN",
    "w:bidi", "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)

# settings children that must follow w:updateFields
_UPDATE_FIELDS_SUCCESSORS = (
    "w:hdrShapeDefaults", "w:footnotePr", "w:endnotePr", "w:compat", "w:docVars",
    "w:rsids", "w:attachedSchema", "w:themeFontLang", "w:clrSchemeMapping",
    "w:doNotIncludeSubdocsInStats", "w:doNotAutoCompressPictures", "w:forceUpgrade",
    "w:captions", "w:readModeInkLockDown", "w:smartTagType", "w:schemaLibrary",
    "w:shapeDefaults", "w:doNotEmbedSmartTags", "w:decimalSymbol", "w:listSeparator",
)

_FILENAME_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9àâäéèêëïîôùûüç -]")


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------

def set_run_font(run, size=12, bold=False, italic=False, color=None):
    run.font.size = Pt(size)
    run.font.bold = bold
    run.font.italic = italic
    run.font.name = FONT_NAME
    if color:
        run.font.color.rgb = RGBColor.from_string(color)


def _spacing(paragraph: Paragraph, before: int | None = None, after: int | None = None) -> None:
    """Spacing in twips (1/20 pt)."""
    fmt = paragraph.paragraph_format
    if before is not None:
        fmt.space_before = Twips(before)
    if after is not None:
        fmt.space_after = Twips(after)


def _add_bottom_border(paragraph: Paragraph) -> None:
    borders = OxmlElement("w:pBdr")
    bottom = OxmlElement("w:bottom")
    bottom.set(qn("w:val"), "single")
    bottom.set(qn("w:sz"), "6")
    bottom.set(qn("w:space"), "10")
    bottom.set(qn("w:color"), RULE_GREY)
    borders.append(bottom)
    paragraph._p.get_or_add_pPr().insert_element_before(borders, *_PBDR_SUCCESSORS)


def _add_field(paragraph: Paragraph, instruction: str, placeholder: str = "") -> None:
    """Append a simple field (PAGEREF, TOC) that Word computes on update."""
    field = OxmlElement("w:fldSimple")
    field.set(qn("w:instr"), instruction)
    run = OxmlElement("w:r")
    text = OxmlElement("w:t")
    text.text = placeholder
    run.append(text)
    field.append(run)
    paragraph._p.append(field)


def _enable_update_fields_on_open(doc: DocxDocument) -> None:
    update = OxmlElement("w:updateFields")
    update.set(qn("w:val"), "true")
    doc.settings.element.insert_element_before(update, *_UPDATE_FIELDS_SUCCESSORS)


def word_filename(title: str, day: date | None = None) -> str:
    day = day or date.today()
    return f"{_FILENAME_UNSAFE_RE.sub('', title)}_{day.isoformat()}.docx"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class _ManuscriptBuilder:
    def __init__(self, options: WordExportOptions) -> None:
        self.options = options
        self.doc: DocxDocument = Document()
        self._bookmark_ids = itertools.count(1)
        self._setup()

    def _setup(self) -> None:
        normal = self.doc.styles["Normal"]
        normal.font.name = FONT_NAME
        normal.font.size = Pt(12)
        normal._element.rPr.rFonts.set(qn("w:eastAsia"), FONT_NAME)
        normal.paragraph_format.line_spacing = 1.5

        for section in self.doc.sections:
            section.top_margin = section.bottom_margin = Inches(1)
            section.left_margin = section.right_margin = Inches(1)

        props = self.doc.core_properties
        props.title = self.options.title
        props.author = settings.export_author
        props.comments = "Export des textes littéraires"
        _enable_update_fields_on_open(self.doc)

    # -- primitives ------------------------------------------------------

    def text(
        self,
        text: str = "",
        *,
        size: float = 12,
        bold: bool = False,
        italic: bool = False,
        color: str | None = None,
        center: bool = False,
        before: int | None = None,
        after: int | None = None,
        style: str | None = None,
    ) -> Paragraph:
        paragraph = self.doc.add_paragraph(style=style)
        if text:
            set_run_font(paragraph.add_run(text), size, bold, italic, color)
        if center:
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _spacing(paragraph, before, after)
        return paragraph

    def page_break(self) -> None:
        self.doc.add_page_break()

    def bookmarked_heading(self, texte: TexteExport, title: str, *, short_form: bool) -> None:
        paragraph = self.doc.add_paragraph(style="Heading 2")
        if short_form:
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _spacing(paragraph, before=200 if short_form else 300, after=100)

        mark = str(next(self._bookmark_ids))
        start = OxmlElement("w:bookmarkStart")
        start.set(qn("w:id"), mark)
        start.set(qn("w:name"), bookmark_id(texte))
        paragraph._p.append(start)
        set_run_font(paragraph.add_run(title), 12 if short_form else 13, bold=True, color="000000")
        end = OxmlElement("w:bookmarkEnd")
        end.set(qn("w:id"), mark)
        paragraph._p.append(end)

    def body(self, paragraphs: list[ParsedParagraph], *, short_form: bool) -> None:
        for index, parsed in enumerate(paragraphs):
            is_last = index == len(paragraphs) - 1
            paragraph = self.doc.add_paragraph()
            for run in parsed.runs:
                set_run_font(
                    paragraph.add_run(run.text),
                    12,
                    bold=run.bold,
                    italic=True if short_form else run.italic,
                )
            if short_form:
                paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
                _spacing(paragraph, after=300 if is_last else 80)
            else:
                _spacing(paragraph, after=300 if is_last else 100)

    # -- front matter ----------------------------------------------------

    def cover_page(self, text_count: int) -> None:
        title, _, subtitle = self.options.title.partition(" — ")
        opts = self.options

        self.text(before=4000, after=600)
        self.text(settings.export_author.upper(), size=14, bold=True, center=True, after=1200)
        self.text(title.upper(), size=20, bold=True, center=True, after=200 if subtitle else 400)
        if subtitle:
            self.text(subtitle, size=13, italic=True, color="555555", center=True, after=400)
        self.text(GENRE_LINE, size=12, italic=True, color=MID_GREY, center=True, after=800)
        self.text(
            f"Manuscrit inédit — {text_count} textes",
            size=11,
            color=MID_GREY,
            center=True,
            after=3000,
        )
        if opts.contact_email:
            self.text(
                opts.contact_email,
                size=10,
                color=GREY,
                center=True,
                after=60 if opts.contact_phone else 200,
            )
        if opts.contact_phone:
            self.text(opts.contact_phone, size=10, color=GREY, center=True, after=200)
        self.text(format_french_month_year(date.today()), size=10, color=GREY, center=True)
        self.page_break()

    def table_of_contents(self) -> None:
        self.text("Table des Matières", size=18, bold=True, after=400, style="Heading 1")
        self.text(TOC_NOTE, size=10, italic=True, color=GREY, after=200)
        _add_field(self.doc.add_paragraph(), 'TOC \\o "1-2" \\h \\z \\u')
        self.page_break()

    # -- sections --------------------------------------------------------

    def section_header(self, title: str, marche_date: str | None = None) -> None:
        header = self.text(
            title,
            size=16,
            bold=True,
            before=400,
            after=100 if marche_date else 300,
            style="Heading 1",
        )
        _add_bottom_border(header)
        if marche_date:
            self.text(format_french_long_date(marche_date), size=10, italic=True, color=GREY, after=300)

    def partie_cover(self, numero_romain: str, titre: str, sous_titre: str | None) -> None:
        self.text(before=5500)
        self.text(numero_romain, size=36, bold=True, color="333333", center=True, after=400)
        self.text(titre.upper(), size=24, bold=True, center=True, after=300 if sous_titre else 600)
        if sous_titre:
            self.text(sous_titre, size=16, italic=True, color=MID_GREY, center=True, after=600)
        self.text(PARTIE_RULE, size=12, color=LIGHT_GREY, center=True, after=400)
        self.page_break()

    def texte_entry(self, texte: TexteExport) -> None:
        short_form = is_short_form(texte)
        if short_form:
            self.page_break()
            self.text(before=4500)

        title = f"Fable : {texte.titre}" if fold_accents(texte.type_texte) == "fable" else texte.titre
        self.bookmarked_heading(texte, title, short_form=short_form)

        # City line, unless already part of the marche name shown in the header
        if self.options.include_metadata and not short_form and texte.marche_ville:
            nom = (texte.marche_nom or "").lower()
            if texte.marche_ville.lower() not in nom:
                self.text(
                    to_title_case(texte.marche_ville),
                    size=11,
                    italic=True,
                    color=GREY,
                    after=200,
                )

        self.body(parse_html_content(texte.contenu), short_form=short_form)
        if short_form:
            self.page_break()
        else:
            self.text(SEPARATOR, size=9, color=LIGHT_GREY, center=True, before=200, after=400)

    def group(self, title: str, textes: Sequence[TexteExport], marche_date: str | None = None) -> None:
        self.section_header(title, marche_date)
        for texte in textes:
            self.texte_entry(texte)
        # A trailing haiku already ends with its own page break
        if textes and not is_short_form(textes[-1]):
            self.page_break()

    def marche_groups(self, groups: Sequence[MarcheGroup]) -> None:
        for group in groups:
            self.group(group.name, group.textes, group.date)

    # -- indexes ---------------------------------------------------------

    def index_entry(self, texte: TexteExport, detail: str, *, limit: int, indent: int) -> None:
        paragraph = self.doc.add_paragraph()
        paragraph.paragraph_format.left_indent = Twips(indent)
        _spacing(paragraph, after=60)
        set_run_font(paragraph.add_run(f"{short_title(texte.titre, limit)} "), 11)
        set_run_font(paragraph.add_run(detail), 10, italic=True, color=GREY)
        set_run_font(paragraph.add_run("— p. "), 10, color=GREY)
        _add_field(paragraph, f"PAGEREF {bookmark_id(texte)} \\h")

    def index_by_place(self, textes: Sequence[TexteExport]) -> None:
        self.text("Index par Lieu", size=18, bold=True, after=400, style="Heading 1")
        if not has_partie_assignments(textes):
            for group in group_by_marche(textes):
                self.text(group.name, size=12, bold=True, before=250, after=100)
                for texte in group.textes:
                    self.index_entry(texte, f"({type_label(texte.type_texte)}) ", limit=50, indent=400)
            return

        for partie_group in group_by_partie(textes):
            partie = partie_group.partie
            if partie is not None:
                self.text(
                    f"{partie.numero_romain}. {partie.titre.upper()}",
                    size=14,
                    bold=True,
                    before=400,
                    after=100,
                )
                if partie.sous_titre:
                    self.text(partie.sous_titre, size=11, italic=True, color=MID_GREY, after=200)
            else:
                self.text("Non classé", size=14, bold=True, color=GREY, before=400, after=200)
            for group in partie_group.marches:
                heading = self.text(group.name, size=12, bold=True, before=200, after=100)
                heading.paragraph_format.left_indent = Twips(300)
                for texte in group.textes:
                    self.index_entry(texte, f"({type_label(texte.type_texte)}) ", limit=50, indent=600)

    def index_by_genre(self, textes: Sequence[TexteExport]) -> None:
        self.text("Index par Genre Littéraire", size=18, bold=True, after=400, style="Heading 1")
        for type_key, group in group_by_type(textes).items():
            self.text(type_label(type_key), size=12, bold=True, before=250, after=100)
            for texte in sort_by_marche_date(group):
                self.index_entry(texte, f"— {marche_key(texte)} ", limit=45, indent=400)

    def keyword_index(self, textes: Sequence[TexteExport]) -> bool:
        opts = self.options
        occurrences = extract_keywords(
            textes,
            opts.selected_keyword_categories,
            opts.custom_keywords,
            opts.categorized_custom_keywords,
        )
        if not occurrences:
            return False

        self.page_break()
        self.text("Index des Mots-Clés", size=18, bold=True, after=400, style="Heading 1")
        for category_id, keywords in keywords_by_category(occurrences):
            self.text(
                keyword_category_label(category_id),
                size=13,
                bold=True,
                italic=True,
                before=300,
                after=150,
            )
            for occurrence in keywords:
                paragraph = self.doc.add_paragraph()
                paragraph.paragraph_format.left_indent = Twips(300)
                _spacing(paragraph, after=80)
                keyword = occurrence.keyword
                set_run_font(paragraph.add_run(keyword[:1].upper() + keyword[1:]), 11)
                set_run_font(paragraph.add_run(" — p. "), 10, color=GREY)
                for position, texte_id in enumerate(occurrence.texte_ids):
                    if position:
                        set_run_font(paragraph.add_run(", "), 10, color=GREY)
                    _add_field(paragraph, f"PAGEREF {bookmark_id(texte_id)} \\h")
        return True

    def indexes(self, textes: Sequence[TexteExport]) -> None:
        self.page_break()
        self.index_by_place(textes)
        self.page_break()
        self.index_by_genre(textes)
        if self.options.include_keyword_index and self.options.selected_keyword_categories:
            self.keyword_index(textes)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_word_document(
    textes: Sequence[TexteExport],
    options: WordExportOptions | None = None,
) -> DocxDocument:
    options = options or WordExportOptions()
    builder = _ManuscriptBuilder(options)

    if options.include_cover_page:
        builder.cover_page(len(textes))
    if options.include_table_of_contents:
        builder.table_of_contents()

    if options.organization_mode == "type":
        for type_key, group in group_by_type(textes).items():
            builder.group(type_label(type_key), group)
    elif has_partie_assignments(textes):
        for partie_group in group_by_partie(textes):
            if partie_group.partie is not None:
                partie = partie_group.partie
                builder.partie_cover(partie.numero_romain, partie.titre, partie.sous_titre)
            builder.marche_groups(partie_group.marches)
    else:
        builder.marche_groups(group_by_marche(textes))

    if options.include_table_of_contents:
        builder.indexes(textes)
    return builder.doc


def export_textes_to_word(
    textes: Sequence[TexteExport],
    options: WordExportOptions | None = None,
) -> bytes:
    """Render the manuscript and return the .docx bytes."""
    buffer = io.BytesIO()
    build_word_document(textes, options).save(buffer)
    return buffer.getvalue()
