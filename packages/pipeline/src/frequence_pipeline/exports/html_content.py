"""
exports/html_content.py — Parse the HTML subset the text editor produces.

Texts are stored as light HTML: one <div> or <p> per line (haiku lines
are often <div>line</div><div>line</div> with no separators), <br> line
breaks, <em>/<i> italics, <strong>/<b> bold, <span> wrappers and
entities such as &nbsp;. Exports need paragraphs of formatted runs.

Usage:
    from frequence_pipeline.exports.html_content import parse_html_content

    paragraphs = parse_html_content("Bonjour <em>le monde</em>!")
    # [ParsedParagraph(runs=[ParsedRun("Bonjour "),
    #                        ParsedRun("le monde", italic=True),
    #                        ParsedRun("!")])]
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field

_PARA_MARKER = "\x00PARA\x00"

_OPEN_BLOCK_RE = re.compile(r"<(?:div|p)(?:\s[^>]*)?>", re.IGNORECASE)
_CLOSE_BLOCK_RE = re.compile(r"</(?:div|p)\s*>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_SPAN_RE = re.compile(r"</?span(?:\s[^>]*)?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_FORMAT_RE = re.compile(
    r"<(em|i|strong|b)(?:\s[^>]*)?>(.*?)</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_TITLE_CASE_RE = re.compile(r"(?:^|\s|[-'’])\S")

_ITALIC_TAGS = frozenset({"em", "i"})


@dataclass
class ParsedRun:
    text: str
    italic: bool = False
    bold: bool = False


@dataclass
class ParsedParagraph:
    runs: list[ParsedRun] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


def strip_all_tags(text: str) -> str:
    """Remove every tag, keep the text between them."""
    return _TAG_RE.sub("", text)


def _plain(text: str) -> str:
    return html.unescape(strip_all_tags(text))


def parse_formatted_text(text: str) -> list[ParsedRun]:
    """
    Split one paragraph into plain, italic and bold runs.

    Formatting spans are matched left to right; the first matching close
    tag ends a span and tags nested inside it are stripped. Text between
    spans, whitespace included, becomes plain runs so the run texts
    concatenate to the tag-stripped paragraph.
    """
    runs: list[ParsedRun] = []
    pos = 0
    for match in _FORMAT_RE.finditer(text):
        if match.start() > pos:
            gap = _plain(text[pos : match.start()])
            if gap:
                runs.append(ParsedRun(gap))
        content = _plain(match.group(2))
        if content:
            is_italic = match.group(1).lower() in _ITALIC_TAGS
            runs.append(ParsedRun(content, italic=is_italic, bold=not is_italic))
        pos = match.end()

    tail = _plain(text[pos:])
    if tail:
        runs.append(ParsedRun(tail))
    return runs


def parse_html_content(content: str | None) -> list[ParsedParagraph]:
    """
    Turn stored HTML into paragraphs of formatted runs.

    Opening <div>/<p> tags, <br> and newlines start a new paragraph;
    closing block tags are dropped; <span> wrappers are unwrapped.
    Blank paragraphs are skipped and each paragraph is trimmed.
    """
    if not content:
        return []

    normalized = content.replace("&nbsp;", " ")
    normalized = _OPEN_BLOCK_RE.sub(_PARA_MARKER, normalized)
    normalized = _CLOSE_BLOCK_RE.sub("", normalized)
    normalized = _BR_RE.sub(_PARA_MARKER, normalized)
    normalized = normalized.replace("\r\n", "\n").replace("\n", _PARA_MARKER)
    normalized = _SPAN_RE.sub("", normalized)

    paragraphs: list[ParsedParagraph] = []
    for raw in normalized.split(_PARA_MARKER):
        trimmed = raw.strip()
        if not trimmed:
            continue
        runs = parse_formatted_text(trimmed)
        if runs:
            paragraphs.append(ParsedParagraph(runs))
    return paragraphs


def paragraph_to_html(paragraph: ParsedParagraph) -> str:
    """<p> markup of one parsed paragraph, runs escaped and re-wrapped."""
    chunks = []
    for run in paragraph.runs:
        text = html.escape(run.text)
        if run.bold:
            text = f"<strong>{text}</strong>"
        if run.italic:
            text = f"<em>{text}</em>"
        chunks.append(text)
    return f"<p>{''.join(chunks)}</p>"


def strip_html_for_search(content: str | None) -> str:
    """Lower-cased plain text for keyword search (tags become spaces)."""
    if not content:
        return ""
    text = _TAG_RE.sub(" ", content).replace("&nbsp;", " ")
    return html.unescape(text).lower()


def to_title_case(value: str) -> str:
    """'SAINT-ÉMILION' -> 'Saint-Émilion', "l'isle" -> "L'Isle"."""
    return _TITLE_CASE_RE.sub(lambda m: m.group(0).upper(), value.lower())
