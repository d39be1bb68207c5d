"""
tests/test_exports/test_html_content.py — Parsing of the editor's HTML subset.
"""

from __future__ import annotations

import html

import pytest

from frequence_pipeline.exports.html_content import (
    ParsedRun,
    parse_formatted_text,
    paragraph_to_html,
    parse_html_content,
    strip_all_tags,
    strip_html_for_search,
    to_title_case,
)


class TestParseHtmlContent:
    def test_divs_become_lines(self):
        paragraphs = parse_html_content(
            "<div>héron immobile</div><div>l'eau garde</div><div>son reflet</div>"
        )
        assert [p.text for p in paragraphs] == ["héron immobile", "l'eau garde", "son reflet"]

    def test_br_and_newlines_split(self):
        paragraphs = parse_html_content("un<br>deux<br/>trois\r\nquatre\ncinq")
        assert [p.text for p in paragraphs] == ["un", "deux", "trois", "quatre", "cinq"]

    def test_blank_paragraphs_skipped_and_trimmed(self):
        paragraphs = parse_html_content("<p>  </p><p>  berge  </p><div>&nbsp;</div>")
        assert [p.text for p in paragraphs] == ["berge"]

    @pytest.mark.parametrize("content", [None, "", "<p></p>"])
    def test_empty(self, content):
        assert parse_html_content(content) == []

    def test_spans_unwrapped_and_entities_decoded(self):
        paragraphs = parse_html_content(
            '<p><span style="color:red">Saules &amp; aulnes</span> &laquo;ici&raquo;</p>'
        )
        assert paragraphs[0].text == "Saules & aulnes «ici»"

    def test_formatting_runs(self):
        paragraphs = parse_html_content("<p>Le courant <em>lent</em> sous le <strong>pont</strong></p>")
        assert paragraphs[0].runs == [
            ParsedRun("Le courant "),
            ParsedRun("lent", italic=True),
            ParsedRun(" sous le "),
            ParsedRun("pont", bold=True),
        ]


class TestParseFormattedText:
    def test_inline_italic_in_a_sentence(self):
        paragraphs = parse_html_content("Bonjour <em>le monde</em>!")
        assert len(paragraphs) == 1
        assert paragraphs[0].runs == [
            ParsedRun("Bonjour "),
            ParsedRun("le monde", italic=True),
            ParsedRun("!"),
        ]

    @pytest.mark.parametrize(
        "text",
        [
            "Bonjour <em>le monde</em>!",
            "<b>gras</b> <i>italique</i> et <strong>fort</strong>",
            "<em>le <b>héron</b> gris</em> au bord",
            "Saules &amp; <em>aulnes</em> &laquo;ici&raquo;",
            "<em></em>vide puis <b>plein</b>",
            "sans aucune balise",
        ],
    )
    def test_runs_concatenate_to_stripped_text(self, text):
        runs = parse_formatted_text(text)
        assert "".join(r.text for r in runs) == html.unescape(strip_all_tags(text))

    def test_plain_text_single_run(self):
        assert parse_formatted_text("Bonjour") == [ParsedRun("Bonjour")]

    def test_i_and_b_aliases(self):
        runs = parse_formatted_text("<i>a</i><b>b</b>")
        assert runs == [ParsedRun("a", italic=True), ParsedRun("b", bold=True)]

    def test_nested_tags_stripped_inside_span(self):
        runs = parse_formatted_text("<em>le <strong>silure</strong> dort</em>")
        assert runs == [ParsedRun("le silure dort", italic=True)]

    def test_whitespace_gap_kept(self):
        runs = parse_formatted_text("<em>a</em> <em>b</em>")
        assert "".join(r.text for r in runs) == "a b"


def test_strip_html_for_search():
    text = strip_html_for_search("<p>Le <em>Héron</em>&nbsp;cendré</p>")
    assert "héron" in text
    assert "cendré" in text
    assert "<" not in text
    assert strip_html_for_search(None) == ""


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("BORDEAUX", "Bordeaux"),
        ("SAINT-ÉMILION", "Saint-Émilion"),
        ("l'isle", "L'Isle"),
        ("port sainte-foy", "Port Sainte-Foy"),
    ],
)
def test_to_title_case(raw, expected):
    assert to_title_case(raw) == expected


def test_paragraph_to_html_escapes_and_rewraps():
    paragraph = parse_html_content("Saules &amp; <em>aulnes</em> <b>hauts</b>")[0]
    assert paragraph_to_html(paragraph) == "<p>Saules &amp; <em>aulnes</em> <strong>hauts</strong></p>"
