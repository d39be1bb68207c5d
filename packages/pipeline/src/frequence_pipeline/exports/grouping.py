"""
exports/grouping.py — Ordering and grouping of texts for the exports.

Three layouts are supported:
  by type    — one section per literary genre, genres in editorial order
  by marche  — one section per marche, chronological
  by partie  — movements (parties) of a structured edition, each holding
               its marches in their editorial order

Also holds the helpers shared by the Word and PDF renderers: type labels,
bookmark ids, truncated titles for indexes and keyword extraction.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from frequence_shared.constants import (
    CUSTOM_KEYWORD_CATEGORY,
    CUSTOM_KEYWORD_LABEL,
    KEYWORD_CATEGORIES,
    MISSING_DATE_SORT_KEY,
    NO_PLACE_LABEL,
    SHORT_FORM_TYPES,
    TEXT_TYPE_LABELS,
    TEXT_TYPE_ORDER,
    UNSORTED_ORDER,
)
from frequence_shared.models.textes import CategorizedKeyword, TexteExport
from frequence_pipeline.exports.html_content import strip_html_for_search

TYPE_ORDER = TEXT_TYPE_ORDER

_BOOKMARK_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_]")
BOOKMARK_MAX_LENGTH = 40

# Category display order in the keyword index
KEYWORD_CATEGORY_ORDER: tuple[str, ...] = (*KEYWORD_CATEGORIES, CUSTOM_KEYWORD_CATEGORY)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

def fold_accents(value: str | None) -> str:
    """Lower-case and strip accents: 'Poème' -> 'poeme', 'Haïbun' -> 'haibun'."""
    decomposed = unicodedata.normalize("NFKD", (value or "").strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def type_rank(type_texte: str) -> int:
    key = fold_accents(type_texte)
    return TYPE_ORDER.index(key) if key in TYPE_ORDER else len(TYPE_ORDER)


def type_label(type_texte: str) -> str:
    lowered = (type_texte or "").lower()
    return (
        TEXT_TYPE_LABELS.get(lowered)
        or TEXT_TYPE_LABELS.get(fold_accents(type_texte))
        or type_texte
    )


def is_short_form(texte: TexteExport) -> bool:
    """Haiku and senryu are laid out alone on a centred page."""
    return fold_accents(texte.type_texte) in SHORT_FORM_TYPES


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

@dataclass
class MarcheGroup:
    name: str
    date: str | None = None
    ordre: int = UNSORTED_ORDER
    textes: list[TexteExport] = field(default_factory=list)


@dataclass
class Partie:
    id: str
    numero_romain: str
    titre: str
    sous_titre: str | None = None
    ordre: int = UNSORTED_ORDER


@dataclass
class PartieGroup:
    partie: Partie | None  # None holds the marches outside any partie
    marches: list[MarcheGroup] = field(default_factory=list)


def marche_key(texte: TexteExport) -> str:
    return texte.marche_nom or texte.marche_ville or NO_PLACE_LABEL


def _text_order(texte: TexteExport) -> int:
    return texte.ordre if texte.ordre is not None else UNSORTED_ORDER


def _date_key(value: str | None) -> str:
    return value or MISSING_DATE_SORT_KEY


def group_by_type(textes: Iterable[TexteExport]) -> dict[str, list[TexteExport]]:
    """
    Group by lower-cased type. Known types come first in TYPE_ORDER,
    unknown types follow in the order they were first seen.
    """
    groups: dict[str, list[TexteExport]] = {}
    for texte in textes:
        groups.setdefault(texte.type_texte.lower(), []).append(texte)
    # sorted() is stable: unknown types keep their insertion order
    return {key: groups[key] for key in sorted(groups, key=type_rank)}


def _marche_groups(textes: Iterable[TexteExport]) -> dict[str, MarcheGroup]:
    groups: dict[str, MarcheGroup] = {}
    for texte in textes:
        key = marche_key(texte)
        if key not in groups:
            groups[key] = MarcheGroup(
                name=key,
                date=texte.marche_date or None,
                ordre=texte.marche_ordre if texte.marche_ordre is not None else UNSORTED_ORDER,
            )
        groups[key].textes.append(texte)
    for group in groups.values():
        group.textes.sort(key=_text_order)
    return groups


def group_by_marche(textes: Iterable[TexteExport]) -> list[MarcheGroup]:
    """Marche groups sorted by date (undated last), texts by ordre."""
    groups = _marche_groups(textes)
    return sorted(groups.values(), key=lambda g: _date_key(g.date))


def has_partie_assignments(textes: Iterable[TexteExport]) -> bool:
    return any(t.partie_id and t.partie_numero_romain and t.partie_titre for t in textes)


def group_by_partie(textes: Sequence[TexteExport]) -> list[PartieGroup]:
    """
    Parties ordered by partie_ordre, their marches by marche_ordre.
    Marches outside any partie come last, chronologically.
    """
    parties: dict[str, Partie] = {}
    assigned: dict[str, list[TexteExport]] = {}
    unassigned: list[TexteExport] = []

    for texte in textes:
        if texte.partie_id and texte.partie_numero_romain and texte.partie_titre:
            if texte.partie_id not in parties:
                parties[texte.partie_id] = Partie(
                    id=texte.partie_id,
                    numero_romain=texte.partie_numero_romain,
                    titre=texte.partie_titre,
                    sous_titre=texte.partie_sous_titre,
                    ordre=texte.partie_ordre if texte.partie_ordre is not None else UNSORTED_ORDER,
                )
            assigned.setdefault(texte.partie_id, []).append(texte)
        else:
            unassigned.append(texte)

    result = [
        PartieGroup(
            partie=partie,
            marches=sorted(_marche_groups(assigned[partie.id]).values(), key=lambda g: g.ordre),
        )
        for partie in sorted(parties.values(), key=lambda p: p.ordre)
    ]
    if unassigned:
        result.append(PartieGroup(partie=None, marches=group_by_marche(unassigned)))
    return result


def sort_by_marche_date(textes: Iterable[TexteExport]) -> list[TexteExport]:
    return sorted(textes, key=lambda t: _date_key(t.marche_date))


# ---------------------------------------------------------------------------
# Index helpers
# ---------------------------------------------------------------------------

def bookmark_id(texte_or_id: TexteExport | str) -> str:
    """Word bookmark name: 'texte_<id>' restricted to [A-Za-z0-9_], 40 chars max."""
    texte_id = texte_or_id.id if isinstance(texte_or_id, TexteExport) else texte_or_id
    return _BOOKMARK_UNSAFE_RE.sub("_", f"texte_{texte_id}")[:BOOKMARK_MAX_LENGTH]


def short_title(title: str, limit: int = 50) -> str:
    return title if len(title) <= limit else title[: limit - 3] + "..."


@dataclass
class KeywordOccurrence:
    keyword: str
    category: str
    texte_ids: list[str] = field(default_factory=list)


def keyword_category_label(category_id: str) -> str:
    if category_id == CUSTOM_KEYWORD_CATEGORY:
        return CUSTOM_KEYWORD_LABEL
    entry = KEYWORD_CATEGORIES.get(category_id)
    return entry[0] if entry else category_id


def _keyword_catalogue(
    selected_categories: Sequence[str],
    custom_keywords: Sequence[str],
    categorized_custom_keywords: Sequence[CategorizedKeyword],
) -> dict[str, str]:
    catalogue: dict[str, str] = {}
    for category_id, (_, keywords) in KEYWORD_CATEGORIES.items():
        if category_id in selected_categories:
            for keyword in keywords:
                catalogue[keyword.lower()] = category_id

    for item in categorized_custom_keywords:
        keyword = item.keyword.strip().lower()
        if keyword and keyword not in catalogue and item.category in selected_categories:
            catalogue[keyword] = item.category

    for raw in custom_keywords:
        keyword = raw.strip().lower()
        if keyword and keyword not in catalogue:
            catalogue[keyword] = CUSTOM_KEYWORD_CATEGORY
    return catalogue


def extract_keywords(
    textes: Sequence[TexteExport],
    selected_categories: Sequence[str],
    custom_keywords: Sequence[str] = (),
    categorized_custom_keywords: Sequence[CategorizedKeyword] = (),
) -> dict[str, KeywordOccurrence]:
    """
    Find which texts mention each keyword (whole word, case-insensitive,
    searched in the tag-stripped content and the title).
    """
    catalogue = _keyword_catalogue(
        selected_categories, custom_keywords, categorized_custom_keywords
    )
    searchable = [
        (t.id, f"{strip_html_for_search(t.contenu)} {t.titre.lower()}") for t in textes
    ]

    occurrences: dict[str, KeywordOccurrence] = {}
    for keyword, category_id in catalogue.items():
        pattern = re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)
        matching = [texte_id for texte_id, text in searchable if pattern.search(text)]
        if matching:
            occurrences[keyword] = KeywordOccurrence(keyword, category_id, matching)
    return occurrences


def keywords_by_category(
    occurrences: dict[str, KeywordOccurrence],
) -> list[tuple[str, list[KeywordOccurrence]]]:
    """Categories in index order, keywords alphabetical inside each."""
    grouped: dict[str, list[KeywordOccurrence]] = {}
    for occurrence in occurrences.values():
        grouped.setdefault(occurrence.category, []).append(occurrence)

    def rank(category_id: str) -> int:
        if category_id in KEYWORD_CATEGORY_ORDER:
            return KEYWORD_CATEGORY_ORDER.index(category_id)
        return len(KEYWORD_CATEGORY_ORDER)

    return [
        (category_id, sorted(grouped[category_id], key=lambda o: fold_accents(o.keyword)))
        for category_id in sorted(grouped, key=rank)
    ]
