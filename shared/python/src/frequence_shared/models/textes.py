"""
models/textes.py — Literary texts and export options.

A TexteExport is a marche_textes row enriched with the fields of its
marche (and, for structured editions, of the partie the marche belongs
to). Export option models accept the camelCase keys the admin UI sends.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from frequence_shared.constants import OrganizationMode


class TexteExport(BaseModel):
    """One text ready for export, with its marche context."""

    model_config = ConfigDict(extra="ignore")

    id: str
    titre: str = ""
    contenu: str = ""
    type_texte: str = ""
    marche_nom: str | None = None
    marche_ville: str | None = None
    marche_region: str | None = None
    marche_date: str | None = None
    ordre: int | None = None
    created_at: datetime | None = None
    partie_id: str | None = None
    partie_numero_romain: str | None = None
    partie_titre: str | None = None
    partie_sous_titre: str | None = None
    partie_ordre: int | None = None
    marche_ordre: int | None = None

    @field_validator("titre", "contenu", "type_texte", mode="before")
    @classmethod
    def null_text_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("marche_date", mode="before")
    @classmethod
    def date_as_iso(cls, v: Any) -> Any:
        return v.isoformat() if isinstance(v, date) else v

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "TexteExport":
        return cls(**row)


class CategorizedKeyword(BaseModel):
    """A custom keyword filed under one of the keyword categories."""

    keyword: str
    category: str


class _ExportOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = "La Fréquence du Vivant"
    organization_mode: OrganizationMode = "type"
    include_metadata: bool = True


class WordExportOptions(_ExportOptions):
    include_table_of_contents: bool = True
    include_cover_page: bool = True
    include_keyword_index: bool = False
    selected_keyword_categories: list[str] = Field(default_factory=list)
    custom_keywords: list[str] = Field(default_factory=list)
    categorized_custom_keywords: list[CategorizedKeyword] = Field(default_factory=list)
    contact_email: str | None = None
    contact_phone: str | None = None


PageFormat = Literal["A5", "A4", "Letter", "Custom"]

# Page sizes in millimetres (width, height), portrait
PAGE_SIZES_MM: dict[str, tuple[float, float]] = {
    "A5": (148.0, 210.0),
    "A4": (210.0, 297.0),
    "Letter": (215.9, 279.4),
}

# Preset -> (format, custom size, margins inner/outer/top/bottom in mm)
PDF_PRESETS: dict[str, dict[str, Any]] = {
    "edition_nationale": {
        "format": "A5",
        "margins": (25, 18, 28, 22),
    },
    "collection_poche": {
        "format": "Custom",
        "custom_width_mm": 110,
        "custom_height_mm": 178,
        "margins": (15, 12, 20, 18),
    },
    "livre_art": {
        "format": "A4",
        "margins": (35, 25, 40, 30),
    },
    "contemporain": {
        "format": "A5",
        "margins": (28, 20, 35, 25),
    },
}


class PdfExportOptions(_ExportOptions):
    author: str | None = None
    subtitle: str | None = None
    publisher: str | None = None
    colophon_text: str | None = None
    preset: str | None = None
    format: PageFormat = "A5"
    custom_width_mm: float | None = None
    custom_height_mm: float | None = None
    orientation: Literal["portrait", "landscape"] = "portrait"
    margin_inner_mm: float = 25
    margin_outer_mm: float = 18
    margin_top_mm: float = 28
    margin_bottom_mm: float = 22
    include_cover: bool = True
    include_faux_titre: bool = False
    include_table_of_contents: bool = True
    include_colophon: bool = False
    include_index_lieux: bool = False
    include_index_genres: bool = False
    page_numbering: Literal["arabic", "none"] = "arabic"

    @model_validator(mode="before")
    @classmethod
    def apply_preset(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        preset = PDF_PRESETS.get(data.get("preset") or "")
        if preset is None:
            return data
        merged = dict(data)
        inner, outer, top, bottom = preset["margins"]
        defaults = {
            "format": preset["format"],
            "custom_width_mm": preset.get("custom_width_mm"),
            "custom_height_mm": preset.get("custom_height_mm"),
            "margin_inner_mm": inner,
            "margin_outer_mm": outer,
            "margin_top_mm": top,
            "margin_bottom_mm": bottom,
        }
        for name, value in defaults.items():
            # Explicit values win over the preset
            if name not in merged and to_camel(name) not in merged:
                merged[name] = value
        return merged

    @property
    def page_size_mm(self) -> tuple[float, float]:
        if self.format == "Custom":
            width = self.custom_width_mm or PAGE_SIZES_MM["A5"][0]
            height = self.custom_height_mm or PAGE_SIZES_MM["A5"][1]
        else:
            width, height = PAGE_SIZES_MM[self.format]
        if self.orientation == "landscape":
            return height, width
        return width, height


class EpubColorScheme(BaseModel):
    primary: str
    secondary: str
    background: str
    text: str
    accent: str


class EpubTypography(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    body_font: str
    heading_font: str
    base_font_size: float  # rem
    line_height: float


# Artistic directions offered by the admin UI
EPUB_PRESETS: dict[str, dict[str, Any]] = {
    "classique": {
        "color_scheme": {
            "primary": "#1a1a1a", "secondary": "#666666", "background": "#ffffff",
            "text": "#333333", "accent": "#8b7355",
        },
        "typography": {
            "body_font": "Georgia", "heading_font": "Playfair Display",
            "base_font_size": 1.1, "line_height": 1.7,
        },
    },
    "poesie_poche": {
        "color_scheme": {
            "primary": "#2d3748", "secondary": "#718096", "background": "#f7fafc",
            "text": "#1a202c", "accent": "#4a5568",
        },
        "typography": {
            "body_font": "Crimson Pro", "heading_font": "Cormorant Garamond",
            "base_font_size": 1.0, "line_height": 1.8,
        },
    },
    "livre_art": {
        "color_scheme": {
            "primary": "#1e3a5f", "secondary": "#3d6098", "background": "#f0f4f8",
            "text": "#0a1929", "accent": "#5c8cc9",
        },
        "typography": {
            "body_font": "EB Garamond", "heading_font": "Libre Baskerville",
            "base_font_size": 1.2, "line_height": 1.6,
        },
    },
    "contemporain": {
        "color_scheme": {
            "primary": "#000000", "secondary": "#4a4a4a", "background": "#ffffff",
            "text": "#1a1a1a", "accent": "#e53935",
        },
        "typography": {
            "body_font": "Libre Baskerville", "heading_font": "Playfair Display",
            "base_font_size": 1.0, "line_height": 1.9,
        },
    },
    "galerie_fleuve": {
        "color_scheme": {
            "primary": "#1A1A1A", "secondary": "#666666", "background": "#FFFFFF",
            "text": "#333333", "accent": "#10B981",
        },
        "typography": {
            "body_font": "Georgia", "heading_font": "Playfair Display",
            "base_font_size": 1.1, "line_height": 1.75,
        },
    },
    "frequence_vivant": {
        "color_scheme": {
            "primary": "#4ADE80", "secondary": "#86EFAC", "background": "#14281D",
            "text": "#D1FAE5", "accent": "#22C55E",
        },
        "typography": {
            "body_font": "Lora", "heading_font": "Playfair Display",
            "base_font_size": 1.05, "line_height": 1.8,
        },
    },
}

DEFAULT_EPUB_PRESET = "classique"


class EpubExportOptions(_ExportOptions):
    """
    ePub options. The preset (the UI calls it "format") fills in the colour
    scheme and typography unless the request carries its own.
    """

    title: str = "Recueil Poétique"
    organization_mode: OrganizationMode = "marche"
    author: str | None = None
    subtitle: str | None = None
    publisher: str | None = None
    isbn: str | None = None
    language: Literal["fr", "en"] = "fr"
    description: str | None = None
    format: str = DEFAULT_EPUB_PRESET
    color_scheme: EpubColorScheme
    typography: EpubTypography
    include_cover: bool = True
    include_table_of_contents: bool = True
    include_partie_pages: bool = True
    include_indexes: bool = True

    @model_validator(mode="before")
    @classmethod
    def apply_preset(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        preset = EPUB_PRESETS.get(data.get("format") or DEFAULT_EPUB_PRESET)
        if preset is None:
            raise ValueError(f"unknown ePub format: {data.get('format')!r}")
        merged = dict(data)
        for name, value in preset.items():
            if name not in merged and to_camel(name) not in merged:
                merged[name] = value
        return merged
