"""
constants.py — shared constants used across the collectors, exports and API.

Table names, collection types, literary text types and keyword
categories are defined here so they stay in sync between packages.
"""

from __future__ import annotations

from typing import Final, Literal

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------
MARCHES_TABLE: Final = "marches"
MARCHE_TEXTES_TABLE: Final = "marche_textes"
COLLECTION_LOGS_TABLE: Final = "data_collection_logs"

BIODIVERSITY_SNAPSHOTS_TABLE: Final = "biodiversity_snapshots"
WEATHER_SNAPSHOTS_TABLE: Final = "weather_snapshots"
REAL_ESTATE_SNAPSHOTS_TABLE: Final = "real_estate_snapshots"

# ---------------------------------------------------------------------------
# Data collection
# ---------------------------------------------------------------------------
CollectionType = Literal["biodiversity", "weather", "real_estate"]
CollectionMode = Literal["scheduled", "manual"]
CollectionStatus = Literal["pending", "running", "completed", "failed"]

# Processing order inside one marche
COLLECTION_TYPES: Final[tuple[str, ...]] = ("biodiversity", "weather", "real_estate")

# Status strings written to data_collection_logs.summary_stats.current_data_type
COLLECTING_LABELS: Final[dict[str, str]] = {
    "biodiversity": "🌿 Collecte biodiversité...",
    "weather": "🌤️ Collecte météo...",
    "real_estate": "🏠 Collecte immobilier...",
}

# Rough seconds-per-marche used for the initial duration estimate
COLLECTION_TIME_ESTIMATES: Final[dict[str, int]] = {
    "biodiversity": 6,
    "weather": 3,
    "real_estate": 4,
}

# ---------------------------------------------------------------------------
# Literary texts
# ---------------------------------------------------------------------------
OrganizationMode = Literal["type", "marche"]

# Preferred section order when grouping by type (accent-insensitive match)
TEXT_TYPE_ORDER: Final[tuple[str, ...]] = (
    "haiku", "senryu", "poeme", "haibun", "texte-libre", "fable", "prose", "recit",
)

# Types laid out alone on a centred page
SHORT_FORM_TYPES: Final[frozenset[str]] = frozenset({"haiku", "senryu"})

TEXT_TYPE_LABELS: Final[dict[str, str]] = {
    "haiku": "Haïkus",
    "senryu": "Senryūs",
    "haibun": "Haïbuns",
    "poeme": "Poèmes",
    "texte-libre": "Textes libres",
    "essai-bref": "Essais brefs",
    "dialogue-polyphonique": "Dialogues polyphoniques",
    "fable": "Fables",
    "fragment": "Fragments",
    "carte-poetique": "Cartes poétiques",
    "prose": "Proses",
    "carnet": "Carnets de terrain",
    "correspondance": "Correspondances",
    "manifeste": "Manifestes",
    "glossaire": "Glossaires poétiques",
    "protocole": "Protocoles hybrides",
    "synthese": "Synthèses IA-Humain",
    "recit-donnees": "Récits-données",
    "recit": "Récits",
}

NO_PLACE_LABEL: Final = "Sans lieu"
UNSORTED_ORDER: Final = 999
MISSING_DATE_SORT_KEY: Final = "9999-12-31"

# ---------------------------------------------------------------------------
# Keyword index
# ---------------------------------------------------------------------------
KEYWORD_CATEGORIES: Final[dict[str, tuple[str, tuple[str, ...]]]] = {
    "faune": (
        "Faune Fluviale et Migratrice",
        (
            "lamproie", "saumon", "alose", "truite", "silure", "anguille", "brochet",
            "esturgeon", "aigrette", "martin-pêcheur", "loutre", "grand-duc", "héron",
            "corneille", "libellule", "papillon", "cigale", "grenouille", "crapaud",
            "couleuvre",
        ),
    ),
    "hydrologie": (
        "Hydrologie et Dynamiques Fluviales",
        (
            "étiage", "crue", "marnage", "mascaret", "confluence", "débit", "courant",
            "ripisylve", "frayère", "berge", "méandre", "estuaire", "embouchure",
            "source", "résurgence", "nappe", "alluvion", "lit", "aval", "amont",
        ),
    ),
    "ouvrages": (
        "Ouvrages Humains",
        (
            "barrage", "ascenseur", "pont", "écluse", "gabarre", "passe", "vanne",
            "digue", "moulin", "centrale", "éolienne", "usine", "port", "quai",
        ),
    ),
    "flore": (
        "Flore et Paysages",
        (
            "aulne", "saule", "séquoia", "renoncule", "vigne", "chêne", "roseau",
            "nénuphar", "herbier", "forêt", "prairie", "falaise", "garrigue", "marais",
            "zone humide",
        ),
    ),
    "temporalites": (
        "Temporalités et Projections",
        (
            "2050", "2035", "holocène", "mémoire", "avenir", "futur", "prospective",
            "anthropocène", "demain", "hier", "jadis", "siècle",
        ),
    ),
    "poetique": (
        "Geste Poétique",
        (
            "remonter", "fréquence", "spectre", "géopoétique", "syntoniser", "écouter",
            "silence", "souffle", "marcher", "arpenter", "contempler", "vibration",
        ),
    ),
    "technologies": (
        "Technologies et Médiations",
        (
            "IA", "drone", "ADN", "capteur", "spectrogramme", "tablette", "robot",
            "algorithme", "numérique", "satellite", "GPS", "sonar",
        ),
    ),
}

CUSTOM_KEYWORD_CATEGORY: Final = "custom"
CUSTOM_KEYWORD_LABEL: Final = "Mots-Clés Personnalisés"
