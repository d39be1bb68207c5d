"""
frequence_shared.models — Pydantic models matching the Supabase tables and
the request bodies the workers accept.

These models are used by:
- packages/pipeline: validate data before writing to Supabase
- packages/api: parse request bodies and serialize responses

Table models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict  (snapshots)
"""

from frequence_shared.models.collection import (
    BatchCollectionRequest,
    DataCollectionLog,
    StepCollectionRequest,
)
from frequence_shared.models.marches import Marche, MarchesFilter
from frequence_shared.models.snapshots import (
    BiodiversitySnapshot,
    RealEstateSnapshot,
    WeatherSnapshot,
)
from frequence_shared.models.textes import (
    EPUB_PRESETS,
    PDF_PRESETS,
    CategorizedKeyword,
    EpubExportOptions,
    PdfExportOptions,
    TexteExport,
    WordExportOptions,
)

__all__ = [
    "Marche",
    "MarchesFilter",
    "BiodiversitySnapshot",
    "WeatherSnapshot",
    "RealEstateSnapshot",
    "DataCollectionLog",
    "BatchCollectionRequest",
    "StepCollectionRequest",
    "TexteExport",
    "WordExportOptions",
    "PdfExportOptions",
    "CategorizedKeyword",
    "PDF_PRESETS",
    "EpubExportOptions",
    "EPUB_PRESETS",
]
