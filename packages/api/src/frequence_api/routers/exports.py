"""
Export endpoints: the literary texts as a downloadable file.

    POST /exports/word  .docx manuscript
    POST /exports/pdf   print-ready PDF
    POST /exports/epub  reflowable ePub
    POST /exports/csv   semicolon CSV for spreadsheets

Body: {"marcheIds": [...]?, "types": [...]?, "options": {...}}

The document builders are CPU-bound and run in the threadpool.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from frequence_shared.models import EpubExportOptions, PdfExportOptions, TexteExport, WordExportOptions
from frequence_pipeline import exports
from frequence_pipeline.loaders.supabase_loader import SupabaseLoader

from frequence_api.dependencies import get_loader
from frequence_api.responses import attachment

router = APIRouter(prefix="/exports", tags=["exports"])

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
EPUB_MEDIA_TYPE = "application/epub+zip"


class _ExportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    marche_ids: list[str] | None = Field(default=None, alias="marcheIds")
    types: list[str] | None = None


class WordExportRequest(_ExportRequest):
    options: WordExportOptions = Field(default_factory=WordExportOptions)


class PdfExportRequest(_ExportRequest):
    options: PdfExportOptions = Field(default_factory=PdfExportOptions)


class EpubExportRequest(_ExportRequest):
    options: EpubExportOptions = Field(default_factory=EpubExportOptions)


async def _textes(request: _ExportRequest, loader: SupabaseLoader) -> list[TexteExport]:
    textes = await loader.fetch_textes(request.marche_ids, request.types)
    if not textes:
        raise HTTPException(status_code=404, detail="No texts to export")
    return textes


@router.post("/word")
async def export_word(
    request: WordExportRequest,
    loader: SupabaseLoader = Depends(get_loader),
) -> Response:
    textes = await _textes(request, loader)
    data = await run_in_threadpool(exports.export_textes_to_word, textes, request.options)
    return attachment(data, exports.word_filename(request.options.title), DOCX_MEDIA_TYPE)


@router.post("/pdf")
async def export_pdf(
    request: PdfExportRequest,
    loader: SupabaseLoader = Depends(get_loader),
) -> Response:
    textes = await _textes(request, loader)
    data = await run_in_threadpool(exports.export_textes_to_pdf, textes, request.options)
    return attachment(data, exports.pdf_filename(request.options.title), "application/pdf")


@router.post("/epub")
async def export_epub(
    request: EpubExportRequest,
    loader: SupabaseLoader = Depends(get_loader),
) -> Response:
    textes = await _textes(request, loader)
    data = await run_in_threadpool(exports.export_textes_to_epub, textes, request.options)
    return attachment(data, exports.epub_filename(request.options.title), EPUB_MEDIA_TYPE)


@router.post("/csv")
async def export_csv(
    request: _ExportRequest,
    loader: SupabaseLoader = Depends(get_loader),
) -> Response:
    textes = await _textes(request, loader)
    data = exports.export_textes_to_csv(textes)
    return attachment(data, exports.csv_filename(), "text/csv; charset=utf-8")
