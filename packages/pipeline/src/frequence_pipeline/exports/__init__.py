"""
frequence_pipeline.exports — Word, PDF, ePub and CSV exports of the literary texts.

    from frequence_pipeline.exports import export_textes_to_word

    data = export_textes_to_word(textes, WordExportOptions(title="Dordogne"))
"""

from frequence_pipeline.exports.csv import csv_filename, export_textes_to_csv
from frequence_pipeline.exports.epub import build_epub_chapters, epub_filename, export_textes_to_epub
from frequence_pipeline.exports.pdf import export_textes_to_pdf, pdf_filename, render_pdf_html
from frequence_pipeline.exports.word import build_word_document, export_textes_to_word, word_filename

__all__ = [
    "build_epub_chapters",
    "build_word_document",
    "csv_filename",
    "epub_filename",
    "export_textes_to_csv",
    "export_textes_to_epub",
    "export_textes_to_pdf",
    "export_textes_to_word",
    "pdf_filename",
    "render_pdf_html",
    "word_filename",
]
