"""
frequence_pipeline — Data collection and export workers for La Fréquence du Vivant.

Architecture:
  sources/     — one client per Supabase edge function (biodiversity, weather, real estate)
  transforms/  — edge-function payloads -> snapshot rows, price statistics
  loaders/     — Supabase reads and writes (marches, snapshots, collection logs, texts)
  pipelines/   — batch collector and per-marche step collectors
  exports/     — Word, PDF and CSV exports of the literary texts
  utils/       — structlog configuration, tenacity-based retry helper

Quick start:
    import asyncio
    from frequence_pipeline.pipelines.batch_collector import run
    from frequence_shared.models import BatchCollectionRequest

    result = asyncio.run(run(BatchCollectionRequest(collectionTypes=["weather"])))

CLI:
    frequence collect --types biodiversity,weather
    frequence step real-estate --log-id ... --marche-id ... --lat 44.8 --lon -0.6
    frequence export word --out manuscrit.docx --by marche
    frequence status

Shared code from frequence_shared:
    from frequence_shared.config import settings
    from frequence_shared.db import get_supabase_client
    from frequence_shared.models import Marche, DataCollectionLog, TexteExport
"""

__version__ = "0.1.0"
