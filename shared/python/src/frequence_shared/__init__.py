"""
frequence_shared — shared utilities, models, and configuration for the
La Fréquence du Vivant workers.

Usage:
    from frequence_shared.config import settings
    from frequence_shared.db import get_supabase_client
    from frequence_shared.models.marches import Marche, MarchesFilter
    from frequence_shared.models.textes import TexteExport
    from frequence_shared.time_utils import format_french_long_date
    from frequence_shared.constants import COLLECTION_TYPES, TEXT_TYPE_ORDER
"""

__version__ = "0.1.0"
