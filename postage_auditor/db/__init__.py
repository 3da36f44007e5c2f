"""Database layer for Postage Auditor."""

from .cache import EnrichmentCache
from .models import ApiLogDB, Base, BrandCountryDB, EnrichedItemDB, TariffRateDB
from .repository import Repository
from .session import get_engine, get_session, init_database, session_scope

__all__ = [
    "Base",
    "EnrichedItemDB",
    "TariffRateDB",
    "BrandCountryDB",
    "ApiLogDB",
    "EnrichmentCache",
    "Repository",
    "get_engine",
    "get_session",
    "init_database",
    "session_scope",
]
