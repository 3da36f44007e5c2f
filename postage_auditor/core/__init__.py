"""Core business logic for Postage Auditor."""

from .config import Settings, get_settings
from .models import (
    BatchCalculationResult,
    BatchItem,
    CalculationResult,
    CooStatus,
    DiffStatus,
    EnrichedItemRecord,
    EnrichmentResult,
    Money,
    ZoneCalculationResult,
)
from .reference import ReferenceTables, build_tables, default_tables
from .shipping import CalculationInputError, ShippingCalculator
from .batch import BatchCalculationService

__all__ = [
    "Settings",
    "get_settings",
    "Money",
    "EnrichedItemRecord",
    "EnrichmentResult",
    "CalculationResult",
    "ZoneCalculationResult",
    "BatchItem",
    "BatchCalculationResult",
    "CooStatus",
    "DiffStatus",
    "ReferenceTables",
    "build_tables",
    "default_tables",
    "ShippingCalculator",
    "CalculationInputError",
    "BatchCalculationService",
]
