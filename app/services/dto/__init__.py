"""DTO dei servizi: filtri di ricerca e risultati strutturati."""

from .pickup_filters import PickupFilters
from .results import (
    OperationResult,
    SyncResult,
    SyncStatus,
    TodayOverview,
    VerificationResult,
)

__all__ = [
    "PickupFilters",
    "OperationResult",
    "SyncResult",
    "SyncStatus",
    "TodayOverview",
    "VerificationResult",
]
