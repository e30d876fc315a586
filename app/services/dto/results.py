"""Risultati strutturati restituiti dai workflow al chiamante."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.models import Pickup
from app.services.errors import PickupError


@dataclass
class OperationResult:
    success: bool
    pickup: Optional[Pickup] = None
    error: Optional[PickupError] = None
    pdf_path: Optional[str] = None
    qr_code: Optional[str] = None

    @classmethod
    def ok(cls, pickup: Pickup, pdf_path: Optional[str] = None) -> "OperationResult":
        return cls(success=True, pickup=pickup, pdf_path=pdf_path)

    @classmethod
    def fail(cls, error: PickupError, pickup: Optional[Pickup] = None) -> "OperationResult":
        return cls(success=False, pickup=pickup, error=error)


@dataclass
class VerificationResult:
    exists: bool
    is_today: bool = False
    can_reserve: bool = False
    pickup: Optional[Pickup] = None


@dataclass
class TodayOverview:
    pickups: List[Pickup]
    grouped: Dict[str, List[Pickup]]

    @property
    def total(self) -> int:
        return len(self.pickups)


@dataclass
class SyncResult:
    synced: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class SyncStatus:
    last_sync_time: Optional[datetime]
    total_count: int
    pending_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_sync_time": self.last_sync_time.isoformat() if self.last_sync_time else None,
            "total_count": self.total_count,
            "pending_count": self.pending_count,
        }
