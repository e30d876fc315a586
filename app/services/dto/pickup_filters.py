"""DTO e helper per i filtri di ricerca ritiri (vista admin)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from app.models import PickupStatus, day_window
from app.services.errors import ValidationError


@dataclass
class PickupFilters:
    status: Optional[str] = None
    date: Optional[date] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    company: Optional[str] = None

    @staticmethod
    def _parse_datetime(value: Any, field: str) -> Optional[datetime]:
        if value in (None, ""):
            return None
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, datetime.min.time())
        try:
            return datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise ValidationError(f"Data non valida: {value!r}.", field=field)

    @classmethod
    def from_query_args(cls, args: Mapping[str, Any]) -> "PickupFilters":
        # Parametri URL in camelCase come nel client, con fallback snake_case
        single_day = cls._parse_datetime(args.get("date"), "date")
        return cls(
            status=(args.get("status") or "").strip() or None,
            date=single_day.date() if single_day else None,
            start_date=cls._parse_datetime(args.get("startDate") or args.get("start_date"), "start_date"),
            end_date=cls._parse_datetime(args.get("endDate") or args.get("end_date"), "end_date"),
            company=(args.get("company") or "").strip() or None,
        )

    def normalized_status(self) -> Optional[str]:
        if not self.status:
            return None
        status = PickupStatus.parse(self.status)
        if status is None:
            raise ValidationError(f"Stato non valido: {self.status}.", field="status")
        return status.value

    def window(self) -> tuple[Optional[datetime], Optional[datetime], bool]:
        """
        (inizio, fine, fine_inclusa).
        Il giorno singolo ha precedenza sull'intervallo e diventa [00:00, 00:00 del giorno dopo).
        """
        if self.date is not None:
            start, end = day_window(self.date)
            return start, end, False
        return self.start_date, self.end_date, True
