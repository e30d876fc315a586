"""
Sincronizzazione dei ritiri dal calendario Outlook.

Formati riconosciuti per evento:
- oggetto "REF-12345 | Azienda | Merce" (la merce è opzionale);
- in alternativa, corpo con etichette "REF: ...", "Company: ...", "Goods: ...".

Gli eventi non interpretabili vengono saltati (non sono errori); ogni evento
è indipendente e un fallimento non interrompe il resto del batch.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from app.models import PickupStatus, normalize_reference
from app.services.calendar_feed import CalendarEvent
from app.services.dto import SyncResult, SyncStatus
from app.services.errors import CalendarConfigError, InvalidEvent, PickupError
from app.services.logging import log_structured_event
from app.services.pickup_store import PickupStore

DEFAULT_GOODS = "Not specified"
MIN_REFERENCE_LENGTH = 3

_BREAK_RE = re.compile(r"<\s*(?:br|/p|/div|/li|/tr)\b[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_REF_RE = re.compile(r"REF[:\-\s]*([A-Z0-9\-]+)", re.IGNORECASE)
_COMPANY_RE = re.compile(r"Company[:\-\s]*([^\n]+)", re.IGNORECASE)
_GOODS_RE = re.compile(r"Goods[:\-\s]*([^\n]+)", re.IGNORECASE)


@dataclass
class PickupCandidate:
    reference_number: str
    company: str
    scheduled_date: datetime
    goods_description: str = DEFAULT_GOODS

    def create_fields(self) -> dict:
        return {
            "reference_number": self.reference_number,
            "company": self.company,
            "scheduled_date": self.scheduled_date,
            "goods_description": self.goods_description,
        }

    def update_fields(self) -> dict:
        return {
            "company": self.company,
            "scheduled_date": self.scheduled_date,
            "goods_description": self.goods_description,
        }


def strip_html(text: str) -> str:
    with_breaks = _BREAK_RE.sub("\n", text or "")
    without_tags = _TAG_RE.sub("", with_breaks)
    return html.unescape(without_tags).replace("\xa0", " ")


def parse_event(event: CalendarEvent) -> Optional[PickupCandidate]:
    """
    Estrae i campi del ritiro dall'evento, oppure None se il contenuto non è
    interpretabile. Solleva InvalidEvent solo se mancano id o data di inizio.
    """
    if not event.id:
        raise InvalidEvent("Evento calendario senza id.", field="id")
    if event.start is None:
        raise InvalidEvent(
            f"Evento calendario senza data di inizio: {event.subject!r}.", field="start"
        )

    parts = [part.strip() for part in (event.subject or "").split("|")]
    if len(parts) >= 2:
        reference = normalize_reference(parts[0])
        company = parts[1]
        goods = parts[2] if len(parts) > 2 and parts[2] else DEFAULT_GOODS
        if len(reference) < MIN_REFERENCE_LENGTH or not company:
            return None
        return PickupCandidate(reference, company, event.start, goods)

    body = strip_html(event.body)
    ref_match = _REF_RE.search(body)
    company_match = _COMPANY_RE.search(body)
    if not (ref_match and company_match):
        return None

    reference = normalize_reference(ref_match.group(1))
    company = company_match.group(1).strip()
    if len(reference) < MIN_REFERENCE_LENGTH or not company:
        return None
    goods_match = _GOODS_RE.search(body)
    goods = goods_match.group(1).strip() if goods_match else ""
    return PickupCandidate(reference, company, event.start, goods or DEFAULT_GOODS)


class IngestionService:
    def __init__(
        self,
        store: PickupStore,
        feed=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.feed = feed
        self.clock = clock
        self.last_sync_time: Optional[datetime] = None

    def sync_batch(
        self,
        window_days: int = 30,
        events: Optional[Iterable[CalendarEvent]] = None,
    ) -> SyncResult:
        """
        Crea o aggiorna un ritiro per ogni evento interpretabile, usando l'id
        evento come chiave di provenienza. Se `events` non è fornito gli eventi
        vengono letti dal feed calendario nella finestra [oggi, oggi + window_days].
        """
        if events is None:
            events = self._fetch(window_days)

        result = SyncResult()
        for event in events:
            try:
                candidate = parse_event(event)
                if candidate is None:
                    result.skipped += 1
                    log_structured_event(
                        "sync.event_skipped", level="warning", event_id=event.id, subject=event.subject
                    )
                    continue

                _, created = self.store.upsert_by_provenance(
                    event.id, candidate.create_fields(), candidate.update_fields()
                )
                result.synced += 1
                log_structured_event(
                    "sync.event_synced",
                    event_id=event.id,
                    reference_number=candidate.reference_number,
                    record_created=created,
                )
            except PickupError as exc:
                result.errors.append(f"Sincronizzazione evento {event.subject!r} fallita: {exc.message}")
                log_structured_event(
                    "sync.event_failed",
                    level="error",
                    event_id=event.id,
                    error_code=exc.code,
                    error=exc.message,
                )

        self.last_sync_time = self.clock()
        log_structured_event(
            "sync.completed",
            synced=result.synced,
            skipped=result.skipped,
            error_count=len(result.errors),
        )
        return result

    def get_sync_status(self) -> SyncStatus:
        return SyncStatus(
            last_sync_time=self.last_sync_time or self.store.latest_ingested_at(),
            total_count=self.store.count(),
            pending_count=self.store.count(status=PickupStatus.PENDING.value),
        )

    def _fetch(self, window_days: int) -> list:
        if self.feed is None:
            raise CalendarConfigError("Nessun feed calendario configurato.")
        today = self.clock().date()
        start = datetime.combine(today, datetime.min.time())
        end = datetime.combine(today + timedelta(days=window_days), datetime.max.time())
        return list(self.feed.fetch_events(start, end))
