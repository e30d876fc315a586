"""
Workflow lato amministrazione: creazione ritiri, elenchi filtrati, vista del
giorno, conferma carico legacy in tre passi e statistiche per la dashboard.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from app.models import Pickup, PickupStatus, day_window
from app.services.dto import OperationResult, PickupFilters, TodayOverview
from app.services.errors import (
    GenerationError,
    NotFound,
    PickupError,
    ValidationError,
    WrongStatus,
)
from app.services.lifecycle_service import LifecycleService
from app.services.logging import log_structured_event
from app.services.pickup_store import PickupStore

REQUIRED_CREATE_FIELDS = (
    "reference_number",
    "company",
    "scheduled_date",
    "goods_description",
    "pickup_location",
)


class AdminService:
    def __init__(
        self,
        store: PickupStore,
        lifecycle: LifecycleService,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.lifecycle = lifecycle
        self.clock = clock

    # --- Creazione ----------------------------------------------------------

    def create(self, fields: Mapping[str, Any]) -> OperationResult:
        """
        Crea un ritiro PENDING.
        DuplicateReference è restituito distinto dagli altri errori.
        """
        try:
            data = _clean_create_fields(fields)
            pickup = self.store.create(data)
        except PickupError as exc:
            log_structured_event(
                "pickup.create_failed",
                level="warning",
                reference_number=str(fields.get("reference_number") or ""),
                error_code=exc.code,
                error=exc.message,
            )
            return OperationResult.fail(exc)

        log_structured_event(
            "pickup.created",
            pickup_id=pickup.id,
            reference_number=pickup.reference_number,
            scheduled_date=pickup.scheduled_date,
        )
        return OperationResult.ok(pickup)

    # --- Consultazione ------------------------------------------------------

    def get_pickup(self, pickup_id: int) -> Optional[Pickup]:
        return self.store.find_by_id(pickup_id)

    def list_filtered(self, filters: Optional[PickupFilters] = None) -> List[Pickup]:
        """Solleva ValidationError per uno stato sconosciuto."""
        filters = filters or PickupFilters()
        start, end, end_inclusive = filters.window()
        return self.store.query(
            status=filters.normalized_status(),
            start=start,
            end=end,
            end_inclusive=end_inclusive,
            company=filters.company,
        )

    def list_today(self) -> TodayOverview:
        start, end = day_window(self.clock().date())
        pickups = self.store.list_scheduled_between(start, end)
        grouped: Dict[str, List[Pickup]] = {status.value.lower(): [] for status in PickupStatus}
        for pickup in pickups:
            grouped.setdefault(pickup.status.lower(), []).append(pickup)
        return TodayOverview(pickups=pickups, grouped=grouped)

    def stats(self) -> Dict[str, Dict[str, int]]:
        """Conteggi per stato: oggi e complessivi."""
        start, end = day_window(self.clock().date())
        return {
            "today": _count_by_status(self.store.list_scheduled_between(start, end)),
            "overall": _count_by_status(self.store.query()),
        }

    # --- Conferma legacy ----------------------------------------------------

    def confirm_loading_legacy(
        self, pickup_id: int, quantity: Any, notes: Optional[str] = None
    ) -> OperationResult:
        """
        Tre passi in sequenza stretta:
        1. RESERVED -> LOADED con quantità finale;
        2. generazione documento (solo se il passo 1 è riuscito);
        3. LOADED -> COMPLETED con il percorso del documento.
        """
        try:
            final_quantity = _positive_int(quantity, "quantity")
            loaded = self.lifecycle.confirm_loading(pickup_id, final_quantity, notes)
        except PickupError as exc:
            return OperationResult.fail(exc)

        try:
            pdf_path = self.lifecycle.generate_document(loaded)
        except GenerationError as exc:
            return OperationResult.fail(exc, pickup=loaded)

        try:
            completed = self.lifecycle.mark_completed(pickup_id, pdf_path)
        except PickupError as exc:
            return OperationResult.fail(exc, pickup=self.store.find_by_id(pickup_id))
        return OperationResult.ok(completed, pdf_path=pdf_path)

    def generate_document(self, pickup_id: int) -> OperationResult:
        """
        Rigenera il documento di un ritiro già caricato (recupero dopo un
        fallimento del generatore). Un LOADED legacy viene anche completato.
        """
        try:
            pickup = self.store.get_by_id(pickup_id)
            if pickup.status not in (PickupStatus.LOADED.value, PickupStatus.COMPLETED.value):
                raise WrongStatus(
                    f"Documento non generabile. Stato attuale: {pickup.status}.",
                    current_status=pickup.status,
                )
            pdf_path = self.lifecycle.generate_document(pickup)
            if pickup.is_legacy_loaded():
                updated = self.lifecycle.mark_completed(pickup_id, pdf_path)
            else:
                updated = self.lifecycle.attach_document(pickup_id, pdf_path)
        except NotFound as exc:
            return OperationResult.fail(exc)
        except PickupError as exc:
            return OperationResult.fail(exc, pickup=self.store.find_by_id(pickup_id))
        return OperationResult.ok(updated, pdf_path=pdf_path)


def _count_by_status(pickups: List[Pickup]) -> Dict[str, int]:
    counts = {"total": len(pickups)}
    counts.update({status.value.lower(): 0 for status in PickupStatus})
    for pickup in pickups:
        key = pickup.status.lower()
        counts[key] = counts.get(key, 0) + 1
    return counts


def _clean_create_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for key in REQUIRED_CREATE_FIELDS:
        value = fields.get(key)
        if isinstance(value, str):
            value = value.strip()
        if value in (None, ""):
            raise ValidationError(f"Campo obbligatorio mancante: {key}.", field=key)
        data[key] = value

    data["scheduled_date"] = _parse_datetime(data["scheduled_date"], "scheduled_date")

    quantity = fields.get("quantity")
    data["quantity"] = _positive_int(quantity, "quantity") if quantity not in (None, "") else None

    for key in ("trailer_number", "notes", "image_url"):
        value = fields.get(key)
        data[key] = (value.strip() or None) if isinstance(value, str) else value
    return data


def _parse_datetime(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Data non valida: {value!r}.", field=field)
    if parsed.tzinfo is not None:
        # Le date sono salvate come ora locale senza fuso
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _positive_int(value: Any, field: str) -> int:
    # bool è sottoclasse di int: True non è una quantità
    if isinstance(value, bool):
        raise ValidationError(f"Valore numerico non valido per {field}.", field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Valore numerico non valido per {field}.", field=field)
    if isinstance(value, float) and value != number:
        raise ValidationError(f"Valore intero richiesto per {field}.", field=field)
    if number <= 0:
        raise ValidationError(f"{field} deve essere maggiore di zero.", field=field)
    return number
