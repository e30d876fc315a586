"""
Motore del ciclo di vita dei ritiri.

Transizioni ammesse:

    PENDING  --reserve-------------> RESERVED
    RESERVED --start_loading-------> LOADING     (loading_start_time)
    LOADING  --confirm_loaded------> LOADED      (QR, loading_end_time, poi pdf_path)
    RESERVED --confirm_loading-----> LOADED      (legacy admin: quantità finale, note)
    LOADED   --mark_completed------> COMPLETED   (legacy admin: pdf_path)

Ogni guardia viene verificata su una lettura fresca e poi ribadita dall'update
condizionale del PickupStore: se la scrittura non avviene nessun campo cambia.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from app.models import Pickup, PickupStatus, day_window, normalize_reference
from app.services.errors import (
    AlreadyReserved,
    DocumentPending,
    GenerationError,
    NotScheduledToday,
    ValidationError,
    WrongStatus,
)
from app.services.logging import log_structured_event
from app.services.pickup_store import PickupStore

DEFAULT_DRIVER_NAME = "Not provided"


class LifecycleService:
    def __init__(
        self,
        store: PickupStore,
        document_generator,
        qr_generator,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.document_generator = document_generator
        self.qr_generator = qr_generator
        self.clock = clock

    # --- Percorso autista ---------------------------------------------------

    def reserve(
        self,
        reference_number: str,
        truck_plate: str,
        driver_name: Optional[str] = None,
        quantity: Optional[int] = None,
        trailer_number: Optional[str] = None,
        driver_company: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> Pickup:
        """PENDING -> RESERVED, solo per ritiri programmati oggi."""
        plate = (truck_plate or "").strip().upper()
        if not plate:
            raise ValidationError("Targa del camion obbligatoria.", field="truck_plate")

        pickup = self.store.get_by_reference(reference_number)
        if pickup.status != PickupStatus.PENDING.value:
            self._reject("reserve", pickup)
            raise AlreadyReserved(
                f"Il ritiro è già {pickup.status.lower()}. Contattare l'amministrazione "
                "se non è corretto.",
                current_status=pickup.status,
            )

        start, end = day_window(self.clock().date())
        if not (start <= pickup.scheduled_date < end):
            self._reject("reserve", pickup, reason="not_today")
            raise NotScheduledToday(
                f"Il ritiro è programmato per il {pickup.scheduled_date:%d/%m/%Y}, non per oggi.",
                current_status=pickup.status,
                field="scheduled_date",
            )

        values = {
            "status": PickupStatus.RESERVED,
            "truck_plate": plate,
            "driver_name": (driver_name or "").strip() or DEFAULT_DRIVER_NAME,
        }
        if quantity is not None:
            values["quantity"] = quantity
        if trailer_number and trailer_number.strip():
            values["trailer_number"] = trailer_number.strip().upper()
        if driver_company and driver_company.strip():
            values["driver_company"] = driver_company.strip()
        if destination and destination.strip():
            values["destination"] = destination.strip()

        written = self.store.transition_if(
            pickup.id,
            [PickupStatus.PENDING],
            values,
            extra_criteria=[
                Pickup.scheduled_date >= start,
                Pickup.scheduled_date < end,
            ],
        )
        if not written:
            # Un'altra prenotazione ha vinto la corsa tra lettura e scrittura
            current = self.store.get_by_id(pickup.id)
            self._reject("reserve", current, reason="race_lost")
            raise AlreadyReserved(
                f"Il ritiro è già {current.status.lower()}.",
                current_status=current.status,
            )

        reserved = self.store.get_by_id(pickup.id)
        self._transitioned("pickup.reserved", reserved, PickupStatus.PENDING)
        return reserved

    def start_loading(self, pickup_id: int) -> Pickup:
        """RESERVED -> LOADING; loading_start_time scritto una sola volta."""
        pickup = self.store.get_by_id(pickup_id)
        self._require(pickup, PickupStatus.RESERVED, "Impossibile iniziare il carico")

        written = self.store.transition_if(
            pickup_id,
            [PickupStatus.RESERVED],
            {"status": PickupStatus.LOADING, "loading_start_time": self.clock()},
        )
        if not written:
            self._race_lost(pickup_id, "Impossibile iniziare il carico")

        loading = self.store.get_by_id(pickup_id)
        self._transitioned("pickup.loading_started", loading, PickupStatus.RESERVED)
        return loading

    def confirm_loaded(self, pickup_id: int) -> Pickup:
        """
        LOADING -> LOADED in due scritture:
        1. QR generato sul riferimento, poi stato LOADED + qr_code + loading_end_time;
        2. documento generato dal record già LOADED, poi pdf_path.

        Se il documento fallisce il ritiro resta LOADED senza pdf_path
        (DocumentPending): la generazione va rilanciata a parte.
        """
        pickup = self.store.get_by_id(pickup_id)
        self._require(pickup, PickupStatus.LOADING, "Impossibile confermare il carico")

        qr_code = self._generate_qr(pickup)

        written = self.store.transition_if(
            pickup_id,
            [PickupStatus.LOADING],
            {
                "status": PickupStatus.LOADED,
                "qr_code": qr_code,
                "loading_end_time": self.clock(),
            },
        )
        if not written:
            self._race_lost(pickup_id, "Impossibile confermare il carico")

        loaded = self.store.get_by_id(pickup_id)
        self._transitioned("pickup.loaded", loaded, PickupStatus.LOADING)

        try:
            pdf_path = self._generate_document(loaded)
        except GenerationError as exc:
            raise DocumentPending(
                f"Carico confermato ma documento non generato: {exc.message}",
                loaded,
                current_status=loaded.status,
            ) from exc

        return self.attach_document(pickup_id, pdf_path)

    # --- Percorso legacy admin ---------------------------------------------

    def confirm_loading(
        self, pickup_id: int, final_quantity: int, notes: Optional[str] = None
    ) -> Pickup:
        """RESERVED -> LOADED con quantità finale e note (nessun QR)."""
        pickup = self.store.get_by_id(pickup_id)
        self._require(pickup, PickupStatus.RESERVED, "Impossibile confermare il carico")

        written = self.store.transition_if(
            pickup_id,
            [PickupStatus.RESERVED],
            {
                "status": PickupStatus.LOADED,
                "quantity": final_quantity,
                "notes": (notes or "").strip() or None,
            },
        )
        if not written:
            self._race_lost(pickup_id, "Impossibile confermare il carico")

        loaded = self.store.get_by_id(pickup_id)
        self._transitioned("pickup.loaded_legacy", loaded, PickupStatus.RESERVED)
        return loaded

    def mark_completed(self, pickup_id: int, pdf_path: str) -> Pickup:
        """LOADED (legacy, senza QR) -> COMPLETED con il documento generato."""
        pickup = self.store.get_by_id(pickup_id)
        if not pickup.is_legacy_loaded():
            self._reject("mark_completed", pickup)
            raise WrongStatus(
                f"Impossibile completare il ritiro. Stato attuale: {pickup.status}.",
                current_status=pickup.status,
            )

        written = self.store.transition_if(
            pickup_id,
            [PickupStatus.LOADED],
            {"status": PickupStatus.COMPLETED, "pdf_path": pdf_path},
            extra_criteria=[Pickup.qr_code.is_(None)],
        )
        if not written:
            self._race_lost(pickup_id, "Impossibile completare il ritiro")

        completed = self.store.get_by_id(pickup_id)
        self._transitioned("pickup.completed", completed, PickupStatus.LOADED)
        return completed

    # --- Documenti ----------------------------------------------------------

    def attach_document(self, pickup_id: int, pdf_path: str) -> Pickup:
        """Sovrascrive pdf_path su un ritiro LOADED/COMPLETED senza cambiarne lo stato."""
        allowed = [PickupStatus.LOADED, PickupStatus.COMPLETED]
        written = self.store.transition_if(pickup_id, allowed, {"pdf_path": pdf_path})
        if not written:
            current = self.store.get_by_id(pickup_id)
            self._reject("attach_document", current)
            raise WrongStatus(
                f"Documento non associabile. Stato attuale: {current.status}.",
                current_status=current.status,
            )

        pickup = self.store.get_by_id(pickup_id)
        log_structured_event(
            "pickup.document_attached",
            pickup_id=pickup.id,
            reference_number=pickup.reference_number,
            pdf_path=pdf_path,
        )
        return pickup

    def generate_document(self, pickup: Pickup) -> str:
        return self._generate_document(pickup)

    def build_qr_code(self, pickup: Pickup) -> str:
        return self._generate_qr(pickup)

    # --- Interni ------------------------------------------------------------

    def _generate_qr(self, pickup: Pickup) -> str:
        try:
            return self.qr_generator.generate(normalize_reference(pickup.reference_number))
        except GenerationError as exc:
            self._generation_failed("qr", pickup, exc)
            raise
        except Exception as exc:
            self._generation_failed("qr", pickup, exc)
            raise GenerationError(
                "Generazione QR fallita.", current_status=pickup.status
            ) from exc

    def _generate_document(self, pickup: Pickup) -> str:
        try:
            return self.document_generator.generate(pickup)
        except GenerationError as exc:
            self._generation_failed("document", pickup, exc)
            raise
        except Exception as exc:
            self._generation_failed("document", pickup, exc)
            raise GenerationError(
                "Generazione documento fallita.", current_status=pickup.status
            ) from exc

    def _require(self, pickup: Pickup, expected: PickupStatus, action: str) -> None:
        if pickup.status != expected.value:
            self._reject(action, pickup)
            raise WrongStatus(
                f"{action}. Stato attuale: {pickup.status}.",
                current_status=pickup.status,
            )

    def _race_lost(self, pickup_id: int, action: str) -> None:
        current = self.store.get_by_id(pickup_id)
        self._reject(action, current, reason="race_lost")
        raise WrongStatus(
            f"{action}. Stato attuale: {current.status}.",
            current_status=current.status,
        )

    @staticmethod
    def _transitioned(action: str, pickup: Pickup, from_status: PickupStatus) -> None:
        log_structured_event(
            action,
            pickup_id=pickup.id,
            reference_number=pickup.reference_number,
            from_status=from_status.value,
            to_status=pickup.status,
        )

    @staticmethod
    def _reject(action: str, pickup: Pickup, reason: str = "wrong_status") -> None:
        log_structured_event(
            "pickup.transition_rejected",
            level="warning",
            operation=action,
            reason=reason,
            pickup_id=pickup.id,
            reference_number=pickup.reference_number,
            current_status=pickup.status,
        )

    @staticmethod
    def _generation_failed(kind: str, pickup: Pickup, exc: Exception) -> None:
        log_structured_event(
            "pickup.generation_failed",
            level="error",
            artifact=kind,
            pickup_id=pickup.id,
            reference_number=pickup.reference_number,
            error=str(exc),
        )
