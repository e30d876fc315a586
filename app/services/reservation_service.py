"""
Workflow lato autista: verifica -> prenotazione -> inizio carico -> conferma carico.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

from app.models import Pickup, PickupStatus, day_window
from app.services.dto import OperationResult, VerificationResult
from app.services.errors import DocumentPending, PickupError
from app.services.lifecycle_service import LifecycleService
from app.services.pickup_store import PickupStore


class ReservationService:
    def __init__(
        self,
        store: PickupStore,
        lifecycle: LifecycleService,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.lifecycle = lifecycle
        self.clock = clock

    def verify(self, reference_number: str) -> VerificationResult:
        """
        Controlla se il riferimento esiste e se è prenotabile oggi.
        Il ritiro è restituito anche se già prenotato: l'autista vede l'assegnazione.
        """
        pickup = self.store.find_by_reference(reference_number)
        if pickup is None:
            return VerificationResult(exists=False)

        is_today = pickup.is_scheduled_on(self.clock().date())
        return VerificationResult(
            exists=True,
            is_today=is_today,
            can_reserve=is_today and pickup.status == PickupStatus.PENDING.value,
            pickup=pickup,
        )

    def reserve(
        self,
        reference_number: str,
        truck_plate: str,
        driver_name: Optional[str] = None,
        quantity: Optional[int] = None,
        trailer_number: Optional[str] = None,
        driver_company: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> OperationResult:
        try:
            pickup = self.lifecycle.reserve(
                reference_number,
                truck_plate,
                driver_name=driver_name,
                quantity=quantity,
                trailer_number=trailer_number,
                driver_company=driver_company,
                destination=destination,
            )
        except PickupError as exc:
            return OperationResult.fail(exc)
        return OperationResult.ok(pickup)

    def start_loading(self, pickup_id: int) -> OperationResult:
        try:
            return OperationResult.ok(self.lifecycle.start_loading(pickup_id))
        except PickupError as exc:
            return OperationResult.fail(exc)

    def confirm_loaded(self, pickup_id: int) -> OperationResult:
        """Conferma il carico; il riferimento al documento è restituito in pdf_path."""
        try:
            pickup = self.lifecycle.confirm_loaded(pickup_id)
        except DocumentPending as exc:
            return OperationResult.fail(exc, pickup=exc.pickup)
        except PickupError as exc:
            return OperationResult.fail(exc)
        return OperationResult.ok(pickup, pdf_path=pickup.pdf_path)

    def get_pickup(self, pickup_id: int) -> Optional[Pickup]:
        return self.store.find_by_id(pickup_id)

    def qr_code_for(self, pickup_id: int) -> OperationResult:
        """QR di verifica generato al volo, senza scritture sul ritiro."""
        try:
            pickup = self.store.get_by_id(pickup_id)
            qr_code = self.lifecycle.build_qr_code(pickup)
        except PickupError as exc:
            return OperationResult.fail(exc)
        result = OperationResult.ok(pickup, pdf_path=pickup.pdf_path)
        result.qr_code = qr_code
        return result

    def list_today(self) -> List[Pickup]:
        start, end = day_window(self.clock().date())
        return self.store.list_scheduled_between(start, end)

    def list_all(self) -> List[Pickup]:
        return self.store.query()
