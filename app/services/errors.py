"""
Tassonomia degli errori del ciclo di vita dei ritiri.

Il motore di stato solleva queste eccezioni; i workflow (reservation/admin/ingestion)
le intercettano e le restituiscono come risultati strutturati al chiamante.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PickupError(Exception):
    """Errore recuperabile di un'operazione sui ritiri."""

    code = "pickup_error"

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.current_status = current_status
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.current_status is not None:
            data["current_status"] = self.current_status
        if self.field is not None:
            data["field"] = self.field
        return data


class NotFound(PickupError):
    code = "not_found"


class DuplicateReference(PickupError):
    code = "duplicate_reference"

    def __init__(self, reference_number: str):
        super().__init__(
            f"Esiste già un ritiro con riferimento {reference_number}.",
            field="reference_number",
        )
        self.reference_number = reference_number


class WrongStatus(PickupError):
    code = "wrong_status"


class AlreadyReserved(WrongStatus):
    code = "already_reserved"


class NotScheduledToday(PickupError):
    code = "not_scheduled_today"


class ValidationError(PickupError):
    code = "validation_error"


class InvalidEvent(ValidationError):
    """Evento calendario strutturalmente invalido (manca id o data di inizio)."""

    code = "invalid_event"


class GenerationError(PickupError):
    """Fallimento di un generatore esterno (documento o QR)."""

    code = "generation_error"


class DocumentPending(GenerationError):
    """
    Lo stato è già avanzato ma il documento non è stato generato.

    Stato parziale accettato: il ritiro resta senza pdf_path finché la
    generazione non viene rilanciata (AdminService.generate_document).
    """

    code = "document_pending"

    def __init__(self, message: str, pickup: Any, *, current_status: Optional[str] = None):
        super().__init__(message, current_status=current_status)
        self.pickup = pickup


class StoreError(PickupError):
    code = "store_error"


class CalendarConfigError(PickupError):
    code = "calendar_config_error"


class CalendarFeedError(PickupError):
    code = "calendar_feed_error"
