"""
Pacchetto per i servizi (logica di business) dell'applicazione.

I servizi orchestrano:
- PickupStore (accesso al DB tramite repository e UnitOfWork)
- motore del ciclo di vita dei ritiri
- generatori esterni (documento PDF, QR)
- sincronizzazione calendario Outlook
- logging strutturato
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .pickup_store import PickupStore
from .lifecycle_service import LifecycleService
from .reservation_service import ReservationService
from .admin_service import AdminService
from .ingestion_service import IngestionService, parse_event


@dataclass
class PickupServices:
    """Servizi costruiti una volta da create_app() e condivisi dalle blueprint."""

    store: PickupStore
    lifecycle: LifecycleService
    reservation: ReservationService
    admin: AdminService
    ingestion: IngestionService


def build_services(
    session_factory,
    document_generator,
    qr_generator,
    calendar_feed=None,
    clock: Callable[[], datetime] = datetime.now,
) -> PickupServices:
    store = PickupStore(session_factory, clock=clock)
    lifecycle = LifecycleService(store, document_generator, qr_generator, clock=clock)
    return PickupServices(
        store=store,
        lifecycle=lifecycle,
        reservation=ReservationService(store, lifecycle, clock=clock),
        admin=AdminService(store, lifecycle, clock=clock),
        ingestion=IngestionService(store, calendar_feed, clock=clock),
    )


__all__ = [
    "PickupStore",
    "LifecycleService",
    "ReservationService",
    "AdminService",
    "IngestionService",
    "PickupServices",
    "build_services",
    "parse_event",
]
