"""
Pickup Store: archivio dei ritiri con doppia chiave (id, reference_number).

Oggetto costruito esplicitamente da create_app() e passato ai workflow.
Ogni operazione apre la propria UnitOfWork sulla sessione fornita.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import Pickup, PickupStatus, normalize_reference
from app.services.errors import DuplicateReference, NotFound, StoreError
from app.services.unit_of_work import UnitOfWork

# Campi che la sincronizzazione calendario può aggiornare su un ritiro già esistente
PROVENANCE_UPDATE_FIELDS = ("company", "scheduled_date", "goods_description")

_CREATE_FIELDS = {
    "reference_number",
    "scheduled_date",
    "company",
    "goods_description",
    "quantity",
    "pickup_location",
    "image_url",
    "notes",
    "trailer_number",
    "outlook_event_id",
}


class PickupStore:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def unit_of_work(self) -> UnitOfWork:
        return UnitOfWork(self._session_factory)

    @contextmanager
    def _work(self) -> Iterator[UnitOfWork]:
        """UnitOfWork in cui ogni errore SQLAlchemy (letture comprese) diventa StoreError."""
        with self.unit_of_work() as uow:
            try:
                yield uow
            except SQLAlchemyError as exc:
                raise StoreError(f"Errore database: {exc}") from exc

    # --- Creazione ----------------------------------------------------------

    def create(self, fields: Dict[str, Any]) -> Pickup:
        """
        Crea un ritiro in stato PENDING.
        Solleva DuplicateReference se il riferimento esiste già.
        """
        data = {key: value for key, value in fields.items() if key in _CREATE_FIELDS}
        data["reference_number"] = normalize_reference(data.get("reference_number"))

        with self._work() as uow:
            pickup = self._insert(uow, data)
            self._commit(uow, data["reference_number"])
            return pickup

    def upsert_by_provenance(
        self,
        event_id: str,
        create_fields: Dict[str, Any],
        update_fields: Dict[str, Any],
    ) -> Tuple[Pickup, bool]:
        """
        Crea il ritiro se nessun record porta questo outlook_event_id,
        altrimenti aggiorna solo company/scheduled_date/goods_description.
        Stato e dati di trasporto non vengono mai toccati.
        """
        with self._work() as uow:
            existing = uow.pickups.get_by_outlook_event_id(event_id)
            if existing is not None:
                for key in PROVENANCE_UPDATE_FIELDS:
                    if key in update_fields:
                        setattr(existing, key, update_fields[key])
                existing.updated_at = self._clock()
                self._commit(uow, existing.reference_number)
                return existing, False

            data = {key: value for key, value in create_fields.items() if key in _CREATE_FIELDS}
            data["reference_number"] = normalize_reference(data.get("reference_number"))
            data["outlook_event_id"] = event_id
            pickup = self._insert(uow, data)
            self._commit(uow, data["reference_number"])
            return pickup, True

    # --- Lettura ------------------------------------------------------------

    def find_by_id(self, pickup_id: int) -> Optional[Pickup]:
        with self._work() as uow:
            return uow.pickups.get_by_id(pickup_id)

    def find_by_reference(self, reference_number: str) -> Optional[Pickup]:
        ref = normalize_reference(reference_number)
        if not ref:
            return None
        with self._work() as uow:
            return uow.pickups.get_by_reference(ref)

    def get_by_id(self, pickup_id: int) -> Pickup:
        pickup = self.find_by_id(pickup_id)
        if pickup is None:
            raise NotFound(f"Ritiro {pickup_id} non trovato.")
        return pickup

    def get_by_reference(self, reference_number: str) -> Pickup:
        pickup = self.find_by_reference(reference_number)
        if pickup is None:
            raise NotFound(
                "Ritiro non trovato. Verificare il numero di riferimento.",
                field="reference_number",
            )
        return pickup

    def query(
        self,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        end_inclusive: bool = True,
        company: Optional[str] = None,
        ascending: bool = False,
    ) -> List[Pickup]:
        with self._work() as uow:
            return uow.pickups.search(
                status=status,
                start=start,
                end=end,
                end_inclusive=end_inclusive,
                company=company,
                ascending=ascending,
            )

    def list_scheduled_between(self, start: datetime, end: datetime) -> List[Pickup]:
        """Ritiri con data in [start, end), in ordine crescente."""
        return self.query(start=start, end=end, end_inclusive=False, ascending=True)

    def count(self, status: Optional[str] = None) -> int:
        with self._work() as uow:
            return uow.pickups.count(status=status)

    def latest_ingested_at(self) -> Optional[datetime]:
        with self._work() as uow:
            return uow.pickups.latest_ingested_at()

    # --- Scrittura ----------------------------------------------------------

    def update(self, pickup_id: int, fields: Dict[str, Any]) -> Pickup:
        """Merge dei campi indicati; NotFound se l'id non esiste."""
        with self._work() as uow:
            pickup = uow.pickups.get_by_id(pickup_id)
            if pickup is None:
                raise NotFound(f"Ritiro {pickup_id} non trovato.")
            for key, value in fields.items():
                if key in ("id", "created_at"):
                    continue
                if key == "reference_number":
                    value = normalize_reference(value)
                setattr(pickup, key, value)
            pickup.updated_at = self._clock()
            self._commit(uow, pickup.reference_number)
            return pickup

    def transition_if(
        self,
        pickup_id: int,
        expected_statuses: Iterable[PickupStatus],
        values: Dict[str, Any],
        extra_criteria: Iterable[Any] = (),
    ) -> bool:
        """
        Update condizionale atomico: scrive `values` solo se lo stato corrente
        è tra quelli attesi. Ritorna True se la scrittura è avvenuta.
        """
        payload = dict(values)
        if isinstance(payload.get("status"), PickupStatus):
            payload["status"] = payload["status"].value
        payload["updated_at"] = self._clock()

        with self._work() as uow:
            try:
                written = uow.pickups.update_where_status(
                    pickup_id,
                    [status.value for status in expected_statuses],
                    payload,
                    extra_criteria=extra_criteria,
                )
            except SQLAlchemyError as exc:
                uow.rollback()
                raise StoreError(f"Errore database sul ritiro {pickup_id}: {exc}") from exc
            self._commit(uow, None)
            return written

    # --- Interni ------------------------------------------------------------

    def _insert(self, uow: UnitOfWork, data: Dict[str, Any]) -> Pickup:
        ref = data["reference_number"]
        if uow.pickups.get_by_reference(ref) is not None:
            raise DuplicateReference(ref)

        now = self._clock()
        pickup = Pickup(**data)
        pickup.status = PickupStatus.PENDING.value
        pickup.created_at = now
        pickup.updated_at = now
        uow.pickups.add(pickup)
        return pickup

    @staticmethod
    def _commit(uow: UnitOfWork, reference_number: Optional[str]) -> None:
        try:
            uow.commit()
        except IntegrityError as exc:
            # Vincolo unique sul riferimento: due creazioni concorrenti
            if reference_number:
                raise DuplicateReference(reference_number) from exc
            raise StoreError(f"Vincolo di integrità violato: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Errore database: {exc}") from exc
