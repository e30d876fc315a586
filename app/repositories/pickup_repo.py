"""
Repository specifico per Pickup.
Query per riferimento/provenienza, filtri per la UI admin e update condizionale di stato.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func

from app.models import Pickup
from app.repositories.base import SqlAlchemyRepository


class PickupRepository(SqlAlchemyRepository[Pickup]):
    def __init__(self, session):
        super().__init__(session, Pickup)

    def get_by_reference(self, reference_number: str) -> Optional[Pickup]:
        return (
            self.session.query(Pickup)
            .filter(Pickup.reference_number == reference_number)
            .first()
        )

    def get_by_outlook_event_id(self, event_id: str) -> Optional[Pickup]:
        return (
            self.session.query(Pickup)
            .filter(Pickup.outlook_event_id == event_id)
            .order_by(Pickup.id.asc())
            .first()
        )

    def search(
        self,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        end_inclusive: bool = True,
        company: Optional[str] = None,
        ascending: bool = False,
    ) -> List[Pickup]:
        """
        Restituisce i ritiri filtrati.
        Ordinamento per data programmata: decrescente per l'elenco generale,
        crescente per le viste "oggi".
        """
        query = self.session.query(Pickup)

        if status:
            query = query.filter(Pickup.status == status)
        if start is not None:
            query = query.filter(Pickup.scheduled_date >= start)
        if end is not None:
            if end_inclusive:
                query = query.filter(Pickup.scheduled_date <= end)
            else:
                query = query.filter(Pickup.scheduled_date < end)
        if company:
            query = query.filter(Pickup.company.ilike(f"%{company}%"))

        if ascending:
            query = query.order_by(Pickup.scheduled_date.asc(), Pickup.id.asc())
        else:
            query = query.order_by(Pickup.scheduled_date.desc(), Pickup.id.desc())
        return query.all()

    def update_where_status(
        self,
        pickup_id: int,
        expected_statuses: Iterable[str],
        values: Dict[str, Any],
        extra_criteria: Iterable[Any] = (),
    ) -> bool:
        """
        UPDATE ... WHERE id = :id AND status IN (:expected) [AND extra].

        Lettura-verifica-scrittura in un unico statement: ritorna True solo se
        la riga è stata effettivamente modificata.
        """
        query = self.session.query(Pickup).filter(
            Pickup.id == pickup_id,
            Pickup.status.in_(list(expected_statuses)),
        )
        for criterion in extra_criteria:
            query = query.filter(criterion)
        updated = query.update(values, synchronize_session=False)
        return updated == 1

    def count(self, status: Optional[str] = None) -> int:
        query = self.session.query(func.count(Pickup.id))
        if status:
            query = query.filter(Pickup.status == status)
        return int(query.scalar() or 0)

    def latest_ingested_at(self) -> Optional[datetime]:
        return (
            self.session.query(func.max(Pickup.created_at))
            .filter(Pickup.outlook_event_id.isnot(None))
            .scalar()
        )
