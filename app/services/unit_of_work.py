"""
Unit of Work Pattern.
Gestisce la transazione atomica sul database e l'accesso ai repository.
"""
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.repositories.pickup_repo import PickupRepository


class UnitOfWork:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session = session_factory()
        self._pickups: Optional[PickupRepository] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.rollback()
            return False
        # La chiusura della sessione è gestita da Flask-SQLAlchemy a fine richiesta

    @property
    def pickups(self) -> PickupRepository:
        if self._pickups is None:
            self._pickups = PickupRepository(self.session)
        return self._pickups

    def commit(self):
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise

    def rollback(self):
        self.session.rollback()
