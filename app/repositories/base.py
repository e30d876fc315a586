"""
Generic Repository Pattern.
Fornisce le operazioni CRUD base per qualsiasi modello SQLAlchemy.
"""
from typing import Generic, Optional, Type, TypeVar

from app.extensions import db

# Tipo generico T vincolato ai modelli SQLAlchemy
T = TypeVar("T", bound=db.Model)


class SqlAlchemyRepository(Generic[T]):
    def __init__(self, session, model_cls: Type[T]):
        self.session = session
        self.model_cls = model_cls

    def add(self, entity: T) -> T:
        """Aggiunge l'entità alla sessione."""
        self.session.add(entity)
        return entity

    def get_by_id(self, id: int) -> Optional[T]:
        """Recupera per Primary Key."""
        return self.session.get(self.model_cls, id)
