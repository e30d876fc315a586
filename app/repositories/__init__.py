"""
Package repositories.
Espone i Repository per l'accesso ai dati.
"""

from .base import SqlAlchemyRepository
from .pickup_repo import PickupRepository

__all__ = [
    "SqlAlchemyRepository",
    "PickupRepository",
]
