"""
Pacchetto per i modelli SQLAlchemy.

Unica entità: Pickup (ritiro programmato).
"""

from .pickup import Pickup, PickupStatus, day_window, normalize_reference

__all__ = [
    "Pickup",
    "PickupStatus",
    "day_window",
    "normalize_reference",
]
