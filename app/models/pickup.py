"""
Modello Pickup (tabella: pickups).

Ritiro programmato: un camion passa a caricare merce presso un fornitore
in una data prevista. Il ciclo di vita è gestito esclusivamente da
app.services.lifecycle_service.
"""

from __future__ import annotations

import enum
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from app.extensions import db


class PickupStatus(str, enum.Enum):
    """Stati del ritiro.

    Percorso autista: PENDING -> RESERVED -> LOADING -> LOADED (con QR + documento).
    Percorso legacy admin: RESERVED -> LOADED -> COMPLETED (solo documento).
    """

    PENDING = "PENDING"
    RESERVED = "RESERVED"
    LOADING = "LOADING"
    LOADED = "LOADED"
    COMPLETED = "COMPLETED"

    @classmethod
    def parse(cls, value: Any) -> Optional["PickupStatus"]:
        if value is None or value == "":
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


def normalize_reference(value: Optional[str]) -> str:
    """Numero di riferimento normalizzato: senza spazi esterni e maiuscolo."""
    return (value or "").strip().upper()


def day_window(day: date) -> tuple[datetime, datetime]:
    """Finestra [mezzanotte, mezzanotte successiva) del giorno indicato."""
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


class Pickup(db.Model):
    __tablename__ = "pickups"
    __table_args__ = (
        db.Index("ix_pickups_status_scheduled_date", "status", "scheduled_date"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Identità
    reference_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Programmazione
    scheduled_date = db.Column(db.DateTime, nullable=False, index=True)
    company = db.Column(db.String(255), nullable=False)
    goods_description = db.Column(db.String(500), nullable=False)
    quantity = db.Column(db.Integer, nullable=True)
    pickup_location = db.Column(db.String(255), nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Trasporto (valorizzati alla prenotazione)
    truck_plate = db.Column(db.String(32), nullable=True)
    trailer_number = db.Column(db.String(32), nullable=True)
    driver_name = db.Column(db.String(255), nullable=True)
    driver_company = db.Column(db.String(255), nullable=True)
    destination = db.Column(db.String(255), nullable=True)

    # Carico e documenti generati
    loading_start_time = db.Column(db.DateTime, nullable=True)
    loading_end_time = db.Column(db.DateTime, nullable=True)
    qr_code = db.Column(db.Text, nullable=True)
    pdf_path = db.Column(db.String(500), nullable=True)

    # Provenienza: id evento calendario Outlook (chiave di idempotenza della sync)
    outlook_event_id = db.Column(db.String(255), nullable=True, index=True)

    status = db.Column(
        db.String(16), nullable=False, default=PickupStatus.PENDING.value, index=True
    )

    # Timestamps
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    # --- Stato derivato -----------------------------------------------------

    def has_document(self) -> bool:
        return bool(self.pdf_path)

    def has_qr_code(self) -> bool:
        return bool(self.qr_code)

    def is_scheduled_on(self, day: date) -> bool:
        start, end = day_window(day)
        return start <= self.scheduled_date < end

    def is_legacy_loaded(self) -> bool:
        """LOADED raggiunto con la conferma admin (RESERVED -> LOADED), quindi senza QR."""
        return self.status == PickupStatus.LOADED.value and not self.has_qr_code()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "reference_number": self.reference_number,
            "company": self.company,
            "scheduled_date": _iso(self.scheduled_date),
            "goods_description": self.goods_description,
            "quantity": self.quantity,
            "pickup_location": self.pickup_location,
            "image_url": self.image_url,
            "notes": self.notes,
            "status": self.status,
            "truck_plate": self.truck_plate,
            "trailer_number": self.trailer_number,
            "driver_name": self.driver_name,
            "driver_company": self.driver_company,
            "destination": self.destination,
            "loading_start_time": _iso(self.loading_start_time),
            "loading_end_time": _iso(self.loading_end_time),
            "qr_code": self.qr_code,
            "pdf_path": self.pdf_path,
            "has_document": self.has_document(),
            "has_qr_code": self.has_qr_code(),
            "outlook_event_id": self.outlook_event_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return (
            f"<Pickup id={self.id} reference_number={self.reference_number!r} "
            f"scheduled_date={self.scheduled_date} status={self.status!r}>"
        )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
