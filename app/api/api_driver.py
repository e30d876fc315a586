"""
API JSON lato autista.

Endpoint principali:

GET  /api/driver/check/<reference_number>
    Verifica esistenza e prenotabilità del ritiro.

POST /api/driver/reserve
    Prenota il ritiro del giorno (targa obbligatoria).

POST /api/driver/start-loading/<pickup_id>
POST /api/driver/confirm-loaded/<pickup_id>
    Avanzamento del carico; la conferma genera QR e documento.

POST /api/driver/confirm-loading/<pickup_id>
    Conferma legacy: quantità finale, documento, completamento.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request, send_file

from app.api.responses import fail, ok, result_response, services
from app.services import settings_service
from app.services.errors import NotFound, ValidationError

api_driver_bp = Blueprint("api_driver", __name__)

# Proiezione ridotta per gli elenchi di stato lato autista
_SUMMARY_FIELDS = (
    "id",
    "reference_number",
    "company",
    "scheduled_date",
    "status",
    "truck_plate",
    "driver_name",
    "has_document",
)


def _summary(pickup) -> dict:
    data = pickup.to_dict()
    return {key: data[key] for key in _SUMMARY_FIELDS}


@api_driver_bp.route("/check/<reference_number>", methods=["GET"])
def api_check_pickup(reference_number: str):
    result = services().reservation.verify(reference_number)
    if not result.exists:
        return jsonify({"exists": False, "message": "Ritiro non trovato."}), 404

    return jsonify(
        {
            "exists": True,
            "isToday": result.is_today,
            "canReserve": result.can_reserve,
            "pickup": result.pickup.to_dict(),
        }
    )


@api_driver_bp.route("/reserve", methods=["POST"])
def api_reserve_pickup():
    """
    Body JSON atteso:
    {
      "referenceNumber": "REF-001",
      "truckPlate": "ABC-123",
      "driverName": "...", "quantity": 10, "trailerNumber": "...",
      "driverCompany": "...", "destination": "..."   (opzionali)
    }
    """
    data = request.get_json(silent=True) or {}
    reference_number = (data.get("referenceNumber") or "").strip()
    truck_plate = (data.get("truckPlate") or "").strip()

    if not reference_number or not truck_plate:
        return fail(
            ValidationError(
                "Numero di riferimento e targa sono obbligatori.",
                field="referenceNumber" if not reference_number else "truckPlate",
            )
        )

    quantity = data.get("quantity")
    if quantity not in (None, ""):
        try:
            if isinstance(quantity, bool):
                raise TypeError(quantity)
            quantity = int(quantity)
        except (TypeError, ValueError):
            return fail(ValidationError("Quantità non valida.", field="quantity"))
    else:
        quantity = None

    result = services().reservation.reserve(
        reference_number,
        truck_plate,
        driver_name=data.get("driverName"),
        quantity=quantity,
        trailer_number=data.get("trailerNumber"),
        driver_company=data.get("driverCompany"),
        destination=data.get("destination"),
    )
    return result_response(result, "Ritiro prenotato con successo.")


@api_driver_bp.route("/start-loading/<int:pickup_id>", methods=["POST"])
def api_start_loading(pickup_id: int):
    result = services().reservation.start_loading(pickup_id)
    return result_response(result, "Carico iniziato.")


@api_driver_bp.route("/confirm-loaded/<int:pickup_id>", methods=["POST"])
def api_confirm_loaded(pickup_id: int):
    result = services().reservation.confirm_loaded(pickup_id)
    return result_response(result, "Carico confermato, documenti generati.")


@api_driver_bp.route("/confirm-loading/<int:pickup_id>", methods=["POST"])
def api_confirm_loading(pickup_id: int):
    """
    Conferma legacy dal lato autista (ritiro RESERVED, senza fase LOADING).

    Body JSON atteso:
    {
      "quantity": 12,
      "notes": "..."   (opzionale)
    }
    """
    data = request.get_json(silent=True) or {}
    result = services().admin.confirm_loading_legacy(
        pickup_id, data.get("quantity"), data.get("notes")
    )
    return result_response(result, "Carico confermato e documento generato.")


@api_driver_bp.route("/pickups/today", methods=["GET"])
def api_today_pickups():
    pickups = services().reservation.list_today()
    return ok({"count": len(pickups), "pickups": [_summary(p) for p in pickups]})


@api_driver_bp.route("/pickups", methods=["GET"])
def api_all_pickups():
    pickups = services().reservation.list_all()
    return ok({"count": len(pickups), "pickups": [_summary(p) for p in pickups]})


@api_driver_bp.route("/pickup/<int:pickup_id>/pdf", methods=["GET"])
def api_download_pdf(pickup_id: int):
    return send_pickup_pdf(services().reservation.get_pickup(pickup_id))


@api_driver_bp.route("/qr/<int:pickup_id>", methods=["GET"])
def api_pickup_qr(pickup_id: int):
    result = services().reservation.qr_code_for(pickup_id)
    if not result.success:
        return fail(result.error)
    return ok({"qr_code": result.qr_code})


@api_driver_bp.route("/verify/<int:pickup_id>", methods=["GET"])
def api_verify_pickup(pickup_id: int):
    """Verifica da scansione QR: dati essenziali del ritiro."""
    pickup = services().reservation.get_pickup(pickup_id)
    if pickup is None:
        return fail(NotFound("Ritiro non trovato."))
    data = pickup.to_dict()
    fields = (
        "id", "reference_number", "company", "scheduled_date", "status",
        "truck_plate", "trailer_number", "driver_name", "quantity", "has_document",
    )
    return ok({key: data[key] for key in fields})


def send_pickup_pdf(pickup):
    """Invia il PDF del ritiro; 404 se il ritiro o il documento non esistono."""
    if pickup is None:
        return fail(NotFound("Ritiro non trovato."))
    if not pickup.has_document():
        return fail(NotFound("Documento non ancora generato."))

    storage_path = services().lifecycle.document_generator.storage_path
    path = settings_service.resolve_storage_path(storage_path, pickup.pdf_path)
    if path is None:
        return fail(NotFound("File del documento non trovato sul server."))
    return send_file(
        path,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"rahtikirja_{pickup.reference_number}.pdf",
    )
