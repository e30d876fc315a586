"""
API JSON lato amministrazione.

Endpoint principali:

POST /api/admin/pickup
    Crea un ritiro (riferimento, azienda, data, merce e luogo obbligatori).

GET  /api/admin/pickups?status=&date=&startDate=&endDate=&company=
    Elenco filtrato; `date` ha precedenza sull'intervallo.

POST /api/admin/confirm-loading/<pickup_id>
    Conferma legacy: quantità finale, documento, completamento.

POST /api/admin/pickup/<pickup_id>/generate-pdf
    Rigenera il documento di un ritiro già caricato.
"""

from __future__ import annotations

from flask import Blueprint, request

from app.api.api_driver import send_pickup_pdf
from app.api.responses import fail, ok, result_response, services
from app.services.dto import PickupFilters
from app.services.errors import NotFound, ValidationError

api_admin_bp = Blueprint("api_admin", __name__)

# Chiavi JSON del client admin -> campi del modello
_CREATE_KEYS = {
    "referenceNumber": "reference_number",
    "company": "company",
    "scheduledDate": "scheduled_date",
    "goodsDescription": "goods_description",
    "pickupLocation": "pickup_location",
    "quantity": "quantity",
    "trailerNumber": "trailer_number",
    "notes": "notes",
    "imageUrl": "image_url",
}


@api_admin_bp.route("/pickup", methods=["POST"])
def api_create_pickup():
    data = request.get_json(silent=True) or {}
    fields = {model_key: data.get(json_key) for json_key, model_key in _CREATE_KEYS.items()}

    result = services().admin.create(fields)
    if result.success:
        return ok({"pickup": result.pickup.to_dict()}, "Ritiro creato con successo.", 201)
    return fail(result.error)


@api_admin_bp.route("/pickups", methods=["GET"])
def api_list_pickups():
    try:
        filters = PickupFilters.from_query_args(request.args)
        pickups = services().admin.list_filtered(filters)
    except ValidationError as exc:
        return fail(exc)
    return ok({"count": len(pickups), "pickups": [p.to_dict() for p in pickups]})


@api_admin_bp.route("/pickups/today", methods=["GET"])
def api_today_pickups():
    overview = services().admin.list_today()
    return ok(
        {
            "total": overview.total,
            "grouped": {
                status: [p.to_dict() for p in pickups]
                for status, pickups in overview.grouped.items()
            },
            "pickups": [p.to_dict() for p in overview.pickups],
        }
    )


@api_admin_bp.route("/pickups/<int:pickup_id>", methods=["GET"])
def api_get_pickup(pickup_id: int):
    pickup = services().admin.get_pickup(pickup_id)
    if pickup is None:
        return fail(NotFound("Ritiro non trovato."))
    return ok({"pickup": pickup.to_dict()})


@api_admin_bp.route("/confirm-loading/<int:pickup_id>", methods=["POST"])
def api_confirm_loading(pickup_id: int):
    """
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


@api_admin_bp.route("/pickup/<int:pickup_id>/generate-pdf", methods=["POST"])
def api_generate_pdf(pickup_id: int):
    result = services().admin.generate_document(pickup_id)
    return result_response(result, "Documento generato con successo.")


@api_admin_bp.route("/pickup/<int:pickup_id>/pdf", methods=["GET"])
def api_download_pdf(pickup_id: int):
    return send_pickup_pdf(services().admin.get_pickup(pickup_id))


@api_admin_bp.route("/stats", methods=["GET"])
def api_stats():
    return ok({"stats": services().admin.stats()})
