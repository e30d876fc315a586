"""
API JSON per la sincronizzazione del calendario Outlook.

POST /api/sync/outlook?daysAhead=30
    Avvia manualmente la sincronizzazione.

GET  /api/sync/status
    Ultima sincronizzazione e conteggi ritiri.
"""

from __future__ import annotations

from flask import Blueprint, current_app, request

from app.api.responses import fail, ok, services
from app.services.errors import PickupError

api_sync_bp = Blueprint("api_sync", __name__)


@api_sync_bp.route("/outlook", methods=["POST"])
def api_sync_outlook():
    default_days = current_app.config.get("CALENDAR_SYNC_DAYS_AHEAD", 30)
    days_ahead = request.args.get("daysAhead", type=int) or default_days

    current_app.logger.info(
        "Avvio sincronizzazione Outlook", extra={"component": "sync", "days_ahead": days_ahead}
    )
    try:
        result = services().ingestion.sync_batch(window_days=days_ahead)
    except PickupError as exc:
        return fail(exc)

    return ok(
        {"synced": result.synced, "skipped": result.skipped, "errors": result.errors},
        f"Sincronizzati {result.synced} eventi da Outlook.",
    )


@api_sync_bp.route("/status", methods=["GET"])
def api_sync_status():
    return ok({"status": services().ingestion.get_sync_status().to_dict()})
