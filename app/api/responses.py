"""
Helper comuni alle API: accesso ai servizi e busta JSON {success, message, payload}.
"""

from __future__ import annotations

from typing import Any, Optional

from flask import current_app, jsonify

from app.services import PickupServices
from app.services.dto import OperationResult
from app.services.errors import (
    CalendarConfigError,
    CalendarFeedError,
    DuplicateReference,
    GenerationError,
    NotFound,
    NotScheduledToday,
    PickupError,
    StoreError,
    ValidationError,
    WrongStatus,
)

# Ordine rilevante: le sottoclassi prima delle classi base
_STATUS_CODES = (
    (NotFound, 404),
    (DuplicateReference, 409),
    (ValidationError, 400),
    (WrongStatus, 409),
    (NotScheduledToday, 409),
    (GenerationError, 500),
    (StoreError, 503),
    (CalendarConfigError, 502),
    (CalendarFeedError, 502),
)


def services() -> PickupServices:
    return current_app.extensions["pickups"]


def http_status_for(error: PickupError) -> int:
    for error_cls, status_code in _STATUS_CODES:
        if isinstance(error, error_cls):
            return status_code
    return 400


def ok(payload: Any = None, message: str = "", status_code: int = 200):
    return jsonify({"success": True, "message": message, "payload": payload}), status_code


def fail(error: PickupError, payload: Any = None):
    body = {
        "success": False,
        "message": error.message,
        "error": error.to_dict(),
        "payload": payload,
    }
    return jsonify(body), http_status_for(error)


def result_response(result: OperationResult, message: str, extra: Optional[dict] = None):
    """Converte un OperationResult nella risposta JSON standard."""
    payload = {"pickup": result.pickup.to_dict() if result.pickup is not None else None}
    if result.pdf_path:
        payload["pdf_path"] = result.pdf_path
    if extra:
        payload.update(extra)
    if result.success:
        return ok(payload, message)
    return fail(result.error, payload)
