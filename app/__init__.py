"""
Pacchetto principale dell'applicazione Flask (coordinamento ritiri).
"""

from typing import Any, Mapping, Optional

from flask import Flask, jsonify
from config import DevConfig
from .extensions import db, init_extensions


def create_app(config_class=DevConfig, overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)
    init_extensions(app)

    _init_services(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    app.logger.info("Applicazione Flask inizializzata.")

    @app.route("/health")
    def healthcheck():
        return jsonify({"status": "ok"}), 200

    return app


def _init_services(app: Flask) -> None:
    """Costruisce store, generatori e workflow e li registra in app.extensions."""
    from .services import build_services
    from .services.calendar_feed import GraphCalendarFeed, GraphSettings
    from .services.qr_service import QrCodeGenerator
    from .services.waybill_service import WaybillGenerator

    qr_generator = QrCodeGenerator(app.config.get("PUBLIC_URL", ""))
    document_generator = WaybillGenerator(
        app.config.get("WAYBILL_STORAGE_PATH"), qr_generator=qr_generator
    )
    calendar_feed = GraphCalendarFeed(GraphSettings.from_config(app.config))

    app.extensions["pickups"] = build_services(
        db.session,
        document_generator=document_generator,
        qr_generator=qr_generator,
        calendar_feed=calendar_feed,
    )


def _register_blueprints(app: Flask) -> None:
    from .api import api_admin_bp, api_driver_bp, api_sync_bp

    app.register_blueprint(api_driver_bp, url_prefix="/api/driver")
    app.register_blueprint(api_admin_bp, url_prefix="/api/admin")
    app.register_blueprint(api_sync_bp, url_prefix="/api/sync")


def _register_error_handlers(app: Flask) -> None:
    """Errori dei ritiri sfuggiti a una lettura diretta (es. StoreError) -> busta JSON standard."""
    from .api.responses import fail
    from .services.errors import PickupError

    @app.errorhandler(PickupError)
    def handle_pickup_error(exc: PickupError):
        app.logger.warning(
            "Errore non gestito dal workflow: %s", exc.message, extra={"error_code": exc.code}
        )
        return fail(exc)
