"""
Avvio rapido del servizio ritiri con un singolo comando:

    python run_app.py

APP_ENV=production seleziona ProdConfig, altrimenti DevConfig.
La tabella pickups viene creata se non esiste.
"""

from __future__ import annotations

import os

from app import create_app
from app.extensions import db
from config import DevConfig, ProdConfig


def main() -> None:
    config_class = ProdConfig if os.environ.get("APP_ENV") == "production" else DevConfig
    app = create_app(config_class)

    with app.app_context():
        db.create_all()

    host = os.environ.get("FLASK_RUN_HOST", "0.0.0.0")
    port = int(os.environ.get("FLASK_RUN_PORT", "5000"))

    app.logger.info("Avvio del servizio ritiri tramite run_app.py", extra={"component": "launcher"})
    app.run(host=host, port=port, debug=app.config.get("DEBUG", False))


if __name__ == "__main__":
    main()
