#!/usr/bin/env python3
"""
Script di gestione per l'applicazione Flask di coordinamento ritiri.

Uso:
    python manage.py runserver              # Avvia il server di sviluppo
    python manage.py create-db              # Crea la tabella pickups
    python manage.py sync-calendar --days 7 # Importa i ritiri dal calendario Outlook
"""

import argparse
import logging
import os

from sqlalchemy.exc import OperationalError as SAOperationalError
from pymysql.err import OperationalError as MySQLOperationalError

from app import create_app
from app.extensions import db
from app.services.errors import PickupError
from config import DevConfig

# ---------------------------------------------------------------------
# Logger CLI (fuori dal contesto Flask)
# ---------------------------------------------------------------------
cli_logger = logging.getLogger("manage_cli")
cli_logger.setLevel(logging.INFO)

if not cli_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(levelname)s: %(name)s: %(message)s")
    )
    cli_logger.addHandler(handler)


# ---------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------
def _import_all_models() -> None:
    """Assicura che il modello Pickup sia registrato prima di create_all()."""
    import app.models  # noqa: F401


# ---------------------------------------------------------------------
# Comandi
# ---------------------------------------------------------------------
def create_db(app) -> None:
    """Crea le tabelle definite nei modelli SQLAlchemy."""
    with app.app_context():
        cli_logger.info("Tentativo di creare le tabelle nel database...")
        try:
            _import_all_models()
            db.create_all()
            cli_logger.info("Database creato con successo.")
        except (SAOperationalError, MySQLOperationalError) as e:
            cli_logger.error("Errore di connessione o permessi MySQL: %s", e)
            cli_logger.info(
                "Verifica che MySQL sia attivo e che l'utente '%s' abbia accesso al DB '%s'.",
                app.config.get("DB_USER"),
                app.config.get("DB_NAME"),
            )


def sync_calendar(app, days: int) -> None:
    """Esegue una sincronizzazione del calendario Outlook e riporta l'esito."""
    with app.app_context():
        ingestion = app.extensions["pickups"].ingestion
        try:
            result = ingestion.sync_batch(window_days=days)
        except PickupError as e:
            cli_logger.error("Sincronizzazione non eseguita: %s", e.message)
            return

        cli_logger.info(
            "Sincronizzati %s eventi (%s saltati, %s errori).",
            result.synced,
            result.skipped,
            len(result.errors),
        )
        for message in result.errors:
            cli_logger.warning(message)


def run_server(app) -> None:
    """Avvia il server di sviluppo Flask (LAN-ready)."""
    host = os.environ.get("FLASK_RUN_HOST", "0.0.0.0")
    port = int(os.environ.get("FLASK_RUN_PORT", "5000"))
    debug = app.config.get("DEBUG", False)

    app.logger.info("Avvio del server su http://%s:%s", host, port)
    app.run(host=host, port=port, debug=debug)


# ---------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------
def main() -> None:
    parser = argparse.ArgumentParser(
        description="Gestione dell'applicazione di coordinamento ritiri."
    )
    parser.add_argument(
        "command",
        choices=["runserver", "create-db", "sync-calendar"],
        help="Comando da eseguire.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Giorni futuri da sincronizzare (default: CALENDAR_SYNC_DAYS_AHEAD).",
    )

    args = parser.parse_args()

    app = create_app(DevConfig)

    if args.command == "runserver":
        run_server(app)
    elif args.command == "create-db":
        create_db(app)
    elif args.command == "sync-calendar":
        sync_calendar(app, args.days or app.config.get("CALENDAR_SYNC_DAYS_AHEAD", 30))


if __name__ == "__main__":
    main()
