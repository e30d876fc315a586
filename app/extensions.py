"""
Modulo che contiene le estensioni Flask condivise (db, logging JSON).
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

# Estensione SQLAlchemy, legata all'app in create_app().
# I servizi non la usano direttamente: ricevono il PickupStore costruito dalla factory.
db = SQLAlchemy()

# Attributi standard del LogRecord da non riportare nel campo "extra"
_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "taskName",
}


class JsonFormatter(logging.Formatter):
    """
    Formatter che produce una riga JSON per ogni record di log.

    Campi principali:
    - timestamp: ISO 8601 in UTC
    - level, logger, module, message
    - extra: campi passati con extra={...} (es. pickup_id, reference_number)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extra_fields:
            log_record["extra"] = extra_fields

        # default=str: datetime e enum nei campi extra non devono rompere il log
        return json.dumps(log_record, ensure_ascii=False, default=str)


def init_extensions(app: Flask) -> None:
    """
    Inizializza le estensioni collegate all'app Flask.

    Chiamata da create_app() prima della costruzione dei servizi.
    """
    db.init_app(app)
    _init_logging(app)


def _init_logging(app: Flask) -> None:
    """
    Configura il logging applicativo:

    - handler su file con RotatingFileHandler
    - handler su console (stream)
    - formatter JSON strutturato

    Usato da lifecycle/reservation/admin per le transizioni di stato
    e dalla sincronizzazione calendario per gli esiti per evento.
    """
    log_dir = app.config.get("LOG_DIR")
    log_file_name = app.config.get("LOG_FILE_NAME", "app.log")
    log_level_name = app.config.get("LOG_LEVEL", "INFO")

    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, log_file_name)

    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    json_formatter = JsonFormatter()

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(json_formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(json_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # create_app viene chiamata più volte nei test: gli handler si aggiungono una volta sola
    if not getattr(root_logger, "_json_logging_configured", False):
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)

        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)
        root_logger._json_logging_configured = True  # type: ignore[attr-defined]
    else:
        file_handler.close()

    app.logger.setLevel(log_level)

    app.logger.info(
        "Logging JSON inizializzato.",
        extra={
            "component": "logging",
            "log_path": log_path,
            "level": log_level_name,
        },
    )
