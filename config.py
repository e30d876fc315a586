"""
Modulo di configurazione per l'applicazione Flask.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Configurazione base, comune a tutti gli ambienti."""

    # Chiave segreta: in produzione deve essere sovrascritta da variabile d'ambiente
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # --- CONFIGURAZIONE DATABASE MYSQL --------------------------------------
    DB_USER = os.environ.get("DB_USER", "pickups")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "pickups")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = os.environ.get("DB_PORT", "3306")
    DB_NAME = os.environ.get("DB_NAME", "pickup_logistics")

    # Stringa di connessione composta in modo parametrico
    DEFAULT_DB_URL = (
        f"mysql+pymysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", DEFAULT_DB_URL)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- DOCUMENTI GENERATI (RAHTIKIRJA / WAYBILL) ---------------------------
    WAYBILL_STORAGE_PATH = os.environ.get(
        "WAYBILL_STORAGE_PATH",
        str(BASE_DIR / "storage" / "waybills"),
    )

    # Base URL usata nel QR di verifica (pagina pubblica di verifica ritiro)
    PUBLIC_URL = os.environ.get("PUBLIC_URL", "http://localhost:3000")

    # --- SINCRONIZZAZIONE CALENDARIO OUTLOOK (MICROSOFT GRAPH) ---------------
    AZURE_TENANT_ID = os.environ.get("AZURE_TENANT_ID", "")
    AZURE_CLIENT_ID = os.environ.get("AZURE_CLIENT_ID", "")
    AZURE_CLIENT_SECRET = os.environ.get("AZURE_CLIENT_SECRET", "")
    OUTLOOK_USER_EMAIL = os.environ.get("OUTLOOK_USER_EMAIL", "")
    CALENDAR_SYNC_DAYS_AHEAD = int(os.environ.get("CALENDAR_SYNC_DAYS_AHEAD", "30"))
    GRAPH_TIMEOUT = int(os.environ.get("GRAPH_TIMEOUT", "15"))

    # --- LOGGING -------------------------------------------------------------
    LOG_DIR = os.environ.get("LOG_DIR", str(BASE_DIR / "logs"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE_NAME = os.environ.get("LOG_FILE_NAME", "app.log")


class DevConfig(Config):
    """Configurazione per ambiente di sviluppo."""
    DEBUG = True
    ENV = "development"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProdConfig(Config):
    """Configurazione per ambiente di produzione."""
    DEBUG = False
    ENV = "production"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    """Configurazione per la suite pytest (SQLite in memoria)."""
    TESTING = True
    DEBUG = False
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"
