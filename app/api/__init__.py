"""
Pacchetto per le API JSON usate dalle app autista e admin.

Contiene:
- api_driver_bp -> verifica, prenotazione e carico lato autista
- api_admin_bp  -> creazione, elenchi, conferma legacy, documenti, statistiche
- api_sync_bp   -> sincronizzazione calendario Outlook
"""

from .api_driver import api_driver_bp
from .api_admin import api_admin_bp
from .api_sync import api_sync_bp

__all__ = [
    "api_driver_bp",
    "api_admin_bp",
    "api_sync_bp",
]
