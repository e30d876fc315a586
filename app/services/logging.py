"""Helper per logging strutturato JSON nei servizi applicativi."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

_LOGGER_NAME = "pickups"


def log_structured_event(
    action: str,
    *,
    message: Optional[str] = None,
    level: str = "info",
    **fields: Any,
) -> None:
    """Registra un evento strutturato (es. ``pickup.reserved``) con i campi extra.

    Il formatter JSON è configurato sul root logger da ``app.extensions``; qui
    si usa il logger ``pickups`` che vi propaga. I valori ``None`` vengono
    omessi per tenere compatte le righe di log delle transizioni.
    """

    logger = logging.getLogger(_LOGGER_NAME)
    log_method = getattr(logger, level.lower(), logger.info)

    payload: Dict[str, Any] = {"action": action}
    payload.update({key: value for key, value in fields.items() if value is not None})

    try:
        log_method(message or action, extra=payload)
    except Exception:
        # Il logging non deve mai interrompere il flusso di business
        logger.debug("Logging strutturato fallito", exc_info=True)
