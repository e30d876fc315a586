"""
Servizi per le impostazioni applicative e i percorsi di storage.
"""

import os
from typing import Optional


def resolve_directory(config_value: Optional[str], default_parts: list[str]) -> str:
    """Percorso assoluto della cartella (creata se mancante)."""
    if config_value:
        target_path = os.path.abspath(config_value)
    else:
        target_path = os.path.join(os.getcwd(), *default_parts)
    os.makedirs(target_path, exist_ok=True)
    return target_path


def ensure_unique_filename(base_dir: str, filename: str) -> str:
    """Aggiunge un suffisso numerico finché il nome non è libero nella cartella."""
    base, ext = os.path.splitext(filename)
    candidate = filename
    counter = 1
    while os.path.exists(os.path.join(base_dir, candidate)) or os.path.exists(
        os.path.join(base_dir, candidate + ".part")
    ):
        candidate = f"{base}_{counter}{ext}"
        counter += 1
    return candidate


def resolve_storage_path(base_dir: str, stored_path: str) -> Optional[str]:
    """
    Risolve un pdf_path salvato (assoluto o relativo alla cartella base)
    verificando che il file esista ancora.
    """
    if not stored_path:
        return None
    candidate = stored_path if os.path.isabs(stored_path) else os.path.join(base_dir, stored_path)
    candidate = os.path.abspath(candidate)
    return candidate if os.path.isfile(candidate) else None
