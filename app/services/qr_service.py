"""
Generatore dei QR di verifica ritiro.

Il QR codifica l'URL pubblico di verifica del ritiro ed è restituito come
data URL SVG (riferimento immagine opaco salvato in Pickup.qr_code).
"""
from __future__ import annotations

import base64
from urllib.parse import quote

from reportlab.graphics import renderSVG
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing

from app.services.errors import GenerationError


class QrCodeGenerator:
    def __init__(self, public_url: str, size: int = 300):
        self.public_url = (public_url or "").rstrip("/")
        self.size = size

    def verification_url(self, key: str) -> str:
        return f"{self.public_url}/verify?ref={quote(key, safe='')}"

    def drawing(self, key: str, size: int | None = None) -> Drawing:
        """Drawing reportlab del QR, riusato anche dentro il PDF del documento."""
        size = size or self.size
        widget = QrCodeWidget(self.verification_url(key))
        x1, y1, x2, y2 = widget.getBounds()
        width, height = x2 - x1, y2 - y1
        drawing = Drawing(size, size, transform=[size / width, 0, 0, size / height, 0, 0])
        drawing.add(widget)
        return drawing

    def generate(self, key: str) -> str:
        if not key:
            raise GenerationError("Chiave di verifica QR mancante.")
        try:
            svg = renderSVG.drawToString(self.drawing(key))
        except Exception as exc:
            raise GenerationError(f"Generazione QR fallita: {exc}") from exc
        if isinstance(svg, str):
            svg = svg.encode("utf-8")
        encoded = base64.b64encode(svg).decode("ascii")
        return f"data:image/svg+xml;base64,{encoded}"
