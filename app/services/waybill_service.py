"""
Generatore del documento di trasporto (Rahtikirja / Waybill) in PDF.

Il file viene scritto completamente su un percorso temporaneo e poi rinominato:
il percorso restituito punta sempre a un documento integro. Ogni chiamata
produce un nuovo file.
"""
from __future__ import annotations

import os
from datetime import datetime
from typing import Optional

from reportlab.graphics import renderPDF
from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from werkzeug.utils import secure_filename

from app.models import Pickup
from app.services import settings_service
from app.services.errors import GenerationError
from app.services.qr_service import QrCodeGenerator

HEADER_BLUE = HexColor("#3366B2")
MARGIN = 50
VALUE_X = MARGIN + 180


class WaybillGenerator:
    def __init__(self, storage_path: str, qr_generator: Optional[QrCodeGenerator] = None):
        self.storage_path = settings_service.resolve_directory(storage_path, ["storage", "waybills"])
        self.qr_generator = qr_generator

    def generate(self, pickup: Pickup) -> str:
        """Scrive il PDF del ritiro e ne restituisce il percorso assoluto."""
        now = datetime.now()
        dest_dir = os.path.join(self.storage_path, str(now.year))
        os.makedirs(dest_dir, exist_ok=True)

        base_name = secure_filename(f"rahtikirja_{pickup.reference_number}_{now:%Y%m%d%H%M%S}.pdf")
        file_name = settings_service.ensure_unique_filename(dest_dir, base_name or "rahtikirja.pdf")
        final_path = os.path.join(dest_dir, file_name)
        tmp_path = final_path + ".part"

        try:
            self._draw(pickup, tmp_path, generated_at=now)
            os.replace(tmp_path, final_path)
        except Exception as exc:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise GenerationError(
                f"Generazione documento fallita per {pickup.reference_number}: {exc}",
                current_status=pickup.status,
            ) from exc
        return final_path

    def _draw(self, pickup: Pickup, path: str, generated_at: datetime) -> None:
        pdf = canvas.Canvas(path, pagesize=A4)
        width, height = A4
        y = height - MARGIN

        pdf.setFillColor(HEADER_BLUE)
        pdf.rect(MARGIN, y - 35, width - MARGIN * 2, 40, stroke=0, fill=1)
        pdf.setFillColor(white)
        pdf.setFont("Helvetica-Bold", 22)
        pdf.drawCentredString(width / 2, y - 22, "RAHTIKIRJA / WAYBILL")
        pdf.setFillColorRGB(0, 0, 0)
        y -= 70

        def row(label: str, value, bold: bool = False) -> None:
            nonlocal y
            pdf.setFont("Helvetica-Bold", 11)
            pdf.drawString(MARGIN + 10, y, label)
            pdf.setFont("Helvetica-Bold" if bold else "Helvetica", 11)
            pdf.drawString(VALUE_X, y, _text(value))
            y -= 18

        def section(title: str) -> None:
            nonlocal y
            y -= 8
            pdf.setFont("Helvetica-Bold", 13)
            pdf.drawString(MARGIN + 10, y, title)
            pdf.line(MARGIN, y - 4, width - MARGIN, y - 4)
            y -= 22

        row("Reference Number:", pickup.reference_number, bold=True)
        row("Scheduled Date:", _when(pickup.scheduled_date))
        row("Company:", pickup.company)
        row("Status:", pickup.status, bold=True)

        section("LOCATIONS")
        row("Pickup Location:", pickup.pickup_location or "Not specified")
        row("Destination:", pickup.destination or "Not specified")

        section("GOODS INFORMATION")
        row("Description:", pickup.goods_description)
        row("Quantity:", pickup.quantity if pickup.quantity is not None else "Not specified")

        section("TRANSPORT DETAILS")
        row("Driver Name:", pickup.driver_name or "N/A")
        row("Driver Company:", pickup.driver_company or "N/A")
        row("Truck Plate:", pickup.truck_plate or "N/A")
        row("Trailer Number:", pickup.trailer_number or "N/A")

        if pickup.loading_start_time or pickup.loading_end_time:
            section("LOADING TIMES")
            row("Started:", _when(pickup.loading_start_time))
            row("Completed:", _when(pickup.loading_end_time))

        if pickup.notes:
            section("NOTES")
            pdf.setFont("Helvetica", 11)
            for line in _wrap(pickup.notes, 90):
                pdf.drawString(MARGIN + 10, y, line)
                y -= 15

        if self.qr_generator is not None and pickup.has_qr_code():
            renderPDF.draw(
                self.qr_generator.drawing(pickup.reference_number, size=120),
                pdf,
                width - MARGIN - 120,
                MARGIN + 40,
            )

        pdf.setFont("Helvetica", 9)
        pdf.drawString(MARGIN, MARGIN, f"Generated: {generated_at:%d.%m.%Y %H:%M:%S}")
        pdf.showPage()
        pdf.save()


def _text(value) -> str:
    return "" if value is None else str(value)


def _when(value: Optional[datetime]) -> str:
    return value.strftime("%d.%m.%Y %H:%M") if value else "N/A"


def _wrap(text: str, max_chars: int) -> list[str]:
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split():
            if current and len(current) + 1 + len(word) > max_chars:
                lines.append(current)
                current = word
            else:
                current = f"{current} {word}".strip()
        lines.append(current)
    return lines
