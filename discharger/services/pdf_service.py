"""Printable PDF version of a patient summary."""
from __future__ import annotations

import html
import io
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

MEDICATION_STATUS_LABELS = {
    "new": "New",
    "changed": "Changed",
    "unchanged": "Continue",
    "stopped": "Stop taking",
}

APPOINTMENT_STATUS_LABELS = {
    "patient_to_book": "You need to book",
    "clinic_will_call": "The clinic will call you",
    "already_booked": "Already booked",
}

GRID_STYLE = TableStyle(
    [
        ("BOX", (0, 0), (-1, -1), 0.5, colors.HexColor("#e5e7eb")),
        ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#e5e7eb")),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f1f5f9")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 3),
        ("RIGHTPADDING", (0, 0), (-1, -1), 3),
    ]
)


def _esc(text: Optional[Any]) -> str:
    if text is None:
        return ""
    return html.escape(str(text))


class PdfService:
    def __init__(self) -> None:
        styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "Title",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=16,
            leading=18,
            textColor=colors.HexColor("#0f172a"),
        )
        self.subtitle_style = ParagraphStyle(
            "Subtitle",
            parent=styles["Normal"],
            fontSize=10,
            textColor=colors.HexColor("#6b7280"),
        )
        self.section_title_style = ParagraphStyle(
            "SectionTitle",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=12,
            textColor=colors.HexColor("#0f172a"),
            spaceBefore=8,
            spaceAfter=4,
        )
        self.body_style = ParagraphStyle(
            "Body",
            parent=styles["Normal"],
            fontSize=9,
            leading=12,
        )

    def render_summary(
        self,
        blocks: List[Dict[str, Any]],
        patient_name: Optional[str] = None,
        locale: str = "en",
    ) -> bytes:
        buf = io.BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=A4,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=18 * mm,
            bottomMargin=15 * mm,
            title="Discharge Summary",
        )

        story: list = [Paragraph("Your Discharge Summary", self.title_style)]
        subtitle = " · ".join(p for p in (_esc(patient_name), f"Language: {_esc(locale)}") if p)
        story.append(Paragraph(subtitle, self.subtitle_style))
        story.append(Spacer(1, 4 * mm))

        for block in blocks:
            story.append(Paragraph(_esc(block.get("title")), self.section_title_style))
            story.extend(self._render_block(block))

        doc.build(story)
        return buf.getvalue()

    def _table(self, header: List[str], rows: List[List[str]], widths: List[float]) -> Table:
        data = [[Paragraph(f"<b>{_esc(h)}</b>", self.body_style) for h in header]]
        data += [[Paragraph(cell, self.body_style) for cell in row] for row in rows]
        table = Table(data, colWidths=widths, repeatRows=1)
        table.setStyle(GRID_STYLE)
        return table

    def _render_block(self, block: Dict[str, Any]) -> list:
        data = block.get("data") or {}
        block_type = block.get("type")

        if block_type == "medication":
            rows = [
                [
                    _esc(m.get("name")),
                    f"{_esc(m.get('dosage'))}, {_esc(m.get('frequency'))}",
                    _esc(m.get("duration")),
                    _esc(MEDICATION_STATUS_LABELS.get(m.get("status"), m.get("status"))),
                    _esc(m.get("instructions")),
                ]
                for m in data.get("medications", [])
            ]
            return [self._table(
                ["Medication", "How to take", "Duration", "Status", "Instructions"],
                rows,
                [38 * mm, 38 * mm, 25 * mm, 25 * mm, 54 * mm],
            )]

        if block_type == "task":
            rows = [
                [
                    "[x]" if t.get("completed") else "[ ]",
                    f"<b>{_esc(t.get('title'))}</b><br/>{_esc(t.get('description'))}",
                    _esc(t.get("priority")),
                    _esc(t.get("dueDate")),
                ]
                for t in data.get("tasks", [])
            ]
            return [self._table(["", "Task", "Priority", "Due"], rows, [10 * mm, 110 * mm, 25 * mm, 35 * mm])]

        if block_type == "redFlag":
            return [
                Paragraph(f"<b>{_esc(s.get('symptom'))}</b>: {_esc(s.get('description'))}", self.body_style)
                for s in data.get("symptoms", [])
            ]

        if block_type == "appointment":
            rows = [
                [
                    _esc(a.get("clinicName")),
                    _esc(a.get("description")),
                    _esc(APPOINTMENT_STATUS_LABELS.get(a.get("status"), a.get("status"))),
                    _esc(a.get("date")),
                ]
                for a in data.get("appointments", [])
            ]
            return [self._table(["Clinic", "Details", "Booking", "Date"], rows, [40 * mm, 75 * mm, 40 * mm, 25 * mm])]

        if block_type == "text":
            content = _esc(data.get("content"))
            return [Paragraph(content.replace("\n", "<br/>"), self.body_style)]

        return []


_pdf_service: Optional[PdfService] = None


def get_pdf_service() -> PdfService:
    global _pdf_service
    if _pdf_service is None:
        _pdf_service = PdfService()
    return _pdf_service
