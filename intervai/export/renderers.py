"""
Export renderers: one function per format, each writing a session's
questions to a file path.
"""

import csv
import textwrap
from typing import Any, Callable, Dict, List

from docx import Document
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from intervai.models import ExportFormat

Renderer = Callable[[Dict[str, Any], List[Dict[str, Any]], str], None]

CSV_HEADER = ["No.", "Question", "Answer", "Pinned", "Difficulty", "Category", "Created At"]


def _topics(session: Dict[str, Any]) -> str:
    return ", ".join(session.get("topics") or [])


def render_pdf(session: Dict[str, Any], questions: List[Dict[str, Any]], path: str) -> None:
    pdf = canvas.Canvas(path, pagesize=A4)
    width, height = A4
    margin_x = 50
    line_height = 15
    wrap_at = 95
    y = height - 60

    def line(text: str, font: str = "Helvetica", size: int = 11) -> None:
        nonlocal y
        for chunk in textwrap.wrap(text, wrap_at) or [""]:
            if y < 50:
                pdf.showPage()
                y = height - 50
            pdf.setFont(font, size)
            pdf.drawString(margin_x, y, chunk)
            y -= line_height

    def rule() -> None:
        nonlocal y
        pdf.line(margin_x, y, width - margin_x, y)
        y -= line_height

    pdf.setTitle("Interview Questions")
    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawCentredString(width / 2, y, "Interview Questions")
    y -= line_height * 2

    line(f"Role: {session.get('role', '')}")
    line(f"Experience: {session.get('experience', '')}")
    line(f"Topics: {_topics(session)}")
    line(f"Total Questions: {len(questions)}")
    rule()

    for index, q in enumerate(questions, start=1):
        line(f"Q{index}: {q['question']}", font="Helvetica-Bold", size=12)
        line(f"Answer: {q['answer']}")
        if q.get("is_pinned"):
            line("Pinned", font="Helvetica-Oblique", size=9)
        rule()

    pdf.save()


def render_csv(session: Dict[str, Any], questions: List[Dict[str, Any]], path: str) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for index, q in enumerate(questions, start=1):
            writer.writerow([
                index,
                q["question"],
                q["answer"],
                "Yes" if q.get("is_pinned") else "No",
                q.get("difficulty") or "N/A",
                q.get("category") or "N/A",
                q.get("created_at") or "",
            ])


def render_docx(session: Dict[str, Any], questions: List[Dict[str, Any]], path: str) -> None:
    doc = Document()
    doc.add_heading("Interview Questions", level=0)
    doc.add_paragraph(f"Role: {session.get('role', '')}")
    doc.add_paragraph(f"Experience: {session.get('experience', '')}")
    doc.add_paragraph(f"Topics: {_topics(session)}")
    doc.add_paragraph(f"Total Questions: {len(questions)}")

    for index, q in enumerate(questions, start=1):
        doc.add_heading(f"Q{index}: {q['question']}", level=2)
        answer = doc.add_paragraph()
        answer.add_run("Answer: ").bold = True
        answer.add_run(q["answer"])
        if q.get("is_pinned"):
            doc.add_paragraph("Pinned").runs[0].italic = True

    doc.save(path)


RENDERERS: Dict[ExportFormat, Renderer] = {
    ExportFormat.PDF: render_pdf,
    ExportFormat.CSV: render_csv,
    ExportFormat.DOCX: render_docx,
}
