"""
Question export (PDF, CSV, DOCX).
"""

from .renderers import RENDERERS, render_pdf, render_csv, render_docx
from .storage import ExportStorage

__all__ = [
    "RENDERERS",
    "render_pdf",
    "render_csv",
    "render_docx",
    "ExportStorage",
]
