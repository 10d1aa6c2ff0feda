"""Pytest configuration and fixtures."""

import io

import pytest
from docx import Document
from fpdf import FPDF
from openpyxl import Workbook

from docreport.config import Settings, settings as app_settings
from docreport.core.deadline import Deadline
from docreport.models.schemas import UploadedFile

CREDENTIALS = ("GOOGLE_API_KEY", "GROQ_API_KEY", "SERP_API_KEY")


@pytest.fixture(autouse=True)
def no_credentials(monkeypatch):
    """Every test starts with no provider configured on the shared settings."""
    for name in CREDENTIALS:
        monkeypatch.setattr(app_settings, name, "")


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = {name: "" for name in CREDENTIALS}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def deadline():
    return Deadline(30)


# ── File builders ───────────────────────────────────────────────

def build_docx(paragraphs: list[str]) -> bytes:
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def build_pdf(pages: list[str]) -> bytes:
    pdf = FPDF()
    for text in pages:
        pdf.add_page()
        pdf.set_font("Helvetica", "", 12)
        pdf.cell(0, 10, text)
    return bytes(pdf.output())


def build_xlsx(rows: list[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    extra = wb.create_sheet("Ignored")
    extra.append(["other", "sheet"])
    extra.append(["x", 1])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def csv_file():
    return UploadedFile(
        data=b"month,revenue,cost\nJan,100,80\nFeb,120,90\nMar,130,95\n",
        filename="finance.csv",
        media_type="text/csv",
    )


@pytest.fixture
def text_file():
    return UploadedFile(
        data=b"Quarterly notes: churn fell to 3%.",
        filename="notes.txt",
        media_type="text/plain",
    )


@pytest.fixture
def corrupt_pdf():
    return UploadedFile(
        data=b"%PDF-1.4\nthis is not really a pdf\n%%EOF",
        filename="broken.pdf",
        media_type="application/pdf",
    )


@pytest.fixture
def pdf_file():
    return UploadedFile(
        data=build_pdf(["Revenue grew in Q3", "Costs were flat"]),
        filename="summary.pdf",
        media_type="application/pdf",
    )


@pytest.fixture
def docx_file():
    return UploadedFile(
        data=build_docx(["Project Alpha", "Budget approved"]),
        filename="brief.docx",
        media_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    )


@pytest.fixture
def xlsx_file():
    return UploadedFile(
        data=build_xlsx([["region", "sales"], ["North", 10], ["South", None]]),
        filename="sales.xlsx",
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
