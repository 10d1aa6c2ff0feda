"""Tests for the PDF / DOCX / JSON exporters."""

import datetime
import io
import json

import pytest
from docx import Document
from pypdf import PdfReader

from docreport.core.report_generator import (
    export_filename,
    render_docx,
    render_json,
    render_pdf,
)
from docreport.models.schemas import (
    ChartSpec,
    FileDescriptor,
    Reference,
    Report,
    ReportMetadata,
    ReportSection,
    TableSpec,
)


@pytest.fixture
def report():
    return Report(
        title="Market “Outlook” — 2026",
        tone="formal",
        generated_at=datetime.datetime(2026, 3, 1, 9, 30, tzinfo=datetime.timezone.utc),
        metadata=ReportMetadata(author="Ops", tags=["ai-fallback"], files=[FileDescriptor(filename="a.csv")]),
        executive_summary="Demand is rising.",
        sections=[
            ReportSection(
                heading="Demand",
                paragraphs=["Orders up 12%."],
                table=TableSpec(headers=["region", "orders"], rows=[["North", "10", "extra"], ["South"]]),
            ),
            ReportSection(heading="Supply"),
        ],
        charts=[ChartSpec(type="line", title="orders vs region", x_key="region", y_keys=["orders"],
                          data=[{"region": "North", "orders": 10}])],
        references=[Reference(title="Source doc", source="a.csv"), Reference(url="https://x.example")],
    )


def test_pdf_contains_report_text(report):
    content = render_pdf(report)
    assert content.startswith(b"%PDF")
    text = "\n".join(page.extract_text() for page in PdfReader(io.BytesIO(content)).pages)
    assert "Demand is rising." in text
    assert "Orders up 12%." in text
    assert "Source doc - a.csv" in text


def test_pdf_handles_minimal_report():
    assert render_pdf(Report(title="Empty")).startswith(b"%PDF")


def test_docx_contains_sections_and_references(report):
    doc = Document(io.BytesIO(render_docx(report)))
    paragraphs = [p.text for p in doc.paragraphs]
    assert paragraphs[0] == report.title
    assert "Executive Summary" in paragraphs
    assert "region | orders" in paragraphs
    assert "North | 10 | extra" in paragraphs
    assert "Source doc - a.csv" in paragraphs
    assert "https://x.example" in paragraphs
    assert any(p.startswith("Author: Ops") for p in paragraphs)


def test_json_is_camel_case(report):
    data = json.loads(render_json(report))
    assert data["executiveSummary"] == "Demand is rising."
    assert data["charts"][0]["xKey"] == "region"
    assert data["generatedAt"].startswith("2026-03-01T09:30:00")


def test_export_filename_is_filesystem_safe(report):
    assert export_filename(report, "pdf") == "Market_Outlook_2026.pdf"
    assert export_filename(Report(title="///"), "docx") == "report.docx"
