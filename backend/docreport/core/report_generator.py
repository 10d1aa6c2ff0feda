"""
report_generator.py — Report Export (PDF, DOCX, JSON)

Renders a finished Report into a downloadable document, fully in memory.

PDF:  fpdf2 — a pure-Python PDF library.
DOCX: python-docx.
JSON: the report itself, pretty-printed with camelCase keys.

Every export includes:
  - Title block with generation time, tone and metadata
  - Executive summary
  - Sections (paragraphs + tables)
  - Charts, rendered as their backing data tables
  - References
"""

import io
import json
import re

from docx import Document
from fpdf import FPDF

from ..models.schemas import ChartSpec, Report, TableSpec

EXPORT_MEDIA_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "json": "application/json",
}

_MAX_TABLE_COLUMNS = 8
_MAX_CHART_ROWS = 30


# ══════════════════════════════════════════════════════════════════
#  Helpers
# ══════════════════════════════════════════════════════════════════

def _trunc(s, maxlen=40):
    """Truncate string for table cells."""
    s = str(s)
    return s[:maxlen] + "..." if len(s) > maxlen else s


def _ascii_safe(text: str) -> str:
    """Replace non-ASCII characters with safe ASCII equivalents for PDF."""
    replacements = {
        '•': '-',   # bullet
        '→': '->',  # right arrow
        '←': '<-',  # left arrow
        '—': '--',  # em dash
        '–': '-',   # en dash
        '‘': "'",   # left single quote
        '’': "'",   # right single quote
        '“': '"',   # left double quote
        '”': '"',   # right double quote
        '…': '...', # ellipsis
        '×': 'x',   # multiplication sign
        '≤': '<=',
        '≥': '>=',
    }
    for char, repl in replacements.items():
        text = text.replace(char, repl)
    # Strip any remaining non-latin1 chars
    return text.encode('latin-1', errors='replace').decode('latin-1')


def _generated_label(report: Report) -> str:
    if report.generated_at is None:
        return "-"
    return report.generated_at.strftime("%B %d, %Y at %I:%M %p %Z").strip()


def _metadata_line(report: Report) -> str:
    md = report.metadata
    if md is None:
        return ""
    parts = []
    if md.author:
        parts.append(f"Author: {md.author}")
    if md.stakeholder:
        parts.append(f"Stakeholder: {md.stakeholder}")
    if md.tags:
        parts.append(f"Tags: {', '.join(md.tags)}")
    if md.files:
        parts.append(f"Files: {', '.join(f.filename for f in md.files)}")
    return " | ".join(parts)


def _reference_line(ref) -> str:
    parts = [p for p in (ref.title, ref.url or ref.source) if p]
    return " - ".join(parts) or "-"


def _padded_rows(table: TableSpec) -> tuple[list[str], list[list[str]]]:
    """Headers and rows clipped/padded to a common width (rows may be ragged)."""
    width = max([len(table.headers)] + [len(r) for r in table.rows] + [0])
    width = min(width, _MAX_TABLE_COLUMNS)
    headers = (list(table.headers) + [""] * width)[:width]
    rows = [(list(r) + [""] * width)[:width] for r in table.rows]
    return headers, rows


def _chart_table(chart: ChartSpec) -> TableSpec:
    columns = [chart.x_key, *chart.y_keys]
    rows = [[str(row.get(c, "")) for c in columns] for row in chart.data[:_MAX_CHART_ROWS]]
    return TableSpec(headers=columns, rows=rows)


def export_filename(report: Report, ext: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", report.title or "report").strip("._") or "report"
    return f"{stem[:80]}.{ext}"


# ══════════════════════════════════════════════════════════════════
#  PDF REPORT
# ══════════════════════════════════════════════════════════════════

class ReportPDF(FPDF):
    """Custom PDF class with header/footer."""

    def __init__(self, title: str):
        super().__init__()
        self.report_title = title
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        if self.page_no() > 1:
            self.set_font("Helvetica", "B", 9)
            self.set_text_color(100, 100, 100)
            self.cell(0, 8, _ascii_safe(_trunc(self.report_title, 90)), align="L")
            self.ln(4)
            self.set_draw_color(99, 102, 241)
            self.set_line_width(0.5)
            self.line(10, self.get_y(), 200, self.get_y())
            self.ln(6)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="C")

    def section_title(self, title: str):
        self.ln(4)
        self.set_font("Helvetica", "B", 13)
        self.set_text_color(30, 30, 30)
        self.multi_cell(0, 8, _ascii_safe(title), new_x="LMARGIN", new_y="NEXT")
        self.set_draw_color(99, 102, 241)
        self.set_line_width(0.6)
        self.line(10, self.get_y(), 80, self.get_y())
        self.ln(4)

    def sub_title(self, title: str):
        self.set_font("Helvetica", "B", 10)
        self.set_text_color(60, 60, 60)
        self.multi_cell(0, 7, _ascii_safe(title), new_x="LMARGIN", new_y="NEXT")
        self.ln(2)

    def body_text(self, text: str):
        self.set_font("Helvetica", "", 9)
        self.set_text_color(50, 50, 50)
        self.multi_cell(0, 5, _ascii_safe(text), new_x="LMARGIN", new_y="NEXT")
        self.ln(2)

    def add_table(self, table: TableSpec):
        """Render a table; ragged rows are padded to the widest row."""
        headers, rows = _padded_rows(table)
        if not headers:
            return
        col_w = 190 / len(headers)

        # Header
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(99, 102, 241)
        self.set_text_color(255, 255, 255)
        for h in headers:
            self.cell(col_w, 7, _ascii_safe(_trunc(h, 20)), border=1, fill=True, align="C")
        self.ln()

        # Rows
        self.set_font("Helvetica", "", 7.5)
        self.set_text_color(40, 40, 40)
        for ri, row in enumerate(rows):
            if self.get_y() > 265:
                self.add_page()
            fill = ri % 2 == 0
            if fill:
                self.set_fill_color(248, 248, 252)
            for i, val in enumerate(row):
                align = "R" if i > 0 else "L"
                self.cell(col_w, 6, _ascii_safe(_trunc(val, 22)), border=1, fill=fill, align=align)
            self.ln()
        self.ln(3)


def render_pdf(report: Report) -> bytes:
    """Render the report as PDF bytes."""
    pdf = ReportPDF(report.title)
    pdf.alias_nb_pages()

    # ── Title Page ────────────────────────────────────────────
    pdf.add_page()
    pdf.ln(40)
    pdf.set_font("Helvetica", "B", 24)
    pdf.set_text_color(99, 102, 241)
    pdf.multi_cell(0, 12, _ascii_safe(report.title), align="C", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(5)
    pdf.set_font("Helvetica", "", 10)
    pdf.set_text_color(100, 100, 100)
    pdf.cell(0, 8, _ascii_safe(f"Generated: {_generated_label(report)}  |  Tone: {report.tone}"), align="C", new_x="LMARGIN", new_y="NEXT")
    meta = _metadata_line(report)
    if meta:
        pdf.ln(3)
        pdf.set_font("Helvetica", "", 9)
        pdf.set_text_color(80, 80, 80)
        pdf.multi_cell(0, 6, _ascii_safe(meta), align="C", new_x="LMARGIN", new_y="NEXT")

    # ── Executive Summary ─────────────────────────────────────
    pdf.add_page()
    if report.executive_summary:
        pdf.section_title("Executive Summary")
        pdf.body_text(report.executive_summary)

    # ── Sections ──────────────────────────────────────────────
    for section in report.sections:
        pdf.section_title(section.heading or "Untitled section")
        for paragraph in section.paragraphs:
            pdf.body_text(paragraph)
        if section.table and (section.table.headers or section.table.rows):
            pdf.add_table(section.table)

    # ── Charts ────────────────────────────────────────────────
    if report.charts:
        pdf.add_page()
        pdf.section_title("Charts")
        for chart in report.charts:
            pdf.sub_title(f"{chart.title} ({chart.type})")
            pdf.add_table(_chart_table(chart))

    # ── References ────────────────────────────────────────────
    if report.references:
        pdf.section_title("References")
        for i, ref in enumerate(report.references, 1):
            pdf.body_text(f"{i}. {_reference_line(ref)}")

    return bytes(pdf.output())


# ══════════════════════════════════════════════════════════════════
#  DOCX REPORT
# ══════════════════════════════════════════════════════════════════

def render_docx(report: Report) -> bytes:
    """Render the report as a Word document."""
    doc = Document()
    doc.add_heading(report.title, level=0)
    doc.add_paragraph(f"Generated: {_generated_label(report)} • Tone: {report.tone}")

    meta = _metadata_line(report)
    if meta:
        doc.add_paragraph(meta)

    if report.executive_summary:
        doc.add_heading("Executive Summary", level=2)
        doc.add_paragraph(report.executive_summary)

    for section in report.sections:
        doc.add_heading(section.heading or "Untitled section", level=2)
        for paragraph in section.paragraphs:
            doc.add_paragraph(paragraph)
        if section.table and section.table.rows:
            # Simple table-like lines, one per row
            doc.add_paragraph(" | ".join(section.table.headers))
            for row in section.table.rows:
                doc.add_paragraph(" | ".join(row))

    for chart in report.charts or []:
        doc.add_heading(chart.title, level=3)
        table = _chart_table(chart)
        doc.add_paragraph(" | ".join(table.headers))
        for row in table.rows:
            doc.add_paragraph(" | ".join(row))

    if report.references:
        doc.add_heading("References", level=2)
        for ref in report.references:
            doc.add_paragraph(_reference_line(ref))

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


# ══════════════════════════════════════════════════════════════════
#  JSON
# ══════════════════════════════════════════════════════════════════

def render_json(report: Report) -> bytes:
    return json.dumps(report.to_json_dict(), indent=2, ensure_ascii=False).encode("utf-8")


RENDERERS = {
    "pdf": render_pdf,
    "docx": render_docx,
    "json": render_json,
}
