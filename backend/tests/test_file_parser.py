"""Tests for the upload normalizer (text excerpt + tabular rows)."""

import io

from docx import Document

from docreport.core.file_parser import (
    EXCERPT_SEPARATOR,
    FileFormat,
    detect_format,
    normalize_to_table,
    normalize_to_text,
)
from docreport.models.schemas import UploadedFile


class TestDetectFormat:
    def test_extension_beats_media_type(self):
        f = UploadedFile(data=b"a,b\n1,2", filename="data.csv", media_type="application/vnd.ms-excel")
        assert detect_format(f) == FileFormat.CSV

    def test_media_type_used_without_extension(self):
        f = UploadedFile(data=b"%PDF", filename="upload", media_type="application/pdf")
        assert detect_format(f) == FileFormat.PDF

    def test_unknown_is_other(self):
        f = UploadedFile(data=b"\x89PNG", filename="pic.png", media_type="image/png")
        assert detect_format(f) == FileFormat.OTHER

    def test_markdown_and_json_are_text(self):
        assert detect_format(UploadedFile(data=b"#", filename="README.md")) == FileFormat.TEXT
        assert detect_format(UploadedFile(data=b"{}", filename="x", media_type="application/json")) == FileFormat.TEXT


class TestNormalizeToText:
    def test_joins_files_in_order_with_separator(self, text_file, csv_file):
        text = normalize_to_text([text_file, csv_file], 10_000)
        assert text.startswith("Quarterly notes")
        assert EXCERPT_SEPARATOR in text
        assert text.index("Quarterly") < text.index("month,revenue,cost")

    def test_truncates_to_budget(self, text_file, csv_file):
        text = normalize_to_text([text_file, csv_file], 20)
        assert len(text) == 20
        assert text == "Quarterly notes: chu"

    def test_stops_reading_after_budget(self, text_file, monkeypatch):
        from docreport.core import file_parser

        calls = []
        real = file_parser.extract_file_text

        def spy(file, room):
            calls.append(file.filename)
            return real(file, room)

        monkeypatch.setattr(file_parser, "extract_file_text", spy)
        second = UploadedFile(data=b"later", filename="later.txt", media_type="text/plain")
        normalize_to_text([text_file, second], 5)
        assert calls == ["notes.txt"]

    def test_docx_paragraphs_become_lines(self, docx_file):
        assert normalize_to_text([docx_file], 1000) == "Project Alpha\nBudget approved"

    def test_docx_whitespace_collapsed(self):
        doc = Document()
        for text in ["Q3\trevenue   up", "", "", "", "Next  steps"]:
            doc.add_paragraph(text)
        buf = io.BytesIO()
        doc.save(buf)
        file = UploadedFile(data=buf.getvalue(), filename="memo.docx")
        assert normalize_to_text([file], 1000) == "Q3 revenue up\n\nNext steps"

    def test_broken_docx_contributes_nothing(self, text_file):
        broken = UploadedFile(data=b"PK not a zip", filename="bad.docx")
        assert normalize_to_text([broken, text_file], 1000) == "Quarterly notes: churn fell to 3%."

    def test_pdf_pages_joined_by_newline(self, pdf_file):
        text = normalize_to_text([pdf_file], 1000)
        assert text.splitlines() == ["Revenue grew in Q3", "Costs were flat"]

    def test_corrupt_pdf_and_text_file(self, corrupt_pdf, text_file):
        text = normalize_to_text([corrupt_pdf, text_file], 1500)
        assert text == "Quarterly notes: churn fell to 3%."

    def test_spreadsheets_and_other_types_contribute_nothing(self, xlsx_file):
        image = UploadedFile(data=b"\x89PNG\r\n", filename="pic.png", media_type="image/png")
        assert normalize_to_text([xlsx_file, image], 1000) == ""

    def test_deterministic(self, text_file, docx_file, pdf_file):
        files = [text_file, docx_file, pdf_file]
        assert normalize_to_text(files, 500) == normalize_to_text(files, 500)

    def test_zero_budget(self, text_file):
        assert normalize_to_text([text_file], 0) == ""


class TestNormalizeToTable:
    def test_csv_header_and_string_cells(self, csv_file):
        table = normalize_to_table(csv_file)
        assert table.headers == ["month", "revenue", "cost"]
        assert table.rows == [["Jan", "100", "80"], ["Feb", "120", "90"], ["Mar", "130", "95"]]

    def test_semicolon_csv(self):
        f = UploadedFile(data=b"city;pop\nOslo;700\n", filename="c.csv")
        table = normalize_to_table(f)
        assert table.headers == ["city", "pop"]
        assert table.rows == [["Oslo", "700"]]

    def test_csv_missing_cells_are_blank(self):
        f = UploadedFile(data=b"a,b,c\n1,,3\n", filename="gaps.csv")
        assert normalize_to_table(f).rows == [["1", "", "3"]]

    def test_xlsx_first_sheet_only(self, xlsx_file):
        table = normalize_to_table(xlsx_file)
        assert table.headers == ["region", "sales"]
        assert table.rows == [["North", "10"], ["South", ""]]

    def test_non_tabular_returns_none(self, text_file, pdf_file):
        assert normalize_to_table(text_file) is None
        assert normalize_to_table(pdf_file) is None

    def test_unparseable_spreadsheet_returns_none(self):
        f = UploadedFile(data=b"definitely not excel", filename="broken.xlsx")
        assert normalize_to_table(f) is None

    def test_header_only_csv_returns_none(self):
        f = UploadedFile(data=b"a,b\n", filename="empty.csv")
        assert normalize_to_table(f) is None
