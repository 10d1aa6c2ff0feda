"""
file_parser.py — Uploaded File Normalizer

Turns arbitrary uploads into the two shapes the rest of the pipeline needs:

  - a bounded plain-text excerpt across all files (normalize_to_text)
  - a header + string rows table for spreadsheet-like files (normalize_to_table)

Format handling is a dispatch table keyed by the detected format, each entry
holding an optional text extractor and an optional table extractor. Every
extractor fails soft: a broken file contributes nothing and never stops its
siblings from being read.
"""

import io
import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import docx
import pandas as pd
from pypdf import PdfReader

from ..models.schemas import TabularRows, UploadedFile

logger = logging.getLogger(__name__)

EXCERPT_SEPARATOR = "\n\n---\n\n"
PDF_MAX_PAGES = 20

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class FileFormat(str, Enum):
    TEXT = "text"
    CSV = "csv"
    DOCX = "docx"
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"
    OTHER = "other"


_EXTENSION_FORMATS = {
    ".txt": FileFormat.TEXT,
    ".md": FileFormat.TEXT,
    ".json": FileFormat.TEXT,
    ".csv": FileFormat.CSV,
    ".docx": FileFormat.DOCX,
    ".pdf": FileFormat.PDF,
    ".xlsx": FileFormat.SPREADSHEET,
    ".xls": FileFormat.SPREADSHEET,
}

_MEDIA_TYPE_FORMATS = {
    "text/plain": FileFormat.TEXT,
    "text/markdown": FileFormat.TEXT,
    "application/json": FileFormat.TEXT,
    "text/csv": FileFormat.CSV,
    DOCX_MEDIA_TYPE: FileFormat.DOCX,
    "application/pdf": FileFormat.PDF,
    "application/vnd.ms-excel": FileFormat.SPREADSHEET,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileFormat.SPREADSHEET,
}


def detect_format(file: UploadedFile) -> FileFormat:
    """
    Decide how to read a file.

    The filename extension wins over the declared media type, because
    browsers routinely send CSVs as application/vnd.ms-excel and plenty of
    clients send application/octet-stream for everything.
    """
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext in _EXTENSION_FORMATS:
        return _EXTENSION_FORMATS[ext]
    media_type = (file.media_type or "").split(";")[0].strip().lower()
    return _MEDIA_TYPE_FORMATS.get(media_type, FileFormat.OTHER)


# ──────────────────────────────────────────────────────────────────
# Text extractors: (file, room) -> str
# ``room`` is how many characters the excerpt can still take.
# ──────────────────────────────────────────────────────────────────

def _read_plain_text(file: UploadedFile, room: int) -> str:
    return file.data.decode("utf-8-sig", errors="replace")


def _read_docx_text(file: UploadedFile, room: int) -> str:
    """One line per document paragraph, with tabs and stray whitespace collapsed."""
    doc = docx.Document(io.BytesIO(file.data))
    lines = [re.sub(r"\s+", " ", p.text).strip() for p in doc.paragraphs]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def _read_pdf_text(file: UploadedFile, room: int) -> str:
    reader = PdfReader(io.BytesIO(file.data))
    pages = []
    length = 0
    for page in reader.pages[:PDF_MAX_PAGES]:
        fragments = (page.extract_text() or "").split()
        if fragments:
            page_text = " ".join(fragments)
            pages.append(page_text)
            length += len(page_text) + 1
        # Nothing past the budget will survive truncation.
        if length >= room:
            break
    return "\n".join(pages)


# ──────────────────────────────────────────────────────────────────
# Table extractors: file -> TabularRows | None
# ──────────────────────────────────────────────────────────────────

def _frame_to_rows(df: pd.DataFrame) -> Optional[TabularRows]:
    if df is None or len(df.columns) == 0:
        return None
    headers = [str(c) for c in df.columns]
    # Missing cells become "" (what the source formats hand back for blanks).
    df = df.fillna("")
    rows = [[str(v) for v in record] for record in df.itertuples(index=False, name=None)]
    if not rows:
        return None
    return TabularRows(headers=headers, rows=rows)


def _read_csv_table(file: UploadedFile) -> Optional[TabularRows]:
    # Try common encodings and delimiters; a single detected column usually
    # means the separator guess was wrong.
    for encoding in ["utf-8-sig", "latin-1", "cp1252"]:
        for sep in [",", ";", "\t", "|"]:
            try:
                df = pd.read_csv(
                    io.BytesIO(file.data),
                    encoding=encoding,
                    sep=sep,
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=True,
                    on_bad_lines="skip",
                )
            except UnicodeDecodeError:
                break
            except (ValueError, pd.errors.ParserError):
                continue
            if len(df.columns) > 1 or sep == "|":
                return _frame_to_rows(df)
    return None


def _read_spreadsheet_table(file: UploadedFile) -> Optional[TabularRows]:
    ext = os.path.splitext(file.filename or "")[1].lower()
    engine = None if ext == ".xls" else "openpyxl"
    # First sheet only; object dtype keeps ints as ints instead of 1.0.
    df = pd.read_excel(io.BytesIO(file.data), sheet_name=0, dtype=object, engine=engine)
    return _frame_to_rows(df)


@dataclass(frozen=True)
class FormatHandlers:
    extract_text: Optional[Callable[[UploadedFile, int], str]] = None
    extract_table: Optional[Callable[[UploadedFile], Optional[TabularRows]]] = None


HANDLERS = {
    FileFormat.TEXT: FormatHandlers(extract_text=_read_plain_text),
    FileFormat.CSV: FormatHandlers(extract_text=_read_plain_text, extract_table=_read_csv_table),
    FileFormat.DOCX: FormatHandlers(extract_text=_read_docx_text),
    FileFormat.PDF: FormatHandlers(extract_text=_read_pdf_text),
    FileFormat.SPREADSHEET: FormatHandlers(extract_table=_read_spreadsheet_table),
    FileFormat.OTHER: FormatHandlers(),
}


# ──────────────────────────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────────────────────────

def extract_file_text(file: UploadedFile, room: int) -> str:
    """Text for a single file, or "" when the format has none or reading fails."""
    handler = HANDLERS[detect_format(file)].extract_text
    if handler is None:
        return ""
    try:
        return handler(file, room)
    except Exception as e:
        logger.warning("[Normalize] Could not read text from %s: %s", file.filename, e)
        return ""


def normalize_to_text(files: list[UploadedFile], max_chars: int) -> str:
    """
    Build a plain-text excerpt across all files, in upload order.

    Each file's text is joined with a visible separator. Once the excerpt
    reaches ``max_chars`` the remaining files are not read at all. Never
    raises; the result is always at most ``max_chars`` long.
    """
    if max_chars <= 0:
        return ""

    combined = ""
    for file in files:
        text = extract_file_text(file, max_chars - len(combined))
        if text:
            combined += (EXCERPT_SEPARATOR if combined else "") + text
        if len(combined) >= max_chars:
            break

    return combined[:max_chars]


def normalize_to_table(file: UploadedFile) -> Optional[TabularRows]:
    """Header + string rows for CSV and spreadsheet files; None for everything else."""
    handler = HANDLERS[detect_format(file)].extract_table
    if handler is None:
        return None
    try:
        return handler(file)
    except Exception as e:
        logger.warning("[Normalize] Could not parse table from %s: %s", file.filename, e)
        return None
