"""
extractor.py — Extraction Stage

Turns the raw uploads into an IntermediateReport (summary, sections,
proposed charts, suggested search queries).

Flow:
  1. Gemini reads the files (inline bytes for types it understands,
     normalized text for the rest) and answers in JSON
  2. The answer is validated against IntermediateReport
  3. On any failure (no key, API error, bad JSON, timeout) → a local,
     deterministic extraction built from the text excerpt, returned as
     DegradedExtracted so later stages can tell the difference
"""

import logging
import mimetypes
from typing import Optional

from pydantic import ValidationError

from ..config import Settings, settings as default_settings
from ..core.deadline import Deadline
from ..core.file_parser import normalize_to_text
from ..models.schemas import (
    ChartSpec,
    DegradedExtracted,
    Extracted,
    ExtractionResult,
    IntermediateReport,
    ReportSection,
    Tone,
    UploadedFile,
)
from .prompts import EXTRACTION_PROMPT, FALLBACK_SUMMARY
from .providers import (
    ProviderError,
    file_part,
    gemini_generate_json,
    get_gemini_client,
    is_billing_error,
    text_part,
)

logger = logging.getLogger(__name__)

# Media types Gemini accepts as inline file parts.
INLINE_MEDIA_TYPES = {
    "application/pdf",
    "text/plain",
    "text/csv",
    "text/markdown",
    "text/html",
    "image/png",
    "image/jpeg",
    "image/webp",
}

EMBEDDED_TEXT_MAX_CHARS = 20000


def _media_type(file: UploadedFile) -> str:
    mime = (file.media_type or "").split(";")[0].strip().lower()
    if not mime or mime == "application/octet-stream":
        mime = (mimetypes.guess_type(file.filename or "")[0] or mime).lower()
    return mime


def _attachment_parts(files: list[UploadedFile]) -> list:
    parts = []
    for file in files:
        mime = _media_type(file)
        if mime in INLINE_MEDIA_TYPES:
            parts.append(file_part(file.data, mime))
            continue
        # DOCX, spreadsheets, unknown types: hand over what we can read.
        text = normalize_to_text([file], EMBEDDED_TEXT_MAX_CHARS)
        if text:
            parts.append(text_part(f"File: {file.filename}\n{text}"))
        else:
            parts.append(text_part(f"File: {file.filename} ({mime or 'unknown type'}, content not readable as text)"))
    return parts


def valid_charts(raw_charts) -> Optional[list]:
    """Keep only the proposed charts that satisfy the chart invariants."""
    if raw_charts is None:
        return None
    if not isinstance(raw_charts, list):
        return []
    charts = []
    for raw in raw_charts:
        try:
            charts.append(ChartSpec.model_validate(raw))
        except ValidationError as e:
            logger.info("[Extract] Dropping invalid chart proposal: %s", e.errors()[:1])
    return charts


def parse_intermediate(payload: dict) -> IntermediateReport:
    """Validate a provider payload; raises ValidationError when it does not fit."""
    payload = dict(payload)
    charts = valid_charts(payload.pop("charts", None))
    report = IntermediateReport.model_validate(payload)
    report.charts = charts
    return report


def fallback_extraction(
    files: list[UploadedFile],
    title: Optional[str],
    reason: str = "",
    settings: Optional[Settings] = None,
) -> DegradedExtracted:
    """Deterministic extraction from filenames and a plain-text excerpt."""
    cfg = settings or default_settings
    excerpt = normalize_to_text(files, cfg.EXCERPT_MAX_CHARS)
    filenames = ", ".join(f.filename for f in files)
    title = (title or "").strip()

    report = IntermediateReport(
        suggested_title=title or None,
        executive_summary=FALLBACK_SUMMARY,
        sections=[
            ReportSection(
                heading="Document Overview",
                paragraphs=[
                    f"Uploaded files: {filenames}",
                    f"Excerpt:\n{excerpt}" if excerpt else "No plain-text excerpt available from the uploaded documents.",
                ],
            )
        ],
        charts=[],
        suggested_search_queries=[title, "key takeaways", "summary"] if title else ["document summary", "key points"],
    )
    return DegradedExtracted(report=report, reason=reason)


async def extract(
    files: list[UploadedFile],
    tone: Tone,
    title: Optional[str] = None,
    *,
    deadline: Deadline,
    settings: Optional[Settings] = None,
    client=None,
) -> ExtractionResult:
    """
    Produce the intermediate report for ``files``.

    Never raises for provider problems; those yield DegradedExtracted.
    """
    cfg = settings or default_settings

    if client is None and not cfg.has_gemini:
        logger.info("[Extract] GOOGLE_API_KEY missing; using local extraction.")
        return fallback_extraction(files, title, "primary provider not configured", cfg)

    try:
        client = client or get_gemini_client(cfg)
        parts = [text_part(EXTRACTION_PROMPT.format(tone=tone)), *_attachment_parts(files)]
        payload = await gemini_generate_json(client, parts, model=cfg.GEMINI_MODEL, deadline=deadline)
        report = parse_intermediate(payload)
    except (ProviderError, ValidationError) as e:
        logger.warning("[Extract] Unusable extraction response: %s", e)
        return fallback_extraction(files, title, f"malformed response: {type(e).__name__}", cfg)
    except Exception as e:
        if is_billing_error(e):
            logger.warning("[Extract] Provider rejected the call for billing/entitlement reasons.")
        logger.warning("[Extract] Extraction failed (%s): %s", type(e).__name__, e)
        return fallback_extraction(files, title, f"provider error: {type(e).__name__}", cfg)

    logger.info("[Extract] Extracted %d section(s), %d chart(s).", len(report.sections), len(report.charts or []))
    return Extracted(report=report)
