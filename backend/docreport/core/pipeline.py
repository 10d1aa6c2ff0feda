"""
pipeline.py — Report Generation Pipeline

One call = one request = one report. Nothing is cached or shared between
requests.

Pipeline:
  extract -> [web search] -> [document excerpt] -> compose -> assemble

Every outbound provider call shares a single Deadline. Only an empty upload
list is an error; everything else degrades to a lower-fidelity report.
"""

import logging
from typing import Optional

from ..agent.composer import compose
from ..agent.extractor import extract
from ..agent.web_search import search
from ..config import Settings, settings as default_settings
from ..models.schemas import DegradedExtracted, Report, Tone, UploadedFile
from .assembler import assemble
from .deadline import Deadline
from .file_parser import normalize_to_text

logger = logging.getLogger(__name__)


class NoFilesError(ValueError):
    """The request carried no files."""

    def __init__(self, message: str = "No files uploaded"):
        super().__init__(message)


async def generate_report(
    files: list[UploadedFile],
    *,
    title: Optional[str] = None,
    tone: Tone = "neutral",
    web_search: bool = False,
    settings: Optional[Settings] = None,
    deadline: Optional[Deadline] = None,
) -> Report:
    """
    Build the final report for ``files``.

    Raises:
        NoFilesError: if ``files`` is empty (before any provider is called).
    """
    if not files:
        raise NoFilesError()

    cfg = settings or default_settings
    deadline = deadline or Deadline(cfg.REQUEST_TIMEOUT_SECS)
    title = (title or "").strip()

    # 1. Extraction
    extraction = await extract(files, tone, title, deadline=deadline, settings=cfg)
    if isinstance(extraction, DegradedExtracted):
        logger.info("[Pipeline] Using fallback extraction (%s).", extraction.reason)

    # 2. Web augmentation
    web_results = {}
    queries = extraction.report.suggested_search_queries or []
    if web_search and queries:
        web_results = await search(queries, cfg.SEARCH_RESULTS_PER_QUERY, deadline=deadline, settings=cfg)

    # 3. Document text for the grounded tier (only read when that tier can run)
    doc_text = normalize_to_text(files, cfg.COMPOSE_DOC_MAX_CHARS) if cfg.has_groq else ""

    # 4. Composition
    outcome = await compose(
        extraction,
        web_results,
        tone,
        title,
        doc_text,
        deadline=deadline,
        settings=cfg,
    )

    # 5. Assembly
    report = assemble(outcome.report, files, title, tone, web_search=web_search)
    logger.info(
        "[Pipeline] Report ready: tier=%s sections=%d charts=%d references=%d",
        outcome.tier,
        len(report.sections),
        len(report.charts or []),
        len(report.references or []),
    )
    return report
