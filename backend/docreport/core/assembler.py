"""
assembler.py — Final Report Assembly

Applies the rules every returned report must satisfy, whichever tier
produced the draft:

  - title: user title if given, else the draft's, else the default
  - tone: always the requested tone
  - generatedAt: always "now", never trusted from upstream
  - metadata.files: always the uploads, in upload order
  - charts: draft charts, then the charts synthesized from tabular uploads
  - references: without web search, reduced to title/source (no URLs)

The draft passed in is never modified.
"""

import datetime
from typing import Optional

from ..models.schemas import (
    DEFAULT_TITLE,
    ChartSpec,
    FileDescriptor,
    Reference,
    Report,
    ReportMetadata,
    Tone,
    UploadedFile,
)
from .chart_generator import charts_from_files


def file_descriptors(files: list[UploadedFile]) -> list[FileDescriptor]:
    return [FileDescriptor(filename=f.filename, media_type=f.media_type or None) for f in files]


def merge_charts(proposed: list[ChartSpec], synthesized: list[ChartSpec]) -> list[ChartSpec]:
    """
    Proposed charts followed by every synthesized one, in upload order.

    A synthesized chart the draft already carries is skipped, so assembling
    an assembled report adds nothing.
    """
    return list(proposed) + [chart for chart in synthesized if chart not in proposed]


def strip_reference_links(references: list[Reference]) -> list[Reference]:
    return [Reference(title=r.title, source=r.source) for r in references]


def assemble(
    draft: Report,
    files: list[UploadedFile],
    title: Optional[str],
    tone: Tone,
    *,
    web_search: bool = False,
    now: Optional[datetime.datetime] = None,
) -> Report:
    report = draft.model_copy(deep=True)

    report.title = (title or "").strip() or (report.title or "").strip() or DEFAULT_TITLE
    report.tone = tone
    report.generated_at = now or datetime.datetime.now(datetime.timezone.utc)

    metadata = report.metadata or ReportMetadata()
    metadata.files = file_descriptors(files)
    report.metadata = metadata

    report.charts = merge_charts(report.charts or [], charts_from_files(files))

    if not web_search and report.references:
        report.references = strip_reference_links(report.references)

    return report
