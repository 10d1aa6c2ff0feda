"""
schemas.py — Pydantic Data Models (Schemas)

Pydantic models define the SHAPE of data flowing through the pipeline:
uploaded files, the intermediate extraction, and the final report.

Every model is serialized with camelCase keys (``generatedAt``, ``xKey``...)
because that is what the report viewer consumes, while Python code keeps
using snake_case attribute names.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Tone = Literal["neutral", "formal", "casual"]
ChartType = Literal["line", "bar", "pie"]
CellValue = Union[int, float, str]

DEFAULT_TITLE = "Automated Report"
FALLBACK_TAG = "ai-fallback"


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Uploads ─────────────────────────────────────────────────────

class UploadedFile(BaseModel):
    """Raw upload as received at request ingress. Never modified."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    filename: str = "document"
    media_type: Optional[str] = None


class FileDescriptor(CamelModel):
    filename: str
    media_type: Optional[str] = None


class TabularRows(CamelModel):
    """One header row plus string-only data rows, projected onto the header."""

    headers: List[str]
    rows: List[List[str]] = Field(default_factory=list)


# ── Report building blocks ──────────────────────────────────────

class ChartSpec(CamelModel):
    type: ChartType
    title: str
    x_key: str
    y_keys: List[str] = Field(min_length=1)
    data: List[Dict[str, CellValue]] = Field(min_length=1)

    @model_validator(mode="after")
    def _rows_cover_keys(self):
        required = [self.x_key, *self.y_keys]
        for i, row in enumerate(self.data):
            missing = [k for k in required if k not in row]
            if missing:
                raise ValueError(f"chart row {i} is missing keys: {missing}")
        return self


class TableSpec(CamelModel):
    # Rows may be ragged; renderers pad or truncate as needed.
    headers: List[str] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)


class ReportSection(CamelModel):
    heading: str
    paragraphs: List[str] = Field(default_factory=list)
    table: Optional[TableSpec] = None


class Reference(CamelModel):
    title: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None


class ReportMetadata(CamelModel):
    author: Optional[str] = None
    stakeholder: Optional[str] = None
    tags: Optional[List[str]] = None
    files: List[FileDescriptor] = Field(default_factory=list)


class Report(CamelModel):
    """The final artifact returned to the caller."""

    title: str = DEFAULT_TITLE
    tone: Tone = "neutral"
    generated_at: Optional[datetime] = None
    metadata: Optional[ReportMetadata] = None
    executive_summary: Optional[str] = None
    sections: List[ReportSection] = Field(default_factory=list)
    charts: Optional[List[ChartSpec]] = None
    references: Optional[List[Reference]] = None


# ── Intermediate extraction ─────────────────────────────────────

class IntermediateReport(CamelModel):
    """Structured-but-unpolished output of the extraction stage."""

    suggested_title: Optional[str] = None
    author: Optional[str] = None
    stakeholder: Optional[str] = None
    tags: Optional[List[str]] = None
    executive_summary: str
    sections: List[ReportSection] = Field(min_length=1)
    charts: Optional[List[ChartSpec]] = None
    suggested_search_queries: Optional[List[str]] = None


class Extracted(BaseModel):
    """Extraction produced by the generation provider."""

    kind: Literal["extracted"] = "extracted"
    report: IntermediateReport


class DegradedExtracted(BaseModel):
    """Extraction built locally because the provider path failed."""

    kind: Literal["degraded"] = "degraded"
    report: IntermediateReport
    reason: str = ""


ExtractionResult = Union[Extracted, DegradedExtracted]


# ── Web search ──────────────────────────────────────────────────

class SearchResult(CamelModel):
    title: str
    link: str
    snippet: Optional[str] = None


SearchResults = Dict[str, List[SearchResult]]
