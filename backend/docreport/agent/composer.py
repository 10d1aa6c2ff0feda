"""
composer.py — Composition Stage

Turns the intermediate report (plus any web results) into a draft Report.

Three tiers, tried in order; the first one that yields a valid draft wins:

  1. secondary      Groq, grounded strictly in the document text
                    (only when GROQ_API_KEY is set)
  2. primary        Gemini, composing from the intermediate report
  3. deterministic  local assembly from the intermediate report and raw
                    web results; cannot fail

Each tier runs at most once per request and there are no retries. A tier
failure is logged and the next tier runs.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from ..config import Settings, settings as default_settings
from ..core.deadline import Deadline
from ..models.schemas import (
    DegradedExtracted,
    ExtractionResult,
    FALLBACK_TAG,
    IntermediateReport,
    Reference,
    Report,
    ReportMetadata,
    ReportSection,
    SearchResults,
    Tone,
)
from .extractor import valid_charts
from .prompts import (
    COMPOSE_PROMPT,
    DETERMINISTIC_SUMMARY,
    GROUNDED_SYSTEM_PROMPT,
    GROUNDED_USER_PROMPT,
    WEB_FINDINGS_BLOCK,
)
from .providers import (
    ProviderError,
    gemini_generate_json,
    get_gemini_client,
    get_groq_client,
    groq_chat_json,
    is_billing_error,
    text_part,
)

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────
# Tier plumbing
# ──────────────────────────────────────────────────────────────────

@dataclass
class TierOutcome:
    tier: str
    status: str                      # "ok" | "failed" | "skipped"
    report: Optional[Report] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok" and self.report is not None

    @classmethod
    def success(cls, tier: str, report: Report) -> "TierOutcome":
        return cls(tier=tier, status="ok", report=report)

    @classmethod
    def failure(cls, tier: str, error: str) -> "TierOutcome":
        return cls(tier=tier, status="failed", error=error)

    @classmethod
    def skip(cls, tier: str, why: str) -> "TierOutcome":
        return cls(tier=tier, status="skipped", error=why)


@dataclass
class CompositionContext:
    extraction: ExtractionResult
    web_results: SearchResults
    tone: Tone
    title: str
    doc_text: str
    deadline: Deadline
    settings: Settings
    gemini_client: object = None
    groq_client: object = None

    @property
    def intermediate(self) -> IntermediateReport:
        return self.extraction.report

    @property
    def degraded(self) -> bool:
        return isinstance(self.extraction, DegradedExtracted)


@dataclass
class CompositionOutcome:
    report: Report
    tier: str
    attempts: list = field(default_factory=list)


Tier = Callable[[CompositionContext], Awaitable[TierOutcome]]


def _base_metadata(ctx: CompositionContext) -> ReportMetadata:
    intermediate = ctx.intermediate
    return ReportMetadata(
        author=intermediate.author,
        stakeholder=intermediate.stakeholder,
        tags=list(intermediate.tags) if intermediate.tags else None,
    )


def flatten_web_results(web_results: SearchResults, limit: int) -> list[Reference]:
    refs = []
    for results in (web_results or {}).values():
        for r in results:
            refs.append(Reference(title=r.title, url=r.link))
    return refs[:limit]


def _serialize_web_results(web_results: SearchResults) -> str:
    return json.dumps(
        {q: [r.to_json_dict() for r in results] for q, results in (web_results or {}).items()},
        indent=2,
    )


# ──────────────────────────────────────────────────────────────────
# Tier 1: secondary provider (Groq)
# ──────────────────────────────────────────────────────────────────

def build_grounded_messages(doc_text: str, web_findings: Optional[str], tone: str, title: str) -> list[dict]:
    web_block = WEB_FINDINGS_BLOCK.format(findings=web_findings) if web_findings else ""
    return [
        {"role": "system", "content": GROUNDED_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": GROUNDED_USER_PROMPT.format(
                title=title or "Automated Report",
                tone=tone,
                web_block=web_block,
                doc_text=doc_text or "",
            ),
        },
    ]


def _reference_from_raw(raw) -> Optional[Reference]:
    if isinstance(raw, str):
        return Reference(title=raw, url=raw) if raw.strip() else None
    if isinstance(raw, dict):
        title = raw.get("title")
        url = raw.get("url")
        if title is None and url is None:
            return None
        return Reference(title=str(title) if title is not None else None, url=str(url) if url is not None else None)
    return None


def _section_from_raw(raw, index: int) -> Optional[ReportSection]:
    if not isinstance(raw, dict):
        return None
    heading = raw.get("title") or raw.get("heading") or f"Section {index}"
    content = raw.get("content")
    if content:
        paragraphs = [str(content)]
    else:
        paragraphs = [str(p) for p in raw.get("paragraphs") or [] if p]
    return ReportSection(heading=str(heading), paragraphs=paragraphs)


def report_from_grounded_payload(payload: dict, ctx: CompositionContext) -> Report:
    """Map Groq's {title, tone, executiveSummary, sections, references} shape onto a Report."""
    if not isinstance(payload, dict):
        raise ProviderError("grounded response is not an object")
    raw_sections = payload.get("sections")
    if raw_sections is not None and not isinstance(raw_sections, list):
        raise ProviderError("grounded response sections is not a list")
    raw_refs = payload.get("references")
    if not isinstance(raw_refs, list):
        raw_refs = []

    sections = [s for s in (_section_from_raw(raw, i) for i, raw in enumerate(raw_sections or [], 1)) if s]
    references = [r for r in (_reference_from_raw(raw) for raw in raw_refs[: ctx.settings.MAX_REFERENCES]) if r]

    return Report(
        title=payload.get("title") or ctx.title or ctx.intermediate.suggested_title or "Automated Report",
        tone=ctx.tone,
        metadata=_base_metadata(ctx),
        executive_summary=payload.get("executiveSummary") or "Summary unavailable from model response.",
        sections=sections,
        charts=[],
        references=references,
    )


async def secondary_tier(ctx: CompositionContext) -> TierOutcome:
    tier = "secondary"
    if ctx.groq_client is None and not ctx.settings.has_groq:
        return TierOutcome.skip(tier, "GROQ_API_KEY not configured")
    try:
        client = ctx.groq_client or get_groq_client(ctx.settings)
        findings = _serialize_web_results(ctx.web_results) if ctx.web_results else None
        messages = build_grounded_messages(ctx.doc_text, findings, ctx.tone, ctx.title)
        payload = await groq_chat_json(client, messages, model=ctx.settings.GROQ_MODEL, deadline=ctx.deadline)
        return TierOutcome.success(tier, report_from_grounded_payload(payload, ctx))
    except Exception as e:
        return TierOutcome.failure(tier, f"{type(e).__name__}: {e}")


# ──────────────────────────────────────────────────────────────────
# Tier 2: primary provider (Gemini)
# ──────────────────────────────────────────────────────────────────

def build_compose_prompt(ctx: CompositionContext) -> str:
    extracted = ctx.intermediate.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        include={"suggested_title", "author", "stakeholder", "tags", "executive_summary", "sections", "charts"},
    )
    return COMPOSE_PROMPT.format(
        title=ctx.title or "none provided",
        tone=ctx.tone,
        extracted=json.dumps(extracted, indent=2),
        web_results=_serialize_web_results(ctx.web_results),
    )


def report_from_compose_payload(payload: dict) -> Report:
    payload = dict(payload)
    # The timestamp is always set at assembly time.
    payload.pop("generatedAt", None)
    payload.pop("generated_at", None)
    # Tone is always the requested one.
    payload.pop("tone", None)
    charts = valid_charts(payload.pop("charts", None))
    report = Report.model_validate(payload)
    report.charts = charts
    return report


async def primary_tier(ctx: CompositionContext) -> TierOutcome:
    tier = "primary"
    if ctx.gemini_client is None and not ctx.settings.has_gemini:
        return TierOutcome.skip(tier, "GOOGLE_API_KEY not configured")
    try:
        client = ctx.gemini_client or get_gemini_client(ctx.settings)
        payload = await gemini_generate_json(
            client,
            [text_part(build_compose_prompt(ctx))],
            model=ctx.settings.GEMINI_MODEL,
            deadline=ctx.deadline,
            max_output_tokens=3000,
        )
        return TierOutcome.success(tier, report_from_compose_payload(payload))
    except (ProviderError, ValidationError) as e:
        return TierOutcome.failure(tier, f"malformed response: {e}")
    except Exception as e:
        if is_billing_error(e):
            logger.warning("[Compose] Primary provider rejected the call for billing/entitlement reasons.")
        return TierOutcome.failure(tier, f"{type(e).__name__}: {e}")


# ──────────────────────────────────────────────────────────────────
# Tier 3: deterministic
# ──────────────────────────────────────────────────────────────────

def deterministic_report(ctx: CompositionContext) -> Report:
    intermediate = ctx.intermediate
    return Report(
        title=ctx.title or intermediate.suggested_title or "Automated Report",
        tone=ctx.tone,
        metadata=_base_metadata(ctx),
        executive_summary=intermediate.executive_summary or DETERMINISTIC_SUMMARY,
        sections=[s.model_copy(deep=True) for s in intermediate.sections],
        charts=[c.model_copy(deep=True) for c in intermediate.charts or []],
        references=flatten_web_results(ctx.web_results, ctx.settings.MAX_REFERENCES),
    )


async def deterministic_tier(ctx: CompositionContext) -> TierOutcome:
    return TierOutcome.success("deterministic", deterministic_report(ctx))


TIERS: list[Tier] = [secondary_tier, primary_tier, deterministic_tier]


# ──────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────

def mark_degraded(report: Report) -> None:
    """Tag a draft built on a fallback extraction so consumers can tell."""
    metadata = report.metadata or ReportMetadata()
    tags = list(metadata.tags or [])
    if FALLBACK_TAG not in tags:
        tags.append(FALLBACK_TAG)
    metadata.tags = tags
    report.metadata = metadata


async def compose(
    extraction: ExtractionResult,
    web_results: SearchResults,
    tone: Tone,
    title: str,
    doc_text: str,
    *,
    deadline: Deadline,
    settings: Optional[Settings] = None,
    gemini_client=None,
    groq_client=None,
    tiers: Optional[list[Tier]] = None,
) -> CompositionOutcome:
    """Run the tiers in order and return the first draft that succeeds."""
    ctx = CompositionContext(
        extraction=extraction,
        web_results=web_results or {},
        tone=tone,
        title=(title or "").strip(),
        doc_text=doc_text or "",
        deadline=deadline,
        settings=settings or default_settings,
        gemini_client=gemini_client,
        groq_client=groq_client,
    )

    attempts = []
    for tier in tiers if tiers is not None else TIERS:
        outcome = await tier(ctx)
        attempts.append(outcome)
        if outcome.ok:
            logger.info("[Compose] Draft produced by %s tier.", outcome.tier)
            if ctx.degraded:
                mark_degraded(outcome.report)
            return CompositionOutcome(report=outcome.report, tier=outcome.tier, attempts=attempts)
        if outcome.status == "failed":
            logger.warning("[Compose] %s tier failed: %s", outcome.tier, outcome.error)
        else:
            logger.info("[Compose] %s tier skipped: %s", outcome.tier, outcome.error)

    # The deterministic tier always succeeds; reaching here is a bug.
    raise RuntimeError("no composition tier produced a report")
