"""End-to-end pipeline scenarios with providers mocked out."""

import datetime
from unittest.mock import AsyncMock, patch

import pytest

from docreport.agent import composer, extractor
from docreport.core import pipeline
from docreport.core.pipeline import NoFilesError, generate_report
from docreport.models.schemas import FALLBACK_TAG, SearchResult


@pytest.mark.asyncio
async def test_no_files_raises_before_any_provider_call(make_settings):
    with patch.object(pipeline, "extract", new=AsyncMock()) as ext, \
            patch.object(pipeline, "search", new=AsyncMock()) as srch, \
            patch.object(pipeline, "compose", new=AsyncMock()) as comp:
        with pytest.raises(NoFilesError):
            await generate_report([], title="T", tone="formal", settings=make_settings())
    ext.assert_not_called()
    srch.assert_not_called()
    comp.assert_not_called()


@pytest.mark.asyncio
async def test_csv_scenario_without_web_search(csv_file, make_settings):
    start = datetime.datetime.now(datetime.timezone.utc)
    report = await generate_report([csv_file], title="", tone="formal", web_search=False, settings=make_settings())

    assert report.tone == "formal"
    assert report.generated_at >= start
    titles = [(c.type, c.title) for c in report.charts]
    assert ("bar", "revenue vs month") in titles
    assert ("line", "cost vs month") in titles
    assert all(r.url is None for r in report.references or [])
    assert [f.filename for f in report.metadata.files] == ["finance.csv"]
    assert FALLBACK_TAG in report.metadata.tags


@pytest.mark.asyncio
async def test_corrupt_pdf_and_text_file(corrupt_pdf, text_file, make_settings):
    report = await generate_report([corrupt_pdf, text_file], title="Notes", tone="neutral", settings=make_settings())

    overview = report.sections[0]
    assert overview.paragraphs[0] == "Uploaded files: broken.pdf, notes.txt"
    assert overview.paragraphs[1] == "Excerpt:\nQuarterly notes: churn fell to 3%."
    assert report.title == "Notes"


@pytest.mark.asyncio
async def test_web_search_skipped_when_not_requested(text_file, make_settings):
    cfg = make_settings(SERP_API_KEY="serp")
    with patch.object(pipeline, "search", new=AsyncMock(return_value={})) as srch:
        await generate_report([text_file], title="T", tone="neutral", web_search=False, settings=cfg)
    srch.assert_not_called()


@pytest.mark.asyncio
async def test_full_fallthrough_keeps_web_references(text_file, make_settings):
    cfg = make_settings(GROQ_API_KEY="groq", GOOGLE_API_KEY="g", SERP_API_KEY="serp")
    results = {"T": [SearchResult(title="Hit", link="https://hit.example")]}

    with patch.object(extractor, "get_gemini_client", return_value=object()), \
            patch.object(extractor, "gemini_generate_json", new=AsyncMock(side_effect=RuntimeError("down"))), \
            patch.object(pipeline, "search", new=AsyncMock(return_value=results)) as srch, \
            patch.object(composer, "get_groq_client", return_value=object()), \
            patch.object(composer, "get_gemini_client", return_value=object()), \
            patch.object(composer, "groq_chat_json", new=AsyncMock(side_effect=RuntimeError("groq down"))) as groq, \
            patch.object(composer, "gemini_generate_json", new=AsyncMock(side_effect=RuntimeError("gemini down"))):
        report = await generate_report([text_file], title="T", tone="casual", web_search=True, settings=cfg)

    assert srch.await_args.args[0] == ["T", "key takeaways", "summary"]
    # The grounded tier received the document text.
    assert "Quarterly notes" in groq.await_args.args[1][1]["content"]
    assert report.title == "T"
    assert report.tone == "casual"
    assert report.generated_at is not None
    assert [(r.title, r.url) for r in report.references] == [("Hit", "https://hit.example")]


@pytest.mark.asyncio
async def test_full_fallthrough_without_web_results(text_file, make_settings):
    cfg = make_settings(GROQ_API_KEY="groq", GOOGLE_API_KEY="g")
    with patch.object(extractor, "get_gemini_client", return_value=object()), \
            patch.object(extractor, "gemini_generate_json", new=AsyncMock(side_effect=RuntimeError("down"))), \
            patch.object(composer, "get_groq_client", return_value=object()), \
            patch.object(composer, "get_gemini_client", return_value=object()), \
            patch.object(composer, "groq_chat_json", new=AsyncMock(side_effect=RuntimeError("x"))), \
            patch.object(composer, "gemini_generate_json", new=AsyncMock(side_effect=RuntimeError("y"))):
        report = await generate_report([text_file], title="", tone="neutral", web_search=True, settings=cfg)

    assert report.title == "Automated Report"
    assert report.references == []


@pytest.mark.asyncio
async def test_provider_tone_and_title_never_leak(text_file, make_settings):
    cfg = make_settings(GROQ_API_KEY="groq")
    grounded = {"title": "Model Title", "tone": "casual", "executiveSummary": "s", "sections": [], "references": ["https://x"]}
    with patch.object(composer, "get_groq_client", return_value=object()), \
            patch.object(composer, "groq_chat_json", new=AsyncMock(return_value=grounded)):
        report = await generate_report([text_file], title="User Title", tone="formal", web_search=False, settings=cfg)

    assert report.title == "User Title"
    assert report.tone == "formal"
    assert [(r.title, r.url) for r in report.references] == [("https://x", None)]
