"""
prompts.py — Prompts for the generation providers

Each prompt spells out the JSON shape expected back, because the responses
are validated against the report schemas and anything that does not fit is
treated as a failed call.
"""

EXTRACTION_PROMPT = """You are an assistant that extracts structured, accurate report content from the provided files and suggests charts when numeric/tabular data exists.
Tone should be {tone}.
1) Provide executive summary.
2) Provide 3-6 sections with headings and paragraphs. Include tables when present.
3) If possible, extract numeric data and propose chart specs (line, bar, or pie).
4) Suggest 2-4 short web search queries that would add timely context or validation.

Return ONLY a JSON object with this shape (optional keys may be omitted):
{{
  "suggestedTitle": string,
  "author": string,
  "stakeholder": string,
  "tags": string[],
  "executiveSummary": string,
  "sections": [{{"heading": string, "paragraphs": string[], "table": {{"headers": string[], "rows": string[][]}}}}],
  "charts": [{{"type": "line" | "bar" | "pie", "title": string, "xKey": string, "yKeys": string[], "data": [{{<column>: string | number}}]}}],
  "suggestedSearchQueries": string[]
}}
"sections" must contain at least one entry and "executiveSummary" is required.
Every chart data row must contain the xKey and every yKey.
"""

COMPOSE_PROMPT = """Compose a final report with these constraints:
- Title: Prefer the user's provided title ({title}), else use suggestedTitle.
- Include metadata, executive summary, 3-6 sections, and concise references.
- If web results are provided, integrate them with brief attributions and links.
- Do not invent facts; cite sources explicitly.
- Keep writing tone: {tone}.

Return ONLY a JSON object with this shape:
{{
  "title": string,
  "tone": "neutral" | "formal" | "casual",
  "metadata": {{"author": string, "stakeholder": string, "tags": string[]}},
  "executiveSummary": string,
  "sections": [{{"heading": string, "paragraphs": string[], "table": {{"headers": string[], "rows": string[][]}}}}],
  "charts": [{{"type": "line" | "bar" | "pie", "title": string, "xKey": string, "yKeys": string[], "data": [{{<column>: string | number}}]}}],
  "references": [{{"title": string, "url": string, "source": string}}]
}}

Extracted (from files):
{extracted}

Web Search (SERP) Results:
{web_results}
"""

GROUNDED_SYSTEM_PROMPT = (
    "You are an expert analyst that MUST ground every statement strictly in the provided "
    "Document Text. Do NOT add generic industry boilerplate. If information is not present, "
    "write 'Not found in document'. Prefer direct quotes with minimal paraphrase. Keep tone "
    "consistent and avoid hallucinations; only use web findings if provided, and cite separately."
)

GROUNDED_USER_PROMPT = """Title: {title}
Tone: {tone}

{web_block}Document Text (may be truncated):
{doc_text}

Task: Create a structured report that is SPECIFIC to the Document Text. For each section, reference concrete details (e.g., problem statements, methods, results, datasets, algorithms, parameters). Avoid vague outlines.
Return JSON with the following shape strictly (no extra text):
{{"title": string, "tone": string, "executiveSummary": string, "sections": Array<{{"title": string, "content": string}}>, "references": Array<string | {{"title": string, "url": string}}>}}"""

WEB_FINDINGS_BLOCK = "External Web Search Findings (optional):\n{findings}\n\n"

FALLBACK_SUMMARY = (
    "AI-based extraction is unavailable. This fallback summary lists the uploaded files "
    "and includes the first available text excerpt for context."
)

DETERMINISTIC_SUMMARY = (
    "This is a minimal report assembled without a generation provider."
)
