"""
web_search.py — Web Augmentation via SerpAPI

Fetches ranked Google results for the search queries the extraction stage
suggested. Running without SERP_API_KEY is a normal mode: search() returns
an empty mapping and the report is built from the documents alone.

Each query runs as its own request; one failing query yields an empty list
for that query and never affects the others.
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import Settings, settings as default_settings
from ..core.deadline import Deadline
from ..models.schemas import SearchResult, SearchResults

logger = logging.getLogger(__name__)

SEARCH_HTTP_TIMEOUT_SECS = 15.0


def _parse_results(payload: dict, max_per_query: int) -> list[SearchResult]:
    organic = payload.get("organic_results")
    if not isinstance(organic, list):
        return []
    results = []
    for item in organic[:max_per_query]:
        if not isinstance(item, dict) or not item.get("title") or not item.get("link"):
            continue
        results.append(SearchResult(title=item["title"], link=item["link"], snippet=item.get("snippet")))
    return results


async def _search_one(
    client: httpx.AsyncClient,
    query: str,
    max_per_query: int,
    deadline: Deadline,
    cfg: Settings,
) -> list[SearchResult]:
    params = {
        "engine": "google",
        "q": query,
        "num": str(max_per_query),
        "api_key": cfg.SERP_API_KEY,
    }
    try:
        response = await deadline.run(client.get(cfg.SERP_ENDPOINT, params=params))
    except (httpx.HTTPError, TimeoutError) as e:
        logger.info("[Search] Request failed for %r: %s", query, e)
        return []

    if response.status_code >= 400:
        logger.info("[Search] SerpAPI error for %r: HTTP %s", query, response.status_code)
        return []

    try:
        payload = response.json()
    except ValueError:
        logger.info("[Search] Non-JSON response for %r", query)
        return []
    if not isinstance(payload, dict):
        return []
    try:
        return _parse_results(payload, max_per_query)
    except (TypeError, ValueError) as e:
        logger.info("[Search] Unexpected result shape for %r: %s", query, e)
        return []


async def search(
    queries: list[str],
    max_per_query: int = 5,
    *,
    deadline: Deadline,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> SearchResults:
    """
    Run every query concurrently.

    Returns {query: [SearchResult, ...]} with at most ``max_per_query``
    entries per query, or {} when no search credential is configured.
    """
    cfg = settings or default_settings
    if not cfg.has_serp:
        logger.info("[Search] SERP_API_KEY missing; skipping external search.")
        return {}

    queries = [q.strip() for q in queries if q and q.strip()]
    if not queries:
        return {}

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=SEARCH_HTTP_TIMEOUT_SECS)
    try:
        lists = await asyncio.gather(
            *(_search_one(client, q, max_per_query, deadline, cfg) for q in queries)
        )
    finally:
        if owns_client:
            await client.aclose()

    return dict(zip(queries, lists))
