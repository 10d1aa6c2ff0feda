"""
providers.py — Generation provider clients

Thin wrappers around the two generation providers:

  - Gemini (google-genai): the primary provider, used for extraction and
    for schema-shaped composition. Accepts text and file parts.
  - Groq (OpenAI-compatible chat completions, via the openai SDK): the
    secondary provider, used for grounded composition in JSON mode.

Both return parsed JSON objects or raise. The callers decide how a failure
degrades; nothing here retries.
"""

import json
import logging
import re
from typing import Any, Optional

from google import genai
from google.genai import types as genai_types
from openai import AsyncOpenAI

from ..config import Settings
from ..core.deadline import Deadline

logger = logging.getLogger(__name__)

_BILLING_MARKERS = (
    "customer_verification_required",
    "requires a valid credit card",
    "billing",
    "insufficient_quota",
    "PERMISSION_DENIED",
)


class ProviderError(Exception):
    """A provider answered, but not with something usable."""


def safe_extract_json(text: str) -> Optional[Any]:
    """Parse a JSON response, falling back to the trailing {...} block."""
    if not text:
        return None
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        pass
    # Models sometimes wrap JSON in prose or code fences.
    stripped = text.strip().removesuffix("```").strip()
    match = re.search(r"\{[\s\S]*\}$", stripped)
    if match:
        try:
            return json.loads(match.group(0))
        except ValueError:
            pass
    return None


def is_billing_error(err: BaseException) -> bool:
    """
    True when a provider rejected the call for entitlement/billing reasons.

    Informational only: callers log it, then take the normal failure path.
    """
    status = getattr(err, "status_code", None) or getattr(err, "code", None)
    if status in (402, 403):
        return True
    haystack = " ".join(
        str(part) for part in (err, getattr(err, "body", ""), getattr(err, "message", "")) if part
    )
    return any(marker.lower() in haystack.lower() for marker in _BILLING_MARKERS)


# ──────────────────────────────────────────────────────────────────
# Gemini
# ──────────────────────────────────────────────────────────────────

def get_gemini_client(cfg: Settings) -> genai.Client:
    return genai.Client(api_key=cfg.GOOGLE_API_KEY)


async def gemini_generate_json(
    client: genai.Client,
    parts: list,
    *,
    model: str,
    deadline: Deadline,
    max_output_tokens: int = 8192,
) -> dict:
    """
    Run one JSON-mode generation over ``parts`` (text and file parts).

    Raises ProviderError when the response is empty or not a JSON object,
    DeadlineExceeded on timeout, and whatever the SDK raises on API errors.
    """
    response = await deadline.run(
        client.aio.models.generate_content(
            model=model,
            contents=parts,
            config=genai_types.GenerateContentConfig(
                temperature=0.2,
                max_output_tokens=max_output_tokens,
                response_mime_type="application/json",
            ),
        )
    )
    payload = safe_extract_json(response.text or "")
    if not isinstance(payload, dict):
        raise ProviderError("Gemini response was not a JSON object")
    return payload


def text_part(text: str) -> genai_types.Part:
    return genai_types.Part.from_text(text=text)


def file_part(data: bytes, mime_type: str) -> genai_types.Part:
    return genai_types.Part.from_bytes(data=data, mime_type=mime_type)


# ──────────────────────────────────────────────────────────────────
# Groq
# ──────────────────────────────────────────────────────────────────

def get_groq_client(cfg: Settings) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=cfg.GROQ_API_KEY, base_url=cfg.GROQ_BASE_URL)


async def groq_chat_json(
    client: AsyncOpenAI,
    messages: list[dict],
    *,
    model: str,
    deadline: Deadline,
) -> dict:
    """One chat completion in JSON response mode; returns the parsed object."""
    completion = await deadline.run(
        client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=0.3,
            response_format={"type": "json_object"},
        )
    )
    if not completion.choices:
        raise ProviderError("Groq returned no choices")
    content = completion.choices[0].message.content or ""
    payload = safe_extract_json(content)
    if not isinstance(payload, dict):
        raise ProviderError("Unable to parse Groq JSON response")
    return payload
