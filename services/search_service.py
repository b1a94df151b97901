"""Web-grounded brew recipe search for a named coffee.

Grounded calls cannot use a response schema, so the answer is free text that
usually, but not always, contains a JSON object. Parsing is therefore split
into three explicit steps: collect citations, locate the JSON span, decode it.
"""

import json
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from google.genai import types

from models import MachineSetting, SearchRecommendation, SearchSource
from services.gemini_service import BARISTA_PERSONA, get_gemini_model, parse_gemini_error
from services.settings_service import get_response_language
from logging_config import get_logger

logger = get_logger()

DEFAULT_SOURCE_TITLE = "Source"
UNREADABLE_DESCRIPTION = "Could not read the search response."
PROCESSING_ERROR_DESCRIPTION = "Error while processing the search data."
API_ERROR_PREFIX = "API error: "

# First '{' through last '}', across newlines
_JSON_SPAN = re.compile(r'\{[\s\S]*\}')


class ExtractionOutcome(str, Enum):
    NO_MATCH = "no_match"
    PARSE_ERROR = "parse_error"
    SUCCESS = "success"


@dataclass(frozen=True)
class JsonExtraction:
    """Result of pulling a JSON object out of free text."""

    outcome: ExtractionOutcome
    data: Optional[dict] = None
    error: Optional[str] = None


def extract_json_object(text: Optional[str]) -> JsonExtraction:
    """Locate and decode the outermost ``{...}`` span in ``text``.

    Tolerates surrounding prose and markdown code fences.
    """
    match = _JSON_SPAN.search(text or "")
    if not match:
        return JsonExtraction(ExtractionOutcome.NO_MATCH)
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return JsonExtraction(ExtractionOutcome.PARSE_ERROR, error=str(e))
    if not isinstance(data, dict):
        return JsonExtraction(ExtractionOutcome.PARSE_ERROR, error="JSON value is not an object")
    return JsonExtraction(ExtractionOutcome.SUCCESS, data=data)


def extract_sources(response: Any) -> list[SearchSource]:
    """Collect web citations from the grounding metadata of a response.

    Citations without a URI are dropped, as are repeats of the same URI.
    """
    candidates = getattr(response, "candidates", None)
    if not isinstance(candidates, (list, tuple)) or not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None)
    if not isinstance(chunks, (list, tuple)):
        return []

    sources: list[SearchSource] = []
    seen: set[str] = set()
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = _as_text(getattr(web, "uri", None))
        if uri is None or uri in seen:
            continue
        seen.add(uri)
        title = _as_text(getattr(web, "title", None)) or DEFAULT_SOURCE_TITLE
        sources.append(SearchSource(title=title, uri=uri))
    return sources


def _as_number(value) -> Optional[float]:
    """Accept JSON numbers and numeric strings such as "18" or "18.5g"."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = re.search(r'-?\d+(?:[.,]\d+)?', value)
        if not match:
            return None
        number = float(match.group(0).replace(",", "."))
    else:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _as_text(value) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _as_found(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _as_machine_setting(value) -> Optional[MachineSetting]:
    text = _as_text(value)
    if text is None:
        return None
    try:
        return MachineSetting(text.lower())
    except ValueError:
        logger.debug("Ignoring unknown machine setting", extra={"machine_setting": text})
        return None


def merge_recommendation(data: dict, sources: list[SearchSource]) -> SearchRecommendation:
    """Merge a decoded search object with its citations.

    Fields missing or unusable in ``data`` stay unset.
    """
    return SearchRecommendation(
        found=_as_found(data.get("found", False)),
        dose=_as_number(data.get("dose")),
        yield_=_as_number(data.get("yield")),
        time=_as_number(data.get("time")),
        temperature=_as_text(data.get("temperature")),
        machine_setting=_as_machine_setting(data.get("machine_setting", data.get("machineSetting"))),
        description=_as_text(data.get("description")),
        sources=sources,
    )


def parse_search_response(text: Optional[str], sources: list[SearchSource]) -> SearchRecommendation:
    """Turn the raw model text plus citations into a recommendation."""
    extraction = extract_json_object(text)

    if extraction.outcome is ExtractionOutcome.NO_MATCH:
        logger.warning(
            "No JSON object in search response",
            extra={"response_preview": (text or "")[:200]}
        )
        return SearchRecommendation(found=False, sources=sources, description=UNREADABLE_DESCRIPTION)

    if extraction.outcome is ExtractionOutcome.PARSE_ERROR:
        logger.warning(
            f"Search response JSON could not be parsed: {extraction.error}",
            extra={"response_preview": (text or "")[:200]}
        )
        return SearchRecommendation(found=False, sources=sources, description=PROCESSING_ERROR_DESCRIPTION)

    return merge_recommendation(extraction.data, sources)


def build_search_prompt(query: str, language: str) -> str:
    return (
        f'Search for brew parameters (a brew guide) for this coffee: "{query}".\n'
        "Prefer sources from roasters and home-barista forums.\n"
        "Answer only with a single JSON object in this format:\n"
        "{\n"
        '  "found": boolean,\n'
        '  "dose": number,\n'
        '  "yield": number,\n'
        '  "time": number,\n'
        '  "temperature": "string",\n'
        '  "machine_setting": "low" | "mid" | "high",\n'
        f'  "description": "short summary in {language}"\n'
        "}\n"
        "If a recommendation maps to a temperature stage, give it as machine_setting "
        "(low, mid or high). If nothing is found, set 'found' to false."
    )


def build_search_config() -> types.GenerateContentConfig:
    # No response schema here: grounding and constrained JSON cannot be combined
    return types.GenerateContentConfig(
        system_instruction=(
            f"{BARISTA_PERSONA} Search online for recipes. "
            "Always answer with valid JSON and no markdown formatting."
        ),
        tools=[types.Tool(google_search=types.GoogleSearch())],
    )


async def request_search(query: str, language: Optional[str] = None) -> SearchRecommendation:
    """Search the web for brew parameters of ``query``.

    Raises:
        ValueError: if the query is blank.
        MissingApiKeyError: before any network call when no key is set.

    Transport failures yield ``found=False`` with no sources and the error
    in the description; unreadable or malformed answers keep their sources.
    """
    query = (query or "").strip()
    if not query:
        raise ValueError("Search query must not be empty")

    model = get_gemini_model()
    language = language or get_response_language()

    try:
        response = await model.async_generate_content(
            build_search_prompt(query, language), generation_config=build_search_config()
        )
    except Exception as e:
        logger.error(
            f"Search request failed: {str(e)}",
            exc_info=True,
            extra={"query": query, "error_type": type(e).__name__}
        )
        return SearchRecommendation(
            found=False,
            sources=[],
            description=API_ERROR_PREFIX + parse_gemini_error(str(e)),
        )

    sources = extract_sources(response)
    recommendation = parse_search_response(getattr(response, "text", None), sources)

    logger.info(
        "Search completed",
        extra={"query": query, "found": recommendation.found, "source_count": len(sources)}
    )
    return recommendation
