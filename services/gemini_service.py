"""Gemini service for client construction, credential resolution and errors."""

from google import genai
from google.genai import types
import asyncio
import functools
import os
import re
from typing import Optional

import config
from services.settings_service import get_stored_api_key
from logging_config import get_logger

logger = get_logger()

# Lazy-loaded Gemini client
_gemini_client: Optional[genai.Client] = None

BARISTA_PERSONA = (
    "You are an expert barista who dials in espresso on a home E61 machine "
    "with a three-stage temperature selector (low, mid, high) and a "
    "stepless single-dose grinder."
)


class MissingApiKeyError(ValueError):
    """No Gemini API key is configured; nothing was sent to the network."""

    def __init__(self):
        super().__init__(
            "Gemini API key is not configured. "
            "Enter it via POST /api/settings or set GEMINI_API_KEY."
        )


def resolve_api_key() -> str:
    """Resolve the API key: host environment first, then the setup screen."""
    env_key = os.environ.get("GEMINI_API_KEY", "").strip()
    if env_key:
        return env_key
    return get_stored_api_key()


def has_api_key() -> bool:
    return bool(resolve_api_key())


def parse_gemini_error(error_text: str) -> str:
    """Parse Gemini error output and return a user-friendly message.

    Args:
        error_text: Raw error text from the SDK

    Returns:
        A clean, user-friendly error message
    """
    error_text_lower = error_text.lower()

    if 'quota' in error_text_lower or 'exhausted' in error_text_lower:
        return (
            "Daily API quota exhausted. The free Gemini API has usage limits. "
            "Please wait for your quota to reset or upgrade your API plan."
        )

    if 'rate limit' in error_text_lower or 'too many requests' in error_text_lower:
        return (
            "Rate limit exceeded. Too many requests in a short time. "
            "Please wait a minute and try again."
        )

    if 'api key' in error_text_lower or 'authentication' in error_text_lower or 'unauthorized' in error_text_lower:
        return "API authentication failed. Please check that your Gemini API key is valid."

    if 'network' in error_text_lower or 'connection' in error_text_lower or 'timeout' in error_text_lower:
        return (
            "Network error connecting to Gemini API. Please check your "
            "internet connection and try again."
        )

    match = re.search(r'(?:Error|Exception):\s*(.+?)(?:\n|$)', error_text, re.IGNORECASE)
    if match:
        extracted = match.group(1).strip()
        if len(extracted) > 10:
            return extracted[:200]

    if len(error_text) > 150:
        return f"{error_text[:150]}..."
    return error_text or "Unknown error"


def reset_gemini_client():
    """Reset the cached Gemini client.

    Call this when the API key changes so the next call to
    get_gemini_client() will re-create with the new key.
    """
    global _gemini_client
    _gemini_client = None


def get_gemini_client() -> genai.Client:
    """Lazily initialize and return the Gemini client.

    Raises:
        MissingApiKeyError: if no key is configured anywhere.
    """
    global _gemini_client
    if _gemini_client is None:
        api_key = resolve_api_key()
        if not api_key:
            logger.warning("Gemini call refused: no API key configured")
            raise MissingApiKeyError()
        _gemini_client = genai.Client(api_key=api_key)
    return _gemini_client


def get_gemini_model():
    """Return a model wrapper bound to the configured model name."""
    return _GeminiModelWrapper(get_gemini_client(), config.GEMINI_MODEL)


class _GeminiModelWrapper:
    """Thin wrapper around google.genai.Client for one model."""

    def __init__(self, client: genai.Client, model_name: str):
        self._client = client
        self.model_name = model_name

    def generate_content(self, contents, generation_config: Optional[types.GenerateContentConfig] = None):
        """Call generate_content on the Gemini API (synchronous).

        Returns:
            GenerateContentResponse with .text and .candidates.
        """
        return self._client.models.generate_content(
            model=self.model_name,
            contents=contents,
            config=generation_config,
        )

    async def async_generate_content(self, contents, generation_config: Optional[types.GenerateContentConfig] = None):
        """Non-blocking wrapper around generate_content.

        Runs the synchronous Gemini SDK call in a thread pool executor
        so it doesn't block the asyncio event loop.
        """
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None, functools.partial(self.generate_content, contents, generation_config=generation_config)
        )
