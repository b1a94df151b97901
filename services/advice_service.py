"""Dial-in advice for a logged shot.

The model is asked for a schema-constrained JSON object. Any failure after
the client exists (transport, empty or non-conforming payload) degrades to
a fixed fallback so the caller always gets an AdviceResult.
"""

from typing import Optional

from google.genai import types

from models import AdviceResult, ShotRecord
from services.gemini_service import BARISTA_PERSONA, get_gemini_model
from services.settings_service import get_response_language
from logging_config import get_logger

logger = get_logger()

ADVICE_FIELDS = ("diagnosis", "recommendation", "adjustment", "explanation")

FALLBACK_ADVICE = {
    "diagnosis": "Analysis is not possible right now.",
    "recommendation": "Adjust the grind by feel.",
    "adjustment": "Try slightly finer or coarser.",
    "explanation": "No connection to the barista server.",
}


def fallback_advice() -> AdviceResult:
    return AdviceResult(**FALLBACK_ADVICE)


def build_advice_prompt(shot: ShotRecord) -> str:
    """Render a shot into the analysis prompt."""
    flavor = shot.flavor
    return (
        "Analyze this espresso shot.\n\n"
        f"Machine temperature setting: {shot.machine_setting.value}\n"
        f"Grind setting: {shot.grind_setting or 'not recorded'}\n\n"
        "Shot data:\n"
        f"Bean: {shot.bean_name}\n"
        f"Dose (in): {shot.dose:g}g\n"
        f"Yield (out): {shot.yield_:g}g\n"
        f"Time: {shot.time}s\n\n"
        "Flavor profile (1-5):\n"
        f"Sourness: {flavor.sourness}\n"
        f"Bitterness: {flavor.bitterness}\n"
        f"Body: {flavor.body}\n"
        f"Sweetness: {flavor.sweetness}\n"
        f"Overall: {flavor.overall}\n"
    )


def build_advice_instruction(language: str) -> str:
    return (
        f"{BARISTA_PERSONA} Give concise tips in {language}. "
        "Answer only with a JSON object that has exactly the four string "
        "fields diagnosis, recommendation, adjustment and explanation."
    )


def build_advice_config(language: str) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        system_instruction=build_advice_instruction(language),
        response_mime_type="application/json",
        response_schema=types.Schema(
            type=types.Type.OBJECT,
            properties={field: types.Schema(type=types.Type.STRING) for field in ADVICE_FIELDS},
            required=list(ADVICE_FIELDS),
        ),
    )


async def request_advice(shot: ShotRecord, language: Optional[str] = None) -> AdviceResult:
    """Ask the model to critique a shot.

    Raises:
        MissingApiKeyError: before any network call when no key is set.

    Every other failure is logged and answered with the fallback advice.
    """
    model = get_gemini_model()
    language = language or get_response_language()
    prompt = build_advice_prompt(shot)

    try:
        response = await model.async_generate_content(
            prompt, generation_config=build_advice_config(language)
        )
        advice = AdviceResult.model_validate_json((response.text or "").strip())
    except Exception as e:
        logger.error(
            f"Advice request failed: {str(e)}",
            exc_info=True,
            extra={"shot_id": shot.id, "error_type": type(e).__name__}
        )
        return fallback_advice()

    logger.info("Advice received", extra={"shot_id": shot.id})
    return advice
