"""System endpoints: health status, settings (API key setup) and logs."""
from fastapi import APIRouter, Request, HTTPException
from pathlib import Path
from typing import Optional
import json
import os

import config
from services.gemini_service import has_api_key, reset_gemini_client
from services.journal_service import get_journal
from services.settings_service import load_settings, save_settings, get_response_language
from logging_config import LOGGER_NAME, get_logger

router = APIRouter()
logger = get_logger()


def _mask(key: str) -> str:
    return "*" * min(len(key), 20)


@router.get("/api/status")
async def get_status(request: Request):
    """Health check with configuration hints for the front end."""
    return {
        "status": "ok",
        "api_key_configured": has_api_key(),
        "model": config.GEMINI_MODEL,
        "shot_count": len(get_journal()),
    }


@router.get("/api/settings")
async def get_settings(request: Request):
    """Get current settings.

    Returns settings with API key masked for security.
    """
    request_id = request.state.request_id
    logger.info("Fetching settings", extra={"request_id": request_id, "endpoint": "/api/settings"})

    settings = load_settings()
    env_api_key = os.environ.get("GEMINI_API_KEY", "")
    stored_key = settings.get("geminiApiKey", "")
    key = env_api_key or stored_key

    return {
        "geminiApiKey": _mask(key) if key else "",
        "geminiApiKeyConfigured": bool(key),
        "geminiApiKeyFromEnv": bool(env_api_key),
        "responseLanguage": get_response_language(),
    }


@router.post("/api/settings")
async def save_settings_endpoint(request: Request):
    """Save settings entered through the setup screen.

    A new API key replaces the stored one and drops the cached client.
    Masked values echoed back by the UI are ignored.
    """
    request_id = request.state.request_id

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail={"status": "error", "error": "invalid_json", "message": "Request body must be JSON"}
        )
    if not isinstance(body, dict):
        raise HTTPException(
            status_code=400,
            detail={"status": "error", "error": "invalid_body", "message": "Request body must be an object"}
        )

    logger.info(
        "Saving settings",
        extra={
            "request_id": request_id,
            "endpoint": "/api/settings",
            "has_api_key": bool(body.get("geminiApiKey")),
            "has_language": bool(body.get("responseLanguage")),
        }
    )

    current_settings = dict(load_settings())
    key_updated = False

    new_api_key = str(body.get("geminiApiKey") or "").strip()
    if new_api_key and "*" not in new_api_key:
        current_settings["geminiApiKey"] = new_api_key
        key_updated = True

    if "responseLanguage" in body:
        current_settings["responseLanguage"] = str(body["responseLanguage"] or "").strip()

    try:
        save_settings(current_settings)
    except OSError as e:
        logger.error(
            f"Failed to save settings: {str(e)}",
            exc_info=True,
            extra={"request_id": request_id, "error_type": type(e).__name__}
        )
        raise HTTPException(
            status_code=500,
            detail={"status": "error", "error": str(e), "message": "Failed to save settings"}
        )

    if key_updated:
        reset_gemini_client()

    return {"status": "success", "message": "Settings saved successfully", "api_key_updated": key_updated}


@router.get("/api/logs")
async def get_logs(
    request: Request,
    lines: int = 100,
    level: Optional[str] = None,
    log_type: str = "all"
):
    """Retrieve recent log entries for debugging.

    Args:
        lines: Number of lines to read from the end of the file (max 1000)
        level: Only return entries of this level
        log_type: "all" or "errors"

    Returns:
        logs (most recent first), total_lines and the log_file path
    """
    request_id = request.state.request_id
    lines = max(1, min(lines, 1000))

    suffix = "-errors" if log_type == "errors" else ""
    log_file = Path(config.LOG_DIR) / f"{LOGGER_NAME}{suffix}.log"

    if not log_file.exists():
        logger.warning(
            f"Log file not found: {log_file}",
            extra={"request_id": request_id, "log_file": str(log_file)}
        )
        return {
            "logs": [],
            "total_lines": 0,
            "log_file": str(log_file),
            "message": "Log file not found - logging may not be initialized yet"
        }

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            recent_lines = f.readlines()[-lines:]
    except OSError as e:
        logger.error(
            f"Failed to retrieve logs: {str(e)}",
            exc_info=True,
            extra={"request_id": request_id, "error_type": type(e).__name__}
        )
        raise HTTPException(
            status_code=500,
            detail={"status": "error", "error": str(e), "message": "Failed to retrieve logs"}
        )

    log_entries = []
    for line in reversed(recent_lines):
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if level and entry.get("level") != level.upper():
            continue
        log_entries.append(entry)

    return {
        "logs": log_entries,
        "total_lines": len(log_entries),
        "log_file": str(log_file),
        "filters": {"lines_requested": lines, "level": level, "log_type": log_type},
    }
