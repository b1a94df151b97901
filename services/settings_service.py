"""Settings service for the key-entry setup screen and user preferences."""

import json
from typing import Optional

import config
from utils.file_utils import atomic_write_json

# In-memory cache (loaded from disk on first access, write-through on save)
_settings_cache: Optional[dict] = None

_DEFAULT_SETTINGS = {
    "geminiApiKey": "",
    "responseLanguage": "",
}


def ensure_settings_file():
    """Ensure the settings file and directory exist."""
    config.SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    if not config.SETTINGS_FILE.exists():
        config.SETTINGS_FILE.write_text(json.dumps(_DEFAULT_SETTINGS, indent=2))


def load_settings() -> dict:
    """Load settings, using in-memory copy when available."""
    global _settings_cache
    if _settings_cache is not None:
        return _settings_cache
    ensure_settings_file()
    try:
        with open(config.SETTINGS_FILE, 'r', encoding='utf-8') as f:
            loaded = json.load(f)
        _settings_cache = {**_DEFAULT_SETTINGS, **loaded} if isinstance(loaded, dict) else dict(_DEFAULT_SETTINGS)
    except (json.JSONDecodeError, FileNotFoundError):
        _settings_cache = dict(_DEFAULT_SETTINGS)
    return _settings_cache


def save_settings(settings: dict):
    """Write-through: update in-memory cache and persist to disk."""
    global _settings_cache
    _settings_cache = settings
    ensure_settings_file()
    atomic_write_json(config.SETTINGS_FILE, settings)


def get_stored_api_key() -> str:
    """Get the Gemini key entered through the setup screen, or ''."""
    return (load_settings().get("geminiApiKey") or "").strip()


def get_response_language() -> str:
    """Get the answer language, defaulting to the configured one."""
    language = (load_settings().get("responseLanguage") or "").strip()
    return language if language else config.RESPONSE_LANGUAGE
