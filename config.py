"""Configuration management for the espresso journal server.

This module centralizes all configuration constants and environment variables
for easier management and testing.

Usage:
    from config import config, DATA_DIR, SHOTS_FILE

    # Access via config object
    model = config.GEMINI_MODEL

    # Or use exported constants
    shots_path = SHOTS_FILE

Attributes:
    TEST_MODE: Boolean flag for test environment (affects DATA_DIR)
    DATA_DIR: Path to data directory (temp dir in test mode, /app/data otherwise)
    LOG_DIR: Path to log directory
    LOG_LEVEL: Level for the application logger (default: INFO)
    GEMINI_API_KEY: Google Gemini API key from environment
    GEMINI_MODEL: Gemini model used for advice and search
    RESPONSE_LANGUAGE: Language the model is asked to answer in
    TIMER_TICK_INTERVAL: Seconds between shot timer display ticks (default: 0.1)
    SHOTS_FILE: Path of the persisted shot journal
    SETTINGS_FILE: Path of the persisted settings

Note:
    The Gemini API key is re-read from the environment on every client
    construction; the value captured here is only the startup default.
"""

import os
import tempfile
from pathlib import Path


class Config:
    """Central configuration for the espresso journal server."""

    # Test Mode
    TEST_MODE = os.environ.get("TEST_MODE") == "true"

    # Data Directories
    if TEST_MODE:
        DATA_DIR = Path(os.environ.get(
            "DATA_DIR", Path(tempfile.gettempdir()) / "espresso_journal_test_data"
        ))
        DATA_DIR.mkdir(parents=True, exist_ok=True)
    else:
        DATA_DIR = Path(os.environ.get("DATA_DIR", "/app/data"))

    LOG_DIR = Path(os.environ.get("LOG_DIR", "/app/logs"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # API Keys and Model
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")
    RESPONSE_LANGUAGE = os.environ.get("RESPONSE_LANGUAGE", "English")

    # Shot timer
    TIMER_TICK_INTERVAL = 0.1  # 100 ms display refresh

    # Persisted files
    SHOTS_FILE = DATA_DIR / "shots.json"
    SETTINGS_FILE = DATA_DIR / "settings.json"


# Convenience access to config
config = Config()


# Export commonly used constants
DATA_DIR = config.DATA_DIR
LOG_DIR = config.LOG_DIR
GEMINI_MODEL = config.GEMINI_MODEL
RESPONSE_LANGUAGE = config.RESPONSE_LANGUAGE
TIMER_TICK_INTERVAL = config.TIMER_TICK_INTERVAL
SHOTS_FILE = config.SHOTS_FILE
SETTINGS_FILE = config.SETTINGS_FILE
