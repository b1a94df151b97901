"""
Pytest configuration and shared fixtures for espresso journal tests.

This module MUST be loaded before main.py to set up test environment variables.
"""

import os
import tempfile
import shutil
import pytest

# Set test environment variables BEFORE main.py is imported
# This runs at import time, ensuring environment is set up early
os.environ["TEST_MODE"] = "true"

# Create a temporary directory for test data
test_data_dir = tempfile.mkdtemp(prefix="espresso_journal_test_")
os.environ["DATA_DIR"] = test_data_dir
os.environ["LOG_DIR"] = os.path.join(test_data_dir, "logs")
os.environ.pop("GEMINI_API_KEY", None)


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_data():
    """Clean up temporary test data directory after all tests complete."""
    yield
    if os.path.exists(test_data_dir):
        try:
            shutil.rmtree(test_data_dir)
        except (PermissionError, OSError):
            # If cleanup fails, it's not critical for tests
            pass


@pytest.fixture(autouse=True)
def _reset_in_memory_state():
    """Reset all in-memory singletons and on-disk data between tests."""
    import services.settings_service as _ss
    import services.gemini_service as _gs
    import services.journal_service as _js
    import services.brew_session as _bs
    import services.shot_timer as _st
    from config import SETTINGS_FILE, SHOTS_FILE

    _ss._settings_cache = None
    _gs.reset_gemini_client()
    _js.reset_journal()
    _bs.reset_brew_session()
    _st.reset_shot_timer()

    for path in (SETTINGS_FILE, SHOTS_FILE):
        if path.exists():
            path.unlink()

    yield
