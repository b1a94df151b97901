"""File utility functions for the espresso journal server."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_json(filepath: Path, data: Any, indent: int = 2) -> None:
    """Write JSON data to a file atomically to prevent corruption.

    Writes to a temporary file first, then renames it to the target path.
    This ensures the file is never left in a partially-written state.

    Args:
        filepath: Path to the target file
        data: Data to write (must be JSON-serializable)
        indent: Number of spaces for JSON indentation

    Raises:
        Exception: If the write operation fails
    """
    # Serialize first so a bad payload never touches the disk
    json_str = json.dumps(data, indent=indent, ensure_ascii=False)

    filepath.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path = tempfile.mkstemp(
        dir=filepath.parent,
        prefix=f'.{filepath.name}.',
        suffix='.tmp'
    )
    try:
        with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
            f.write(json_str)
        os.replace(temp_path, filepath)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            # Temp file may already be gone
            pass
        raise
