"""
Load D&D Beyond character exports for the command line.
"""

from __future__ import annotations

import json
from pathlib import Path

from vtt_export.errors import CharacterFileError

REQUIRED_KEYS = ("stats", "classes")


def read_character_file(file_path: str | Path) -> dict:
    """Load a character record, unwrapping the API's ``{"data": ...}`` envelope.

    Raises:
        CharacterFileError: The file is missing or unreadable, is not JSON,
            or does not hold a character record.
    """
    path = Path(file_path)
    if not path.is_file():
        raise CharacterFileError(f"Character file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CharacterFileError(f"Invalid JSON in character file: {e}") from None
    except OSError as e:
        raise CharacterFileError(f"Failed to read character file: {e}") from None

    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    if not isinstance(data, dict):
        raise CharacterFileError(f"Invalid character file: expected JSON object, got {type(data).__name__}")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise CharacterFileError(f"Not a D&D Beyond character export: missing required fields ({', '.join(missing)})")
    return data
