"""
Character input from external platforms.

Currently supports:
- D&D Beyond (local JSON export, or an already-fetched record dictionary)
"""

from .dndbeyond import CharacterSheet, read_character_file

__all__ = [
    "CharacterSheet",
    "read_character_file",
]
