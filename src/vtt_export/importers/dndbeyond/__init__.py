"""
D&D Beyond v5 character records.
"""

from .files import read_character_file
from .reader import CharacterSheet

__all__ = ["CharacterSheet", "read_character_file"]
