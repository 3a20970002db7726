"""
vtt-export - convert D&D Beyond characters for virtual tabletops.
"""

from .compatibility import CompatibilityEngine
from .formats import FormatAdapter, FormatAdapterRegistry, create_default_registry
from .importers import CharacterSheet, read_character_file
from .models import ClassInfo, ConversionOptions, ConversionResult, SpellSlotResult
from .spellcasting import SpellSlotCalculator, calculate_spell_slots

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("vtt-export")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "CharacterSheet",
    "ClassInfo",
    "CompatibilityEngine",
    "ConversionOptions",
    "ConversionResult",
    "FormatAdapter",
    "FormatAdapterRegistry",
    "SpellSlotCalculator",
    "SpellSlotResult",
    "calculate_spell_slots",
    "create_default_registry",
    "read_character_file",
]
