"""
Spellcasting rules: slot tables and the multiclass slot calculator.
"""

from .calculator import (
    SpellSlotCalculator,
    SpellSlotXML,
    build_power_meta,
    calculate_spell_slots,
    get_single_class_spell_slots,
    to_legacy_format,
    validate_class_info,
)
from .tables import PACT_MAGIC_PROGRESSION, SPELL_SLOT_PROGRESSION

__all__ = [
    "SpellSlotCalculator",
    "SpellSlotXML",
    "build_power_meta",
    "calculate_spell_slots",
    "get_single_class_spell_slots",
    "to_legacy_format",
    "validate_class_info",
    "PACT_MAGIC_PROGRESSION",
    "SPELL_SLOT_PROGRESSION",
]
