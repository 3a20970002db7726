"""
Spell slot calculation under the 5e multiclassing rules.

Each class entry is reduced to an effective caster level (full casters count
their whole level, half casters half, third casters a third, warlocks
nothing); the sum indexes the single shared progression table. Warlock pact
slots are looked up separately from the warlock's own level.

The calculator never raises on bad class data: unknown classes, missing
archetypes and out-of-range levels degrade to a non-casting or clamped entry.
``validate_class_info`` reports those conditions as advisory warnings.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ..models import (
    MAX_CHARACTER_LEVEL,
    SPELL_LEVELS,
    SPELLCASTING_ARCHETYPES,
    CalculationMethod,
    CasterBreakdown,
    CasterType,
    ClassContribution,
    ClassInfo,
    ClassName,
    SpellSlotDebugInfo,
    SpellSlotResult,
    empty_slot_map,
)
from .tables import PACT_MAGIC_PROGRESSION, SPELL_SLOT_PROGRESSION

logger = logging.getLogger("vtt-export.spellcasting")


@dataclass
class SpellSlotXML:
    """Serialized Fantasy Grounds spell slot fragments."""
    spell_slots_xml: str
    pact_magic_xml: str
    combined_xml: str


def slots_for_caster_level(caster_level: int) -> dict[int, int]:
    """Look up the shared progression table. Levels are clamped to 0-20."""
    row = SPELL_SLOT_PROGRESSION[max(0, min(MAX_CHARACTER_LEVEL, caster_level))]
    return {level: row[level - 1] for level in SPELL_LEVELS}


def pact_slots_for_warlock_level(warlock_level: int) -> dict[int, int]:
    """Pact magic slots for a warlock level, as a 1-9 map with one entry set."""
    slots = empty_slot_map()
    clamped = min(MAX_CHARACTER_LEVEL, warlock_level)
    if clamped in PACT_MAGIC_PROGRESSION:
        slot_level, slot_count = PACT_MAGIC_PROGRESSION[clamped]
        slots[slot_level] = slot_count
    return slots


def effective_caster_level(info: ClassInfo) -> int:
    """Level this class contributes towards the shared slot table.

    Artificers round up; every other half caster rounds down.
    """
    level = info.clamped_level
    caster_type = info.caster_type

    if caster_type is CasterType.FULL:
        return level
    if caster_type is CasterType.HALF:
        if info.class_name is ClassName.ARTIFICER:
            return (level + 1) // 2
        return level // 2
    if caster_type is CasterType.THIRD:
        return level // 3
    return 0


def _coerce_class_info(entry: ClassInfo | Mapping[str, Any]) -> ClassInfo | None:
    if isinstance(entry, ClassInfo):
        return entry
    try:
        return ClassInfo.model_validate(entry)
    except ValidationError as exc:
        logger.warning("Ignoring malformed class entry %r: %s", entry, exc)
        return None


class SpellSlotCalculator:
    """Computes shared and pact spell slots for a list of class entries.

    Args:
        debug: Log the per-class breakdown of every calculation.
    """

    def __init__(self, debug: bool = False) -> None:
        self.debug = debug

    def calculate_spell_slots(self, classes: Iterable[ClassInfo | Mapping[str, Any]]) -> SpellSlotResult:
        infos = [info for info in map(_coerce_class_info, classes) if info is not None]

        contributions: list[ClassContribution] = []
        breakdown = CasterBreakdown()
        warlock_level = 0

        for info in infos:
            caster_type = info.caster_type
            effective = effective_caster_level(info)
            contributes = 0 if caster_type is CasterType.PACT else effective

            contributions.append(
                ClassContribution(
                    class_name=info.class_name,
                    level=info.clamped_level,
                    caster_type=caster_type,
                    effective_level=effective,
                    contributes_to_caster_level=contributes,
                )
            )

            if caster_type is CasterType.FULL:
                breakdown.full_caster_levels += info.clamped_level
            elif caster_type is CasterType.HALF:
                breakdown.half_caster_levels += info.clamped_level
            elif caster_type is CasterType.THIRD:
                breakdown.third_caster_levels += info.clamped_level
            elif caster_type is CasterType.PACT:
                warlock_level = max(warlock_level, info.clamped_level)

        casting = [
            c for c in contributions
            if c.caster_type is not CasterType.NONE and c.level > 0
        ]
        has_pact = any(c.caster_type is CasterType.PACT for c in casting)
        shared = [c for c in casting if c.caster_type is not CasterType.PACT]

        total = sum(c.contributes_to_caster_level for c in contributions)
        breakdown.total_caster_level = max(0, min(MAX_CHARACTER_LEVEL, total))
        breakdown.caster_class_count = len(casting)
        breakdown.is_multiclass = len(casting) > 1

        if not casting:
            method = CalculationMethod.NONE
        elif has_pact and not shared:
            method = CalculationMethod.PACT_ONLY
        elif len(casting) == 1:
            method = CalculationMethod.SINGLE_CLASS
        else:
            method = CalculationMethod.MULTICLASS

        result = SpellSlotResult(
            spell_slots=slots_for_caster_level(breakdown.total_caster_level),
            pact_magic_slots=pact_slots_for_warlock_level(warlock_level) if has_pact else empty_slot_map(),
            caster_breakdown=breakdown,
            debug_info=SpellSlotDebugInfo(contributions=contributions, calculation_method=method),
        )

        if self.debug:
            logger.debug(
                "Spell slots for %s: method=%s caster_level=%d slots=%s pact=%s",
                [f"{c.class_name.value}{c.level}" for c in contributions],
                method.value,
                breakdown.total_caster_level,
                summarize_slots(result.spell_slots),
                summarize_slots(result.pact_magic_slots),
            )

        return result

    def generate_spell_slots_xml(self, result: SpellSlotResult) -> SpellSlotXML:
        """Serialize a result into Fantasy Grounds ``powermeta`` fragments."""
        regular = "".join(
            ET.tostring(el, encoding="unicode") for el in _slot_elements("spellslots", result.spell_slots)
        )
        pact = "".join(
            ET.tostring(el, encoding="unicode") for el in _slot_elements("pactmagicslots", result.pact_magic_slots)
        )
        combined = ET.tostring(build_power_meta(result), encoding="unicode")
        return SpellSlotXML(spell_slots_xml=regular, pact_magic_xml=pact, combined_xml=combined)


def _slot_elements(prefix: str, slots: Mapping[int, int]) -> list[ET.Element]:
    elements = []
    for level in SPELL_LEVELS:
        node = ET.Element(f"{prefix}{level}")
        max_node = ET.SubElement(node, "max", type="number")
        max_node.text = str(slots[level])
        elements.append(node)
    return elements


def build_power_meta(result: SpellSlotResult) -> ET.Element:
    """Build the ``<powermeta>`` element: pact slots first, then regular slots."""
    power_meta = ET.Element("powermeta")
    power_meta.extend(_slot_elements("pactmagicslots", result.pact_magic_slots))
    power_meta.extend(_slot_elements("spellslots", result.spell_slots))
    return power_meta


def summarize_slots(slots: Mapping[int, int]) -> str:
    parts = [f"{level}:{count}" for level, count in sorted(slots.items()) if count > 0]
    return ", ".join(parts) or "none"


def to_legacy_format(slots: Mapping[int, int]) -> list[dict[str, int]]:
    """Convert a slot map to the ``[{"level": n, "slots": k}, ...]`` list form."""
    return [{"level": level, "slots": slots.get(level, 0)} for level in SPELL_LEVELS]


def calculate_spell_slots(classes: Iterable[ClassInfo | Mapping[str, Any]]) -> SpellSlotResult:
    """Calculate spell slots with a default calculator."""
    return SpellSlotCalculator().calculate_spell_slots(classes)


def get_single_class_spell_slots(class_name: str, level: int, subclass: str | None = None) -> dict[int, int]:
    """Shared-pool slots of a character with a single class at ``level``."""
    info = ClassInfo(name=class_name, level=level, subclass=subclass)
    return calculate_spell_slots([info]).spell_slots


def validate_class_info(classes: Iterable[ClassInfo | Mapping[str, Any]]) -> list[str]:
    """Collect non-fatal warnings about class entries.

    Nothing reported here stops a calculation; entries flagged as assumed
    non-casters are treated exactly that way by the calculator.
    """
    warnings: list[str] = []

    for index, entry in enumerate(classes):
        info = _coerce_class_info(entry)
        if info is None:
            warnings.append(f"Class at index {index} is malformed and was ignored")
            continue

        label = info.name or f"at index {index}"

        if not info.name:
            warnings.append(f"Class at index {index} missing name")
        elif info.class_name is ClassName.UNKNOWN:
            warnings.append(f"Class {info.name} is not recognized; assuming non-caster")

        if info.level < 1 or info.level > MAX_CHARACTER_LEVEL:
            warnings.append(f"Class {label} has invalid level: {info.level}")

        archetypes = SPELLCASTING_ARCHETYPES.get(info.class_name)
        if archetypes is not None:
            if info.subclass is None and info.level >= 3:
                warnings.append(f"Class {label} at level {info.level} has no subclass; assuming non-caster")
            elif info.subclass is not None and info.subclass not in archetypes:
                warnings.append(
                    f"Subclass {info.subclass} of {label} grants no spellcasting; assuming non-caster"
                )

    return warnings
