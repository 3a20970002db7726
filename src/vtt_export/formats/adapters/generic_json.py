"""
Lossless JSON export.

Normalizes the character into readable sections and keeps the original
record under ``raw`` so nothing is lost. Intended for custom integrations.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ...importers.dndbeyond.reader import CharacterSheet
from ...importers.dndbeyond.schema import FILTER_TYPE_ARMOR, FILTER_TYPE_WEAPON, SKILLS, STAT_ID_MAP
from ...models import (
    SPELL_LEVELS,
    CompatibilityAnalysis,
    ConversionOptions,
    FormatCapability,
    FormatMetadata,
    Recommendation,
    SupportLevel,
)
from ...spellcasting.calculator import to_legacy_format
from ...spellcasting.tables import PACT_MAGIC_RECHARGE
from ..base import FormatAdapter

EXPORT_VERSION = "1.0.0"
EXPORT_SOURCE = "vtt-export"

GENERIC_FEATURES = (
    "abilities", "skills", "saving_throws", "spellcasting", "spell_slots", "weapons",
    "armor", "magic_items", "class_features", "racial_features", "feats", "homebrew_content",
)

PROFICIENCY_NAMES = {0: "none", 1: "proficient", 2: "expertise"}


def _camel_case(name: str) -> str:
    head, *rest = name.split()
    return head.lower() + "".join(word.capitalize() for word in rest)


class GenericJSONAdapter(FormatAdapter):
    """Exports every section of the character, plus the untouched source record."""

    def get_metadata(self) -> FormatMetadata:
        return FormatMetadata(
            id="generic-json",
            name="Generic JSON",
            description="Comprehensive JSON format preserving all character data",
            file_extension="json",
            mime_type="application/json",
            version=EXPORT_VERSION,
        )

    def get_supported_features(self) -> list[FormatCapability]:
        return [FormatCapability(feature=feature, support=SupportLevel.FULL) for feature in GENERIC_FEATURES]

    async def analyze_compatibility(self, character: CharacterSheet | dict[str, Any]) -> CompatibilityAnalysis:
        """The source record travels along unchanged, so nothing is ever lost."""
        return CompatibilityAnalysis(
            score=100,
            capabilities=self.get_supported_features(),
            recommendation=Recommendation.EXCELLENT,
            limitations=[],
            data_loss=0,
        )

    def build_document(self, sheet: CharacterSheet, options: ConversionOptions) -> dict[str, Any]:
        notes: list[str] = []
        document: dict[str, Any] = {
            "metadata": {
                "version": EXPORT_VERSION,
                "exportDate": datetime.now(timezone.utc).isoformat(),
                "source": EXPORT_SOURCE,
                "originalId": sheet.id,
            },
            "character": {
                "basic": self._basic(sheet),
                "abilities": self._abilities(sheet),
                "skills": self._skills(sheet),
                "combat": self._combat(sheet),
                "spellcasting": self._spellcasting(sheet, options, notes),
                "inventory": self._inventory(sheet),
                "features": {
                    "racial": sheet.racial_traits,
                    "class": sheet.class_features,
                    "background": sheet.background_features,
                    "feats": sheet.feats,
                },
                "traits": {
                    "size": sheet.size,
                    "senses": {"darkvision": sheet.darkvision},
                },
            },
            "raw": {
                "originalData": sheet.raw,
                "processingNotes": notes,
            },
        }
        return document

    def _basic(self, sheet: CharacterSheet) -> dict[str, Any]:
        return {
            "id": sheet.id,
            "name": sheet.name,
            "level": sheet.total_level,
            "experience": sheet.experience_points,
            "alignment": sheet.alignment or "Unknown",
            "race": sheet.race_name,
            "background": sheet.background_name,
            "classes": [
                {"name": info.name, "level": info.level, "subclass": info.subclass, "casterType": info.caster_type.value}
                for info in sheet.classes
            ],
        }

    def _abilities(self, sheet: CharacterSheet) -> dict[str, Any]:
        return {
            ability: {
                "score": sheet.ability_scores[ability].score,
                "modifier": sheet.ability_scores[ability].mod,
                "saveProficient": ability in sheet.saving_throw_proficiencies,
            }
            for ability in STAT_ID_MAP.values()
        }

    def _skills(self, sheet: CharacterSheet) -> dict[str, Any]:
        return {
            _camel_case(skill): {
                "ability": ability,
                "proficiency": PROFICIENCY_NAMES[sheet.skill_proficiencies[skill]],
                "modifier": sheet.skill_bonus(skill),
            }
            for skill, (ability, _, _) in SKILLS.items()
        }

    def _combat(self, sheet: CharacterSheet) -> dict[str, Any]:
        speeds = (sheet.race.get("weightSpeeds") or {}).get("normal") or {}
        hp = sheet.hit_points_max
        return {
            "armorClass": sheet.armor_class,
            "hitPoints": {"current": hp, "maximum": hp, "temporary": 0},
            "initiative": sheet.initiative,
            "speed": {
                "walk": sheet.speed,
                **{mode: speeds[mode] for mode in ("fly", "swim", "climb", "burrow") if speeds.get(mode)},
            },
            "proficiencyBonus": sheet.proficiency_bonus,
        }

    def _spellcasting(self, sheet: CharacterSheet, options: ConversionOptions, notes: list[str]) -> dict[str, Any]:
        result = self.calculator.calculate_spell_slots(sheet.classes)
        spellcasting: dict[str, Any] = {
            "ability": sheet.spellcasting_ability,
            "spellSaveDC": sheet.spell_save_dc,
            "spellAttackBonus": sheet.spell_attack_bonus,
            "slots": {
                f"level{level}": {"current": result.spell_slots[level], "maximum": result.spell_slots[level]}
                for level in SPELL_LEVELS
            },
            "spells": {
                "known": sheet.class_spells,
                "prepared": [spell for spell in sheet.class_spells if spell.get("prepared")],
                "always": sheet.race_spells,
            },
        }
        if result.pact_slot_count:
            spellcasting["pactMagic"] = {
                "level": result.pact_slot_level,
                "slots": result.pact_slot_count,
                "recharge": PACT_MAGIC_RECHARGE,
            }

        if options.include_debug_info:
            spellcasting["debug"] = {
                "casterBreakdown": result.caster_breakdown.model_dump(mode="json"),
                "calculation": result.debug_info.model_dump(mode="json"),
                "legacySlots": to_legacy_format(result.spell_slots),
            }
            notes.append(f"Spell slots calculated using {result.debug_info.calculation_method.value} rules")
        return spellcasting

    def _inventory(self, sheet: CharacterSheet) -> dict[str, Any]:
        weapons, armor, items = [], [], []
        for entry in sheet.inventory:
            filter_type = (entry.get("definition") or {}).get("filterType")
            if filter_type == FILTER_TYPE_WEAPON:
                weapons.append(entry)
            elif filter_type == FILTER_TYPE_ARMOR:
                armor.append(entry)
            else:
                items.append(entry)

        currencies = sheet.currencies
        return {
            "currency": {
                "copper": currencies["cp"],
                "silver": currencies["sp"],
                "electrum": currencies["ep"],
                "gold": currencies["gp"],
                "platinum": currencies["pp"],
            },
            "weapons": weapons,
            "armor": armor,
            "items": items,
        }
