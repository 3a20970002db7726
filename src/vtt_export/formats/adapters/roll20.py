"""
Roll20 5th Edition OGL character sheet export.

Roll20 sheets are flat attribute maps, so everything that is not a number
ends up as descriptive text in the bio, features or equipment fields.
"""

from __future__ import annotations

from typing import Any

from ...importers.dndbeyond.reader import CharacterSheet, item_definition
from ...importers.dndbeyond.schema import SKILLS, STAT_ID_MAP
from ...models import (
    SPELL_LEVELS,
    ConversionOptions,
    FormatCapability,
    FormatMetadata,
    Impact,
    SupportLevel,
)
from ..base import FormatAdapter

PACT_SLOTS_MERGED_WARNING = "Pact magic slots are merged into the regular slot totals on the Roll20 sheet"


def _feature_entries(sheet: CharacterSheet) -> list[tuple[str, str]]:
    entries = []
    for feature in sheet.class_features:
        definition = feature.get("definition") or {}
        entries.append((definition.get("name") or "Unknown Feature", definition.get("description") or ""))
    for trait in sheet.racial_traits:
        definition = trait.get("definition") or {}
        entries.append((definition.get("name") or "Unknown Trait", definition.get("description") or ""))
    for feat in sheet.feats:
        definition = feat.get("definition") or {}
        entries.append((definition.get("name") or "Unknown Feat", definition.get("description") or ""))
    return entries


class Roll20Adapter(FormatAdapter):
    """Converts characters to a Roll20 5e OGL attribute map."""

    def get_metadata(self) -> FormatMetadata:
        return FormatMetadata(
            id="roll20",
            name="Roll20",
            description="JSON format for Roll20 D&D 5e character sheets",
            file_extension="json",
            mime_type="application/json",
            version="5e-shaped",
            documentation_url="https://wiki.roll20.net/5th_Edition_OGL_by_Roll20",
            website="https://roll20.net",
        )

    def get_supported_features(self) -> list[FormatCapability]:
        def partial(feature: str, limitations: str, impact: Impact | None = None) -> FormatCapability:
            return FormatCapability(
                feature=feature, support=SupportLevel.PARTIAL, limitations=limitations, impact=impact
            )

        return [
            FormatCapability(feature="abilities", support=SupportLevel.FULL),
            FormatCapability(feature="skills", support=SupportLevel.FULL),
            FormatCapability(feature="saving_throws", support=SupportLevel.FULL),
            partial("spellcasting", "Basic spell data only, complex spell effects not supported"),
            FormatCapability(feature="spell_slots", support=SupportLevel.FULL),
            partial("weapons", "Basic weapon stats, complex properties may be lost"),
            partial("armor", "Basic armor stats, special properties may be simplified"),
            partial("magic_items", "Magic items imported as equipment, effects not automated"),
            partial("class_features", "Features listed in bio, no automation"),
            partial("racial_features", "Features listed in bio, no automation"),
            partial("feats", "Feats listed in bio, no automation"),
            partial("homebrew_content", "Homebrew content imported as basic data", Impact.MEDIUM),
        ]

    def build_document(self, sheet: CharacterSheet, options: ConversionOptions) -> dict[str, Any]:
        hp = sheet.hit_points_max
        character: dict[str, Any] = {
            "name": sheet.name,
            "avatar": sheet.avatar_url or "",
            "bio": self._bio(sheet),
            "gmnotes": "",
            "archived": False,
            "inplayerjournals": "",
            "controlledby": "",
            "character_name": sheet.name,
            "race": sheet.race.get("fullName") or sheet.race.get("baseName") or "",
            "background": sheet.background_name or "",
            "alignment": sheet.alignment or "",
            "experience_points": sheet.experience_points,
            "level": sheet.total_level,
            "class_display": sheet.class_summary if sheet.class_entries else "",
        }
        character.update(self._abilities(sheet))
        character.update(self._skills(sheet))
        character.update(
            {
                "armor_class": sheet.armor_class,
                "hit_point_max": hp,
                "hit_points": hp,
                "speed": sheet.speed,
            }
        )
        character.update(self._spellcasting(sheet))
        character.update(
            {
                "pb": sheet.proficiency_bonus,
                "initiative_bonus": sheet.initiative,
                "passive_wisdom": 10 + sheet.skill_bonus("Perception"),
            }
        )
        character.update(sheet.currencies)
        character["features_and_traits"] = "\n\n".join(
            f"{name}: {description or 'No description available.'}" for name, description in _feature_entries(sheet)
        )
        character["equipment"] = ", ".join(self._equipment_line(entry) for entry in sheet.inventory)
        return character

    def generate_warnings(self, sheet: CharacterSheet) -> list[str]:
        warnings = ["Roll20 format has limited automation - most features will be descriptive text only"]
        if len(sheet.spellcasting_classes) > 1 or sheet.has_pact_magic:
            warnings.append("Complex spellcasting features may need manual setup in Roll20")
        if sheet.magic_items:
            warnings.append("Magic item effects will not be automated in Roll20")
        if sheet.has_pact_magic:
            warnings.append(PACT_SLOTS_MERGED_WARNING)
        return warnings

    def _abilities(self, sheet: CharacterSheet) -> dict[str, int]:
        attributes = {}
        for ability in STAT_ID_MAP.values():
            score = sheet.ability_scores[ability]
            proficient = ability in sheet.saving_throw_proficiencies
            attributes[ability] = score.score
            attributes[f"{ability}_mod"] = score.mod
            attributes[f"{ability}_save_prof"] = 1 if proficient else 0
            attributes[f"{ability}_save_mod"] = sheet.saving_throw_bonus(ability)
        return attributes

    def _skills(self, sheet: CharacterSheet) -> dict[str, int]:
        attributes = {}
        for skill, (_, _, stem) in SKILLS.items():
            attributes[f"{stem}_prof"] = sheet.skill_proficiencies[skill]
            attributes[f"{stem}_mod"] = sheet.skill_bonus(skill)
        return attributes

    def _spellcasting(self, sheet: CharacterSheet) -> dict[str, Any]:
        result = self.calculator.calculate_spell_slots(sheet.classes)
        attributes: dict[str, Any] = {
            "spellcasting_ability": sheet.spellcasting_ability,
            "spell_save_dc": sheet.spell_save_dc,
            "spell_attack_bonus": sheet.spell_attack_bonus,
        }
        # The OGL sheet has a single slot pool, so pact slots are added at their level.
        for level in SPELL_LEVELS:
            total = result.spell_slots[level] + result.pact_magic_slots[level]
            attributes[f"lvl{level}_slots_total"] = total
            attributes[f"lvl{level}_slots_expended"] = 0
        return attributes

    @staticmethod
    def _bio(sheet: CharacterSheet) -> str:
        parts = []
        race = sheet.race.get("fullName") or sheet.race.get("baseName")
        if race:
            parts.append(f"**Race:** {race}")
        if sheet.background_name:
            parts.append(f"**Background:** {sheet.background_name}")
        if sheet.class_entries:
            parts.append(f"**Class:** {sheet.class_summary}")

        features = _feature_entries(sheet)
        if features:
            parts.append("**Features:**")
            parts.extend(f"• {name}" for name, _ in features)

        if sheet.backstory:
            parts.append("**Backstory:**")
            parts.append(sheet.backstory)
        return "\n".join(parts)

    @staticmethod
    def _equipment_line(entry: dict[str, Any]) -> str:
        name = item_definition(entry).get("name") or "Unknown Item"
        quantity = entry.get("quantity") or 1
        return f"{name} ({quantity})" if quantity > 1 else name
