"""
Fantasy Grounds Unity/Classic character XML export.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from ...importers.dndbeyond.reader import CharacterSheet, item_definition
from ...importers.dndbeyond.schema import SKILLS
from ...models import (
    ConversionOptions,
    FormatCapability,
    FormatMetadata,
    Impact,
    SupportLevel,
)
from ...spellcasting.calculator import build_power_meta
from ..base import FormatAdapter

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
ROOT_VERSION = "4.1"
ROOT_DATAVERSION = "20210302"


def _text(parent: ET.Element, tag: str, value: object, value_type: str = "string") -> ET.Element:
    element = ET.SubElement(parent, tag, type=value_type)
    element.text = str(value)
    return element


def _list_entry(parent: ET.Element, index: int) -> ET.Element:
    """FG lists name their children ``id-00001``, ``id-00002``..."""
    return ET.SubElement(parent, f"id-{index:05d}")


class FantasyGroundsAdapter(FormatAdapter):
    """Converts characters to Fantasy Grounds ``<root><character>`` XML."""

    def get_metadata(self) -> FormatMetadata:
        return FormatMetadata(
            id="fantasy-grounds",
            name="Fantasy Grounds",
            description="XML format for Fantasy Grounds Unity and Classic",
            file_extension="xml",
            mime_type="application/xml",
            version="Unity/Classic",
            documentation_url="https://www.fantasygrounds.com/home/home.php",
            website="https://www.fantasygrounds.com",
        )

    def get_supported_features(self) -> list[FormatCapability]:
        full = [
            "abilities", "skills", "saving_throws", "spellcasting", "spell_slots",
            "weapons", "armor", "magic_items", "class_features", "racial_features", "feats",
        ]
        capabilities = [FormatCapability(feature=feature, support=SupportLevel.FULL) for feature in full]
        capabilities.append(
            FormatCapability(
                feature="homebrew_content",
                support=SupportLevel.PARTIAL,
                limitations="Homebrew content may need manual review",
                impact=Impact.LOW,
            )
        )
        return capabilities

    def get_conversion_options(self) -> dict[str, object]:
        return {"indent": "  "}

    def build_document(self, sheet: CharacterSheet, options: ConversionOptions) -> ET.Element:
        root = ET.Element("root", version=ROOT_VERSION, dataversion=ROOT_DATAVERSION)
        character = ET.SubElement(root, "character")

        _text(character, "name", sheet.name)
        _text(character, "race", sheet.race_name)
        _text(character, "classes", sheet.class_summary)
        _text(character, "background", sheet.background_name or "")
        _text(character, "alignment", sheet.alignment or "")
        _text(character, "level", sheet.total_level, "number")
        _text(character, "exp", sheet.experience_points, "number")

        self._abilities(character, sheet)
        self._skills(character, sheet)
        self._combat(character, sheet)
        self._spells(character, sheet)
        self._inventory(character, sheet)
        self._features(character, sheet)
        return root

    def serialize(self, document: ET.Element, options: ConversionOptions) -> str:
        indent = options.format_options.get("indent", "  ")
        if isinstance(indent, int):
            indent = " " * indent
        ET.indent(document, space=indent)
        return f"{XML_DECLARATION}\n{ET.tostring(document, encoding='unicode')}"

    def generate_warnings(self, sheet: CharacterSheet) -> list[str]:
        warnings = []
        if sheet.has_homebrew_content:
            warnings.append("Homebrew content may require manual review in Fantasy Grounds")
        if len(sheet.spellcasting_classes) > 1 or sheet.has_pact_magic:
            warnings.append(
                "Complex multiclass spellcasting has been validated but please verify spell slot calculations"
            )
        return warnings

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _abilities(self, character: ET.Element, sheet: CharacterSheet) -> None:
        abilities = ET.SubElement(character, "abilities")
        for ability, score in sheet.ability_scores.items():
            node = ET.SubElement(abilities, ability)
            _text(node, "score", score.score, "number")
            _text(node, "bonus", score.mod, "number")
            _text(node, "save", sheet.saving_throw_bonus(ability), "number")
            _text(node, "saveprof", 1 if ability in sheet.saving_throw_proficiencies else 0, "number")

    def _skills(self, character: ET.Element, sheet: CharacterSheet) -> None:
        skills = ET.SubElement(character, "skilllist")
        for index, (skill, (ability, _, _)) in enumerate(SKILLS.items(), start=1):
            node = _list_entry(skills, index)
            _text(node, "name", skill)
            _text(node, "stat", ability)
            _text(node, "prof", sheet.skill_proficiencies[skill], "number")
            _text(node, "total", sheet.skill_bonus(skill), "number")

    def _combat(self, character: ET.Element, sheet: CharacterSheet) -> None:
        hp = ET.SubElement(character, "hp")
        _text(hp, "total", sheet.hit_points_max, "number")
        _text(hp, "wounds", 0, "number")

        defenses = ET.SubElement(character, "defenses")
        ac = ET.SubElement(defenses, "ac")
        _text(ac, "total", sheet.armor_class, "number")

        _text(character, "initiative", sheet.initiative, "number")
        _text(character, "speed", sheet.speed, "number")
        _text(character, "profbonus", sheet.proficiency_bonus, "number")

        if sheet.darkvision:
            senses = f"Darkvision {sheet.darkvision} ft."
            _text(character, "senses", senses)

    def _spells(self, character: ET.Element, sheet: CharacterSheet) -> None:
        result = self.calculator.calculate_spell_slots(sheet.classes)
        character.append(build_power_meta(result))

        spellset = ET.SubElement(character, "spellset")
        ET.SubElement(spellset, "spellcasting_ability").text = sheet.spellcasting_ability
        _text(spellset, "dc", sheet.spell_save_dc, "number")
        _text(spellset, "attack", sheet.spell_attack_bonus, "number")

        spells = ET.SubElement(spellset, "spells")
        for index, spell in enumerate(sheet.class_spells + sheet.race_spells, start=1):
            definition = spell.get("definition") or {}
            node = _list_entry(spells, index)
            _text(node, "name", definition.get("name") or "")
            _text(node, "level", definition.get("level") or 0, "number")
            _text(node, "school", definition.get("school") or "")
            _text(node, "prepared", 1 if spell.get("prepared") else 0, "number")

    def _inventory(self, character: ET.Element, sheet: CharacterSheet) -> None:
        inventory = ET.SubElement(character, "inventorylist")
        for index, entry in enumerate(sheet.inventory, start=1):
            definition = item_definition(entry)
            node = _list_entry(inventory, index)
            _text(node, "name", definition.get("name") or "")
            _text(node, "type", definition.get("filterType") or "")
            _text(node, "count", entry.get("quantity") or 1, "number")
            _text(node, "carried", 2 if entry.get("equipped") else 1, "number")
            _text(node, "weight", definition.get("weight") or 0, "number")
            _text(node, "rarity", definition.get("rarity") or "Common")
            if definition.get("description"):
                _text(node, "description", definition["description"], "formattedtext")

        coins = ET.SubElement(character, "coins")
        for index, (denomination, amount) in enumerate(sheet.currencies.items(), start=1):
            node = ET.SubElement(coins, f"slot{index}")
            _text(node, "name", denomination.upper())
            _text(node, "amount", amount, "number")

    def _features(self, character: ET.Element, sheet: CharacterSheet) -> None:
        sections = (
            ("featurelist", sheet.class_features),
            ("traitlist", sheet.racial_traits),
            ("featlist", sheet.feats),
        )
        for tag, entries in sections:
            listing = ET.SubElement(character, tag)
            for index, entry in enumerate(entries, start=1):
                definition = entry.get("definition") or entry
                node = _list_entry(listing, index)
                _text(node, "name", definition.get("name") or "")
                _text(node, "text", definition.get("description") or "", "formattedtext")
