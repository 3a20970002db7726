"""
Foundry VTT (dnd5e system) actor export.

Produces an actor document that can be imported through Foundry's
"Import Data" dialog. Features are exported as plain ``feat`` items; no
Active Effects are generated.
"""

from __future__ import annotations

from typing import Any

from shortuuid import random

from ...importers.dndbeyond.reader import CharacterSheet, is_magic_item, item_definition
from ...importers.dndbeyond.schema import (
    ABILITY_ABBREVIATIONS,
    ITEM_FILTER_TYPE_MAP,
    SIZE_CODES,
    SKILLS,
    XP_THRESHOLDS,
)
from ...models import (
    SPELL_LEVELS,
    ConversionOptions,
    FormatCapability,
    FormatMetadata,
    Impact,
    SupportLevel,
)
from ..base import FormatAdapter

FOUNDRY_ID_LENGTH = 16

DEFAULT_ACTOR_IMG = "icons/svg/mystery-man.svg"
DEFAULT_ITEM_IMG = "icons/svg/item-bag.svg"
SPELL_IMG = "icons/svg/book.svg"
FEATURE_IMG = "icons/svg/upgrade.svg"


def generate_id() -> str:
    """Foundry document ids are 16 alphanumeric characters."""
    return random(length=FOUNDRY_ID_LENGTH)


def _description(text: str | None) -> dict[str, str]:
    return {"value": text or "", "chat": "", "unidentified": ""}


def _item(name: str, item_type: str, img: str, system: dict[str, Any]) -> dict[str, Any]:
    return {
        "_id": generate_id(),
        "name": name,
        "type": item_type,
        "img": img,
        "system": system,
        "effects": [],
        "folder": None,
        "sort": 0,
        "ownership": {"default": 0},
        "flags": {},
    }


class FoundryVTTAdapter(FormatAdapter):
    """Converts characters to Foundry VTT dnd5e actor JSON."""

    def get_metadata(self) -> FormatMetadata:
        return FormatMetadata(
            id="foundry-vtt",
            name="Foundry VTT",
            description="JSON format for Foundry Virtual Tabletop D&D 5e system",
            file_extension="json",
            mime_type="application/json",
            version="4.0.0",
            documentation_url="https://foundryvtt.com/article/actors/",
            website="https://foundryvtt.com",
        )

    def get_supported_features(self) -> list[FormatCapability]:
        return [
            FormatCapability(feature="abilities", support=SupportLevel.FULL),
            FormatCapability(feature="skills", support=SupportLevel.FULL),
            FormatCapability(feature="saving_throws", support=SupportLevel.FULL),
            FormatCapability(feature="spellcasting", support=SupportLevel.FULL),
            FormatCapability(feature="spell_slots", support=SupportLevel.FULL),
            FormatCapability(feature="weapons", support=SupportLevel.FULL),
            FormatCapability(feature="armor", support=SupportLevel.FULL),
            FormatCapability(
                feature="magic_items",
                support=SupportLevel.PARTIAL,
                limitations="Complex magical effects may need manual configuration",
            ),
            FormatCapability(
                feature="class_features",
                support=SupportLevel.PARTIAL,
                limitations="Features converted as basic items, may need Active Effects setup",
            ),
            FormatCapability(
                feature="racial_features",
                support=SupportLevel.PARTIAL,
                limitations="Features converted as basic items, automation may be limited",
            ),
            FormatCapability(
                feature="feats",
                support=SupportLevel.PARTIAL,
                limitations="Feats converted as basic items, complex interactions may not work",
            ),
            FormatCapability(
                feature="homebrew_content",
                support=SupportLevel.PARTIAL,
                limitations="Homebrew items created but may lack system integration",
                impact=Impact.MEDIUM,
            ),
        ]

    def build_document(self, sheet: CharacterSheet, options: ConversionOptions) -> dict[str, Any]:
        return {
            "_id": generate_id(),
            "name": sheet.name,
            "type": "character",
            "img": sheet.avatar_url or DEFAULT_ACTOR_IMG,
            "system": {
                "abilities": self._abilities(sheet),
                "attributes": self._attributes(sheet),
                "details": self._details(sheet),
                "traits": self._traits(sheet),
                "currency": {key: sheet.currencies[key] for key in ("pp", "gp", "ep", "sp", "cp")},
                "skills": self._skills(sheet),
                "spells": self._spells(sheet),
                "bonuses": self._empty_bonuses(),
                "resources": {
                    slot: {"value": 0, "max": 0, "sr": False, "lr": True, "label": ""}
                    for slot in ("primary", "secondary", "tertiary")
                },
            },
            "items": self._items(sheet),
            "effects": [],
            "prototypeToken": self._prototype_token(sheet),
            "folder": None,
            "sort": 0,
            "ownership": {"default": 0},
            "flags": {
                "dnd5e": {},
                "ddb-importer": {
                    "source": "vtt-export",
                    "characterId": sheet.id,
                    "version": "1.0.0",
                },
            },
        }

    def generate_warnings(self, sheet: CharacterSheet) -> list[str]:
        warnings = []
        if sheet.class_features:
            warnings.append("Complex class features may require manual setup of Active Effects in Foundry VTT")
        if sheet.magic_items:
            warnings.append("Magic item effects may need manual configuration in Foundry VTT")
        if sheet.has_homebrew_content:
            warnings.append("Homebrew content may not have full system integration")
        return warnings

    # ------------------------------------------------------------------
    # System data
    # ------------------------------------------------------------------

    def _abilities(self, sheet: CharacterSheet) -> dict[str, Any]:
        return {
            abbreviation: {
                "value": sheet.ability_scores[ability].score,
                "proficient": 1 if ability in sheet.saving_throw_proficiencies else 0,
                "bonuses": {"check": "", "save": ""},
            }
            for ability, abbreviation in ABILITY_ABBREVIATIONS.items()
        }

    def _attributes(self, sheet: CharacterSheet) -> dict[str, Any]:
        hp = sheet.hit_points_max
        return {
            "ac": {"value": sheet.armor_class, "min": 0, "calc": "default", "formula": ""},
            "hp": {"value": hp, "min": 0, "max": hp, "temp": 0, "tempmax": 0},
            "init": {"value": 0, "bonus": sheet.initiative},
            "movement": {
                "burrow": 0, "climb": 0, "fly": 0, "swim": 0,
                "walk": sheet.speed, "units": "ft", "hover": False,
            },
            "senses": {
                "darkvision": sheet.darkvision, "blindsight": 0, "tremorsense": 0,
                "truesight": 0, "units": "ft", "special": "",
            },
            "spellcasting": ABILITY_ABBREVIATIONS[sheet.spellcasting_ability],
            "prof": sheet.proficiency_bonus,
        }

    def _details(self, sheet: CharacterSheet) -> dict[str, Any]:
        level = sheet.total_level
        primary = sheet.class_entries[0] if sheet.class_entries else {}
        return {
            "biography": {"value": self._biography(sheet), "public": ""},
            "alignment": sheet.alignment or "Neutral",
            "race": sheet.race_name,
            "background": sheet.background_name or "Unknown",
            "originalClass": (primary.get("definition") or {}).get("name") or "Unknown",
            "class": sheet.class_summary,
            "level": level,
            "xp": {
                "value": sheet.experience_points,
                "min": 0,
                "max": XP_THRESHOLDS[level] if level < len(XP_THRESHOLDS) else XP_THRESHOLDS[-1],
            },
        }

    def _traits(self, sheet: CharacterSheet) -> dict[str, Any]:
        def damage_trait() -> dict[str, Any]:
            return {"value": [], "bypasses": [], "custom": ""}

        return {
            "size": SIZE_CODES.get(sheet.size, "med"),
            "di": damage_trait(),
            "dr": damage_trait(),
            "dv": damage_trait(),
            "ci": {"value": [], "custom": ""},
            "languages": {"value": [], "custom": ""},
            "weaponProf": {"value": [], "custom": ""},
            "armorProf": {"value": [], "custom": ""},
            "toolProf": {"value": [], "custom": ""},
        }

    def _skills(self, sheet: CharacterSheet) -> dict[str, Any]:
        return {
            key: {
                "value": sheet.skill_proficiencies[skill],
                "ability": ABILITY_ABBREVIATIONS[ability],
                "bonuses": {"check": "", "passive": ""},
            }
            for skill, (ability, key, _) in SKILLS.items()
        }

    def _spells(self, sheet: CharacterSheet) -> dict[str, Any]:
        result = self.calculator.calculate_spell_slots(sheet.classes)
        spells: dict[str, Any] = {
            f"spell{level}": {"value": result.spell_slots[level], "max": result.spell_slots[level]}
            for level in SPELL_LEVELS
        }
        spells["pact"] = {
            "value": result.pact_slot_count,
            "max": result.pact_slot_count,
            "level": result.pact_slot_level,
        }
        ability = ABILITY_ABBREVIATIONS[sheet.spellcasting_ability]
        spells["spelldc"] = {"value": sheet.spell_save_dc, "ability": ability, "mod": 0}
        return spells

    @staticmethod
    def _empty_bonuses() -> dict[str, Any]:
        return {
            "mwak": {"attack": "", "damage": ""},
            "rwak": {"attack": "", "damage": ""},
            "msak": {"attack": "", "damage": ""},
            "rsak": {"attack": "", "damage": ""},
            "abilities": {"check": "", "save": "", "skill": ""},
            "spell": {"dc": ""},
        }

    @staticmethod
    def _biography(sheet: CharacterSheet) -> str:
        parts = []
        if sheet.race.get("fullName"):
            parts.append(f"<p><strong>Race:</strong> {sheet.race['fullName']}</p>")
        if sheet.background_name:
            parts.append(f"<p><strong>Background:</strong> {sheet.background_name}</p>")
        if sheet.class_entries:
            parts.append(f"<p><strong>Class:</strong> {sheet.class_summary}</p>")
        if sheet.backstory:
            parts.append(f"<p><strong>Backstory:</strong></p><p>{sheet.backstory}</p>")
        return "\n".join(parts)

    # ------------------------------------------------------------------
    # Embedded items
    # ------------------------------------------------------------------

    def _items(self, sheet: CharacterSheet) -> list[dict[str, Any]]:
        items = [self._inventory_item(entry) for entry in sheet.inventory]
        items.extend(self._spell_item(spell) for spell in sheet.class_spells)

        for entry in sheet.class_entries:
            class_name = (entry.get("definition") or {}).get("name") or "Class"
            for feature in entry.get("classFeatures") or []:
                items.append(self._feature_item(feature.get("definition") or {}, f"{class_name} Feature"))
        for trait in sheet.racial_traits:
            items.append(self._feature_item(trait.get("definition") or {}, "Racial Trait"))
        for feat in sheet.feats:
            items.append(self._feature_item(feat.get("definition") or {}, "Feat"))
        return items

    @staticmethod
    def _inventory_item(entry: dict[str, Any]) -> dict[str, Any]:
        definition = item_definition(entry)
        item_type = ITEM_FILTER_TYPE_MAP.get(definition.get("filterType"))
        if item_type is None:
            item_type = "equipment" if is_magic_item(entry) else "loot"

        return _item(
            definition.get("name") or "Unknown Item",
            item_type,
            definition.get("avatarUrl") or DEFAULT_ITEM_IMG,
            {
                "description": _description(definition.get("description")),
                "source": definition.get("sourceBook") or "",
                "quantity": entry.get("quantity") or 1,
                "weight": definition.get("weight") or 0,
                "price": {"value": definition.get("cost") or 0, "denomination": "gp"},
                "attunement": 1 if definition.get("canAttune") or definition.get("requiresAttunement") else 0,
                "equipped": bool(entry.get("equipped")),
                "rarity": (definition.get("rarity") or "common").lower(),
                "identified": True,
            },
        )

    @staticmethod
    def _spell_item(spell: dict[str, Any]) -> dict[str, Any]:
        definition = spell.get("definition") or {}
        return _item(
            definition.get("name") or "Unknown Spell",
            "spell",
            SPELL_IMG,
            {
                "description": _description(definition.get("description")),
                "source": definition.get("source") or "",
                "activation": {"type": "action", "cost": 1, "condition": ""},
                "level": definition.get("level") or 0,
                "school": (definition.get("school") or "evocation").lower(),
                "components": {
                    "vocal": False, "somatic": False, "material": False,
                    "ritual": bool(definition.get("ritual")),
                    "concentration": bool(definition.get("concentration")),
                },
                "preparation": {"mode": "prepared", "prepared": bool(spell.get("prepared"))},
                "scaling": {"mode": "none", "formula": ""},
            },
        )

    @staticmethod
    def _feature_item(definition: dict[str, Any], source: str) -> dict[str, Any]:
        return _item(
            definition.get("name") or "Unknown Feature",
            "feat",
            FEATURE_IMG,
            {
                "description": _description(definition.get("description")),
                "source": source,
                "activation": {"type": "", "cost": 0, "condition": ""},
                "requirements": "",
                "recharge": {"value": None, "charged": True},
            },
        )

    def _prototype_token(self, sheet: CharacterSheet) -> dict[str, Any]:
        return {
            "name": sheet.name,
            "displayName": 20,
            "width": 1,
            "height": 1,
            "texture": {
                "src": sheet.avatar_url or DEFAULT_ACTOR_IMG,
                "scaleX": 1, "scaleY": 1, "offsetX": 0, "offsetY": 0, "rotation": 0,
            },
            "sight": {
                "enabled": sheet.darkvision > 0,
                "range": sheet.darkvision,
                "angle": 360,
                "visionMode": "darkvision" if sheet.darkvision else "basic",
            },
            "detectionModes": [],
            "flags": {},
            "randomImg": False,
        }
