"""
Read-only access to a D&D Beyond v5 character record.

``CharacterSheet`` wraps the raw JSON dictionary and answers the questions the
rules engine and the format adapters ask of it. It is the only place where raw
class entries are turned into ``ClassInfo`` values; everything downstream works
with canonical class names.

The record is never mutated. Missing or mistyped sections read as empty, so
partial records degrade gracefully instead of raising.
"""

from __future__ import annotations

import math
from functools import cached_property
from typing import Any

from vtt_export.models import AbilityScore, CasterType, ClassInfo, ability_modifier

from .schema import (
    ABILITY_SCORE_SUBTYPES,
    ALIGNMENT_MAP,
    CLASS_HIT_DICE,
    CLASS_SPELLCASTING_ABILITY,
    COMPLEX_WEAPON_PROPERTIES,
    CURRENCY_KEYS,
    DARKVISION_RANGE,
    DEFAULT_HIT_DIE,
    DEFAULT_SPELLCASTING_ABILITY,
    DEFAULT_WALK_SPEED,
    FILTER_TYPE_ARMOR,
    FILTER_TYPE_WEAPON,
    MODIFIER_SECTIONS,
    MODIFIER_TYPE_BONUS,
    SAVING_THROW_SUBTYPES,
    SKILLS,
    STAT_ID_MAP,
)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def item_definition(item: dict) -> dict:
    """Return an inventory entry's ``definition`` block (empty when absent)."""
    return _as_dict(_as_dict(item).get("definition"))


def is_magic_item(item: dict) -> bool:
    definition = item_definition(item)
    rarity = definition.get("rarity")
    return bool(definition.get("magic")) or (bool(rarity) and rarity != "Common")


def is_complex_weapon(item: dict) -> bool:
    """Magic, ranged, or carrying a Versatile/Two-Handed/Special property."""
    definition = item_definition(item)
    if is_magic_item(item) or definition.get("attackType") == "Ranged":
        return True
    property_names = {_as_dict(p).get("name") for p in _as_list(definition.get("properties"))}
    return bool(property_names & COMPLEX_WEAPON_PROPERTIES)


class CharacterSheet:
    """Accessor over a raw character record.

    Args:
        data: The character JSON as a dictionary. A ``{"data": {...}}``
            envelope is unwrapped.
    """

    def __init__(self, data: dict[str, Any]):
        data = _as_dict(data)
        if isinstance(data.get("data"), dict):
            data = data["data"]
        self._data = data

    @classmethod
    def wrap(cls, character: "CharacterSheet | dict[str, Any]") -> "CharacterSheet":
        """Return ``character`` unchanged if it is already a sheet."""
        if isinstance(character, CharacterSheet):
            return character
        return cls(character)

    def __repr__(self) -> str:
        return f"CharacterSheet(id={self.id!r}, name={self.name!r})"

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> Any:
        return self._data.get("id")

    @property
    def name(self) -> str:
        return self._data.get("name") or ""

    @property
    def alignment(self) -> str | None:
        return ALIGNMENT_MAP.get(self._data.get("alignmentId"))

    @property
    def experience_points(self) -> int:
        return self._data.get("currentXp") or 0

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    @property
    def class_entries(self) -> list[dict]:
        return [_as_dict(entry) for entry in _as_list(self._data.get("classes"))]

    @cached_property
    def classes(self) -> list[ClassInfo]:
        """Canonical class entries, in record order."""
        infos = []
        for entry in self.class_entries:
            subclass = _as_str(_as_dict(entry.get("subclassDefinition")).get("name")) or None
            level = entry.get("level")
            infos.append(
                ClassInfo(
                    name=_as_str(_as_dict(entry.get("definition")).get("name")),
                    level=level if isinstance(level, int) and not isinstance(level, bool) else 0,
                    subclass=subclass,
                )
            )
        return infos

    @property
    def primary_class(self) -> ClassInfo | None:
        """The first listed class, which D&D Beyond treats as the starting class."""
        return self.classes[0] if self.classes else None

    @property
    def total_level(self) -> int:
        return sum(info.clamped_level for info in self.classes)

    @property
    def spellcasting_classes(self) -> list[ClassInfo]:
        return [info for info in self.classes if info.caster_type is not CasterType.NONE]

    @property
    def has_pact_magic(self) -> bool:
        return any(info.caster_type is CasterType.PACT for info in self.classes)

    @property
    def class_features(self) -> list[dict]:
        features = []
        for entry in self.class_entries:
            features.extend(_as_dict(f) for f in _as_list(entry.get("classFeatures")))
        return features

    # ------------------------------------------------------------------
    # Abilities and proficiencies
    # ------------------------------------------------------------------

    @property
    def stats(self) -> list[dict]:
        return [_as_dict(s) for s in _as_list(self._data.get("stats"))]

    def iter_modifiers(self):
        """Yield every modifier from the per-source modifier sections."""
        modifiers = _as_dict(self._data.get("modifiers"))
        for section in MODIFIER_SECTIONS:
            for modifier in _as_list(modifiers.get(section)):
                yield _as_dict(modifier)

    @cached_property
    def ability_scores(self) -> dict[str, AbilityScore]:
        """Final ability scores: base + bonus + modifier bonuses, unless overridden."""
        base_stats = {s.get("id"): s.get("value") for s in self.stats}
        bonus_stats = {
            s.get("id"): s.get("value") or 0
            for s in map(_as_dict, _as_list(self._data.get("bonusStats")))
        }
        override_stats = {
            s.get("id"): s.get("value")
            for s in map(_as_dict, _as_list(self._data.get("overrideStats")))
            if s.get("value") is not None
        }

        bonuses = {ability: 0 for ability in STAT_ID_MAP.values()}
        for modifier in self.iter_modifiers():
            if modifier.get("type") == MODIFIER_TYPE_BONUS and modifier.get("subType") in ABILITY_SCORE_SUBTYPES:
                bonuses[ABILITY_SCORE_SUBTYPES[modifier["subType"]]] += modifier.get("value") or 0

        scores = {}
        for stat_id, ability in STAT_ID_MAP.items():
            if stat_id in override_stats:
                score = override_stats[stat_id]
            else:
                base = base_stats.get(stat_id)
                score = (base if base is not None else 10) + bonus_stats.get(stat_id, 0) + bonuses[ability]
            scores[ability] = AbilityScore(score=max(1, min(30, score)))
        return scores

    def ability_modifier(self, ability: str) -> int:
        score = self.ability_scores.get(ability)
        return score.mod if score else ability_modifier(10)

    @property
    def proficiency_bonus(self) -> int:
        return math.ceil(self.total_level / 4) + 1

    @property
    def skill_modifiers(self) -> list[dict]:
        return [_as_dict(m) for m in _as_list(_as_dict(self._data.get("modifiers")).get("skill"))]

    @property
    def saving_throw_modifiers(self) -> list[dict]:
        return [_as_dict(m) for m in _as_list(_as_dict(self._data.get("modifiers")).get("savingThrow"))]

    @cached_property
    def skill_proficiencies(self) -> dict[str, int]:
        """Skill name -> 0 (none), 1 (proficient) or 2 (expertise)."""
        levels = {skill: 0 for skill in SKILLS}
        for modifier in self.skill_modifiers:
            skill = modifier.get("friendlySubtypeName")
            if skill not in levels:
                continue
            level = 2 if (modifier.get("value") or 0) >= 2 else 1
            levels[skill] = max(levels[skill], level)
        return levels

    @cached_property
    def saving_throw_proficiencies(self) -> set[str]:
        return {
            SAVING_THROW_SUBTYPES[m["subType"]]
            for m in self.saving_throw_modifiers
            if m.get("subType") in SAVING_THROW_SUBTYPES
        }

    def skill_bonus(self, skill: str) -> int:
        ability = SKILLS[skill][0]
        return self.ability_modifier(ability) + self.skill_proficiencies.get(skill, 0) * self.proficiency_bonus

    def saving_throw_bonus(self, ability: str) -> int:
        proficient = ability in self.saving_throw_proficiencies
        return self.ability_modifier(ability) + (self.proficiency_bonus if proficient else 0)

    # ------------------------------------------------------------------
    # Combat
    # ------------------------------------------------------------------

    @property
    def hit_die(self) -> int:
        primary = self.primary_class
        if primary is None:
            return DEFAULT_HIT_DIE
        return CLASS_HIT_DICE.get(primary.class_name.value, DEFAULT_HIT_DIE)

    @property
    def hit_points_max(self) -> int:
        """Max HP from the primary class hit die: full die at 1st level, average after."""
        con = self.ability_modifier("constitution")
        level = max(1, self.total_level)
        first = max(1, self.hit_die + con)
        later = max(0, (level - 1) * (self.hit_die // 2 + 1 + con))
        return first + later

    @property
    def armor_class(self) -> int:
        return 10 + self.ability_modifier("dexterity")

    @property
    def initiative(self) -> int:
        return self.ability_modifier("dexterity")

    # ------------------------------------------------------------------
    # Race and background
    # ------------------------------------------------------------------

    @property
    def race(self) -> dict:
        return _as_dict(self._data.get("race"))

    @property
    def race_name(self) -> str:
        return self.race.get("fullName") or self.race.get("baseName") or "Unknown"

    @property
    def size(self) -> str:
        return self.race.get("size") or "Medium"

    @property
    def racial_traits(self) -> list[dict]:
        return [_as_dict(t) for t in _as_list(self.race.get("racialTraits"))]

    @property
    def speed(self) -> int:
        walk = _as_dict(_as_dict(self.race.get("weightSpeeds")).get("normal")).get("walk")
        return walk if isinstance(walk, int) else DEFAULT_WALK_SPEED

    @property
    def darkvision(self) -> int:
        for trait in self.racial_traits:
            if "darkvision" in (_as_dict(trait.get("definition")).get("name") or "").lower():
                return DARKVISION_RANGE
        return 0

    @property
    def background(self) -> dict:
        return _as_dict(self._data.get("background"))

    @property
    def background_name(self) -> str | None:
        return _as_dict(self.background.get("definition")).get("name")

    @property
    def background_features(self) -> list[dict]:
        listed = _as_list(self.background.get("backgroundFeatures"))
        if listed:
            return [_as_dict(f) for f in listed]
        definition = _as_dict(self.background.get("definition"))
        if definition.get("featureName"):
            return [{"name": definition["featureName"], "description": definition.get("featureDescription") or ""}]
        return []

    @property
    def feats(self) -> list[dict]:
        return [_as_dict(f) for f in _as_list(self._data.get("feats"))]

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    @property
    def inventory(self) -> list[dict]:
        return [_as_dict(i) for i in _as_list(self._data.get("inventory"))]

    @property
    def weapons(self) -> list[dict]:
        return [i for i in self.inventory if item_definition(i).get("filterType") == FILTER_TYPE_WEAPON]

    @property
    def armor(self) -> list[dict]:
        return [i for i in self.inventory if item_definition(i).get("filterType") == FILTER_TYPE_ARMOR]

    @property
    def magic_items(self) -> list[dict]:
        return [i for i in self.inventory if is_magic_item(i)]

    @property
    def currencies(self) -> dict[str, int]:
        currencies = _as_dict(self._data.get("currencies"))
        return {key: currencies.get(key) or 0 for key in CURRENCY_KEYS}

    # ------------------------------------------------------------------
    # Spells
    # ------------------------------------------------------------------

    @property
    def class_spells(self) -> list[dict]:
        return [_as_dict(s) for s in _as_list(_as_dict(self._data.get("spells")).get("class"))]

    @property
    def race_spells(self) -> list[dict]:
        return [_as_dict(s) for s in _as_list(_as_dict(self._data.get("spells")).get("race"))]

    @property
    def has_spells(self) -> bool:
        return bool(self.class_spells or self.race_spells)

    @property
    def spellcasting_ability(self) -> str:
        """Casting ability of the first spellcasting class (primary class otherwise)."""
        caster = next(iter(self.spellcasting_classes), None) or self.primary_class
        if caster is None:
            return DEFAULT_SPELLCASTING_ABILITY
        return CLASS_SPELLCASTING_ABILITY.get(caster.class_name.value, DEFAULT_SPELLCASTING_ABILITY)

    @property
    def spell_save_dc(self) -> int:
        return 8 + self.proficiency_bonus + self.ability_modifier(self.spellcasting_ability)

    @property
    def spell_attack_bonus(self) -> int:
        return self.proficiency_bonus + self.ability_modifier(self.spellcasting_ability)

    # ------------------------------------------------------------------
    # Homebrew
    # ------------------------------------------------------------------

    @property
    def has_homebrew_content(self) -> bool:
        if any(_as_dict(e.get("definition")).get("isHomebrew") for e in self.class_entries):
            return True
        if self.race.get("isHomebrew"):
            return True
        return any(item_definition(i).get("isHomebrew") for i in self.inventory)

    def is_valid_for_conversion(self) -> bool:
        """An id, a name and at least one stat."""
        return bool(self.id) and bool(self.name) and bool(self.stats)

    # ------------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------------

    @property
    def class_summary(self) -> str:
        """e.g. ``"Wizard 5 / Warlock 2"``, or ``"Unknown"`` without classes."""
        parts = [
            f"{_as_dict(entry.get('definition')).get('name') or 'Unknown'} {entry.get('level') or 0}"
            for entry in self.class_entries
        ]
        return " / ".join(parts) or "Unknown"

    @property
    def backstory(self) -> str:
        return _as_dict(self._data.get("notes")).get("backstory") or ""

    @property
    def avatar_url(self) -> str | None:
        return self._data.get("avatarUrl") or (_as_dict(self._data.get("decorations")).get("avatarUrl"))
