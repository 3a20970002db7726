"""
Compatibility analysis between a character and a target export format.

The engine extracts a fixed list of feature rows from a character, weights
each present row by category and complexity, and credits it according to the
format's declared support. It is stateless; one instance can serve any number
of concurrent analyses.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from .importers.dndbeyond.reader import CharacterSheet, is_complex_weapon, item_definition
from .models import (
    CharacterComplexity,
    CompatibilityAnalysis,
    Complexity,
    FeatureAnalysis,
    FeatureCategory,
    FormatCapability,
    Recommendation,
    SupportLevel,
)

logger = logging.getLogger("vtt-export.compatibility")

CATEGORY_WEIGHTS: dict[FeatureCategory, int] = {
    FeatureCategory.BASIC: 10,
    FeatureCategory.SPELLS: 15,
    FeatureCategory.EQUIPMENT: 10,
    FeatureCategory.FEATURES: 12,
    FeatureCategory.CUSTOM: 8,
}

COMPLEXITY_MULTIPLIERS: dict[Complexity, float] = {
    Complexity.SIMPLE: 1.0,
    Complexity.MODERATE: 1.2,
    Complexity.COMPLEX: 1.5,
}

SUPPORT_CREDIT: dict[SupportLevel, float] = {
    SupportLevel.FULL: 1.0,
    SupportLevel.PARTIAL: 0.6,
    SupportLevel.NONE: 0.0,
}

# Lower bound of each recommendation band, best first
RECOMMENDATION_BANDS: tuple[tuple[int, Recommendation], ...] = (
    (90, Recommendation.EXCELLENT),
    (75, Recommendation.GOOD),
    (60, Recommendation.FAIR),
)

MULTICLASS_LIMITATION = "Multiclass character may have reduced feature support"
HOMEBREW_LIMITATION = "Homebrew content may not convert properly"
COMPLEX_SPELLCASTING_LIMITATION = "Complex spellcasting may not be fully supported"


def round_half_up(value: float) -> int:
    """Round .5 upwards, unlike Python's banker's ``round``."""
    return math.floor(value + 0.5)


def feature_weight(feature: FeatureAnalysis) -> float:
    return CATEGORY_WEIGHTS[feature.category] * COMPLEXITY_MULTIPLIERS[feature.complexity]


def recommendation_for(score: int) -> Recommendation:
    for threshold, recommendation in RECOMMENDATION_BANDS:
        if score >= threshold:
            return recommendation
    return Recommendation.POOR


def _capability_index(capabilities: Sequence[FormatCapability]) -> dict[str, FormatCapability]:
    index: dict[str, FormatCapability] = {}
    for capability in capabilities:
        index.setdefault(capability.feature, capability)
    return index


class CompatibilityEngine:
    """Scores how much of a character survives conversion to a format."""

    def analyze_character_complexity(self, character: CharacterSheet | dict[str, Any]) -> CharacterComplexity:
        sheet = CharacterSheet.wrap(character)
        spellcasting = sheet.spellcasting_classes
        background = sheet.background

        total_features = (
            len(sheet.class_features)
            + len(sheet.racial_traits)
            + len(sheet.background_features)
            + len(sheet.feats)
        )

        return CharacterComplexity(
            has_multiclass=len(sheet.class_entries) > 1,
            has_custom_background=bool(
                background.get("isHomebrew")
                or (background.get("definition") or {}).get("isHomebrew")
            ),
            has_homebrew_content=sheet.has_homebrew_content,
            has_custom_feats=any((feat.get("definition") or {}).get("isHomebrew") for feat in sheet.feats),
            spellcaster_levels=sum(info.clamped_level for info in spellcasting),
            has_ritual_casting=any((spell.get("definition") or {}).get("ritual") for spell in sheet.class_spells),
            has_pact_magic=sheet.has_pact_magic,
            has_multiple_spellcasting_classes=len(spellcasting) > 1,
            has_magic_items=bool(sheet.magic_items),
            has_custom_items=any(
                item_definition(item).get("isHomebrew") or not item_definition(item).get("id")
                for item in sheet.inventory
            ),
            has_complex_weapons=any(is_complex_weapon(item) for item in sheet.inventory),
            total_features=total_features,
            has_racial_features=bool(sheet.racial_traits),
            has_class_features=bool(sheet.class_features),
            has_background_features=bool(sheet.background_features),
            has_feat_features=bool(sheet.feats),
        )

    def analyze_features(self, character: CharacterSheet | dict[str, Any]) -> list[FeatureAnalysis]:
        """Build the twelve feature rows, in fixed order."""
        sheet = CharacterSheet.wrap(character)
        has_spells = sheet.has_spells
        has_pact = sheet.has_pact_magic

        if not has_spells:
            spellcasting_complexity = Complexity.SIMPLE
        elif len(sheet.spellcasting_classes) > 1 or has_pact:
            spellcasting_complexity = Complexity.COMPLEX
        else:
            spellcasting_complexity = Complexity.MODERATE

        weapons = sheet.weapons
        if any(is_complex_weapon(weapon) for weapon in weapons):
            weapon_complexity = Complexity.COMPLEX
        elif len(weapons) > 3:
            weapon_complexity = Complexity.MODERATE
        else:
            weapon_complexity = Complexity.SIMPLE

        rows = [
            (FeatureCategory.BASIC, "abilities", bool(sheet.stats), Complexity.SIMPLE),
            (FeatureCategory.BASIC, "skills", bool(sheet.skill_modifiers), Complexity.SIMPLE),
            (FeatureCategory.BASIC, "saving_throws", bool(sheet.saving_throw_modifiers), Complexity.SIMPLE),
            (FeatureCategory.SPELLS, "spellcasting", has_spells, spellcasting_complexity),
            (
                FeatureCategory.SPELLS,
                "spell_slots",
                has_spells,
                Complexity.COMPLEX if has_pact else Complexity.MODERATE,
            ),
            (FeatureCategory.EQUIPMENT, "weapons", bool(weapons), weapon_complexity),
            (FeatureCategory.EQUIPMENT, "armor", bool(sheet.armor), Complexity.MODERATE),
            (FeatureCategory.EQUIPMENT, "magic_items", bool(sheet.magic_items), Complexity.COMPLEX),
            (FeatureCategory.FEATURES, "class_features", bool(sheet.class_features), Complexity.MODERATE),
            (FeatureCategory.FEATURES, "racial_features", bool(sheet.racial_traits), Complexity.MODERATE),
            (FeatureCategory.FEATURES, "feats", bool(sheet.feats), Complexity.MODERATE),
            (FeatureCategory.CUSTOM, "homebrew_content", sheet.has_homebrew_content, Complexity.COMPLEX),
        ]

        return [
            FeatureAnalysis(category=category, feature=feature, present=present, complexity=complexity)
            for category, feature, present, complexity in rows
        ]

    def calculate_compatibility_score(
        self,
        features: Sequence[FeatureAnalysis],
        capabilities: Sequence[FormatCapability],
    ) -> int:
        """Weighted share of present features the format supports, 0-100.

        A feature the format does not list earns nothing. With no present
        features the score is 100.
        """
        index = _capability_index(capabilities)
        total_weight = 0.0
        supported_weight = 0.0

        for feature in features:
            if not feature.present:
                continue
            weight = feature_weight(feature)
            total_weight += weight
            capability = index.get(feature.feature)
            if capability is not None:
                supported_weight += weight * SUPPORT_CREDIT[capability.support]

        if total_weight == 0:
            return 100
        return round_half_up(supported_weight / total_weight * 100)

    def calculate_data_loss(
        self,
        features: Sequence[FeatureAnalysis],
        capabilities: Sequence[FormatCapability],
    ) -> int:
        """Unweighted percentage of present features with no support at all."""
        index = _capability_index(capabilities)
        present = [feature for feature in features if feature.present]
        if not present:
            return 0

        lost = 0
        for feature in present:
            capability = index.get(feature.feature)
            if capability is None or capability.support is SupportLevel.NONE:
                lost += 1
        return round_half_up(lost / len(present) * 100)

    def generate_limitations(
        self,
        features: Sequence[FeatureAnalysis],
        capabilities: Sequence[FormatCapability],
        complexity: CharacterComplexity,
    ) -> list[str]:
        present = {feature.feature for feature in features if feature.present}
        limitations: list[str] = []

        for capability in capabilities:
            if capability.feature not in present:
                continue
            if capability.support is SupportLevel.NONE:
                limitations.append(f"{capability.feature.replace('_', ' ')} not supported")
            elif capability.support is SupportLevel.PARTIAL and capability.limitations:
                limitations.append(capability.limitations)

        if complexity.has_multiclass:
            limitations.append(MULTICLASS_LIMITATION)
        if complexity.has_homebrew_content:
            limitations.append(HOMEBREW_LIMITATION)
        if complexity.has_pact_magic and complexity.has_multiple_spellcasting_classes:
            limitations.append(COMPLEX_SPELLCASTING_LIMITATION)

        return limitations

    def generate_compatibility_analysis(
        self,
        character: CharacterSheet | dict[str, Any],
        capabilities: Sequence[FormatCapability],
    ) -> CompatibilityAnalysis:
        sheet = CharacterSheet.wrap(character)
        features = self.analyze_features(sheet)
        complexity = self.analyze_character_complexity(sheet)
        score = self.calculate_compatibility_score(features, capabilities)

        analysis = CompatibilityAnalysis(
            score=score,
            capabilities=list(capabilities),
            recommendation=recommendation_for(score),
            limitations=self.generate_limitations(features, capabilities, complexity),
            data_loss=self.calculate_data_loss(features, capabilities),
        )
        logger.debug(
            "Compatibility for %r: score=%d data_loss=%d limitations=%d",
            sheet.name, analysis.score, analysis.data_loss, len(analysis.limitations),
        )
        return analysis
