"""
Data models for the character export core.

Everything here is a value object: built fresh for each request and never
mutated afterwards. Class and subclass names are canonicalized once, when a
``ClassInfo`` is constructed, so the rules engine never compares raw strings.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ConversionFailure

SPELL_LEVELS: tuple[int, ...] = tuple(range(1, 10))
MAX_CHARACTER_LEVEL = 20


# ---------------------------------------------------------------------------
# Ability scores
# ---------------------------------------------------------------------------

def ability_modifier(score: int) -> int:
    """Return the 5e ability modifier, ``floor((score - 10) / 2)``."""
    return (score - 10) // 2


class AbilityScore(BaseModel):
    """D&D ability score with modifiers."""
    score: int = Field(ge=1, le=30, description="Raw ability score")

    @property
    def mod(self) -> int:
        """Calculate ability modifier."""
        return ability_modifier(self.score)


# ---------------------------------------------------------------------------
# Class canonicalization
# ---------------------------------------------------------------------------

class ClassName(str, Enum):
    """Known character classes. Anything else canonicalizes to UNKNOWN."""
    ARTIFICER = "artificer"
    BARBARIAN = "barbarian"
    BARD = "bard"
    BLOOD_HUNTER = "blood_hunter"
    CLERIC = "cleric"
    DRUID = "druid"
    FIGHTER = "fighter"
    MONK = "monk"
    PALADIN = "paladin"
    RANGER = "ranger"
    ROGUE = "rogue"
    SORCERER = "sorcerer"
    WARLOCK = "warlock"
    WIZARD = "wizard"
    UNKNOWN = "unknown"


class CasterType(str, Enum):
    """Shape of a class's spellcasting progression."""
    FULL = "full"
    HALF = "half"
    THIRD = "third"
    PACT = "pact"
    NONE = "none"


# Base progression per class. Fighter and rogue only cast through an archetype.
CLASS_CASTER_TYPES: dict[ClassName, CasterType] = {
    ClassName.BARD: CasterType.FULL,
    ClassName.CLERIC: CasterType.FULL,
    ClassName.DRUID: CasterType.FULL,
    ClassName.SORCERER: CasterType.FULL,
    ClassName.WIZARD: CasterType.FULL,
    ClassName.PALADIN: CasterType.HALF,
    ClassName.RANGER: CasterType.HALF,
    ClassName.ARTIFICER: CasterType.HALF,
    ClassName.FIGHTER: CasterType.THIRD,
    ClassName.ROGUE: CasterType.THIRD,
    ClassName.WARLOCK: CasterType.PACT,
}

SPELLCASTING_ARCHETYPES: dict[ClassName, frozenset[str]] = {
    ClassName.FIGHTER: frozenset({"eldritch_knight"}),
    ClassName.ROGUE: frozenset({"arcane_trickster"}),
}

SPELLLESS_RANGER_SUBCLASSES: frozenset[str] = frozenset({"spellless", "beast_master_spellless"})

_SEPARATORS = re.compile(r"[\s\-]+")


def _normalize_token(value: str) -> str:
    return _SEPARATORS.sub("_", value.strip().lower())


def canonicalize_class_name(raw: str | None) -> ClassName:
    """Map a source class name (any case, spaces or hyphens) onto ``ClassName``."""
    if not raw:
        return ClassName.UNKNOWN
    try:
        return ClassName(_normalize_token(raw))
    except ValueError:
        return ClassName.UNKNOWN


def normalize_subclass(raw: str | None) -> str | None:
    """Lowercase a subclass name and join its words with underscores."""
    if raw is None:
        return None
    token = _normalize_token(str(raw))
    return token or None


def classify_caster_type(class_name: ClassName, subclass: str | None) -> CasterType:
    """Derive the caster type of one class entry.

    Unknown classes, fighters and rogues without a spellcasting archetype,
    and spellless rangers all come out as ``CasterType.NONE``.
    """
    caster_type = CLASS_CASTER_TYPES.get(class_name, CasterType.NONE)

    if caster_type is CasterType.THIRD:
        archetypes = SPELLCASTING_ARCHETYPES.get(class_name, frozenset())
        if subclass not in archetypes:
            return CasterType.NONE

    if class_name is ClassName.RANGER and subclass in SPELLLESS_RANGER_SUBCLASSES:
        return CasterType.NONE

    return caster_type


class ClassInfo(BaseModel):
    """One class entry of a (possibly multiclassed) character."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Class name as given by the source, case-insensitive")
    level: int = Field(default=1, description="Class level; values outside 1-20 are clamped when calculating")
    subclass: str | None = Field(default=None, description="Subclass, normalized to lower_underscore form")

    @field_validator("subclass", mode="before")
    @classmethod
    def _normalize_subclass(cls, value: Any) -> str | None:
        return normalize_subclass(value)

    @property
    def class_name(self) -> ClassName:
        return canonicalize_class_name(self.name)

    @property
    def clamped_level(self) -> int:
        return max(0, min(MAX_CHARACTER_LEVEL, self.level))

    @property
    def caster_type(self) -> CasterType:
        return classify_caster_type(self.class_name, self.subclass)


# ---------------------------------------------------------------------------
# Spell slot results
# ---------------------------------------------------------------------------

def empty_slot_map() -> dict[int, int]:
    return {level: 0 for level in SPELL_LEVELS}


class CalculationMethod(str, Enum):
    SINGLE_CLASS = "single-class"
    MULTICLASS = "multiclass"
    PACT_ONLY = "pact-only"
    NONE = "none"


class ClassContribution(BaseModel):
    """How much one class adds to the shared caster level."""
    class_name: ClassName
    level: int
    caster_type: CasterType
    effective_level: int = Field(ge=0, description="Level used to index the slot table for this class")
    contributes_to_caster_level: int = Field(ge=0)


class CasterBreakdown(BaseModel):
    full_caster_levels: int = 0
    half_caster_levels: int = 0
    third_caster_levels: int = 0
    total_caster_level: int = Field(default=0, ge=0, le=MAX_CHARACTER_LEVEL)
    caster_class_count: int = 0
    is_multiclass: bool = False


class SpellSlotDebugInfo(BaseModel):
    contributions: list[ClassContribution] = Field(default_factory=list)
    calculation_method: CalculationMethod = CalculationMethod.NONE


class SpellSlotResult(BaseModel):
    """Output of the spell slot calculator.

    Both maps are keyed by spell level 1-9. The pact map holds at most one
    non-zero entry, at the warlock's current pact slot level.
    """
    spell_slots: dict[int, int] = Field(default_factory=empty_slot_map)
    pact_magic_slots: dict[int, int] = Field(default_factory=empty_slot_map)
    caster_breakdown: CasterBreakdown = Field(default_factory=CasterBreakdown)
    debug_info: SpellSlotDebugInfo = Field(default_factory=SpellSlotDebugInfo)

    @model_validator(mode="after")
    def _check_slot_maps(self) -> "SpellSlotResult":
        for slots in (self.spell_slots, self.pact_magic_slots):
            if set(slots) != set(SPELL_LEVELS):
                raise ValueError("slot maps must be keyed by spell levels 1-9")
            if any(count < 0 for count in slots.values()):
                raise ValueError("slot counts cannot be negative")
        return self

    @property
    def total_slots(self) -> int:
        return sum(self.spell_slots.values())

    @property
    def pact_slot_level(self) -> int:
        """Spell level of the pact slots, or 0 without pact magic."""
        for level in SPELL_LEVELS:
            if self.pact_magic_slots[level]:
                return level
        return 0

    @property
    def pact_slot_count(self) -> int:
        return sum(self.pact_magic_slots.values())


# ---------------------------------------------------------------------------
# Compatibility
# ---------------------------------------------------------------------------

class FeatureCategory(str, Enum):
    BASIC = "basic"
    SPELLS = "spells"
    EQUIPMENT = "equipment"
    FEATURES = "features"
    CUSTOM = "custom"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class SupportLevel(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Recommendation(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class FeatureAnalysis(BaseModel):
    """Whether a character has a capability and how hard it is to represent."""
    category: FeatureCategory
    feature: str
    present: bool
    complexity: Complexity


class FormatCapability(BaseModel):
    """A target format's declared support for one feature."""
    feature: str
    support: SupportLevel
    limitations: str | None = None
    impact: Impact | None = None


class CompatibilityAnalysis(BaseModel):
    score: int = Field(ge=0, le=100, description="Weighted compatibility score")
    capabilities: list[FormatCapability] = Field(default_factory=list)
    recommendation: Recommendation
    limitations: list[str] = Field(default_factory=list)
    data_loss: int = Field(ge=0, le=100, description="Percent of present features with no support")


class CharacterComplexity(BaseModel):
    """Complexity profile of a character, used for advisory limitations."""
    has_multiclass: bool = False
    has_custom_background: bool = False
    has_homebrew_content: bool = False
    has_custom_feats: bool = False

    spellcaster_levels: int = 0
    has_ritual_casting: bool = False
    has_pact_magic: bool = False
    has_multiple_spellcasting_classes: bool = False

    has_magic_items: bool = False
    has_custom_items: bool = False
    has_complex_weapons: bool = False

    total_features: int = 0
    has_racial_features: bool = False
    has_class_features: bool = False
    has_background_features: bool = False
    has_feat_features: bool = False


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

class FormatMetadata(BaseModel):
    id: str
    name: str
    description: str
    file_extension: str
    mime_type: str
    version: str
    documentation_url: str | None = None
    website: str | None = None


class ConversionOptions(BaseModel):
    include_debug_info: bool = False
    target_version: str | None = None
    format_options: dict[str, Any] = Field(default_factory=dict)


class ConversionPerformance(BaseModel):
    conversion_time: int = Field(ge=0, description="Milliseconds spent converting")
    data_size: int = Field(ge=0, description="Length of the serialized document")


class ConversionResult(BaseModel):
    """Outcome of one conversion. Failures are data, never exceptions."""
    success: bool
    data: str | dict[str, Any] | None = None
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)
    performance: ConversionPerformance | None = None
    failure: ConversionFailure | None = None
