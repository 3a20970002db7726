"""
D&D Beyond JSON schema constants and lookup tables.

These map DDB's internal IDs and field names to the values the exporters
need. Based on community reverse-engineering of the v5 character-service
payload.
"""

# ---------------------------------------------------------------------------
# Ability score stat IDs
# ---------------------------------------------------------------------------

STAT_ID_MAP: dict[int, str] = {
    1: "strength",
    2: "dexterity",
    3: "constitution",
    4: "intelligence",
    5: "wisdom",
    6: "charisma",
}

ABILITY_ABBREVIATIONS: dict[str, str] = {
    "strength": "str",
    "dexterity": "dex",
    "constitution": "con",
    "intelligence": "int",
    "wisdom": "wis",
    "charisma": "cha",
}

# ---------------------------------------------------------------------------
# Alignment IDs
# ---------------------------------------------------------------------------

ALIGNMENT_MAP: dict[int, str] = {
    1: "Lawful Good",
    2: "Neutral Good",
    3: "Chaotic Good",
    4: "Lawful Neutral",
    5: "True Neutral",
    6: "Chaotic Neutral",
    7: "Lawful Evil",
    8: "Neutral Evil",
    9: "Chaotic Evil",
}

# ---------------------------------------------------------------------------
# Item filter types
# ---------------------------------------------------------------------------

FILTER_TYPE_WEAPON = "Weapon"
FILTER_TYPE_ARMOR = "Armor"

# Weapon properties that make a weapon awkward to represent in most formats
COMPLEX_WEAPON_PROPERTIES = frozenset({"Versatile", "Two-Handed", "Special"})

ITEM_FILTER_TYPE_MAP: dict[str, str] = {
    "Weapon": "weapon",
    "Armor": "equipment",
    "Shield": "equipment",
    "Potion": "consumable",
    "Scroll": "consumable",
    "Ammunition": "consumable",
    "Wondrous Item": "equipment",
    "Ring": "equipment",
    "Rod": "equipment",
    "Staff": "weapon",
    "Wand": "equipment",
    "Holy Symbol": "loot",
    "Adventuring Gear": "loot",
    "Tool": "tool",
    "Other Gear": "loot",
}

# ---------------------------------------------------------------------------
# Modifier types used in DDB's modifiers sections
# ---------------------------------------------------------------------------

MODIFIER_TYPE_BONUS = "bonus"

ABILITY_SCORE_SUBTYPES: dict[str, str] = {
    "strength-score": "strength",
    "dexterity-score": "dexterity",
    "constitution-score": "constitution",
    "intelligence-score": "intelligence",
    "wisdom-score": "wisdom",
    "charisma-score": "charisma",
}

SAVING_THROW_SUBTYPES: dict[str, str] = {
    "strength-saving-throws": "strength",
    "dexterity-saving-throws": "dexterity",
    "constitution-saving-throws": "constitution",
    "intelligence-saving-throws": "intelligence",
    "wisdom-saving-throws": "wisdom",
    "charisma-saving-throws": "charisma",
}

# Sections of the top-level ``modifiers`` object that hold character modifiers
MODIFIER_SECTIONS = ("race", "class", "background", "item", "feat", "condition")

# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------

# Skill display name -> (governing ability, Foundry key, Roll20 attribute stem)
SKILLS: dict[str, tuple[str, str, str]] = {
    "Acrobatics": ("dexterity", "acr", "acrobatics"),
    "Animal Handling": ("wisdom", "ani", "animal_handling"),
    "Arcana": ("intelligence", "arc", "arcana"),
    "Athletics": ("strength", "ath", "athletics"),
    "Deception": ("charisma", "dec", "deception"),
    "History": ("intelligence", "his", "history"),
    "Insight": ("wisdom", "ins", "insight"),
    "Intimidation": ("charisma", "inti", "intimidation"),
    "Investigation": ("intelligence", "inv", "investigation"),
    "Medicine": ("wisdom", "med", "medicine"),
    "Nature": ("intelligence", "nat", "nature"),
    "Perception": ("wisdom", "prc", "perception"),
    "Performance": ("charisma", "per", "performance"),
    "Persuasion": ("charisma", "pers", "persuasion"),
    "Religion": ("intelligence", "rel", "religion"),
    "Sleight of Hand": ("dexterity", "slt", "sleight_of_hand"),
    "Stealth": ("dexterity", "ste", "stealth"),
    "Survival": ("wisdom", "sur", "survival"),
}

# ---------------------------------------------------------------------------
# Class tables (keyed by canonical class name)
# ---------------------------------------------------------------------------

CLASS_HIT_DICE: dict[str, int] = {
    "barbarian": 12,
    "fighter": 10,
    "paladin": 10,
    "ranger": 10,
    "blood_hunter": 10,
    "sorcerer": 6,
    "wizard": 6,
}

DEFAULT_HIT_DIE = 8

CLASS_SPELLCASTING_ABILITY: dict[str, str] = {
    "wizard": "intelligence",
    "artificer": "intelligence",
    "cleric": "wisdom",
    "druid": "wisdom",
    "ranger": "wisdom",
    "bard": "charisma",
    "paladin": "charisma",
    "sorcerer": "charisma",
    "warlock": "charisma",
    "fighter": "intelligence",
    "rogue": "intelligence",
}

DEFAULT_SPELLCASTING_ABILITY = "intelligence"

# ---------------------------------------------------------------------------
# Size and progression
# ---------------------------------------------------------------------------

# DDB size name -> Foundry size code
SIZE_CODES: dict[str, str] = {
    "Tiny": "tiny",
    "Small": "sm",
    "Medium": "med",
    "Large": "lg",
    "Huge": "huge",
    "Gargantuan": "grg",
}

# Experience points needed to reach each level (index 0 is level 1)
XP_THRESHOLDS: tuple[int, ...] = (
    0, 300, 900, 2700, 6500, 14000, 23000, 34000, 48000, 64000,
    85000, 100000, 120000, 140000, 165000, 195000, 225000, 265000, 305000, 355000,
)

DEFAULT_WALK_SPEED = 30
DARKVISION_RANGE = 60

CURRENCY_KEYS = ("cp", "sp", "ep", "gp", "pp")
