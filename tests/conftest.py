"""
Pytest configuration and fixtures for vtt-export tests.
"""

import copy
import json
import sys
from pathlib import Path
import pytest

# Add src directory to Python path to allow importing vtt_export
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

SAMPLE_PATH = Path(__file__).parent / "fixtures" / "ddb_character_sample.json"


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def _sample_record():
    with open(SAMPLE_PATH, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def ddb_sample(_sample_record):
    """Wizard 5 / Warlock 2 sample character. Each test gets its own copy."""
    return copy.deepcopy(_sample_record)


@pytest.fixture
def sample_path():
    return SAMPLE_PATH


@pytest.fixture
def fighter_record():
    """Single-class level 4 fighter with no spells, magic items or feats."""
    return {
        "id": 1111,
        "name": "Brom Ironfist",
        "alignmentId": 4,
        "currentXp": 2700,
        "stats": [
            {"id": 1, "value": 16},
            {"id": 2, "value": 12},
            {"id": 3, "value": 14},
            {"id": 4, "value": 10},
            {"id": 5, "value": 11},
            {"id": 6, "value": 8},
        ],
        "modifiers": {
            "savingThrow": [
                {"type": "proficiency", "subType": "strength-saving-throws"},
                {"type": "proficiency", "subType": "constitution-saving-throws"},
            ],
            "skill": [
                {"type": "proficiency", "friendlySubtypeName": "Athletics", "value": 1},
            ],
        },
        "classes": [
            {"level": 4, "definition": {"name": "Fighter"}, "subclassDefinition": {"name": "Champion"}},
        ],
        "race": {"fullName": "Mountain Dwarf", "baseName": "Dwarf", "size": "Medium",
                 "weightSpeeds": {"normal": {"walk": 25}}},
        "inventory": [
            {"quantity": 1, "equipped": True,
             "definition": {"id": 2001, "name": "Chain Mail", "filterType": "Armor", "rarity": "Common"}},
        ],
        "currencies": {"gp": 12},
    }
