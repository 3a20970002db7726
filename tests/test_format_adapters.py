"""Tests for the built-in format adapters."""

import json
import xml.etree.ElementTree as ET

import pytest

from vtt_export.formats import (
    FantasyGroundsAdapter,
    FormatAdapter,
    FoundryVTTAdapter,
    GenericJSONAdapter,
    Roll20Adapter,
)
from vtt_export.formats.adapters.roll20 import PACT_SLOTS_MERGED_WARNING
from vtt_export.importers.dndbeyond import CharacterSheet
from vtt_export.models import (
    ConversionOptions,
    FormatCapability,
    FormatMetadata,
    Recommendation,
    SupportLevel,
)

pytestmark = pytest.mark.anyio

ALL_ADAPTERS = [FoundryVTTAdapter, FantasyGroundsAdapter, Roll20Adapter, GenericJSONAdapter]


def parse_fg(data):
    """Parse Fantasy Grounds output, skipping the XML declaration line."""
    declaration, body = data.split("\n", 1)
    assert declaration == '<?xml version="1.0" encoding="UTF-8"?>'
    return ET.fromstring(body)


async def convert_to_json(adapter, record, options=None):
    result = await adapter.convert(record, options)
    assert result.success, result.error
    return json.loads(result.data)


async def convert_fg(record):
    result = await FantasyGroundsAdapter().convert(record)
    assert result.success, result.error
    root = parse_fg(result.data)
    assert root.tag == "root"
    assert root.get("version") == "4.1"
    return root.find("character")


class BrokenFoundryAdapter(FoundryVTTAdapter):
    """Foundry adapter whose document builder raises a chosen exception."""

    def __init__(self, error):
        super().__init__()
        self.error = error

    def build_document(self, sheet, options):
        raise self.error


class TestAdapterContract:
    """Behavior shared by every adapter."""

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_capabilities_are_unique(self, adapter_class):
        """No adapter declares a feature twice."""
        features = [c.feature for c in adapter_class().get_supported_features()]
        assert len(features) == len(set(features))

    @pytest.mark.parametrize(
        "adapter_class,format_id",
        [
            (FoundryVTTAdapter, "foundry-vtt"),
            (FantasyGroundsAdapter, "fantasy-grounds"),
            (Roll20Adapter, "roll20"),
            (GenericJSONAdapter, "generic-json"),
        ],
    )
    def test_format_ids(self, adapter_class, format_id):
        """Each adapter reports its id."""
        assert adapter_class().format_id == format_id

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    async def test_missing_fields_fail_without_raising(self, adapter_class):
        """A record without id, name or stats is refused as data."""
        adapter = adapter_class()
        result = await adapter.convert({"name": "Nameless"})

        assert result.success is False
        assert result.data is None
        assert result.error == (
            f"Character data is missing required fields for {adapter.get_metadata().name} conversion"
        )
        assert result.failure.kind == "classified"
        assert result.failure.code == "VALIDATION_MISSING_FIELDS"

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    async def test_converts_sample(self, adapter_class, ddb_sample):
        """Every adapter converts the sample and reports its size."""
        result = await adapter_class().convert(ddb_sample)

        assert result.success is True
        assert isinstance(result.data, str)
        assert result.performance.data_size == len(result.data)
        assert result.performance.conversion_time >= 0

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_can_convert(self, adapter_class, ddb_sample):
        """can_convert checks the structural precondition only."""
        adapter = adapter_class()
        assert adapter.can_convert(ddb_sample) is True
        assert adapter.can_convert(CharacterSheet(ddb_sample)) is True
        assert adapter.can_convert({"id": 1, "name": "No Stats", "stats": []}) is False

    def test_base_class_is_abstract(self):
        """FormatAdapter cannot be instantiated directly."""
        with pytest.raises(TypeError):
            FormatAdapter()

    def test_duplicate_capabilities_rejected(self):
        """Declaring a feature twice fails at construction."""

        class DuplicateAdapter(GenericJSONAdapter):
            def get_supported_features(self):
                return [
                    FormatCapability(feature="skills", support=SupportLevel.FULL),
                    FormatCapability(feature="skills", support=SupportLevel.PARTIAL),
                ]

        with pytest.raises(ValueError, match="duplicate capabilities: skills"):
            DuplicateAdapter()

    def test_metadata(self):
        """Metadata is a FormatMetadata model."""
        metadata = FantasyGroundsAdapter().get_metadata()
        assert isinstance(metadata, FormatMetadata)
        assert metadata.file_extension == "xml"
        assert metadata.mime_type == "application/xml"


class TestConversionFailures:
    """Exceptions inside an adapter become failed results."""

    async def test_malformed_data_error(self, ddb_sample):
        """Data errors classify as computation failures."""
        result = await BrokenFoundryAdapter(KeyError("system")).convert(ddb_sample)

        assert result.success is False
        assert result.error == "Foundry VTT conversion failed: 'system'"
        assert result.failure.code == "COMPUTATION_MALFORMED_DATA"
        assert result.failure.component == "foundry-vtt"
        assert result.failure.recoverable is False

    async def test_adapter_error(self, ddb_sample):
        """Other exceptions classify as adapter failures."""
        result = await BrokenFoundryAdapter(RuntimeError("boom")).convert(ddb_sample)

        assert result.error == "Foundry VTT conversion failed: boom"
        assert result.failure.code == "ADAPTER_FAILURE"

    async def test_empty_message(self, ddb_sample):
        """Exceptions without a message report an unknown error."""
        result = await BrokenFoundryAdapter(RuntimeError()).convert(ddb_sample)
        assert result.error == "Foundry VTT conversion failed: Unknown error"


class TestFoundryVTTAdapter:
    """Foundry VTT dnd5e actor export."""

    async def test_actor(self, ddb_sample):
        """Top-level actor fields."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        assert document["name"] == "Elara Moonwhisper"
        assert document["type"] == "character"
        assert len(document["_id"]) == 16
        assert document["flags"]["ddb-importer"]["characterId"] == 98765432

    async def test_abilities(self, ddb_sample):
        """Abilities use Foundry's short keys."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        abilities = document["system"]["abilities"]
        assert abilities["int"] == {"value": 16, "proficient": 1, "bonuses": {"check": "", "save": ""}}
        assert abilities["str"]["value"] == 8
        assert abilities["str"]["proficient"] == 0

    async def test_attributes(self, ddb_sample):
        """Derived combat attributes."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        attributes = document["system"]["attributes"]
        assert attributes["hp"]["max"] == 37
        assert attributes["ac"]["value"] == 12
        assert attributes["movement"]["walk"] == 30
        assert attributes["senses"]["darkvision"] == 60
        assert attributes["spellcasting"] == "int"
        assert attributes["prof"] == 3

    async def test_details(self, ddb_sample):
        """Biography and progression details."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        details = document["system"]["details"]
        assert details["level"] == 7
        assert details["class"] == "Wizard 5 / Warlock 2"
        assert details["originalClass"] == "Wizard"
        assert details["alignment"] == "Neutral Good"
        assert details["xp"] == {"value": 23000, "min": 0, "max": 34000}
        assert "Candlekeep" in details["biography"]["value"]

    async def test_skills(self, ddb_sample):
        """Skill proficiency levels."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        skills = document["system"]["skills"]
        assert skills["arc"]["value"] == 1
        assert skills["inv"]["value"] == 2
        assert skills["ste"]["value"] == 0
        assert skills["prc"]["ability"] == "wis"

    async def test_spell_slots(self, ddb_sample):
        """Shared and pact slots come from the calculator."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        spells = document["system"]["spells"]
        assert spells["spell1"] == {"value": 4, "max": 4}
        assert spells["spell3"] == {"value": 2, "max": 2}
        assert spells["spell4"] == {"value": 0, "max": 0}
        assert spells["pact"] == {"value": 2, "max": 2, "level": 1}
        assert spells["spelldc"]["value"] == 14

    async def test_items(self, ddb_sample):
        """Inventory, spells and features become embedded items."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        items = document["items"]
        by_name = {item["name"]: item for item in items}

        assert len(items) == 4 + 3 + 3 + 2 + 1
        assert by_name["Quarterstaff"]["type"] == "weapon"
        assert by_name["Wand of Magic Missiles"]["type"] == "equipment"
        assert by_name["Wand of Magic Missiles"]["system"]["rarity"] == "uncommon"
        assert by_name["Candle"]["type"] == "loot"
        assert by_name["Candle"]["system"]["quantity"] == 5
        assert by_name["Detect Magic"]["type"] == "spell"
        assert by_name["Detect Magic"]["system"]["components"]["ritual"] is True
        assert by_name["Sculpt Spells"]["system"]["source"] == "Wizard Feature"
        assert by_name["Fey Ancestry"]["system"]["source"] == "Racial Trait"
        assert by_name["War Caster"]["type"] == "feat"
        assert len({item["_id"] for item in items}) == len(items)

    async def test_token(self, ddb_sample):
        """The token sees in the dark."""
        document = await convert_to_json(FoundryVTTAdapter(), ddb_sample)
        sight = document["prototypeToken"]["sight"]
        assert sight["enabled"] is True
        assert sight["range"] == 60
        assert sight["visionMode"] == "darkvision"

    async def test_warnings(self, ddb_sample):
        """Class features and magic items produce warnings."""
        result = await FoundryVTTAdapter().convert(ddb_sample)
        assert result.warnings == [
            "Complex class features may require manual setup of Active Effects in Foundry VTT",
            "Magic item effects may need manual configuration in Foundry VTT",
        ]

    async def test_compatibility(self, ddb_sample):
        """Partial feature support lowers the score to good."""
        analysis = await FoundryVTTAdapter().analyze_compatibility(ddb_sample)

        assert analysis.score == 84
        assert analysis.recommendation is Recommendation.GOOD
        assert analysis.data_loss == 0
        assert analysis.limitations[0] == "Complex magical effects may need manual configuration"
        assert len(analysis.limitations) == 6

    async def test_indent_option(self, ddb_sample):
        """The indent option controls JSON formatting."""
        options = ConversionOptions(format_options={"indent": None})
        result = await FoundryVTTAdapter().convert(ddb_sample, options)
        assert "\n" not in result.data


class TestFantasyGroundsAdapter:
    """Fantasy Grounds XML export."""

    async def test_identity(self, ddb_sample):
        """Basic fields are typed strings and numbers."""
        character = await convert_fg(ddb_sample)
        assert character.findtext("name") == "Elara Moonwhisper"
        assert character.findtext("race") == "Half-Elf"
        assert character.findtext("classes") == "Wizard 5 / Warlock 2"
        assert character.findtext("level") == "7"
        assert character.find("level").get("type") == "number"

    async def test_abilities(self, ddb_sample):
        """Scores, modifiers and saves."""
        character = await convert_fg(ddb_sample)
        intelligence = character.find("abilities/intelligence")
        assert intelligence.findtext("score") == "16"
        assert intelligence.findtext("bonus") == "3"
        assert intelligence.findtext("save") == "6"
        assert intelligence.findtext("saveprof") == "1"

    async def test_skills(self, ddb_sample):
        """Skills are numbered list entries."""
        character = await convert_fg(ddb_sample)
        arcana = character.find("skilllist/id-00003")
        assert arcana.findtext("name") == "Arcana"
        assert arcana.findtext("total") == "6"
        assert len(character.find("skilllist")) == 18

    async def test_combat(self, ddb_sample):
        """Hit points, armor class and senses."""
        character = await convert_fg(ddb_sample)
        assert character.findtext("hp/total") == "37"
        assert character.findtext("defenses/ac/total") == "12"
        assert character.findtext("profbonus") == "3"
        assert character.findtext("senses") == "Darkvision 60 ft."

    async def test_power_meta(self, ddb_sample):
        """Pact and shared slots appear in powermeta."""
        character = await convert_fg(ddb_sample)
        assert character.findtext("powermeta/pactmagicslots1/max") == "2"
        assert character.findtext("powermeta/spellslots1/max") == "4"
        assert character.findtext("powermeta/spellslots3/max") == "2"
        assert character.findtext("powermeta/spellslots4/max") == "0"

    async def test_spells(self, ddb_sample):
        """Spellcasting values and the spell list."""
        character = await convert_fg(ddb_sample)
        assert character.findtext("spellset/dc") == "14"
        assert character.findtext("spellset/spellcasting_ability") == "intelligence"
        assert len(character.find("spellset/spells")) == 3

    async def test_inventory_and_features(self, ddb_sample):
        """Inventory, coins and feature lists."""
        character = await convert_fg(ddb_sample)
        assert len(character.find("inventorylist")) == 4
        assert character.findtext("inventorylist/id-00004/count") == "5"
        assert character.findtext("coins/slot4/name") == "GP"
        assert character.findtext("coins/slot4/amount") == "150"
        assert len(character.find("featurelist")) == 3
        assert len(character.find("traitlist")) == 2
        assert len(character.find("featlist")) == 1

    async def test_integer_indent(self, ddb_sample):
        """An integer indent becomes that many spaces."""
        options = ConversionOptions(format_options={"indent": 4})
        result = await FantasyGroundsAdapter().convert(ddb_sample, options)
        assert "\n    <character>" in result.data

    async def test_warnings(self, ddb_sample):
        """Multiclass spellcasting is flagged for review."""
        result = await FantasyGroundsAdapter().convert(ddb_sample)
        assert len(result.warnings) == 1
        assert "spell slot calculations" in result.warnings[0]

    async def test_compatibility(self, ddb_sample):
        """Full support for everything the sample has."""
        analysis = await FantasyGroundsAdapter().analyze_compatibility(ddb_sample)
        assert analysis.score == 100
        assert analysis.recommendation is Recommendation.EXCELLENT

    def test_conversion_options(self):
        assert FantasyGroundsAdapter().get_conversion_options() == {"indent": "  "}


class TestRoll20Adapter:
    """Roll20 OGL attribute export."""

    async def test_abilities(self, ddb_sample):
        """Ability attributes with modifiers and saves."""
        sheet = await convert_to_json(Roll20Adapter(), ddb_sample)
        assert sheet["intelligence"] == 16
        assert sheet["intelligence_mod"] == 3
        assert sheet["intelligence_save_prof"] == 1
        assert sheet["intelligence_save_mod"] == 6
        assert sheet["strength_save_prof"] == 0

    async def test_skills(self, ddb_sample):
        """Skill proficiency and modifiers."""
        sheet = await convert_to_json(Roll20Adapter(), ddb_sample)
        assert sheet["investigation_prof"] == 2
        assert sheet["investigation_mod"] == 9
        assert sheet["sleight_of_hand_mod"] == 2
        assert sheet["passive_wisdom"] == 14

    async def test_pact_slots_are_merged(self, ddb_sample):
        """Pact slots are added to the shared slot totals."""
        sheet = await convert_to_json(Roll20Adapter(), ddb_sample)
        assert sheet["lvl1_slots_total"] == 4 + 2
        assert sheet["lvl2_slots_total"] == 3
        assert sheet["lvl3_slots_total"] == 2
        assert sheet["lvl1_slots_expended"] == 0

    async def test_character_fields(self, ddb_sample):
        """Combat and inventory fields."""
        sheet = await convert_to_json(Roll20Adapter(), ddb_sample)
        assert sheet["hit_point_max"] == 37
        assert sheet["armor_class"] == 12
        assert sheet["pb"] == 3
        assert sheet["gp"] == 150
        assert sheet["class_display"] == "Wizard 5 / Warlock 2"
        assert sheet["equipment"] == "Quarterstaff, Wand of Magic Missiles, Component Pouch, Candle (5)"

    async def test_text_fields(self, ddb_sample):
        """Features and bio are descriptive text."""
        sheet = await convert_to_json(Roll20Adapter(), ddb_sample)
        assert "Arcane Recovery: Recover expended spell slots on a short rest." in sheet["features_and_traits"]
        assert "**Race:** Half-Elf" in sheet["bio"]
        assert "• War Caster" in sheet["bio"]
        assert "Candlekeep" in sheet["bio"]

    async def test_warnings(self, ddb_sample):
        """Complex spellcasting, magic items and merged pact slots are flagged."""
        result = await Roll20Adapter().convert(ddb_sample)
        assert len(result.warnings) == 4
        assert result.warnings[-1] == PACT_SLOTS_MERGED_WARNING

    async def test_fighter_warnings(self, fighter_record):
        """A plain fighter only gets the automation warning."""
        result = await Roll20Adapter().convert(fighter_record)
        assert result.warnings == ["Roll20 format has limited automation - most features will be descriptive text only"]

    async def test_compatibility(self, ddb_sample):
        """Mostly partial support lands in the fair band."""
        analysis = await Roll20Adapter().analyze_compatibility(ddb_sample)
        assert analysis.score == 74
        assert analysis.recommendation is Recommendation.FAIR


class TestGenericJSONAdapter:
    """Lossless JSON export."""

    async def test_metadata(self, ddb_sample):
        document = await convert_to_json(GenericJSONAdapter(), ddb_sample)
        assert document["metadata"]["source"] == "vtt-export"
        assert document["metadata"]["originalId"] == 98765432

    async def test_basic(self, ddb_sample):
        """Classes keep their caster types."""
        document = await convert_to_json(GenericJSONAdapter(), ddb_sample)
        basic = document["character"]["basic"]
        assert basic["level"] == 7
        assert basic["alignment"] == "Neutral Good"
        assert [c["casterType"] for c in basic["classes"]] == ["full", "pact"]

    async def test_skills(self, ddb_sample):
        """Skill keys are camelCase."""
        document = await convert_to_json(GenericJSONAdapter(), ddb_sample)
        skills = document["character"]["skills"]
        assert skills["sleightOfHand"]["ability"] == "dexterity"
        assert skills["animalHandling"]["proficiency"] == "none"
        assert skills["investigation"]["proficiency"] == "expertise"
        assert skills["investigation"]["modifier"] == 9

    async def test_spellcasting(self, ddb_sample):
        """Slots, pact magic and spell lists."""
        document = await convert_to_json(GenericJSONAdapter(), ddb_sample)
        spellcasting = document["character"]["spellcasting"]
        assert spellcasting["slots"]["level1"] == {"current": 4, "maximum": 4}
        assert spellcasting["pactMagic"] == {"level": 1, "slots": 2, "recharge": "short_rest"}
        assert [s["definition"]["name"] for s in spellcasting["spells"]["prepared"]] == ["Magic Missile", "Hex"]
        assert "debug" not in spellcasting

    async def test_inventory(self, ddb_sample):
        """Inventory is split by filter type."""
        document = await convert_to_json(GenericJSONAdapter(), ddb_sample)
        inventory = document["character"]["inventory"]
        assert len(inventory["weapons"]) == 1
        assert inventory["armor"] == []
        assert len(inventory["items"]) == 3
        assert inventory["currency"]["gold"] == 150

    async def test_combat(self, ddb_sample):
        """Only non-zero movement modes are listed."""
        document = await convert_to_json(GenericJSONAdapter(), ddb_sample)
        combat = document["character"]["combat"]
        assert combat["speed"] == {"walk": 30}
        assert combat["hitPoints"]["maximum"] == 37

    async def test_raw_data_preserved(self, ddb_sample):
        """The original record travels along unchanged."""
        document = await convert_to_json(GenericJSONAdapter(), ddb_sample)
        assert document["raw"]["originalData"] == ddb_sample
        assert document["raw"]["processingNotes"] == []

    async def test_debug_info(self, ddb_sample):
        """Debug output includes the calculation breakdown."""
        options = ConversionOptions(include_debug_info=True)
        result = await GenericJSONAdapter().convert(ddb_sample, options)
        document = json.loads(result.data)
        debug = document["character"]["spellcasting"]["debug"]

        assert debug["calculation"]["calculation_method"] == "multiclass"
        assert debug["casterBreakdown"]["total_caster_level"] == 5
        assert debug["legacySlots"][0] == {"level": 1, "slots": 4}
        assert document["raw"]["processingNotes"] == ["Spell slots calculated using multiclass rules"]

    async def test_no_pact_magic(self, fighter_record):
        """Characters without pact magic have no pactMagic section."""
        result = await GenericJSONAdapter().convert(fighter_record)
        assert "pactMagic" not in json.loads(result.data)["character"]["spellcasting"]

    @pytest.mark.parametrize("record", [{}, {"classes": [{"level": 20, "definition": {"name": "Wizard"}}]}])
    async def test_always_lossless(self, record, ddb_sample):
        """Compatibility is always perfect."""
        for character in (record, ddb_sample):
            analysis = await GenericJSONAdapter().analyze_compatibility(character)
            assert analysis.score == 100
            assert analysis.data_loss == 0
            assert analysis.limitations == []
