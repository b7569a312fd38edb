"""Tests for GameScriptCatalog loading and lookups."""

import logging

import pytest

from mystery.catalog import GameScriptCatalog
from mystery.config import BUNDLED_SCRIPTS_DIR
from mystery.errors import NotFoundError, ScriptNotFound, ValidationError
from mystery.models import FALLBACK_INSTRUCTIONS, RoundOrdinal


class TestLoading:
    """Directory and document loading."""

    def test_loads_json_and_yaml_skips_broken(self, catalog) -> None:
        assert sorted(catalog.script_ids) == ["coming", "mansion"]
        assert len(catalog) == 2
        assert "broken" not in catalog

    def test_broken_file_logged(self, script_dir, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="mystery.catalog.script_catalog"):
            GameScriptCatalog.from_directory(script_dir)
        assert any("broken.json" in record.getMessage() for record in caplog.records)

    def test_missing_directory_gives_empty_catalog(self, tmp_path) -> None:
        catalog = GameScriptCatalog.from_directory(tmp_path / "nowhere")
        assert len(catalog) == 0
        assert catalog.list_scripts() == []

    def test_from_documents_skips_malformed(self) -> None:
        catalog = GameScriptCatalog.from_documents({
            "good": [{"Character": "A"}, {"Character": "B"}],
            "empty": {"metadata": {}, "characters": []},
            "junk": 42,
        })
        assert catalog.script_ids == ["good"]

    def test_duplicate_ids_keep_first(self) -> None:
        catalog = GameScriptCatalog.from_documents({
            "one": {"metadata": {"scriptId": "same", "title": "First"}, "characters": [{"Character": "A"}]},
            "two": {"metadata": {"scriptId": "same", "title": "Second"}, "characters": [{"Character": "B"}]},
        })
        assert len(catalog) == 1
        assert catalog.get_script("same").title == "First"

    def test_bundled_scripts_load(self) -> None:
        catalog = GameScriptCatalog.from_directory(BUNDLED_SCRIPTS_DIR)
        assert "blackwood-manor" in catalog
        assert catalog.is_script_available("blackwood-manor")
        assert catalog.get_script_status("lighthouse") == "coming_soon"
        flow = catalog.get_game_flow("lighthouse")
        assert flow.round_instructions[RoundOrdinal.ROUND_2].startswith("Tell the others")


class TestLookups:
    """Pure lookups over the loaded scripts."""

    def test_get_script_unknown_returns_none(self, catalog) -> None:
        assert catalog.get_script("nope") is None

    def test_require_script_raises(self, catalog) -> None:
        with pytest.raises(ScriptNotFound) as exc_info:
            catalog.require_script("nope")
        # Unknown script id is both a lookup miss and bad input
        assert isinstance(exc_info.value, NotFoundError)
        assert isinstance(exc_info.value, ValidationError)

    def test_characters_in_order(self, catalog) -> None:
        names = [c.character_name for c in catalog.get_characters("mansion")]
        assert names == ["Colonel Mustard", "Miss Scarlet", "Professor Plum", "Mrs White"]
        assert catalog.get_characters("nope") == []

    def test_character_by_name(self, catalog) -> None:
        assert catalog.get_character_by_name("mansion", "Miss Scarlet").character_id == "2"
        assert catalog.get_character_by_name("mansion", "Nobody") is None
        assert catalog.get_character_by_name("nope", "Miss Scarlet") is None

    def test_murderers(self, catalog) -> None:
        assert [c.character_name for c in catalog.get_murderer_characters("mansion")] == ["Mrs White"]
        assert catalog.get_murderer_characters("nope") == []

    def test_murderers_may_be_several(self) -> None:
        catalog = GameScriptCatalog.from_documents({
            "pair": [
                {"Character": "A", "isMurderer": True},
                {"Character": "B", "isMurderer": True},
                {"Character": "C"},
            ],
        })
        assert [c.character_name for c in catalog.get_murderer_characters("pair")] == ["A", "B"]

    @pytest.mark.parametrize("round_value", [RoundOrdinal.ROUND_2, 2, "2", 2.0])
    def test_character_script_accepts_round_forms(self, catalog, round_value) -> None:
        block = catalog.get_character_script("mansion", "Miss Scarlet", round_value)
        assert block.story == "Miss Scarlet tells a story."

    def test_character_script_misses(self, catalog) -> None:
        assert catalog.get_character_script("mansion", "Miss Scarlet", 5.5) is None
        assert catalog.get_character_script("mansion", "Miss Scarlet", 9) is None
        assert catalog.get_character_script("mansion", "Nobody", 1) is None

    def test_round_instructions(self, catalog) -> None:
        assert catalog.get_round_instructions("mansion", 1) == "Introduce yourself to the group"
        assert "accusations" in catalog.get_round_instructions("mansion", "5.5")
        assert catalog.get_round_instructions("mansion", 7) == "The END"

    def test_round_instructions_fallback(self, catalog) -> None:
        assert catalog.get_round_instructions("mansion", 0) == FALLBACK_INSTRUCTIONS
        assert catalog.get_round_instructions("mansion", "bogus") == FALLBACK_INSTRUCTIONS
        assert catalog.get_round_instructions("nope", 1) == FALLBACK_INSTRUCTIONS


class TestAvailability:
    """Listing, status and roster availability."""

    def test_list_scripts(self, catalog) -> None:
        summaries = {s.script_id: s for s in catalog.list_scripts()}
        mansion = summaries["mansion"]
        assert mansion.title == "Murder at the Mansion"
        assert (mansion.min_players, mansion.max_players) == (2, 4)
        assert mansion.is_active
        assert not summaries["coming"].is_active

    def test_status(self, catalog) -> None:
        assert catalog.is_script_available("mansion")
        assert not catalog.is_script_available("coming")
        assert not catalog.is_script_available("nope")
        assert catalog.get_script_status("coming") == "coming_soon"
        assert catalog.get_script_status("nope") == "not_found"

    def test_available_characters(self, catalog) -> None:
        free = catalog.get_available_characters("mansion", ["Miss Scarlet", "Mrs White"])
        assert [c.character_name for c in free] == ["Colonel Mustard", "Professor Plum"]

    def test_introduction(self, catalog) -> None:
        assert catalog.get_introduction("mansion") == "The host lies dead in the study."
        assert catalog.get_introduction("coming") is None
        assert catalog.get_introduction("nope") is None
