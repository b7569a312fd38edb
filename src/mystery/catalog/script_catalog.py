"""GameScriptCatalog - read-only lookups over script reference data.

Scripts are loaded once (from a directory of JSON/YAML documents or from
in-memory documents). A document that cannot be read or parsed is logged
and skipped; it is simply absent from later lookups.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import yaml

from mystery.errors import ScriptNotFound
from mystery.models.rounds import RoundOrdinal
from mystery.models.script import (
    FALLBACK_INSTRUCTIONS,
    Character,
    CharacterRoundScript,
    GameFlow,
    Script,
    ScriptSummary,
)

logger = logging.getLogger(__name__)

SCRIPT_SUFFIXES = (".json", ".yaml", ".yml")

RoundLike = Union[RoundOrdinal, str, int, float]


def _as_round(value: RoundLike) -> Optional[RoundOrdinal]:
    try:
        return RoundOrdinal.parse(value)
    except ValueError:
        return None


def load_script_document(path: Path) -> Any:
    """Read one script file as JSON or YAML depending on its suffix."""
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


class GameScriptCatalog:
    """Immutable script lookups keyed by script id.

    Usage:
        catalog = GameScriptCatalog.from_directory(Path("scripts"))
        flow = catalog.get_game_flow("opera")
        text = catalog.get_character_script("opera", "Penny Prattle", RoundOrdinal.ROUND_2)
    """

    def __init__(self, scripts: Iterable[Script] = ()):
        self._scripts: dict[str, Script] = {}
        for script in scripts:
            self._add(script)

    def _add(self, script: Script) -> None:
        if script.script_id in self._scripts:
            logger.warning("Duplicate script id %r ignored", script.script_id)
            return
        self._scripts[script.script_id] = script

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_documents(cls, documents: Mapping[str, Any]) -> "GameScriptCatalog":
        """Build a catalog from raw documents keyed by fallback script id."""
        scripts: list[Script] = []
        for fallback_id, document in documents.items():
            try:
                scripts.append(Script.from_document(document, fallback_id))
            except ValueError as exc:
                logger.warning("Skipping malformed script %r: %s", fallback_id, exc)
        return cls(scripts)

    @classmethod
    def from_directory(cls, directory: Path) -> "GameScriptCatalog":
        """Load every *.json / *.yaml / *.yml document in `directory`.

        A missing directory yields an empty catalog.
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning("Scripts directory %s does not exist", directory)
            return cls()

        scripts: list[Script] = []
        for path in sorted(directory.iterdir()):
            if path.suffix not in SCRIPT_SUFFIXES or not path.is_file():
                continue
            try:
                document = load_script_document(path)
                scripts.append(Script.from_document(document, path.stem))
            except (OSError, ValueError, yaml.YAMLError) as exc:
                logger.warning("Skipping script file %s: %s", path.name, exc)
                continue
        catalog = cls(scripts)
        logger.info("Loaded %d script(s) from %s", len(catalog), directory)
        return catalog

    def __len__(self) -> int:
        return len(self._scripts)

    def __contains__(self, script_id: object) -> bool:
        return script_id in self._scripts

    @property
    def script_ids(self) -> list[str]:
        return list(self._scripts)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_script(self, script_id: str) -> Optional[Script]:
        return self._scripts.get(script_id)

    def require_script(self, script_id: str) -> Script:
        """Like get_script, but raises ScriptNotFound when absent."""
        script = self._scripts.get(script_id)
        if script is None:
            raise ScriptNotFound(script_id)
        return script

    def list_scripts(self) -> list[ScriptSummary]:
        return [script.summary() for script in self._scripts.values()]

    def get_characters(self, script_id: str) -> list[Character]:
        """Ordered roster; empty for an unknown script."""
        script = self._scripts.get(script_id)
        return list(script.characters) if script else []

    def get_character_by_name(self, script_id: str, character_name: str) -> Optional[Character]:
        script = self._scripts.get(script_id)
        return script.character(character_name) if script else None

    def get_murderer_characters(self, script_id: str) -> list[Character]:
        """All characters flagged as murderer (a script may have several)."""
        script = self._scripts.get(script_id)
        return script.murderers if script else []

    def get_character_script(
        self,
        script_id: str,
        character_name: str,
        round_ordinal: RoundLike,
    ) -> Optional[CharacterRoundScript]:
        """Per-round text block, or None for unknown character/round."""
        character = self.get_character_by_name(script_id, character_name)
        ordinal = _as_round(round_ordinal)
        if character is None or ordinal is None:
            return None
        return character.scripts.get(ordinal)

    def get_round_instructions(self, script_id: str, round_ordinal: RoundLike) -> str:
        """Display text for a round; a generic line when nothing matches."""
        flow = self.get_game_flow(script_id)
        ordinal = _as_round(round_ordinal)
        if flow is None or ordinal is None:
            return FALLBACK_INSTRUCTIONS
        return flow.round_instructions.get(ordinal, FALLBACK_INSTRUCTIONS)

    def get_game_flow(self, script_id: str) -> Optional[GameFlow]:
        script = self._scripts.get(script_id)
        return script.game_flow if script else None

    def get_available_characters(
        self,
        script_id: str,
        assigned_characters: Iterable[str] = (),
    ) -> list[Character]:
        """Roster minus characters already assigned to players."""
        taken = set(assigned_characters)
        return [c for c in self.get_characters(script_id) if c.character_name not in taken]

    def get_introduction(self, script_id: str) -> Optional[str]:
        script = self._scripts.get(script_id)
        return script.metadata.introduction if script else None

    def is_script_available(self, script_id: str) -> bool:
        script = self._scripts.get(script_id)
        return script is not None and script.metadata.is_active

    def get_script_status(self, script_id: str) -> str:
        script = self._scripts.get(script_id)
        return script.metadata.status if script else "not_found"
