"""Script reference data: characters, per-round text and flow configuration.

Script documents use the human-readable keys written by the script
authors ("Character", "Round 2 - Story", ...). The models below map those
keys through field aliases, so a document can be validated directly.
"""

from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mystery.models.rounds import ROUND_SEQUENCE, RoundOrdinal


DEFAULT_ROUND_INSTRUCTIONS: dict[RoundOrdinal, str] = {
    RoundOrdinal.INTRODUCTION: "Introduce yourself to the group",
    RoundOrdinal.ROUND_2: "Tell your story (and react to others' stories)",
    RoundOrdinal.ROUND_3: "Make your observation",
    RoundOrdinal.ROUND_4: "Make your observation",
    RoundOrdinal.ROUND_5: "Make your observation",
    RoundOrdinal.ACCUSATION: (
        "Deliberate with your party. Make your accusations (out loud) "
        "and record who you think is the Murderer(s)!"
    ),
    RoundOrdinal.FINAL_STATEMENTS: (
        "Read your final statements (your statement order: [Order of Final Statement])"
    ),
    RoundOrdinal.END: "The END",
}

FALLBACK_INSTRUCTIONS = "Continue with the game"
STATEMENT_ORDER_PLACEHOLDER = "[Order of Final Statement]"


class CharacterRoundScript(BaseModel):
    """Text block a character reads during one round."""

    instructions: str
    introduction: Optional[str] = None
    secret_information: Optional[str] = None
    story: Optional[str] = None
    accuses: Optional[str] = None
    accusation: Optional[str] = None
    accused_of: Optional[str] = None
    rebuttal: Optional[str] = None
    final_statement: Optional[str] = None


def _round_scripts_from_raw(raw: dict[str, Any]) -> dict[RoundOrdinal, dict[str, Any]]:
    """Collect the round-keyed fields of a raw character entry."""
    order = raw.get("Order of Final Statement")
    final_instructions = DEFAULT_ROUND_INSTRUCTIONS[RoundOrdinal.FINAL_STATEMENTS]
    if order is not None:
        final_instructions = final_instructions.replace(STATEMENT_ORDER_PLACEHOLDER, str(order))

    scripts: dict[RoundOrdinal, dict[str, Any]] = {
        RoundOrdinal.INTRODUCTION: {
            "instructions": DEFAULT_ROUND_INSTRUCTIONS[RoundOrdinal.INTRODUCTION],
            "introduction": raw.get("Round 1 - Introduction Script"),
            "secret_information": raw.get("Secret information"),
        },
        RoundOrdinal.ROUND_2: {
            "instructions": DEFAULT_ROUND_INSTRUCTIONS[RoundOrdinal.ROUND_2],
            "story": raw.get("Round 2 - Story"),
        },
    }
    for number, ordinal in ((3, RoundOrdinal.ROUND_3), (4, RoundOrdinal.ROUND_4), (5, RoundOrdinal.ROUND_5)):
        scripts[ordinal] = {
            "instructions": DEFAULT_ROUND_INSTRUCTIONS[ordinal],
            "accuses": raw.get(f"Round {number} - Accuses"),
            "accusation": raw.get(f"Round {number} - Accusation"),
            "accused_of": raw.get(f"Round {number} - Accused of"),
            "rebuttal": raw.get(f"Round {number} - Rebuttal"),
        }
    scripts[RoundOrdinal.FINAL_STATEMENTS] = {
        "instructions": final_instructions,
        "final_statement": raw.get("Round 6 - Final statement"),
    }
    return scripts


class Character(BaseModel):
    """A character in a script's roster."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    character_name: str = Field(alias="Character", min_length=1)
    character_id: Optional[str] = Field(default=None, alias="characterId")
    short_description: str = Field(default="", alias="Short Description")
    sex: Optional[str] = Field(default=None, alias="Sex")
    invite_description: str = Field(default="", alias="Invite Description")
    introduction: str = Field(default="", alias="Introduction")
    is_murderer: bool = Field(default=False, alias="isMurderer")
    suggested_age: Optional[Union[int, str]] = Field(default=None, alias="suggestedAge")
    costume_notes: Optional[str] = Field(default=None, alias="costumeNotes")
    accent: Optional[str] = None
    suggested_costume: Optional[str] = Field(default=None, alias="suggestedCostume")
    suggested_props: Optional[Union[str, list[str]]] = Field(default=None, alias="suggestedProps")
    motive: Optional[str] = Field(default=None, alias="Motive")
    means: Optional[str] = Field(default=None, alias="Means")
    opportunity: Optional[str] = Field(default=None, alias="Opportunity")
    red_herrings: list[str] = Field(default_factory=list, alias="RedHerrings")
    final_statement_order: Optional[Union[int, str]] = Field(default=None, alias="Order of Final Statement")
    why_it_isnt_them: Optional[str] = Field(default=None, alias="Why it isn't them")
    scripts: dict[RoundOrdinal, CharacterRoundScript] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_round_scripts(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "scripts" in data:
            return data
        data = dict(data)
        data["scripts"] = _round_scripts_from_raw(data)
        return data

    @field_validator("character_id", mode="before")
    @classmethod
    def _id_to_str(cls, value: Any) -> Any:
        return str(value) if value is not None else None

    @field_validator("red_herrings", mode="before")
    @classmethod
    def _split_red_herrings(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [line for line in value.split("\n") if line.strip()]
        return value


class ScriptMetadata(BaseModel):
    """The `metadata` block of a script document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    script_id: Optional[str] = Field(default=None, alias="scriptId")
    title: str = "Untitled Mystery"
    version: str = "1.0"
    description: str = "A murder mystery game"
    min_players: Optional[int] = Field(default=None, alias="minPlayers", ge=1)
    max_players: Optional[int] = Field(default=None, alias="maxPlayers", ge=1)
    number_of_rounds: int = Field(default=7, alias="numberOfRounds", ge=1)
    status: str = "available"
    difficulty: Optional[str] = None
    estimated_duration: Optional[str] = Field(default=None, alias="estimatedDuration")
    setting: Optional[str] = None
    time_period: Optional[str] = Field(default=None, alias="timePeriod")
    tags: list[str] = Field(default_factory=list)
    introduction: Optional[str] = None
    round_instructions: dict[str, str] = Field(default_factory=dict, alias="roundInstructions")

    @field_validator("script_id", "version", mode="before")
    @classmethod
    def _number_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("round_instructions", mode="before")
    @classmethod
    def _stringify_round_keys(cls, value: Any) -> Any:
        # YAML documents may key rounds by number (5.5: ...)
        if isinstance(value, dict):
            return {str(key): text for key, text in value.items()}
        return value

    @property
    def is_active(self) -> bool:
        return self.status != "coming_soon"


class GameFlow(BaseModel):
    """Flow configuration derived from a script's metadata and roster."""

    total_rounds: int = 7
    accusation_round: RoundOrdinal = RoundOrdinal.ACCUSATION
    final_statement_round: RoundOrdinal = RoundOrdinal.FINAL_STATEMENTS
    end_round: RoundOrdinal = RoundOrdinal.END
    round_order: tuple[RoundOrdinal, ...] = ROUND_SEQUENCE[1:]
    min_players: int
    max_players: int
    round_instructions: dict[RoundOrdinal, str] = Field(
        default_factory=lambda: dict(DEFAULT_ROUND_INSTRUCTIONS)
    )

    @classmethod
    def from_metadata(cls, metadata: ScriptMetadata, character_count: int) -> "GameFlow":
        """Build flow config, defaulting bounds from the roster size.

        Raises:
            ValueError: if a round instruction override names an unknown round
        """
        instructions = dict(DEFAULT_ROUND_INSTRUCTIONS)
        for key, text in metadata.round_instructions.items():
            instructions[RoundOrdinal.parse(key)] = text
        return cls(
            total_rounds=metadata.number_of_rounds,
            min_players=metadata.min_players or min(2, character_count),
            max_players=metadata.max_players or character_count,
            round_instructions=instructions,
        )


class ScriptSummary(BaseModel):
    """Listing entry for script selection."""

    script_id: str
    title: str
    version: str
    description: str
    min_players: int
    max_players: int
    difficulty: Optional[str] = None
    estimated_duration: Optional[str] = None
    setting: Optional[str] = None
    time_period: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    status: str = "available"
    is_active: bool = True


class Script(BaseModel):
    """One playable mystery: roster, round text and flow config."""

    script_id: str
    title: str
    version: str
    description: str
    metadata: ScriptMetadata
    characters: list[Character]
    game_flow: GameFlow

    @model_validator(mode="after")
    def _check_roster(self) -> "Script":
        if not self.characters:
            raise ValueError(f"script {self.script_id!r} has no characters")
        names = [c.character_name for c in self.characters]
        if len(set(names)) != len(names):
            raise ValueError(f"script {self.script_id!r} has duplicate character names")
        if self.game_flow.min_players > self.game_flow.max_players:
            raise ValueError(
                f"script {self.script_id!r}: minPlayers {self.game_flow.min_players} "
                f"exceeds maxPlayers {self.game_flow.max_players}"
            )
        return self

    @classmethod
    def from_document(cls, document: Any, fallback_id: str) -> "Script":
        """Parse a raw script document.

        The document is either {"metadata": {...}, "characters": [...]}
        or a bare list of characters.

        Raises:
            ValueError / pydantic.ValidationError: if the document is malformed
        """
        if isinstance(document, list):
            raw_metadata: Any = {}
            raw_characters: Any = document
        elif isinstance(document, dict):
            raw_metadata = document.get("metadata") or {}
            raw_characters = document.get("characters")
        else:
            raise ValueError(f"unsupported script document type: {type(document).__name__}")
        if not isinstance(raw_characters, list):
            raise ValueError("script document has no character list")

        metadata = ScriptMetadata.model_validate(raw_metadata)
        characters = [Character.model_validate(raw) for raw in raw_characters]
        return cls(
            script_id=metadata.script_id or fallback_id,
            title=metadata.title,
            version=metadata.version,
            description=metadata.description,
            metadata=metadata,
            characters=characters,
            game_flow=GameFlow.from_metadata(metadata, len(characters)),
        )

    @property
    def murderers(self) -> list[Character]:
        return [c for c in self.characters if c.is_murderer]

    def character(self, name: str) -> Optional[Character]:
        for character in self.characters:
            if character.character_name == name:
                return character
        return None

    def summary(self) -> ScriptSummary:
        return ScriptSummary(
            script_id=self.script_id,
            title=self.title,
            version=self.version,
            description=self.description,
            min_players=self.game_flow.min_players,
            max_players=self.game_flow.max_players,
            difficulty=self.metadata.difficulty,
            estimated_duration=self.metadata.estimated_duration,
            setting=self.metadata.setting,
            time_period=self.metadata.time_period,
            tags=list(self.metadata.tags),
            status=self.metadata.status,
            is_active=self.metadata.is_active,
        )
