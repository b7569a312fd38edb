"""Shared fixtures: a temporary script directory, catalog, store and coordinator."""

import json

import pytest
import pytest_asyncio
import yaml

from mystery.catalog import GameScriptCatalog
from mystery.config import Settings
from mystery.engine import SessionCodeGenerator, SessionCoordinator
from mystery.store import InMemoryGameStateStore

SCRIPT_ID = "mansion"
MURDERER = "Mrs White"
CHARACTER_NAMES = ["Colonel Mustard", "Miss Scarlet", "Professor Plum", "Mrs White"]


def make_character(name: str, order: int, murderer: bool = False) -> dict:
    """Raw character entry in the authoring format."""
    return {
        "Character": name,
        "characterId": order,
        "Short Description": f"{name}, a guest",
        "isMurderer": murderer,
        "RedHerrings": f"{name} was seen near the study\n\nA missing glove",
        "Round 1 - Introduction Script": f"Hello, I am {name}.",
        "Secret information": f"{name} has a secret.",
        "Round 2 - Story": f"{name} tells a story.",
        "Round 3 - Accuses": "Someone",
        "Round 3 - Accusation": f"{name} accuses someone.",
        "Round 3 - Accused of": "Lying",
        "Round 3 - Rebuttal": "I never lie.",
        "Round 6 - Final statement": f"{name} makes a final statement.",
        "Order of Final Statement": order,
    }


def mansion_document() -> dict:
    return {
        "metadata": {
            "scriptId": SCRIPT_ID,
            "title": "Murder at the Mansion",
            "description": "A classic whodunnit",
            "minPlayers": 2,
            "maxPlayers": 4,
            "numberOfRounds": 7,
            "difficulty": "easy",
            "introduction": "The host lies dead in the study.",
            "tags": ["classic"],
        },
        "characters": [
            make_character(name, i + 1, murderer=(name == MURDERER))
            for i, name in enumerate(CHARACTER_NAMES)
        ],
    }


def coming_soon_document() -> dict:
    return {
        "metadata": {
            "scriptId": "coming",
            "title": "Not Yet",
            "status": "coming_soon",
        },
        "characters": [make_character("Lone Suspect", 1, murderer=True)],
    }


@pytest.fixture
def script_dir(tmp_path):
    """Directory with one playable JSON script, one coming-soon YAML
    script and one unreadable file."""
    (tmp_path / "mansion.json").write_text(json.dumps(mansion_document()), encoding="utf-8")
    (tmp_path / "coming.yaml").write_text(yaml.safe_dump(coming_soon_document()), encoding="utf-8")
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    return tmp_path


@pytest.fixture
def catalog(script_dir) -> GameScriptCatalog:
    return GameScriptCatalog.from_directory(script_dir)


@pytest_asyncio.fixture
async def store() -> InMemoryGameStateStore:
    store = InMemoryGameStateStore()
    await store.connect()
    return store


@pytest.fixture
def settings(script_dir) -> Settings:
    return Settings(scripts_dir=script_dir, store_ready_timeout=0.2, code_attempts=10)


@pytest.fixture
def coordinator(store, catalog, settings) -> SessionCoordinator:
    return SessionCoordinator(
        store,
        catalog,
        code_factory=SessionCodeGenerator(seed=1234),
        settings=settings,
    )
