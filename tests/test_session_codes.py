"""Tests for session code generation and collision retries."""

import pytest

from mystery.config import Settings
from mystery.engine import (
    CODE_ALPHABET,
    CODE_LENGTH,
    SessionCodeGenerator,
    SessionCoordinator,
    generate_session_code,
    is_valid_session_code,
)
from mystery.errors import CodeGenerationExhausted, PersistenceError, PersistenceUnavailable
from mystery.models import Session
from mystery.store import InMemoryGameStateStore


def scripted_codes(*codes: str):
    """Code factory that returns the given codes in order."""
    iterator = iter(codes)
    return lambda: next(iterator)


class TestGenerateSessionCode:
    """Shape of generated codes."""

    def test_thousand_codes_have_valid_shape(self) -> None:
        generator = SessionCodeGenerator(seed=99)
        codes = [generator() for _ in range(1000)]
        for code in codes:
            assert len(code) == CODE_LENGTH == 6
            assert all(ch in CODE_ALPHABET for ch in code)
            assert code == code.upper()
            assert is_valid_session_code(code)

    def test_seeded_generators_repeat(self) -> None:
        first = SessionCodeGenerator(seed=5)
        second = SessionCodeGenerator(seed=5)
        assert [first() for _ in range(5)] == [second() for _ in range(5)]

    def test_module_function(self) -> None:
        assert is_valid_session_code(generate_session_code())

    @pytest.mark.parametrize("code", ["abc123", "ABC12", "ABC1234", "ABC-12", ""])
    def test_invalid_codes(self, code) -> None:
        assert not is_valid_session_code(code)


class TestUniqueCodeRetries:
    """The coordinator retries on collision up to the attempt cap."""

    @pytest.mark.asyncio
    async def test_forced_collision_is_retried(self, store, catalog, settings) -> None:
        await store.create_session(Session(code="AAAAAA", script_id="mansion", host_id="x", min_players=2, max_players=4))
        coordinator = SessionCoordinator(
            store, catalog, code_factory=scripted_codes("AAAAAA", "BBBBBB"), settings=settings,
        )
        code = await coordinator.create_session("host", "Host", "mansion")
        assert code == "BBBBBB"

    @pytest.mark.asyncio
    async def test_exhausted_attempts_fail_hard(self, store, catalog) -> None:
        await store.create_session(Session(code="AAAAAA", script_id="mansion", host_id="x", min_players=2, max_players=4))
        coordinator = SessionCoordinator(
            store,
            catalog,
            code_factory=lambda: "AAAAAA",
            settings=Settings(code_attempts=3),
        )
        with pytest.raises(CodeGenerationExhausted) as exc_info:
            await coordinator.create_session("host", "Host", "mansion")
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value, PersistenceError)

    @pytest.mark.asyncio
    async def test_transient_probe_failure_is_retried(self, catalog, settings) -> None:
        class FlakyStore(InMemoryGameStateStore):
            def __init__(self):
                super().__init__()
                self.probes = 0

            async def session_exists(self, code):
                self.probes += 1
                if self.probes == 1:
                    raise PersistenceUnavailable("blip")
                return await super().session_exists(code)

        store = FlakyStore()
        await store.connect()
        coordinator = SessionCoordinator(
            store, catalog, code_factory=scripted_codes("CCCCCC", "DDDDDD"), settings=settings,
        )
        assert await coordinator.create_session("host", "Host", "mansion") == "DDDDDD"
        assert store.probes == 2

    @pytest.mark.asyncio
    async def test_store_down_for_every_probe(self, catalog) -> None:
        store = InMemoryGameStateStore()
        await store.connect()
        store.set_available(False)
        coordinator = SessionCoordinator(store, catalog, settings=Settings(code_attempts=2))
        with pytest.raises(PersistenceUnavailable):
            await coordinator.create_session("host", "Host", "mansion")
