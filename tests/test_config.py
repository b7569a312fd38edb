"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from mystery.config import (
    BUNDLED_SCRIPTS_DIR,
    DEFAULT_CODE_ATTEMPTS,
    DEFAULT_STORE_READY_TIMEOUT,
    Settings,
)


class TestSettings:
    """Settings.from_env."""

    def test_defaults(self) -> None:
        settings = Settings.from_env({})
        assert settings.scripts_dir == BUNDLED_SCRIPTS_DIR
        assert settings.store_ready_timeout == DEFAULT_STORE_READY_TIMEOUT == 10.0
        assert settings.code_attempts == DEFAULT_CODE_ATTEMPTS == 10
        assert settings.log_level == "WARNING"

    def test_environment_overrides(self) -> None:
        settings = Settings.from_env({
            "MYSTERY_SCRIPTS_DIR": "/tmp/scripts",
            "MYSTERY_STORE_READY_TIMEOUT": "2.5",
            "MYSTERY_CODE_ATTEMPTS": "4",
            "MYSTERY_LOG_LEVEL": "debug",
        })
        assert settings.scripts_dir == Path("/tmp/scripts")
        assert settings.store_ready_timeout == 2.5
        assert settings.code_attempts == 4
        assert settings.log_level == "DEBUG"

    def test_empty_values_keep_defaults(self) -> None:
        settings = Settings.from_env({"MYSTERY_CODE_ATTEMPTS": ""})
        assert settings.code_attempts == DEFAULT_CODE_ATTEMPTS

    @pytest.mark.parametrize("env", [
        {"MYSTERY_CODE_ATTEMPTS": "0"},
        {"MYSTERY_CODE_ATTEMPTS": "many"},
        {"MYSTERY_STORE_READY_TIMEOUT": "-1"},
        {"MYSTERY_LOG_LEVEL": "chatty"},
    ])
    def test_invalid_values_rejected(self, env) -> None:
        with pytest.raises(PydanticValidationError):
            Settings.from_env(env)

    def test_reads_process_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("MYSTERY_CODE_ATTEMPTS", "7")
        assert Settings.from_env().code_attempts == 7

    def test_log_level_normalised(self) -> None:
        assert Settings(log_level="info").log_level == "INFO"
        with pytest.raises(PydanticValidationError):
            Settings(log_level="verbose")
