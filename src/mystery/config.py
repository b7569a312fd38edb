"""Environment-level configuration.

Keeps deployment-dependent values (where scripts live, how long to wait
for the store, how many code attempts to make) out of game logic.
Command-line flags in play.py override these values.
"""

import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator

BUNDLED_SCRIPTS_DIR = Path(__file__).parent / "scripts"

# The original clients waited up to 10s for the store before giving up
DEFAULT_STORE_READY_TIMEOUT = 10.0
DEFAULT_CODE_ATTEMPTS = 10
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Runtime settings."""

    scripts_dir: Path = BUNDLED_SCRIPTS_DIR
    store_ready_timeout: float = Field(default=DEFAULT_STORE_READY_TIMEOUT, gt=0)
    code_attempts: int = Field(default=DEFAULT_CODE_ATTEMPTS, ge=1)
    log_level: str = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def _known_log_level(cls, value: object) -> str:
        level = str(value).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}; expected one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "Settings":
        """Build settings from MYSTERY_* environment variables.

        Unset variables keep their defaults; malformed values raise
        pydantic.ValidationError.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if env.get("MYSTERY_SCRIPTS_DIR"):
            values["scripts_dir"] = Path(env["MYSTERY_SCRIPTS_DIR"])
        if env.get("MYSTERY_STORE_READY_TIMEOUT"):
            values["store_ready_timeout"] = env["MYSTERY_STORE_READY_TIMEOUT"]
        if env.get("MYSTERY_CODE_ATTEMPTS"):
            values["code_attempts"] = env["MYSTERY_CODE_ATTEMPTS"]
        if env.get("MYSTERY_LOG_LEVEL"):
            values["log_level"] = env["MYSTERY_LOG_LEVEL"]
        return cls.model_validate(values)
