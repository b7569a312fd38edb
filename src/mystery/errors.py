"""Exception hierarchy for session, round and store failures.

Every failure surfaced by the engine, the coordinator or a store derives
from MysteryError, so callers can catch the whole family at once or pick
out one category:

- ValidationError: bad input, rejected before any state change
- GuardViolation: a transition or mutation whose precondition is unmet
- NotFoundError: session, player or script absent
- CapacityError: session full, or too few players to start
- PersistenceError: store unreachable, timed out, or code space exhausted
"""

from typing import Optional


class MysteryError(Exception):
    """Base class for all errors raised by the mystery package."""

    pass


# ============================================================================
# Categories
# ============================================================================


class ValidationError(MysteryError):
    """Raised when an operation receives bad input."""

    pass


class GuardViolation(MysteryError):
    """Raised when a transition is attempted without meeting its guard.

    Attributes:
        waiting_on: Identities of players that still block the guard,
            so a display layer can say "waiting for N more players".
    """

    def __init__(self, message: str, waiting_on: Optional[list[str]] = None):
        super().__init__(message)
        self.waiting_on: list[str] = list(waiting_on or [])


class NotFoundError(MysteryError):
    """Raised when a session, player or script does not exist."""

    pass


class CapacityError(MysteryError):
    """Raised when a session is full or below its minimum player count."""

    pass


class PersistenceError(MysteryError):
    """Raised when the state store cannot complete a request."""

    pass


# ============================================================================
# Concrete errors
# ============================================================================


class ScriptNotFound(NotFoundError, ValidationError):
    """Unknown script id."""

    def __init__(self, script_id: str):
        super().__init__(f"Script not found: {script_id!r}")
        self.script_id = script_id


class ScriptUnavailable(ValidationError):
    """Script exists but is not playable yet (e.g. status coming_soon)."""

    def __init__(self, script_id: str, status: str):
        super().__init__(f"Script {script_id!r} is not available (status={status})")
        self.script_id = script_id
        self.status = status


class CharacterNotFound(ValidationError):
    """Character name is not part of the session's script."""

    def __init__(self, script_id: str, character_name: str):
        super().__init__(f"Character {character_name!r} not found in script {script_id!r}")
        self.script_id = script_id
        self.character_name = character_name


class CharacterTaken(ValidationError):
    """Character is already held by another real player."""

    def __init__(self, character_name: str, holder_id: str):
        super().__init__(f"Character {character_name!r} is already taken by {holder_id!r}")
        self.character_name = character_name
        self.holder_id = holder_id


class SessionNotFound(NotFoundError):
    """No session with this code (or it was soft-deleted)."""

    def __init__(self, code: str):
        super().__init__(f"Session not found: {code!r}")
        self.code = code


class PlayerNotFound(NotFoundError):
    """Identity has no membership record in the session."""

    def __init__(self, code: str, identity: str):
        super().__init__(f"Player {identity!r} not found in session {code!r}")
        self.code = code
        self.identity = identity


class SessionFull(CapacityError):
    """Session already holds its maximum number of players."""

    def __init__(self, code: str, max_players: int):
        super().__init__(f"Session {code!r} is full ({max_players} players)")
        self.code = code
        self.max_players = max_players


class NotEnoughPlayers(CapacityError):
    """Session has fewer players than the script requires to start."""

    def __init__(self, code: str, have: int, need: int):
        super().__init__(
            f"Cannot start session {code!r}: need {need} players, have {have}"
        )
        self.code = code
        self.have = have
        self.need = need


class SessionAlreadyStarted(GuardViolation):
    """Session has left the lobby; it can no longer be joined or started."""

    def __init__(self, code: str):
        super().__init__(f"Session {code!r} has already started")
        self.code = code


class SessionDeleted(GuardViolation):
    """Session was soft-deleted by its host."""

    def __init__(self, code: str):
        super().__init__(f"Session {code!r} has been deleted")
        self.code = code


class GameNotStarted(GuardViolation):
    """Round operation attempted while the session is still in the lobby."""

    def __init__(self, code: str):
        super().__init__(f"Session {code!r} has not started yet")
        self.code = code


class GameCompleted(GuardViolation):
    """Round operation attempted after the terminal round."""

    def __init__(self, code: str):
        super().__init__(f"Session {code!r} is already completed")
        self.code = code


class NotHost(GuardViolation):
    """Host-only operation requested by another identity."""

    def __init__(self, code: str, identity: str):
        super().__init__(f"Only the host of session {code!r} may do this (requested by {identity!r})")
        self.code = code
        self.identity = identity


class PersistenceUnavailable(PersistenceError):
    """Store unreachable or not ready within the allowed wait."""

    pass


class SessionCodeTaken(PersistenceError):
    """A session document with this code already exists."""

    def __init__(self, code: str):
        super().__init__(f"Session code {code!r} is already in use")
        self.code = code


class CodeGenerationExhausted(PersistenceError):
    """No unused session code found within the attempt cap."""

    def __init__(self, attempts: int):
        super().__init__(f"Unable to generate a unique session code after {attempts} attempts")
        self.attempts = attempts
