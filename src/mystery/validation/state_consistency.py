"""Session State Consistency Validators (S.1-S.7).

Rules:
- S.1: status COMPLETED iff current round is END
- S.2: status LOBBY implies current round is PENDING
- S.3: readiness entries exist only for rounds the session has reached
- S.4: at most one non-virtual player per assigned character
- S.5: player count never exceeds max_players
- S.6: exactly one host player, and it matches the session's host id
- S.7: every aggregate accusation has a matching player-side record
"""

from mystery.models.rounds import RoundOrdinal
from mystery.models.session import SessionSnapshot, SessionStatus
from .exceptions import InvariantViolationError
from .types import ValidationResult, ValidationViolation


def validate_session_state(snapshot: SessionSnapshot) -> ValidationResult:
    """Validate session consistency rules S.1-S.7.

    Args:
        snapshot: Session plus players, as read from the store

    Returns:
        ValidationResult with every violation found
    """
    violations: list[ValidationViolation] = []
    session = snapshot.session
    current = session.current_round

    # S.1: COMPLETED <-> END
    is_completed = session.status is SessionStatus.COMPLETED
    if is_completed != (current is RoundOrdinal.END):
        violations.append(ValidationViolation(
            rule_id="S.1",
            category="Session Lifecycle",
            message=f"status={session.status.value} but current_round={current.value}",
            context={"status": session.status.value, "round": current.value},
        ))

    # S.2: LOBBY -> PENDING
    if session.status is SessionStatus.LOBBY and current is not RoundOrdinal.PENDING:
        violations.append(ValidationViolation(
            rule_id="S.2",
            category="Session Lifecycle",
            message=f"status=LOBBY but current_round={current.value}",
            context={"round": current.value},
        ))

    # S.3: readiness only for reached rounds
    for player in snapshot.players:
        ahead = [r.value for r in player.readiness if not r.reached_by(current)]
        if ahead:
            violations.append(ValidationViolation(
                rule_id="S.3",
                category="Readiness",
                message=f"Player {player.identity} has readiness for unreached round(s) {ahead}",
                context={"identity": player.identity, "rounds": ahead, "current": current.value},
            ))

    # S.4: one real player per character
    real_holders: dict[str, list[str]] = {}
    for player in snapshot.players:
        if player.character_name and not player.is_virtual:
            real_holders.setdefault(player.character_name, []).append(player.identity)
    for character, holders in real_holders.items():
        if len(holders) > 1:
            violations.append(ValidationViolation(
                rule_id="S.4",
                category="Character Assignment",
                message=f"Character {character!r} held by {len(holders)} real players",
                context={"character": character, "holders": holders},
            ))

    # S.5: capacity
    if snapshot.player_count > session.max_players:
        violations.append(ValidationViolation(
            rule_id="S.5",
            category="Capacity",
            message=f"{snapshot.player_count} players exceed max_players={session.max_players}",
            context={"players": snapshot.player_count, "max": session.max_players},
        ))

    # S.6: host membership
    hosts = [p.identity for p in snapshot.players if p.is_host]
    if hosts != [session.host_id]:
        violations.append(ValidationViolation(
            rule_id="S.6",
            category="Host",
            message=f"Host players {hosts} do not match session host {session.host_id!r}",
            context={"hosts": hosts, "host_id": session.host_id},
        ))

    # S.7: aggregate accusations mirror player records
    for accusation in session.accusations:
        player = snapshot.player(accusation.accuser_id)
        if player is None:
            # Accuser may have left since; records are kept
            continue
        matched = any(
            r.round == accusation.round and r.accused_character == accusation.accused_character
            for r in player.accusations_made
        )
        if not matched:
            violations.append(ValidationViolation(
                rule_id="S.7",
                category="Accusations",
                message=(
                    f"Aggregate accusation by {accusation.accuser_id} against "
                    f"{accusation.accused_character!r} has no player record"
                ),
                context={"accuser": accusation.accuser_id, "accused": accusation.accused_character},
            ))

    return ValidationResult(violations=violations)


def assert_session_state(snapshot: SessionSnapshot) -> None:
    """Raise InvariantViolationError if any ERROR-level rule fails."""
    result = validate_session_state(snapshot)
    if not result.is_valid:
        raise InvariantViolationError(result.violations, code=snapshot.code)


__all__ = ["validate_session_state", "assert_session_state"]
