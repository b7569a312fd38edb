"""Autopilot for virtual players.

Virtual players are host-controlled stand-ins that fill empty
characters. They never act on their own; the host (or the simulator)
drives them through this autopilot, which marks them ready and files
random accusations so that a session with stand-ins can still advance.
"""

import logging
import random
from typing import Optional

from mystery.engine.session_coordinator import SessionCoordinator
from mystery.errors import ValidationError
from mystery.models.rounds import RoundOrdinal
from mystery.models.session import AccusationRecord, Player, SessionSnapshot

logger = logging.getLogger(__name__)


class VirtualPlayerAutopilot:
    """Acts for every virtual player in a session.

    Usage:
        autopilot = VirtualPlayerAutopilot(coordinator, seed=7)
        await autopilot.play_round(code)   # ready up / accuse as needed
    """

    def __init__(self, coordinator: SessionCoordinator, seed: Optional[int] = None):
        self._coordinator = coordinator
        self._rng = random.Random(seed)

    @staticmethod
    def _virtual_players(snapshot: SessionSnapshot) -> list[Player]:
        return [p for p in snapshot.players if p.is_virtual]

    async def ready_virtual_players(self, code: str) -> list[str]:
        """Mark every virtual player ready for the current round.

        Returns:
            Identities that were marked ready
        """
        snapshot = await self._coordinator.get_snapshot(code)
        current = snapshot.session.current_round
        marked: list[str] = []
        for player in self._virtual_players(snapshot):
            if player.is_ready_for(current):
                continue
            await self._coordinator.set_ready(code, player.identity, current, True)
            marked.append(player.identity)
        return marked

    def choose_suspect(self, candidates: list[str], own_character: Optional[str]) -> str:
        """Pick a random character, avoiding the player's own when possible."""
        pool = [name for name in candidates if name != own_character] or candidates
        if not pool:
            raise ValidationError("No characters to accuse")
        return self._rng.choice(pool)

    async def accuse_randomly(self, code: str, identity: str) -> AccusationRecord:
        """File a random accusation for one player.

        Works for real players too; the host uses it to unblock the
        accusation round for someone who never chose.
        """
        snapshot = await self._coordinator.get_snapshot(code)
        player = snapshot.require_player(identity)
        candidates = [
            c.character_name
            for c in self._coordinator.catalog.get_characters(snapshot.session.script_id)
        ]
        suspect = self.choose_suspect(candidates, player.character_name)
        logger.debug("Session %s: %s randomly accuses %r", code, identity, suspect)
        return await self._coordinator.submit_accusation(code, identity, suspect)

    async def play_round(self, code: str) -> list[str]:
        """Do whatever the current round needs from the virtual players.

        In the accusation round each virtual player without an
        accusation accuses someone; in other rounds they mark ready.

        Returns:
            Identities of the virtual players that acted
        """
        snapshot = await self._coordinator.get_snapshot(code)
        if snapshot.session.current_round is not RoundOrdinal.ACCUSATION:
            return await self.ready_virtual_players(code)

        acted: list[str] = []
        for player in self._virtual_players(snapshot):
            if player.has_accused_in(RoundOrdinal.ACCUSATION):
                continue
            await self.accuse_randomly(code, player.identity)
            acted.append(player.identity)
        return acted
