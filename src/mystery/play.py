#!/usr/bin/env python
"""Command-line simulator for murder-mystery sessions.

Usage:
    mystery --list-scripts                 # Show the scripts that can be played
    mystery                                # Simulate a full session with the first available script
    mystery --script blackwood-manor --seed 42
    mystery --players 3 --watch            # Print every change-feed snapshot
    mystery --validate                     # Check session invariants after every round
"""

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path
from typing import Optional

# Enable Windows console colors
if sys.platform == "win32":
    import colorama
    colorama.init()

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from pydantic import ValidationError as PydanticValidationError

from mystery.catalog import GameScriptCatalog
from mystery.config import Settings
from mystery.engine import CollectingValidator, SessionCodeGenerator, SessionCoordinator
from mystery.errors import MysteryError
from mystery.models import RoundOrdinal, SessionSnapshot
from mystery.store import InMemoryGameStateStore
from mystery.virtual import VirtualPlayerAutopilot

HOST_ID = "host"
HOST_NAME = "Host"


def print_script_table(console: Console, catalog: GameScriptCatalog) -> None:
    """Render the catalog as a table."""
    table = Table(title="Available scripts")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Players", justify="center")
    table.add_column("Difficulty")
    table.add_column("Status")

    for summary in catalog.list_scripts():
        status = summary.status if summary.is_active else f"[dim]{summary.status}[/dim]"
        table.add_row(
            summary.script_id,
            summary.title,
            f"{summary.min_players}-{summary.max_players}",
            summary.difficulty or "-",
            status,
        )
    console.print(table)


def _create_watch_callback(console: Console):
    """Create a change-feed callback that prints a one-line summary.

    Returns:
        Callback function to pass to SessionCoordinator.subscribe
    """

    def callback(snapshot: SessionSnapshot) -> None:
        session = snapshot.session
        current = session.current_round
        ready = sum(1 for p in snapshot.players if p.is_ready_for(current))
        console.print(
            f"[dim]snapshot {session.code} status={session.status.value} "
            f"round={current.value} players={snapshot.player_count} "
            f"ready={ready} accusations={len(session.accusations)}[/dim]"
        )

    return callback


def _pick_script(catalog: GameScriptCatalog, script_id: Optional[str]) -> Optional[str]:
    if script_id:
        return script_id
    for summary in catalog.list_scripts():
        if summary.is_active:
            return summary.script_id
    return None


async def run_simulation(
    catalog: GameScriptCatalog,
    settings: Settings,
    script_id: str,
    seed: int,
    players: Optional[int] = None,
    watch: bool = False,
    validate: bool = False,
) -> int:
    """Play one session from lobby to the end against the in-memory store.

    The host holds the first character; virtual players fill the rest
    and are driven by the autopilot.

    Args:
        catalog: Loaded scripts
        settings: Timeouts and retry caps
        script_id: Script to play
        seed: Seed for session codes and autopilot choices
        players: Total player count including the host (default: script maximum)
        watch: Print every change-feed snapshot
        validate: Collect state-consistency violations after each round

    Returns:
        Process exit code
    """
    console = Console()
    store = InMemoryGameStateStore()
    await store.connect()

    validator = CollectingValidator() if validate else None
    coordinator = SessionCoordinator(
        store,
        catalog,
        code_factory=SessionCodeGenerator(seed),
        settings=settings,
        validator=validator,
    )
    autopilot = VirtualPlayerAutopilot(coordinator, seed=seed)

    code = await coordinator.create_session(HOST_ID, HOST_NAME, script_id)
    unsubscribe = coordinator.subscribe(code, _create_watch_callback(console)) if watch else None

    flow = catalog.get_game_flow(script_id)
    script = catalog.require_script(script_id)
    console.print(Panel(
        f"[bold]{script.title}[/bold]\n\n{script.description}\n\n"
        f"Session code: [bold cyan]{code}[/bold cyan]  (seed {seed})",
        title="New session",
    ))

    host_character = catalog.get_characters(script_id)[0].character_name
    await coordinator.assign_character(code, HOST_ID, host_character)

    wanted = players or flow.max_players
    for character in catalog.get_available_characters(script_id, [host_character])[:max(wanted - 1, 0)]:
        await coordinator.add_virtual_player(code, character.character_name)

    snapshot = await coordinator.get_snapshot(code)
    for player in snapshot.players:
        tag = " (host)" if player.is_host else " (virtual)" if player.is_virtual else ""
        console.print(f"  {player.character_name or '-'}: {player.display_name}{tag}")

    await coordinator.start_game(code)
    introduction = catalog.get_introduction(script_id)
    if introduction:
        console.print(Panel(introduction, title="Introduction"))
    await coordinator.mark_introduction_shown(code)

    while True:
        snapshot = await coordinator.get_snapshot(code)
        current = snapshot.session.current_round
        if current.is_terminal:
            break

        console.print(
            f"\n[bold]Round {current.value}[/bold]: "
            f"{catalog.get_round_instructions(script_id, current)}"
        )
        block = catalog.get_character_script(script_id, host_character, current)
        if block and block.introduction:
            console.print(f"  [italic]{block.introduction}[/italic]")

        if current is RoundOrdinal.ACCUSATION:
            record = await autopilot.accuse_randomly(code, HOST_ID)
            console.print(f"  Host accuses [bold]{record.accused_character}[/bold]")
        else:
            await coordinator.set_ready(code, HOST_ID)
        await autopilot.play_round(code)
        await coordinator.advance_round(code)

    if unsubscribe:
        unsubscribe()

    totals = await coordinator.vote_totals(code)
    table = Table(title="Votes")
    table.add_column("Character")
    table.add_column("Votes", justify="right")
    table.add_column("Accused by")
    for character, accusers in totals.items():
        table.add_row(character, str(len(accusers)), ", ".join(accusers) or "-")
    console.print(table)

    results = await coordinator.results(code)
    console.print(Panel(
        f"[bold]The END[/bold]\n\n"
        f"Murderer(s): {', '.join(results.murderer_characters) or 'none'}\n"
        f"Correct accusations: {results.correct_accusations}/{results.total_accusations}\n"
        f"Solved by: {', '.join(results.correct_accusers) or 'nobody'}",
        title="Result",
    ))

    if validator is not None:
        violations = validator.get_violations()
        console.print(f"\nTransitions checked: {validator.transitions_checked}")
        if violations:
            console.print(f"[red]Violations ({len(violations)}):[/red]")
            for v in violations:
                console.print(f"  {v.describe()}")
            return 1
        console.print("Violations: None")
    return 0


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command-line overrides applied."""
    overrides: dict[str, object] = {}
    if args.scripts_dir is not None:
        overrides["scripts_dir"] = args.scripts_dir
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    settings = Settings.from_env()
    if not overrides:
        return settings
    return Settings.model_validate({**settings.model_dump(), **overrides})


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Murder mystery party game - session simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument(
        "--list-scripts",
        action="store_true",
        help="List the scripts found in the scripts directory and exit"
    )
    parser.add_argument(
        "--scripts-dir",
        type=Path,
        default=None,
        help="Directory of script documents (default: MYSTERY_SCRIPTS_DIR or the bundled scripts)"
    )
    parser.add_argument(
        "--script",
        type=str,
        default=None,
        help="Script id to play (default: first available script)"
    )
    parser.add_argument(
        "--players",
        type=int,
        default=None,
        help="Total players including the host (default: the script's maximum)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible sessions"
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Print every snapshot delivered by the change feed"
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Check session invariants after every round transition"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: MYSTERY_LOG_LEVEL or WARNING)"
    )

    args = parser.parse_args()

    try:
        settings = load_settings(args)
    except PydanticValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            print(f"Error: invalid {field} setting: {error['msg']}")
        return 1

    # Configure logging
    logging.basicConfig(
        level=settings.log_level,
        format="%(name)s: %(message)s",
    )

    if args.players is not None and args.players < 1:
        print("Error: --players must be a positive integer")
        return 1

    console = Console()
    catalog = GameScriptCatalog.from_directory(settings.scripts_dir)

    if args.list_scripts:
        print_script_table(console, catalog)
        return 0

    script_id = _pick_script(catalog, args.script)
    if script_id is None:
        console.print(f"[red]No playable scripts found in {settings.scripts_dir}[/red]")
        return 1

    # Generate seed if not provided
    if args.seed is None:
        args.seed = random.randint(1, 1000000)

    try:
        return asyncio.run(run_simulation(
            catalog,
            settings,
            script_id,
            args.seed,
            players=args.players,
            watch=args.watch,
            validate=args.validate,
        ))
    except MysteryError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    exit(main())
