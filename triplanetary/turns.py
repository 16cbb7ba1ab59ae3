"""
Turn phase state machine.

Each player runs through Plot -> Ordnance -> Movement -> Combat ->
Maintenance, then play passes to the next player in turn order. Wrapping
back to the first player starts a new round.

Transitions and button labels are explicit tables so a missing phase shows
up as a KeyError in tests rather than a silent fallthrough.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

logger = logging.getLogger(__name__)


class GamePhase(Enum):
    """Phases of one player's turn, in order."""
    PLOT = "Plot"
    ORDNANCE = "Ordnance"
    MOVEMENT = "Movement"
    COMBAT = "Combat"
    MAINTENANCE = "Maintenance"


# Phase that follows each phase for the same player. Maintenance hands the
# turn to the next player (see advance_phase).
NEXT_PHASE: dict[GamePhase, GamePhase] = {
    GamePhase.PLOT: GamePhase.ORDNANCE,
    GamePhase.ORDNANCE: GamePhase.MOVEMENT,
    GamePhase.MOVEMENT: GamePhase.COMBAT,
    GamePhase.COMBAT: GamePhase.MAINTENANCE,
    GamePhase.MAINTENANCE: GamePhase.PLOT,
}

PHASE_BUTTON_LABEL: dict[GamePhase, str] = {
    GamePhase.PLOT: "Next: Ordnance",
    GamePhase.ORDNANCE: "Next: Movement",
    GamePhase.MOVEMENT: "Next: Combat",
    GamePhase.COMBAT: "Next: Maintenance",
    GamePhase.MAINTENANCE: "End Turn",
}

# Plot label while some ships still need a plotted move
PLOT_PENDING_LABEL = "Plot All Ships"


@dataclass(frozen=True)
class TurnHistoryEntry:
    """One recorded phase transition."""
    player_id: str
    phase: GamePhase
    round_number: int


@dataclass(frozen=True)
class TurnState:
    """
    Whose turn it is and in which phase.

    Attributes:
        current_player_index: Index into turn_order.
        turn_order: Player ids in play order.
        current_phase: Phase of the current player.
        round_number: Starts at 1, +1 each time play wraps to index 0.
    """
    current_player_index: int
    turn_order: tuple[str, ...]
    current_phase: GamePhase = GamePhase.PLOT
    round_number: int = 1

    @property
    def current_player_id(self) -> str:
        return self.turn_order[self.current_player_index]


def create_turn_state(turn_order: Sequence[str]) -> TurnState:
    """
    Initial turn state: first player, Plot phase, round 1.

    Raises:
        ValueError: If turn_order is empty.
    """
    if not turn_order:
        raise ValueError("Turn order must contain at least one player")
    return TurnState(current_player_index=0, turn_order=tuple(turn_order))


def next_turn(turn_state: TurnState) -> TurnState:
    """Hand play to the next player's Plot phase, bumping the round on wrap."""
    next_index = (turn_state.current_player_index + 1) % len(turn_state.turn_order)
    round_number = turn_state.round_number + 1 if next_index == 0 else turn_state.round_number
    return replace(
        turn_state,
        current_player_index=next_index,
        current_phase=GamePhase.PLOT,
        round_number=round_number,
    )


def advance_phase(turn_state: TurnState) -> TurnState:
    """
    Move to the next phase.

    Within a player's turn the phases follow NEXT_PHASE; leaving Maintenance
    hands play to the next player.
    """
    if turn_state.current_phase is GamePhase.MAINTENANCE:
        advanced = next_turn(turn_state)
    else:
        advanced = replace(turn_state, current_phase=NEXT_PHASE[turn_state.current_phase])

    logger.info(
        f"Phase {turn_state.current_phase.value} -> {advanced.current_phase.value} "
        f"(player {advanced.current_player_id}, round {advanced.round_number})"
    )
    return advanced


def history_entry(turn_state: TurnState) -> TurnHistoryEntry:
    """History record for the phase a turn state is in."""
    return TurnHistoryEntry(
        player_id=turn_state.current_player_id,
        phase=turn_state.current_phase,
        round_number=turn_state.round_number,
    )


def next_phase_label(phase: GamePhase, all_ships_plotted: bool = True) -> str:
    """Text for the end-phase button."""
    if phase is GamePhase.PLOT and not all_ships_plotted:
        return PLOT_PENDING_LABEL
    return PHASE_BUTTON_LABEL[phase]
