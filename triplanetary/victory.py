"""
Victory condition evaluation for Triplanetary scenarios.

Determines whether a scenario has been won based on ship destruction,
destinations reached, race checkpoints, or rounds survived. The game
dispatcher freezes phase advancement once a victory is recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Sequence

from .hexgrid import HexCoordinate
from .ship import Ship


class VictoryConditionType(Enum):
    """Supported scenario goals."""
    ELIMINATION = "elimination"
    REACH_DESTINATION = "reach-destination"
    RACE_CHECKPOINTS = "race-checkpoints"
    SURVIVAL = "survival"
    DESTROY_SHIPS = "destroy-ships"


@dataclass(frozen=True)
class Checkpoint:
    position: HexCoordinate
    name: str
    order: int


@dataclass(frozen=True)
class VictoryCondition:
    """
    A scenario goal.

    Attributes:
        type: Kind of goal.
        description: Text shown to the players.
        destination: Target hex (reach-destination).
        destination_name: Display name for the target hex.
        checkpoints: Ordered checkpoints (race-checkpoints).
        rounds: Rounds to survive (survival).
        ships_to_destroy: Enemy ships to destroy (destroy-ships).
    """
    type: VictoryConditionType
    description: str = ""
    destination: Optional[HexCoordinate] = None
    destination_name: str = "destination"
    checkpoints: tuple[Checkpoint, ...] = ()
    rounds: int = 0
    ships_to_destroy: int = 0


@dataclass(frozen=True)
class PlayerVictoryProgress:
    """Per-player progress toward a goal."""
    player_id: str
    checkpoints_visited: tuple[int, ...] = ()
    ships_destroyed: int = 0


@dataclass(frozen=True)
class VictoryState:
    """
    Outcome of victory evaluation so far.

    Attributes:
        game_won: Set once any condition is met; never cleared.
        winner_id: Winning player, None for a draw.
        victory_reason: Human-readable reason.
        player_progress: Progress keyed by player id.
    """
    game_won: bool = False
    winner_id: Optional[str] = None
    victory_reason: str = ""
    player_progress: dict[str, PlayerVictoryProgress] = field(default_factory=dict)


def players_with_ships(ships: Sequence[Ship]) -> list[str]:
    """Players with at least one living ship, in first-seen order."""
    players: list[str] = []
    for ship in ships:
        if not ship.destroyed and ship.player_id not in players:
            players.append(ship.player_id)
    return players


class VictoryEvaluator:
    """
    Evaluates scenario victory conditions.

    Conditions are checked in order; the first one met decides the game.
    """

    def __init__(self, conditions: Sequence[VictoryCondition] = ()):
        self.conditions = tuple(conditions)

    def evaluate_elimination(self, ships: Sequence[Ship], state: VictoryState) -> VictoryState:
        survivors = players_with_ships(ships)
        if len(survivors) == 1:
            return replace(state, game_won=True, winner_id=survivors[0],
                           victory_reason="Elimination: Last player standing")
        if not survivors:
            return replace(state, game_won=True, winner_id=None,
                           victory_reason="Draw: All ships destroyed")
        return state

    def evaluate_destination(
        self,
        condition: VictoryCondition,
        ships: Sequence[Ship],
        state: VictoryState
    ) -> VictoryState:
        for ship in ships:
            if not ship.destroyed and ship.position == condition.destination:
                return replace(state, game_won=True, winner_id=ship.player_id,
                               victory_reason=f"Reached {condition.destination_name}")
        return state

    def evaluate_race(
        self,
        condition: VictoryCondition,
        ships: Sequence[Ship],
        state: VictoryState
    ) -> VictoryState:
        """
        Advance checkpoint progress; a player wins on visiting the last one.

        Checkpoints must be visited in order.
        """
        progress = dict(state.player_progress)
        for ship in ships:
            if ship.destroyed:
                continue
            current = progress.get(ship.player_id, PlayerVictoryProgress(ship.player_id))
            next_index = len(current.checkpoints_visited)
            if next_index >= len(condition.checkpoints):
                continue

            checkpoint = condition.checkpoints[next_index]
            if ship.position != checkpoint.position:
                continue

            current = replace(current, checkpoints_visited=current.checkpoints_visited + (checkpoint.order,))
            progress[ship.player_id] = current
            if len(current.checkpoints_visited) == len(condition.checkpoints):
                return VictoryState(
                    game_won=True,
                    winner_id=ship.player_id,
                    victory_reason="Completed all race checkpoints",
                    player_progress=progress,
                )
        return replace(state, player_progress=progress)

    def evaluate_survival(
        self,
        condition: VictoryCondition,
        ships: Sequence[Ship],
        round_number: int,
        state: VictoryState
    ) -> VictoryState:
        if round_number < condition.rounds:
            return state

        survivors = players_with_ships(ships)
        if not survivors:
            return replace(state, game_won=True, winner_id=None, victory_reason="Draw: No survivors")
        if len(survivors) == 1:
            return replace(state, game_won=True, winner_id=survivors[0],
                           victory_reason=f"Survived {condition.rounds} rounds")
        return replace(state, game_won=True, winner_id=None,
                       victory_reason=f"Multiple players survived {condition.rounds} rounds")

    def evaluate_destroy_ships(
        self,
        condition: VictoryCondition,
        ships: Sequence[Ship],
        state: VictoryState
    ) -> VictoryState:
        """Count destroyed enemy ships for every player."""
        progress = dict(state.player_progress)
        player_ids = list(dict.fromkeys(s.player_id for s in ships))
        for player_id in player_ids:
            destroyed = sum(1 for s in ships if s.destroyed and s.player_id != player_id)
            current = progress.get(player_id, PlayerVictoryProgress(player_id))
            progress[player_id] = replace(current, ships_destroyed=destroyed)
            if destroyed >= condition.ships_to_destroy:
                return VictoryState(
                    game_won=True,
                    winner_id=player_id,
                    victory_reason=f"Destroyed {condition.ships_to_destroy} enemy ships",
                    player_progress=progress,
                )
        return replace(state, player_progress=progress)

    def evaluate(
        self,
        ships: Sequence[Ship],
        round_number: int,
        state: Optional[VictoryState] = None,
    ) -> VictoryState:
        """
        Comprehensive victory evaluation.

        Args:
            ships: All ships, destroyed ones included.
            round_number: Current round (for survival goals).
            state: Previous victory state.

        Returns:
            Updated VictoryState; an already-won state is returned unchanged.
        """
        state = state or VictoryState()
        if state.game_won:
            return state

        for condition in self.conditions:
            if condition.type is VictoryConditionType.ELIMINATION:
                state = self.evaluate_elimination(ships, state)
            elif condition.type is VictoryConditionType.REACH_DESTINATION:
                state = self.evaluate_destination(condition, ships, state)
            elif condition.type is VictoryConditionType.RACE_CHECKPOINTS:
                state = self.evaluate_race(condition, ships, state)
            elif condition.type is VictoryConditionType.SURVIVAL:
                state = self.evaluate_survival(condition, ships, round_number, state)
            elif condition.type is VictoryConditionType.DESTROY_SHIPS:
                state = self.evaluate_destroy_ships(condition, ships, state)
            if state.game_won:
                break
        return state
