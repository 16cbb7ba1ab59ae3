"""
Game state and command dispatcher for the Triplanetary engine.

The presentation layer sends commands (select ship, plot move, declare
attack, launch ordnance, end phase, ...) and reads back queries. Every
command is re-validated here: an invalid command is absorbed as a no-op,
returning the very same GameState object, and the reason is reported as a
RejectionReason rather than raised.

GameState is an immutable value threaded through apply_command;
GameSession owns the current value together with the die source, gravity
rule variant and event log.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Sequence, Union

from .celestial import CelestialBody, GravityWellZone, advance_planet_orbit, load_solar_system
from .combat import (
    ODDS_COLUMNS,
    CombatLogEntry,
    CombatResolver,
    CombatResult,
    CombatResultsTable,
    CombatRules,
    CombatStage,
    DeclaredAttack,
    can_ship_attack,
    create_declared_attack,
    execute_combat_phase,
    get_valid_targets,
)
from .config import GameConfig, load_rules_data
from .errors import RejectionReason, UnknownCommandError
from .gravity import GravityModel, gravity_model_for, gravity_zones_at
from .hexgrid import HexCoordinate, VelocityVector, hex_length, hex_subtract
from .movement import (
    PlottedMove,
    PlottingStatus,
    are_all_ships_plotted,
    execute_movement_phase,
    plot_base,
    plotting_status,
)
from .ordnance import (
    DetonationHandler,
    Ordnance,
    OrdnanceType,
    find_ordnance_contacts,
    launch_ordnance,
    move_ordnance,
)
from .physics import HexVector, ReachableHex, calculate_reachable_hexes
from .ship import Ship, find_ship, replace_ship
from .turns import (
    GamePhase,
    TurnHistoryEntry,
    TurnState,
    advance_phase,
    create_turn_state,
    history_entry,
    next_phase_label,
)
from .victory import VictoryCondition, VictoryEvaluator, VictoryState

logger = logging.getLogger(__name__)


def _frozen(mapping: Optional[Mapping] = None) -> Mapping:
    """Read-only copy of a mapping."""
    return MappingProxyType(dict(mapping or {}))


# =============================================================================
# GAME STATE
# =============================================================================

@dataclass(frozen=True)
class GameState:
    """
    Complete state of one game.

    Attributes:
        turn: Current player, phase and round.
        ships: All ships, destroyed ones included.
        bodies: Celestial bodies.
        selected_ship_id: Ship selected by the presentation layer.
        show_reachable_hexes: Whether reachable hexes are displayed.
        plotted_moves: Plotted moves for this round, by ship id.
        declared_attacks: Pending attacks, by attacker id.
        combat_stage: Where the combat queue is in its lifecycle.
        combat_log: Append-only combat history.
        last_combat_results: Results of the most recent Combat phase.
        ordnance: Launched ordnance still in play.
        weak_gravity_choices: Weak gravity hexes mapped to accept/decline.
        victory: Victory evaluation so far.
        turn_history: Phases entered, oldest first.
        ordnance_launched: Number of ordnance launched (id sequence).
    """
    turn: TurnState
    ships: tuple[Ship, ...] = ()
    bodies: tuple[CelestialBody, ...] = ()
    selected_ship_id: Optional[str] = None
    show_reachable_hexes: bool = True
    plotted_moves: Mapping[str, PlottedMove] = field(default_factory=_frozen)
    declared_attacks: Mapping[str, DeclaredAttack] = field(default_factory=_frozen)
    combat_stage: CombatStage = CombatStage.NO_ATTACKS_DECLARED
    combat_log: tuple[CombatLogEntry, ...] = ()
    last_combat_results: tuple[CombatResult, ...] = ()
    ordnance: tuple[Ordnance, ...] = ()
    weak_gravity_choices: Mapping[HexCoordinate, bool] = field(default_factory=_frozen)
    victory: VictoryState = field(default_factory=VictoryState)
    turn_history: tuple[TurnHistoryEntry, ...] = ()
    ordnance_launched: int = 0

    @property
    def current_player_id(self) -> str:
        return self.turn.current_player_id

    @property
    def current_phase(self) -> GamePhase:
        return self.turn.current_phase

    @property
    def round_number(self) -> int:
        return self.turn.round_number

    def ship(self, ship_id: Optional[str]) -> Optional[Ship]:
        return find_ship(self.ships, ship_id)


def create_game_state(
    player_ids: Sequence[str],
    ships: Sequence[Ship] = (),
    bodies: Sequence[CelestialBody] = (),
) -> GameState:
    """Initial state: first player's Plot phase, round 1."""
    turn = create_turn_state(player_ids)
    return GameState(
        turn=turn,
        ships=tuple(ships),
        bodies=tuple(bodies),
        turn_history=(history_entry(turn),),
    )


# =============================================================================
# COMMANDS
# =============================================================================

@dataclass(frozen=True)
class SelectShip:
    """Select a ship, or clear the selection with None."""
    ship_id: Optional[str] = None


@dataclass(frozen=True)
class PlotMove:
    """
    Commit a velocity for a ship this round.

    thrust_used is the total thrust spent this round, not an increment.
    """
    ship_id: str
    velocity: VelocityVector
    thrust_used: int


@dataclass(frozen=True)
class PlotDestination:
    """Plot toward a hex picked from the reachable-hex map."""
    ship_id: str
    destination: HexCoordinate


@dataclass(frozen=True)
class ClearPlot:
    ship_id: str


@dataclass(frozen=True)
class DeclareAttack:
    """Declare an attack; odds are computed from weapon strengths if None."""
    attacker_id: str
    target_id: str
    odds: Optional[str] = None


@dataclass(frozen=True)
class LaunchOrdnance:
    ship_id: str
    ordnance_type: OrdnanceType


@dataclass(frozen=True)
class ChooseWeakGravity:
    """Accept or decline the weak gravity arrow at a hex."""
    position: HexCoordinate
    use_gravity: bool


@dataclass(frozen=True)
class EndPhase:
    pass


@dataclass(frozen=True)
class EndTurn:
    """Run the remaining phases and hand play to the next player."""
    pass


@dataclass(frozen=True)
class ToggleReachableHexesDisplay:
    pass


Command = Union[
    SelectShip, PlotMove, PlotDestination, ClearPlot, DeclareAttack,
    LaunchOrdnance, ChooseWeakGravity, EndPhase, EndTurn, ToggleReachableHexesDisplay,
]


# =============================================================================
# EVENTS
# =============================================================================

class GameEventType(Enum):
    """Types of events that can occur during a game."""
    # Command events
    SHIP_SELECTED = auto()
    MOVE_PLOTTED = auto()
    PLOT_CLEARED = auto()
    ATTACK_DECLARED = auto()
    ORDNANCE_LAUNCHED = auto()
    WEAK_GRAVITY_CHOSEN = auto()
    DISPLAY_TOGGLED = auto()
    COMMAND_REJECTED = auto()

    # Phase events
    PHASE_ADVANCED = auto()
    SHIPS_MOVED = auto()
    COLLISION = auto()
    ORDNANCE_CONTACT = auto()
    COMBAT_RESOLVED = auto()
    SHIP_DESTROYED = auto()
    GAME_WON = auto()


@dataclass
class GameEvent:
    """
    An event that occurs during a game.

    Attributes:
        event_type: The type of event.
        round_number: Round in which the event occurred.
        player_id: Player whose turn it was.
        ship_id: ID of the ship involved (if applicable).
        target_id: ID of the target (if applicable).
        data: Additional event-specific data.
    """
    event_type: GameEventType
    round_number: int
    player_id: str
    ship_id: Optional[str] = None
    target_id: Optional[str] = None
    data: dict = field(default_factory=dict)

    def __str__(self) -> str:
        ship_str = f"[{self.ship_id}]" if self.ship_id else ""
        target_str = f" -> {self.target_id}" if self.target_id else ""
        return f"R{self.round_number} {self.player_id} {ship_str} {self.event_type.name}{target_str}"


@dataclass(frozen=True)
class CommandContext:
    """
    Collaborators used while applying commands.

    Attributes:
        resolver: Combat die source and results table.
        gravity_model: Gravity rule variant for the Movement phase.
        victory_evaluator: Scenario victory conditions.
        detonation_handler: Decides ordnance contacts (nothing detonates if None).
        clock: Timestamp source for combat log entries.
        orbital_motion: Advance planets at the start of each round.
    """
    resolver: CombatResolver
    gravity_model: GravityModel
    victory_evaluator: VictoryEvaluator = field(default_factory=VictoryEvaluator)
    detonation_handler: Optional[DetonationHandler] = None
    clock: Callable[[], float] = time.time
    orbital_motion: bool = False


@dataclass
class DispatchResult:
    """New state, the rejection reason (None if applied) and emitted events."""
    state: GameState
    rejection: Optional[RejectionReason] = None
    events: list[GameEvent] = field(default_factory=list)


class _Dispatch:
    """Working area for a single command."""

    def __init__(self, context: CommandContext):
        self.context = context
        self.events: list[GameEvent] = []

    def emit(
        self,
        state: GameState,
        event_type: GameEventType,
        ship_id: Optional[str] = None,
        target_id: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> None:
        self.events.append(GameEvent(
            event_type=event_type,
            round_number=state.round_number,
            player_id=state.current_player_id,
            ship_id=ship_id,
            target_id=target_id,
            data=data or {},
        ))


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def _own_active_ship(state: GameState, ship_id: str) -> Ship | RejectionReason:
    """The current player's living ship with this id, or why it is not usable."""
    ship = state.ship(ship_id)
    if ship is None:
        return RejectionReason.UNKNOWN_SHIP
    if ship.destroyed:
        return RejectionReason.SHIP_DESTROYED
    if ship.player_id != state.current_player_id:
        return RejectionReason.NOT_CURRENT_PLAYER
    return ship


def available_plot_thrust(ship: Ship, plotted_moves: Mapping[str, PlottedMove]) -> tuple[VelocityVector, int]:
    """
    Base velocity and unspent thrust for further plotting.

    Disabled ships have no thrust and can only coast.
    """
    base_velocity, used = plot_base(ship, plotted_moves)
    if ship.is_disabled:
        return base_velocity, 0
    return base_velocity, max(0, ship.stats.max_thrust - used)


def reachable_hexes_for(state: GameState, ship_id: Optional[str]) -> dict[HexCoordinate, ReachableHex]:
    """Reachable-hex map for a ship, continuing from its plot if any."""
    ship = state.ship(ship_id)
    if ship is None or ship.destroyed:
        return {}
    base_velocity, available = available_plot_thrust(ship, state.plotted_moves)
    return calculate_reachable_hexes(ship.position, base_velocity, available)


# =============================================================================
# COMMAND HANDLERS
# =============================================================================

def _select_ship(state: GameState, command: SelectShip, run: _Dispatch) -> GameState | RejectionReason:
    if command.ship_id is not None:
        ship = state.ship(command.ship_id)
        if ship is None:
            return RejectionReason.UNKNOWN_SHIP
        if ship.destroyed:
            return RejectionReason.SHIP_DESTROYED
    run.emit(state, GameEventType.SHIP_SELECTED, ship_id=command.ship_id)
    return replace(state, selected_ship_id=command.ship_id)


def _record_plot(state: GameState, move: PlottedMove, run: _Dispatch) -> GameState:
    plotted = dict(state.plotted_moves)
    plotted[move.ship_id] = move
    run.emit(state, GameEventType.MOVE_PLOTTED, ship_id=move.ship_id, data={
        "velocity": move.new_velocity.to_tuple(),
        "thrust_used": move.thrust_used,
    })
    return replace(state, plotted_moves=_frozen(plotted))


def _plot_move(state: GameState, command: PlotMove, run: _Dispatch) -> GameState | RejectionReason:
    if state.current_phase is not GamePhase.PLOT:
        return RejectionReason.WRONG_PHASE
    ship = _own_active_ship(state, command.ship_id)
    if isinstance(ship, RejectionReason):
        return ship

    if command.thrust_used < 0 or command.thrust_used > ship.stats.max_thrust:
        return RejectionReason.INSUFFICIENT_THRUST
    if ship.is_disabled and command.thrust_used > 0:
        return RejectionReason.SHIP_DISABLED
    if hex_length(hex_subtract(command.velocity, ship.velocity)) > command.thrust_used:
        return RejectionReason.INSUFFICIENT_THRUST

    move = PlottedMove(ship.id, command.velocity, command.thrust_used)
    return _record_plot(state, move, run)


def _plot_destination(state: GameState, command: PlotDestination, run: _Dispatch) -> GameState | RejectionReason:
    if state.current_phase is not GamePhase.PLOT:
        return RejectionReason.WRONG_PHASE
    ship = _own_active_ship(state, command.ship_id)
    if isinstance(ship, RejectionReason):
        return ship

    reachable = reachable_hexes_for(state, ship.id).get(command.destination)
    if reachable is None:
        return RejectionReason.UNREACHABLE_HEX

    _, used = plot_base(ship, state.plotted_moves)
    move = PlottedMove(ship.id, reachable.resulting_velocity, used + reachable.thrust_required)
    return _record_plot(state, move, run)


def _clear_plot(state: GameState, command: ClearPlot, run: _Dispatch) -> GameState | RejectionReason:
    if state.current_phase is not GamePhase.PLOT:
        return RejectionReason.WRONG_PHASE
    ship = _own_active_ship(state, command.ship_id)
    if isinstance(ship, RejectionReason):
        return ship
    if ship.id not in state.plotted_moves:
        return state

    plotted = {k: v for k, v in state.plotted_moves.items() if k != ship.id}
    run.emit(state, GameEventType.PLOT_CLEARED, ship_id=ship.id)
    return replace(state, plotted_moves=_frozen(plotted))


def _declare_attack(state: GameState, command: DeclareAttack, run: _Dispatch) -> GameState | RejectionReason:
    if state.current_phase is not GamePhase.COMBAT:
        return RejectionReason.WRONG_PHASE
    attacker = _own_active_ship(state, command.attacker_id)
    if isinstance(attacker, RejectionReason):
        return attacker
    if not can_ship_attack(attacker):
        return RejectionReason.UNARMED
    if attacker.is_disabled:
        return RejectionReason.SHIP_DISABLED

    target = state.ship(command.target_id)
    if target is None or target not in get_valid_targets(attacker, state.ships):
        return RejectionReason.INVALID_TARGET
    if command.odds is not None and command.odds not in ODDS_COLUMNS:
        return RejectionReason.INVALID_ODDS

    attack = create_declared_attack(
        attacker, target, command.odds,
        free_relative_velocity=run.context.resolver.rules.free_relative_velocity,
    )
    attacks = dict(state.declared_attacks)
    attacks[attacker.id] = attack
    run.emit(state, GameEventType.ATTACK_DECLARED, ship_id=attacker.id, target_id=target.id,
             data={"odds": attack.odds, "modifier": attack.modifiers.total})
    return replace(
        state,
        declared_attacks=_frozen(attacks),
        combat_stage=CombatStage.ATTACKS_PENDING,
    )


def _launch_ordnance(state: GameState, command: LaunchOrdnance, run: _Dispatch) -> GameState | RejectionReason:
    if state.current_phase is not GamePhase.ORDNANCE:
        return RejectionReason.WRONG_PHASE
    ship = _own_active_ship(state, command.ship_id)
    if isinstance(ship, RejectionReason):
        return ship
    if ship.is_disabled:
        return RejectionReason.SHIP_DISABLED

    number = state.ordnance_launched + 1
    result = launch_ordnance(ship, command.ordnance_type, state.round_number, ordnance_id=f"ordnance-{number}")
    if result is None:
        return RejectionReason.NO_ORDNANCE

    logger.info(f"{ship.name} launched {command.ordnance_type.value} {result.ordnance.id}")
    run.emit(state, GameEventType.ORDNANCE_LAUNCHED, ship_id=ship.id,
             data={"ordnance_id": result.ordnance.id, "type": command.ordnance_type.value})
    return replace(
        state,
        ships=replace_ship(state.ships, result.ship),
        ordnance=state.ordnance + (result.ordnance,),
        ordnance_launched=number,
    )


def _choose_weak_gravity(state: GameState, command: ChooseWeakGravity, run: _Dispatch) -> GameState | RejectionReason:
    choices = dict(state.weak_gravity_choices)
    choices[command.position] = command.use_gravity
    run.emit(state, GameEventType.WEAK_GRAVITY_CHOSEN,
             data={"position": command.position.to_tuple(), "use_gravity": command.use_gravity})
    return replace(state, weak_gravity_choices=_frozen(choices))


def _toggle_display(state: GameState, command: ToggleReachableHexesDisplay, run: _Dispatch) -> GameState:
    run.emit(state, GameEventType.DISPLAY_TOGGLED, data={"show": not state.show_reachable_hexes})
    return replace(state, show_reachable_hexes=not state.show_reachable_hexes)


# -----------------------------------------------------------------------------
# Phase effects
# -----------------------------------------------------------------------------

def _emit_destroyed(before: GameState, after_ships: Sequence[Ship], run: _Dispatch, cause: str) -> None:
    for ship in after_ships:
        previous = before.ship(ship.id)
        if ship.destroyed and previous is not None and not previous.destroyed:
            run.emit(before, GameEventType.SHIP_DESTROYED, ship_id=ship.id, data={"cause": cause})


def _run_movement(state: GameState, run: _Dispatch) -> GameState:
    """Move the current player's ships and ordnance."""
    player_id = state.current_player_id
    outcome = execute_movement_phase(
        state.ships,
        state.plotted_moves,
        state.bodies,
        run.context.gravity_model,
        player_id=player_id,
        weak_gravity_choices=state.weak_gravity_choices,
    )
    ships = outcome.ships
    run.emit(state, GameEventType.SHIPS_MOVED, data={
        "positions": {s.id: s.position.to_tuple() for s in ships if s.player_id == player_id},
    })
    for id1, id2 in outcome.collisions:
        run.emit(state, GameEventType.COLLISION, ship_id=id1, target_id=id2)

    own = [o for o in state.ordnance if o.player_id == player_id]
    others = tuple(o for o in state.ordnance if o.player_id != player_id)
    ordnance = others + move_ordnance(own, state.round_number)

    contacts = find_ordnance_contacts(ordnance, ships)
    for contact in contacts:
        run.emit(state, GameEventType.ORDNANCE_CONTACT, ship_id=contact.ship_id,
                 data={"ordnance_id": contact.ordnance_id})
    if contacts and run.context.detonation_handler is not None:
        ships, ordnance = run.context.detonation_handler(contacts, tuple(ships), tuple(ordnance))

    _emit_destroyed(state, ships, run, "movement")

    player_ship_ids = {s.id for s in state.ships if s.player_id == player_id}
    plotted = {
        ship_id: move for ship_id, move in state.plotted_moves.items()
        if ship_id not in player_ship_ids
    }
    return replace(
        state,
        ships=tuple(ships),
        ordnance=tuple(ordnance),
        plotted_moves=_frozen(plotted),
    )


def _run_combat(state: GameState, run: _Dispatch) -> GameState:
    """Resolve the declared attacks once; the queue is kept until cleared."""
    if state.combat_stage is CombatStage.RESOLVED:
        return state
    outcome = execute_combat_phase(
        state.declared_attacks,
        state.ships,
        run.context.resolver,
        clock=run.context.clock,
        first_log_number=len(state.combat_log) + 1,
    )
    for result in outcome.results:
        run.emit(state, GameEventType.COMBAT_RESOLVED, ship_id=result.attack.attacker_id,
                 target_id=result.attack.target_id, data={
                     "die_roll": result.die_roll,
                     "modified_roll": result.modified_roll,
                     "damage_result": result.damage_result,
                 })
    _emit_destroyed(state, outcome.ships, run, "combat")

    return replace(
        state,
        ships=outcome.ships,
        combat_log=state.combat_log + outcome.log_entries,
        last_combat_results=outcome.results,
        combat_stage=CombatStage.RESOLVED,
    )


def _clear_combat(state: GameState) -> GameState:
    """Drop resolved attacks when play leaves the Combat phase."""
    return replace(state, declared_attacks=_frozen(), combat_stage=CombatStage.CLEARED)


def _run_maintenance(state: GameState, run: _Dispatch) -> GameState:
    """Current player's disabled ships recover one turn."""
    player_id = state.current_player_id
    ships = tuple(
        replace(s, disabled_turns=s.disabled_turns - 1)
        if s.player_id == player_id and s.is_disabled else s
        for s in state.ships
    )
    return replace(state, ships=ships)


def _check_victory(state: GameState, run: _Dispatch) -> GameState:
    victory = run.context.victory_evaluator.evaluate(state.ships, state.round_number, state.victory)
    if victory.game_won and not state.victory.game_won:
        logger.info(f"Game won by {victory.winner_id}: {victory.victory_reason}")
        run.emit(state, GameEventType.GAME_WON, data={
            "winner_id": victory.winner_id,
            "reason": victory.victory_reason,
        })
    return replace(state, victory=victory)


def _end_phase(state: GameState, command: EndPhase, run: _Dispatch) -> GameState | RejectionReason:
    if state.victory.game_won:
        return RejectionReason.GAME_OVER
    phase = state.current_phase
    if phase is GamePhase.PLOT and not are_all_ships_plotted(
            state.ships, state.current_player_id, state.plotted_moves):
        return RejectionReason.UNPLOTTED_SHIPS

    if phase is GamePhase.MOVEMENT:
        state = _check_victory(_run_movement(state, run), run)
    elif phase is GamePhase.COMBAT:
        state = _check_victory(_run_combat(state, run), run)
    elif phase is GamePhase.MAINTENANCE:
        state = _run_maintenance(state, run)

    # Victory freezes the game in the phase where it was detected
    if state.victory.game_won:
        return state
    if phase is GamePhase.COMBAT:
        state = _clear_combat(state)

    turn = advance_phase(state.turn)
    bodies = state.bodies
    if turn.round_number != state.round_number and run.context.orbital_motion:
        bodies = tuple(advance_planet_orbit(b) for b in bodies)

    changes: dict = {}
    if turn.current_player_index != state.turn.current_player_index:
        changes["selected_ship_id"] = None
    if turn.current_phase is GamePhase.COMBAT:
        changes["combat_stage"] = CombatStage.NO_ATTACKS_DECLARED

    advanced = replace(
        state,
        turn=turn,
        bodies=bodies,
        turn_history=state.turn_history + (history_entry(turn),),
        **changes,
    )
    run.emit(advanced, GameEventType.PHASE_ADVANCED, data={
        "from": phase.value,
        "to": turn.current_phase.value,
    })
    return advanced


def _end_turn(state: GameState, command: EndTurn, run: _Dispatch) -> GameState | RejectionReason:
    start_index = state.turn.current_player_index
    result = _end_phase(state, EndPhase(), run)
    if isinstance(result, RejectionReason):
        return result
    state = result
    while state.turn.current_player_index == start_index and not state.victory.game_won:
        result = _end_phase(state, EndPhase(), run)
        if isinstance(result, RejectionReason):
            break
        state = result
    return state


_HANDLERS: dict[type, Callable[[GameState, object, _Dispatch], GameState | RejectionReason]] = {
    SelectShip: _select_ship,
    PlotMove: _plot_move,
    PlotDestination: _plot_destination,
    ClearPlot: _clear_plot,
    DeclareAttack: _declare_attack,
    LaunchOrdnance: _launch_ordnance,
    ChooseWeakGravity: _choose_weak_gravity,
    EndPhase: _end_phase,
    EndTurn: _end_turn,
    ToggleReachableHexesDisplay: _toggle_display,
}


# =============================================================================
# DISPATCH
# =============================================================================

def dispatch(state: GameState, command: Command, context: CommandContext) -> DispatchResult:
    """
    Apply a command and report what happened.

    Raises:
        UnknownCommandError: If command is not one of the command types.
    """
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise UnknownCommandError(f"Unknown command: {command!r}")

    run = _Dispatch(context)
    outcome = handler(state, command, run)
    if isinstance(outcome, RejectionReason):
        logger.debug(f"Rejected {type(command).__name__}: {outcome.value}")
        rejected = GameEvent(
            event_type=GameEventType.COMMAND_REJECTED,
            round_number=state.round_number,
            player_id=state.current_player_id,
            data={"command": type(command).__name__, "reason": outcome.value},
        )
        return DispatchResult(state=state, rejection=outcome, events=[rejected])
    return DispatchResult(state=outcome, events=run.events)


def apply_command(state: GameState, command: Command, context: CommandContext) -> GameState:
    """New state after a command; the same state object if it was rejected."""
    return dispatch(state, command, context).state


# =============================================================================
# SESSION
# =============================================================================

class GameSession:
    """
    Owns the current game state and the collaborators used to advance it.

    Commands are applied one at a time through dispatch(); the presentation
    layer re-reads the queries afterwards.
    """

    def __init__(
        self,
        state: GameState,
        context: CommandContext,
    ):
        self._state = state
        self.context = context
        self.last_rejection: Optional[RejectionReason] = None
        self.events: list[GameEvent] = []
        self._event_callbacks: list[Callable[[GameEvent], None]] = []

    @property
    def state(self) -> GameState:
        return self._state

    def dispatch(self, command: Command) -> GameState:
        """
        Apply a command to the current state.

        Returns:
            The new state (unchanged if the command was rejected; see
            last_rejection).
        """
        result = dispatch(self._state, command, self.context)
        self._state = result.state
        self.last_rejection = result.rejection
        for event in result.events:
            self._record_event(event)
        return self._state

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def add_event_callback(self, callback: Callable[[GameEvent], None]) -> None:
        """
        Register a callback to be called for each game event.

        Args:
            callback: Function that takes a GameEvent.
        """
        self._event_callbacks.append(callback)

    def remove_event_callback(self, callback: Callable[[GameEvent], None]) -> None:
        """Remove an event callback."""
        if callback in self._event_callbacks:
            self._event_callbacks.remove(callback)

    def _record_event(self, event: GameEvent) -> None:
        self.events.append(event)
        for callback in self._event_callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Event callback error: {e}")

    def get_events_by_type(self, event_type: GameEventType) -> list[GameEvent]:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def turn_state(self) -> TurnState:
        return self._state.turn

    @property
    def ships(self) -> tuple[Ship, ...]:
        return self._state.ships

    @property
    def plotted_moves(self) -> Mapping[str, PlottedMove]:
        return self._state.plotted_moves

    @property
    def declared_attacks(self) -> Mapping[str, DeclaredAttack]:
        return self._state.declared_attacks

    @property
    def combat_log(self) -> tuple[CombatLogEntry, ...]:
        return self._state.combat_log

    @property
    def ordnance(self) -> tuple[Ordnance, ...]:
        return self._state.ordnance

    @property
    def victory(self) -> VictoryState:
        return self._state.victory

    def reachable_hexes(self, ship_id: Optional[str] = None) -> dict[HexCoordinate, ReachableHex]:
        """Reachable-hex map for a ship (the selected ship by default)."""
        return reachable_hexes_for(self._state, ship_id or self._state.selected_ship_id)

    def gravity_zones_at(self, position: HexCoordinate) -> dict[str, GravityWellZone]:
        """Radial gravity zone covering a position, by body id."""
        return gravity_zones_at(position, self._state.bodies)

    def gravity_force_at(self, position: HexCoordinate) -> HexVector:
        """Gravity the active rule variant exerts at a position."""
        return self.context.gravity_model.force_at(position, self._state.bodies)

    def plotting_status(self) -> PlottingStatus:
        return plotting_status(self._state.ships, self._state.current_player_id, self._state.plotted_moves)

    def valid_targets(self, attacker_id: str) -> list[Ship]:
        attacker = self._state.ship(attacker_id)
        if attacker is None:
            return []
        return get_valid_targets(attacker, self._state.ships)

    def phase_button_label(self) -> str:
        return next_phase_label(self._state.current_phase, self.plotting_status().complete)


def create_game(
    player_ids: Sequence[str],
    ships: Sequence[Ship],
    config: Optional[GameConfig] = None,
    bodies: Optional[Sequence[CelestialBody]] = None,
    victory_conditions: Sequence[VictoryCondition] = (),
    rng: Optional[random.Random] = None,
    detonation_handler: Optional[DetonationHandler] = None,
    clock: Callable[[], float] = time.time,
) -> GameSession:
    """
    Start a new game.

    Args:
        player_ids: Turn order.
        ships: Starting ships.
        config: Game settings (defaults if None).
        bodies: Celestial bodies (loaded from config.solar_system_path if None).
        victory_conditions: Scenario goals.
        rng: Die source (seeded from config.seed if None).
        detonation_handler: Ordnance contact collaborator.
        clock: Timestamp source for the combat log.

    Returns:
        A GameSession at the first player's Plot phase.
    """
    config = config or GameConfig()
    if bodies is None:
        bodies = load_solar_system(config.solar_system_path)

    rules = load_rules_data(config.rules_path)
    context = CommandContext(
        resolver=CombatResolver(
            rng=rng or random.Random(config.seed),
            table=CombatResultsTable.from_rules(rules),
            rules=CombatRules.from_rules(rules),
        ),
        gravity_model=gravity_model_for(config.gravity_model),
        victory_evaluator=VictoryEvaluator(victory_conditions),
        detonation_handler=detonation_handler,
        clock=clock,
        orbital_motion=config.orbital_motion,
    )
    logger.info(f"New game: players {list(player_ids)}, {len(ships)} ships, {config.gravity_model} gravity")
    return GameSession(create_game_state(player_ids, ships, bodies), context)
