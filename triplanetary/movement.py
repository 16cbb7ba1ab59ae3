"""
Movement execution for the Triplanetary engine.

Plotting records one PlottedMove per ship; the Movement phase then runs,
for the current player's ships:

1. Plotted velocities replace the ships' velocities
2. Gravity perturbs the velocities (radial pull or delayed arrows)
3. Ships move position + velocity, recording history and arrow hexes
4. Ships sharing a hex collide and take hull damage
5. Thrust budgets are restored
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Sequence

from .celestial import CelestialBody
from .gravity import GravityModel
from .hexgrid import HexCoordinate, VelocityVector, hex_length, hex_subtract
from .physics import calculate_destination
from .ship import MovementHistoryEntry, Ship, reset_thrust

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlottedMove:
    """
    Velocity a ship has committed to for this round.

    Attributes:
        ship_id: Plotting ship.
        new_velocity: Velocity after thrust.
        thrust_used: Thrust spent, never more than the ship's max thrust.
    """
    ship_id: str
    new_velocity: VelocityVector
    thrust_used: int


@dataclass(frozen=True)
class PlottingStatus:
    """Plot progress for one player."""
    plotted: int
    total: int
    unplotted_ship_ids: tuple[str, ...]

    @property
    def complete(self) -> bool:
        return self.plotted == self.total


@dataclass(frozen=True)
class MovementOutcome:
    """Ships after movement and the collision pairs that occurred."""
    ships: tuple[Ship, ...]
    collisions: tuple[tuple[str, str], ...]


# =============================================================================
# PLOT QUEUE
# =============================================================================

def plotting_status(
    ships: Sequence[Ship],
    player_id: str,
    plotted_moves: Mapping[str, PlottedMove]
) -> PlottingStatus:
    """Count a player's living ships with and without a plotted move."""
    player_ships = [s for s in ships if s.player_id == player_id and not s.destroyed]
    unplotted = tuple(s.id for s in player_ships if s.id not in plotted_moves)
    return PlottingStatus(
        plotted=len(player_ships) - len(unplotted),
        total=len(player_ships),
        unplotted_ship_ids=unplotted,
    )


def are_all_ships_plotted(
    ships: Sequence[Ship],
    player_id: str,
    plotted_moves: Mapping[str, PlottedMove]
) -> bool:
    """True when every living ship of the player has a plotted move."""
    return plotting_status(ships, player_id, plotted_moves).complete


def plot_base(ship: Ship, plotted_moves: Mapping[str, PlottedMove]) -> tuple[VelocityVector, int]:
    """
    Starting point for further plotting of a ship.

    Plots are cumulative within a round: an existing plot supplies the base
    velocity and its thrust is deducted from the budget.

    Returns:
        Tuple of (base_velocity, thrust_already_used).
    """
    existing = plotted_moves.get(ship.id)
    if existing is None:
        return ship.velocity, 0
    return existing.new_velocity, existing.thrust_used


# =============================================================================
# MOVEMENT STEPS
# =============================================================================

def execute_plotted_moves(ships: Sequence[Ship], plotted_moves: Mapping[str, PlottedMove]) -> tuple[Ship, ...]:
    """Give every plotted living ship its plotted velocity and spend the thrust."""
    updated = []
    for ship in ships:
        move = plotted_moves.get(ship.id)
        if move is None or ship.destroyed:
            updated.append(ship)
            continue
        updated.append(replace(
            ship,
            velocity=move.new_velocity,
            remaining_thrust=max(0, ship.stats.max_thrust - move.thrust_used),
        ))
    return tuple(updated)


def move_ship(ship: Ship) -> Ship:
    """Advance a ship one step along its velocity and record the move."""
    if ship.destroyed:
        return ship
    entry = MovementHistoryEntry(from_position=ship.position, velocity=ship.velocity)
    return replace(
        ship,
        position=calculate_destination(ship.position, ship.velocity),
        movement_history=ship.movement_history + (entry,),
    )


def move_ships(
    ships: Sequence[Ship],
    bodies: Sequence[CelestialBody] = (),
    gravity_model: Optional[GravityModel] = None,
) -> tuple[Ship, ...]:
    """
    Move living ships and let the gravity model note where they ended.

    Args:
        ships: Ships to move.
        bodies: Celestial bodies for gravity bookkeeping.
        gravity_model: Records arrow hexes entered (nothing for radial).

    Returns:
        Ships at their new positions.
    """
    moved = []
    for ship in ships:
        ship = move_ship(ship)
        if gravity_model is not None:
            ship = gravity_model.record_entry(ship, bodies)
        moved.append(ship)
    return tuple(moved)


def reset_ship_thrust(ships: Sequence[Ship]) -> tuple[Ship, ...]:
    return tuple(reset_thrust(ship) for ship in ships)


# =============================================================================
# COLLISIONS
# =============================================================================

def detect_position_collisions(ships: Sequence[Ship]) -> list[tuple[str, str]]:
    """Every pair of living ships occupying the same hex."""
    by_position: dict[HexCoordinate, list[str]] = {}
    for ship in ships:
        if not ship.destroyed:
            by_position.setdefault(ship.position, []).append(ship.id)

    collisions = []
    for ship_ids in by_position.values():
        for i in range(len(ship_ids)):
            for j in range(i + 1, len(ship_ids)):
                collisions.append((ship_ids[i], ship_ids[j]))
    return collisions


def calculate_collision_damage(ship1: Ship, ship2: Ship) -> int:
    """Hull damage taken by each ship: relative speed in hexes, at least 1."""
    relative = hex_length(hex_subtract(ship1.velocity, ship2.velocity))
    return max(1, relative)


def apply_damage_to_ship(ship: Ship, damage: int) -> Ship:
    """Reduce hull points; a ship at 0 hull is destroyed."""
    hull = max(0, ship.stats.current_hull - damage)
    return replace(
        ship,
        stats=replace(ship.stats, current_hull=hull),
        destroyed=ship.destroyed or hull <= 0,
    )


def process_collisions(ships: Sequence[Ship], collisions: Sequence[tuple[str, str]]) -> tuple[Ship, ...]:
    """Accumulate collision damage per ship and apply it once."""
    ship_map = {ship.id: ship for ship in ships}
    damage: dict[str, int] = {}
    for id1, id2 in collisions:
        ship1, ship2 = ship_map.get(id1), ship_map.get(id2)
        if ship1 is None or ship2 is None:
            continue
        amount = calculate_collision_damage(ship1, ship2)
        damage[id1] = damage.get(id1, 0) + amount
        damage[id2] = damage.get(id2, 0) + amount

    return tuple(
        apply_damage_to_ship(ship, damage[ship.id]) if damage.get(ship.id, 0) > 0 else ship
        for ship in ships
    )


# =============================================================================
# MOVEMENT PHASE
# =============================================================================

def execute_movement_phase(
    ships: Sequence[Ship],
    plotted_moves: Mapping[str, PlottedMove],
    bodies: Sequence[CelestialBody],
    gravity_model: GravityModel,
    player_id: Optional[str] = None,
    weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
) -> MovementOutcome:
    """
    Run the Movement phase.

    Args:
        ships: All ships.
        plotted_moves: Plotted moves keyed by ship id.
        bodies: Celestial bodies.
        gravity_model: Gravity rule variant.
        player_id: Only this player's ships move (all ships if None).
        weak_gravity_choices: Declined weak gravity hexes map to False.

    Returns:
        MovementOutcome with all ships and the collision pairs.
    """
    def moves_now(ship: Ship) -> bool:
        return not ship.destroyed and (player_id is None or ship.player_id == player_id)

    movers = [s for s in ships if moves_now(s)]
    movers = list(execute_plotted_moves(movers, plotted_moves))
    movers = list(gravity_model.apply_all(movers, bodies, weak_gravity_choices))
    movers = list(move_ships(movers, bodies, gravity_model))
    movers = list(reset_ship_thrust(movers))

    moved_by_id = {s.id: s for s in movers}
    updated = tuple(moved_by_id.get(s.id, s) for s in ships)

    # Ships that did not move this phase only collide with ships that did
    collisions = [
        pair for pair in detect_position_collisions(updated)
        if pair[0] in moved_by_id or pair[1] in moved_by_id
    ]
    if collisions:
        logger.info(f"Collisions after movement: {collisions}")
        updated = process_collisions(updated, collisions)

    return MovementOutcome(ships=updated, collisions=tuple(collisions))
