"""
Ship model for the Triplanetary engine.

Ships are immutable values. Every transition (move, damage, launch) builds a
new Ship with dataclasses.replace, so snapshots held by the presentation
layer never change underneath it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .config import default_rules
from .hexgrid import HexCoordinate, VelocityVector
from .ordnance import OrdnanceInventory, OrdnanceType


@dataclass(frozen=True)
class ShipStats:
    """
    Ship capabilities.

    Attributes:
        max_thrust: Thrust points available per round.
        max_hull: Maximum hull points.
        current_hull: Remaining hull points (collision damage).
        weapons: Combat strength, 0 = unarmed.
    """
    max_thrust: int = 2
    max_hull: int = 6
    current_hull: int = 6
    weapons: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> ShipStats:
        """Create from a rules-data dictionary, filling gaps with defaults."""
        return cls(
            max_thrust=data.get("max_thrust", 2),
            max_hull=data.get("max_hull", 6),
            current_hull=data.get("current_hull", data.get("max_hull", 6)),
            weapons=data.get("weapons", 1),
        )


@dataclass(frozen=True)
class MovementHistoryEntry:
    """Where a ship started a move and the velocity it moved with."""
    from_position: HexCoordinate
    velocity: VelocityVector


@dataclass(frozen=True)
class Ship:
    """
    A player's ship.

    Destroyed ships stay in the ship list for rendering and history but are
    skipped by targeting, plotting, movement and gravity.

    Attributes:
        id: Unique ship identifier.
        name: Display name used in the combat log.
        player_id: Owning player.
        position: Current hex.
        velocity: Hexes moved per round.
        stats: Ship capabilities.
        remaining_thrust: Thrust left this round.
        destroyed: True once eliminated.
        disabled_turns: Accumulated disablement; 6 or more destroys the ship.
        ordnance: Mines, torpedoes and missiles carried.
        movement_history: Past moves, oldest first.
        gravity_hexes_entered: Gravity hexes entered on the last move,
            applied on the next one (arrow gravity only).
    """
    id: str
    name: str
    player_id: str
    position: HexCoordinate
    velocity: VelocityVector = field(default_factory=HexCoordinate.zero)
    stats: ShipStats = field(default_factory=ShipStats)
    remaining_thrust: int = 2
    destroyed: bool = False
    disabled_turns: int = 0
    ordnance: OrdnanceInventory = field(default_factory=OrdnanceInventory)
    movement_history: tuple[MovementHistoryEntry, ...] = ()
    gravity_hexes_entered: tuple[HexCoordinate, ...] = ()

    @property
    def is_disabled(self) -> bool:
        return not self.destroyed and self.disabled_turns > 0

    def ordnance_count(self, ordnance_type: OrdnanceType) -> int:
        """Number of a given ordnance type still aboard."""
        return self.ordnance.count(ordnance_type)


def create_ship(
    ship_id: str,
    name: str,
    player_id: str,
    position: HexCoordinate,
    stats: Optional[dict] = None,
    velocity: Optional[VelocityVector] = None,
    ordnance: Optional[OrdnanceInventory] = None,
    rules: Optional[dict] = None,
) -> Ship:
    """
    Create a ship with default stats and inventory from the rules data.

    Args:
        ship_id: Unique identifier.
        name: Display name.
        player_id: Owning player.
        position: Starting hex.
        stats: Overrides for individual stat fields.
        velocity: Starting velocity (default stationary).
        ordnance: Starting inventory (default from rules).
        rules: Rules data; the bundled rules.json if omitted.

    Returns:
        A new Ship with full thrust.
    """
    rules = rules or default_rules()
    stat_values = {**rules["default_ship_stats"], **(stats or {})}
    if stats and "max_hull" in stats and "current_hull" not in stats:
        stat_values["current_hull"] = stats["max_hull"]
    ship_stats = ShipStats.from_dict(stat_values)

    return Ship(
        id=ship_id,
        name=name,
        player_id=player_id,
        position=position,
        velocity=velocity or HexCoordinate.zero(),
        stats=ship_stats,
        remaining_thrust=ship_stats.max_thrust,
        ordnance=ordnance or OrdnanceInventory.from_dict(rules["default_ordnance_inventory"]),
    )


def replace_ship(ships: tuple[Ship, ...], updated: Ship) -> tuple[Ship, ...]:
    """Return a new ship tuple with the ship of the same id swapped out."""
    return tuple(updated if s.id == updated.id else s for s in ships)


def find_ship(ships: tuple[Ship, ...] | list[Ship], ship_id: Optional[str]) -> Optional[Ship]:
    """Look up a ship by id."""
    if ship_id is None:
        return None
    for ship in ships:
        if ship.id == ship_id:
            return ship
    return None


def reset_thrust(ship: Ship) -> Ship:
    """Restore a ship's thrust budget for a new round."""
    return replace(ship, remaining_thrust=ship.stats.max_thrust)


def with_ordnance_count(ship: Ship, ordnance_type: OrdnanceType, count: int) -> Ship:
    """Copy of a ship carrying a different number of one ordnance type."""
    return replace(ship, ordnance=ship.ordnance.with_count(ordnance_type, count))
