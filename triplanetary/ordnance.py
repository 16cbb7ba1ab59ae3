"""
Ordnance lifecycle for the Triplanetary engine.

Covers the bookkeeping side of mines, torpedoes and missiles:
- Ship inventories and the launch transition (count -1, new Ordnance entity)
- Drift of launched ordnance and expiry by lifetime
- Contact detection with ships

What a contact does to a ship is left to a DetonationHandler supplied by
the caller; the engine itself never decides detonation damage.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from .config import default_rules
from .hexgrid import HexCoordinate, VelocityVector, hex_add

if TYPE_CHECKING:
    from .ship import Ship


class OrdnanceType(Enum):
    """Kinds of ordnance a ship can carry."""
    MINE = "mine"
    TORPEDO = "torpedo"
    MISSILE = "missile"


# Inventory field holding each ordnance type
INVENTORY_FIELDS: dict[OrdnanceType, str] = {
    OrdnanceType.MINE: "mines",
    OrdnanceType.TORPEDO: "torpedoes",
    OrdnanceType.MISSILE: "missiles",
}


@dataclass(frozen=True)
class OrdnanceInventory:
    """Ordnance carried by a ship. Counts never go negative."""
    mines: int = 2
    torpedoes: int = 2
    missiles: int = 2

    def count(self, ordnance_type: OrdnanceType) -> int:
        return getattr(self, INVENTORY_FIELDS[ordnance_type])

    def with_count(self, ordnance_type: OrdnanceType, count: int) -> OrdnanceInventory:
        """Copy with one type's count replaced (clamped at zero)."""
        return replace(self, **{INVENTORY_FIELDS[ordnance_type]: max(0, count)})

    @classmethod
    def from_dict(cls, data: dict) -> OrdnanceInventory:
        return cls(
            mines=data.get("mines", 0),
            torpedoes=data.get("torpedoes", 0),
            missiles=data.get("missiles", 0),
        )


@dataclass(frozen=True)
class Ordnance:
    """
    A launched piece of ordnance.

    Attributes:
        id: Unique identifier.
        type: Mine, torpedo or missile.
        player_id: Player who launched it.
        position: Current hex.
        velocity: Drift per round (zero for mines).
        created_round: Round number at launch.
        damage: Nominal damage value from rules data.
        lifetime: Rounds before expiry, -1 for indefinite.
        detonated: Set by the detonation collaborator.
    """
    id: str
    type: OrdnanceType
    player_id: str
    position: HexCoordinate
    velocity: VelocityVector
    created_round: int
    damage: int = 0
    lifetime: int = -1
    detonated: bool = False

    def is_expired(self, current_round: int) -> bool:
        """True once the ordnance has outlived its lifetime."""
        if self.lifetime < 0:
            return False
        return current_round - self.created_round >= self.lifetime


@dataclass(frozen=True)
class LaunchResult:
    """Outcome of a successful launch."""
    ship: Ship
    ordnance: Ordnance


@dataclass(frozen=True)
class OrdnanceContact:
    """Ordnance sharing a hex with a living ship."""
    ordnance_id: str
    ship_id: str
    position: HexCoordinate


class DetonationHandler(Protocol):
    """
    Collaborator deciding what ordnance contacts do.

    Receives the contacts found after movement and the current ships and
    ordnance, and returns updated (ships, ordnance). Ordnance it marks
    detonated is removed by move_ordnance on the next movement.
    """

    def __call__(
        self,
        contacts: Sequence[OrdnanceContact],
        ships: tuple[Ship, ...],
        ordnance: tuple[Ordnance, ...],
    ) -> tuple[tuple[Ship, ...], tuple[Ordnance, ...]]:
        ...


# =============================================================================
# LAUNCH
# =============================================================================

def launch_velocity(ship: Ship, ordnance_type: OrdnanceType) -> VelocityVector:
    """
    Initial velocity for newly launched ordnance.

    Mines are left stationary regardless of the ship's motion; torpedoes and
    missiles carry a snapshot of the ship's velocity.
    """
    if ordnance_type is OrdnanceType.MINE:
        return HexCoordinate.zero()
    return HexCoordinate(ship.velocity.q, ship.velocity.r)


def generate_ordnance_id(ordnance_type: OrdnanceType) -> str:
    return f"{ordnance_type.value}-{uuid.uuid4().hex[:10]}"


def launch_ordnance(
    ship: Ship,
    ordnance_type: OrdnanceType,
    round_number: int,
    ordnance_id: Optional[str] = None,
    rules: Optional[dict] = None,
) -> Optional[LaunchResult]:
    """
    Launch one piece of ordnance from a ship.

    Args:
        ship: Launching ship.
        ordnance_type: What to launch.
        round_number: Current round, stored as the creation round.
        ordnance_id: Identifier for the new entity (generated if omitted).
        rules: Rules data with per-type damage and lifetime.

    Returns:
        LaunchResult with the ship (count reduced by exactly 1) and the new
        Ordnance, or None if the ship is destroyed or carries none of that
        type.
    """
    if ship.destroyed:
        return None

    current = ship.ordnance.count(ordnance_type)
    if current <= 0:
        return None

    ordnance_rules = (rules or default_rules())["ordnance"].get(ordnance_type.value, {})
    ordnance = Ordnance(
        id=ordnance_id or generate_ordnance_id(ordnance_type),
        type=ordnance_type,
        player_id=ship.player_id,
        position=ship.position,
        velocity=launch_velocity(ship, ordnance_type),
        created_round=round_number,
        damage=ordnance_rules.get("damage", 0),
        lifetime=ordnance_rules.get("lifetime", -1),
    )
    updated_ship = replace(ship, ordnance=ship.ordnance.with_count(ordnance_type, current - 1))
    return LaunchResult(ship=updated_ship, ordnance=ordnance)


# =============================================================================
# DRIFT AND CONTACTS
# =============================================================================

def move_ordnance(
    ordnance: Sequence[Ordnance],
    current_round: int
) -> tuple[Ordnance, ...]:
    """
    Advance ordnance by its velocity and drop detonated or expired pieces.

    Args:
        ordnance: All launched ordnance.
        current_round: Round number used for lifetime expiry.

    Returns:
        The surviving ordnance at their new positions.
    """
    moved: list[Ordnance] = []
    for item in ordnance:
        if item.detonated:
            continue
        advanced = replace(item, position=hex_add(item.position, item.velocity))
        if advanced.is_expired(current_round):
            continue
        moved.append(advanced)
    return tuple(moved)


def find_ordnance_contacts(
    ordnance: Sequence[Ordnance],
    ships: Sequence[Ship]
) -> list[OrdnanceContact]:
    """Pairs of live ordnance and living ships occupying the same hex."""
    by_position: dict[HexCoordinate, list[Ship]] = {}
    for ship in ships:
        if not ship.destroyed:
            by_position.setdefault(ship.position, []).append(ship)

    contacts: list[OrdnanceContact] = []
    for item in ordnance:
        if item.detonated:
            continue
        for ship in by_position.get(item.position, []):
            contacts.append(OrdnanceContact(item.id, ship.id, item.position))
    return contacts


def mark_detonated(ordnance: Sequence[Ordnance], ordnance_ids: set[str]) -> tuple[Ordnance, ...]:
    """Flag the given ordnance as detonated."""
    return tuple(
        replace(item, detonated=True) if item.id in ordnance_ids else item
        for item in ordnance
    )
