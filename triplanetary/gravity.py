"""
Gravity Module for the Triplanetary engine

Two rule variants share the GravityModel interface:
- RadialGravity: concentric zones around each body pull ships toward it
  with a zone-dependent strength, every round.
- ArrowGravity (2018 rules): the six hexes around a body carry arrows;
  a ship that ends a move on an arrow hex is shifted one hex along it on
  its next move.

Also provides the orbital helpers (orbital velocity, stable orbit check,
gravity assist).
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Mapping, Optional, Protocol, Sequence

from .celestial import CelestialBody, GravityHex, GravityWellZone
from .config import GRAVITY_MODEL_ARROW, GRAVITY_MODEL_RADIAL
from .errors import RulesDataError
from .hexgrid import HexCoordinate, hex_add, hex_distance
from .physics import HexVector
from .ship import Ship

logger = logging.getLogger(__name__)

# Tolerance around the computed orbital velocity
STABLE_ORBIT_TOLERANCE = 0.2

# Fraction of the zone pull converted into a slingshot boost
GRAVITY_ASSIST_FACTOR = 0.5


# =============================================================================
# RADIAL ZONES
# =============================================================================

def get_gravity_zone(position: HexCoordinate, body: CelestialBody) -> Optional[GravityWellZone]:
    """
    Innermost gravity zone of a body that covers a position.

    Args:
        position: Hex to test.
        body: Celestial body.

    Returns:
        The zone with the smallest radius >= distance, or None when the
        position lies beyond the outermost zone.
    """
    distance = hex_distance(position, body.position)
    for zone in sorted(body.gravity_wells, key=lambda w: w.radius):
        if distance <= zone.radius:
            return zone
    return None


def calculate_gravity_direction(position: HexCoordinate, body_position: HexCoordinate) -> HexVector:
    """Unit vector from a position toward a body (zero on top of the body)."""
    offset = HexVector.from_hex(body_position) - HexVector.from_hex(position)
    return offset.normalized()


def calculate_gravitational_force(position: HexCoordinate, body: CelestialBody) -> HexVector:
    """
    Pull of one body at a position.

    Returns:
        Direction toward the body scaled by the covering zone's pull strength,
        or the zero vector outside all zones.
    """
    zone = get_gravity_zone(position, body)
    if zone is None:
        return HexVector.zero()
    return calculate_gravity_direction(position, body.position) * zone.pull_strength


def calculate_net_gravity(position: HexCoordinate, bodies: Sequence[CelestialBody]) -> HexVector:
    """Sum of the pulls of every body at a position."""
    net = HexVector.zero()
    for body in bodies:
        net = net + calculate_gravitational_force(position, body)
    return net


def gravity_zones_at(
    position: HexCoordinate,
    bodies: Sequence[CelestialBody]
) -> dict[str, GravityWellZone]:
    """Covering zone for each body whose gravity reaches a position, by body id."""
    zones = {}
    for body in bodies:
        zone = get_gravity_zone(position, body)
        if zone is not None:
            zones[body.id] = zone
    return zones


def apply_gravity(ship: Ship, bodies: Sequence[CelestialBody]) -> Ship:
    """
    Add the net radial pull to a ship's velocity.

    The force is rounded to the nearest whole hex before it is added, so
    velocities stay on the grid. Destroyed ships are returned unchanged.
    """
    if ship.destroyed:
        return ship

    shift = calculate_net_gravity(ship.position, bodies).to_hex()
    if shift == HexCoordinate.zero():
        return ship
    return replace(ship, velocity=hex_add(ship.velocity, shift))


def apply_gravity_to_all(ships: Sequence[Ship], bodies: Sequence[CelestialBody]) -> tuple[Ship, ...]:
    return tuple(apply_gravity(ship, bodies) for ship in ships)


# =============================================================================
# GRAVITY ARROWS (2018 RULES)
# =============================================================================

def get_all_gravity_hexes(bodies: Sequence[CelestialBody]) -> list[GravityHex]:
    """Every arrow hex of every body."""
    hexes: list[GravityHex] = []
    for body in bodies:
        hexes.extend(body.gravity_hexes)
    return hexes


def gravity_hexes_at(position: HexCoordinate, gravity_hexes: Sequence[GravityHex]) -> list[GravityHex]:
    """Arrow hexes located at a position (several bodies may overlap)."""
    return [gh for gh in gravity_hexes if gh.position == position]


def has_gravity_at(position: HexCoordinate, gravity_hexes: Sequence[GravityHex]) -> bool:
    return any(gh.position == position for gh in gravity_hexes)


def detect_gravity_hex_entry(
    new_position: HexCoordinate,
    gravity_hexes: Sequence[GravityHex]
) -> tuple[HexCoordinate, ...]:
    """
    Gravity hexes entered by ending a move at new_position.

    One entry is recorded per arrow at that position, so a hex shared by two
    bodies is applied twice on the next move.
    """
    return tuple(gh.position for gh in gravity_hexes_at(new_position, gravity_hexes))


def apply_gravity_effects(
    ship: Ship,
    bodies: Sequence[CelestialBody],
    weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
) -> Ship:
    """
    Apply arrows entered on the previous move (one-turn delay).

    Each arrow shifts the velocity by one hex in its direction. Weak arrows
    are applied unless the player declined them by mapping their hex to
    False in weak_gravity_choices. The entered-hex record is cleared.

    Args:
        ship: Ship to update.
        bodies: Celestial bodies providing the arrows.
        weak_gravity_choices: Player choices for weak gravity hexes.

    Returns:
        Updated ship (unchanged if destroyed or nothing was entered).
    """
    if ship.destroyed or not ship.gravity_hexes_entered:
        return ship

    choices = weak_gravity_choices or {}
    all_hexes = get_all_gravity_hexes(bodies)
    shift = HexCoordinate.zero()

    # Positions are deduplicated; overlapping arrows at one hex are all
    # returned by gravity_hexes_at.
    for entered in dict.fromkeys(ship.gravity_hexes_entered):
        for gravity_hex in gravity_hexes_at(entered, all_hexes):
            if gravity_hex.is_weak and choices.get(gravity_hex.position) is False:
                continue
            shift = hex_add(shift, gravity_hex.direction)

    return replace(
        ship,
        velocity=hex_add(ship.velocity, shift),
        gravity_hexes_entered=(),
    )


def apply_gravity_effects_to_all(
    ships: Sequence[Ship],
    bodies: Sequence[CelestialBody],
    weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
) -> tuple[Ship, ...]:
    return tuple(apply_gravity_effects(ship, bodies, weak_gravity_choices) for ship in ships)


# =============================================================================
# ORBITS
# =============================================================================

def calculate_orbital_velocity(distance: float, body_mass: float) -> float:
    """
    Speed needed for a circular orbit: sqrt(mass / distance).

    Decreases with distance, increases with mass; 0 at distance 0.
    """
    if distance <= 0:
        return 0.0
    return math.sqrt(body_mass / distance)


def estimate_body_mass(body: CelestialBody) -> float:
    """Mass proxy: strength x radius of the strongest zone (0 without wells)."""
    if not body.gravity_wells:
        return 0.0
    strongest = max(body.gravity_wells, key=lambda w: w.pull_strength)
    return strongest.pull_strength * strongest.radius


def is_in_stable_orbit(
    ship: Ship,
    body: CelestialBody,
    tolerance: float = STABLE_ORBIT_TOLERANCE
) -> bool:
    """
    Whether a ship's speed matches the orbital velocity at its distance.

    Never true on top of the body, for a stationary ship, or around a body
    without gravity wells.
    """
    distance = hex_distance(ship.position, body.position)
    if distance == 0 or not body.gravity_wells:
        return False

    speed = HexVector.from_hex(ship.velocity).magnitude
    if speed == 0:
        return False

    required = calculate_orbital_velocity(distance, estimate_body_mass(body))
    return required * (1 - tolerance) <= speed <= required * (1 + tolerance)


def calculate_gravity_assist(
    velocity: HexCoordinate,
    position: HexCoordinate,
    body: CelestialBody
) -> HexVector:
    """
    Slingshot boost for a ship passing through a body's gravity zone.

    The boost is the velocity component perpendicular to the direction of
    the body, scaled by half the zone pull. Zero outside every zone or for
    a stationary ship.
    """
    zone = get_gravity_zone(position, body)
    if zone is None:
        return HexVector.zero()

    v = HexVector.from_hex(velocity)
    if v.magnitude == 0:
        return HexVector.zero()

    direction = calculate_gravity_direction(position, body.position)
    perpendicular = v - direction * v.dot(direction)
    return perpendicular * (zone.pull_strength * GRAVITY_ASSIST_FACTOR)


# =============================================================================
# GRAVITY MODELS
# =============================================================================

class GravityModel(Protocol):
    """
    Rule variant used by the Movement phase.

    apply() perturbs a ship's velocity before it moves; apply_all() does
    the same for a group of ships; record_entry() does any bookkeeping after
    a ship moves; force_at() answers position queries.
    """
    name: str

    def apply(
        self,
        ship: Ship,
        bodies: Sequence[CelestialBody],
        weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
    ) -> Ship:
        ...

    def apply_all(
        self,
        ships: Sequence[Ship],
        bodies: Sequence[CelestialBody],
        weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
    ) -> tuple[Ship, ...]:
        ...

    def record_entry(self, ship: Ship, bodies: Sequence[CelestialBody]) -> Ship:
        ...

    def force_at(self, position: HexCoordinate, bodies: Sequence[CelestialBody]) -> HexVector:
        ...


class RadialGravity:
    """Zone-based gravity applied every round."""

    name = GRAVITY_MODEL_RADIAL

    def apply(
        self,
        ship: Ship,
        bodies: Sequence[CelestialBody],
        weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
    ) -> Ship:
        return apply_gravity(ship, bodies)

    def record_entry(self, ship: Ship, bodies: Sequence[CelestialBody]) -> Ship:
        return ship

    def force_at(self, position: HexCoordinate, bodies: Sequence[CelestialBody]) -> HexVector:
        return calculate_net_gravity(position, bodies)

    def apply_all(
        self,
        ships: Sequence[Ship],
        bodies: Sequence[CelestialBody],
        weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
    ) -> tuple[Ship, ...]:
        return apply_gravity_to_all(ships, bodies)


class ArrowGravity:
    """Arrow-hex gravity with a one-turn delay (2018 rules)."""

    name = GRAVITY_MODEL_ARROW

    def apply(
        self,
        ship: Ship,
        bodies: Sequence[CelestialBody],
        weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
    ) -> Ship:
        return apply_gravity_effects(ship, bodies, weak_gravity_choices)

    def record_entry(self, ship: Ship, bodies: Sequence[CelestialBody]) -> Ship:
        if ship.destroyed:
            return ship
        entered = detect_gravity_hex_entry(ship.position, get_all_gravity_hexes(bodies))
        return replace(ship, gravity_hexes_entered=entered)

    def force_at(self, position: HexCoordinate, bodies: Sequence[CelestialBody]) -> HexVector:
        """Sum of the arrows at a position, as it would be applied next move."""
        shift = HexCoordinate.zero()
        for gravity_hex in gravity_hexes_at(position, get_all_gravity_hexes(bodies)):
            shift = hex_add(shift, gravity_hex.direction)
        return HexVector.from_hex(shift)

    def apply_all(
        self,
        ships: Sequence[Ship],
        bodies: Sequence[CelestialBody],
        weak_gravity_choices: Optional[Mapping[HexCoordinate, bool]] = None,
    ) -> tuple[Ship, ...]:
        return apply_gravity_effects_to_all(ships, bodies, weak_gravity_choices)


def gravity_model_for(name: str) -> GravityModel:
    """
    Gravity model instance for a configured variant name.

    Raises:
        RulesDataError: If the name is not a known variant.
    """
    if name == GRAVITY_MODEL_RADIAL:
        return RadialGravity()
    if name == GRAVITY_MODEL_ARROW:
        return ArrowGravity()
    raise RulesDataError(f"Unknown gravity model '{name}'")
