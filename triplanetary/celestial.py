"""
Celestial bodies for the Triplanetary solar system.

Bodies carry both gravity descriptions used by the rule variants:
- gravity_wells: concentric radial zones (inner / middle / outer)
- gravity_hexes: one arrow hex per adjacent hex, pointing at the body

Planets move on simple circular orbits; their gravity hexes are regenerated
around the new position whenever the orbit advances.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import DEFAULT_SOLAR_SYSTEM_PATH, load_json_data
from .errors import RulesDataError
from .hexgrid import HexCoordinate, hex_neighbors, hex_round, hex_subtract


class GravityZone(Enum):
    """Radial gravity bands, strongest first."""
    INNER = "inner"
    MIDDLE = "middle"
    OUTER = "outer"


@dataclass(frozen=True)
class GravityWellZone:
    """
    One radial gravity band around a body.

    Attributes:
        zone: Band name.
        radius: Extent of the band in hexes from the body.
        pull_strength: Hexes of velocity change per round inside the band.
    """
    zone: GravityZone
    radius: int
    pull_strength: float


@dataclass(frozen=True)
class GravityHex:
    """
    Gravity arrow in a hex adjacent to a body (2018 rules).

    Attributes:
        position: The arrow hex.
        direction: Unit hex step pointing toward the body.
        is_weak: Weak gravity (Luna, Io); the player may decline it.
    """
    position: HexCoordinate
    direction: HexCoordinate
    is_weak: bool = False


@dataclass(frozen=True)
class OrbitalProperties:
    """Circular orbit parameters for a planet."""
    semi_major_axis: float
    eccentricity: float
    period: float
    current_angle: float


@dataclass(frozen=True)
class CelestialBody:
    """
    A body that exerts gravity: the Sun or a planet.

    Attributes:
        id: Unique identifier.
        name: Display name.
        body_type: "sun" or "planet".
        position: Current hex.
        gravity_wells: Radial zones, any order.
        gravity_hexes: Arrow hexes around the body.
        orbit: Orbit parameters (planets only).
        weak_gravity: Whether the arrow hexes are weak.
    """
    id: str
    name: str
    body_type: str
    position: HexCoordinate
    gravity_wells: tuple[GravityWellZone, ...] = ()
    gravity_hexes: tuple[GravityHex, ...] = ()
    orbit: Optional[OrbitalProperties] = None
    weak_gravity: bool = False

    @property
    def outer_radius(self) -> int:
        """Radius of the outermost gravity zone (0 without wells)."""
        return max((w.radius for w in self.gravity_wells), default=0)


def generate_gravity_hexes(body_position: HexCoordinate, is_weak: bool = False) -> tuple[GravityHex, ...]:
    """
    Arrow hexes for a body: one per neighbor, each pointing back at the body.

    Args:
        body_position: Hex occupied by the body.
        is_weak: Mark the arrows as weak gravity.

    Returns:
        Six GravityHex entries.
    """
    return tuple(
        GravityHex(
            position=neighbor,
            direction=hex_subtract(body_position, neighbor),
            is_weak=is_weak,
        )
        for neighbor in hex_neighbors(body_position)
    )


def create_body(
    body_id: str,
    name: str,
    position: HexCoordinate,
    gravity_wells: tuple[GravityWellZone, ...] = (),
    body_type: str = "planet",
    orbit: Optional[OrbitalProperties] = None,
    weak_gravity: bool = False,
) -> CelestialBody:
    """Build a body with arrow hexes generated around its position."""
    return CelestialBody(
        id=body_id,
        name=name,
        body_type=body_type,
        position=position,
        gravity_wells=tuple(gravity_wells),
        gravity_hexes=generate_gravity_hexes(position, weak_gravity),
        orbit=orbit,
        weak_gravity=weak_gravity,
    )


# =============================================================================
# ORBITS
# =============================================================================

def calculate_orbital_position(orbit: OrbitalProperties) -> HexCoordinate:
    """
    Hex position of a body on a circular orbit around the origin.

    Eccentricity is ignored. The angle is measured on a plane where adjacent
    hex centers are one unit apart, then snapped to the nearest hex.
    """
    angle_rad = math.radians(orbit.current_angle)
    x = orbit.semi_major_axis * math.cos(angle_rad)
    y = orbit.semi_major_axis * math.sin(angle_rad)

    # Pointy-top cartesian -> axial with unit center spacing
    q = x - y / math.sqrt(3)
    r = 2 * y / math.sqrt(3)
    return hex_round(q, r)


def advance_planet_orbit(body: CelestialBody, turns: int = 1) -> CelestialBody:
    """
    Advance a planet along its orbit.

    Args:
        body: Planet to move (bodies without an orbit are returned unchanged).
        turns: Rounds to advance.

    Returns:
        Body with the new angle, position and regenerated arrow hexes.
    """
    if body.orbit is None:
        return body

    angular_velocity = 360.0 / body.orbit.period
    new_angle = (body.orbit.current_angle + angular_velocity * turns) % 360.0
    orbit = replace(body.orbit, current_angle=new_angle)
    position = calculate_orbital_position(orbit)
    return replace(
        body,
        orbit=orbit,
        position=position,
        gravity_hexes=generate_gravity_hexes(position, body.weak_gravity),
    )


# =============================================================================
# DATA LOADING
# =============================================================================

def body_from_dict(data: dict) -> CelestialBody:
    """
    Create a CelestialBody from map data.

    Raises:
        RulesDataError: If a required field is missing or a zone is unknown.
    """
    try:
        wells = tuple(
            GravityWellZone(
                zone=GravityZone(w["zone"]),
                radius=int(w["radius"]),
                pull_strength=float(w["pull_strength"]),
            )
            for w in data.get("gravity_wells", [])
        )
        orbit = None
        if "orbit" in data:
            o = data["orbit"]
            orbit = OrbitalProperties(
                semi_major_axis=float(o["semi_major_axis"]),
                eccentricity=float(o.get("eccentricity", 0.0)),
                period=float(o["period"]),
                current_angle=float(o.get("current_angle", 0.0)),
            )
        if orbit is not None:
            position = calculate_orbital_position(orbit)
        else:
            position = HexCoordinate.from_tuple(data.get("position", [0, 0]))

        return create_body(
            body_id=data["id"],
            name=data.get("name", data["id"]),
            position=position,
            gravity_wells=wells,
            body_type=data.get("type", "planet"),
            orbit=orbit,
            weak_gravity=bool(data.get("weak_gravity", False)),
        )
    except (KeyError, ValueError) as e:
        raise RulesDataError(f"Invalid celestial body entry {data.get('id', '?')}: {e}") from e


def load_solar_system(filepath: str | Path = DEFAULT_SOLAR_SYSTEM_PATH) -> tuple[CelestialBody, ...]:
    """Load every celestial body from a map data file."""
    data = load_json_data(filepath)
    return tuple(body_from_dict(entry) for entry in data.get("bodies", []))
