"""
Hex Coordinate Algebra for the Triplanetary vector-movement engine.

Implements axial hex coordinates for a pointy-top grid:
- HexCoordinate / CubeCoordinate value types
- Addition, subtraction and scaling
- Neighbor, ring, range and line enumeration
- Cube distance metric and rounding of fractional coordinates

The third cube coordinate is implicit: s = -q - r, so every coordinate
triple derived from (q, r) satisfies q + r + s = 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


# =============================================================================
# COORDINATE TYPES
# =============================================================================

@dataclass(frozen=True)
class CubeCoordinate:
    """Cube form of a hex coordinate (q + r + s == 0)."""
    q: float
    r: float
    s: float

    def to_axial(self) -> HexCoordinate:
        """Drop the redundant s component."""
        return HexCoordinate(self.q, self.r)


@dataclass(frozen=True)
class HexCoordinate:
    """
    Axial coordinate of a hex cell.

    The q axis points right, the r axis points down-left. Instances are
    immutable and hashable, so they can key reachable-hex maps directly.
    A HexCoordinate also doubles as a velocity vector (hexes per round).

    Attributes:
        q: Column axis.
        r: Row axis.
    """
    q: int = 0
    r: int = 0

    @property
    def s(self) -> int:
        """Implicit third cube coordinate."""
        return -self.q - self.r

    def cube(self) -> CubeCoordinate:
        """Convert to cube coordinates."""
        return CubeCoordinate(self.q, self.r, self.s)

    def __add__(self, other: HexCoordinate) -> HexCoordinate:
        return HexCoordinate(self.q + other.q, self.r + other.r)

    def __sub__(self, other: HexCoordinate) -> HexCoordinate:
        return HexCoordinate(self.q - other.q, self.r - other.r)

    def __mul__(self, factor: int) -> HexCoordinate:
        return HexCoordinate(self.q * factor, self.r * factor)

    def __rmul__(self, factor: int) -> HexCoordinate:
        return self.__mul__(factor)

    def __neg__(self) -> HexCoordinate:
        return HexCoordinate(-self.q, -self.r)

    def __iter__(self) -> Iterator[int]:
        yield self.q
        yield self.r

    def to_tuple(self) -> tuple[int, int]:
        """Convert to a (q, r) tuple."""
        return (self.q, self.r)

    @classmethod
    def from_tuple(cls, t: tuple[int, int] | list[int]) -> HexCoordinate:
        """Create from a (q, r) pair."""
        return cls(t[0], t[1])

    @classmethod
    def zero(cls) -> HexCoordinate:
        """The origin hex / the null velocity."""
        return cls(0, 0)

    def __repr__(self) -> str:
        return f"Hex({self.q}, {self.r})"


# Alias used where a coordinate is read as displacement-per-round.
VelocityVector = HexCoordinate


# Six neighbor directions, pointy-top orientation:
# 0: E, 1: SE, 2: SW, 3: W, 4: NW, 5: NE
HEX_DIRECTIONS: tuple[HexCoordinate, ...] = (
    HexCoordinate(1, 0),
    HexCoordinate(0, 1),
    HexCoordinate(-1, 1),
    HexCoordinate(-1, 0),
    HexCoordinate(0, -1),
    HexCoordinate(1, -1),
)


# =============================================================================
# ARITHMETIC
# =============================================================================

def hex_add(a: HexCoordinate, b: HexCoordinate) -> HexCoordinate:
    """Add two hex coordinates."""
    return HexCoordinate(a.q + b.q, a.r + b.r)


def hex_subtract(a: HexCoordinate, b: HexCoordinate) -> HexCoordinate:
    """Subtract b from a."""
    return HexCoordinate(a.q - b.q, a.r - b.r)


def hex_scale(h: HexCoordinate, factor: int) -> HexCoordinate:
    """Multiply a hex coordinate by a scalar."""
    return HexCoordinate(h.q * factor, h.r * factor)


def hex_length(h: HexCoordinate) -> int:
    """
    Hex-step length of a coordinate taken as a vector from the origin.

    This is the thrust cost of a velocity change: (|q| + |r| + |s|) / 2.
    """
    return (abs(h.q) + abs(h.r) + abs(h.q + h.r)) // 2


def hex_distance(a: HexCoordinate, b: HexCoordinate) -> int:
    """
    Minimum number of hex steps between two coordinates.

    Args:
        a: First coordinate.
        b: Second coordinate.

    Returns:
        (|dq| + |dr| + |ds|) / 2
    """
    return hex_length(hex_subtract(a, b))


# =============================================================================
# ENUMERATION
# =============================================================================

def hex_neighbor(h: HexCoordinate, direction: int) -> HexCoordinate:
    """Neighbor of h in one of the six directions (taken modulo 6)."""
    return hex_add(h, HEX_DIRECTIONS[direction % 6])


def hex_neighbors(h: HexCoordinate) -> list[HexCoordinate]:
    """All six neighbors of h, in HEX_DIRECTIONS order."""
    return [hex_add(h, d) for d in HEX_DIRECTIONS]


def hex_range(center: HexCoordinate, radius: int) -> list[HexCoordinate]:
    """
    All hexes within cube distance <= radius of center.

    The result always holds exactly 3*radius*(radius+1) + 1 hexes for a
    non-negative radius, and is empty for a negative one.

    Args:
        center: Center hex.
        radius: Maximum distance from center.

    Returns:
        List of hex coordinates, center included.
    """
    results: list[HexCoordinate] = []
    for dq in range(-radius, radius + 1):
        r_low = max(-radius, -dq - radius)
        r_high = min(radius, -dq + radius)
        for dr in range(r_low, r_high + 1):
            results.append(HexCoordinate(center.q + dq, center.r + dr))
    return results


def hex_ring(center: HexCoordinate, radius: int) -> list[HexCoordinate]:
    """Hexes at exactly `radius` steps from center (6*radius of them)."""
    if radius <= 0:
        return [center]

    results: list[HexCoordinate] = []
    h = hex_add(center, hex_scale(HEX_DIRECTIONS[4], radius))
    for side in range(6):
        for _ in range(radius):
            results.append(h)
            h = hex_neighbor(h, side)
    return results


# =============================================================================
# ROUNDING AND LINES
# =============================================================================

def cube_round(q: float, r: float, s: float) -> CubeCoordinate:
    """
    Round fractional cube coordinates to the nearest integer hex.

    The component with the largest rounding error is recomputed from the
    other two so that q + r + s stays zero.
    """
    rq, rr, rs = round(q), round(r), round(s)

    q_diff = abs(rq - q)
    r_diff = abs(rr - r)
    s_diff = abs(rs - s)

    if q_diff > r_diff and q_diff > s_diff:
        rq = -rr - rs
    elif r_diff > s_diff:
        rr = -rq - rs
    else:
        rs = -rq - rr

    return CubeCoordinate(int(rq), int(rr), int(rs))


def hex_round(q: float, r: float) -> HexCoordinate:
    """Nearest integer hex to a fractional axial coordinate."""
    cube = cube_round(q, r, -q - r)
    return HexCoordinate(int(cube.q), int(cube.r))


def hex_line(a: HexCoordinate, b: HexCoordinate) -> list[HexCoordinate]:
    """Hexes crossed by a straight line from a to b, endpoints included."""
    n = hex_distance(a, b)
    if n == 0:
        return [a]

    results: list[HexCoordinate] = []
    for i in range(n + 1):
        t = i / n
        # Nudge off hex edges so ties break consistently
        q = a.q + (b.q - a.q) * t + 1e-6
        r = a.r + (b.r - a.r) * t + 1e-6
        results.append(hex_round(q, r))
    return results
