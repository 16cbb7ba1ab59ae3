"""
Physics Module for the Triplanetary vector-movement engine

Implements Newtonian movement on the hex grid:
- HexVector: fractional 2D vectors in axial space (gravity forces, headings)
- Destination of a ship after one round (position + velocity)
- Thrust cost and thrust application
- Reachable-hex enumeration for the Plot phase

Movement follows classic vector-movement wargame rules: a ship keeps its
velocity from round to round, and each point of thrust changes that velocity
by one hex in any direction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .hexgrid import HexCoordinate, VelocityVector, hex_add, hex_length, hex_round


# =============================================================================
# HEXVECTOR CLASS
# =============================================================================

@dataclass
class HexVector:
    """
    Fractional vector in axial (q, r) space.

    Integer hex arithmetic lives in hexgrid; HexVector is for quantities that
    are not whole hexes, such as radial gravity pulls scaled by a zone
    strength. Magnitude is Euclidean over the (q, r) components.
    """
    q: float = 0.0
    r: float = 0.0

    def __add__(self, other: HexVector) -> HexVector:
        """Vector addition."""
        return HexVector(self.q + other.q, self.r + other.r)

    def __sub__(self, other: HexVector) -> HexVector:
        """Vector subtraction."""
        return HexVector(self.q - other.q, self.r - other.r)

    def __mul__(self, scalar: float) -> HexVector:
        """Scalar multiplication."""
        return HexVector(self.q * scalar, self.r * scalar)

    def __rmul__(self, scalar: float) -> HexVector:
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> HexVector:
        """Scalar division."""
        if scalar == 0:
            raise ValueError("Cannot divide vector by zero")
        return HexVector(self.q / scalar, self.r / scalar)

    def __neg__(self) -> HexVector:
        return HexVector(-self.q, -self.r)

    def __eq__(self, other: object) -> bool:
        """Equality check with tolerance."""
        if not isinstance(other, HexVector):
            return False
        eps = 1e-10
        return abs(self.q - other.q) < eps and abs(self.r - other.r) < eps

    def dot(self, other: HexVector) -> float:
        """Dot product."""
        return self.q * other.q + self.r * other.r

    @property
    def magnitude(self) -> float:
        """Euclidean length of the (q, r) components."""
        return math.sqrt(self.q ** 2 + self.r ** 2)

    def normalized(self) -> HexVector:
        """Unit vector in the same direction, or zero for the zero vector."""
        mag = self.magnitude
        if mag == 0:
            return HexVector(0.0, 0.0)
        return self / mag

    def to_hex(self) -> HexCoordinate:
        """Round to the nearest whole hex (cube rounding)."""
        return hex_round(self.q, self.r)

    def to_tuple(self) -> tuple[float, float]:
        return (self.q, self.r)

    @classmethod
    def from_hex(cls, h: HexCoordinate) -> HexVector:
        """Widen an integer hex coordinate to a HexVector."""
        return cls(float(h.q), float(h.r))

    @classmethod
    def zero(cls) -> HexVector:
        return cls(0.0, 0.0)

    def __repr__(self) -> str:
        return f"HexVector({self.q:.6g}, {self.r:.6g})"


# =============================================================================
# MOVEMENT
# =============================================================================

@dataclass(frozen=True)
class ReachableHex:
    """
    One destination available to a ship this round.

    Attributes:
        hex: Destination hex at the end of the round.
        thrust_required: Cheapest thrust cost that reaches it.
        resulting_velocity: Velocity the ship will carry after that thrust.
    """
    hex: HexCoordinate
    thrust_required: int
    resulting_velocity: VelocityVector


@dataclass(frozen=True)
class ThrustResult:
    """Velocity and remaining budget after a successful thrust application."""
    velocity: VelocityVector
    remaining_thrust: int


def calculate_destination(position: HexCoordinate, velocity: VelocityVector) -> HexCoordinate:
    """
    Destination after one Newtonian step.

    Args:
        position: Current position.
        velocity: Velocity in hexes per round.

    Returns:
        position + velocity
    """
    return hex_add(position, velocity)


def thrust_cost(thrust_vector: VelocityVector) -> int:
    """Thrust points needed to apply a velocity change (its hex length)."""
    return hex_length(thrust_vector)


def calculate_required_thrust(
    current_velocity: VelocityVector,
    target_velocity: VelocityVector
) -> tuple[VelocityVector, int]:
    """
    Thrust vector and cost to go from one velocity to another.

    Returns:
        Tuple of (thrust_vector, thrust_required).
    """
    thrust_vector = target_velocity - current_velocity
    return thrust_vector, thrust_cost(thrust_vector)


def apply_thrust(
    current_velocity: VelocityVector,
    thrust_vector: VelocityVector,
    available_thrust: int
) -> ThrustResult | None:
    """
    Apply a thrust vector if the budget covers it.

    Args:
        current_velocity: Velocity before thrust.
        thrust_vector: Requested change in velocity.
        available_thrust: Thrust points left this round.

    Returns:
        ThrustResult with the new velocity and remaining budget, or None if
        the thrust costs more than is available.
    """
    cost = thrust_cost(thrust_vector)
    if cost > available_thrust:
        return None
    return ThrustResult(
        velocity=hex_add(current_velocity, thrust_vector),
        remaining_thrust=available_thrust - cost,
    )


def calculate_reachable_hexes(
    position: HexCoordinate,
    velocity: VelocityVector,
    available_thrust: int
) -> dict[HexCoordinate, ReachableHex]:
    """
    All destinations a ship can reach this round, keyed by destination hex.

    Every thrust vector (dq, dr) whose hex magnitude fits the budget is
    tried; the resulting velocity is velocity + (dq, dr) and the destination
    is position + resulting velocity. When several thrust vectors land on the
    same hex only the cheapest is kept, the first one found on a tie. The
    zero vector (coast) is always included at cost 0.

    Args:
        position: Ship position.
        velocity: Base velocity (the plotted velocity if one exists).
        available_thrust: Thrust points still unspent this round.

    Returns:
        Mapping of destination hex to ReachableHex.
    """
    budget = max(0, available_thrust)
    reachable: dict[HexCoordinate, ReachableHex] = {}

    for dq in range(-budget, budget + 1):
        for dr in range(-budget, budget + 1):
            thrust = HexCoordinate(dq, dr)
            cost = thrust_cost(thrust)
            if cost > budget:
                continue

            resulting_velocity = hex_add(velocity, thrust)
            destination = calculate_destination(position, resulting_velocity)

            existing = reachable.get(destination)
            if existing is None or cost < existing.thrust_required:
                reachable[destination] = ReachableHex(
                    hex=destination,
                    thrust_required=cost,
                    resulting_velocity=resulting_velocity,
                )

    return reachable


def is_valid_velocity(velocity: VelocityVector, max_velocity: float | None = None) -> bool:
    """Check a velocity against an optional speed limit (no limit by default)."""
    if max_velocity is None:
        return True
    return HexVector.from_hex(velocity).magnitude <= max_velocity
