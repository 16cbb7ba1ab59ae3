"""
Unit tests for HexVector and the movement plotting engine.

Run with: python -m pytest tests/test_physics.py -v
"""

import math

import pytest
from numpy.testing import assert_allclose

from triplanetary.hexgrid import HexCoordinate, hex_add, hex_length
from triplanetary.physics import (
    HexVector,
    apply_thrust,
    calculate_destination,
    calculate_reachable_hexes,
    calculate_required_thrust,
    is_valid_velocity,
    thrust_cost,
)


class TestHexVector:
    """Tests for fractional axial vectors."""

    @pytest.mark.parametrize("v1,v2,expected", [
        ((1.0, 2.0), (3.0, -1.0), (4.0, 1.0)),
        ((0.5, 0.5), (-0.5, 0.25), (0.0, 0.75)),
    ])
    def test_addition(self, v1, v2, expected):
        result = HexVector(*v1) + HexVector(*v2)
        assert_allclose(result.to_tuple(), expected)

    def test_scalar_ops(self):
        v = HexVector(2.0, -4.0)
        assert_allclose((v * 0.5).to_tuple(), (1.0, -2.0))
        assert_allclose((3 * v).to_tuple(), (6.0, -12.0))
        assert_allclose((v / 2).to_tuple(), (1.0, -2.0))
        assert_allclose((-v).to_tuple(), (-2.0, 4.0))

    def test_divide_by_zero_raises(self):
        with pytest.raises(ValueError):
            HexVector(1.0, 1.0) / 0

    def test_magnitude_and_normalized(self):
        v = HexVector(3.0, 4.0)
        assert v.magnitude == pytest.approx(5.0)
        assert v.normalized().magnitude == pytest.approx(1.0)
        assert_allclose(v.normalized().to_tuple(), (0.6, 0.8))

    def test_normalized_zero_is_zero(self):
        assert HexVector.zero().normalized() == HexVector.zero()

    def test_dot(self):
        assert HexVector(1.0, 2.0).dot(HexVector(3.0, -1.0)) == pytest.approx(1.0)

    def test_to_hex_rounds(self):
        assert HexVector(0.9, -0.1).to_hex() == HexCoordinate(1, 0)
        assert HexVector.from_hex(HexCoordinate(2, -1)) == HexVector(2.0, -1.0)


class TestThrust:
    """Tests for thrust cost and application."""

    def test_destination_is_position_plus_velocity(self):
        assert calculate_destination(HexCoordinate(2, 3), HexCoordinate(-1, 2)) == HexCoordinate(1, 5)

    def test_thrust_cost_is_hex_length(self):
        assert thrust_cost(HexCoordinate(0, 0)) == 0
        assert thrust_cost(HexCoordinate(1, -1)) == 1
        assert thrust_cost(HexCoordinate(2, 1)) == 3

    def test_required_thrust(self):
        vector, cost = calculate_required_thrust(HexCoordinate(1, 0), HexCoordinate(2, -1))
        assert vector == HexCoordinate(1, -1)
        assert cost == 1

    def test_apply_thrust_within_budget(self):
        result = apply_thrust(HexCoordinate(1, 0), HexCoordinate(0, 1), available_thrust=2)
        assert result is not None
        assert result.velocity == HexCoordinate(1, 1)
        assert result.remaining_thrust == 1

    def test_apply_thrust_over_budget(self):
        assert apply_thrust(HexCoordinate(0, 0), HexCoordinate(2, 1), available_thrust=2) is None

    def test_velocity_limit(self):
        assert is_valid_velocity(HexCoordinate(10, 10))
        assert not is_valid_velocity(HexCoordinate(3, 4), max_velocity=4.0)
        assert is_valid_velocity(HexCoordinate(3, 4), max_velocity=5.0)


class TestReachableHexes:
    """Tests for reachable-hex enumeration."""

    def test_coast_with_zero_thrust(self):
        """Ship at (0,0) moving (1,0) coasts to (1,0) at no cost."""
        reachable = calculate_reachable_hexes(HexCoordinate(0, 0), HexCoordinate(1, 0), 2)
        coast = reachable[HexCoordinate(1, 0)]
        assert coast.thrust_required == 0
        assert coast.resulting_velocity == HexCoordinate(1, 0)

    @pytest.mark.parametrize("position,velocity,thrust", [
        ((0, 0), (0, 0), 0),
        ((5, -3), (2, 1), 1),
        ((-4, 4), (-3, 0), 3),
    ])
    def test_coast_always_present(self, position, velocity, thrust):
        position, velocity = HexCoordinate(*position), HexCoordinate(*velocity)
        reachable = calculate_reachable_hexes(position, velocity, thrust)
        destination = hex_add(position, velocity)
        assert reachable[destination].thrust_required == 0

    @pytest.mark.parametrize("thrust", [0, 1, 2, 3])
    def test_destination_count_is_hex_range(self, thrust):
        reachable = calculate_reachable_hexes(HexCoordinate(0, 0), HexCoordinate(2, -1), thrust)
        assert len(reachable) == 3 * thrust * (thrust + 1) + 1

    def test_minimum_cost_kept(self):
        reachable = calculate_reachable_hexes(HexCoordinate(0, 0), HexCoordinate(0, 0), 3)
        for destination, entry in reachable.items():
            assert entry.thrust_required == hex_length(destination)
            assert entry.resulting_velocity == destination

    def test_all_costs_within_budget(self):
        reachable = calculate_reachable_hexes(HexCoordinate(1, 1), HexCoordinate(1, 0), 2)
        assert all(0 <= e.thrust_required <= 2 for e in reachable.values())

    def test_negative_budget_only_coasts(self):
        reachable = calculate_reachable_hexes(HexCoordinate(0, 0), HexCoordinate(1, 0), -1)
        assert list(reachable) == [HexCoordinate(1, 0)]

    def test_cumulative_plot_from_plotted_velocity(self):
        """Plotting continues from the plotted velocity with the leftover budget."""
        first = calculate_reachable_hexes(HexCoordinate(0, 0), HexCoordinate(0, 0), 2)
        step = first[HexCoordinate(1, 0)]
        second = calculate_reachable_hexes(
            HexCoordinate(0, 0), step.resulting_velocity, 2 - step.thrust_required
        )
        assert HexCoordinate(2, 0) in second
        assert HexCoordinate(3, 0) not in second
        assert math.isclose(second[HexCoordinate(2, 0)].thrust_required, 1)
