"""
Unit tests for combat resolution.

Run with: python -m pytest tests/test_combat.py -v
"""

import random
from dataclasses import replace

import pytest

from triplanetary.combat import (
    NO_EFFECT,
    CombatResolver,
    CombatResultsTable,
    CombatRules,
    DeclaredAttack,
    apply_combat_damage,
    calculate_combat_odds,
    calculate_modifiers,
    calculate_range,
    calculate_relative_velocity,
    can_ship_attack,
    create_declared_attack,
    execute_combat_phase,
    get_valid_targets,
    has_valid_targets,
    parse_damage_result,
)
from triplanetary.errors import RulesDataError
from triplanetary.hexgrid import HexCoordinate
from triplanetary.ship import create_ship


class ScriptedRandom(random.Random):
    """Die source returning a fixed sequence of rolls."""

    def __init__(self, rolls):
        super().__init__(0)
        self._rolls = list(rolls)

    def randint(self, a, b):
        return self._rolls.pop(0)


# Fixtures

@pytest.fixture
def table() -> CombatResultsTable:
    return CombatResultsTable.from_rules()


@pytest.fixture
def seeded_resolver(table) -> CombatResolver:
    """Resolver with a seeded RNG for reproducible tests."""
    return CombatResolver(rng=random.Random(42), table=table)


@pytest.fixture
def attacker():
    return create_ship("a1", "Alpha", "p1", HexCoordinate(0, 0))


@pytest.fixture
def target():
    return create_ship("t1", "Target", "p2", HexCoordinate(0, 0))


def attack_at(odds: str, attacker_id="a1", target_id="t1") -> DeclaredAttack:
    return DeclaredAttack(attacker_id=attacker_id, target_id=target_id, odds=odds)


class TestResultsTable:
    """Tests for the data-driven combat results table."""

    @pytest.mark.parametrize("roll,odds,expected", [
        (1, "4:1", "D2"),
        (3, "2:1", "D2"),
        (5, "3:1", "D5"),
        (6, "4:1", "E"),
        (6, "1:4", "D1"),
        (1, "1:4", NO_EFFECT),
        (1, "1:2", NO_EFFECT),
        (2, "1:1", NO_EFFECT),
        (5, "2:1", "D4"),
    ])
    def test_known_entries(self, table, roll, odds, expected):
        assert table.lookup(odds, roll) == expected

    def test_every_row_has_every_column(self, table):
        assert sorted(table.rows) == [1, 2, 3, 4, 5, 6]
        for row in table.rows.values():
            assert set(row) == set(table.odds)

    def test_rolls_outside_table(self, table):
        assert table.lookup("4:1", 0) == NO_EFFECT
        assert table.lookup("4:1", 9) == table.lookup("4:1", 6)

    def test_incomplete_row_rejected(self):
        rules = {"combat_results_table": {"odds": ["1:1", "2:1"], "rows": {"1": {"1:1": "–"}}}}
        with pytest.raises(RulesDataError):
            CombatResultsTable.from_rules(rules)


class TestOdds:
    """Tests for odds calculation."""

    @pytest.mark.parametrize("attack,defense,expected", [
        (1, 1, "1:1"),
        (2, 1, "2:1"),
        (3, 1, "3:1"),
        (4, 1, "4:1"),
        (9, 1, "4:1"),
        (5, 2, "2:1"),
        (1, 2, "1:2"),
        (2, 3, "1:2"),
        (1, 3, "1:4"),
        (1, 8, "1:4"),
        (3, 0, "4:1"),
    ])
    def test_rounded_for_defender(self, attack, defense, expected):
        assert calculate_combat_odds(attack, defense) == expected

    @pytest.mark.parametrize("text,expected", [
        (NO_EFFECT, 0), ("D1", 1), ("D3", 3), ("D5", 5), ("E", 6),
    ])
    def test_parse_damage_result(self, text, expected):
        assert parse_damage_result(text) == expected


class TestModifiers:
    """Tests for range and relative-velocity modifiers."""

    def test_range(self):
        assert calculate_range(HexCoordinate(0, 0), HexCoordinate(2, 1)) == 3

    def test_relative_velocity(self):
        assert calculate_relative_velocity(HexCoordinate(2, 0), HexCoordinate(-1, 0)) == 3

    @pytest.mark.parametrize("range_hexes,rel_v,expected_total", [
        (0, 0, 0),
        (3, 2, -3),
        (1, 4, -3),
        (2, 5, -5),
    ])
    def test_modifier_totals(self, range_hexes, rel_v, expected_total):
        assert calculate_modifiers(range_hexes, rel_v).total == expected_total

    def test_declared_attack_fills_modifiers(self, attacker, target):
        far = replace(target, position=HexCoordinate(2, 0), velocity=HexCoordinate(0, 3))
        attack = create_declared_attack(attacker, far)
        assert attack.odds == "1:1"
        assert attack.range == 2
        assert attack.relative_velocity == 3
        assert attack.modifiers.total == -3

    def test_explicit_odds(self, attacker, target):
        assert create_declared_attack(attacker, target, "3:1").odds == "3:1"
        with pytest.raises(ValueError):
            create_declared_attack(attacker, target, "7:1")


class TestTargeting:
    """Tests for target eligibility."""

    def test_valid_targets_exclude_friends_self_and_wrecks(self, attacker, target):
        friend = create_ship("a2", "Friend", "p1", HexCoordinate(1, 0))
        wreck = replace(create_ship("t2", "Wreck", "p2", HexCoordinate(1, 0)), destroyed=True)
        assert get_valid_targets(attacker, [attacker, friend, target, wreck]) == [target]
        assert has_valid_targets(attacker, [attacker, friend, target])
        assert not has_valid_targets(attacker, [attacker, friend, wreck])

    def test_unarmed_cannot_attack(self, attacker):
        unarmed = replace(attacker, stats=replace(attacker.stats, weapons=0))
        assert can_ship_attack(attacker)
        assert not can_ship_attack(unarmed)


class TestResolver:
    """Tests for single-attack resolution."""

    def test_fixed_roll(self, seeded_resolver):
        result = seeded_resolver.resolve_attack(attack_at("2:1"), die_roll=3)
        assert result.die_roll == 3
        assert result.modified_roll == 3
        assert result.damage_result == "D2"
        assert result.turns_disabled == 2
        assert not result.target_destroyed

    def test_modified_roll_clamped_to_six(self, seeded_resolver):
        attack = replace(attack_at("4:1"), modifiers=calculate_modifiers(0, 0))
        result = seeded_resolver.resolve_attack(attack, die_roll=6)
        assert result.modified_roll == 6
        assert result.damage_result == "E"
        assert result.target_destroyed

    def test_modified_below_one_has_no_effect(self, seeded_resolver):
        attack = replace(attack_at("4:1"), modifiers=calculate_modifiers(4, 0))
        result = seeded_resolver.resolve_attack(attack, die_roll=2)
        assert result.modified_roll == 0
        assert result.damage_result == NO_EFFECT
        assert result.turns_disabled == 0
        assert not result.is_hit

    def test_one_to_four_never_damages(self, seeded_resolver, table):
        # The table itself holds D1 at roll 6
        assert table.lookup("1:4", 6) == "D1"
        for roll in range(1, 7):
            result = seeded_resolver.resolve_attack(attack_at("1:4"), die_roll=roll)
            assert result.damage_result == NO_EFFECT
            assert result.turns_disabled == 0

    def test_declared_one_to_four_attack_misses(self, seeded_resolver, attacker, target):
        attack = create_declared_attack(attacker, target, "1:4")
        assert seeded_resolver.resolve_attack(attack, die_roll=6).damage_result == NO_EFFECT

    def test_seeded_rolls_reproducible(self, table):
        first = CombatResolver(rng=random.Random(7), table=table)
        second = CombatResolver(rng=random.Random(7), table=table)
        rolls_a = [first.roll_die() for _ in range(20)]
        rolls_b = [second.roll_die() for _ in range(20)]
        assert rolls_a == rolls_b
        assert all(1 <= r <= 6 for r in rolls_a)


class TestCombatRules:
    """Tests for the tunable combat section of rules data."""

    def test_bundled_values(self):
        rules = CombatRules.from_rules()
        assert rules == CombatRules()
        assert rules.destruction_threshold == 6
        assert rules.free_relative_velocity == 2
        assert rules.die_sides == 6
        assert rules.no_effect_odds == ("1:4",)

    def test_custom_values(self):
        rules = CombatRules.from_rules({"combat": {
            "destruction_threshold": 4,
            "free_relative_velocity": 1,
            "die_sides": 10,
            "no_effect_odds": [],
        }})
        assert rules == CombatRules(4, 1, 10, ())

    @pytest.mark.parametrize("combat", [
        {"no_effect_odds": ["9:1"]},
        {"die_sides": "six"},
        {"destruction_threshold": 0},
    ])
    def test_invalid_values_rejected(self, combat):
        with pytest.raises(RulesDataError):
            CombatRules.from_rules({"combat": combat})

    def test_die_sides_bound_rolls(self, table):
        resolver = CombatResolver(rng=random.Random(3), table=table, rules=CombatRules(die_sides=2))
        assert {resolver.roll_die() for _ in range(50)} == {1, 2}

    def test_no_effect_odds_can_be_disabled(self, table):
        resolver = CombatResolver(table=table, rules=CombatRules(no_effect_odds=()))
        assert resolver.resolve_attack(attack_at("1:4"), die_roll=6).damage_result == "D1"

    def test_free_relative_velocity(self, attacker, target):
        fast = replace(target, velocity=HexCoordinate(4, 0))
        assert create_declared_attack(attacker, fast).modifiers.velocity_modifier == -2
        lenient = create_declared_attack(attacker, fast, free_relative_velocity=4)
        assert lenient.modifiers.velocity_modifier == 0

    def test_lower_destruction_threshold(self, table, attacker, target):
        resolver = CombatResolver(
            rng=ScriptedRandom([3]), table=table, rules=CombatRules(destruction_threshold=3)
        )
        outcome = execute_combat_phase(
            {"a1": attack_at("2:1")}, (attacker, replace(target, disabled_turns=1)), resolver
        )
        # D2 on top of one disabled turn reaches 3
        assert outcome.ships[1].destroyed
        assert outcome.ships[1].disabled_turns == 0

    def test_eliminated_counts_as_threshold(self, table):
        resolver = CombatResolver(table=table, rules=CombatRules(destruction_threshold=3))
        result = resolver.resolve_attack(attack_at("4:1"), die_roll=6)
        assert result.turns_disabled == 3
        assert result.target_destroyed


class TestDamage:
    """Tests for cumulative disablement and destruction."""

    def test_accumulates(self, seeded_resolver, target):
        result = seeded_resolver.resolve_attack(attack_at("2:1"), die_roll=3)
        damaged = apply_combat_damage(replace(target, disabled_turns=1), result)
        assert damaged.disabled_turns == 3
        assert not damaged.destroyed

    def test_reaching_six_destroys_and_resets(self, seeded_resolver, target):
        """Target at D4 hit for D2 is destroyed with disabled_turns reset."""
        result = seeded_resolver.resolve_attack(attack_at("2:1"), die_roll=3)
        damaged = apply_combat_damage(replace(target, disabled_turns=4), result)
        assert damaged.destroyed
        assert damaged.disabled_turns == 0

    def test_miss_leaves_target_unchanged(self, seeded_resolver, target):
        result = seeded_resolver.resolve_attack(attack_at("1:2"), die_roll=1)
        assert apply_combat_damage(target, result) is target


class TestCombatPhase:
    """Tests for batch resolution of declared attacks."""

    def test_empty_declarations(self, seeded_resolver, attacker, target):
        outcome = execute_combat_phase({}, (attacker, target), seeded_resolver)
        assert outcome.results == ()
        assert outcome.log_entries == ()
        assert outcome.ships == (attacker, target)

    def test_one_attack_logs_and_damages(self, table, attacker, target):
        resolver = CombatResolver(rng=ScriptedRandom([4]), table=table)
        outcome = execute_combat_phase(
            {"a1": attack_at("1:1")}, (attacker, target), resolver, clock=lambda: 123.0
        )
        assert len(outcome.results) == 1
        assert outcome.ships[1].disabled_turns == 2
        entry = outcome.log_entries[0]
        assert entry.id == "combat-1"
        assert entry.timestamp == 123.0
        assert entry.attacker_name == "Alpha"
        assert entry.target_name == "Target"
        assert entry.message == "Alpha (1:1) hit Target for D2. [Roll: 4, Modified: 4]"

    def test_miss_is_logged(self, table, attacker, target):
        resolver = CombatResolver(rng=ScriptedRandom([1]), table=table)
        outcome = execute_combat_phase({"a1": attack_at("1:1")}, (attacker, target), resolver)
        assert outcome.log_entries[0].message == "Alpha (1:1) missed Target. [Roll: 1, Modified: 1]"
        assert outcome.ships[1] == target

    def test_second_attack_on_destroyed_target_skipped(self, table, attacker, target):
        second = create_ship("a2", "Beta", "p1", HexCoordinate(0, 0))
        resolver = CombatResolver(rng=ScriptedRandom([6, 6]), table=table)
        declared = {"a1": attack_at("4:1"), "a2": attack_at("4:1", attacker_id="a2")}
        outcome = execute_combat_phase(declared, (attacker, second, target), resolver, first_log_number=5)
        assert len(outcome.results) == 1
        assert outcome.ships[2].destroyed
        assert outcome.ships[2].disabled_turns == 0
        assert outcome.log_entries[0].id == "combat-5"
        assert "DESTROYED" in outcome.log_entries[0].message

    def test_damage_accumulates_across_attacks(self, table, attacker, target):
        second = create_ship("a2", "Beta", "p1", HexCoordinate(0, 0))
        resolver = CombatResolver(rng=ScriptedRandom([5, 5]), table=table)
        declared = {"a1": attack_at("1:1"), "a2": attack_at("1:1", attacker_id="a2")}
        outcome = execute_combat_phase(declared, (attacker, second, target), resolver)
        # D3 + D3 reaches 6
        assert outcome.ships[2].destroyed
        assert outcome.ships[2].disabled_turns == 0
        assert len(outcome.log_entries) == 2
        assert "DESTROYED" in outcome.log_entries[1].message

    def test_missing_target_skipped(self, seeded_resolver, attacker):
        outcome = execute_combat_phase({"a1": attack_at("1:1", target_id="ghost")}, (attacker,), seeded_resolver)
        assert outcome.results == ()
