"""
Combat resolution for the Triplanetary engine.

Implements the odds-based gunnery rules:
- Odds from the attacker / defender weapon strength ratio
- Range and relative-velocity die modifiers
- Combat results table lookup (data-driven, from rules.json)
- Cumulative disablement, destruction at 6 turns disabled
- A human-readable combat log

Die rolls come from an injected random.Random so resolution is
reproducible under test.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Mapping, Optional, Sequence

from .config import default_rules
from .errors import RulesDataError
from .hexgrid import HexCoordinate, VelocityVector, hex_distance, hex_length, hex_subtract
from .ship import Ship

logger = logging.getLogger(__name__)


# Table entry meaning "no effect"
NO_EFFECT = "–"
DESTROYED_RESULT = "E"

# Odds columns, weakest first
ODDS_COLUMNS = ("1:4", "1:2", "1:1", "2:1", "3:1", "4:1")

# Defaults for the "combat" section of rules data
DESTRUCTION_THRESHOLD = 6
FREE_RELATIVE_VELOCITY = 2
DIE_SIDES = 6
NO_EFFECT_ODDS = ("1:4",)


class CombatStage(Enum):
    """Combat queue lifecycle, repeated every Combat phase."""
    NO_ATTACKS_DECLARED = "no_attacks_declared"
    ATTACKS_PENDING = "attacks_pending"
    RESOLVED = "resolved"
    CLEARED = "cleared"


@dataclass(frozen=True)
class CombatRules:
    """
    Tunable combat values from the "combat" section of rules data.

    Attributes:
        destruction_threshold: Accumulated disabled turns that destroy a ship.
        free_relative_velocity: Relative velocity allowed before the die is penalized.
        die_sides: Sides on the combat die.
        no_effect_odds: Odds columns that never damage, whatever the roll.
    """
    destruction_threshold: int = DESTRUCTION_THRESHOLD
    free_relative_velocity: int = FREE_RELATIVE_VELOCITY
    die_sides: int = DIE_SIDES
    no_effect_odds: tuple[str, ...] = NO_EFFECT_ODDS

    @classmethod
    def from_rules(cls, rules: Optional[dict] = None) -> CombatRules:
        """
        Read the combat section of rules data.

        Raises:
            RulesDataError: If a value is not a positive number or an odds
                entry is not a table column.
        """
        data = (rules or default_rules())["combat"]
        try:
            combat_rules = cls(
                destruction_threshold=int(data.get("destruction_threshold", DESTRUCTION_THRESHOLD)),
                free_relative_velocity=int(data.get("free_relative_velocity", FREE_RELATIVE_VELOCITY)),
                die_sides=int(data.get("die_sides", DIE_SIDES)),
                no_effect_odds=tuple(data.get("no_effect_odds", NO_EFFECT_ODDS)),
            )
        except (TypeError, ValueError) as e:
            raise RulesDataError(f"Invalid combat rules: {e}") from e

        if combat_rules.destruction_threshold < 1 or combat_rules.die_sides < 1:
            raise RulesDataError("Combat destruction_threshold and die_sides must be positive")
        unknown = [o for o in combat_rules.no_effect_odds if o not in ODDS_COLUMNS]
        if unknown:
            raise RulesDataError(f"Unknown no_effect_odds {unknown}")
        return combat_rules


# =============================================================================
# RESULTS TABLE
# =============================================================================

@dataclass(frozen=True)
class CombatResultsTable:
    """
    Combat results table: (odds, modified roll) -> damage result.

    Attributes:
        odds: Column labels, weakest first.
        rows: Modified roll (1-6) -> odds -> result ("–", "D1".."D5", "E").
    """
    odds: tuple[str, ...]
    rows: Mapping[int, Mapping[str, str]]

    @classmethod
    def from_rules(cls, rules: Optional[dict] = None) -> CombatResultsTable:
        """
        Build the table from the combat_results_table section of rules data.

        Raises:
            RulesDataError: If a row is missing an odds column.
        """
        data = (rules or default_rules())["combat_results_table"]
        odds = tuple(data.get("odds", ODDS_COLUMNS))
        rows: dict[int, dict[str, str]] = {}
        for roll_text, row in data["rows"].items():
            missing = [o for o in odds if o not in row]
            if missing:
                raise RulesDataError(f"Combat table row {roll_text} is missing columns {missing}")
            rows[int(roll_text)] = dict(row)
        return cls(odds=odds, rows=rows)

    def lookup(self, odds: str, modified_roll: int) -> str:
        """
        Damage result for an odds column and modified roll.

        Rolls below 1 have no effect; rolls above the highest row use the
        highest row.
        """
        if modified_roll < 1:
            return NO_EFFECT
        roll = min(modified_roll, max(self.rows))
        return self.rows[roll].get(odds, NO_EFFECT)


def calculate_combat_odds(attack_strength: int, defense_strength: int) -> str:
    """
    Odds column for a strength comparison, rounded in the defender's favour.

    Args:
        attack_strength: Attacker weapon strength.
        defense_strength: Defender weapon strength.

    Returns:
        One of "1:4", "1:2", "1:1", "2:1", "3:1", "4:1".
    """
    if defense_strength <= 0:
        return "4:1"

    ratio = attack_strength / defense_strength
    if ratio >= 1:
        return f"{min(4, int(ratio))}:1"
    if ratio >= 0.5:
        return "1:2"
    return "1:4"


def parse_damage_result(damage_result: str, destruction_threshold: int = DESTRUCTION_THRESHOLD) -> int:
    """
    Turns disabled for a table entry.

    "–" is 0, "D1".."D5" are 1..5 and "E" (eliminated) is the destruction
    threshold, 6 by default.
    """
    if damage_result == DESTROYED_RESULT:
        return destruction_threshold
    if damage_result.startswith("D"):
        try:
            return int(damage_result[1:])
        except ValueError:
            return 0
    return 0


# =============================================================================
# ATTACK DECLARATION
# =============================================================================

@dataclass(frozen=True)
class CombatModifiers:
    """Die modifiers for one attack."""
    range_modifier: int
    velocity_modifier: int

    @property
    def total(self) -> int:
        return self.range_modifier + self.velocity_modifier


@dataclass(frozen=True)
class DeclaredAttack:
    """
    A pending attack, one per attacker.

    Attributes:
        attacker_id: Firing ship.
        target_id: Target ship.
        odds: Odds column used for the table lookup.
        range: Hex distance at declaration.
        relative_velocity: Hex length of the velocity difference.
        modifiers: Die modifiers from range and relative velocity.
        attacker_strength: Attacker weapon strength.
        defender_strength: Target weapon strength.
    """
    attacker_id: str
    target_id: str
    odds: str
    range: int = 0
    relative_velocity: int = 0
    modifiers: CombatModifiers = CombatModifiers(0, 0)
    attacker_strength: int = 0
    defender_strength: int = 0


def calculate_range(pos1: HexCoordinate, pos2: HexCoordinate) -> int:
    return hex_distance(pos1, pos2)


def calculate_relative_velocity(v1: VelocityVector, v2: VelocityVector) -> int:
    """Hex length of the difference between two velocities."""
    return hex_length(hex_subtract(v1, v2))


def calculate_modifiers(
    range_hexes: int,
    relative_velocity: int,
    free_relative_velocity: int = FREE_RELATIVE_VELOCITY,
) -> CombatModifiers:
    """
    Die modifiers: -1 per hex of range, -1 per hex of relative velocity
    above free_relative_velocity (2 by default).
    """
    velocity_modifier = 0
    if relative_velocity > free_relative_velocity:
        velocity_modifier = -(relative_velocity - free_relative_velocity)
    return CombatModifiers(range_modifier=-range_hexes, velocity_modifier=velocity_modifier)


def create_declared_attack(
    attacker: Ship,
    target: Ship,
    odds: Optional[str] = None,
    free_relative_velocity: int = FREE_RELATIVE_VELOCITY,
) -> DeclaredAttack:
    """
    Declare an attack with range and velocity modifiers filled in.

    Args:
        attacker: Firing ship.
        target: Target ship.
        odds: Explicit odds column; computed from weapon strengths if None.
        free_relative_velocity: Relative velocity allowed without penalty.

    Raises:
        ValueError: If an explicit odds value is not a table column.
    """
    if odds is None:
        odds = calculate_combat_odds(attacker.stats.weapons, target.stats.weapons)
    elif odds not in ODDS_COLUMNS:
        raise ValueError(f"Unknown odds '{odds}', expected one of {ODDS_COLUMNS}")

    range_hexes = calculate_range(attacker.position, target.position)
    relative_velocity = calculate_relative_velocity(attacker.velocity, target.velocity)
    return DeclaredAttack(
        attacker_id=attacker.id,
        target_id=target.id,
        odds=odds,
        range=range_hexes,
        relative_velocity=relative_velocity,
        modifiers=calculate_modifiers(range_hexes, relative_velocity, free_relative_velocity),
        attacker_strength=attacker.stats.weapons,
        defender_strength=target.stats.weapons,
    )


def can_ship_attack(ship: Ship) -> bool:
    """Armed and not destroyed."""
    return not ship.destroyed and ship.stats.weapons > 0


def get_valid_targets(attacker: Ship, ships: Sequence[Ship]) -> list[Ship]:
    """Living ships belonging to other players."""
    return [
        ship for ship in ships
        if ship.id != attacker.id
        and ship.player_id != attacker.player_id
        and not ship.destroyed
    ]


def has_valid_targets(attacker: Ship, ships: Sequence[Ship]) -> bool:
    return len(get_valid_targets(attacker, ships)) > 0


# =============================================================================
# RESOLUTION
# =============================================================================

@dataclass(frozen=True)
class CombatResult:
    """
    Outcome of one resolved attack.

    Attributes:
        attack: The declared attack.
        die_roll: Raw die roll (1-6).
        modified_roll: Roll after modifiers, 0 when below 1, at most 6.
        damage_result: Table entry ("–", "D1".."D5", "E").
        turns_disabled: Turns of disablement inflicted.
        target_destroyed: The result alone destroys the target.
    """
    attack: DeclaredAttack
    die_roll: int
    modified_roll: int
    damage_result: str
    turns_disabled: int
    target_destroyed: bool

    @property
    def is_hit(self) -> bool:
        return self.damage_result != NO_EFFECT


@dataclass(frozen=True)
class CombatLogEntry:
    """Immutable combat log line."""
    id: str
    timestamp: float
    result: CombatResult
    attacker_name: str
    target_name: str
    message: str


@dataclass(frozen=True)
class CombatPhaseOutcome:
    """Everything produced by resolving one Combat phase."""
    results: tuple[CombatResult, ...]
    ships: tuple[Ship, ...]
    log_entries: tuple[CombatLogEntry, ...]


class CombatResolver:
    """
    Resolves declared attacks against the combat results table.

    Attributes:
        rng: Die source.
        table: Combat results table.
        rules: Die size, modifiers and destruction threshold.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        table: Optional[CombatResultsTable] = None,
        rules: Optional[CombatRules] = None,
    ):
        """
        Initialize the resolver.

        Args:
            rng: Optional random number generator for reproducible results.
            table: Results table (the bundled rules table if omitted).
            rules: Combat values (the bundled rules if omitted).
        """
        self.rng = rng or random.Random()
        self.table = table or CombatResultsTable.from_rules()
        self.rules = rules or CombatRules.from_rules()

    def roll_die(self) -> int:
        """Roll the combat die (1d6 by default)."""
        return self.rng.randint(1, self.rules.die_sides)

    def resolve_attack(self, attack: DeclaredAttack, die_roll: Optional[int] = None) -> CombatResult:
        """
        Resolve one attack.

        A modified roll above 6 counts as 6; below 1 it becomes 0 and has
        no effect. Attacks at a no-effect odds column (1:4) never damage.

        Args:
            attack: Declared attack.
            die_roll: Fixed roll (rolled from rng if None).

        Returns:
            CombatResult for the attack.
        """
        raw = die_roll if die_roll is not None else self.roll_die()
        modified = raw + attack.modifiers.total
        if modified < 1:
            modified = 0
        elif modified > 6:
            modified = 6

        if attack.odds in self.rules.no_effect_odds:
            damage_result = NO_EFFECT
        else:
            damage_result = self.table.lookup(attack.odds, modified)
        threshold = self.rules.destruction_threshold
        turns_disabled = parse_damage_result(damage_result, threshold)
        return CombatResult(
            attack=attack,
            die_roll=raw,
            modified_roll=modified,
            damage_result=damage_result,
            turns_disabled=turns_disabled,
            target_destroyed=turns_disabled >= threshold,
        )


def apply_combat_damage(
    target: Ship,
    result: CombatResult,
    destruction_threshold: int = DESTRUCTION_THRESHOLD,
) -> Ship:
    """
    Add a result's disablement to a ship.

    Reaching the destruction threshold (6 accumulated turns by default), or
    an explicit destroy, destroys the ship and resets disabled_turns to 0.
    """
    if result.turns_disabled <= 0:
        return target

    disabled = target.disabled_turns + result.turns_disabled
    if disabled >= destruction_threshold or result.target_destroyed:
        return replace(target, destroyed=True, disabled_turns=0)
    return replace(target, disabled_turns=disabled)


def format_combat_message(result: CombatResult, attacker_name: str, target_name: str, destroyed: bool) -> str:
    """Combat log text for a resolved attack."""
    odds = result.attack.odds
    roll = result.die_roll
    modified = result.modified_roll
    if not result.is_hit:
        return f"{attacker_name} ({odds}) missed {target_name}. [Roll: {roll}, Modified: {modified}]"
    if destroyed:
        return (f"{attacker_name} ({odds}) DESTROYED {target_name}! "
                f"[{result.damage_result}, Roll: {roll}, Modified: {modified}]")
    return (f"{attacker_name} ({odds}) hit {target_name} for {result.damage_result}. "
            f"[Roll: {roll}, Modified: {modified}]")


def execute_combat_phase(
    declared_attacks: Mapping[str, DeclaredAttack],
    ships: Sequence[Ship],
    resolver: CombatResolver,
    clock: Callable[[], float] = time.time,
    first_log_number: int = 1,
) -> CombatPhaseOutcome:
    """
    Resolve every declared attack once.

    Attacks whose target is missing or already destroyed (possibly by an
    earlier attack this phase) are skipped. Damage accumulates across
    attacks on the same target. The caller must clear the declared attacks
    afterwards; resolving the same map twice applies the damage twice.

    Args:
        declared_attacks: Pending attacks keyed by attacker id.
        ships: All ships.
        resolver: Die source and results table.
        clock: Timestamp source for log entries.
        first_log_number: Sequence number of the first new log entry.

    Returns:
        CombatPhaseOutcome with results, updated ships and new log entries.
    """
    ship_map = {ship.id: ship for ship in ships}
    results: list[CombatResult] = []
    log_entries: list[CombatLogEntry] = []

    for attack in declared_attacks.values():
        target = ship_map.get(attack.target_id)
        if target is None or target.destroyed:
            logger.debug(f"Skipping attack by {attack.attacker_id}: target {attack.target_id} unavailable")
            continue

        result = resolver.resolve_attack(attack)
        results.append(result)

        updated = apply_combat_damage(target, result, resolver.rules.destruction_threshold)
        ship_map[target.id] = updated

        attacker = ship_map.get(attack.attacker_id)
        attacker_name = attacker.name if attacker else "Unknown"
        message = format_combat_message(result, attacker_name, target.name, updated.destroyed)
        log_entries.append(CombatLogEntry(
            id=f"combat-{first_log_number + len(log_entries)}",
            timestamp=clock(),
            result=result,
            attacker_name=attacker_name,
            target_name=target.name,
            message=message,
        ))
        logger.info(message)

    updated_ships = tuple(ship_map[ship.id] for ship in ships)
    return CombatPhaseOutcome(
        results=tuple(results),
        ships=updated_ships,
        log_entries=tuple(log_entries),
    )
