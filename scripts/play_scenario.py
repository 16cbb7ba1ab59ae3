#!/usr/bin/env python3
"""
Play a scripted Triplanetary skirmish in the terminal.

Both sides are driven by a simple pursuit policy: every ship plots toward
the reachable hex closest to the nearest enemy, and attacks anything within
range during Combat.

Usage:
    python scripts/play_scenario.py --seed 7
    python scripts/play_scenario.py --gravity radial --rounds 20 --verbose
"""

import argparse
import logging
from dataclasses import replace

from triplanetary import (
    DeclareAttack,
    EndPhase,
    GameConfig,
    GamePhase,
    HexCoordinate,
    PlotDestination,
    VictoryCondition,
    VictoryConditionType,
    create_game,
    create_ship,
    hex_distance,
)

ATTACK_RANGE = 4


def nearest_enemy(session, ship):
    enemies = session.valid_targets(ship.id)
    if not enemies:
        return None
    return min(enemies, key=lambda e: hex_distance(ship.position, e.position))


def plot_pursuit(session):
    """Plot every unplotted ship of the current player toward its nearest enemy."""
    for ship_id in session.plotting_status().unplotted_ship_ids:
        ship = session.state.ship(ship_id)
        enemy = nearest_enemy(session, ship)
        reachable = session.reachable_hexes(ship_id)
        if enemy is None:
            destination = min(reachable, key=lambda h: reachable[h].thrust_required)
        else:
            destination = min(reachable, key=lambda h: hex_distance(h, enemy.position))
        session.dispatch(PlotDestination(ship_id, destination))


def declare_attacks(session):
    for ship in session.ships:
        if ship.player_id != session.turn_state.current_player_id or ship.destroyed:
            continue
        enemy = nearest_enemy(session, ship)
        if enemy is not None and hex_distance(ship.position, enemy.position) <= ATTACK_RANGE:
            session.dispatch(DeclareAttack(ship.id, enemy.id))


def print_fleet(session):
    for ship in session.ships:
        status = "DESTROYED" if ship.destroyed else f"disabled {ship.disabled_turns}"
        print(f"  {ship.name:10s} {ship.player_id:6s} at {ship.position.to_tuple()} "
              f"v={ship.velocity.to_tuple()} hull {ship.stats.current_hull} ({status})")


def main():
    parser = argparse.ArgumentParser(
        description="Play a scripted Triplanetary skirmish",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/play_scenario.py --seed 7
    python scripts/play_scenario.py --gravity radial --rounds 20
        """,
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Dice seed (default: TRIPLANETARY_SEED or random)",
    )
    parser.add_argument(
        "--gravity",
        choices=["arrow", "radial"],
        default=None,
        help="Gravity rule variant (default: TRIPLANETARY_GRAVITY_MODEL or arrow)",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=12,
        help="Survival round limit (default: 12)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show engine log output",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    config = GameConfig.from_env()
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    if args.gravity is not None:
        config = replace(config, gravity_model=args.gravity)

    ships = [
        create_ship("terra-1", "Patrol", "terra", HexCoordinate(-8, 2), velocity=HexCoordinate(1, 0)),
        create_ship("terra-2", "Corvette", "terra", HexCoordinate(-8, 4), velocity=HexCoordinate(1, 0)),
        create_ship("mars-1", "Raider", "mars", HexCoordinate(8, -2), velocity=HexCoordinate(-1, 0)),
        create_ship("mars-2", "Frigate", "mars", HexCoordinate(8, -4), velocity=HexCoordinate(-1, 0),
                    stats={"weapons": 2}),
    ]
    session = create_game(
        ["terra", "mars"],
        ships,
        config=config,
        victory_conditions=[
            VictoryCondition(VictoryConditionType.ELIMINATION),
            VictoryCondition(VictoryConditionType.SURVIVAL, rounds=args.rounds),
        ],
    )

    print("=" * 60)
    print(f"TRIPLANETARY SKIRMISH ({config.gravity_model} gravity, seed {config.seed})")
    print("=" * 60)

    last_logged = 0
    while not session.victory.game_won:
        phase = session.state.current_phase
        if phase is GamePhase.PLOT:
            if session.turn_state.current_player_index == 0:
                print(f"\nRound {session.turn_state.round_number}")
                print_fleet(session)
            plot_pursuit(session)
        elif phase is GamePhase.COMBAT:
            declare_attacks(session)

        session.dispatch(EndPhase())
        if session.last_rejection is not None:
            print(f"Engine rejected EndPhase: {session.last_rejection.value}")
            break

        for entry in session.combat_log[last_logged:]:
            print(f"  * {entry.message}")
        last_logged = len(session.combat_log)

    print("\n" + "=" * 60)
    victory = session.victory
    print(f"RESULT: {victory.victory_reason} (winner: {victory.winner_id or 'none'})")
    print_fleet(session)


if __name__ == "__main__":
    main()
