"""Triplanetary vector-movement, gravity, turn and combat engine."""

from .config import GameConfig, load_rules_data

from .errors import (
    RejectionReason,
    RulesDataError,
    TriplanetaryError,
    UnknownCommandError,
)

from .hexgrid import (
    HEX_DIRECTIONS,
    HexCoordinate,
    VelocityVector,
    hex_add,
    hex_distance,
    hex_neighbors,
    hex_range,
    hex_subtract,
)

from .physics import (
    HexVector,
    ReachableHex,
    calculate_destination,
    calculate_reachable_hexes,
)

from .celestial import (
    CelestialBody,
    GravityHex,
    GravityWellZone,
    GravityZone,
    load_solar_system,
)

from .gravity import (
    ArrowGravity,
    GravityModel,
    RadialGravity,
    get_gravity_zone,
    gravity_model_for,
)

from .ship import Ship, ShipStats, create_ship

from .ordnance import (
    Ordnance,
    OrdnanceInventory,
    OrdnanceType,
    launch_ordnance,
)

from .combat import (
    CombatLogEntry,
    CombatResolver,
    CombatResult,
    CombatResultsTable,
    CombatRules,
    CombatStage,
    DeclaredAttack,
    calculate_combat_odds,
    execute_combat_phase,
)

from .turns import GamePhase, TurnState, advance_phase, create_turn_state

from .movement import PlottedMove, execute_movement_phase

from .victory import (
    VictoryCondition,
    VictoryConditionType,
    VictoryEvaluator,
    VictoryState,
)

from .game import (
    # Commands
    SelectShip,
    PlotMove,
    PlotDestination,
    ClearPlot,
    DeclareAttack,
    LaunchOrdnance,
    ChooseWeakGravity,
    EndPhase,
    EndTurn,
    ToggleReachableHexesDisplay,
    Command,
    # State and dispatch
    CommandContext,
    GameState,
    GameEvent,
    GameEventType,
    GameSession,
    apply_command,
    create_game,
)

__all__ = [
    # Configuration and errors
    "GameConfig",
    "load_rules_data",
    "RejectionReason",
    "RulesDataError",
    "TriplanetaryError",
    "UnknownCommandError",
    # Hex grid
    "HEX_DIRECTIONS",
    "HexCoordinate",
    "VelocityVector",
    "hex_add",
    "hex_distance",
    "hex_neighbors",
    "hex_range",
    "hex_subtract",
    # Physics
    "HexVector",
    "ReachableHex",
    "calculate_destination",
    "calculate_reachable_hexes",
    # Celestial bodies and gravity
    "CelestialBody",
    "GravityHex",
    "GravityWellZone",
    "GravityZone",
    "load_solar_system",
    "ArrowGravity",
    "GravityModel",
    "RadialGravity",
    "get_gravity_zone",
    "gravity_model_for",
    # Ships and ordnance
    "Ship",
    "ShipStats",
    "create_ship",
    "Ordnance",
    "OrdnanceInventory",
    "OrdnanceType",
    "launch_ordnance",
    # Combat
    "CombatLogEntry",
    "CombatResolver",
    "CombatResult",
    "CombatResultsTable",
    "CombatRules",
    "CombatStage",
    "DeclaredAttack",
    "calculate_combat_odds",
    "execute_combat_phase",
    # Turns and movement
    "GamePhase",
    "TurnState",
    "advance_phase",
    "create_turn_state",
    "PlottedMove",
    "execute_movement_phase",
    # Victory
    "VictoryCondition",
    "VictoryConditionType",
    "VictoryEvaluator",
    "VictoryState",
    # Game - Commands
    "SelectShip",
    "PlotMove",
    "PlotDestination",
    "ClearPlot",
    "DeclareAttack",
    "LaunchOrdnance",
    "ChooseWeakGravity",
    "EndPhase",
    "EndTurn",
    "ToggleReachableHexesDisplay",
    "Command",
    # Game - State and dispatch
    "CommandContext",
    "GameState",
    "GameEvent",
    "GameEventType",
    "GameSession",
    "apply_command",
    "create_game",
]
