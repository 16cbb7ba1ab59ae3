"""
Error taxonomy for the Triplanetary engine.

Bad player commands are never raised: the dispatcher absorbs them as no-ops
and reports a RejectionReason. Exceptions are reserved for programming and
configuration errors.
"""

from __future__ import annotations

from enum import Enum


class RejectionReason(Enum):
    """Why a command was absorbed without changing the game state."""
    UNKNOWN_SHIP = "unknown_ship"
    SHIP_DESTROYED = "ship_destroyed"
    SHIP_DISABLED = "ship_disabled"
    NOT_CURRENT_PLAYER = "not_current_player"
    WRONG_PHASE = "wrong_phase"
    UNREACHABLE_HEX = "unreachable_hex"
    INSUFFICIENT_THRUST = "insufficient_thrust"
    INVALID_TARGET = "invalid_target"
    UNARMED = "unarmed"
    INVALID_ODDS = "invalid_odds"
    NO_ORDNANCE = "no_ordnance"
    UNPLOTTED_SHIPS = "unplotted_ships"
    GAME_OVER = "game_over"


class TriplanetaryError(Exception):
    """Base class for engine errors."""


class RulesDataError(TriplanetaryError):
    """Rules or map data is missing a field or holds an invalid value."""


class UnknownCommandError(TriplanetaryError):
    """The dispatcher was handed an object that is not a known command."""
